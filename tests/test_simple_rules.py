"""Tests for the small syntactic rules and the rule registry."""

import pytest

from unmangle.rules import DEFAULT_RULE_ORDER, RULES, build_rules, get_rule
from unmangle.rules.beautify import BeautifyRule

from conftest import squash


class TestRegistry:
    """Tests for rule lookup."""

    def test_default_order_is_registered(self):
        """Every default rule name is registered."""
        for name in DEFAULT_RULE_ORDER:
            assert name in RULES

    def test_build_rules_defaults(self):
        """build_rules uses the default order."""
        rules = build_rules()

        assert [rule.name for rule in rules] == DEFAULT_RULE_ORDER

    def test_build_rules_with_format(self):
        """Formatting appends the beautify rule once."""
        rules = build_rules(["un-jsx", "beautify"], format_output=True)

        assert [rule.name for rule in rules] == ["un-jsx", "beautify"]
        assert isinstance(build_rules(["un-jsx"], format_output=True).flatten()[-1], BeautifyRule)

    def test_unknown_rule(self):
        """An unknown name raises KeyError listing the known ones."""
        with pytest.raises(KeyError) as excinfo:
            get_rule("nope")

        assert "un-jsx" in str(excinfo.value)


class TestUnUseStrict:
    """Tests for the un-use-strict rule."""

    def test_removes_program_directive(self, apply_rules):
        """The program-level directive is dropped."""
        result = apply_rules('"use strict";\nvar a = 1;', "un-use-strict")

        assert result.code == "var a = 1;\n"

    def test_removes_function_directive(self, apply_rules):
        """Function prologues lose their directive too."""
        result = apply_rules('function f() { "use strict"; return 1; }', "un-use-strict")

        assert "use strict" not in result.code
        assert "return 1;" in result.code

    def test_keeps_other_directives(self, apply_rules):
        """Other prologue strings stay."""
        result = apply_rules('"use asm";\n"use strict";\nx();', "un-use-strict")

        assert "'use asm'" in result.code or '"use asm"' in result.code
        assert "use strict" not in result.code

    def test_string_after_prologue_kept(self, apply_rules):
        """A ``"use strict"`` statement after other code is not a directive."""
        result = apply_rules('x();\n"use strict";', "un-use-strict")

        assert "use strict" in result.code

    def test_comment_moves_to_next_statement(self, apply_rules):
        """Comments on the removed directive are kept."""
        result = apply_rules('"use strict"; // strict mode\nvar a = 1;', "un-use-strict")

        assert "// strict mode" in result.code
        assert result.code.index("// strict mode") < result.code.index("var a")


class TestUnWhileLoop:
    """Tests for the un-while-loop rule."""

    def test_infinite_for(self, apply_rules):
        """``for (;;)`` becomes ``while (true)``."""
        result = apply_rules("for (;;) { tick(); }", "un-while-loop")

        assert squash(result.code) == "while (true) { tick(); }"

    def test_for_with_test_only(self, apply_rules):
        """A loop with only a test keeps it."""
        result = apply_rules("for (; i < 3;) i++;", "un-while-loop")

        assert squash(result.code) == "while (i < 3) i++;"

    def test_for_with_init_untouched(self, apply_rules):
        """Loops with an init clause stay for loops."""
        result = apply_rules("for (var i = 0; i < 3;) i++;", "un-while-loop")

        assert result.code.startswith("for (")


class TestUnUndefined:
    """Tests for the un-undefined rule."""

    def test_void_zero(self, apply_rules):
        """``void 0`` becomes ``undefined``."""
        result = apply_rules("if (a === void 0) b = void 0;", "un-undefined")

        assert "void" not in result.code
        assert result.code.count("undefined") == 2

    def test_shadowed_undefined_kept(self, apply_rules):
        """A scope declaring ``undefined`` keeps ``void 0``."""
        result = apply_rules("function f(undefined) { return void 0; }", "un-undefined")

        assert "void 0" in result.code

    def test_void_call_kept(self, apply_rules):
        """``void`` of a non-literal has side effects and stays."""
        result = apply_rules("void f();", "un-undefined")

        assert result.code == "void f();\n"


class TestModuleMapping:
    """Tests for the module-mapping rule."""

    def test_numeric_ids_replaced(self, apply_rules):
        """Numeric require ids become file names."""
        result = apply_rules(
            "var a = require(1);\nvar b = require(2);",
            "module-mapping",
            params={"moduleMapping": {1: "./a.js"}},
        )

        assert 'var a = require("./a.js");' in result.code
        assert "var b = require(2);" in result.code

    def test_string_keys_match_numbers(self, apply_rules):
        """Mapping keys given as strings still match numeric ids."""
        result = apply_rules("require(7);", "module-mapping", params={"moduleMapping": {"7": "lib/x.js"}})

        assert result.code == 'require("lib/x.js");\n'

    def test_string_ids_replaced(self, apply_rules):
        """Path-like string ids are mapped too."""
        result = apply_rules(
            'require("./src/util.js");',
            "module-mapping",
            params={"moduleMapping": {"./src/util.js": "src/util.js"}},
        )

        assert result.code == 'require("src/util.js");\n'

    def test_idempotent(self, apply_rules):
        """Running the rule on its own output changes nothing."""
        params = {"moduleMapping": {1: "./a.js"}}
        first = apply_rules("require(1);", "module-mapping", params=params)
        second = apply_rules(first.code, "module-mapping", params=params)

        assert second.code == first.code

    def test_no_mapping_is_noop(self, apply_rules):
        """Without a mapping the program is only reprinted."""
        result = apply_rules("require(1);", "module-mapping")

        assert result.code == "require(1);\n"


class TestRuntimeHelpers:
    """Tests for the runtime-helpers rule."""

    def test_extends_becomes_spread(self, apply_rules):
        """``_extends({}, base, {...})`` becomes an object spread and the helper goes away."""
        code = (
            'var _extends = require("@babel/runtime/helpers/extends");\n'
            "var x = _extends({}, base, { id: 1 });"
        )
        result = apply_rules(code, "runtime-helpers")

        assert squash(result.code) == "var x = { ...base, id: 1 };"

    def test_imported_helper(self, apply_rules):
        """An imported helper is recognized and its import removed."""
        code = (
            'import _extends from "@babel/runtime/helpers/esm/extends";\n'
            "export const x = _extends({ a: 1 }, props);"
        )
        result = apply_rules(code, "runtime-helpers")

        assert "import" not in result.code
        assert squash(result.code) == "export const x = { a: 1, ...props };"

    def test_helper_kept_while_used(self, apply_rules):
        """A helper still referenced elsewhere keeps its declaration."""
        code = (
            'var _extends = require("@babel/runtime/helpers/extends");\n'
            "var x = _extends({}, a);\n"
            "var y = _extends;"
        )
        result = apply_rules(code, "runtime-helpers")

        assert "require(" in result.code
        assert "var x = { ...a };" in squash(result.code)

    def test_unrelated_call_untouched(self, apply_rules):
        """Functions that merely share the name are left alone."""
        result = apply_rules("function _extends(a) { return a; }\n_extends({}, b);", "runtime-helpers")

        assert "_extends({}, b);" in result.code
