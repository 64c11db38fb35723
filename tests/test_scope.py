"""Tests for scope analysis."""

from unmangle.core.nodes import find_paths, identifier
from unmangle.core.parser import parse_javascript
from unmangle.core.scope import ScopeTree, pascal_case, sanitize_identifier


def build(code: str) -> tuple[dict, ScopeTree]:
    program = parse_javascript(code).program
    return program, ScopeTree(program)


class TestNameHelpers:
    """Tests for identifier helpers."""

    def test_sanitize_identifier(self):
        """Arbitrary text becomes a valid identifier."""
        assert sanitize_identifier("foo-bar baz") == "fooBarBaz"
        assert sanitize_identifier("1st") == "_1st"
        assert sanitize_identifier("class") == "_class"
        assert sanitize_identifier("---") == "_"

    def test_pascal_case(self):
        """Lowercase names are capitalized."""
        assert pascal_case("button") == "Button"
        assert pascal_case("my-widget") == "MyWidget"


class TestScopeTree:
    """Tests for ScopeTree construction and queries."""

    def test_scopes_created(self, nested_scope_code):
        """Functions, blocks and classes open scopes."""
        _, scope = build(nested_scope_code)

        kinds = [s.kind for s in scope.scopes.values()]
        assert kinds[0] == "program"
        assert "function" in kinds
        assert "named-function" in kinds
        assert "block" in kinds
        assert "class" in kinds

    def test_var_hoists_to_function(self, nested_scope_code):
        """``var`` inside a block belongs to the enclosing function."""
        program, scope = build(nested_scope_code)

        function = next(s for s in program["body"] if s["type"] == "FunctionDeclaration")
        function_scope = scope.scope_for(function)
        assert "hoisted" in scope.scopes[function_scope].bindings
        assert "inner" not in scope.scopes[function_scope].bindings

    def test_references_resolved(self):
        """Reads resolve to their declaration."""
        _, scope = build("var a = 1; console.log(a, a);")

        binding = scope.lookup(0, "a")
        assert binding is not None
        assert binding.kind == "var"
        assert len(binding.references) == 2
        assert binding.constant

    def test_globals(self):
        """Undeclared names are recorded as globals."""
        _, scope = build("console.log(window);")

        assert "console" in scope.globals
        assert "window" in scope.globals

    def test_assignment_is_violation(self):
        """Writes are tracked apart from reads."""
        _, scope = build("let a = 1; a = 2; a++; f(a);")

        binding = scope.lookup(0, "a")
        assert len(binding.violations) == 2
        assert len(binding.references) == 1
        assert not binding.constant

    def test_shadowing(self):
        """An inner parameter shadows the outer binding."""
        program, scope = build("var x = 1; function f(x) { return x; } g(x);")

        outer = scope.lookup(0, "x")
        function = program["body"][1]
        inner = scope.lookup(scope.scope_for(function), "x")
        assert inner is not outer
        assert inner.kind == "param"
        assert len(inner.references) == 1
        assert len(outer.references) == 1

    def test_member_properties_are_not_references(self):
        """``obj.prop`` and object keys do not reference ``prop``."""
        _, scope = build("var prop = 1; obj.prop = { prop: 2 };")

        assert scope.lookup(0, "prop").references == []

    def test_jsx_component_is_reference(self):
        """A capitalized JSX tag references its binding; host tags do not."""
        _, scope = build("const Button = 1; const div = 2; const el = <div><Button></Button></div>;")

        assert len(scope.lookup(0, "Button").references) == 2
        assert scope.lookup(0, "div").references == []

    def test_imports_declared_in_program(self):
        """Import specifiers are module bindings of the program scope."""
        _, scope = build('import React, { useState as u } from "react"; u(React);')

        assert scope.lookup(0, "React").kind == "module"
        assert len(scope.lookup(0, "u").references) == 1

    def test_find_declaration(self):
        """find_declaration returns the declaring identifier visible from a scope."""
        program, scope = build("var a = 1; function f() { return a; }")

        declarator = program["body"][0]["declarations"][0]
        inner = scope.scope_for(program["body"][1])
        assert scope.find_declaration(inner, "a") is declarator["id"]
        assert scope.find_declaration(inner, "missing") is None

    def test_find_references(self):
        """find_references falls back to globals for undeclared names."""
        _, scope = build("var a = 1; a; b; b;")

        assert len(scope.find_references(0, "a")) == 1
        assert len(scope.find_references(0, "b")) == 2


class TestScopeMutation:
    """Tests for renaming and name generation."""

    def test_generate_name_free(self):
        """A free name is returned as is."""
        _, scope = build("var a = 1;")

        assert scope.generate_name("size") == "size"

    def test_generate_name_avoids_descendants(self):
        """Names declared in nested scopes are avoided."""
        _, scope = build("var a; function f() { var size; }")

        assert scope.generate_name("size", 0) == "size_1"

    def test_generate_name_avoids_globals(self):
        """Names used as globals are avoided."""
        _, scope = build("size(1);")

        assert scope.generate_name("size", 0) == "size_1"

    def test_rename_binding(self):
        """Renaming updates the declaration and every use."""
        program, scope = build("var a = 1; a = a + 1;")

        scope.rename(0, "a", "count")

        names = [path.node["name"] for path in find_paths(program, "Identifier")]
        assert names == ["count", "count", "count"]
        assert scope.lookup(0, "count") is not None
        assert scope.lookup(0, "a") is None

    def test_rename_undeclared_is_noop(self):
        """Renaming a name without a binding changes nothing."""
        program, scope = build("missing(1);")

        scope.rename(0, "missing", "found")

        assert [path.node["name"] for path in find_paths(program, "Identifier")] == ["missing"]
        assert "missing" in scope.globals

    def test_global_writes_tracked(self):
        """Assignments to undeclared names are recorded apart from reads."""
        _, scope = build("e = 1; f(e);")

        assert len(scope.global_writes["e"]) == 1
        assert len(scope.globals["e"]) == 2
        assert "f" not in scope.global_writes

    def test_rename_global(self):
        """Unresolved uses can be renamed together."""
        program, scope = build("__webpack_require__(1); __webpack_require__(2);")

        scope.rename_global("__webpack_require__", "require")

        names = [path.node["name"] for path in find_paths(program, "Identifier")]
        assert names == ["require", "require"]

    def test_merge(self):
        """Merging points every use of one binding at another."""
        program, scope = build("var a = 1; var b = 2; f(b);")

        scope.merge(0, "b", "a")

        call = program["body"][2]["expression"]
        assert call["arguments"][0]["name"] == "a"
        assert len(scope.lookup(0, "a").references) == 1
        assert scope.lookup(0, "b") is None

    def test_add_and_remove_reference(self):
        """Synthesized identifiers can join and leave a binding."""
        _, scope = build("var a = 1;")
        use = identifier("a")

        binding = scope.add_reference(use, 0)
        assert binding is scope.lookup(0, "a")
        assert binding.references == [use]

        scope.remove_reference(use)
        assert binding.references == []
