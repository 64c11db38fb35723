"""Tests for the smart-inline rule."""

from conftest import squash


class TestAliasInlining:
    """Tests for temporary alias removal."""

    def test_alias_chain(self, apply_rules):
        """``const t = e; const n = t;`` collapses to one declaration."""
        result = apply_rules("const t = e;\nconst n = t;", "smart-inline")

        assert result.code == "const n = e;\n"

    def test_literal_alias(self, apply_rules):
        """Primitive literal initializers are inlined as well."""
        result = apply_rules("const t = 5;\nconst n = t;\nf(n);", "smart-inline")

        assert squash(result.code) == "const n = 5; f(n);"

    def test_alias_used_twice_kept(self, apply_rules):
        """An alias read more than once stays."""
        result = apply_rules("const t = e;\nconst n = t;\nconst o = t;", "smart-inline")

        assert "const t = e;" in result.code

    def test_var_alias_kept(self, apply_rules):
        """``var`` declarations are not inlined."""
        result = apply_rules("var t = e;\nvar n = t;", "smart-inline")

        assert "var t = e;" in result.code

    def test_written_global_not_inlined(self, apply_rules):
        """An alias of a global that is assigned somewhere stays."""
        result = apply_rules("const t = e;\ne = 2;\nconst n = t;", "smart-inline")

        assert squash(result.code) == "const t = e; e = 2; const n = t;"

    def test_alias_across_functions_kept(self, apply_rules):
        """An alias read inside a nested function stays."""
        code = "const t = e;\nfunction f() { const n = t; return n; }"
        result = apply_rules(code, "smart-inline")

        assert "const t = e;" in result.code


class TestDestructuring:
    """Tests for destructuring reconstruction."""

    def test_object_destructuring(self, apply_rules):
        """Consecutive property reads become one object pattern per object."""
        code = (
            "const t = e.size;\n"
            "const n = e.color;\n"
            "const r = f.size;\n"
            "const o = f.color;\n"
            "console.log(t, n, r, o);"
        )
        result = apply_rules(code, "smart-inline")

        assert squash(result.code) == (
            "const { size, color } = e; "
            "const { size: size_1, color: color_1 } = f; "
            "console.log(size, color, size_1, color_1);"
        )

    def test_array_destructuring(self, apply_rules):
        """Index reads become an array pattern."""
        result = apply_rules("const a = e[0];\nconst b = e[1];\nf(a, b);", "smart-inline")

        assert squash(result.code) == "const [a, b] = e; f(a, b);"

    def test_array_hole(self, apply_rules):
        """Skipped indices leave holes."""
        result = apply_rules("const a = e[0];\nconst b = e[2];\nf(a, b);", "smart-inline")

        assert squash(result.code) == "const [a, , b] = e; f(a, b);"

    def test_single_read_still_destructured(self, apply_rules):
        """One property read is enough to form a pattern."""
        result = apply_rules("const t = props.value;\ng(t);", "smart-inline")

        assert squash(result.code) == "const { value } = props; g(value);"

    def test_duplicate_property(self, apply_rules):
        """Two reads of one property share a single pattern entry."""
        result = apply_rules("const t = e.size;\nconst n = e.size;\nf(t, n);", "smart-inline")

        assert squash(result.code) == "const { size } = e; f(size, size);"

    def test_reassigned_read_not_grouped(self, apply_rules):
        """A declaration that is written later keeps its own read."""
        code = "let a = e.x;\nlet b = e.x;\na = 1;\nconsole.log(b);"
        result = apply_rules(code, "smart-inline")

        assert squash(result.code) == "let a = e.x; let { x } = e; a = 1; console.log(x);"

    def test_quoted_key(self, apply_rules):
        """Keys that are not identifiers stay quoted with a sanitized local."""
        result = apply_rules('const t = e["2d"];\nf(t);', "smart-inline")

        assert squash(result.code) == 'const { "2d": _2d } = e; f(_2d);'

    def test_mixed_name_and_index(self, apply_rules):
        """Named and indexed reads of one object split into two declarations."""
        result = apply_rules("const a = e[0];\nconst t = e.size;\nf(a, t);", "smart-inline")

        assert squash(result.code) == "const [a] = e; const { size } = e; f(a, size);"

    def test_lonely_access_untouched(self, apply_rules):
        """Member reads that are not bound to a variable stay as they are."""
        result = apply_rules("e.size;\nf(e.color);", "smart-inline")

        assert result.code == "e.size;\nf(e.color);\n"

    def test_self_named_read_untouched(self, apply_rules):
        """A read that overwrites its own object is never grouped."""
        result = apply_rules("var e = e.data;", "smart-inline")

        assert result.code == "var e = e.data;\n"

    def test_idempotent(self, apply_rules):
        """Running twice gives the same output."""
        code = "const t = e.size;\nconst n = e.color;\nconsole.log(t, n);"
        first = apply_rules(code, "smart-inline")
        second = apply_rules(first.code, "smart-inline")

        assert second.code == first.code
