"""Tests for the un-jsx rule."""

from conftest import squash


class TestClassicRuntime:
    """Tests for ``React.createElement`` calls."""

    def test_empty_element(self, apply_rules):
        """An element without props or children self-closes."""
        result = apply_rules('React.createElement("div", null);', "un-jsx")

        assert result.code == "<div />;\n"

    def test_props_and_text(self, apply_rules):
        """String props become attributes and a lone text child stays inline."""
        result = apply_rules('React.createElement("div", { className: "box" }, "Hello");', "un-jsx")

        assert result.code == '<div className="box">Hello</div>;\n'

    def test_expression_props(self, apply_rules):
        """Non-string props are wrapped in containers and ``true`` is bare."""
        result = apply_rules('React.createElement("input", { value: v, disabled: true });', "un-jsx")

        assert result.code == "<input value={v} disabled />;\n"

    def test_children_on_own_lines(self, apply_rules):
        """Several children are laid out one per line."""
        result = apply_rules('React.createElement("ul", null, a, b);', "un-jsx")

        assert result.code == "<ul>\n  {a}\n  {b}\n</ul>;\n"

    def test_nested_elements(self, apply_rules):
        """Nested calls become nested elements."""
        code = 'React.createElement("p", null, React.createElement("b", null, "x"));'
        result = apply_rules(code, "un-jsx")

        assert squash(result.code) == "<p> <b>x</b> </p>;"

    def test_fragment(self, apply_rules):
        """``React.Fragment`` without props becomes ``<>``."""
        result = apply_rules('React.createElement(React.Fragment, null, "a");', "un-jsx")

        assert result.code == "<>a</>;\n"

    def test_spread_props(self, apply_rules):
        """Non-object props become a spread attribute."""
        result = apply_rules('React.createElement("div", props);', "un-jsx")

        assert result.code == "<div {...props} />;\n"

    def test_host_object_untouched(self, apply_rules):
        """``document.createElement`` is not a JSX factory."""
        code = 'document.createElement("div", {});'
        result = apply_rules(code, "un-jsx")

        assert result.code == code + "\n"

    def test_lowercase_component_renamed(self, apply_rules):
        """A lowercase component binding is renamed to PascalCase."""
        code = "const button = () => null;\nReact.createElement(button, null);"
        result = apply_rules(code, "un-jsx")

        assert "const Button = () => null;" in result.code
        assert "<Button />;" in result.code

    def test_dynamic_type_gets_component_binding(self, apply_rules):
        """A computed element type is bound to a local first."""
        code = "function f(t) { return React.createElement(t.a[0], null); }"
        result = apply_rules(code, "un-jsx")

        compact = squash(result.code)
        assert "const Component = t.a[0];" in compact
        assert "return <Component />;" in compact

    def test_pragma_option(self, apply_rules):
        """A custom pragma replaces the default names."""
        result = apply_rules('h("div", null);\nReact.createElement("span", null);', "un-jsx", params={"pragma": "h"})

        assert "<div />;" in result.code
        assert "React.createElement" in result.code


class TestAutomaticRuntime:
    """Tests for ``jsx``/``jsxs`` calls."""

    def test_children_and_key(self, apply_rules):
        """The children prop becomes children and the key argument an attribute."""
        result = apply_rules('jsx(Button, { children: "Hello" }, "k");', "un-jsx")

        assert result.code == '<Button key="k">Hello</Button>;\n'

    def test_jsxs_array_children(self, apply_rules):
        """An array children prop yields one child per element."""
        code = 'jsxs("ul", { children: [jsx("li", {}), jsx("li", {})] });'
        result = apply_rules(code, "un-jsx")

        assert result.code == "<ul><li /><li /></ul>;\n"

    def test_dev_arguments_dropped(self, apply_rules):
        """Development-only trailing arguments are ignored."""
        result = apply_rules('jsxDEV("a", {}, void 0, false, { fileName: "x" }, this);', "un-jsx")

        assert result.code == "<a />;\n"


class TestJsxDetails:
    """Tests for naming, attribute and annotation handling."""

    def test_display_name_renames_component(self, apply_rules):
        """A short binding with a displayName takes that name."""
        code = (
            'var s = React.createElement("div", null);\n'
            's.displayName = "Test";\n'
            "var Bar = React.createElement(s, null);"
        )
        result = apply_rules(code, "un-jsx")

        assert "var Test = <div />;" in result.code
        assert 'Test.displayName = "Test";' in result.code
        assert "var Bar = <Test />;" in result.code

    def test_numeric_key_becomes_spread(self, apply_rules):
        """Keys that cannot be attribute names are spread from a one-property object."""
        result = apply_rules('React.createElement("p", { 1: "a" });', "un-jsx")

        assert squash(result.code) == '<p {...{ 1: "a" }} />;'

    def test_computed_key_becomes_spread(self, apply_rules):
        """Computed keys are spread as well."""
        result = apply_rules('React.createElement("pre", { ["__proto__"]: null });', "un-jsx")

        assert squash(result.code) == '<pre {...{ ["__proto__"]: null }} />;'

    def test_method_becomes_function_attribute(self, apply_rules):
        """A shorthand method turns into a function expression value."""
        result = apply_rules('React.createElement("button", { onClick() { go(); } });', "un-jsx")

        compact = squash(result.code)
        assert compact.startswith("<button onClick={function")
        assert "go();" in compact
        assert "onClick()" not in compact

    def test_pure_annotation_removed(self, apply_rules):
        """``#__PURE__`` comments on converted calls are dropped."""
        code = 'var x = /*#__PURE__*/React.createElement("div", null);\n/*#__PURE__*/React.createElement("p", null);'
        result = apply_rules(code, "un-jsx")

        assert "PURE" not in result.code
        assert "var x = <div />;" in result.code
        assert "<p />;" in result.code
