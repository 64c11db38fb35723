"""Rebuild JSX from compiled element factory calls.

Handles the classic runtime (``React.createElement(type, props, ...children)``),
the automatic runtime (``jsx(type, { children }, key)``) and Preact's ``h``.
Calls are converted bottom-up so nested elements become JSX children.
"""

import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from unmangle.core.exceptions import UnsupportedConstruct
from unmangle.core.nodes import (
    JSX_CHILD_TYPES,
    LOOP_TYPES,
    PATTERN_TYPES,
    NodePath,
    block_statement,
    contains,
    find_paths,
    identifier,
    is_boolean_literal,
    is_identifier,
    is_member_of,
    is_null,
    is_string_literal,
    is_true,
    is_undefined,
    jsx_element,
    jsx_expression_container,
    jsx_fragment,
    jsx_identifier,
    jsx_line_break,
    jsx_member_expression,
    jsx_spread_attribute,
    jsx_spread_child,
    jsx_text,
    object_expression,
    object_property,
    remove_pure_annotation,
    return_statement,
    take_comments,
    variable_declaration,
    variable_declarator,
)
from unmangle.core.scope import ScopeTree, pascal_case
from unmangle.rules.base import Rule, RuleContext

DEFAULT_PRAGMAS = ["createElement", "jsx", "jsxs", "_jsx", "_jsxs", "jsxDEV", "jsxsDEV", "h"]
AUTOMATIC_PRAGMAS = frozenset({"jsx", "jsxs", "_jsx", "_jsxs", "jsxDEV", "jsxsDEV"})
DEFAULT_FRAGMENTS = ["Fragment"]
DEFAULT_HOST_OBJECTS = ["document"]

ATTRIBUTE_NAME_RE = re.compile(r"^[A-Za-z_$][\w$-]*(:[\w$-]+)?$")
ENTITY_RE = re.compile(r"&(#\d+|#x[0-9a-fA-F]+|[A-Za-z][A-Za-z0-9]*);")
TEXT_NEEDS_ESCAPE_RE = re.compile(r"[{}<>\r\n]")
LOWERCASE_START_RE = re.compile(r"^[a-z]")

# Parents whose single statement slot cannot hold a declaration directly
_STATEMENT_SLOT_PARENTS = LOOP_TYPES | {"IfStatement", "LabeledStatement", "WithStatement"}


def _narrow(name: Optional[str], default: list[str]) -> list[str]:
    """``React.createElement`` matches on ``createElement``."""
    if not name:
        return list(default)
    return [name.rsplit(".", 1)[-1]]


def _jsx_name(name: str) -> dict:
    if ":" in name:
        namespace, local = name.split(":", 1)
        return {
            "type": "JSXNamespacedName",
            "namespace": jsx_identifier(namespace),
            "name": jsx_identifier(local),
        }
    return jsx_identifier(name)


def _can_be_attribute_string(node: dict) -> bool:
    raw = node.get("raw") or ""
    value = node["value"]
    return "\\" not in raw and '"' not in value and not ENTITY_RE.search(value)


class JsxOptions(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    pragma: Optional[str] = None
    pragma_frag: Optional[str] = Field(None, alias="pragmaFrag")
    host_objects: list[str] = Field(default_factory=lambda: list(DEFAULT_HOST_OBJECTS), alias="hostObjects")


class UnJsxRule(Rule):
    """Convert element factory calls back into JSX elements."""

    name = "un-jsx"
    description = "Convert createElement/jsx calls to JSX"
    kind = "tree"

    Options = JsxOptions

    def transform(self, ctx: RuleContext, options: JsxOptions) -> Optional[str]:
        JsxConverter(ctx, options).run()
        return None


class JsxConverter:
    """Per-file state of one un-jsx run."""

    def __init__(self, ctx: RuleContext, options: JsxOptions):
        self.ctx = ctx
        self.pragmas = _narrow(options.pragma, DEFAULT_PRAGMAS)
        self.fragments = _narrow(options.pragma_frag, DEFAULT_FRAGMENTS)
        self.host_objects = set(options.host_objects)
        self.converted_arrows: dict[int, dict] = {}

    def run(self) -> None:
        ctx = self.ctx
        scope = ctx.scope
        self.rename_from_display_name(scope)
        self.rename_lowercase_components(scope)

        paths = find_paths(ctx.root, "CallExpression", lambda node: self.get_pragma(node["callee"]) is not None)
        # bottom-up, so children are already JSX when their parent is converted
        for path in reversed(paths):
            try:
                element = self.to_jsx(scope, path)
            except UnsupportedConstruct as e:
                ctx.report(str(e), node=path.node)
                continue
            if element is None:
                continue
            call = path.node
            parent = path.parent
            if parent is not None and parent["type"] == "ExpressionStatement":
                remove_pure_annotation(parent)
            remove_pure_annotation(call)
            comments = take_comments(call)
            if comments:
                element["leadingComments"] = comments
            path.replace(element)

    # -- pragma matching --------------------------------------------------

    def get_pragma(self, callee: dict) -> Optional[str]:
        if is_identifier(callee):
            return callee["name"] if callee["name"] in self.pragmas else None
        if callee["type"] == "MemberExpression" and not callee.get("computed"):
            obj = callee["object"]
            prop = callee["property"]
            if not is_identifier(prop) or prop["name"] not in self.pragmas:
                return None
            if is_identifier(obj) and obj["name"] not in self.host_objects:
                return prop["name"]
        return None

    def _contains_pragma_call(self, node: dict) -> bool:
        return contains(
            node,
            lambda child: child["type"] == "CallExpression" and self.get_pragma(child["callee"]) is not None,
        )

    # -- name legalization ------------------------------------------------

    def rename_from_display_name(self, scope: ScopeTree) -> None:
        """``s.displayName = "Test"`` renames a short component binding ``s`` to ``Test``."""
        for path in find_paths(self.ctx.root, "AssignmentExpression"):
            left = path.node["left"]
            right = path.node["right"]
            if not is_member_of(left, property_name="displayName") or not is_string_literal(right):
                continue
            target = left["object"]
            if len(target["name"]) > 2:
                continue
            binding = scope.binding_of(target)
            if binding is None or binding.node is None or binding.node["type"] != "VariableDeclarator":
                continue
            init = binding.node.get("init")
            if init is None or not self._contains_pragma_call(init):
                continue
            scope.rename_binding(binding, scope.generate_name(right["value"], binding.scope_id))

    def rename_lowercase_components(self, scope: ScopeTree) -> None:
        """A declared lowercase identifier used as an element type gets a PascalCase name."""
        for path in find_paths(self.ctx.root, "CallExpression"):
            call = path.node
            if self.get_pragma(call["callee"]) is None or not call["arguments"]:
                continue
            element_type = call["arguments"][0]
            if not is_identifier(element_type) or not LOWERCASE_START_RE.match(element_type["name"]):
                continue
            binding = scope.binding_of(element_type)
            if binding is None:
                continue
            scope.rename_binding(binding, scope.generate_name(pascal_case(binding.name), binding.scope_id))

    # -- conversion -------------------------------------------------------

    def to_jsx(self, scope: ScopeTree, path: NodePath) -> Optional[dict]:
        call = path.node
        pragma = self.get_pragma(call["callee"])
        arguments = call["arguments"]
        if pragma is None or len(arguments) < 2:
            return None
        automatic = pragma in AUTOMATIC_PRAGMAS
        element_type, props, *extra = arguments

        if self.capitalization_invalid(element_type):
            return None
        tag = self.to_tag(element_type)
        if tag is None:
            if element_type["type"] == "SpreadElement":
                return None
            tag = self.declare_component(scope, path, element_type)

        attributes = self.to_attributes(props)
        children_attribute = next(
            (
                attribute for attribute in attributes
                if attribute["type"] == "JSXAttribute"
                and attribute["name"]["type"] == "JSXIdentifier"
                and attribute["name"]["name"] == "children"
            ),
            None,
        )

        if children_attribute is not None or automatic:
            if extra:
                key = extra[0]
                if key["type"] == "SpreadElement":
                    return None
                if not is_undefined(key):
                    key_props = object_expression([object_property(identifier("key"), key)])
                    attributes[0:0] = self.to_attributes(key_props)
                # remaining arguments are development-only metadata
            children = []
            if children_attribute is not None:
                attributes.remove(children_attribute)
                children = self.children_from_attribute(children_attribute)
        else:
            children = self.layout_children([
                child for child in (self.to_child(argument) for argument in extra) if child is not None
            ])

        if not attributes and self.is_fragment(tag):
            return jsx_fragment(children)
        return jsx_element(tag, attributes, children)

    def capitalization_invalid(self, node: dict) -> bool:
        if is_string_literal(node):
            return not LOWERCASE_START_RE.match(node["value"])
        if is_identifier(node):
            return bool(LOWERCASE_START_RE.match(node["name"]))
        return False

    def to_tag(self, node: dict) -> Optional[dict]:
        if is_string_literal(node):
            return _jsx_name(node["value"]) if ATTRIBUTE_NAME_RE.match(node["value"]) else None
        if is_identifier(node):
            return jsx_identifier(node["name"])
        if node["type"] == "MemberExpression":
            return self._member_tag(node)
        return None

    def _member_tag(self, node: dict) -> Optional[dict]:
        node_type = node["type"]
        if node_type == "Identifier":
            return jsx_identifier(node["name"])
        if node_type == "ThisExpression":
            return jsx_identifier("this")
        if node_type == "MemberExpression" and not node.get("computed") and is_identifier(node["property"]):
            obj = self._member_tag(node["object"])
            if obj is None:
                return None
            return jsx_member_expression(obj, jsx_identifier(node["property"]["name"]))
        return None

    def is_fragment(self, tag: dict) -> bool:
        if tag["type"] == "JSXIdentifier":
            return tag["name"] in self.fragments
        if tag["type"] == "JSXMemberExpression":
            return tag["property"]["name"] in self.fragments
        return False

    # -- dynamic tags -----------------------------------------------------

    def declare_component(self, scope: ScopeTree, path: NodePath, element_type: dict) -> dict:
        """Bind a dynamic element type to ``const Component = ...`` before its statement."""
        scope_id = scope.scope_for(path.node, 0)
        name = scope.generate_name("Component", scope_id)
        local = identifier(name)
        declarator = variable_declarator(local, element_type)
        declaration = variable_declaration("const", [declarator])
        self.insert_declaration(path, declaration)
        scope.declare(scope_id, local, "const", declarator)
        scope.mark_stale()
        return jsx_identifier(name)

    def insert_declaration(self, path: NodePath, declaration: dict) -> None:
        current: Optional[NodePath] = path
        while current is not None:
            parent = current.parent
            if current.in_statement_list():
                current.insert_before(declaration)
                return
            if parent is None:
                break
            if parent["type"] == "ArrowFunctionExpression" and current.key == "body":
                converted = self.converted_arrows.get(id(parent))
                if converted is not None:
                    body = parent["body"]["body"]
                    body.insert(body.index(converted), declaration)
                    return
                if parent["body"]["type"] != "BlockStatement":
                    returned = return_statement(parent["body"])
                    parent["body"] = block_statement([declaration, returned])
                    parent["expression"] = False
                    self.converted_arrows[id(parent)] = returned
                    return
            if parent["type"] in _STATEMENT_SLOT_PARENTS and current.key in ("body", "consequent", "alternate") \
                    and current.node["type"] != "BlockStatement":
                current.replace(block_statement([declaration, current.node]))
                return
            current = current.parent_path
        raise UnsupportedConstruct("No statement to attach the component binding to")

    # -- attributes -------------------------------------------------------

    def to_attributes(self, props: dict) -> list[dict]:
        if is_null(props):
            return []
        if props["type"] == "CallExpression" and self._is_spread_helper(props["callee"]):
            attributes = []
            for argument in props["arguments"]:
                attributes.extend(self.to_attributes(argument))
            return attributes
        if props["type"] == "ObjectExpression":
            attributes = []
            for prop in props["properties"]:
                attribute = self.to_attribute(prop)
                if attribute is not None:
                    attributes.append(attribute)
            return attributes
        if props["type"] == "SpreadElement":
            return self.to_attributes(props["argument"])
        return [jsx_spread_attribute(props)]

    def _is_spread_helper(self, callee: dict) -> bool:
        # React.__spread predates object spread support; Object.assign is its standard twin
        return is_member_of(callee, property_name="__spread") or is_member_of(callee, "Object", "assign")

    def to_attribute(self, prop: dict) -> Optional[dict]:
        if prop["type"] == "SpreadElement":
            return jsx_spread_attribute(prop["argument"])

        kind = prop.get("kind", "init")
        if kind in ("get", "set"):
            self.ctx.report(f"Unsupported {kind}ter attribute dropped", node=prop)
            return None
        value = prop["value"]
        if value["type"] in PATTERN_TYPES:
            self.ctx.report("Unsupported pattern attribute dropped", node=prop)
            return None

        name = self._attribute_name(prop)
        if name is None:
            single = dict(prop)
            single.pop("leadingComments", None)
            single.pop("trailingComments", None)
            return jsx_spread_attribute(object_expression([single]))

        if prop.get("method"):
            attribute_value = jsx_expression_container(value)
        elif is_true(value):
            attribute_value = None
        elif is_string_literal(value) and _can_be_attribute_string(value):
            attribute_value = value
        else:
            attribute_value = jsx_expression_container(value)
        return {"type": "JSXAttribute", "name": _jsx_name(name), "value": attribute_value}

    def _attribute_name(self, prop: dict) -> Optional[str]:
        if prop.get("computed"):
            return None
        key = prop["key"]
        if is_identifier(key):
            return key["name"]
        if is_string_literal(key) and ATTRIBUTE_NAME_RE.match(key["value"]):
            return key["value"]
        return None

    # -- children ---------------------------------------------------------

    def children_from_attribute(self, attribute: dict) -> list[dict]:
        value = attribute.get("value")
        if value is None:
            return []
        if value["type"] == "JSXExpressionContainer" and value["expression"]["type"] == "ArrayExpression":
            children = [self.to_child(element) for element in value["expression"]["elements"] if element is not None]
            return [child for child in children if child is not None]
        child = self.to_child(value)
        return [child] if child is not None else []

    def to_child(self, node: dict) -> Optional[dict]:
        node_type = node["type"]
        if node_type == "JSXExpressionContainer":
            expression = node["expression"]
            if expression["type"] == "JSXEmptyExpression":
                return None
            return self.to_child(expression)
        if node_type in JSX_CHILD_TYPES:
            return node
        if is_undefined(node) or is_boolean_literal(node) or is_null(node) or node_type == "RestElement":
            return None
        if is_string_literal(node):
            text = node["value"]
            if text and not TEXT_NEEDS_ESCAPE_RE.search(text) and text == text.strip() and not ENTITY_RE.search(text):
                return jsx_text(text)
        if node_type == "SpreadElement":
            return jsx_spread_child(node["argument"])
        return jsx_expression_container(node)

    def layout_children(self, children: list[dict]) -> list[dict]:
        """Interleave line-break placeholders so each child prints on its own line."""
        if not children:
            return children
        if len(children) == 1 and children[0]["type"] == "JSXText":
            return children
        laid_out = [jsx_line_break()]
        for child in children:
            laid_out.append(child)
            laid_out.append(jsx_line_break())
        return laid_out
