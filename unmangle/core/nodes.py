"""ESTree node helpers: builders, predicates, traversal and comment handling.

Nodes are plain dictionaries in ESTree shape (``{"type": "Identifier",
"name": "a"}``). Everything that walks or edits the tree goes through the
helpers here so rules never have to know how children are laid out.
"""

import copy
import re
from typing import Any, Callable, Iterator, Optional

IDENTIFIER_RE = re.compile(r"^[A-Za-z_$][\w$]*$")
PURE_ANNOTATION_RE = re.compile(r"^\s*[#@]__PURE__\s*$")

# Keys that never hold child nodes
NON_CHILD_KEYS = frozenset({
    "type", "range", "loc", "leadingComments", "trailingComments",
    "regex", "raw", "synthetic",
})

RESERVED_WORDS = frozenset({
    "break", "case", "catch", "class", "const", "continue", "debugger", "default",
    "delete", "do", "else", "enum", "export", "extends", "false", "finally", "for",
    "function", "if", "import", "in", "instanceof", "new", "null", "return", "super",
    "switch", "this", "throw", "true", "try", "typeof", "var", "void", "while", "with",
    "yield", "let", "static", "implements", "interface", "package", "private",
    "protected", "public", "await", "arguments", "eval", "undefined", "NaN", "Infinity",
})

STATEMENT_LIST_PARENTS = frozenset({"Program", "BlockStatement", "SwitchCase", "StaticBlock"})

FUNCTION_TYPES = frozenset({"FunctionDeclaration", "FunctionExpression", "ArrowFunctionExpression"})

PATTERN_TYPES = frozenset({"ObjectPattern", "ArrayPattern", "AssignmentPattern", "RestElement"})

JSX_CHILD_TYPES = frozenset({
    "JSXElement", "JSXFragment", "JSXText", "JSXExpressionContainer", "JSXSpreadChild",
})

LOOP_TYPES = frozenset({
    "ForStatement", "ForInStatement", "ForOfStatement", "WhileStatement", "DoWhileStatement",
})


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------

def is_node(value: Any, node_type: Optional[str] = None) -> bool:
    if not isinstance(value, dict) or "type" not in value:
        return False
    return node_type is None or value["type"] == node_type


def is_identifier(node: Any, name: Optional[str] = None) -> bool:
    return is_node(node, "Identifier") and (name is None or node["name"] == name)


def is_literal(node: Any) -> bool:
    return is_node(node, "Literal")


def is_string_literal(node: Any) -> bool:
    return is_literal(node) and isinstance(node.get("value"), str)


def is_numeric_literal(node: Any) -> bool:
    if not is_literal(node):
        return False
    value = node.get("value")
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_boolean_literal(node: Any) -> bool:
    return is_literal(node) and isinstance(node.get("value"), bool)


def is_null(node: Any) -> bool:
    return is_literal(node) and node.get("value") is None and "regex" not in node and node.get("raw", "null") == "null"


def is_true(node: Any) -> bool:
    return is_literal(node) and node.get("value") is True


def is_undefined(node: Any) -> bool:
    """``undefined`` or ``void <number>``."""
    if is_identifier(node, "undefined"):
        return True
    return (
        is_node(node, "UnaryExpression")
        and node["operator"] == "void"
        and is_numeric_literal(node["argument"])
    )


def is_primitive_literal(node: Any) -> bool:
    return is_literal(node) and "regex" not in node


def is_identifier_name(name: str) -> bool:
    """Whether ``name`` may appear as a bare property key (reserved words allowed)."""
    return bool(IDENTIFIER_RE.match(name))


def is_member_of(node: Any, object_name: Optional[str] = None, property_name: Optional[str] = None) -> bool:
    """Match ``object.property`` with identifier object and non-computed identifier property."""
    if not is_node(node, "MemberExpression") or node.get("computed"):
        return False
    if not is_identifier(node["object"], object_name):
        return False
    return is_identifier(node["property"], property_name)


def static_property_name(member: dict) -> Optional[str]:
    """Name read by ``obj.name`` or ``obj["name"]``, else None."""
    prop = member["property"]
    if not member.get("computed") and is_identifier(prop):
        return prop["name"]
    if member.get("computed") and is_string_literal(prop):
        return prop["value"]
    return None


def property_key_name(prop: dict) -> Optional[str]:
    """Static key of an object property or pattern property."""
    key = prop.get("key")
    if prop.get("computed"):
        return key["value"] if is_string_literal(key) else None
    if is_identifier(key):
        return key["name"]
    if is_literal(key) and key.get("value") is not None:
        return str(key["value"])
    return None


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------

def identifier(name: str) -> dict:
    return {"type": "Identifier", "name": name}


def literal(value: Any, raw: Optional[str] = None) -> dict:
    node = {"type": "Literal", "value": value}
    if raw is not None:
        node["raw"] = raw
    return node


def string_literal(value: str) -> dict:
    return literal(value)


def boolean_literal(value: bool) -> dict:
    return literal(value, "true" if value else "false")


def object_property(key: dict, value: dict, computed: bool = False, shorthand: bool = False) -> dict:
    return {
        "type": "Property",
        "key": key,
        "computed": computed,
        "value": value,
        "kind": "init",
        "method": False,
        "shorthand": shorthand,
    }


def object_expression(properties: list) -> dict:
    return {"type": "ObjectExpression", "properties": properties}


def object_pattern(properties: list) -> dict:
    return {"type": "ObjectPattern", "properties": properties}


def array_pattern(elements: list) -> dict:
    return {"type": "ArrayPattern", "elements": elements}


def spread_element(argument: dict) -> dict:
    return {"type": "SpreadElement", "argument": argument}


def variable_declarator(id_node: dict, init: Optional[dict]) -> dict:
    return {"type": "VariableDeclarator", "id": id_node, "init": init}


def variable_declaration(kind: str, declarations: list) -> dict:
    return {"type": "VariableDeclaration", "declarations": declarations, "kind": kind}


def expression_statement(expression: dict) -> dict:
    return {"type": "ExpressionStatement", "expression": expression}


def block_statement(body: list) -> dict:
    return {"type": "BlockStatement", "body": body}


def return_statement(argument: Optional[dict]) -> dict:
    return {"type": "ReturnStatement", "argument": argument}


def while_statement(test: dict, body: dict) -> dict:
    return {"type": "WhileStatement", "test": test, "body": body}


def program(body: list, source_type: str = "script") -> dict:
    return {"type": "Program", "body": body, "sourceType": source_type}


def import_specifier(imported: str, local: str) -> dict:
    return {"type": "ImportSpecifier", "local": identifier(local), "imported": identifier(imported)}


def import_declaration(specifiers: list, source: dict) -> dict:
    return {"type": "ImportDeclaration", "specifiers": specifiers, "source": source}


def jsx_identifier(name: str) -> dict:
    return {"type": "JSXIdentifier", "name": name}


def jsx_member_expression(obj: dict, prop: dict) -> dict:
    return {"type": "JSXMemberExpression", "object": obj, "property": prop}


def jsx_spread_attribute(argument: dict) -> dict:
    return {"type": "JSXSpreadAttribute", "argument": argument}


def jsx_expression_container(expression: dict) -> dict:
    return {"type": "JSXExpressionContainer", "expression": expression}


def jsx_spread_child(expression: dict) -> dict:
    return {"type": "JSXSpreadChild", "expression": expression}


def jsx_text(value: str) -> dict:
    return {"type": "JSXText", "value": value, "raw": value}


def jsx_line_break() -> dict:
    """Placeholder child that makes the printer put each child on its own line."""
    return {"type": "JSXText", "value": "\n", "raw": "\n", "synthetic": True}


def jsx_element(name: dict, attributes: list, children: list) -> dict:
    self_closing = not children
    return {
        "type": "JSXElement",
        "openingElement": {
            "type": "JSXOpeningElement",
            "name": name,
            "selfClosing": self_closing,
            "attributes": attributes,
        },
        "children": children,
        "closingElement": None if self_closing else {
            "type": "JSXClosingElement",
            "name": copy.deepcopy(name),
        },
    }


def jsx_fragment(children: list) -> dict:
    return {
        "type": "JSXFragment",
        "openingFragment": {"type": "JSXOpeningFragment"},
        "children": children,
        "closingFragment": {"type": "JSXClosingFragment"},
    }


# ---------------------------------------------------------------------------
# Traversal
# ---------------------------------------------------------------------------

def iter_child_slots(node: dict) -> Iterator[tuple[str, Optional[int], dict]]:
    """Yield ``(key, index, child)`` for every direct child node in field order."""
    for key, value in node.items():
        if key in NON_CHILD_KEYS:
            continue
        if isinstance(value, dict):
            if "type" in value:
                yield key, None, value
        elif isinstance(value, list):
            for index, item in enumerate(value):
                if isinstance(item, dict) and "type" in item:
                    yield key, index, item


def iter_subtree(root: dict) -> Iterator[dict]:
    """Pre-order iteration over every node below and including ``root``."""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        children = [child for _, _, child in iter_child_slots(node)]
        stack.extend(reversed(children))


class NodePath:
    """A node together with the way it hangs off its parent.

    Mutations locate the node by identity at mutation time, so a path stays
    usable after siblings were inserted or removed.
    """

    __slots__ = ("node", "parent_path", "key", "index")

    def __init__(
        self,
        node: dict,
        parent_path: Optional["NodePath"] = None,
        key: Optional[str] = None,
        index: Optional[int] = None,
    ):
        self.node = node
        self.parent_path = parent_path
        self.key = key
        self.index = index

    def __repr__(self) -> str:
        return f"NodePath({self.node.get('type')}, key={self.key!r}, index={self.index!r})"

    @property
    def parent(self) -> Optional[dict]:
        return self.parent_path.node if self.parent_path else None

    @property
    def type(self) -> str:
        return self.node["type"]

    def container(self) -> Any:
        if self.parent_path is None:
            return None
        return self.parent_path.node.get(self.key)

    def in_statement_list(self) -> bool:
        parent = self.parent
        return (
            parent is not None
            and parent["type"] in STATEMENT_LIST_PARENTS
            and isinstance(self.container(), list)
        )

    def _locate(self) -> tuple[Any, Any]:
        """Return ``(container, slot)`` currently holding this node."""
        if self.parent_path is None:
            raise ValueError("Cannot mutate the root path")
        parent = self.parent_path.node
        holder = parent.get(self.key)
        if isinstance(holder, list):
            for position, item in enumerate(holder):
                if item is self.node:
                    return holder, position
        elif holder is self.node:
            return parent, self.key
        # the node moved below a new wrapper, look for it under the parent
        for candidate in iter_subtree(parent):
            for key, index, child in iter_child_slots(candidate):
                if child is self.node:
                    return (candidate[key], index) if index is not None else (candidate, key)
        raise ValueError(f"{self.node.get('type')} is no longer attached to its parent")

    def replace(self, new_node: dict) -> None:
        holder, slot = self._locate()
        holder[slot] = new_node
        self.node = new_node

    def remove(self) -> None:
        holder, slot = self._locate()
        if isinstance(holder, list):
            del holder[slot]
        else:
            holder[slot] = None

    def insert_before(self, *nodes: dict) -> None:
        holder, slot = self._locate()
        if not isinstance(holder, list):
            raise ValueError("insert_before needs a node inside a list")
        holder[slot:slot] = list(nodes)

    def insert_after(self, *nodes: dict) -> None:
        holder, slot = self._locate()
        if not isinstance(holder, list):
            raise ValueError("insert_after needs a node inside a list")
        holder[slot + 1:slot + 1] = list(nodes)


def walk(root: dict, parent_path: Optional[NodePath] = None) -> Iterator[NodePath]:
    """Pre-order traversal yielding a NodePath for every node."""
    stack = [NodePath(root, parent_path)]
    while stack:
        path = stack.pop()
        yield path
        children = [
            NodePath(child, path, key, index)
            for key, index, child in iter_child_slots(path.node)
        ]
        stack.extend(reversed(children))


def find_paths(root: dict, node_type: str, predicate: Optional[Callable[[dict], bool]] = None) -> list[NodePath]:
    """Collect every path of ``node_type`` (in document order) matching ``predicate``."""
    return [
        path for path in walk(root)
        if path.node["type"] == node_type and (predicate is None or predicate(path.node))
    ]


def statement_lists(root: dict) -> list[list]:
    """Every statement list below ``root`` in document order."""
    lists = []
    for node in iter_subtree(root):
        node_type = node["type"]
        if node_type in ("Program", "BlockStatement", "StaticBlock"):
            lists.append(node["body"])
        elif node_type == "SwitchCase":
            lists.append(node["consequent"])
    return lists


def traverse(root: dict, visitors: dict[str, Callable[[NodePath], None]]) -> None:
    """Call ``visitors[node_type](path)`` for every matching node.

    Paths are collected before any visitor runs, so visitors may replace or
    remove the node they were given.
    """
    paths = [path for path in walk(root) if path.node["type"] in visitors]
    for path in paths:
        visitors[path.node["type"]](path)


def contains(root: dict, predicate: Callable[[dict], bool]) -> bool:
    return any(predicate(node) for node in iter_subtree(root))


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------

def get_comments(node: dict) -> list[dict]:
    return list(node.get("leadingComments") or []) + list(node.get("trailingComments") or [])


def take_comments(node: dict) -> list[dict]:
    """Detach and return every comment attached to ``node``."""
    comments = get_comments(node)
    node.pop("leadingComments", None)
    node.pop("trailingComments", None)
    return comments


def merge_comments(node: dict, comments: Optional[list[dict]]) -> None:
    """Prepend ``comments`` to the leading comments of ``node``."""
    if not comments:
        return
    node["leadingComments"] = list(comments) + list(node.get("leadingComments") or [])


def remove_pure_annotation(node: dict) -> None:
    """Strip ``#__PURE__`` / ``@__PURE__`` annotations from ``node``."""
    for key in ("leadingComments", "trailingComments"):
        comments = node.get(key)
        if not comments:
            continue
        kept = [comment for comment in comments if not PURE_ANNOTATION_RE.match(comment.get("value", ""))]
        if kept:
            node[key] = kept
        else:
            node.pop(key)


def remove_statement(body: list, index: int) -> dict:
    """Delete ``body[index]`` and hand its comments to a neighbour.

    Comments go in front of the following statement, or after the previous
    one when the removed statement was last.
    """
    removed = body.pop(index)
    comments = take_comments(removed)
    if comments:
        if index < len(body):
            merge_comments(body[index], comments)
        elif index > 0:
            previous = body[index - 1]
            previous["trailingComments"] = list(previous.get("trailingComments") or []) + comments
    return removed
