"""Lexical scope analysis over ESTree programs.

The tree is built in two passes: the first walks the program once, creating
scopes and declaring every binding (so hoisted names are known up front) while
queueing identifier uses; the second resolves the queued uses against the
finished scope chain.
"""

import re
from dataclasses import dataclass, field
from typing import Iterator, Optional

from unmangle.core.nodes import RESERVED_WORDS, iter_child_slots

_NAME_PARTS_RE = re.compile(r"[^A-Za-z0-9_$]+")

# Scope kinds that receive `var` declarations
_VAR_TARGETS = ("function", "program")


def sanitize_identifier(name: str) -> str:
    """Turn arbitrary text into a usable identifier.

    ``foo-bar`` becomes ``fooBar``, a leading digit or a reserved word gets
    an underscore prefix and an empty result becomes ``_``.
    """
    parts = [part for part in _NAME_PARTS_RE.split(name) if part]
    if not parts:
        return "_"
    result = parts[0] + "".join(part[0].upper() + part[1:] for part in parts[1:])
    if result[0].isdigit() or result in RESERVED_WORDS:
        result = "_" + result
    return result


def pascal_case(name: str) -> str:
    sanitized = sanitize_identifier(name).lstrip("_") or "_"
    return sanitized[0].upper() + sanitized[1:]


def pattern_identifiers(pattern: Optional[dict]) -> list[dict]:
    """Identifiers bound by a declaration target (plain name or destructuring)."""
    found = []
    stack = [pattern]
    while stack:
        node = stack.pop()
        if node is None:
            continue
        node_type = node["type"]
        if node_type == "Identifier":
            found.append(node)
        elif node_type == "ObjectPattern":
            for prop in reversed(node["properties"]):
                stack.append(prop["argument"] if prop["type"] == "RestElement" else prop["value"])
        elif node_type == "ArrayPattern":
            stack.extend(reversed(node["elements"]))
        elif node_type == "AssignmentPattern":
            stack.append(node["left"])
        elif node_type == "RestElement":
            stack.append(node["argument"])
    return found


@dataclass
class Binding:
    """A declared name and every place it is used."""
    name: str
    kind: str  # var, let, const, function, class, param, module, catch, local
    identifier: dict
    node: Optional[dict]
    scope_id: int
    references: list[dict] = field(default_factory=list)
    violations: list[dict] = field(default_factory=list)
    redeclarations: list[dict] = field(default_factory=list)

    @property
    def constant(self) -> bool:
        return not self.violations

    def identifiers(self) -> Iterator[dict]:
        """Every identifier node that spells this binding's name."""
        yield self.identifier
        yield from self.redeclarations
        yield from self.references
        yield from self.violations


@dataclass
class Scope:
    """A lexical scope."""
    scope_id: int
    kind: str  # program, function, named-function, class, block, for, catch, switch
    node: dict
    parent_id: Optional[int] = None
    children: list[int] = field(default_factory=list)
    bindings: dict[str, Binding] = field(default_factory=dict)


class ScopeTree:
    """Scopes, bindings and resolved references for one program.

    Identifiers are tracked by object identity. Rules that move or create
    identifiers keep the tree in sync through ``declare``, ``add_reference``,
    ``remove_reference`` and the rename helpers; rules that restructure the
    program more heavily call ``mark_stale`` so the next user rebuilds.
    """

    def __init__(self, program: dict):
        self.program = program
        self.scopes: dict[int, Scope] = {}
        self.globals: dict[str, list[dict]] = {}
        self.global_writes: dict[str, list[dict]] = {}
        self.parent_of: dict[int, tuple[dict, dict, str]] = {}
        self.stale = False
        self._scope_of: dict[int, tuple[dict, int]] = {}
        self._binding_of: dict[int, tuple[dict, Binding]] = {}
        self._pending: list[tuple[dict, dict, str, int, bool]] = []
        self._build()

    # -- construction ---------------------------------------------------

    def _new_scope(self, kind: str, node: dict, parent_id: Optional[int]) -> int:
        scope_id = len(self.scopes)
        self.scopes[scope_id] = Scope(scope_id=scope_id, kind=kind, node=node, parent_id=parent_id)
        if parent_id is not None:
            self.scopes[parent_id].children.append(scope_id)
        self._scope_of[id(node)] = (node, scope_id)
        return scope_id

    def _var_scope(self, scope_id: int) -> int:
        scope = self.scopes[scope_id]
        while scope.kind not in _VAR_TARGETS and scope.parent_id is not None:
            scope = self.scopes[scope.parent_id]
        return scope.scope_id

    def _declare_pattern(self, pattern: dict, kind: str, node: dict, scope_id: int) -> None:
        for ident in pattern_identifiers(pattern):
            self.declare(scope_id, ident, kind, node)

    def _build(self) -> None:
        root = self._new_scope("program", self.program, None)
        stack: list[tuple[dict, Optional[dict], Optional[str], int, str]] = []
        for key, _, child in iter_child_slots(self.program):
            stack.append((child, self.program, key, root, "normal"))
        stack.reverse()

        while stack:
            node, parent, key, scope_id, mode = stack.pop()
            if id(node) not in self._scope_of:
                self._scope_of[id(node)] = (node, scope_id)
            pushes = self._visit(node, parent, key, scope_id, mode)
            stack.extend(reversed(pushes))

        for ident, parent, key, scope_id, violation in self._pending:
            self.add_reference(ident, scope_id, parent, key, violation=violation)
        self._pending = []

    def _visit(self, node: dict, parent: Optional[dict], key: Optional[str], scope_id: int, mode: str) -> list:
        """Declare what ``node`` introduces and return the children to walk."""
        node_type = node["type"]

        def child(child_node: Optional[dict], child_key: str, child_scope: int = scope_id, child_mode: str = "normal"):
            return [(child_node, node, child_key, child_scope, child_mode)] if child_node else []

        def rest(skip: tuple = (), child_scope: int = scope_id) -> list:
            return [
                (c, node, k, child_scope, "normal")
                for k, _, c in iter_child_slots(node)
                if k not in skip
            ]

        if node_type == "Identifier":
            if mode == "assign":
                self._pending.append((node, parent, key, scope_id, True))
            elif mode == "normal":
                self._pending.append((node, parent, key, scope_id, False))
            return []

        if node_type == "VariableDeclaration":
            kind = node["kind"]
            target = self._var_scope(scope_id) if kind == "var" else scope_id
            pushes = []
            for declarator in node["declarations"]:
                self._declare_pattern(declarator["id"], kind, declarator, target)
                pushes.append((declarator, node, "declarations", scope_id, "normal"))
            return pushes

        if node_type == "VariableDeclarator":
            return child(node["id"], "id", child_mode="declare") + child(node.get("init"), "init")

        if node_type in ("FunctionDeclaration", "FunctionExpression", "ArrowFunctionExpression"):
            outer = scope_id
            if node_type == "FunctionDeclaration" and node.get("id"):
                self.declare(scope_id, node["id"], "function", node)
            elif node_type == "FunctionExpression" and node.get("id"):
                outer = self._new_scope("named-function", node, scope_id)
                self.declare(outer, node["id"], "local", node)
            function_scope = self._new_scope("function", node, outer)
            pushes = []
            for param in node["params"]:
                self._declare_pattern(param, "param", node, function_scope)
                pushes.append((param, node, "params", function_scope, "declare"))
            body = node["body"]
            if body["type"] == "BlockStatement":
                self._scope_of[id(body)] = (body, function_scope)
                pushes.append((body, node, "body", function_scope, "shared"))
            else:
                pushes.append((body, node, "body", function_scope, "normal"))
            return pushes

        if node_type in ("ClassDeclaration", "ClassExpression"):
            class_scope = self._new_scope("class", node, scope_id)
            if node.get("id"):
                if node_type == "ClassDeclaration":
                    self.declare(scope_id, node["id"], "class", node)
                else:
                    self.declare(class_scope, node["id"], "local", node)
            return child(node.get("superClass"), "superClass") + child(node["body"], "body", class_scope)

        if node_type == "BlockStatement" or node_type == "StaticBlock":
            if mode == "shared":
                return rest()
            return rest(child_scope=self._new_scope("block", node, scope_id))

        if node_type in ("ForStatement", "ForInStatement", "ForOfStatement"):
            for_scope = self._new_scope("for", node, scope_id)
            if node_type == "ForStatement":
                return rest(child_scope=for_scope)
            left = node["left"]
            left_mode = "normal" if left["type"] == "VariableDeclaration" else "assign"
            return (
                child(left, "left", for_scope, left_mode)
                + child(node["right"], "right", for_scope)
                + child(node["body"], "body", for_scope)
            )

        if node_type == "CatchClause":
            catch_scope = self._new_scope("catch", node, scope_id)
            pushes = []
            if node.get("param"):
                self._declare_pattern(node["param"], "catch", node, catch_scope)
                pushes += child(node["param"], "param", catch_scope, "declare")
            self._scope_of[id(node["body"])] = (node["body"], catch_scope)
            return pushes + child(node["body"], "body", catch_scope, "shared")

        if node_type == "SwitchStatement":
            switch_scope = self._new_scope("switch", node, scope_id)
            return child(node["discriminant"], "discriminant") + [
                (case, node, "cases", switch_scope, "normal") for case in node["cases"]
            ]

        if node_type == "ImportDeclaration":
            for specifier in node.get("specifiers") or []:
                self.declare(0, specifier["local"], "module", specifier)
            return []

        if node_type == "ExportNamedDeclaration":
            pushes = child(node.get("declaration"), "declaration")
            if node.get("source") is None:
                for specifier in node.get("specifiers") or []:
                    pushes.append((specifier["local"], specifier, "local", scope_id, "normal"))
            return pushes

        if node_type == "ExportAllDeclaration":
            return []

        if node_type == "MemberExpression":
            pushes = child(node["object"], "object")
            if node.get("computed"):
                pushes += child(node["property"], "property")
            return pushes

        if node_type in ("Property", "MethodDefinition", "PropertyDefinition"):
            pushes = child(node["key"], "key") if node.get("computed") else []
            value_mode = mode if mode in ("declare", "assign") else "normal"
            return pushes + child(node.get("value"), "value", child_mode=value_mode)

        if node_type in ("ObjectPattern", "ArrayPattern", "RestElement"):
            inherited = mode if mode in ("declare", "assign") else "assign"
            return [(c, node, k, scope_id, inherited) for k, _, c in iter_child_slots(node)]

        if node_type == "AssignmentPattern":
            inherited = mode if mode in ("declare", "assign") else "assign"
            return child(node["left"], "left", child_mode=inherited) + child(node["right"], "right")

        if node_type == "AssignmentExpression":
            left = node["left"]
            left_mode = "assign" if left["type"] in ("Identifier", "ObjectPattern", "ArrayPattern") else "normal"
            return child(left, "left", child_mode=left_mode) + child(node["right"], "right")

        if node_type == "UpdateExpression":
            argument = node["argument"]
            return child(argument, "argument", child_mode="assign" if argument["type"] == "Identifier" else "normal")

        if node_type == "LabeledStatement":
            return child(node["body"], "body")

        if node_type in ("BreakStatement", "ContinueStatement", "MetaProperty"):
            return []

        if node_type in ("JSXOpeningElement", "JSXClosingElement"):
            self._queue_jsx_name(node["name"], node, scope_id)
            return [(attribute, node, "attributes", scope_id, "normal") for attribute in node.get("attributes") or []]

        if node_type == "JSXAttribute":
            return child(node.get("value"), "value")

        return rest()

    def _queue_jsx_name(self, name: dict, parent: dict, scope_id: int) -> None:
        if name["type"] == "JSXIdentifier":
            if not re.match(r"^[a-z]", name["name"]) and "-" not in name["name"]:
                self._pending.append((name, parent, "name", scope_id, False))
            return
        if name["type"] == "JSXMemberExpression":
            while name["object"]["type"] == "JSXMemberExpression":
                name = name["object"]
            root = name["object"]
            if root["type"] == "JSXIdentifier" and root["name"] != "this":
                self._pending.append((root, name, "object", scope_id, False))

    # -- queries --------------------------------------------------------

    def scope_for(self, node: dict, default: Optional[int] = None) -> Optional[int]:
        """Scope created by ``node``, or the scope it sits in."""
        entry = self._scope_of.get(id(node))
        if entry is None or entry[0] is not node:
            return default
        return entry[1]

    def set_scope(self, node: dict, scope_id: int) -> None:
        self._scope_of[id(node)] = (node, scope_id)

    def ancestors(self, scope_id: int) -> Iterator[Scope]:
        """The scope itself and then each enclosing scope."""
        current: Optional[int] = scope_id
        while current is not None:
            scope = self.scopes[current]
            yield scope
            current = scope.parent_id

    def descendants(self, scope_id: int) -> Iterator[Scope]:
        stack = list(self.scopes[scope_id].children)
        while stack:
            scope = self.scopes[stack.pop()]
            yield scope
            stack.extend(scope.children)

    def function_scope(self, scope_id: int) -> int:
        """Nearest enclosing function (or program) scope."""
        return self._var_scope(scope_id)

    def lookup(self, scope_id: int, name: str) -> Optional[Binding]:
        for scope in self.ancestors(scope_id):
            binding = scope.bindings.get(name)
            if binding is not None:
                return binding
        return None

    def is_declared(self, scope_id: int, name: str) -> bool:
        return self.lookup(scope_id, name) is not None

    def find_declaration(self, scope_id: int, name: str) -> Optional[dict]:
        """The identifier that declares ``name`` as seen from ``scope_id``."""
        binding = self.lookup(scope_id, name)
        return binding.identifier if binding else None

    def find_references(self, scope_id: int, name: str) -> list[dict]:
        binding = self.lookup(scope_id, name)
        if binding is not None:
            return list(binding.references)
        return list(self.globals.get(name, []))

    def binding_of(self, ident: dict) -> Optional[Binding]:
        entry = self._binding_of.get(id(ident))
        if entry is None or entry[0] is not ident:
            return None
        return entry[1]

    def parent_info(self, ident: dict) -> Optional[tuple[dict, str]]:
        """``(parent, key)`` recorded for a referencing identifier."""
        entry = self.parent_of.get(id(ident))
        if entry is None or entry[0] is not ident:
            return None
        return entry[1], entry[2]

    def name_in_use(self, scope_id: int, name: str) -> bool:
        """Whether declaring ``name`` in ``scope_id`` could clash with anything."""
        if name in RESERVED_WORDS or self.globals.get(name):
            return True
        if self.lookup(scope_id, name) is not None:
            return True
        return any(name in scope.bindings for scope in self.descendants(scope_id))

    def generate_name(self, base: str, scope_id: int = 0) -> str:
        """Pick a name derived from ``base`` that is free in ``scope_id``.

        Args:
            base: Preferred name, sanitized before use
            scope_id: Scope the new name will be declared in

        Returns:
            ``base`` itself when free, otherwise ``base_1``, ``base_2``, ...
        """
        base = sanitize_identifier(base)
        candidate = base
        counter = 1
        while self.name_in_use(scope_id, candidate):
            candidate = f"{base}_{counter}"
            counter += 1
        return candidate

    # -- mutation -------------------------------------------------------

    def declare(self, scope_id: int, ident: dict, kind: str, node: Optional[dict] = None) -> Binding:
        """Register ``ident`` as a declaration in ``scope_id``.

        Declaring an existing name records a redeclaration on the existing
        binding instead; a redeclaring ``var`` with an initializer also counts
        as a write.
        """
        scope = self.scopes[scope_id]
        name = ident["name"]
        binding = scope.bindings.get(name)
        if binding is None:
            binding = Binding(name=name, kind=kind, identifier=ident, node=node, scope_id=scope_id)
            scope.bindings[name] = binding
        elif binding.identifier is not ident:
            binding.redeclarations.append(ident)
            if node is not None and node.get("type") == "VariableDeclarator" and node.get("init") is not None:
                binding.violations.append(ident)
        self._binding_of[id(ident)] = (ident, binding)
        return binding

    def add_reference(
        self,
        ident: dict,
        scope_id: int,
        parent: Optional[dict] = None,
        key: Optional[str] = None,
        violation: bool = False,
    ) -> Optional[Binding]:
        """Resolve ``ident`` from ``scope_id`` and record it as a use."""
        if parent is not None:
            self.parent_of[id(ident)] = (ident, parent, key)
        binding = self.lookup(scope_id, ident["name"])
        if binding is None:
            self.globals.setdefault(ident["name"], []).append(ident)
            if violation:
                self.global_writes.setdefault(ident["name"], []).append(ident)
            return None
        (binding.violations if violation else binding.references).append(ident)
        self._binding_of[id(ident)] = (ident, binding)
        return binding

    def remove_reference(self, ident: dict) -> None:
        """Forget a use of ``ident`` (the node is about to leave the tree)."""
        self.parent_of.pop(id(ident), None)
        binding = self.binding_of(ident)
        if binding is not None:
            del self._binding_of[id(ident)]
            for uses in (binding.references, binding.violations):
                for position, use in enumerate(uses):
                    if use is ident:
                        del uses[position]
                        break
            return
        uses = self.globals.get(ident.get("name"), [])
        for position, use in enumerate(uses):
            if use is ident:
                del uses[position]
                break
        if not uses:
            self.globals.pop(ident.get("name"), None)
        writes = self.global_writes.get(ident.get("name"), [])
        for position, write in enumerate(writes):
            if write is ident:
                del writes[position]
                break
        if not writes:
            self.global_writes.pop(ident.get("name"), None)

    def remove_binding(self, binding: Binding) -> None:
        scope = self.scopes[binding.scope_id]
        if scope.bindings.get(binding.name) is binding:
            del scope.bindings[binding.name]
        for ident in (binding.identifier, *binding.redeclarations):
            self._binding_of.pop(id(ident), None)

    def rename_binding(self, binding: Binding, new_name: str) -> None:
        scope = self.scopes[binding.scope_id]
        if scope.bindings.get(binding.name) is binding:
            del scope.bindings[binding.name]
        binding.name = new_name
        scope.bindings[new_name] = binding
        for ident in binding.identifiers():
            ident["name"] = new_name

    def rename(self, scope_id: int, old_name: str, new_name: str) -> None:
        """Rename the binding ``old_name`` visible from ``scope_id``.

        Names without a binding are left alone.
        """
        if old_name == new_name:
            return
        binding = self.lookup(scope_id, old_name)
        if binding is not None:
            self.rename_binding(binding, new_name)

    def rename_global(self, name: str, new_name: str) -> None:
        """Rename every unresolved use of ``name``."""
        uses = self.globals.pop(name, [])
        for ident in uses:
            ident["name"] = new_name
        if uses:
            self.globals.setdefault(new_name, []).extend(uses)
        writes = self.global_writes.pop(name, [])
        if writes:
            self.global_writes.setdefault(new_name, []).extend(writes)

    def merge(self, scope_id: int, name: str, into_name: str) -> None:
        """Point every use of ``name`` at the binding ``into_name`` and drop ``name``.

        The declaration of ``name`` itself is left for the caller to remove.
        """
        source = self.lookup(scope_id, name)
        target = self.lookup(scope_id, into_name)
        if source is None or target is None or source is target:
            return
        for ident in source.references:
            ident["name"] = target.name
            target.references.append(ident)
            self._binding_of[id(ident)] = (ident, target)
        for ident in source.violations:
            ident["name"] = target.name
            target.violations.append(ident)
            self._binding_of[id(ident)] = (ident, target)
        source.references = []
        source.violations = []
        self.remove_binding(source)

    def mark_stale(self) -> None:
        self.stale = True
