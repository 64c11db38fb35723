"""Inline temporary aliases and rebuild destructuring declarations.

Minifiers flatten ``const { x, y } = e`` into ``const t = e.x; const n = e.y;``
and route values through single-use aliases. This rule reverses both.
"""

from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel

from unmangle.core.nodes import (
    array_pattern,
    identifier,
    is_identifier,
    is_identifier_name,
    is_primitive_literal,
    is_string_literal,
    merge_comments,
    object_pattern,
    object_property,
    remove_statement,
    statement_lists,
    string_literal,
    take_comments,
    variable_declaration,
    variable_declarator,
)
from unmangle.core.scope import ScopeTree
from unmangle.rules.base import Rule, RuleContext

# Largest run of skipped indices an array pattern may contain
ARRAY_HOLE_LIMIT = 2


@dataclass
class _Access:
    """``const local = obj.key`` / ``const local = obj[index]``."""
    statement: dict
    declarator: dict
    key: Optional[str] = None
    index: Optional[int] = None


def _single_declarator(statement: dict) -> Optional[dict]:
    if statement["type"] != "VariableDeclaration" or len(statement["declarations"]) != 1:
        return None
    return statement["declarations"][0]


def _member_access(statement: dict) -> Optional[_Access]:
    declarator = _single_declarator(statement)
    if declarator is None or not is_identifier(declarator["id"]):
        return None
    init = declarator.get("init")
    if init is None or init["type"] != "MemberExpression" or not is_identifier(init["object"]):
        return None
    prop = init["property"]
    if not init.get("computed"):
        if is_identifier(prop):
            return _Access(statement, declarator, key=prop["name"])
        return None
    if is_string_literal(prop):
        return _Access(statement, declarator, key=prop["value"])
    value = prop.get("value") if prop["type"] == "Literal" else None
    if isinstance(value, int) and not isinstance(value, bool) and value >= 0:
        return _Access(statement, declarator, index=value)
    return None


def _reassigned(scope: ScopeTree, access: _Access) -> bool:
    binding = scope.binding_of(access.declarator["id"])
    return binding is not None and bool(binding.violations)


class SmartInlineRule(Rule):
    """Collapse alias chains and group member reads into destructuring."""

    name = "smart-inline"
    description = "Inline temporary variables and reconstruct destructuring"
    kind = "tree"

    def transform(self, ctx: RuleContext, options: BaseModel) -> Optional[str]:
        scope = ctx.scope
        bodies = statement_lists(ctx.root)
        for body in bodies:
            self.inline_aliases(scope, body)
        for body in bodies:
            self.rebuild_destructuring(scope, body)
        for body in bodies:
            self.inline_aliases(scope, body)
        return None

    # -- alias inlining -------------------------------------------------

    def inline_aliases(self, scope: ScopeTree, body: list) -> None:
        index = 0
        while index < len(body):
            if self._inline_alias(scope, body, index):
                continue
            index += 1

    def _inline_alias(self, scope: ScopeTree, body: list, index: int) -> bool:
        statement = body[index]
        declarator = _single_declarator(statement)
        if declarator is None or statement["kind"] not in ("const", "let"):
            return False
        local = declarator["id"]
        init = declarator.get("init")
        if not is_identifier(local) or init is None:
            return False
        if not (is_identifier(init) or is_primitive_literal(init)):
            return False

        binding = scope.binding_of(local)
        if binding is None or binding.violations or binding.redeclarations or len(binding.references) != 1:
            return False
        reference = binding.references[0]
        parent_info = scope.parent_info(reference)
        if parent_info is None:
            return False
        target, key = parent_info
        if target["type"] != "VariableDeclarator" or key != "init" or target.get("init") is not reference:
            return False

        reference_scope = scope.scope_for(reference)
        declaration_scope = scope.scope_for(statement, binding.scope_id)
        if reference_scope is None:
            return False
        if scope.function_scope(reference_scope) != scope.function_scope(declaration_scope):
            return False

        if is_identifier(init):
            source = scope.binding_of(init)
            if scope.lookup(reference_scope, init["name"]) is not source:
                return False
            if source is not None and source.violations:
                return False
            if source is None and scope.global_writes.get(init["name"]):
                return False

        target["init"] = init
        scope.set_scope(init, reference_scope)
        scope.parent_of.pop(id(reference), None)
        if is_identifier(init):
            scope.parent_of[id(init)] = (init, target, "init")
        remove_statement(body, index)
        scope.remove_binding(binding)
        return True

    # -- destructuring ----------------------------------------------------

    def rebuild_destructuring(self, scope: ScopeTree, body: list) -> None:
        index = 0
        while index < len(body):
            group = self._collect_group(scope, body, index)
            if not group:
                index += 1
                continue
            declarations = self._build_declarations(scope, body[index]["kind"], group)
            body[index:index + len(group)] = declarations
            index += len(declarations)

    def _collect_group(self, scope: ScopeTree, body: list, start: int) -> list[_Access]:
        first = _member_access(body[start])
        if first is None:
            return []
        obj = first.declarator["init"]["object"]
        if first.declarator["id"]["name"] == obj["name"]:
            return []
        if _reassigned(scope, first):
            return []
        kind = body[start]["kind"]
        owner = scope.binding_of(obj)

        group = [first]
        last_index = first.index if first.index is not None else -1
        if first.index is not None and first.index > ARRAY_HOLE_LIMIT:
            return []
        for position in range(start + 1, len(body)):
            access = _member_access(body[position])
            if access is None or body[position]["kind"] != kind:
                break
            other = access.declarator["init"]["object"]
            if other["name"] != obj["name"] or scope.binding_of(other) is not owner:
                break
            if access.declarator["id"]["name"] == obj["name"] or _reassigned(scope, access):
                break
            if access.index is not None:
                if access.index <= last_index or access.index - last_index - 1 > ARRAY_HOLE_LIMIT:
                    break
                last_index = access.index
            group.append(access)
        return group

    def _build_declarations(self, scope: ScopeTree, kind: str, group: list[_Access]) -> list[dict]:
        named = [access for access in group if access.key is not None]
        indexed = [access for access in group if access.index is not None]
        comments = []
        for access in group:
            comments.extend(take_comments(access.statement))

        parts = []
        if named:
            parts.append((group.index(named[0]), self._object_declaration(scope, kind, named)))
        if indexed:
            parts.append((group.index(indexed[0]), self._array_declaration(scope, kind, indexed)))
        parts.sort(key=lambda part: part[0])
        declarations = [declaration for _, declaration in parts]

        merge_comments(declarations[0], comments)
        return declarations

    def _reuse_object(self, scope: ScopeTree, accesses: list[_Access], declarator: dict) -> dict:
        """Keep the first object identifier as the new init and drop the others."""
        objects = [access.declarator["init"]["object"] for access in accesses]
        for other in objects[1:]:
            scope.remove_reference(other)
        kept = objects[0]
        scope.parent_of[id(kept)] = (kept, declarator, "init")
        return kept

    def _object_declaration(self, scope: ScopeTree, kind: str, accesses: list[_Access]) -> dict:
        declarator = variable_declarator(object_pattern([]), None)
        properties = []
        locals_by_key: dict[str, str] = {}
        for access in accesses:
            local = access.declarator["id"]
            key = access.key
            binding = scope.binding_of(local)
            scope_id = binding.scope_id if binding else 0
            if key in locals_by_key:
                scope.merge(scope_id, local["name"], locals_by_key[key])
                continue
            if local["name"] != key:
                new_name = scope.generate_name(key, scope_id)
                if binding is not None:
                    scope.rename_binding(binding, new_name)
                else:
                    local["name"] = new_name
            if binding is not None:
                binding.node = declarator
            key_node = identifier(key) if is_identifier_name(key) else string_literal(key)
            shorthand = is_identifier(key_node, local["name"])
            properties.append(object_property(key_node, local, shorthand=shorthand))
            locals_by_key[key] = local["name"]

        declarator["id"]["properties"] = properties
        declarator["init"] = self._reuse_object(scope, accesses, declarator)
        return variable_declaration(kind, [declarator])

    def _array_declaration(self, scope: ScopeTree, kind: str, accesses: list[_Access]) -> dict:
        declarator = variable_declarator(array_pattern([]), None)
        elements: list[Optional[dict]] = []
        last_index = -1
        for access in accesses:
            elements.extend([None] * (access.index - last_index - 1))
            local = access.declarator["id"]
            elements.append(local)
            binding = scope.binding_of(local)
            if binding is not None:
                binding.node = declarator
            last_index = access.index

        declarator["id"]["elements"] = elements
        declarator["init"] = self._reuse_object(scope, accesses, declarator)
        return variable_declaration(kind, [declarator])
