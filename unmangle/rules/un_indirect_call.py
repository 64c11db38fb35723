"""Turn ``(0, obj.method)(...)`` calls back into direct calls.

Bundlers emit the sequence form so ``this`` is not bound to the module
object. When ``obj`` comes from an import or a ``require`` call the method
is imported (or destructured) by name and called directly.
"""

from dataclasses import dataclass, field
from typing import Optional

from pydantic import BaseModel

from unmangle.core.nodes import (
    find_paths,
    identifier,
    import_declaration,
    import_specifier,
    is_identifier,
    is_identifier_name,
    is_literal,
    object_pattern,
    object_property,
    property_key_name,
    static_property_name,
    statement_lists,
    variable_declaration,
    variable_declarator,
)
from unmangle.core.scope import Binding, ScopeTree
from unmangle.rules.base import Rule, RuleContext


@dataclass
class _Origin:
    """Where the object of an indirect call was bound."""
    kind: str  # import or require
    binding: Binding
    statement: dict
    body: list


@dataclass
class _Pair:
    origin: _Origin
    method: str
    calls: list[tuple[dict, dict]] = field(default_factory=list)  # (call, object identifier)


def _indirect_callee(callee: dict) -> Optional[tuple[dict, str]]:
    """``(object identifier, method)`` of ``(0, obj.method)``."""
    if callee["type"] != "SequenceExpression":
        return None
    expressions = callee["expressions"]
    if len(expressions) < 2 or not all(is_literal(item) for item in expressions[:-1]):
        return None
    member = expressions[-1]
    if member["type"] != "MemberExpression" or not is_identifier(member["object"]):
        return None
    method = static_property_name(member)
    if method is None or not is_identifier_name(method):
        return None
    return member["object"], method


def _is_require_call(node: Optional[dict]) -> bool:
    return (
        node is not None
        and node["type"] == "CallExpression"
        and is_identifier(node["callee"], "require")
        and len(node["arguments"]) == 1
        and is_literal(node["arguments"][0])
    )


class UnIndirectCallRule(Rule):
    name = "un-indirect-call"
    description = "Convert (0, obj.method)() calls into direct calls"
    kind = "tree"

    def transform(self, ctx: RuleContext, options: BaseModel) -> Optional[str]:
        scope = ctx.scope
        pairs: dict[tuple[int, str], _Pair] = {}
        for path in find_paths(ctx.root, "CallExpression"):
            match = _indirect_callee(path.node["callee"])
            if match is None:
                continue
            obj, method = match
            binding = scope.binding_of(obj)
            if binding is None:
                continue
            pair_key = (id(binding), method)
            if pair_key not in pairs:
                origin = self._find_origin(ctx, binding)
                if origin is None:
                    continue
                pairs[pair_key] = _Pair(origin=origin, method=method)
            pairs[pair_key].calls.append((path.node, obj))

        touched_imports: list[_Origin] = []
        for pair in pairs.values():
            if pair.origin.kind == "import":
                local = self._import_local(scope, pair)
                if all(origin.statement is not pair.origin.statement for origin in touched_imports):
                    touched_imports.append(pair.origin)
            elif self._calls_in_reach(scope, pair):
                local = self._require_local(scope, pair)
            else:
                continue
            self._rewrite_calls(scope, pair, local)

        for origin in touched_imports:
            self._tidy_import(ctx, scope, origin)
        return None

    # -- origins --------------------------------------------------------

    def _find_origin(self, ctx: RuleContext, binding: Binding) -> Optional[_Origin]:
        node = binding.node
        if node is None:
            return None
        if node["type"] in ("ImportDefaultSpecifier", "ImportNamespaceSpecifier"):
            for statement in ctx.root["body"]:
                if statement["type"] == "ImportDeclaration" and any(
                    specifier is node for specifier in statement.get("specifiers") or []
                ):
                    return _Origin("import", binding, statement, ctx.root["body"])
            return None
        if node["type"] == "VariableDeclarator" and _is_require_call(node.get("init")) and binding.constant:
            for body in statement_lists(ctx.root):
                for statement in body:
                    if statement["type"] == "VariableDeclaration" and any(
                        declarator is node for declarator in statement["declarations"]
                    ):
                        return _Origin("require", binding, statement, body)
        return None

    # -- imports ----------------------------------------------------------

    def _import_local(self, scope: ScopeTree, pair: _Pair) -> str:
        declaration = pair.origin.statement
        for specifier in declaration["specifiers"]:
            if specifier["type"] == "ImportSpecifier" and specifier["imported"]["name"] == pair.method:
                return specifier["local"]["name"]
        local = scope.generate_name(pair.method, 0)
        specifier = import_specifier(pair.method, local)
        declaration["specifiers"].append(specifier)
        scope.declare(0, specifier["local"], "module", specifier)
        return local

    def _drop_unused_defaults(self, scope: ScopeTree, declaration: dict) -> list[dict]:
        kept = []
        for specifier in declaration["specifiers"]:
            if specifier["type"] in ("ImportDefaultSpecifier", "ImportNamespaceSpecifier"):
                binding = scope.binding_of(specifier["local"])
                if binding is not None and not binding.references and not binding.violations:
                    scope.remove_binding(binding)
                    continue
            kept.append(specifier)
        return kept

    def _tidy_import(self, ctx: RuleContext, scope: ScopeTree, origin: _Origin) -> None:
        """Drop unused default/namespace specifiers and keep the import valid.

        Other imports of the same source that are left without any used
        specifier are removed too.
        """
        declaration = origin.statement
        source = declaration["source"].get("value")
        for other in list(origin.body):
            if other is declaration or other["type"] != "ImportDeclaration" or not other.get("specifiers"):
                continue
            if other["source"].get("value") != source:
                continue
            if any(s["type"] == "ImportSpecifier" for s in other["specifiers"]):
                continue
            other["specifiers"] = self._drop_unused_defaults(scope, other)
            if not other["specifiers"]:
                del origin.body[next(i for i, statement in enumerate(origin.body) if statement is other)]

        kept = self._drop_unused_defaults(scope, declaration)
        declaration["specifiers"] = kept

        namespace = [s for s in kept if s["type"] == "ImportNamespaceSpecifier"]
        named = [s for s in kept if s["type"] == "ImportSpecifier"]
        if namespace and named:
            # `import * as ns, { a }` is not valid syntax
            declaration["specifiers"] = [s for s in kept if s["type"] != "ImportSpecifier"]
            body = origin.body
            position = next(i for i, statement in enumerate(body) if statement is declaration)
            body.insert(position + 1, import_declaration(named, dict(declaration["source"])))
        elif not kept:
            body = origin.body
            position = next(i for i, statement in enumerate(body) if statement is declaration)
            del body[position]

    # -- requires ---------------------------------------------------------

    def _destructuring_after(self, scope: ScopeTree, origin: _Origin) -> Optional[dict]:
        body = origin.body
        position = next(i for i, statement in enumerate(body) if statement is origin.statement)
        if position + 1 >= len(body):
            return None
        following = body[position + 1]
        if following["type"] != "VariableDeclaration":
            return None
        for declarator in following["declarations"]:
            init = declarator.get("init")
            if declarator["id"]["type"] == "ObjectPattern" and is_identifier(init) \
                    and scope.binding_of(init) is origin.binding:
                return declarator
        return None

    def _calls_in_reach(self, scope: ScopeTree, pair: _Pair) -> bool:
        """Whether a declaration next to the require is visible from every call."""
        origin = pair.origin
        scope_id = scope.scope_for(origin.statement, origin.binding.scope_id)
        for call, _ in pair.calls:
            call_scope = scope.scope_for(call, 0)
            if all(ancestor.scope_id != scope_id for ancestor in scope.ancestors(call_scope)):
                return False
        return True

    def _require_local(self, scope: ScopeTree, pair: _Pair) -> str:
        origin = pair.origin
        scope_id = scope.scope_for(origin.statement, origin.binding.scope_id)
        declarator = self._destructuring_after(scope, origin)
        if declarator is not None:
            for prop in declarator["id"]["properties"]:
                if prop["type"] == "Property" and property_key_name(prop) == pair.method \
                        and is_identifier(prop["value"]):
                    return prop["value"]["name"]
        else:
            source = identifier(origin.binding.name)
            declarator = variable_declarator(object_pattern([]), source)
            body = origin.body
            position = next(i for i, statement in enumerate(body) if statement is origin.statement)
            body.insert(position + 1, variable_declaration("const", [declarator]))
            scope.set_scope(source, scope_id)
            scope.add_reference(source, scope_id, declarator, "init")

        local = scope.generate_name(pair.method, scope_id)
        value = identifier(local)
        declarator["id"]["properties"].append(
            object_property(identifier(pair.method), value, shorthand=local == pair.method)
        )
        scope.declare(scope_id, value, "const", declarator)
        return local

    # -- call sites -------------------------------------------------------

    def _rewrite_calls(self, scope: ScopeTree, pair: _Pair, local: str) -> None:
        for call, obj in pair.calls:
            callee = identifier(local)
            call["callee"] = callee
            scope.remove_reference(obj)
            call_scope = scope.scope_for(call, 0)
            scope.set_scope(callee, call_scope)
            scope.add_reference(callee, call_scope, call, "callee")
