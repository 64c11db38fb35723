"""Undo Babel runtime helpers.

Only the ``extends`` helper is handled: ``_extends({}, a, { b: 1 })`` is
the compiled form of ``{ ...a, b: 1 }``.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from unmangle.core.nodes import (
    find_paths,
    is_identifier,
    is_literal,
    is_string_literal,
    object_expression,
    remove_statement,
    spread_element,
    statement_lists,
)
from unmangle.core.scope import Binding
from unmangle.rules.base import Rule, RuleContext

EXTENDS_SOURCES = ["@babel/runtime/helpers/extends", "@babel/runtime/helpers/esm/extends"]


def _required_source(init: Optional[dict]) -> Optional[str]:
    """Module name of ``require("x")`` or ``_interopRequireDefault(require("x"))``."""
    if init is None or init["type"] != "CallExpression":
        return None
    arguments = init["arguments"]
    if is_identifier(init["callee"], "require"):
        if len(arguments) == 1 and is_string_literal(arguments[0]):
            return arguments[0]["value"]
        return None
    if len(arguments) == 1:
        return _required_source(arguments[0])
    return None


class RuntimeHelpersRule(Rule):
    name = "runtime-helpers"
    description = "Restore object spread from the Babel extends helper"
    kind = "tree"

    class Options(BaseModel):
        model_config = ConfigDict(extra="ignore", populate_by_name=True)

        helper_sources: list[str] = Field(default_factory=lambda: list(EXTENDS_SOURCES), alias="helperSources")

    def _helper_bindings(self, ctx: RuleContext, sources: list[str]) -> list[Binding]:
        scope = ctx.scope
        helpers = []
        for statement in ctx.root["body"]:
            if statement["type"] == "ImportDeclaration" and statement["source"].get("value") in sources:
                for specifier in statement.get("specifiers") or []:
                    if specifier["type"] in ("ImportDefaultSpecifier", "ImportNamespaceSpecifier"):
                        binding = scope.binding_of(specifier["local"])
                        if binding is not None:
                            helpers.append(binding)
            elif statement["type"] == "VariableDeclaration":
                for declarator in statement["declarations"]:
                    if is_identifier(declarator["id"]) and _required_source(declarator.get("init")) in sources:
                        binding = scope.binding_of(declarator["id"])
                        if binding is not None and binding.constant:
                            helpers.append(binding)
        return helpers

    def _helper_object(self, ctx: RuleContext, callee: dict, helpers: list[Binding]) -> Optional[dict]:
        """Identifier naming the helper in ``callee``, if it is a helper call."""
        if callee["type"] == "SequenceExpression":
            expressions = callee["expressions"]
            if not all(is_literal(item) for item in expressions[:-1]):
                return None
            callee = expressions[-1]
        if callee["type"] == "MemberExpression":
            prop = callee["property"]
            if callee.get("computed") or not is_identifier(prop, "default"):
                return None
            callee = callee["object"]
        if not is_identifier(callee):
            return None
        binding = ctx.scope.binding_of(callee)
        return callee if binding is not None and any(binding is helper for helper in helpers) else None

    def transform(self, ctx: RuleContext, options: Options) -> Optional[str]:
        helpers = self._helper_bindings(ctx, options.helper_sources)
        if not helpers:
            return None

        scope = ctx.scope
        for path in reversed(find_paths(ctx.root, "CallExpression")):
            call = path.node
            helper_ref = self._helper_object(ctx, call["callee"], helpers)
            if helper_ref is None:
                continue
            arguments = call["arguments"]
            if not arguments or arguments[0]["type"] != "ObjectExpression":
                continue
            if any(argument["type"] == "SpreadElement" for argument in arguments):
                continue

            properties = list(arguments[0]["properties"])
            for argument in arguments[1:]:
                if argument["type"] == "ObjectExpression":
                    properties.extend(argument["properties"])
                else:
                    properties.append(spread_element(argument))
            replacement = object_expression(properties)
            for key in ("leadingComments", "trailingComments"):
                if call.get(key):
                    replacement[key] = call[key]
            scope.remove_reference(helper_ref)
            path.replace(replacement)

        self._remove_unused(ctx, helpers)
        return None

    def _remove_unused(self, ctx: RuleContext, helpers: list[Binding]) -> None:
        unused = [helper for helper in helpers if not helper.references]
        if not unused:
            return
        scope = ctx.scope
        for body in statement_lists(ctx.root):
            index = 0
            while index < len(body):
                statement = body[index]
                if statement["type"] == "ImportDeclaration":
                    specifiers = statement.get("specifiers") or []
                    kept = [s for s in specifiers if not any(s is h.node for h in unused)]
                    if len(kept) != len(specifiers):
                        if kept:
                            statement["specifiers"] = kept
                        else:
                            remove_statement(body, index)
                            continue
                elif statement["type"] == "VariableDeclaration":
                    declarations = statement["declarations"]
                    kept = [d for d in declarations if not any(d is h.node for h in unused)]
                    if len(kept) != len(declarations):
                        if kept:
                            statement["declarations"] = kept
                        else:
                            remove_statement(body, index)
                            continue
                index += 1
        for helper in unused:
            scope.remove_binding(helper)
