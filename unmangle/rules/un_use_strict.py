"""Remove "use strict" directives."""

from typing import Optional

from pydantic import BaseModel

from unmangle.core.nodes import FUNCTION_TYPES, is_string_literal, iter_subtree, remove_statement
from unmangle.rules.base import Rule, RuleContext


def _prologue_bodies(program: dict) -> list[list]:
    bodies = [program["body"]]
    for node in iter_subtree(program):
        if node["type"] in FUNCTION_TYPES and node["body"]["type"] == "BlockStatement":
            bodies.append(node["body"]["body"])
    return bodies


def _is_use_strict(statement: dict) -> bool:
    if statement["type"] != "ExpressionStatement":
        return False
    expression = statement["expression"]
    return is_string_literal(expression) and expression["value"] == "use strict"


class UnUseStrictRule(Rule):
    """Strip ``"use strict"`` from program and function prologues."""

    name = "un-use-strict"
    description = "Remove 'use strict' directives"
    kind = "tree"

    def transform(self, ctx: RuleContext, options: BaseModel) -> Optional[str]:
        for body in _prologue_bodies(ctx.root):
            index = 0
            # only the leading run of string statements forms the prologue
            while index < len(body) and body[index]["type"] == "ExpressionStatement" \
                    and is_string_literal(body[index]["expression"]):
                if _is_use_strict(body[index]):
                    remove_statement(body, index)
                else:
                    index += 1
        return None
