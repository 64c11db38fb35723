"""Rewrite ``for (;;)`` loops without init and update as ``while`` loops."""

from typing import Optional

from pydantic import BaseModel

from unmangle.core.nodes import boolean_literal, find_paths, while_statement
from unmangle.rules.base import Rule, RuleContext


class UnWhileLoopRule(Rule):
    name = "un-while-loop"
    description = "Convert for loops without init/update to while loops"
    kind = "tree"

    def transform(self, ctx: RuleContext, options: BaseModel) -> Optional[str]:
        paths = find_paths(
            ctx.root,
            "ForStatement",
            lambda node: node.get("init") is None and node.get("update") is None,
        )
        for path in paths:
            loop = path.node
            test = loop.get("test") or boolean_literal(True)
            replacement = while_statement(test, loop["body"])
            for key in ("leadingComments", "trailingComments"):
                if loop.get(key):
                    replacement[key] = loop[key]
            path.replace(replacement)
        if paths:
            ctx.reset_scope()
        return None
