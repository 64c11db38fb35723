"""Replace ``void 0`` with ``undefined``."""

from typing import Optional

from pydantic import BaseModel

from unmangle.core.nodes import identifier, is_numeric_literal, walk
from unmangle.rules.base import Rule, RuleContext


class UnUndefinedRule(Rule):
    name = "un-undefined"
    description = "Replace 'void 0' with 'undefined'"
    kind = "tree"

    def transform(self, ctx: RuleContext, options: BaseModel) -> Optional[str]:
        scope = ctx.scope
        paths = [
            path for path in walk(ctx.root)
            if path.node["type"] == "UnaryExpression"
            and path.node["operator"] == "void"
            and is_numeric_literal(path.node["argument"])
        ]
        for path in paths:
            scope_id = scope.scope_for(path.node, 0)
            if scope.is_declared(scope_id, "undefined"):
                continue
            replacement = identifier("undefined")
            for key in ("leadingComments", "trailingComments"):
                if path.node.get(key):
                    replacement[key] = path.node[key]
            path.replace(replacement)
            scope.set_scope(replacement, scope_id)
            scope.add_reference(replacement, scope_id, path.parent, path.key)
        return None
