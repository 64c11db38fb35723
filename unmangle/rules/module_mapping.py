"""Replace numeric module ids in ``require`` calls with file names."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from unmangle.core.nodes import find_paths, is_identifier, is_literal, string_literal
from unmangle.rules.base import Rule, RuleContext


class ModuleMappingRule(Rule):
    """``require(12)`` becomes ``require("./utils.js")`` for mapped ids."""

    name = "module-mapping"
    description = "Replace require ids with module file names"
    kind = "tree"

    class Options(BaseModel):
        model_config = ConfigDict(extra="ignore", populate_by_name=True)

        module_mapping: dict[Any, str] = Field(default_factory=dict, alias="moduleMapping")

    def transform(self, ctx: RuleContext, options: Options) -> Optional[str]:
        mapping = options.module_mapping
        if not mapping:
            return None

        def is_require(node: dict) -> bool:
            arguments = node["arguments"]
            return (
                is_identifier(node["callee"], "require")
                and len(arguments) == 1
                and is_literal(arguments[0])
                and isinstance(arguments[0].get("value"), (str, int, float))
                and not isinstance(arguments[0].get("value"), bool)
            )

        for path in find_paths(ctx.root, "CallExpression", is_require):
            argument = path.node["arguments"][0]
            value = argument["value"]
            target = mapping.get(value)
            if target is None:
                target = mapping.get(str(value))
            if target is None or target == value:
                continue
            replacement = string_literal(target)
            for key in ("leadingComments", "trailingComments"):
                if argument.get(key):
                    replacement[key] = argument[key]
            path.node["arguments"][0] = replacement
        return None
