"""Beautify rule for code formatting."""

from typing import Optional

import jsbeautifier
from pydantic import BaseModel, ConfigDict, Field

from unmangle.rules.base import Rule, RuleContext


class BeautifyRule(Rule):
    """Format the printed code with js-beautify."""

    name = "beautify"
    description = "Beautify JavaScript code using js-beautify"
    kind = "text"

    class Options(BaseModel):
        model_config = ConfigDict(extra="ignore", populate_by_name=True)

        indent_size: int = Field(2, ge=1, alias="indentSize")

    def transform(self, ctx: RuleContext, options: Options) -> Optional[str]:
        opts = jsbeautifier.default_options()
        opts.indent_size = options.indent_size
        opts.e4x = True
        opts.end_with_newline = True
        formatted = jsbeautifier.beautify(ctx.source, opts)
        if formatted == ctx.source:
            return None
        return formatted
