"""Rule registry for unmangle."""

from typing import Optional

from unmangle.rules.base import Rule, RuleContext, RuleSet
from unmangle.rules.beautify import BeautifyRule
from unmangle.rules.module_mapping import ModuleMappingRule
from unmangle.rules.runtime_helpers import RuntimeHelpersRule
from unmangle.rules.smart_inline import SmartInlineRule
from unmangle.rules.un_indirect_call import UnIndirectCallRule
from unmangle.rules.un_jsx import UnJsxRule
from unmangle.rules.un_undefined import UnUndefinedRule
from unmangle.rules.un_use_strict import UnUseStrictRule
from unmangle.rules.un_while_loop import UnWhileLoopRule

RULES: dict[str, type[Rule]] = {
    rule.name: rule
    for rule in (
        UnUseStrictRule,
        ModuleMappingRule,
        UnUndefinedRule,
        UnWhileLoopRule,
        RuntimeHelpersRule,
        UnIndirectCallRule,
        SmartInlineRule,
        UnJsxRule,
        BeautifyRule,
    )
}

DEFAULT_RULE_ORDER = [
    "un-use-strict",
    "module-mapping",
    "un-undefined",
    "un-while-loop",
    "runtime-helpers",
    "un-indirect-call",
    "smart-inline",
    "un-jsx",
]


def get_rule(name: str) -> Rule:
    """Instantiate a registered rule by name.

    Raises:
        KeyError: If no rule has that name
    """
    try:
        return RULES[name]()
    except KeyError:
        raise KeyError(f"Unknown rule: {name}. Available: {', '.join(RULES)}") from None


def build_rules(names: Optional[list[str]] = None, format_output: bool = False) -> RuleSet:
    """Build the rule set to run.

    Args:
        names: Rule names in the order to run them; defaults to the standard order
        format_output: Append the beautify rule when it is not already selected

    Returns:
        RuleSet ready for ``run_rules``
    """
    selected = list(names) if names else list(DEFAULT_RULE_ORDER)
    if format_output and "beautify" not in selected:
        selected.append("beautify")
    rules = RuleSet()
    for name in selected:
        rules.add_rule(get_rule(name))
    return rules


__all__ = [
    "Rule",
    "RuleContext",
    "RuleSet",
    "RULES",
    "DEFAULT_RULE_ORDER",
    "get_rule",
    "build_rules",
]
