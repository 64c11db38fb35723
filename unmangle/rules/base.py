"""Base rule interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Optional, Union

from pydantic import BaseModel, ConfigDict

from unmangle.core.diagnostics import Diagnostic, offset_to_line_column
from unmangle.core.scope import ScopeTree


@dataclass
class RuleContext:
    """State handed to every rule of one file's run."""
    file_path: Optional[Path] = None
    params: dict[str, Any] = field(default_factory=dict)
    root: Optional[dict] = None
    source: str = ""
    diagnostics: list[Diagnostic] = field(default_factory=list)
    rule_name: Optional[str] = None
    _scope: Optional[ScopeTree] = field(default=None, repr=False)

    @property
    def filename(self) -> str:
        return self.file_path.name if self.file_path else "<input>"

    @property
    def scope(self) -> ScopeTree:
        """Scope analysis of ``root``, rebuilt on first use after it went stale."""
        if self.root is None:
            raise ValueError("No program tree to analyze")
        if self._scope is None or self._scope.stale or self._scope.program is not self.root:
            self._scope = ScopeTree(self.root)
        return self._scope

    def reset_scope(self) -> None:
        self._scope = None

    def report(self, message: str, level: str = "warning", node: Optional[dict] = None) -> Diagnostic:
        """Attach a diagnostic for the current rule to this file's result."""
        line = column = None
        if node is not None and node.get("range") and self.source:
            line, column = offset_to_line_column(self.source, node["range"][0])
        diagnostic = Diagnostic(
            level=level,
            message=message,
            rule=self.rule_name,
            line=line,
            column=column,
        )
        self.diagnostics.append(diagnostic)
        return diagnostic


class Rule(ABC):
    """A single rewrite step.

    Tree rules edit ``ctx.root`` in place; text rules receive the printed
    code as ``ctx.source`` and return the new text (or None to keep it).
    """

    name: str = "base_rule"
    description: str = "Base rule class"
    kind: str = "tree"  # tree or text

    class Options(BaseModel):
        model_config = ConfigDict(extra="ignore", populate_by_name=True)

    @abstractmethod
    def transform(self, ctx: RuleContext, options: BaseModel) -> Optional[str]:
        """Apply the rule.

        Args:
            ctx: Context for the file being processed
            options: Validated ``Options`` built from the run parameters

        Returns:
            New source for text rules, None otherwise
        """
        pass

    def parse_options(self, params: Optional[dict[str, Any]]) -> BaseModel:
        return self.Options.model_validate(params or {})

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


class RuleSet:
    """An ordered group of rules that runs as one unit."""

    def __init__(self, rules: Optional[Iterable[Union[Rule, "RuleSet"]]] = None):
        self.rules: list[Union[Rule, RuleSet]] = list(rules or [])

    def add_rule(self, rule: Union[Rule, "RuleSet"]) -> "RuleSet":
        """Append a rule (or nested set).

        Args:
            rule: Rule to add

        Returns:
            Self for chaining
        """
        self.rules.append(rule)
        return self

    def flatten(self) -> list[Rule]:
        flat: list[Rule] = []
        for rule in self.rules:
            if isinstance(rule, RuleSet):
                flat.extend(rule.flatten())
            else:
                flat.append(rule)
        return flat

    def __iter__(self):
        return iter(self.flatten())

    def __len__(self) -> int:
        return len(self.flatten())

    def __or__(self, other: Union[Rule, "RuleSet"]) -> "RuleSet":
        """Combine two rule sets, keeping order."""
        other_rules = other.rules if isinstance(other, RuleSet) else [other]
        return RuleSet(self.rules + list(other_rules))


def flatten_rules(rules: Iterable[Union[Rule, RuleSet]]) -> list[Rule]:
    return RuleSet(rules).flatten()
