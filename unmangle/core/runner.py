"""Run an ordered list of rules over one file.

The runner keeps the file either as text or as a parsed tree and converts
between the two only when the next rule needs the other form.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Optional, Union

from rich.console import Console

from unmangle.core.diagnostics import Diagnostic, Timing, format_code_frame
from unmangle.core.exceptions import ParseError
from unmangle.core.generator import generate_code
from unmangle.core.parser import parse_javascript
from unmangle.debug import debug_log
from unmangle.rules.base import Rule, RuleContext, RuleSet, flatten_rules

console = Console()


@dataclass
class TreeState:
    """The file is held as a parsed program."""
    program: dict
    parsed_from: str


@dataclass
class TextState:
    """The file is held as source text."""
    text: str


@dataclass
class RunResult:
    """Outcome of running the rules over one file."""
    path: Optional[Path]
    code: str
    diagnostics: list[Diagnostic] = field(default_factory=list)
    timing: Optional[Timing] = None
    failed: bool = False

    @property
    def errors(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.level == "error"]

    @property
    def warnings(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.level == "warning"]


def _parse_diagnostic(error: ParseError, source: str) -> Diagnostic:
    frame = None
    if error.line is not None:
        frame = format_code_frame(source, error.line, error.column)
    return Diagnostic(
        level="error",
        message=f"Parse error: {error.message}",
        line=error.line,
        column=error.column,
        code_frame=frame,
    )


def run_rules(
    source: str,
    file_path: Optional[Path],
    rules: Iterable[Union[Rule, RuleSet]],
    params: Optional[dict[str, Any]] = None,
    timing: Optional[Timing] = None,
) -> RunResult:
    """Apply ``rules`` in order to ``source``.

    Args:
        source: Original file text
        file_path: Path used for messages and timing keys
        rules: Rules or rule sets; nested sets are flattened
        params: Run parameters, validated per rule into its options
        timing: Collector for per-step timings

    Returns:
        RunResult with the final code. When parsing fails the last good
        text is returned; when printing fails the original source is.
    """
    params = params or {}
    timing = timing if timing is not None else Timing(enabled=False)
    ctx = RuleContext(file_path=file_path, params=params, source=source)
    filename = ctx.filename
    state: Union[TextState, TreeState] = TextState(source)
    failed = False

    def print_tree(tree_state: TreeState) -> Optional[str]:
        try:
            with timing.measure(filename, "generate"):
                return generate_code(tree_state.program, tree_state.parsed_from)
        except Exception as e:
            ctx.diagnostics.append(Diagnostic(level="error", message=f"Failed to print program: {e}"))
            console.print(f"[red]{filename}: failed to print program: {e}[/red]")
            debug_log("ERROR", "Print failure", {"file": filename, "error": str(e)})
            return None

    for rule in flatten_rules(rules):
        ctx.rule_name = rule.name

        if rule.kind == "tree":
            if isinstance(state, TextState):
                try:
                    with timing.measure(filename, "parse"):
                        tree = parse_javascript(state.text)
                except ParseError as e:
                    diagnostic = _parse_diagnostic(e, state.text)
                    ctx.diagnostics.append(diagnostic)
                    console.print(f"[red]{filename}: {diagnostic.message}[/red]")
                    if diagnostic.code_frame:
                        console.print(diagnostic.code_frame, markup=False, highlight=False)
                    debug_log("ERROR", "Parse failure", {"file": filename, "error": str(e)})
                    failed = True
                    break
                state = TreeState(program=tree.program, parsed_from=state.text)
                ctx.root = state.program
                ctx.source = state.parsed_from
                ctx.reset_scope()

            try:
                options = rule.parse_options(params)
                with timing.measure(filename, rule.name):
                    rule.transform(ctx, options)
            except Exception as e:
                ctx.report(f"Rule failed: {e}", level="error")
                console.print(f"[red]{filename}: rule {rule.name} failed: {e}[/red]")
                debug_log("ERROR", "Rule failure", {"file": filename, "rule": rule.name, "error": repr(e)})
                # the tree may be half rewritten; fall back to the text it came from
                state = TextState(state.parsed_from)
                failed = True
                break
            debug_log("DEBUG", f"Applied {rule.name}", {"file": filename})
            continue

        if isinstance(state, TreeState):
            printed = print_tree(state)
            if printed is None:
                return RunResult(file_path, source, ctx.diagnostics, timing, failed=True)
            state = TextState(printed)
            ctx.root = None
            ctx.reset_scope()

        ctx.source = state.text
        try:
            options = rule.parse_options(params)
            with timing.measure(filename, rule.name):
                new_text = rule.transform(ctx, options)
        except Exception as e:
            ctx.report(f"Rule failed, output left unchanged: {e}")
            console.print(f"[yellow]{filename}: rule {rule.name} failed: {e}[/yellow]")
            debug_log("WARNING", "Text rule failure", {"file": filename, "rule": rule.name, "error": repr(e)})
            continue
        if new_text is not None:
            state = TextState(new_text)

    ctx.rule_name = None
    if isinstance(state, TreeState):
        printed = print_tree(state)
        if printed is None:
            return RunResult(file_path, source, ctx.diagnostics, timing, failed=True)
        return RunResult(file_path, printed, ctx.diagnostics, timing, failed)

    return RunResult(file_path, state.text, ctx.diagnostics, timing, failed)
