"""CLI interface for unmangle."""

import asyncio
from pathlib import Path
from typing import Any, Optional

import click
from rich.console import Console
from rich.table import Table
from tqdm import tqdm

from unmangle import __version__
from unmangle.config import Config
from unmangle.core import run_rules, unpack as unpack_bundle
from unmangle.core.diagnostics import Timing
from unmangle.core.exceptions import ParseError, UnrecognizedBundleFormat
from unmangle.core.generator import save_output
from unmangle.core.parser import parse_file
from unmangle.core.scope import ScopeTree
from unmangle.debug import close_debug_logger, debug_log, setup_debug_logger
from unmangle import debug as debug_state
from unmangle.rules import DEFAULT_RULE_ORDER, RULES, RuleSet, build_rules

console = Console()

JS_EXTENSIONS = (".js", ".mjs", ".cjs", ".jsx")


def resolve_input_files(input_paths: list[Path], skip_patterns: list[str]) -> list[tuple[Path, Path]]:
    """Expand input paths into ``(file, path relative to the output directory)`` pairs.

    Directories are searched recursively for JavaScript files; files whose
    path contains one of ``skip_patterns`` are left out.
    """
    files: list[tuple[Path, Path]] = []
    seen: set[Path] = set()
    for input_path in input_paths:
        if input_path.is_file():
            candidates = [(input_path, Path(input_path.name))]
        else:
            candidates = [
                (path, path.relative_to(input_path))
                for path in sorted(input_path.rglob("*"))
                if path.is_file() and path.suffix in JS_EXTENSIONS
            ]
        for path, relative in candidates:
            if any(pattern in path.as_posix() for pattern in skip_patterns):
                continue
            resolved = path.resolve()
            if resolved in seen:
                continue
            seen.add(resolved)
            files.append((path, relative))
    return files


def prepare_output_dir(output_dir: Path, force: bool) -> None:
    """Create ``output_dir``; refuse to write into a non-empty one unless forced."""
    if output_dir.exists() and any(output_dir.iterdir()) and not force:
        console.print(f"[red]Output directory is not empty: {output_dir} (use --force to overwrite)[/red]")
        raise SystemExit(1)
    output_dir.mkdir(parents=True, exist_ok=True)


async def process_file(
    file_path: Path,
    output_path: Path,
    rules: RuleSet,
    params: dict[str, Any],
    semaphore: asyncio.Semaphore,
    timing: Optional[Timing] = None,
) -> dict:
    """Run the rule pipeline over a single file and write the result.

    Args:
        file_path: Input JavaScript file
        output_path: Where the result is written
        rules: Rules to apply
        params: Shared rule parameters
        semaphore: Limits how many files are processed at once
        timing: Collector for perf measurements

    Returns:
        Processing statistics for the file
    """
    async with semaphore:
        try:
            source = await asyncio.to_thread(file_path.read_text, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            console.print(f"[red]Error reading {file_path}: {e}[/red]")
            return {"file": str(file_path), "error": str(e)}

        file_timing = Timing(enabled=timing.enabled if timing else False)
        result = await asyncio.to_thread(run_rules, source, file_path, rules, params, file_timing)
        if timing is not None:
            timing.merge(file_timing)

        await asyncio.to_thread(save_output, result.code, output_path, True, True)

    stats = {
        "file": str(file_path),
        "output": str(output_path),
        "warnings": len(result.warnings),
        "errors": len(result.errors),
    }
    if result.failed:
        stats["error"] = result.errors[0].message if result.errors else "failed"
    debug_log("info", f"Processed {file_path}", stats)
    return stats


async def process_paths(
    files: list[tuple[Path, Path]],
    output_dir: Path,
    rules: RuleSet,
    params: dict[str, Any],
    concurrency: int,
    timing: Optional[Timing] = None,
) -> list[dict]:
    """Process many files concurrently.

    Args:
        files: ``(input file, relative output path)`` pairs
        output_dir: Output root directory
        rules: Rules to apply to every file
        params: Shared rule parameters
        concurrency: Maximum number of files processed at once
        timing: Collector for perf measurements

    Returns:
        List of processing statistics, in input order
    """
    semaphore = asyncio.Semaphore(concurrency)
    tasks = [
        asyncio.ensure_future(process_file(path, output_dir / relative, rules, params, semaphore, timing))
        for path, relative in files
    ]
    with tqdm(total=len(tasks), desc="Unminifying", unit="file", disable=len(tasks) < 2) as progress:
        for finished in asyncio.as_completed(tasks):
            await finished
            progress.update(1)
    return [task.result() for task in tasks]


def print_summary(results: list[dict]) -> None:
    table = Table(title="Processing Summary")
    table.add_column("File")
    table.add_column("Output")
    table.add_column("Warnings")
    table.add_column("Status")

    for r in results:
        status = "✓" if "error" not in r else "✗"
        table.add_row(
            r.get("file", "unknown"),
            r.get("output", "-"),
            str(r.get("warnings", 0)),
            status,
        )

    console.print(table)


def print_timing(timing: Timing) -> None:
    """Print the time spent per rule and per file."""
    table = Table(title="Time per rule")
    table.add_column("Step")
    table.add_column("Time (ms)", justify="right")
    for key, total in timing.totals_by_key().items():
        table.add_row(key, f"{total:.1f}")
    console.print(table)

    table = Table(title="Time per file")
    table.add_column("File")
    table.add_column("Time (ms)", justify="right")
    for filename, total in timing.totals_by_file().items():
        table.add_row(filename, f"{total:.1f}")
    console.print(table)


def _select_rules(rule_names: Optional[str], config: Config) -> RuleSet:
    names = [name.strip() for name in rule_names.split(",") if name.strip()] if rule_names else config.rules
    try:
        return build_rules(names, format_output=config.format_output)
    except KeyError as e:
        console.print(f"[red]{e.args[0]}[/red]")
        raise SystemExit(1)


def _start_debug(debug: bool, debug_file: Optional[Path], settings: dict) -> None:
    if not debug:
        return
    setup_debug_logger(debug_file)
    console.print(f"[yellow]Debug logging enabled: {debug_state.debug_log_file}[/yellow]")
    debug_log("info", "Debug logging started", settings)


def _finish_debug(debug: bool) -> None:
    if debug:
        console.print(f"\n[yellow]Debug log saved to: {debug_state.debug_log_file}[/yellow]")
        close_debug_logger()


@click.group()
@click.version_option(version=__version__)
def main():
    """Unmangle - recover readable JavaScript from minified code and bundles."""
    pass


@main.command()
@click.argument("input_paths", nargs=-1, required=True, type=click.Path(exists=True, path_type=Path))
@click.option("-o", "--output", "output_dir", type=click.Path(path_type=Path), help="Output directory")
@click.option("-f", "--force", is_flag=True, help="Overwrite a non-empty output directory")
@click.option("--rules", "rule_names", help="Comma separated rule names to run, in order")
@click.option("--format/--no-format", "format_output", default=None, help="Beautify the output")
@click.option("--concurrency", type=click.IntRange(min=1), help="Number of files processed at once")
@click.option("--pragma", help="Element factory name used by compiled JSX")
@click.option("--pragma-frag", help="Fragment name used by compiled JSX")
@click.option("--perf", is_flag=True, help="Report time spent per rule and file")
@click.option("--debug", is_flag=True, help="Enable debug logging to file")
@click.option("--debug-file", type=click.Path(path_type=Path), help="Debug log file path (default: unmangle_debug_TIMESTAMP.log)")
def unminify(
    input_paths: tuple[Path, ...],
    output_dir: Optional[Path],
    force: bool,
    rule_names: Optional[str],
    format_output: Optional[bool],
    concurrency: Optional[int],
    pragma: Optional[str],
    pragma_frag: Optional[str],
    perf: bool,
    debug: bool,
    debug_file: Optional[Path],
):
    """Run the unminify rules over JavaScript files.

    INPUT_PATHS can be JavaScript files or directories containing JS files.
    """
    # Only override .env values if CLI args are explicitly provided
    config_kwargs: dict[str, Any] = {}
    if output_dir is not None:
        config_kwargs["output_dir"] = output_dir
    if force:
        config_kwargs["force"] = True
    if format_output is not None:
        config_kwargs["format_output"] = format_output
    if concurrency is not None:
        config_kwargs["concurrency"] = concurrency
    if pragma:
        config_kwargs["jsx_pragma"] = pragma
    if pragma_frag:
        config_kwargs["jsx_pragma_frag"] = pragma_frag
    if perf:
        config_kwargs["perf"] = True
    if debug_file:
        config_kwargs["debug_log_file"] = debug_file

    config = Config(**config_kwargs)
    _start_debug(debug, config.debug_log_file, {
        "input_paths": [str(path) for path in input_paths],
        "output_dir": str(config.output_dir),
        "rules": rule_names or config.rules,
        "concurrency": config.concurrency,
    })

    rules = _select_rules(rule_names, config)
    files = resolve_input_files(list(input_paths), config.skip_patterns)
    if not files:
        console.print("[yellow]No JavaScript files found[/yellow]")
        _finish_debug(debug)
        return
    console.print(f"[blue]Found {len(files)} JavaScript files[/blue]")
    prepare_output_dir(config.output_dir, config.force)

    timing = Timing(enabled=config.perf)

    async def run():
        return await process_paths(
            files, config.output_dir, rules, config.rule_params(), config.concurrency, timing
        )

    results = asyncio.run(run())
    print_summary(results)
    if config.perf:
        print_timing(timing)
    debug_log("info", "Processing complete", {"results": results})
    _finish_debug(debug)

    if any("error" in r for r in results):
        raise SystemExit(1)


@main.command()
@click.argument("input_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("-o", "--output", "output_dir", type=click.Path(path_type=Path), help="Output directory")
@click.option("-f", "--force", is_flag=True, help="Overwrite a non-empty output directory")
@click.option("--unminify/--no-unminify", "run_unminify", default=True, help="Run the unminify rules on each module")
@click.option("--format/--no-format", "format_output", default=None, help="Beautify the output")
@click.option("--debug", is_flag=True, help="Enable debug logging to file")
@click.option("--debug-file", type=click.Path(path_type=Path), help="Debug log file path")
def unpack(
    input_path: Path,
    output_dir: Optional[Path],
    force: bool,
    run_unminify: bool,
    format_output: Optional[bool],
    debug: bool,
    debug_file: Optional[Path],
):
    """Split a webpack or browserify bundle into module files."""
    config_kwargs: dict[str, Any] = {}
    if output_dir is not None:
        config_kwargs["output_dir"] = output_dir
    if force:
        config_kwargs["force"] = True
    if format_output is not None:
        config_kwargs["format_output"] = format_output
    config = Config(**config_kwargs)
    _start_debug(debug, debug_file, {"input_path": str(input_path), "output_dir": str(config.output_dir)})

    source = input_path.read_text(encoding="utf-8")
    try:
        result = unpack_bundle(source)
    except UnrecognizedBundleFormat as e:
        console.print(f"[red]{e.message}[/red]")
        debug_log("error", "Unpack failed", {"error": str(e), "details": e.details})
        _finish_debug(debug)
        raise SystemExit(1)

    prepare_output_dir(config.output_dir, config.force)
    rules = _select_rules(None, config) if run_unminify else None
    params = {**config.rule_params(), "moduleMapping": result.module_id_mapping}

    failed = 0
    for module in tqdm(result.modules, desc="Writing modules", unit="module", disable=len(result.modules) < 2):
        filename = result.filename_for(module)
        output_path = config.output_dir / filename
        code = module.code
        if rules is not None:
            run = run_rules(code, Path(filename), rules, params)
            code = run.code
            failed += run.failed
        save_output(code, output_path, quiet=True)

    debug_log("info", "Unpacked bundle", {
        "bundler": result.bundler,
        "modules": [str(module.id) for module in result.modules],
        "mapping": {str(key): value for key, value in result.module_id_mapping.items()},
    })
    console.print(f"[green]Unpacked {len(result.modules)} modules ({result.bundler}) to: {config.output_dir}[/green]")
    if failed:
        console.print(f"[yellow]{failed} modules could not be fully unminified[/yellow]")
    _finish_debug(debug)


@main.command()
@click.argument("input_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def analyze(input_path: Path):
    """Show the scopes and bindings of a JavaScript file."""
    try:
        tree = parse_file(input_path)
    except ParseError as e:
        console.print(f"[red]Parse error: {e}[/red]")
        raise SystemExit(1)
    scope_tree = ScopeTree(tree.program)

    console.print(f"[blue]File:[/blue] {input_path}")
    console.print(f"[blue]Source type:[/blue] {tree.source_type}")
    console.print(f"[blue]Total scopes:[/blue] {len(scope_tree.scopes)}")
    if scope_tree.globals:
        console.print(f"[blue]Globals:[/blue] {', '.join(sorted(scope_tree.globals))}")

    for scope in scope_tree.scopes.values():
        start = tree.position_of(scope.node)
        location = f"line {start.row + 1}" if start else "synthetic"
        console.print(f"\n[green]Scope {scope.scope_id}[/green] ({scope.kind}, {location})")
        for binding in scope.bindings.values():
            console.print(
                f"  - {binding.name} ({binding.kind}, {len(binding.references)} references"
                f"{', reassigned' if binding.violations else ''})"
            )


@main.command(name="rules")
def list_rules():
    """List the available rules in their default order."""
    table = Table(title="Rules")
    table.add_column("Name")
    table.add_column("Kind")
    table.add_column("Default")
    table.add_column("Description")
    ordered = DEFAULT_RULE_ORDER + [name for name in RULES if name not in DEFAULT_RULE_ORDER]
    for name in ordered:
        rule = RULES[name]
        table.add_row(name, rule.kind, "✓" if name in DEFAULT_RULE_ORDER else "", rule.description)
    console.print(table)


if __name__ == "__main__":
    main()
