"""Diagnostics, code frames and timing records."""

import time
from collections import defaultdict
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator, Optional


@dataclass
class Diagnostic:
    """A problem attached to one file's result."""
    level: str  # error, warning, info
    message: str
    rule: Optional[str] = None
    line: Optional[int] = None
    column: Optional[int] = None
    code_frame: Optional[str] = None

    def __str__(self) -> str:
        location = ""
        if self.line is not None:
            location = f"{self.line}"
            if self.column is not None:
                location += f":{self.column}"
            location += ": "
        prefix = f"[{self.rule}] " if self.rule else ""
        return f"{location}{prefix}{self.level}: {self.message}"


def offset_to_line_column(source: str, offset: int) -> tuple[int, int]:
    """Convert a character offset into a 1-based (line, column) pair."""
    offset = max(0, min(offset, len(source)))
    line = source.count("\n", 0, offset) + 1
    line_start = source.rfind("\n", 0, offset) + 1
    return line, offset - line_start + 1


def format_code_frame(source: str, line: int, column: Optional[int] = None, radius: int = 2) -> str:
    """Render the lines around ``line`` with a caret under ``column``.

    Args:
        source: Full source text
        line: 1-based line number of the error
        column: 1-based column of the error
        radius: Number of lines shown on either side

    Returns:
        Multi-line string ready to print
    """
    lines = source.split("\n")
    if not lines or line < 1:
        return ""

    output = []
    first = max(1, line - radius)
    last = min(len(lines), line + radius)
    for line_no in range(first, last + 1):
        marker = ">" if line_no == line else " "
        prefix = f"{marker} {line_no:5d} | "
        output.append(prefix + lines[line_no - 1])
        if line_no == line and column is not None:
            output.append(" " * (len(prefix) - 2) + "| " + " " * max(column - 1, 0) + "^")
    return "\n".join(output)


@dataclass
class TimingStat:
    """A single timing measurement."""
    filename: str
    key: str
    time_ms: float


@dataclass
class Timing:
    """Collects per-file, per-step timing measurements."""
    enabled: bool = True
    collected: list[TimingStat] = field(default_factory=list)

    @contextmanager
    def measure(self, filename: str, key: str) -> Iterator[None]:
        """Time the enclosed block and record it under (filename, key)."""
        if not self.enabled:
            yield
            return
        start = time.perf_counter()
        try:
            yield
        finally:
            elapsed = (time.perf_counter() - start) * 1000
            self.collected.append(TimingStat(filename, key, elapsed))

    def merge(self, other: "Timing") -> None:
        self.collected.extend(other.collected)

    def totals_by_key(self) -> dict[str, float]:
        totals: dict[str, float] = defaultdict(float)
        for stat in self.collected:
            totals[stat.key] += stat.time_ms
        return dict(sorted(totals.items(), key=lambda item: item[1], reverse=True))

    def totals_by_file(self) -> dict[str, float]:
        totals: dict[str, float] = defaultdict(float)
        for stat in self.collected:
            totals[stat.filename] += stat.time_ms
        return dict(sorted(totals.items(), key=lambda item: item[1], reverse=True))
