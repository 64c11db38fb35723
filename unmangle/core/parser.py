"""JavaScript parsing into ESTree dictionaries using esprima."""

import bisect
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import esprima
from rich.console import Console

from unmangle.core.exceptions import ParseError
from unmangle.core.nodes import iter_child_slots

console = Console()

PARSE_OPTIONS = {"jsx": True, "range": True, "comment": True}

_MODULE_SYNTAX_RE = re.compile(r"^\s*(import\s*[\w{*'\"]|export\s)", re.MULTILINE)

# esprima-python spells a few ESTree fields differently
_FIELD_ALIASES = {"isAsync": "async"}

_COMMENT_TYPES = {"LineComment": "Line", "BlockComment": "Block"}

# Parents whose list items may own a same-line trailing comment
_LIST_PARENTS = ("Program", "BlockStatement", "SwitchCase", "ObjectExpression", "ObjectPattern")


@dataclass
class Position:
    """Position in source code."""
    row: int
    column: int

    def __lt__(self, other: "Position") -> bool:
        if self.row != other.row:
            return self.row < other.row
        return self.column < other.column

    def __le__(self, other: "Position") -> bool:
        return self == other or self < other


@dataclass
class ProgramTree:
    """A parsed program and the text it came from."""
    program: dict
    source: str
    source_type: str = "script"
    comments: list[dict] = field(default_factory=list)

    def position_of(self, node: dict) -> Optional[Position]:
        """0-based row/column of the start of ``node``, if it came from the source."""
        node_range = node.get("range")
        if not node_range:
            return None
        offset = node_range[0]
        row = self.source.count("\n", 0, offset)
        column = offset - (self.source.rfind("\n", 0, offset) + 1)
        return Position(row=row, column=column)


def _to_estree(value: Any) -> Any:
    """Convert esprima node objects into plain ESTree dictionaries."""
    if value is None or isinstance(value, (str, bool, int, float)):
        return value
    if isinstance(value, (list, tuple)):
        return [_to_estree(item) for item in value]
    if isinstance(value, dict):
        return {key: _to_estree(item) for key, item in value.items()}
    if hasattr(value, "__dict__"):
        converted = {}
        for key, item in vars(value).items():
            if key.startswith("_"):
                continue
            converted[_FIELD_ALIASES.get(key, key)] = _to_estree(item)
        if converted.get("type") == "Literal":
            number = converted.get("value")
            if isinstance(number, float) and number.is_integer() and "regex" not in converted:
                converted["value"] = int(number)
        return converted
    # compiled regular expressions and other host values have no ESTree form
    return None


def _normalize_comment(comment: dict) -> dict:
    comment_type = _COMMENT_TYPES.get(comment.get("type"), comment.get("type"))
    return {"type": comment_type, "value": comment.get("value", ""), "range": comment.get("range")}


def attach_comments(program: dict, comments: list[dict], source: str) -> None:
    """Attach each comment to the node it documents.

    A comment becomes a leading comment of the outermost node that starts
    right after it within the same parent. Line comments that share a line
    with a preceding statement become trailing comments of that statement.
    Anything left over is kept on the program.
    """
    if not comments:
        return

    # (start, -end) puts outer nodes first among nodes starting at the same offset
    by_start: list[tuple[int, int, dict, Optional[dict], bool]] = []
    stack: list[tuple[dict, Optional[dict], bool]] = [(program, None, False)]
    while stack:
        node, parent, in_list = stack.pop()
        node_range = node.get("range")
        if node_range and node is not program:
            by_start.append((node_range[0], -node_range[1], node, parent, in_list))
        for key, index, child in iter_child_slots(node):
            stack.append((child, node, index is not None and node["type"] in _LIST_PARENTS))
    by_start.sort(key=lambda entry: (entry[0], entry[1]))
    starts = [entry[0] for entry in by_start]
    by_end = sorted(by_start, key=lambda entry: (-entry[1], -entry[0]))
    ends = [-entry[1] for entry in by_end]

    def encloses(parent: Optional[dict], start: int, end: int) -> bool:
        if parent is None or parent is program:
            return True
        parent_range = parent.get("range")
        return bool(parent_range) and parent_range[0] <= start and end <= parent_range[1]

    for comment in comments:
        start, end = comment["range"]
        following = None
        position = bisect.bisect_left(starts, end)
        if position < len(by_start):
            candidate = by_start[position]
            if encloses(candidate[3], start, end):
                following = candidate

        preceding = None
        position = bisect.bisect_right(ends, start) - 1
        if position >= 0:
            candidate = by_end[position]
            if encloses(candidate[3], start, end):
                preceding = candidate

        same_line = preceding is not None and "\n" not in source[-preceding[1]:start]
        if comment["type"] == "Line" and same_line and preceding[4]:
            preceding[2].setdefault("trailingComments", []).append(comment)
        elif following is not None:
            following[2].setdefault("leadingComments", []).append(comment)
        elif preceding is not None:
            preceding[2].setdefault("trailingComments", []).append(comment)
        else:
            program.setdefault("trailingComments", []).append(comment)


def _parse_with(source_code: str, source_type: str) -> Any:
    if source_type == "module":
        return esprima.parseModule(source_code, PARSE_OPTIONS)
    return esprima.parseScript(source_code, PARSE_OPTIONS)


def parse_javascript(source_code: str) -> ProgramTree:
    """Parse JavaScript (with JSX) into an ESTree program.

    Module syntax is tried first when the text looks like an ES module,
    otherwise script syntax; the other goal is used as a fallback.

    Args:
        source_code: The JavaScript source code to parse

    Returns:
        ProgramTree with comments attached to nodes

    Raises:
        ParseError: If neither goal accepts the input
    """
    order = ["script", "module"]
    if _MODULE_SYNTAX_RE.search(source_code):
        order.reverse()

    first_error: Optional[Exception] = None
    for source_type in order:
        try:
            result = _parse_with(source_code, source_type)
        except RecursionError:
            raise ParseError("Input nests too deeply to parse")
        except Exception as e:
            if first_error is None:
                first_error = e
            continue

        data = _to_estree(result)
        raw_comments = data.pop("comments", None) or []
        comments = [_normalize_comment(comment) for comment in raw_comments if comment.get("range")]
        data["sourceType"] = source_type
        attach_comments(data, comments, source_code)
        return ProgramTree(program=data, source=source_code, source_type=source_type, comments=comments)

    description = getattr(first_error, "description", None) or str(first_error)
    raise ParseError(
        description,
        line=getattr(first_error, "lineNumber", None),
        column=getattr(first_error, "column", None),
        details=str(first_error),
    )


def parse_file(file_path: Path) -> ProgramTree:
    """Parse a JavaScript file.

    Args:
        file_path: Path to the JavaScript file

    Returns:
        ProgramTree for the file contents
    """
    source_code = file_path.read_text(encoding="utf-8")
    return parse_javascript(source_code)
