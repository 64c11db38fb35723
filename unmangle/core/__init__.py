"""Core unminify functionality."""

from unmangle.core.exceptions import ParseError, UnmangleError, UnrecognizedBundleFormat, UnsupportedConstruct
from unmangle.core.generator import generate_code
from unmangle.core.parser import ProgramTree, parse_javascript
from unmangle.core.runner import RunResult, run_rules
from unmangle.core.scope import Binding, ScopeTree
from unmangle.core.unpacker import Module, UnpackResult, unpack

__all__ = [
    "parse_javascript",
    "generate_code",
    "run_rules",
    "unpack",
    "ProgramTree",
    "ScopeTree",
    "Binding",
    "RunResult",
    "Module",
    "UnpackResult",
    "UnmangleError",
    "ParseError",
    "UnsupportedConstruct",
    "UnrecognizedBundleFormat",
]
