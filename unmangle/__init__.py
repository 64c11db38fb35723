"""Unmangle - recover readable JavaScript from minified code and bundles."""

__version__ = "0.1.0"
__author__ = "unmangle"

from unmangle.config import Config
from unmangle.core.parser import parse_javascript
from unmangle.core.generator import generate_code
from unmangle.core.runner import run_rules
from unmangle.core.unpacker import unpack

__all__ = [
    "__version__",
    "Config",
    "parse_javascript",
    "generate_code",
    "run_rules",
    "unpack",
]
