"""Pytest configuration and fixtures."""

from pathlib import Path
from typing import Optional

import pytest

from unmangle.core.runner import RunResult, run_rules
from unmangle.rules import get_rule


def squash(code: str) -> str:
    """Collapse all whitespace runs so assertions ignore line layout."""
    return " ".join(code.split())


@pytest.fixture
def fixtures_dir() -> Path:
    """Return path to test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def webpack4_bundle(fixtures_dir: Path) -> str:
    """Minified webpack 4 bundle with an array registry."""
    return (fixtures_dir / "webpack4.js").read_text()


@pytest.fixture
def webpack4_object_bundle(fixtures_dir: Path) -> str:
    """Development webpack 4 bundle keyed by module path."""
    return (fixtures_dir / "webpack4_object.js").read_text()


@pytest.fixture
def webpack5_bundle(fixtures_dir: Path) -> str:
    """webpack 5 bundle with numeric ids and path banners."""
    return (fixtures_dir / "webpack5.js").read_text()


@pytest.fixture
def webpack5_inline_entry_bundle(fixtures_dir: Path) -> str:
    """webpack 5 bundle whose entry is inlined into the runtime."""
    return (fixtures_dir / "webpack5_inline_entry.js").read_text()


@pytest.fixture
def browserify_bundle(fixtures_dir: Path) -> str:
    """Minified browserify bundle."""
    return (fixtures_dir / "browserify.js").read_text()


@pytest.fixture
def apply_rules():
    """Run the named rules over a snippet and return the RunResult."""

    def run(source: str, *names: str, params: Optional[dict] = None) -> RunResult:
        return run_rules(source, None, [get_rule(name) for name in names], params)

    return run


@pytest.fixture
def nested_scope_code() -> str:
    """Return code with nested scopes for testing."""
    return """
var outer = "value";

function process(data) {
    var temp = data.split("");
    if (temp.length) {
        let inner = temp[0];
        var hoisted = inner;
    }
    return function transform(item) {
        var result = item.toUpperCase();
        return result + outer;
    };
}

class Calculator {
    constructor(a, b) {
        this.x = a;
        this.y = b;
    }

    add() {
        return this.x + this.y;
    }
}
"""
