"""Tests for the command-line interface."""

from pathlib import Path

import pytest
from click.testing import CliRunner

from unmangle import __version__
from unmangle.cli import main, process_paths, resolve_input_files
from unmangle.config import Config
from unmangle.core.diagnostics import Timing
from unmangle.rules import build_rules


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def minified_file(tmp_path: Path) -> Path:
    source = tmp_path / "src" / "app.js"
    source.parent.mkdir()
    source.write_text('"use strict";\nconst t = e;\nconst n = t;\nfor (;;) { if (n === void 0) break; }\n')
    return source


class TestConfig:
    """Tests for Config."""

    def test_defaults(self):
        """Defaults cover every setting."""
        config = Config()

        assert config.concurrency >= 1
        assert "node_modules" in config.skip_patterns
        assert config.jsx_host_objects == ["document"]

    def test_comma_separated_rules(self):
        """A comma separated rule list is split."""
        config = Config(rules="un-jsx, smart-inline")

        assert config.rules == ["un-jsx", "smart-inline"]

    def test_rule_params(self):
        """Only configured rule settings are passed on."""
        params = Config(jsx_pragma="h", jsx_host_objects=["document", "doc"]).rule_params()

        assert params == {"hostObjects": ["document", "doc"], "pragma": "h"}


class TestResolveInputFiles:
    """Tests for resolve_input_files."""

    def test_directory_search(self, tmp_path: Path):
        """Directories are searched recursively and skip patterns apply."""
        (tmp_path / "a.js").write_text("a;")
        (tmp_path / "lib").mkdir()
        (tmp_path / "lib" / "b.mjs").write_text("b;")
        (tmp_path / "node_modules").mkdir()
        (tmp_path / "node_modules" / "c.js").write_text("c;")
        (tmp_path / "notes.txt").write_text("")

        files = resolve_input_files([tmp_path], ["node_modules"])

        assert [relative.as_posix() for _, relative in files] == ["a.js", "lib/b.mjs"]

    def test_duplicates_dropped(self, tmp_path: Path):
        """A file named twice is processed once."""
        target = tmp_path / "a.js"
        target.write_text("a;")

        assert len(resolve_input_files([target, target], [])) == 1


class TestProcessPaths:
    """Tests for concurrent processing."""

    @pytest.mark.asyncio
    async def test_results_in_input_order(self, tmp_path: Path):
        """Every file is written and results keep the input order."""
        inputs = []
        for name in ("one.js", "two.js", "three.js"):
            path = tmp_path / "in" / name
            path.parent.mkdir(exist_ok=True)
            path.write_text('"use strict";\nvar x = void 0;\n')
            inputs.append((path, Path(name)))
        output_dir = tmp_path / "out"
        timing = Timing(enabled=True)

        results = await process_paths(inputs, output_dir, build_rules(), {}, 2, timing)

        assert [Path(r["file"]).name for r in results] == ["one.js", "two.js", "three.js"]
        assert all("error" not in r for r in results)
        assert (output_dir / "two.js").read_text() == "var x = undefined;\n"
        assert timing.totals_by_file().keys() == {"one.js", "two.js", "three.js"}

    @pytest.mark.asyncio
    async def test_parse_failure_reported(self, tmp_path: Path):
        """A file that does not parse is marked as failed and copied as is."""
        path = tmp_path / "bad.js"
        path.write_text("var = ;")

        results = await process_paths([(path, Path("bad.js"))], tmp_path / "out", build_rules(), {}, 1)

        assert results[0]["error"].startswith("Parse error")
        assert (tmp_path / "out" / "bad.js").read_text() == "var = ;"


class TestCommands:
    """Tests for the click commands."""

    def test_version(self, runner):
        """--version prints the package version."""
        result = runner.invoke(main, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_rules_listed(self, runner):
        """The rules command lists registered rules."""
        result = runner.invoke(main, ["rules"])

        assert result.exit_code == 0
        assert "un-jsx" in result.output
        assert "beautify" in result.output

    def test_unminify_writes_output(self, runner, minified_file, tmp_path):
        """unminify writes the rewritten file under the output directory."""
        output_dir = tmp_path / "out"
        result = runner.invoke(main, ["unminify", str(minified_file), "-o", str(output_dir)])

        assert result.exit_code == 0, result.output
        written = (output_dir / "app.js").read_text()
        assert "use strict" not in written
        assert "const n = e;" in written
        assert "while (true)" in written

    def test_unminify_directory_keeps_layout(self, runner, minified_file, tmp_path):
        """Relative paths under an input directory are kept."""
        output_dir = tmp_path / "out"
        result = runner.invoke(main, ["unminify", str(minified_file.parent.parent), "-o", str(output_dir)])

        assert result.exit_code == 0, result.output
        assert (output_dir / "src" / "app.js").exists()

    def test_unminify_refuses_non_empty_output(self, runner, minified_file, tmp_path):
        """A non-empty output directory needs --force."""
        output_dir = tmp_path / "out"
        output_dir.mkdir()
        (output_dir / "keep.txt").write_text("x")

        result = runner.invoke(main, ["unminify", str(minified_file), "-o", str(output_dir)])
        assert result.exit_code == 1
        assert not (output_dir / "app.js").exists()

        forced = runner.invoke(main, ["unminify", str(minified_file), "-o", str(output_dir), "--force"])
        assert forced.exit_code == 0
        assert (output_dir / "app.js").exists()

    def test_unminify_unknown_rule(self, runner, minified_file, tmp_path):
        """An unknown rule name exits with an error."""
        result = runner.invoke(main, ["unminify", str(minified_file), "-o", str(tmp_path / "out"), "--rules", "nope"])

        assert result.exit_code == 1
        assert "Unknown rule" in result.output

    def test_unminify_selected_rules(self, runner, minified_file, tmp_path):
        """Only the selected rules run."""
        output_dir = tmp_path / "out"
        result = runner.invoke(
            main, ["unminify", str(minified_file), "-o", str(output_dir), "--rules", "un-while-loop"]
        )

        assert result.exit_code == 0, result.output
        written = (output_dir / "app.js").read_text()
        assert "while (true)" in written
        assert "use strict" in written

    def test_unminify_parse_error_exit_code(self, runner, tmp_path):
        """A file that fails to parse makes the run exit with 1."""
        bad = tmp_path / "bad.js"
        bad.write_text("var = ;")

        result = runner.invoke(main, ["unminify", str(bad), "-o", str(tmp_path / "out")])

        assert result.exit_code == 1

    def test_unpack_writes_modules(self, runner, fixtures_dir, tmp_path):
        """unpack writes one file per module named from the bundle."""
        output_dir = tmp_path / "out"
        result = runner.invoke(main, ["unpack", str(fixtures_dir / "webpack5.js"), "-o", str(output_dir)])

        assert result.exit_code == 0, result.output
        index = (output_dir / "src" / "index.js").read_text()
        assert 'const math = require("src/math.js");' in index
        assert (output_dir / "src" / "math.js").exists()

    def test_unpack_without_unminify(self, runner, fixtures_dir, tmp_path):
        """--no-unminify keeps numeric require ids."""
        output_dir = tmp_path / "out"
        result = runner.invoke(
            main, ["unpack", str(fixtures_dir / "webpack4.js"), "-o", str(output_dir), "--no-unminify"]
        )

        assert result.exit_code == 0, result.output
        assert "require(0)" in (output_dir / "module-1.js").read_text()
        assert (output_dir / "module-0.js").exists()

    def test_unpack_plain_script_fails(self, runner, tmp_path):
        """A file that is not a bundle exits with 1."""
        plain = tmp_path / "plain.js"
        plain.write_text("console.log(1);")

        result = runner.invoke(main, ["unpack", str(plain), "-o", str(tmp_path / "out")])

        assert result.exit_code == 1
        assert not (tmp_path / "out").exists()

    def test_analyze(self, runner, tmp_path):
        """analyze prints scopes and bindings."""
        source = tmp_path / "a.js"
        source.write_text("var a = 1;\nfunction f(b) { return a + b; }\n")

        result = runner.invoke(main, ["analyze", str(source)])

        assert result.exit_code == 0, result.output
        assert "Scope 0" in result.output
        assert "a (var, 1 references)" in result.output
        assert "b (param, 1 references)" in result.output
