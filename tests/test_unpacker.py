"""Tests for bundle unpacking."""

import pytest

from unmangle.core.exceptions import UnrecognizedBundleFormat
from unmangle.core.unpacker import Module, UnpackResult, normalize_filename, unpack


def modules_by_id(result: UnpackResult) -> dict:
    return {module.id: module for module in result.modules}


class TestNormalizeFilename:
    """Tests for normalize_filename."""

    def test_relative_path(self):
        """A leading ``./`` is dropped and ``.js`` appended."""
        assert normalize_filename("./src/a") == "src/a.js"

    def test_parent_segments_dropped(self):
        """Paths cannot climb out of the output directory."""
        assert normalize_filename("../../etc/passwd") == "etc/passwd.js"

    def test_known_extension_kept(self):
        """Script extensions are not doubled."""
        assert normalize_filename("./x.mjs") == "x.mjs"
        assert normalize_filename("./src/util.js") == "src/util.js"

    def test_empty_name(self):
        """An empty path falls back to index.js."""
        assert normalize_filename("") == "index.js"

    def test_backslashes(self):
        """Windows separators are treated as directory separators."""
        assert normalize_filename(".\\lib\\b") == "lib/b.js"


class TestUnpackResult:
    """Tests for UnpackResult."""

    def test_filename_fallback(self):
        """Unmapped modules are named after their id."""
        result = UnpackResult(modules=[Module(id=3, code="")], module_id_mapping={4: "a.js"})

        assert result.filename_for(result.modules[0]) == "module-3.js"
        assert result.filename_for(Module(id=4, code="")) == "a.js"


class TestWebpack4:
    """Tests for webpack 4 bundles."""

    def test_array_registry(self, webpack4_bundle):
        """Array registries give index ids and the ``n.s`` entry."""
        result = unpack(webpack4_bundle)
        modules = modules_by_id(result)

        assert result.bundler == "webpack4"
        assert sorted(modules) == [0, 1]
        assert modules[1].is_entry
        assert not modules[0].is_entry
        assert "var r = require(0);" in modules[1].code
        assert "exports.add = function" in modules[0].code
        assert result.module_id_mapping == {}

    def test_object_registry(self, webpack4_object_bundle):
        """Path keys become both ids and file names."""
        result = unpack(webpack4_object_bundle)
        modules = modules_by_id(result)

        assert set(modules) == {"./src/index.js", "./src/util.js"}
        assert result.module_id_mapping == {
            "./src/index.js": "src/index.js",
            "./src/util.js": "src/util.js",
        }
        entry = modules["./src/index.js"]
        assert entry.is_entry
        assert 'require("./src/util.js")' in entry.code
        assert 'exports.name = "util";' in modules["./src/util.js"].code


class TestWebpack5:
    """Tests for webpack 5 bundles."""

    def test_numeric_ids_with_banners(self, webpack5_bundle):
        """Banner comments name the modules."""
        result = unpack(webpack5_bundle)
        modules = modules_by_id(result)

        assert result.bundler == "webpack5"
        assert result.module_id_mapping == {10: "src/math.js", 20: "src/index.js"}
        assert modules[20].is_entry
        assert "const math = require(10);" in modules[20].code
        assert "exports.double = (x) => x * 2;" in modules[10].code
        assert modules[10].path == "./src/math.js"

    def test_inline_entry(self, webpack5_inline_entry_bundle):
        """An entry inlined into the runtime becomes its own module."""
        result = unpack(webpack5_inline_entry_bundle)
        modules = modules_by_id(result)

        assert set(modules) == {"./src/answer.js", "entry"}
        entry = modules["entry"]
        assert entry.is_entry
        assert 'require("./src/answer.js")' in entry.code
        assert "__webpack_require__" not in entry.code
        assert "module.exports = 42;" in modules["./src/answer.js"].code
        assert result.module_id_mapping == {"./src/answer.js": "src/answer.js"}


class TestBrowserify:
    """Tests for browserify bundles."""

    def test_prelude(self, browserify_bundle):
        """Dependency maps name the modules they point at."""
        result = unpack(browserify_bundle)
        modules = modules_by_id(result)

        assert result.bundler == "browserify"
        assert result.module_id_mapping == {2: "lib/b.js"}
        assert modules[1].is_entry
        assert 'var b = require("./lib/b");' in modules[1].code
        assert "exports.value = 1;" in modules[2].code
        assert modules[2].path == "./lib/b"
        assert modules[1].path is None


class TestUnrecognized:
    """Tests for inputs that are not bundles."""

    def test_plain_script(self):
        """Ordinary code has no bundle runtime."""
        with pytest.raises(UnrecognizedBundleFormat):
            unpack("console.log(1);")

    def test_unparseable(self):
        """Syntax errors surface as UnrecognizedBundleFormat."""
        with pytest.raises(UnrecognizedBundleFormat) as excinfo:
            unpack("function (")

        assert "parse" in str(excinfo.value).lower()
