"""Tests for the un-indirect-call rule."""

from conftest import squash


class TestUnIndirectCall:
    """Tests for UnIndirectCallRule."""

    def test_require_destructured(self, apply_rules):
        """Calls through a required module get a destructured local."""
        code = 'const r = require("react");\nconst e = (0, r.useState)(1);'
        result = apply_rules(code, "un-indirect-call")

        assert squash(result.code) == (
            'const r = require("react"); const { useState } = r; const e = useState(1);'
        )

    def test_repeated_calls_share_local(self, apply_rules):
        """Every call to the same method uses one local."""
        code = 'const r = require("react");\n(0, r.useState)(1);\n(0, r.useState)(2);'
        result = apply_rules(code, "un-indirect-call")

        compact = squash(result.code)
        assert compact.count("const { useState } = r;") == 1
        assert "useState(1);" in compact
        assert "useState(2);" in compact

    def test_name_conflict(self, apply_rules):
        """An existing binding forces a suffixed local."""
        code = 'const r = require("react");\nconst useState = 1;\nconst e = (0, r.useState)(1);'
        result = apply_rules(code, "un-indirect-call")

        compact = squash(result.code)
        assert "const { useState: useState_1 } = r;" in compact
        assert "const e = useState_1(1);" in compact

    def test_import_specifier_added(self, apply_rules):
        """Default imports gain a named specifier and drop when unused."""
        code = 'import React from "react";\nconst e = (0, React.useState)(1);'
        result = apply_rules(code, "un-indirect-call")

        assert 'import { useState } from "react";' in result.code
        assert "React" not in result.code
        assert "const e = useState(1);" in result.code

    def test_import_still_used_kept(self, apply_rules):
        """A default import with other uses stays next to the named one."""
        code = 'import React from "react";\nconst e = (0, React.useState)(1);\nReact.render();'
        result = apply_rules(code, "un-indirect-call")

        assert 'import React, { useState } from "react";' in result.code

    def test_unknown_origin_untouched(self, apply_rules):
        """Objects not bound by import or require keep the indirect call."""
        result = apply_rules("const e = (0, obj.fn)(1);", "un-indirect-call")

        assert result.code == "const e = (0, obj.fn)(1);\n"

    def test_merges_into_following_destructuring(self, apply_rules):
        """A destructuring right after the require gains the new method."""
        code = 'const r = require("react");\nconst { useRef } = r;\n(0, r.useRef)(0);\n(0, r.useMemo)(f, []);'
        result = apply_rules(code, "un-indirect-call")

        assert squash(result.code) == (
            'const r = require("react"); const { useRef, useMemo } = r; useRef(0); useMemo(f, []);'
        )

    def test_later_destructuring_forces_suffix(self, apply_rules):
        """A destructuring declared further down still claims its names."""
        code = 'const r = require("react");\nconst e = (0, r.useRef)(0);\nconst { useRef } = r;'
        result = apply_rules(code, "un-indirect-call")

        compact = squash(result.code)
        assert "const { useRef: useRef_1 } = r; const e = useRef_1(0);" in compact
        assert compact.endswith("const { useRef } = r;")

    def test_import_alias_on_conflict(self, apply_rules):
        """A taken name gives the import specifier an alias."""
        code = 'import p from "r2";\nconst useRef = 1;\n(0, p.useRef)(0);'
        result = apply_rules(code, "un-indirect-call")

        assert 'import { useRef as useRef_1 } from "r2";' in result.code
        assert "useRef_1(0);" in result.code

    def test_namespace_import(self, apply_rules):
        """Namespace imports are an origin too and split off named imports."""
        code = 'import * as R from "react";\n(0, R.useState)(1);\nR.version;'
        result = apply_rules(code, "un-indirect-call")

        assert 'import * as R from "react";' in result.code
        assert 'import { useState } from "react";' in result.code
        assert "useState(1);" in result.code

    def test_unused_same_source_import_dropped(self, apply_rules):
        """Another unused default import of the same source goes away."""
        code = (
            'import s from "react";\n'
            'import t from "third";\n'
            'import again from "react";\n'
            "(0, s.useRef)(0);"
        )
        result = apply_rules(code, "un-indirect-call")

        assert 'import { useRef } from "react";' in result.code
        assert 'import t from "third";' in result.code
        assert "again" not in result.code

    def test_require_in_block_not_visible_outside(self, apply_rules):
        """Calls outside the block holding the require keep the indirect form."""
        code = 'if (x) {\n  var s = require("react");\n}\n(0, s.useRef)(0);'
        result = apply_rules(code, "un-indirect-call")

        assert "(0, s.useRef)(0);" in result.code
        assert "const {" not in result.code
