"""Tests for kbgov.core.diagnostics — Violation and ValidationResult."""

import pytest

from kbgov.core.diagnostics import Severity, ValidationResult, Violation, ViolationKind
from kbgov.core.errors import GovernanceError, SchemaViolation, VersionViolation


def _v(code, severity=Severity.ERROR, kind=ViolationKind.SCHEMA, location=None):
    return Violation(code=code, severity=severity, kind=kind, message=f"{code} found", path="a.md", location=location)


class TestViolation:
    def test_is_error(self):
        assert _v("S001").is_error
        assert not _v("S007", Severity.WARNING).is_error

    def test_str_includes_code_path_and_location(self):
        text = str(_v("V005", kind=ViolationKind.VERSION, location="sample #1 (line 9)"))
        assert text == "[V005] ERROR at a.md (sample #1 (line 9)): V005 found"

    def test_to_dict(self):
        data = _v("S004").to_dict()
        assert data["severity"] == "error"
        assert data["kind"] == "SchemaViolation"
        assert data["location"] is None


class TestValidationResult:
    def test_empty_result_passes(self):
        result = ValidationResult(path="a.md")
        assert result.passed
        assert result.summary() == "PASS: a.md"

    def test_warnings_do_not_block(self):
        result = ValidationResult(path="a.md", violations=(_v("S007", Severity.WARNING),))
        assert result.passed
        assert len(result.warnings) == 1
        assert result.errors == []

    def test_errors_block(self):
        result = ValidationResult(path="a.md", violations=(_v("S004"), _v("S010", Severity.WARNING)))
        assert not result.passed
        assert result.summary() == "FAIL: a.md | 1 errors | 1 warnings"

    def test_merge_keeps_order(self):
        first = ValidationResult(path="a.md", violations=(_v("S004"),))
        second = ValidationResult(path="a.md", violations=(_v("V002", kind=ViolationKind.VERSION),))
        third = ValidationResult(path="a.md", violations=(_v("E001", kind=ViolationKind.POLICY),))
        assert first.merge(second, third).codes() == ["S004", "V002", "E001"]

    def test_raise_for_errors_noop_when_passed(self):
        ValidationResult(path="a.md", violations=(_v("S007", Severity.WARNING),)).raise_for_errors()

    def test_raise_for_errors_uses_first_error_kind(self):
        result = ValidationResult(
            path="a.md",
            violations=(
                _v("S010", Severity.WARNING),
                _v("V005", kind=ViolationKind.VERSION, location="sample #1 (line 9)"),
                _v("S004"),
            ),
        )
        with pytest.raises(VersionViolation) as exc_info:
            result.raise_for_errors()
        err = exc_info.value
        assert err.context.path == "a.md"
        assert err.context.location == "sample #1 (line 9)"
        assert len(err.violations) == 3

    def test_raise_for_schema_errors(self):
        with pytest.raises(SchemaViolation):
            ValidationResult(path="a.md", violations=(_v("S001"),)).raise_for_errors()

    def test_policy_errors_raise_base_error(self):
        result = ValidationResult(path="a.md", violations=(_v("E001", kind=ViolationKind.POLICY),))
        with pytest.raises(GovernanceError):
            result.raise_for_errors()
