"""Tests for kbgov.core.errors module."""

import pytest

from kbgov.core.errors import (
    CommitIntegrityError,
    ConfigError,
    DocumentParseError,
    ErrorCategory,
    ErrorContext,
    GovernanceError,
    InvalidRouteError,
    LedgerIntegrityError,
    RoutingConflict,
    RoutingError,
    SchemaViolation,
    VersionViolation,
)


class TestErrorContext:
    """Test ErrorContext dataclass."""

    def test_create_empty_context(self):
        ctx = ErrorContext()
        assert ctx.path is None
        assert ctx.keyword is None
        assert ctx.metadata == {}
        assert ctx.to_dict() == {}

    def test_to_dict_skips_unset_fields(self):
        ctx = ErrorContext(path="indicators/rsi.md", location="line 12", metadata={"rule": "S004"})
        assert ctx.to_dict() == {"path": "indicators/rsi.md", "location": "line 12", "rule": "S004"}


class TestGovernanceError:
    """Test the base exception."""

    def test_default_category_is_internal(self):
        err = GovernanceError("boom")
        assert err.category == ErrorCategory.INTERNAL
        assert str(err) == "boom"

    def test_category_override(self):
        err = GovernanceError("boom", category=ErrorCategory.CONFIG)
        assert err.category == ErrorCategory.CONFIG

    def test_with_context_sets_known_fields_and_metadata(self):
        err = LedgerIntegrityError("unknown path").with_context(
            path="indicators/rsi.md", unknown=["indicators/rsi.md"],
        )
        assert err.context.path == "indicators/rsi.md"
        assert err.context.metadata == {"unknown": ["indicators/rsi.md"]}

    def test_with_context_returns_same_instance(self):
        err = RoutingConflict("dup")
        assert err.with_context(keyword="rsi") is err

    def test_cause_is_chained(self):
        cause = ValueError("bad")
        err = ConfigError("invalid", cause=cause)
        assert err.cause is cause
        assert err.__cause__ is cause

    def test_to_dict(self):
        err = RoutingConflict("keyword 'rsi' already routed").with_context(keyword="rsi")
        data = err.to_dict()
        assert data["error_type"] == "RoutingConflict"
        assert data["category"] == "ROUTING"
        assert data["context"] == {"keyword": "rsi"}
        assert "cause" not in data

    def test_repr(self):
        assert repr(SchemaViolation("x")) == "SchemaViolation('x', category=SCHEMA)"


class TestTaxonomy:
    """Each family maps to its category."""

    @pytest.mark.parametrize(
        "error_cls, category",
        [
            (SchemaViolation, ErrorCategory.SCHEMA),
            (VersionViolation, ErrorCategory.VERSION),
            (RoutingConflict, ErrorCategory.ROUTING),
            (InvalidRouteError, ErrorCategory.ROUTING),
            (LedgerIntegrityError, ErrorCategory.LEDGER),
            (DocumentParseError, ErrorCategory.PARSE),
            (ConfigError, ErrorCategory.CONFIG),
            (CommitIntegrityError, ErrorCategory.INTERNAL),
        ],
    )
    def test_categories(self, error_cls, category):
        assert error_cls("x").category == category
        assert isinstance(error_cls("x"), GovernanceError)

    def test_routing_hierarchy(self):
        assert issubclass(RoutingConflict, RoutingError)
        assert issubclass(InvalidRouteError, RoutingError)
