"""Core primitives shared across the governance engine: errors, violations, logging, settings."""

from kbgov.core.diagnostics import Severity, ValidationResult, Violation, ViolationKind
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

__all__ = [
    "Severity",
    "ValidationResult",
    "Violation",
    "ViolationKind",
    "CommitIntegrityError",
    "ConfigError",
    "DocumentParseError",
    "ErrorCategory",
    "ErrorContext",
    "GovernanceError",
    "InvalidRouteError",
    "LedgerIntegrityError",
    "RoutingConflict",
    "RoutingError",
    "SchemaViolation",
    "VersionViolation",
]
