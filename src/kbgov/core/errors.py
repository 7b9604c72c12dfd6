"""
Structured error types for the governance engine.

Every failure the engine surfaces to a caller is a ``GovernanceError``
subclass carrying a category, a structured context (which document, which
keyword, which ledger entry, which location) and an optional chained cause.
Validators never raise for policy findings; they return ``Violation``
records. The exceptions below are raised when a finding must stop a caller
(``ValidationResult.raise_for_errors()``), when a shared-state operation is
refused (routing conflicts, ledger integrity) or when input is malformed.

Manifesto:
    - **Typed taxonomy:** one class per family of policy failure
    - **Surfaced verbatim:** the offending location travels with the error
    - **No auto-correction:** errors describe, they never repair
    - **Error chaining:** the original exception is preserved as ``cause``

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────────┐
        │                       GovernanceError                         │
        │             (category, context, cause, violations)            │
        ├──────────────────────────────────────────────────────────────┤
        │  SchemaViolation     VersionViolation     DocumentParseError  │
        │  (SCHEMA)            (VERSION)            (PARSE)             │
        │                                                               │
        │  RoutingError        LedgerIntegrityError ConfigError         │
        │  (ROUTING)           (LEDGER)             (CONFIG)            │
        │     │                                                         │
        │  RoutingConflict     CommitIntegrityError                     │
        │  InvalidRouteError   (INTERNAL, fatal)                        │
        └──────────────────────────────────────────────────────────────┘

Examples:
    >>> err = RoutingConflict("keyword 'rsi' already routed")
    >>> err.with_context(keyword="rsi").context.keyword
    'rsi'
    >>> err.to_dict()["category"]
    'ROUTING'

Guardrails:
    ❌ DON'T: Raise for WARNING-severity findings
    ✅ DO: Report them in the ValidationResult and keep going

    ❌ DON'T: Catch CommitIntegrityError to keep running
    ✅ DO: Treat it as a broken invariant and stop the process

Tags:
    error-handling, exception-hierarchy, governance, kbgov
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from kbgov.core.diagnostics import Violation


class ErrorCategory(str, Enum):
    """Standard error categories for classification and exit-code mapping."""

    SCHEMA = "SCHEMA"             # Missing/misordered sections, malformed status
    VERSION = "VERSION"           # Mixed/undeclared tags, untyped sentinel init
    ROUTING = "ROUTING"           # Ambiguous or invalid keyword registration
    LEDGER = "LEDGER"             # Unknown paths, tampered history
    PARSE = "PARSE"               # Malformed input artifact
    CONFIG = "CONFIG"             # Routing table / entry file problems
    INTERNAL = "INTERNAL"         # Broken invariants


@dataclass
class ErrorContext:
    """
    Structured metadata attached to a ``GovernanceError``.

    Attributes:
        path: Document path the error concerns
        keyword: Routing keyword the error concerns
        entry_id: Ledger entry the error concerns
        location: Offending location (``path:line``, ``sample #2``...)
        metadata: Additional key-value pairs
    """

    path: str | None = None
    keyword: str | None = None
    entry_id: str | None = None
    location: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["path", "keyword", "entry_id", "location"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class GovernanceError(Exception):
    """
    Base exception for all governance engine errors.

    Subclasses set ``default_category``. Errors raised from validation
    results also carry the full list of ``violations`` so the caller sees
    every finding, not only the first.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
        violations: tuple[Violation, ...] = (),
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause
        self.violations = tuple(violations)

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> GovernanceError:
        """
        Add context to this error (fluent API).

        Usage:
            raise LedgerIntegrityError("unknown path").with_context(
                path="indicators/rsi.md"
            )
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.violations:
            result["violations"] = [v.to_dict() for v in self.violations]
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# POLICY FINDINGS
# =============================================================================


class SchemaViolation(GovernanceError):
    """Missing, duplicated or misordered sections, or a malformed status block."""

    default_category = ErrorCategory.SCHEMA


class VersionViolation(GovernanceError):
    """Mixed or undeclared version tags, or an untyped sentinel initialization."""

    default_category = ErrorCategory.VERSION


# =============================================================================
# ROUTING
# =============================================================================


class RoutingError(GovernanceError):
    """Base class for routing table errors."""

    default_category = ErrorCategory.ROUTING


class RoutingConflict(RoutingError):
    """
    A keyword was registered twice with different targets.

    Last-writer-wins is forbidden: the table author must resolve the
    ambiguity.
    """

    pass


class InvalidRouteError(RoutingError):
    """A route references an unknown document or has an empty keyword."""

    pass


# =============================================================================
# LEDGER / COMMIT
# =============================================================================


class LedgerIntegrityError(GovernanceError):
    """
    Ledger append refused, or persisted history does not verify.

    Raised when ``impacted_paths`` is empty or names an unknown document,
    when a correction targets an unknown entry, and when stored history has
    gaps or a broken hash chain (an attempted mutation of history).
    """

    default_category = ErrorCategory.LEDGER


class CommitIntegrityError(GovernanceError):
    """
    A commit failed and could not be rolled back.

    The ledger and the routing index may disagree. This is a fatal
    invariant breach, not a recoverable condition.
    """

    default_category = ErrorCategory.INTERNAL


# =============================================================================
# INPUT / CONFIG
# =============================================================================


class DocumentParseError(GovernanceError):
    """A document file could not be parsed into a Document."""

    default_category = ErrorCategory.PARSE


class ConfigError(GovernanceError):
    """The routing table or a changelog entry file is unreadable or invalid."""

    default_category = ErrorCategory.CONFIG


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "GovernanceError",
    "SchemaViolation",
    "VersionViolation",
    "RoutingError",
    "RoutingConflict",
    "InvalidRouteError",
    "LedgerIntegrityError",
    "CommitIntegrityError",
    "DocumentParseError",
    "ConfigError",
]
