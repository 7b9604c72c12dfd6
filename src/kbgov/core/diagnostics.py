"""Violation model shared by every validator.

A validator inspects one Document and returns a ``ValidationResult``: an
ordered, immutable list of ``Violation`` records. ERROR-severity findings
block acceptance, WARNING-severity findings are reported only.

Architecture::

    SchemaValidator.validate(doc) ─┐
                                   ├──► ValidationResult.merge(...)
    VersionChecker.check(doc) ─────┘        │
                                            ├── violations: tuple[Violation]
                                            ├── passed → bool (no errors)
                                            ├── errors / warnings
                                            └── raise_for_errors()

Example::

    result = SchemaValidator().validate(doc)
    if not result.passed:
        for v in result.errors:
            print(v)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from kbgov.core.errors import GovernanceError, SchemaViolation, VersionViolation


class Severity(str, Enum):
    """Severity level for a violation."""

    ERROR = "error"
    WARNING = "warning"


class ViolationKind(str, Enum):
    """Taxonomy family a violation belongs to."""

    SCHEMA = "SchemaViolation"
    VERSION = "VersionViolation"
    POLICY = "PolicyViolation"


_KIND_TO_ERROR: dict[ViolationKind, type[GovernanceError]] = {
    ViolationKind.SCHEMA: SchemaViolation,
    ViolationKind.VERSION: VersionViolation,
    ViolationKind.POLICY: GovernanceError,
}


@dataclass(frozen=True)
class Violation:
    """A single policy finding.

    Attributes:
        code: Short identifier (e.g. ``"S004"``, ``"V005"``).
        severity: ``error`` or ``warning``.
        kind: Taxonomy family (SchemaViolation, VersionViolation...).
        message: Human-readable description.
        path: Document path the finding belongs to.
        location: Offending location within the document, if any.
    """

    code: str
    severity: Severity
    kind: ViolationKind
    message: str
    path: str = ""
    location: str | None = None

    @property
    def is_error(self) -> bool:
        return self.severity == Severity.ERROR

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "severity": self.severity.value,
            "kind": self.kind.value,
            "message": self.message,
            "path": self.path,
            "location": self.location,
        }

    def __str__(self) -> str:
        prefix = f"[{self.code}] {self.severity.value.upper()}"
        where = self.path
        if self.location:
            where = f"{where} ({self.location})" if where else self.location
        location = f" at {where}" if where else ""
        return f"{prefix}{location}: {self.message}"


@dataclass(frozen=True)
class ValidationResult:
    """Aggregated findings for one document.

    Attributes:
        path: Path of the validated document.
        violations: All findings, in rule order.
    """

    path: str
    violations: tuple[Violation, ...] = field(default_factory=tuple)

    @property
    def passed(self) -> bool:
        """True if there are no error-level violations."""
        return not any(v.is_error for v in self.violations)

    @property
    def errors(self) -> list[Violation]:
        return [v for v in self.violations if v.severity == Severity.ERROR]

    @property
    def warnings(self) -> list[Violation]:
        return [v for v in self.violations if v.severity == Severity.WARNING]

    def codes(self) -> list[str]:
        """Violation codes in order, convenient for assertions and reports."""
        return [v.code for v in self.violations]

    def merge(self, *others: ValidationResult) -> ValidationResult:
        """Concatenate findings, keeping this result's path and rule order."""
        merged = list(self.violations)
        for other in others:
            merged.extend(other.violations)
        return ValidationResult(path=self.path, violations=tuple(merged))

    def raise_for_errors(self) -> None:
        """Raise the exception matching the first ERROR finding, if any.

        The raised error carries every violation of this result.
        """
        errors = self.errors
        if not errors:
            return
        first = errors[0]
        error_cls = _KIND_TO_ERROR[first.kind]
        raise error_cls(
            f"{len(errors)} blocking violation(s) in {self.path}: {first.message}",
            violations=self.violations,
        ).with_context(path=self.path, location=first.location)

    def summary(self) -> str:
        """One-line summary of the result."""
        status = "PASS" if self.passed else "FAIL"
        parts = [f"{status}: {self.path}"]
        if self.errors:
            parts.append(f"{len(self.errors)} errors")
        if self.warnings:
            parts.append(f"{len(self.warnings)} warnings")
        return " | ".join(parts)

    def __str__(self) -> str:
        lines = [self.summary()]
        for v in self.violations:
            lines.append(f"  {v}")
        return "\n".join(lines)


__all__ = [
    "Severity",
    "ViolationKind",
    "Violation",
    "ValidationResult",
]
