"""Schema Validator — checks a document against the canonical section template.

Pure function over a ``Document``: no I/O, no shared state, safe to run
concurrently with the version checker on the same snapshot. Extensible via
a rule registry so corpus maintainers can add house rules.

Architecture::

    SchemaValidator.validate(doc)
    │
    ├── _check_status_present          S001
    ├── _check_status_well_formed      S002 S003 S013
    ├── _check_required_sections       S004 S010 S015
    ├── _check_duplicate_sections      S006
    ├── _check_section_order           S005 S014
    ├── _check_unknown_sections        S007
    ├── _check_code_samples            S008
    ├── _check_pitfalls                S009
    ├── _check_status_consistency      S011
    ├── _check_stub                    S012
    └── (custom rules via register_schema_rule)
    │
    ▼
    ValidationResult

Example::

    from kbgov.validation.schema import SchemaValidator

    result = SchemaValidator().validate(doc)
    for v in result.errors:
        print(v)
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date

from kbgov.core.diagnostics import Severity, ValidationResult, Violation, ViolationKind
from kbgov.core.logging import get_logger
from kbgov.documents.model import (
    CANONICAL_RULES,
    CANONICAL_SECTIONS,
    EXAMPLES,
    PITFALLS,
    REFERENCES,
    SCOPE,
    Confidence,
    Document,
)

logger = get_logger(__name__)

# Type alias for schema rules: takes a Document, returns violations
SchemaRule = Callable[[Document], list[Violation]]

_RULES: list[tuple[str, SchemaRule]] = []


def register_schema_rule(name: str, rule: SchemaRule) -> None:
    """Register a custom schema rule.

    Parameters
    ----------
    name
        Human-readable rule name (e.g. ``"check_title_case"``).
    rule
        Callable that takes a ``Document`` and returns a list of
        ``Violation`` objects.
    """
    _RULES.append((name, rule))
    logger.debug("schema_rule_registered", rule=name)


def list_schema_rules() -> list[str]:
    """Return names of all rules (built-in + custom)."""
    return [name for name, _ in _BUILT_IN_RULES] + [name for name, _ in _RULES]


def clear_custom_rules() -> None:
    """Remove all custom rules (built-in rules are preserved)."""
    _RULES.clear()


def _violation(
    doc: Document,
    code: str,
    severity: Severity,
    message: str,
    location: str | None = None,
) -> Violation:
    return Violation(
        code=code,
        severity=severity,
        kind=ViolationKind.SCHEMA,
        message=message,
        path=doc.path,
        location=location,
    )


# ---------------------------------------------------------------------------
# Built-in rules
# ---------------------------------------------------------------------------


def _check_status_present(doc: Document, today: date) -> list[Violation]:
    """S001: every document must carry a status block."""
    if doc.status is None:
        return [_violation(
            doc, "S001", Severity.ERROR,
            "status block missing: declare Confidence and Last-Updated in the header",
            location="header",
        )]
    return []


def _check_status_well_formed(doc: Document, today: date) -> list[Violation]:
    """S002/S003/S013: confidence and last-updated must parse."""
    status = doc.status
    if status is None:
        return []
    found = []
    if status.confidence is None:
        raw = status.raw.get("confidence")
        detail = f"'{raw}' is not one of HIGH, MEDIUM, LOW" if raw else "missing"
        found.append(_violation(doc, "S002", Severity.ERROR, f"confidence {detail}", location="header"))
    if status.last_updated is None:
        raw = status.raw.get("last-updated")
        detail = f"'{raw}' is not an ISO date (YYYY-MM-DD)" if raw else "missing"
        found.append(_violation(doc, "S003", Severity.ERROR, f"last-updated {detail}", location="header"))
    elif status.last_updated > today:
        found.append(_violation(
            doc, "S013", Severity.WARNING,
            f"last-updated {status.last_updated.isoformat()} is in the future",
            location="header",
        ))
    return found


def _check_required_sections(doc: Document, today: date) -> list[Violation]:
    """S004/S010/S015: Scope and Canonical Rules are required; References and Examples expected."""
    found = []
    for name in (SCOPE, CANONICAL_RULES):
        if not doc.has_section(name):
            found.append(_violation(doc, "S004", Severity.ERROR, f"required section '{name}' missing"))
    if not doc.has_section(EXAMPLES):
        found.append(_violation(doc, "S015", Severity.WARNING, f"section '{EXAMPLES}' missing"))
    if not doc.has_section(REFERENCES):
        found.append(_violation(doc, "S010", Severity.WARNING, f"section '{REFERENCES}' missing"))
    return found


def _check_duplicate_sections(doc: Document, today: date) -> list[Violation]:
    """S006: a canonical section may appear once."""
    seen: dict[str, int] = {}
    found = []
    for section in doc.sections:
        name = section.canonical_name
        if name is None:
            continue
        if name in seen:
            found.append(_violation(
                doc, "S006", Severity.ERROR,
                f"section '{name}' duplicated (first at line {seen[name]})",
                location=f"line {section.line}",
            ))
        else:
            seen[name] = section.line
    return found


def _check_section_order(doc: Document, today: date) -> list[Violation]:
    """S005/S014: canonical sections keep their relative order; Scope first, References last."""
    found = []
    rank = {name: i for i, name in enumerate(CANONICAL_SECTIONS)}
    highest: tuple[int, str] | None = None
    for section in doc.sections:
        name = section.canonical_name
        if name is None:
            continue
        if highest is not None and rank[name] < highest[0]:
            found.append(_violation(
                doc, "S005", Severity.ERROR,
                f"section '{name}' must come before '{highest[1]}'",
                location=f"line {section.line}",
            ))
        elif highest is None or rank[name] > highest[0]:
            highest = (rank[name], name)

    # Non-canonical sections are S007's concern and do not count here.
    canonical = [s for s in doc.sections if s.is_canonical]
    scope = doc.section(SCOPE)
    references = doc.section(REFERENCES)
    if scope is None or references is None:
        return found
    if canonical[0] is not scope:
        found.append(_violation(
            doc, "S014", Severity.ERROR,
            f"section '{SCOPE}' must be the first canonical section",
            location=f"line {scope.line}",
        ))
    if canonical[-1] is not references:
        found.append(_violation(
            doc, "S014", Severity.ERROR,
            f"section '{REFERENCES}' must be the last canonical section",
            location=f"line {references.line}",
        ))
    return found


def _check_unknown_sections(doc: Document, today: date) -> list[Violation]:
    """S007: non-canonical sections are permitted but flagged."""
    return [
        _violation(
            doc, "S007", Severity.WARNING,
            f"non-canonical section '{section.name}'",
            location=f"line {section.line}",
        )
        for section in doc.sections
        if not section.is_canonical
    ]


def _check_code_samples(doc: Document, today: date) -> list[Violation]:
    """S008: executable documents need at least one code sample."""
    if doc.is_executable and not doc.samples:
        return [_violation(
            doc, "S008", Severity.ERROR,
            "document describes executable behavior but has no code sample",
        )]
    return []


def _check_pitfalls(doc: Document, today: date) -> list[Violation]:
    """S009: executable documents need at least one Pitfalls entry."""
    if not doc.is_executable:
        return []
    pitfalls = doc.section(PITFALLS)
    if pitfalls is None:
        return [_violation(
            doc, "S009", Severity.ERROR,
            f"document describes executable behavior but has no '{PITFALLS}' section",
        )]
    if not pitfalls.entries:
        return [_violation(
            doc, "S009", Severity.ERROR,
            f"'{PITFALLS}' section has no entries",
            location=f"line {pitfalls.line}",
        )]
    return []


def _check_status_consistency(doc: Document, today: date) -> list[Violation]:
    """S011: HIGH confidence without References is inconsistent."""
    status = doc.status
    if status is None or status.confidence != Confidence.HIGH:
        return []
    references = doc.section(REFERENCES)
    if references is None or not references.is_populated:
        return [_violation(
            doc, "S011", Severity.WARNING,
            "confidence HIGH but no populated References section",
            location="header",
        )]
    return []


def _check_stub(doc: Document, today: date) -> list[Violation]:
    """S012: a stub has no populated canonical section."""
    if doc.is_stub:
        return [_violation(doc, "S012", Severity.WARNING, "stub document: no canonical section is populated")]
    return []


_BuiltInRule = Callable[[Document, date], list[Violation]]

# Ordered list of built-in rules
_BUILT_IN_RULES: list[tuple[str, _BuiltInRule]] = [
    ("check_status_present", _check_status_present),
    ("check_status_well_formed", _check_status_well_formed),
    ("check_required_sections", _check_required_sections),
    ("check_duplicate_sections", _check_duplicate_sections),
    ("check_section_order", _check_section_order),
    ("check_unknown_sections", _check_unknown_sections),
    ("check_code_samples", _check_code_samples),
    ("check_pitfalls", _check_pitfalls),
    ("check_status_consistency", _check_status_consistency),
    ("check_stub", _check_stub),
]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


class SchemaValidator:
    """Validate documents against the canonical section template.

    Parameters
    ----------
    today
        Reference date for the future-date check. Defaults to the current
        date at each call.
    extra_rules
        One-shot rules run after the built-in and registered rules.
    """

    def __init__(
        self,
        *,
        today: date | None = None,
        extra_rules: list[SchemaRule] | None = None,
    ):
        self._today = today
        self._extra_rules = list(extra_rules or [])

    def validate(self, doc: Document) -> ValidationResult:
        """Run every rule against ``doc``; never raises for findings."""
        today = self._today or date.today()
        violations: list[Violation] = []

        rules: list[tuple[str, SchemaRule]] = [
            (name, lambda d, _rule=rule: _rule(d, today)) for name, rule in _BUILT_IN_RULES
        ]
        rules.extend(_RULES)
        rules.extend((f"extra_rule_{i}", rule) for i, rule in enumerate(self._extra_rules))

        for rule_name, rule in rules:
            try:
                violations.extend(rule(doc))
            except Exception:
                logger.warning("schema_rule_failed", rule=rule_name, path=doc.path, exc_info=True)
                violations.append(_violation(
                    doc, "X001", Severity.ERROR,
                    f"schema rule '{rule_name}' raised an exception",
                ))

        result = ValidationResult(path=doc.path, violations=tuple(violations))
        logger.debug("schema_validated", path=doc.path, summary=result.summary())
        return result


def validate(doc: Document) -> ValidationResult:
    """Validate ``doc`` with the default validator."""
    return SchemaValidator().validate(doc)
