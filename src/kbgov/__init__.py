"""
kb-governance: policy enforcement for a reference knowledge base.

Validates documents against the canonical section template and version
rules, routes topic keywords to canonical files, and keeps an append-only
changelog of every accepted change.

Quick start::

    from kbgov import GovernanceSettings, GovernanceState, PolicyRuleEngine, ProposedChange

    settings = GovernanceSettings(corpus_root="kb")
    state = GovernanceState.from_settings(settings)
    engine = PolicyRuleEngine.from_settings(settings)
    verdict = engine.submit(ProposedChange(doc, summary="...", reason="..."), state)
"""

__version__ = "0.1.0"

from kbgov.core import (
    GovernanceError,
    LedgerIntegrityError,
    RoutingConflict,
    SchemaViolation,
    Severity,
    ValidationResult,
    VersionViolation,
    Violation,
)
from kbgov.core.settings import GovernanceSettings
from kbgov.documents import Corpus, Document, load_document, parse_document
from kbgov.engine import (
    GovernanceState,
    PolicyRuleEngine,
    ProposedChange,
    RouteRegistration,
    Verdict,
)
from kbgov.ledger import ChangelogEntry, ChangelogLedger, EntryDraft
from kbgov.routing import RoutingIndex, RoutingTableSpec
from kbgov.validation import SchemaValidator, VersionChecker

__all__ = [
    "__version__",
    "ChangelogEntry",
    "ChangelogLedger",
    "Corpus",
    "Document",
    "EntryDraft",
    "GovernanceError",
    "GovernanceSettings",
    "GovernanceState",
    "LedgerIntegrityError",
    "PolicyRuleEngine",
    "ProposedChange",
    "RouteRegistration",
    "RoutingConflict",
    "RoutingIndex",
    "RoutingTableSpec",
    "SchemaValidator",
    "SchemaViolation",
    "Severity",
    "ValidationResult",
    "Verdict",
    "VersionChecker",
    "VersionViolation",
    "Violation",
    "load_document",
    "parse_document",
]
