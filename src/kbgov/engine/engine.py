"""Policy Rule Engine — verdicts for proposed document changes.

The engine runs the Schema Validator and the Version Consistency Checker
concurrently over the same immutable ``Document`` snapshot, merges their
findings in a fixed order (schema, then version, then engine policy) and
returns a ``Verdict``. Any ERROR-severity finding rejects the change. An
accepted change is committed through ``GovernanceState.commit``, which
appends the ledger entry and updates the routing index as one unit.

Architecture::

    ProposedChange ──► PolicyRuleEngine.evaluate
                         │
                         ├── SchemaValidator.validate ─┐  ThreadPoolExecutor
                         ├── VersionChecker.check ─────┤
                         └── policy checks (E001 E002) ┘
                         │
                         ▼
                       Verdict{accepted, violations}
                         │ accepted
                         ▼
                       GovernanceState.commit ──► ledger + routing + corpus

Example::

    engine = PolicyRuleEngine()
    verdict = engine.submit(ProposedChange(doc, summary="Add RSI", reason="New"), state)
    if not verdict.accepted:
        for v in verdict.errors:
            print(v)
"""

from __future__ import annotations

import datetime as dt
import threading
from collections.abc import Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from typing import Any

from kbgov.core.diagnostics import Severity, ValidationResult, Violation, ViolationKind
from kbgov.core.logging import LogContext, get_logger
from kbgov.core.settings import GovernanceSettings
from kbgov.documents.corpus import Corpus
from kbgov.documents.model import Document
from kbgov.engine.state import GovernanceState
from kbgov.ledger.model import EntryId
from kbgov.validation.schema import SchemaValidator
from kbgov.validation.versions import VersionChecker

logger = get_logger(__name__)


@dataclass(frozen=True)
class RouteRegistration:
    """A keyword to route to the changed document on commit."""

    keyword: str
    fallbacks: tuple[str, ...] = ()


@dataclass(frozen=True)
class ProposedChange:
    """A new or edited document together with its provenance.

    Attributes:
        document: The proposed document snapshot.
        summary: One-line description for the changelog.
        reason: Why the change is made.
        breaking: Whether the change breaks readers of the old content.
        date: Attributed changelog date (defaults to today, UTC).
        routes: Keywords to route to this document.
        impacted_paths: Other documents touched by the change.
    """

    document: Document
    summary: str
    reason: str
    breaking: bool = False
    date: dt.date | None = None
    routes: tuple[RouteRegistration, ...] = ()
    impacted_paths: frozenset[str] = field(default_factory=frozenset)

    @property
    def path(self) -> str:
        return self.document.path


@dataclass(frozen=True)
class Verdict:
    """Outcome of evaluating, and possibly committing, a proposed change."""

    path: str
    accepted: bool
    result: ValidationResult
    entry_id: EntryId | None = None

    @property
    def violations(self) -> list[Violation]:
        return list(self.result.violations)

    @property
    def errors(self) -> list[Violation]:
        return self.result.errors

    @property
    def warnings(self) -> list[Violation]:
        return self.result.warnings

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "accepted": self.accepted,
            "entry_id": self.entry_id,
            "violations": [v.to_dict() for v in self.result.violations],
        }


def _policy_violation(path: str, code: str, message: str) -> Violation:
    return Violation(
        code=code,
        severity=Severity.ERROR,
        kind=ViolationKind.POLICY,
        message=message,
        path=path,
    )


class PolicyRuleEngine:
    """Evaluate proposed changes and commit the accepted ones.

    Args:
        schema_validator: Defaults to a ``SchemaValidator`` with built-in rules.
        version_checker: Defaults to a ``VersionChecker`` with default marker
            and sentinel.
        max_workers: Thread pool size for batch and corpus validation.
    """

    def __init__(
        self,
        schema_validator: SchemaValidator | None = None,
        version_checker: VersionChecker | None = None,
        *,
        max_workers: int = 4,
    ):
        self.schema_validator = schema_validator or SchemaValidator()
        self.version_checker = version_checker or VersionChecker()
        self.max_workers = max(1, max_workers)

    @classmethod
    def from_settings(cls, settings: GovernanceSettings) -> PolicyRuleEngine:
        return cls(
            version_checker=VersionChecker(
                legacy_marker=settings.legacy_marker,
                sentinel=settings.sentinel,
                current_version=settings.current_version,
            ),
            max_workers=settings.max_workers,
        )

    # ------------------------------------------------------------------ #
    # Single change
    # ------------------------------------------------------------------ #

    def validate_document(self, doc: Document) -> ValidationResult:
        """Schema and version findings for one document, run concurrently."""
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="kbgov-validate") as pool:
            schema = pool.submit(self.schema_validator.validate, doc)
            versions = pool.submit(self.version_checker.check, doc)
            return schema.result().merge(versions.result())

    def evaluate(self, change: ProposedChange, state: GovernanceState | None = None) -> Verdict:
        """Verdict for ``change``; ``state`` enables checks against the current corpus."""
        with LogContext(document=change.path):
            result = self.validate_document(change.document).merge(self._policy_checks(change, state))
            verdict = Verdict(path=change.path, accepted=result.passed, result=result)
            logger.info(
                "change_evaluated",
                accepted=verdict.accepted,
                errors=len(result.errors),
                warnings=len(result.warnings),
            )
        return verdict

    def submit(self, change: ProposedChange, state: GovernanceState) -> Verdict:
        """Evaluate ``change`` and commit it if accepted.

        Raises:
            RoutingError: A requested route conflicts or is invalid.
            LedgerIntegrityError: The ledger refuses the entry.
            CommitIntegrityError: The commit failed and could not be rolled back.
        """
        verdict = self.evaluate(change, state)
        if not verdict.accepted:
            logger.info("change_rejected", path=change.path, codes=[v.code for v in verdict.errors])
            return verdict
        entry = state.commit(change)
        return replace(verdict, entry_id=entry.entry_id)

    def _policy_checks(self, change: ProposedChange, state: GovernanceState | None) -> ValidationResult:
        violations = []
        if not change.summary.strip() or not change.reason.strip():
            violations.append(_policy_violation(
                change.path, "E001", "change needs a non-empty summary and reason",
            ))
        if state is not None:
            previous = state.corpus.get(change.path)
            if previous is not None and previous.is_deprecated and not change.document.is_deprecated:
                violations.append(_policy_violation(
                    change.path, "E002", "deprecated document cannot be re-activated",
                ))
        return ValidationResult(path=change.path, violations=tuple(violations))

    # ------------------------------------------------------------------ #
    # Batches
    # ------------------------------------------------------------------ #

    def evaluate_batch(
        self,
        changes: Sequence[ProposedChange],
        state: GovernanceState | None = None,
        *,
        cancel: threading.Event | None = None,
    ) -> list[Verdict]:
        """Evaluate many changes in parallel.

        Cancellation is checked once per change before it starts; changes
        not started when ``cancel`` is set are skipped. Verdicts keep input
        order.
        """
        cancel = cancel or threading.Event()

        def run(change: ProposedChange) -> Verdict | None:
            if cancel.is_set():
                return None
            return self.evaluate(change, state)

        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="kbgov-batch") as pool:
            outcomes = list(pool.map(run, changes))
        verdicts = [v for v in outcomes if v is not None]
        if len(verdicts) < len(changes):
            logger.info("batch_cancelled", evaluated=len(verdicts), total=len(changes))
        return verdicts

    def run_batch(
        self,
        changes: Iterable[ProposedChange],
        state: GovernanceState,
        *,
        cancel: threading.Event | None = None,
    ) -> list[Verdict]:
        """Evaluate and commit changes one at a time, stopping between changes on cancel."""
        verdicts = []
        for change in changes:
            if cancel is not None and cancel.is_set():
                logger.info("batch_cancelled", evaluated=len(verdicts))
                break
            verdicts.append(self.submit(change, state))
        return verdicts

    def validate_corpus(
        self,
        corpus: Corpus,
        *,
        cancel: threading.Event | None = None,
    ) -> list[ValidationResult]:
        """Validate every stored document, in path order."""
        cancel = cancel or threading.Event()

        def run(doc: Document) -> ValidationResult | None:
            if cancel.is_set():
                return None
            return self.schema_validator.validate(doc).merge(self.version_checker.check(doc))

        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="kbgov-corpus") as pool:
            results = [r for r in pool.map(run, list(corpus)) if r is not None]
        logger.info(
            "corpus_validated",
            documents=len(results),
            failed=sum(1 for r in results if not r.passed),
        )
        return results
