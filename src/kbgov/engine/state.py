"""Shared knowledge-base state and the atomic commit.

``GovernanceState`` is the explicit handle on everything a commit mutates:
the corpus, the changelog ledger and the routing index. It is passed into
the engine, never held as module-level state, so validation stays pure.

Commit is one unit of work under one exclusive lock::

    commit(change)
    │
    ├── 1. stage     routing copy + register routes     (RoutingConflict)
    │                ledger.prepare(draft)              (LedgerIntegrityError)
    ├── 2. persist   ledger line  ─┐
    │                routing table ┴─ failure → undo both writes
    │                                  undo failure → CommitIntegrityError
    └── 3. swap      ledger.accept (failure → undo), routing index, corpus

Nothing in memory changes until every write has succeeded, so a refused or
failed commit leaves the ledger and the routing index exactly as they were.
"""

from __future__ import annotations

import os
import tempfile
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from kbgov.core.errors import CommitIntegrityError, ErrorCategory, GovernanceError, LedgerIntegrityError
from kbgov.core.logging import get_logger
from kbgov.core.settings import GovernanceSettings
from kbgov.documents.corpus import Corpus
from kbgov.ledger.ledger import ChangelogLedger
from kbgov.ledger.model import ChangelogEntry, EntryDraft, utcnow
from kbgov.ledger.store import AppendReceipt, LedgerStore
from kbgov.routing.index import RoutingIndex
from kbgov.routing.table import RoutingTableSpec

if TYPE_CHECKING:
    from kbgov.engine.engine import ProposedChange

logger = get_logger(__name__)


@dataclass
class _Written:
    """What a commit has put on disk so far."""

    receipt: AppendReceipt | None = None
    routing_written: bool = False
    previous_routing: str | None = None


class GovernanceState:
    """Corpus, ledger and routing index, mutated only through ``commit``.

    Args:
        corpus: Latest accepted document snapshots.
        ledger: Changelog ledger, usually bound to ``corpus`` for path checks.
        routing: Keyword routing index.
        routing_table_path: Where the routing table is persisted; ``None``
            keeps routing in memory only.
    """

    def __init__(
        self,
        corpus: Corpus,
        ledger: ChangelogLedger,
        routing: RoutingIndex,
        *,
        routing_table_path: Path | None = None,
    ):
        self.corpus = corpus
        self.ledger = ledger
        self.routing = routing
        self.routing_table_path = routing_table_path
        self._lock = threading.Lock()

    @classmethod
    def in_memory(cls, corpus: Corpus | None = None) -> GovernanceState:
        """State with no persistence, for tests and dry runs."""
        corpus = corpus if corpus is not None else Corpus()
        return cls(corpus, ChangelogLedger(known=corpus), RoutingIndex(known=corpus))

    @classmethod
    def from_settings(cls, settings: GovernanceSettings) -> GovernanceState:
        """Load the corpus, ledger history and routing table from disk.

        Raises:
            DocumentParseError: A corpus document is malformed.
            LedgerIntegrityError: Persisted history does not verify.
            ConfigError: The routing table is unreadable or invalid.
            RoutingError: The routing table conflicts or names unknown documents.
        """
        corpus = Corpus.load(settings.corpus_root)
        ledger = ChangelogLedger.open(LedgerStore(settings.resolved_ledger_dir), known=corpus)
        table_path = settings.resolved_routing_table
        if table_path.exists():
            routing = RoutingIndex.from_table(RoutingTableSpec.from_yaml_file(table_path), known=corpus)
        else:
            routing = RoutingIndex(known=corpus)
        return cls(corpus, ledger, routing, routing_table_path=table_path)

    def commit(self, change: ProposedChange) -> ChangelogEntry:
        """Apply an accepted change atomically.

        Records a ledger entry for the change, registers its routes with the
        document as canonical target, and stores the new document snapshot.

        Returns:
            The committed ledger entry.

        Raises:
            RoutingConflict: A route conflicts with an existing registration.
            InvalidRouteError: A route names an unknown document.
            LedgerIntegrityError: The ledger refuses the entry.
            GovernanceError: A write failed; the commit was rolled back.
            CommitIntegrityError: A write failed and could not be rolled back.
        """
        doc = change.document
        with self._lock:
            known = set(self.corpus.paths()) | {doc.path}

            staged_routing = self.routing.copy(known=known)
            for route in change.routes:
                staged_routing.register(route.keyword, doc.path, route.fallbacks)

            draft = EntryDraft(
                date=change.date or utcnow().date(),
                summary=change.summary,
                reason=change.reason,
                impacted_paths=frozenset({doc.path}) | frozenset(change.impacted_paths),
                breaking=change.breaking,
            )
            entry = self.ledger.prepare(draft, known=known)

            written = self._persist(entry, staged_routing if change.routes else None)
            try:
                self.ledger.accept(entry)
            except LedgerIntegrityError:
                self._undo(entry, written)
                raise
            self.routing = staged_routing.copy(known=self.corpus)
            self.corpus.put(doc)

        logger.info(
            "change_committed",
            path=doc.path,
            entry_id=entry.entry_id,
            routes=len(change.routes),
        )
        return entry

    def _persist(self, entry: ChangelogEntry, routing: RoutingIndex | None) -> _Written:
        store = self.ledger.store
        written = _Written()
        if store is not None:
            try:
                written.receipt = store.append(entry)
            except OSError as exc:
                raise GovernanceError(
                    f"commit aborted: cannot write ledger: {exc}",
                    category=ErrorCategory.LEDGER,
                    cause=exc,
                ).with_context(entry_id=entry.entry_id) from exc
        if routing is None or self.routing_table_path is None:
            return written
        path = self.routing_table_path
        try:
            previous = path.read_text(encoding="utf-8") if path.exists() else None
            self._write_routing_table(routing.to_table())
        except OSError as exc:
            self._undo(entry, written)
            raise GovernanceError(
                f"commit aborted: cannot write routing table: {exc}",
                category=ErrorCategory.CONFIG,
                cause=exc,
            ).with_context(entry_id=entry.entry_id, path=str(path)) from exc
        written.routing_written = True
        written.previous_routing = previous
        return written

    def _undo(self, entry: ChangelogEntry, written: _Written) -> None:
        """Remove everything ``_persist`` wrote for ``entry``.

        Raises:
            CommitIntegrityError: A write could not be undone.
        """
        try:
            if written.routing_written:
                path = self.routing_table_path
                if written.previous_routing is None:
                    path.unlink(missing_ok=True)
                else:
                    self._replace_file(path, written.previous_routing)
            if written.receipt is not None:
                self.ledger.store.rollback(written.receipt)
        except OSError as exc:
            logger.critical("commit_rollback_failed", entry_id=entry.entry_id, exc_info=True)
            raise CommitIntegrityError(
                "commit failed after writing to disk, and rollback failed",
                cause=exc,
            ).with_context(entry_id=entry.entry_id) from exc
        logger.warning("commit_rolled_back", entry_id=entry.entry_id)

    def _write_routing_table(self, table: RoutingTableSpec) -> None:
        """Replace the routing table file atomically."""
        self._replace_file(self.routing_table_path, table.to_yaml())

    @staticmethod
    def _replace_file(path: Path, text: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(text)
            os.replace(tmp, path)
        except OSError:
            Path(tmp).unlink(missing_ok=True)
            raise
