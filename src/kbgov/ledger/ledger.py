"""Changelog Ledger — append-only record of accepted changes.

The ledger is the history of the knowledge base. It has exactly one write
operation, ``append``. There is no update and no delete: correcting a past
entry means appending a ``CORRECTION`` entry that references it, and the
original stays verbatim. Entries are ordered by insertion (``sequence``),
never by their ``date`` field, and chained by SHA-256 digests so a stored
history that was edited after the fact fails to load.

Architecture:

    .. code-block:: text

        ChangelogLedger
        ┌───────────────────────────────────────────────────────────┐
        │  WRITE                         READ                       │
        │  ─────                         ────                       │
        │  append(draft) → EntryId       entries / get(entry_id)    │
        │  correct(entry_id, ...)        entries_since(date)        │
        │  prepare(draft)  (staging)     verify()                   │
        │  accept(entry)   (staging)                                │
        ├───────────────────────────────────────────────────────────┤
        │  append() refuses (LedgerIntegrityError):                 │
        │    - empty impacted_paths                                 │
        │    - impacted path not in the corpus                      │
        │    - empty summary or reason                              │
        │    - correction of an unknown entry                       │
        ├───────────────────────────────────────────────────────────┤
        │  LedgerStore: <ledger_dir>/YYYY-MM-DD.jsonl (append-only) │
        └───────────────────────────────────────────────────────────┘

Example:
    >>> ledger = ChangelogLedger(known=corpus)
    >>> entry_id = ledger.append(EntryDraft(
    ...     date=date(2026, 10, 17),
    ...     summary="Document typed na initialization",
    ...     reason="Untyped na fails to compile",
    ...     impacted_paths=frozenset({"language/na-values.md"}),
    ... ))
    >>> [e.entry_id for e in ledger.entries_since(date(2026, 1, 1))]
    ['CL-000001']
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Container, Iterator
from dataclasses import replace
from datetime import date, datetime

from kbgov.core.errors import LedgerIntegrityError
from kbgov.core.logging import get_logger
from kbgov.ledger.model import (
    CORRECTION_TAG,
    GENESIS_DIGEST,
    ChangelogEntry,
    EntryDraft,
    EntryId,
    compute_digest,
    entry_id_for,
    utcnow,
)
from kbgov.ledger.store import LedgerStore

logger = get_logger(__name__)


class ChangelogLedger:
    """Append-only, hash-chained sequence of changelog entries.

    Args:
        known: Container of existing document paths that impacted paths are
            checked against. ``None`` disables the check.
        store: Optional persistence; every append is written before it
            becomes visible.
        clock: Source of record timestamps (UTC).
    """

    def __init__(
        self,
        known: Container[str] | None = None,
        *,
        store: LedgerStore | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._known = known
        self._store = store
        self._clock = clock
        self._entries: tuple[ChangelogEntry, ...] = ()
        self._lock = threading.Lock()

    @classmethod
    def open(
        cls,
        store: LedgerStore,
        known: Container[str] | None = None,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> ChangelogLedger:
        """Load and verify the history persisted in ``store``.

        Raises:
            LedgerIntegrityError: Stored history has gaps or a broken chain.
        """
        ledger = cls(known=known, store=store, clock=clock)
        entries = tuple(store.load())
        _verify_chain(entries)
        ledger._entries = entries
        logger.info("ledger_opened", directory=str(store.directory), entries=len(entries))
        return ledger

    # =========================================================================
    # READ
    # =========================================================================

    @property
    def entries(self) -> tuple[ChangelogEntry, ...]:
        """Every entry in append order."""
        return self._entries

    @property
    def store(self) -> LedgerStore | None:
        return self._store

    @property
    def head_digest(self) -> str:
        return self._entries[-1].digest if self._entries else GENESIS_DIGEST

    def get(self, entry_id: str) -> ChangelogEntry | None:
        for entry in self._entries:
            if entry.entry_id == entry_id:
                return entry
        return None

    def entries_since(self, since: date) -> list[ChangelogEntry]:
        """Entries whose date is on or after ``since``, in append order."""
        return [e for e in self._entries if e.date >= since]

    def corrections_of(self, entry_id: str) -> list[ChangelogEntry]:
        """CORRECTION entries that reference ``entry_id``, in append order."""
        return [e for e in self._entries if e.corrects == entry_id]

    def verify(self) -> None:
        """Re-check sequence contiguity and the digest chain.

        Raises:
            LedgerIntegrityError: History does not verify.
        """
        _verify_chain(self._entries)

    # =========================================================================
    # WRITE
    # =========================================================================

    def append(self, draft: EntryDraft, *, known: Container[str] | None = None) -> EntryId:
        """Validate, persist and commit ``draft``.

        Args:
            draft: The proposed entry.
            known: Overrides the ledger's known-path container for this call.

        Returns:
            The committed entry's id.

        Raises:
            LedgerIntegrityError: The draft is refused; nothing is appended.
        """
        with self._lock:
            entry = self._prepare(draft, known)
            if self._store is not None:
                self._store.append(entry)
            self._entries = self._entries + (entry,)
        logger.info(
            "ledger_appended",
            entry_id=entry.entry_id,
            impacted=len(entry.impacted_paths),
            breaking=entry.breaking,
            correction=entry.is_correction,
        )
        return entry.entry_id

    def correct(
        self,
        entry_id: str,
        summary: str,
        reason: str,
        *,
        impacted_paths: frozenset[str] | None = None,
        on: date | None = None,
        breaking: bool = False,
    ) -> EntryId:
        """Append a CORRECTION entry referencing ``entry_id``.

        The corrected entry is retained verbatim. Impacted paths default to
        those of the corrected entry.

        Raises:
            LedgerIntegrityError: ``entry_id`` is unknown or the draft is refused.
        """
        target = self.get(entry_id)
        if target is None:
            raise LedgerIntegrityError(
                f"cannot correct unknown entry '{entry_id}'",
            ).with_context(entry_id=entry_id)
        return self.append(EntryDraft(
            date=on or self._clock().date(),
            summary=summary,
            reason=reason,
            impacted_paths=impacted_paths if impacted_paths is not None else target.impacted_paths,
            breaking=breaking,
            corrects=target.entry_id,
        ))

    def prepare(self, draft: EntryDraft, *, known: Container[str] | None = None) -> ChangelogEntry:
        """Validate ``draft`` and build the entry ``append`` would commit.

        Nothing is persisted or made visible; see ``accept``.
        """
        with self._lock:
            return self._prepare(draft, known)

    def accept(self, entry: ChangelogEntry) -> None:
        """Make a prepared, already persisted entry visible.

        Raises:
            LedgerIntegrityError: Another entry was committed since ``prepare``.
        """
        with self._lock:
            if entry.sequence != len(self._entries) + 1 or compute_digest(
                self.head_digest, entry.content()
            ) != entry.digest:
                raise LedgerIntegrityError(
                    f"entry {entry.entry_id} no longer extends the ledger head",
                ).with_context(entry_id=entry.entry_id)
            self._entries = self._entries + (entry,)
        logger.info(
            "ledger_appended",
            entry_id=entry.entry_id,
            impacted=len(entry.impacted_paths),
            breaking=entry.breaking,
            correction=entry.is_correction,
        )

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _prepare(self, draft: EntryDraft, known: Container[str] | None) -> ChangelogEntry:
        known = known if known is not None else self._known
        if not draft.impacted_paths:
            raise LedgerIntegrityError("changelog entry has no impacted paths")
        if known is not None:
            unknown = sorted(p for p in draft.impacted_paths if p not in known)
            if unknown:
                raise LedgerIntegrityError(
                    f"changelog entry references unknown document(s): {', '.join(unknown)}",
                ).with_context(path=unknown[0], unknown=unknown)
        if not draft.summary.strip() or not draft.reason.strip():
            raise LedgerIntegrityError("changelog entry needs a summary and a reason")

        summary = draft.summary.strip()
        if draft.corrects is not None:
            if not any(e.entry_id == draft.corrects for e in self._entries):
                raise LedgerIntegrityError(
                    f"cannot correct unknown entry '{draft.corrects}'",
                ).with_context(entry_id=draft.corrects)
            if not summary.startswith(CORRECTION_TAG):
                summary = f"{CORRECTION_TAG}: {summary}"

        sequence = len(self._entries) + 1
        unsigned = ChangelogEntry(
            entry_id=entry_id_for(sequence),
            sequence=sequence,
            date=draft.date,
            summary=summary,
            reason=draft.reason.strip(),
            impacted_paths=frozenset(draft.impacted_paths),
            breaking=draft.breaking,
            corrects=draft.corrects,
            recorded_at=self._clock(),
            digest="",
        )
        return replace(unsigned, digest=compute_digest(self.head_digest, unsigned.content()))

    def __iter__(self) -> Iterator[ChangelogEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


def _verify_chain(entries: tuple[ChangelogEntry, ...]) -> None:
    previous = GENESIS_DIGEST
    for expected, entry in enumerate(entries, start=1):
        if entry.sequence != expected or entry.entry_id != entry_id_for(expected):
            raise LedgerIntegrityError(
                f"ledger sequence broken: expected {entry_id_for(expected)}, found {entry.entry_id}",
            ).with_context(entry_id=entry.entry_id)
        if compute_digest(previous, entry.content()) != entry.digest:
            raise LedgerIntegrityError(
                f"ledger entry {entry.entry_id} does not match its digest; history was modified",
            ).with_context(entry_id=entry.entry_id)
        previous = entry.digest
