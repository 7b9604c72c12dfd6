"""Append-only changelog ledger and its dated JSON Lines store."""

from kbgov.ledger.ledger import ChangelogLedger
from kbgov.ledger.model import (
    CORRECTION_TAG,
    ChangelogEntry,
    ChangelogEntrySpec,
    EntryDraft,
    EntryId,
)
from kbgov.ledger.store import AppendReceipt, LedgerStore

__all__ = [
    "CORRECTION_TAG",
    "AppendReceipt",
    "ChangelogEntry",
    "ChangelogEntrySpec",
    "ChangelogLedger",
    "EntryDraft",
    "EntryId",
    "LedgerStore",
]
