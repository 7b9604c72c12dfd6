"""Dated JSON Lines files backing the changelog ledger.

Each committed entry is one line in ``<ledger_dir>/YYYY-MM-DD.jsonl``, the
file chosen by the entry's record date. Files are only ever appended to.
Loading reads every file and orders entries by sequence, so a clock that
jumps backwards never reorders history.

The one exception to append-only is ``rollback``: a commit that fails
after its ledger line was written truncates the file back to the size it
had before, returning the ledger to its pre-transaction state.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

from kbgov.core.errors import LedgerIntegrityError
from kbgov.core.logging import get_logger
from kbgov.ledger.model import ChangelogEntry

logger = get_logger(__name__)


@dataclass(frozen=True)
class AppendReceipt:
    """Where an entry was written and how to undo it before commit completes."""

    file: Path
    previous_size: int
    created: bool


class LedgerStore:
    """Append-only dated files under ``directory``."""

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def file_for(self, entry: ChangelogEntry) -> Path:
        return self.directory / f"{entry.recorded_at.date().isoformat()}.jsonl"

    def load(self) -> list[ChangelogEntry]:
        """Every stored entry, ordered by sequence.

        Raises:
            LedgerIntegrityError: A line is not a valid entry.
        """
        if not self.directory.exists():
            return []
        entries = []
        for file in sorted(self.directory.glob("*.jsonl")):
            with file.open(encoding="utf-8") as fh:
                for lineno, line in enumerate(fh, start=1):
                    if not line.strip():
                        continue
                    try:
                        entries.append(ChangelogEntry.from_dict(json.loads(line)))
                    except (ValueError, KeyError, TypeError) as exc:
                        raise LedgerIntegrityError(
                            f"unreadable ledger line: {exc}", cause=exc,
                        ).with_context(path=str(file), location=f"line {lineno}")
        entries.sort(key=lambda e: e.sequence)
        logger.debug("ledger_loaded", directory=str(self.directory), entries=len(entries))
        return entries

    def append(self, entry: ChangelogEntry) -> AppendReceipt:
        """Write ``entry`` as one line, flushed to disk.

        A failed write leaves the file as it was before the call.

        Raises:
            OSError: The line could not be written durably.
            LedgerIntegrityError: A partial line was left behind and could not be removed.
        """
        self.directory.mkdir(parents=True, exist_ok=True)
        file = self.file_for(entry)
        created = not file.exists()
        previous_size = 0 if created else file.stat().st_size
        receipt = AppendReceipt(file=file, previous_size=previous_size, created=created)
        try:
            with file.open("a", encoding="utf-8") as fh:
                fh.write(entry.to_json() + "\n")
                fh.flush()
                os.fsync(fh.fileno())
        except OSError as exc:
            try:
                self.rollback(receipt)
            except OSError as rollback_exc:
                raise LedgerIntegrityError(
                    f"partial ledger line could not be removed: {rollback_exc}", cause=rollback_exc,
                ).with_context(path=str(file), entry_id=entry.entry_id) from exc
            raise
        logger.debug("ledger_line_written", file=str(file), entry_id=entry.entry_id)
        return receipt

    def rollback(self, receipt: AppendReceipt) -> None:
        """Undo an uncommitted append."""
        if not receipt.file.exists():
            return
        if receipt.created:
            receipt.file.unlink(missing_ok=True)
        else:
            with receipt.file.open("r+b") as fh:
                fh.truncate(receipt.previous_size)
        logger.warning("ledger_append_rolled_back", file=str(receipt.file))
