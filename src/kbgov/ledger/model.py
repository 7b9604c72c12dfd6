"""Data models for the changelog ledger.

``EntryDraft`` is what a caller proposes; ``ChangelogEntry`` is what the
ledger commits, with its sequence, id, record time and chain digest
assigned. Committed entries are frozen and never change.

Entry files (``kbgov changelog append entry.yaml``)::

    date: 2026-10-17
    summary: Document typed na initialization
    reason: Untyped na caused compile errors in v6 samples
    impacted_paths:
      - language/na-values.md
    breaking: false
    corrects: CL-000004        # optional, for CORRECTION entries
"""

from __future__ import annotations

import datetime as dt
import hashlib
import json
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Any, NewType

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from kbgov.core.errors import ConfigError

EntryId = NewType("EntryId", str)

CORRECTION_TAG = "CORRECTION"
GENESIS_DIGEST = "0" * 64


def entry_id_for(sequence: int) -> EntryId:
    """Ledger id for the ``sequence``-th entry (1-based)."""
    return EntryId(f"CL-{sequence:06d}")


def utcnow() -> datetime:
    """Return timezone-aware UTC datetime."""
    return datetime.now(UTC)


@dataclass(frozen=True)
class EntryDraft:
    """A proposed changelog entry, before the ledger assigns its identity.

    Attributes:
        date: Date the change is attributed to (informational; never used for ordering).
        summary: One-line description of the change.
        reason: Why the change was made.
        impacted_paths: Documents the change touches; must be non-empty and known.
        breaking: Whether readers relying on the old content are affected.
        corrects: Entry this one corrects, for CORRECTION entries.
    """

    date: date
    summary: str
    reason: str
    impacted_paths: frozenset[str] = field(default_factory=frozenset)
    breaking: bool = False
    corrects: EntryId | None = None


@dataclass(frozen=True)
class ChangelogEntry:
    """An immutable, committed ledger record.

    Attributes:
        entry_id: ``CL-`` + zero-padded sequence.
        sequence: 1-based insertion position; the only ordering key.
        date: Attributed date from the draft.
        summary: One-line description (``CORRECTION: ...`` for corrections).
        reason: Why the change was made.
        impacted_paths: Documents the change touches.
        breaking: Breaking-change flag.
        corrects: Entry corrected by this one, if any.
        recorded_at: UTC time the entry was appended.
        digest: SHA-256 over the previous digest and this entry's content.
    """

    entry_id: EntryId
    sequence: int
    date: date
    summary: str
    reason: str
    impacted_paths: frozenset[str]
    breaking: bool
    corrects: EntryId | None
    recorded_at: datetime
    digest: str

    @property
    def is_correction(self) -> bool:
        return self.corrects is not None

    def content(self) -> dict[str, Any]:
        """Canonical JSON-safe content covered by the digest."""
        return {
            "entry_id": self.entry_id,
            "sequence": self.sequence,
            "date": self.date.isoformat(),
            "summary": self.summary,
            "reason": self.reason,
            "impacted_paths": sorted(self.impacted_paths),
            "breaking": self.breaking,
            "corrects": self.corrects,
            "recorded_at": self.recorded_at.isoformat(),
        }

    def to_dict(self) -> dict[str, Any]:
        return {**self.content(), "digest": self.digest}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True, ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ChangelogEntry:
        return cls(
            entry_id=EntryId(data["entry_id"]),
            sequence=int(data["sequence"]),
            date=date.fromisoformat(data["date"]),
            summary=data["summary"],
            reason=data["reason"],
            impacted_paths=frozenset(data["impacted_paths"]),
            breaking=bool(data["breaking"]),
            corrects=EntryId(data["corrects"]) if data.get("corrects") else None,
            recorded_at=datetime.fromisoformat(data["recorded_at"]),
            digest=data["digest"],
        )


def compute_digest(previous_digest: str, content: dict[str, Any]) -> str:
    """Chain digest: SHA-256 of the previous digest and canonical content."""
    payload = previous_digest + "|" + json.dumps(content, sort_keys=True, ensure_ascii=False)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class ChangelogEntrySpec(BaseModel):
    """Schema of a changelog entry file."""

    model_config = ConfigDict(extra="forbid")

    date: dt.date
    summary: str = Field(..., min_length=1)
    reason: str = Field(..., min_length=1)
    impacted_paths: list[str] = Field(default_factory=list)
    breaking: bool = False
    corrects: str | None = None

    def to_draft(self) -> EntryDraft:
        return EntryDraft(
            date=self.date,
            summary=self.summary.strip(),
            reason=self.reason.strip(),
            impacted_paths=frozenset(self.impacted_paths),
            breaking=self.breaking,
            corrects=EntryId(self.corrects) if self.corrects else None,
        )

    @classmethod
    def from_yaml_file(cls, path: Path | str) -> ChangelogEntrySpec:
        """Load and validate an entry file.

        Raises:
            ConfigError: The file is unreadable, not YAML, or not a valid entry.
        """
        path = Path(path)
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise ConfigError(f"cannot read entry file: {exc}", cause=exc).with_context(path=str(path))
        except yaml.YAMLError as exc:
            raise ConfigError(f"entry file is not valid YAML: {exc}", cause=exc).with_context(path=str(path))
        if not isinstance(data, dict):
            raise ConfigError("entry file must be a mapping").with_context(path=str(path))
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise ConfigError(f"invalid entry file: {exc}", cause=exc).with_context(path=str(path))
