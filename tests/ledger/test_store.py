"""Tests for kbgov.ledger.store and the entry models."""

from datetime import UTC, date, datetime, timedelta

import pytest

from kbgov.core.errors import ConfigError, LedgerIntegrityError
from kbgov.ledger.ledger import ChangelogLedger
from kbgov.ledger.model import ChangelogEntry, ChangelogEntrySpec, EntryDraft, entry_id_for
from kbgov.ledger.store import LedgerStore
from tests.conftest import StepClock


def _draft() -> EntryDraft:
    return EntryDraft(
        date=date(2026, 10, 1),
        summary="Add RSI",
        reason="New indicator",
        impacted_paths=frozenset({"indicators/rsi.md"}),
    )


class TestLedgerStore:
    def test_dated_files_by_record_date(self, tmp_path):
        clock = StepClock(datetime(2026, 10, 17, 23, 59, tzinfo=UTC), step=timedelta(minutes=2))
        store = LedgerStore(tmp_path)
        ledger = ChangelogLedger(store=store, clock=clock)
        ledger.append(_draft())
        ledger.append(_draft())
        assert sorted(p.name for p in tmp_path.glob("*.jsonl")) == ["2026-10-17.jsonl", "2026-10-18.jsonl"]
        assert [e.entry_id for e in store.load()] == ["CL-000001", "CL-000002"]

    def test_missing_directory_loads_empty(self, tmp_path):
        assert LedgerStore(tmp_path / "nope").load() == []

    def test_rollback_truncates_existing_file(self, tmp_path, clock):
        store = LedgerStore(tmp_path)
        ledger = ChangelogLedger(store=store, clock=clock)
        ledger.append(_draft())
        size = next(tmp_path.glob("*.jsonl")).stat().st_size

        entry = ledger.prepare(_draft())
        receipt = store.append(entry)
        assert not receipt.created
        store.rollback(receipt)
        assert receipt.file.stat().st_size == size
        assert len(store.load()) == 1

    def test_rollback_removes_new_file(self, tmp_path, clock):
        store = LedgerStore(tmp_path)
        entry = ChangelogLedger(clock=clock).prepare(_draft())
        receipt = store.append(entry)
        assert receipt.created
        store.rollback(receipt)
        assert not receipt.file.exists()

    def test_failed_fsync_truncates_partial_line(self, tmp_path, clock, monkeypatch):
        store = LedgerStore(tmp_path)
        ledger = ChangelogLedger(store=store, clock=clock)
        ledger.append(_draft())
        file = next(tmp_path.glob("*.jsonl"))
        before = file.read_bytes()

        def failing_fsync(fd):
            raise OSError("I/O error")

        monkeypatch.setattr("kbgov.ledger.store.os.fsync", failing_fsync)
        with pytest.raises(OSError):
            ledger.append(_draft())
        assert file.read_bytes() == before
        assert len(ledger) == 1
        monkeypatch.undo()
        assert [e.entry_id for e in ChangelogLedger.open(store).entries] == ["CL-000001"]

    def test_failed_fsync_removes_new_file(self, tmp_path, clock, monkeypatch):
        def failing_fsync(fd):
            raise OSError("I/O error")

        monkeypatch.setattr("kbgov.ledger.store.os.fsync", failing_fsync)
        store = LedgerStore(tmp_path)
        with pytest.raises(OSError):
            store.append(ChangelogLedger(clock=clock).prepare(_draft()))
        assert list(tmp_path.glob("*.jsonl")) == []

    def test_unreadable_line(self, tmp_path):
        (tmp_path / "2026-10-17.jsonl").write_text("{not json\n", encoding="utf-8")
        with pytest.raises(LedgerIntegrityError) as exc_info:
            LedgerStore(tmp_path).load()
        assert exc_info.value.context.location == "line 1"


class TestEntryModel:
    def test_entry_id_format(self):
        assert entry_id_for(7) == "CL-000007"

    def test_dict_round_trip_preserves_digest(self, clock):
        entry = ChangelogLedger(clock=clock).prepare(_draft())
        assert ChangelogEntry.from_dict(entry.to_dict()) == entry


class TestChangelogEntrySpec:
    def test_load_entry_file(self, tmp_path):
        file = tmp_path / "entry.yaml"
        file.write_text(
            "date: 2026-10-17\n"
            "summary: Document typed na\n"
            "reason: Untyped na fails to compile\n"
            "impacted_paths: [language/na-values.md]\n"
            "breaking: true\n",
            encoding="utf-8",
        )
        draft = ChangelogEntrySpec.from_yaml_file(file).to_draft()
        assert draft.date == date(2026, 10, 17)
        assert draft.impacted_paths == frozenset({"language/na-values.md"})
        assert draft.breaking
        assert draft.corrects is None

    @pytest.mark.parametrize(
        "content",
        [
            "summary: x\nreason: y\n",
            "date: 2026-10-17\nsummary: ''\nreason: y\n",
            "date: 2026-10-17\nsummary: x\nreason: y\nauthor: me\n",
            "[not, a, mapping]\n",
            "date: [\n",
        ],
    )
    def test_invalid_entry_files(self, tmp_path, content):
        file = tmp_path / "entry.yaml"
        file.write_text(content, encoding="utf-8")
        with pytest.raises(ConfigError):
            ChangelogEntrySpec.from_yaml_file(file)
