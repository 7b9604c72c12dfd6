"""Tests for kbgov.ledger.ledger — the append-only changelog."""

import dataclasses
import json
from datetime import date

import pytest

from kbgov.core.errors import LedgerIntegrityError
from kbgov.ledger.ledger import ChangelogLedger
from kbgov.ledger.model import EntryDraft
from kbgov.ledger.store import LedgerStore

KNOWN = {"language/na-values.md", "indicators/rsi.md"}


def _draft(on=date(2026, 10, 1), paths=("language/na-values.md",), summary="Document typed na", **kwargs):
    return EntryDraft(
        date=on,
        summary=summary,
        reason=kwargs.pop("reason", "Untyped na fails to compile"),
        impacted_paths=frozenset(paths),
        **kwargs,
    )


@pytest.fixture
def ledger(clock) -> ChangelogLedger:
    return ChangelogLedger(known=KNOWN, clock=clock)


class TestAppend:
    def test_append_assigns_sequential_ids(self, ledger):
        assert ledger.append(_draft()) == "CL-000001"
        assert ledger.append(_draft(paths=("indicators/rsi.md",))) == "CL-000002"
        assert len(ledger) == 2
        assert ledger.get("CL-000002").impacted_paths == frozenset({"indicators/rsi.md"})

    def test_unknown_path_refused(self, ledger):
        ledger.append(_draft())
        before = ledger.entries_since(date(2000, 1, 1))
        with pytest.raises(LedgerIntegrityError) as exc_info:
            ledger.append(_draft(paths=("language/na-values.md", "indicators/macd.md")))
        assert exc_info.value.context.path == "indicators/macd.md"
        assert ledger.entries_since(date(2000, 1, 1)) == before

    def test_empty_impacted_paths_refused(self, ledger):
        with pytest.raises(LedgerIntegrityError, match="no impacted paths"):
            ledger.append(_draft(paths=()))
        assert len(ledger) == 0

    def test_blank_summary_refused(self, ledger):
        with pytest.raises(LedgerIntegrityError):
            ledger.append(_draft(summary="  "))

    def test_unbound_ledger_accepts_any_path(self, clock):
        ledger = ChangelogLedger(clock=clock)
        ledger.append(_draft(paths=("anything.md",)))
        assert len(ledger) == 1

    def test_known_override(self, ledger):
        entry_id = ledger.append(_draft(paths=("new/doc.md",)), known=KNOWN | {"new/doc.md"})
        assert entry_id == "CL-000001"


class TestOrdering:
    def test_insertion_order_survives_clock_skew(self, ledger):
        later = ledger.append(_draft(on=date(2026, 5, 1)))
        earlier = ledger.append(_draft(on=date(2026, 3, 1)))
        assert [e.entry_id for e in ledger.entries_since(date(2026, 1, 1))] == [later, earlier]

    def test_entries_since_filters_by_date(self, ledger):
        kept = ledger.append(_draft(on=date(2026, 5, 1)))
        ledger.append(_draft(on=date(2026, 3, 1)))
        assert [e.entry_id for e in ledger.entries_since(date(2026, 4, 1))] == [kept]
        assert [e.entry_id for e in ledger.entries_since(date(2026, 5, 1))] == [kept]


class TestCorrections:
    def test_correction_is_a_new_entry(self, ledger):
        original_id = ledger.append(_draft())
        original = ledger.get(original_id)
        correction_id = ledger.correct(original_id, "Wrong document cited", "Fix provenance")

        correction = ledger.get(correction_id)
        assert correction.summary == "CORRECTION: Wrong document cited"
        assert correction.corrects == original_id
        assert correction.is_correction
        assert correction.impacted_paths == original.impacted_paths
        assert ledger.get(original_id) == original
        assert ledger.corrections_of(original_id) == [correction]
        assert len(ledger) == 2

    def test_correct_unknown_entry(self, ledger):
        with pytest.raises(LedgerIntegrityError):
            ledger.correct("CL-000099", "x", "y")

    def test_draft_correcting_unknown_entry(self, ledger):
        with pytest.raises(LedgerIntegrityError):
            ledger.append(_draft(corrects="CL-000042"))


class TestImmutability:
    def test_no_mutation_api(self, ledger):
        ledger.append(_draft())
        for name in ("delete", "remove", "update", "replace", "pop"):
            assert not hasattr(ledger, name)
        assert isinstance(ledger.entries, tuple)

    def test_entries_are_frozen(self, ledger):
        entry = ledger.get(ledger.append(_draft()))
        with pytest.raises(dataclasses.FrozenInstanceError):
            entry.summary = "rewritten"


class TestStaging:
    def test_prepare_does_not_mutate(self, ledger):
        entry = ledger.prepare(_draft())
        assert entry.entry_id == "CL-000001"
        assert len(ledger) == 0
        ledger.accept(entry)
        assert ledger.entries == (entry,)

    def test_stale_prepared_entry_refused(self, ledger):
        stale = ledger.prepare(_draft())
        ledger.append(_draft())
        with pytest.raises(LedgerIntegrityError):
            ledger.accept(stale)
        assert len(ledger) == 1


class TestPersistence:
    def test_reopen_restores_history(self, tmp_path, clock):
        store = LedgerStore(tmp_path / ".changelog")
        ledger = ChangelogLedger(known=KNOWN, store=store, clock=clock)
        ledger.append(_draft())
        ledger.append(_draft(paths=("indicators/rsi.md",)))

        reopened = ChangelogLedger.open(store, known=KNOWN)
        assert reopened.entries == ledger.entries
        reopened.verify()

    def test_tampered_history_detected(self, tmp_path, clock):
        store = LedgerStore(tmp_path / ".changelog")
        ledger = ChangelogLedger(known=KNOWN, store=store, clock=clock)
        ledger.append(_draft())
        ledger.append(_draft())

        file = next(store.directory.glob("*.jsonl"))
        lines = file.read_text(encoding="utf-8").splitlines()
        record = json.loads(lines[0])
        record["summary"] = "Rewritten history"
        lines[0] = json.dumps(record)
        file.write_text("\n".join(lines) + "\n", encoding="utf-8")

        with pytest.raises(LedgerIntegrityError, match="CL-000001"):
            ChangelogLedger.open(store)

    def test_removed_entry_detected(self, tmp_path, clock):
        store = LedgerStore(tmp_path / ".changelog")
        ledger = ChangelogLedger(known=KNOWN, store=store, clock=clock)
        for _ in range(3):
            ledger.append(_draft())

        file = next(store.directory.glob("*.jsonl"))
        lines = file.read_text(encoding="utf-8").splitlines()
        del lines[1]
        file.write_text("\n".join(lines) + "\n", encoding="utf-8")

        with pytest.raises(LedgerIntegrityError, match="sequence broken"):
            ChangelogLedger.open(store)
