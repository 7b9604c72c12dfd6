"""Tests for kbgov.core.settings and kbgov.core.logging."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from kbgov.core.logging import LogContext, configure_logging, get_logger
from kbgov.core.settings import GovernanceSettings


class TestGovernanceSettings:
    def test_defaults(self, monkeypatch):
        for var in ("KBGOV_CORPUS_ROOT", "KBGOV_LOG_LEVEL", "KBGOV_MAX_WORKERS"):
            monkeypatch.delenv(var, raising=False)
        s = GovernanceSettings()
        assert s.corpus_root == Path("kb")
        assert s.resolved_ledger_dir == Path("kb/.changelog")
        assert s.resolved_routing_table == Path("kb/routing.yaml")
        assert s.max_workers == 4
        assert s.legacy_marker == "[LEGACY]"
        assert s.sentinel == "na"

    def test_explicit_paths_win(self, tmp_path):
        s = GovernanceSettings(corpus_root=tmp_path, ledger_dir=tmp_path / "log", routing_table=tmp_path / "r.yaml")
        assert s.resolved_ledger_dir == tmp_path / "log"
        assert s.resolved_routing_table == tmp_path / "r.yaml"

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("KBGOV_CORPUS_ROOT", "docs/kb")
        monkeypatch.setenv("KBGOV_MAX_WORKERS", "8")
        s = GovernanceSettings()
        assert s.corpus_root == Path("docs/kb")
        assert s.max_workers == 8

    def test_log_level_normalized(self):
        assert GovernanceSettings(log_level="debug").log_level == "DEBUG"

    def test_unknown_log_level_rejected(self):
        with pytest.raises(ValidationError):
            GovernanceSettings(log_level="chatty")

    def test_max_workers_must_be_positive(self):
        with pytest.raises(ValidationError):
            GovernanceSettings(max_workers=0)


class TestLogging:
    def test_configure_and_log(self, capsys):
        configure_logging(level="INFO", json_format=True)
        with LogContext(document="a.md"):
            get_logger("kbgov.test").info("rule_checked", code="S004")
        err = capsys.readouterr().err
        assert "rule_checked" in err
        assert '"document": "a.md"' in err
        configure_logging(level="WARNING", json_format=False)
