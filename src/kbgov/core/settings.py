"""Settings for the governance engine.

Configuration is environment-driven and validated at startup. Every field
can be set through a ``KBGOV_``-prefixed environment variable or a ``.env``
file; CLI options override both.

Examples:
    >>> from kbgov.core.settings import GovernanceSettings
    >>> s = GovernanceSettings(corpus_root="docs/kb")
    >>> s.resolved_ledger_dir
    PosixPath('docs/kb/.changelog')

Tags:
    settings, configuration, pydantic, environment, kbgov
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GovernanceSettings(BaseSettings):
    """Settings shared by the CLI and library entry points.

    Fields
    ──────
    corpus_root     : Directory holding the Markdown documents
    ledger_dir      : Dated changelog files (default ``<corpus_root>/.changelog``)
    routing_table   : Static routing table (default ``<corpus_root>/routing.yaml``)
    log_level       : Structlog log level
    json_logs       : Render logs as JSON instead of console output
    max_workers     : Thread pool size for batch validation
    legacy_marker   : Literal label that marks superseded behavior in prose
    sentinel        : The typeless "not available" value
    current_version : Language version assumed for documents without a single
                      declared version (legacy-reference check only)
    """

    model_config = SettingsConfigDict(
        env_prefix="KBGOV_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Corpus ───────────────────────────────────────────────────
    corpus_root: Path = Path("kb")
    ledger_dir: Path | None = None
    routing_table: Path | None = None

    # ── Observability ────────────────────────────────────────────
    log_level: str = "WARNING"
    json_logs: bool = False

    # ── Engine ───────────────────────────────────────────────────
    max_workers: int = Field(default=4, ge=1)
    legacy_marker: str = Field(default="[LEGACY]", min_length=1)
    sentinel: str = Field(default="na", pattern=r"^[A-Za-z_]\w*$")
    current_version: int | None = Field(default=None, ge=1)

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        upper = value.upper()
        if upper not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {value}")
        return upper

    @property
    def resolved_ledger_dir(self) -> Path:
        return self.ledger_dir if self.ledger_dir is not None else self.corpus_root / ".changelog"

    @property
    def resolved_routing_table(self) -> Path:
        if self.routing_table is not None:
            return self.routing_table
        return self.corpus_root / "routing.yaml"
