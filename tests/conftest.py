"""
Shared pytest fixtures and configuration for kbgov tests.

This module provides:
- Registry cleanup for custom schema rules
- Parsed sample documents
- On-disk corpora with a routing table and ledger directory
- A deterministic ledger clock
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
import structlog

from kbgov.core.settings import GovernanceSettings
from kbgov.documents.model import Document
from kbgov.documents.parser import parse_document
from kbgov.validation.schema import clear_custom_rules
from tests._support import VALID_DOCUMENT, build_document, default_sections, write_corpus

ROUTING_TABLE = """\
version: 1
routes:
  - keyword: na
    canonical: language/na-values.md
    fallbacks: [language/overview.md]
  - keywords: [RSI, relative strength]
    canonical: indicators/rsi.md
"""


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark CLI tests as integration, everything else as unit."""
    for item in items:
        test_path = Path(item.fspath).relative_to(Path(__file__).parent)
        if test_path.parts[0] == "cli":
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Registry Cleanup
# =============================================================================


@pytest.fixture(autouse=True)
def clean_schema_rules() -> Iterator[None]:
    """Custom schema rules never leak between tests."""
    clear_custom_rules()
    yield
    clear_custom_rules()


@pytest.fixture(autouse=True)
def reset_logging() -> Iterator[None]:
    """CLI runs configure logging against captured streams; undo it."""
    yield
    structlog.reset_defaults()


# =============================================================================
# Documents
# =============================================================================


@pytest.fixture
def valid_doc() -> Document:
    """A fully compliant document: v6, typed na, five canonical sections."""
    return parse_document(VALID_DOCUMENT, "language/na-values.md")


@pytest.fixture
def make_doc():
    """Factory: ``make_doc(path, **build_document_kwargs)`` → parsed Document."""

    def _make(path: str = "language/na-values.md", **kwargs) -> Document:
        return parse_document(build_document(**kwargs), path)

    return _make


# =============================================================================
# On-disk corpus
# =============================================================================


@pytest.fixture
def corpus_root(tmp_path: Path) -> Path:
    """Three valid documents plus a routing table under ``tmp_path/kb``."""
    root = tmp_path / "kb"
    write_corpus(root, {
        "language/na-values.md": VALID_DOCUMENT,
        "language/overview.md": build_document(title="Language overview"),
        "indicators/rsi.md": build_document(
            title="RSI",
            sections=default_sections("//@version=6\nfloat rsi = na\n"),
        ),
    })
    (root / "routing.yaml").write_text(ROUTING_TABLE, encoding="utf-8")
    return root


@pytest.fixture
def settings(corpus_root: Path) -> GovernanceSettings:
    return GovernanceSettings(corpus_root=corpus_root)


# =============================================================================
# Deterministic clock
# =============================================================================


class StepClock:
    """Returns ``start`` then advances by ``step`` on each call."""

    def __init__(self, start: datetime, step: timedelta = timedelta(minutes=1)):
        self.now = start
        self.step = step

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + self.step
        return current


@pytest.fixture
def clock() -> StepClock:
    return StepClock(datetime(2026, 10, 17, 9, 0, tzinfo=UTC))
