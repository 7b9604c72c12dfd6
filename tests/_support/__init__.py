"""
Test support utilities for kbgov tests.

Builders for knowledge-base document text and on-disk corpora that don't
fit as pytest fixtures but are shared across test modules.
"""

from __future__ import annotations

from pathlib import Path

FENCE = "```"

DEFAULT_HEADER = {
    "Confidence": "MEDIUM",
    "Last-Updated": "2026-01-05",
}

TYPED_NA_SAMPLE = "//@version=6\nfloat x = na\n"


def code_block(body: str, lang: str = "pine") -> str:
    """Wrap ``body`` in a fenced code block."""
    if not body.endswith("\n"):
        body += "\n"
    return f"{FENCE}{lang}\n{body}{FENCE}"


def default_sections(sample: str = TYPED_NA_SAMPLE) -> list[tuple[str, str]]:
    """The five canonical sections, fully populated, in order."""
    return [
        ("Scope", "How to initialize variables with na."),
        ("Canonical Rules", "- Always declare a type when initializing with na."),
        ("Examples", code_block(sample)),
        ("Pitfalls", "- An untyped na initialization fails to compile."),
        ("References", "- https://example.org/na"),
    ]


def build_document(
    *,
    title: str = "Typed na values",
    header: dict[str, str] | None = None,
    sections: list[tuple[str, str]] | None = None,
) -> str:
    """Render document text from a header mapping and ``(name, body)`` sections."""
    header = DEFAULT_HEADER if header is None else header
    lines = [f"# {title}"] if title else []
    lines.extend(f"{key}: {value}" for key, value in header.items())
    lines.append("")
    for name, body in default_sections() if sections is None else sections:
        lines.append(f"## {name}")
        lines.append(body)
        lines.append("")
    return "\n".join(lines)


VALID_DOCUMENT = build_document()


def write_corpus(root: Path, documents: dict[str, str]) -> Path:
    """Write ``{relative_path: text}`` under ``root`` and return ``root``."""
    for rel, text in documents.items():
        file = root / rel
        file.parent.mkdir(parents=True, exist_ok=True)
        file.write_text(text, encoding="utf-8")
    return root
