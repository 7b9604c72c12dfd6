"""Parse knowledge-base Markdown files into ``Document`` snapshots.

A document is a Markdown file whose header declares a status block,
followed by ``##`` sections. Fenced code blocks anywhere in a section are
code samples; each is expected to open with a version declaration line
(``//@version=6``). The parser only records what it finds: a missing
status block or an undeclared version is a policy finding for the
validators, not a parse error.

Malformed input raises ``DocumentParseError``:

- bytes that are not UTF-8
- a code fence that is never closed
- a header field declared twice
- an unknown ``Status`` or ``Behavior`` value

Usage::

    from kbgov.documents.parser import load_document

    doc = load_document(Path("kb/indicators/rsi.md"), root=Path("kb"))
    print(doc.status.confidence, [s.name for s in doc.sections])
"""

from __future__ import annotations

import re
from datetime import date
from pathlib import Path

from kbgov.core.errors import DocumentParseError
from kbgov.core.logging import get_logger
from kbgov.documents.model import (
    VALID_BEHAVIOR,
    VALID_CONFIDENCE,
    VALID_LIFECYCLE,
    Behavior,
    CodeSample,
    Confidence,
    Document,
    DocumentStatus,
    Lifecycle,
    Section,
)

logger = get_logger(__name__)

_TITLE = re.compile(r"^#\s+(?P<title>.+?)\s*#*\s*$")
_SECTION = re.compile(r"^##\s+(?P<name>.+?)\s*#*\s*$")
_HEADER_FIELD = re.compile(r"^(?P<key>[A-Za-z][A-Za-z _-]*?)\s*:\s*(?P<value>.*?)\s*$")
_FENCE_OPEN = re.compile(r"^\s*(?P<fence>`{3,}|~{3,})(?P<info>.*)$")
VERSION_DECLARATION = re.compile(r"^\s*//\s*@version\s*=\s*(?P<number>\d+)\s*$")

# Header field names we recognize (normalized) -> canonical key
_HEADER_KEYS = {
    "confidence": "confidence",
    "last-updated": "last-updated",
    "last updated": "last-updated",
    "last_updated": "last-updated",
    "updated": "last-updated",
    "source": "source",
    "provenance": "source",
    "status": "status",
    "behavior": "behavior",
}

# Any of these makes the status block "present". Status and Behavior do not.
_STATUS_KEYS = frozenset({"confidence", "last-updated", "source"})


def version_tag(number: str | int) -> str:
    """Render a version number as its canonical tag (``6`` → ``"v6"``)."""
    return f"v{int(number)}"


def extract_version_tags(text: str) -> tuple[str, ...]:
    """Every version declaration in ``text``, in order of appearance."""
    tags = []
    for line in text.splitlines():
        match = VERSION_DECLARATION.match(line)
        if match:
            tags.append(version_tag(match.group("number")))
    return tuple(tags)


def parse_document(text: str, path: str) -> Document:
    """Parse document text into a ``Document``.

    Args:
        text: Full file contents.
        path: Corpus-relative POSIX path, used as the document identity.

    Returns:
        The parsed Document.

    Raises:
        DocumentParseError: The text is not a well-formed document.
    """
    lines = text.splitlines()
    title = ""
    header: dict[str, str] = {}
    sections: list[Section] = []
    samples: list[CodeSample] = []
    prose: list[tuple[int, str]] = []

    current_name: str | None = None
    current_line = 0
    body: list[str] = []
    in_header = True

    fence: str | None = None
    fence_line = 0
    sample_lines: list[str] = []

    def flush_section() -> None:
        if current_name is not None:
            sections.append(Section(name=current_name, body="\n".join(body).strip("\n"), line=current_line))

    for lineno, line in enumerate(lines, start=1):
        if fence is not None:
            stripped = line.strip()
            if stripped.startswith(fence[0]) and set(stripped) == {fence[0]} and len(stripped) >= len(fence):
                sample_text = "\n".join(sample_lines)
                samples.append(CodeSample(
                    document_path=path,
                    position=len(samples) + 1,
                    section=current_name or "",
                    line=fence_line,
                    text=sample_text,
                    version_tags=extract_version_tags(sample_text),
                ))
                fence = None
                sample_lines = []
            else:
                sample_lines.append(line)
            body.append(line)
            continue

        fence_match = _FENCE_OPEN.match(line)
        if fence_match:
            in_header = False
            fence = fence_match.group("fence")
            fence_line = lineno
            body.append(line)
            continue

        section_match = _SECTION.match(line)
        if section_match:
            in_header = False
            flush_section()
            current_name = section_match.group("name")
            current_line = lineno
            body = []
            continue

        if in_header:
            title_match = _TITLE.match(line)
            if title_match and not title and not header:
                title = title_match.group("title")
                continue
            field_match = _HEADER_FIELD.match(line)
            if field_match:
                key = _HEADER_KEYS.get(" ".join(field_match.group("key").split()).casefold())
                if key is not None:
                    if key in header:
                        raise DocumentParseError(
                            f"header field '{field_match.group('key')}' declared twice",
                        ).with_context(path=path, location=f"line {lineno}")
                    header[key] = field_match.group("value")
                    continue
            if not line.strip():
                continue

        if current_name is not None:
            body.append(line)
            prose.append((lineno, line))

    if fence is not None:
        raise DocumentParseError(
            f"code fence opened at line {fence_line} is never closed",
        ).with_context(path=path, location=f"line {fence_line}")

    flush_section()

    document = Document(
        path=path,
        title=title,
        status=_parse_status(header, path),
        behavior=_parse_behavior(header, path),
        sections=tuple(sections),
        samples=tuple(samples),
        prose_lines=tuple(prose),
    )
    logger.debug(
        "document_parsed",
        path=path,
        sections=len(document.sections),
        samples=len(document.samples),
    )
    return document


def load_document(file: Path, root: Path) -> Document:
    """Read and parse one document file.

    Args:
        file: Path to the Markdown file.
        root: Corpus root; the document path is ``file`` relative to it.

    Raises:
        DocumentParseError: The file is unreadable or malformed.
    """
    rel = file.resolve().relative_to(root.resolve()).as_posix()
    try:
        text = file.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise DocumentParseError("document is not valid UTF-8", cause=exc).with_context(path=rel)
    except OSError as exc:
        raise DocumentParseError(f"cannot read document: {exc}", cause=exc).with_context(path=rel)
    return parse_document(text, rel)


# ---------------------------------------------------------------------------
# Header helpers
# ---------------------------------------------------------------------------


def _parse_status(header: dict[str, str], path: str) -> DocumentStatus | None:
    lifecycle = Lifecycle.ACTIVE
    raw_lifecycle = header.get("status", "").strip().lower()
    if raw_lifecycle:
        if raw_lifecycle not in VALID_LIFECYCLE:
            raise DocumentParseError(
                f"unknown status '{raw_lifecycle}', valid: {sorted(VALID_LIFECYCLE)}",
            ).with_context(path=path)
        lifecycle = Lifecycle(raw_lifecycle)

    if not _STATUS_KEYS.intersection(header):
        return None

    confidence = None
    raw_confidence = header.get("confidence", "").strip().upper()
    if raw_confidence in VALID_CONFIDENCE:
        confidence = Confidence(raw_confidence)

    last_updated = None
    raw_date = header.get("last-updated", "").strip()
    if raw_date:
        try:
            last_updated = date.fromisoformat(raw_date)
        except ValueError:
            last_updated = None

    provenance = header.get("source", "").strip() or None

    return DocumentStatus(
        confidence=confidence,
        last_updated=last_updated,
        provenance=provenance,
        lifecycle=lifecycle,
        raw=dict(header),
    )


def _parse_behavior(header: dict[str, str], path: str) -> Behavior:
    raw = header.get("behavior", "").strip().lower()
    if not raw:
        return Behavior.EXECUTABLE
    if raw not in VALID_BEHAVIOR:
        raise DocumentParseError(
            f"unknown behavior '{raw}', valid: {sorted(VALID_BEHAVIOR)}",
        ).with_context(path=path)
    return Behavior(raw)
