"""Data models for knowledge-base documents.

Frozen dataclasses representing one parsed document: its status block,
its ordered sections and its embedded code samples. A ``Document`` is an
immutable snapshot; validators read it, they never modify it, and a new
version of a document is a new ``Document`` instance.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date
from enum import Enum

# ---------------------------------------------------------------------------
# Controlled vocabularies
# ---------------------------------------------------------------------------


class Confidence(Enum):
    """How far a document's content has been verified."""

    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class Lifecycle(Enum):
    """Document lifecycle. DEPRECATED is terminal; documents are never deleted."""

    ACTIVE = "active"
    DEPRECATED = "deprecated"


class Behavior(Enum):
    """Whether a document claims to document executable behavior."""

    EXECUTABLE = "executable"
    CONCEPTUAL = "conceptual"


VALID_CONFIDENCE = {e.value for e in Confidence}
VALID_LIFECYCLE = {e.value for e in Lifecycle}
VALID_BEHAVIOR = {e.value for e in Behavior}

SCOPE = "Scope"
CANONICAL_RULES = "Canonical Rules"
EXAMPLES = "Examples"
PITFALLS = "Pitfalls"
REFERENCES = "References"

# Required relative order of the canonical sections.
CANONICAL_SECTIONS: tuple[str, ...] = (SCOPE, CANONICAL_RULES, EXAMPLES, PITFALLS, REFERENCES)

_SECTION_ALIASES = {
    "scope": SCOPE,
    "canonical rules": CANONICAL_RULES,
    "rules": CANONICAL_RULES,
    "examples": EXAMPLES,
    "example": EXAMPLES,
    "pitfalls": PITFALLS,
    "references": REFERENCES,
}

_LIST_ITEM = re.compile(r"^\s*(?:[-*+]|\d+[.)])\s+(?P<text>\S.*)$")


def canonical_section_name(name: str) -> str | None:
    """Map a heading to its canonical section name, or None if non-canonical."""
    return _SECTION_ALIASES.get(" ".join(name.split()).casefold())


# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DocumentStatus:
    """Parsed status block of a document.

    Values that could not be parsed are ``None``; the original text is kept
    in ``raw`` so the schema validator can report it.

    Attributes:
        confidence: Verification level.
        last_updated: Date of the last accepted change.
        provenance: Optional source reference.
        lifecycle: ACTIVE or DEPRECATED.
        raw: Header values exactly as written, keyed by lowercase field name.
    """

    confidence: Confidence | None = None
    last_updated: date | None = None
    provenance: str | None = None
    lifecycle: Lifecycle = Lifecycle.ACTIVE
    raw: dict[str, str] = field(default_factory=dict, compare=False, hash=False)

    @property
    def is_deprecated(self) -> bool:
        return self.lifecycle == Lifecycle.DEPRECATED


@dataclass(frozen=True)
class Section:
    """A named block of a document.

    Attributes:
        name: Heading text as written.
        body: Free-text body, code fences included.
        line: 1-based line of the heading.
    """

    name: str
    body: str = ""
    line: int = 0

    @property
    def canonical_name(self) -> str | None:
        return canonical_section_name(self.name)

    @property
    def is_canonical(self) -> bool:
        return self.canonical_name is not None

    @property
    def is_populated(self) -> bool:
        return bool(self.body.strip())

    @property
    def entries(self) -> tuple[str, ...]:
        """Markdown list items of the body."""
        items = []
        for line in self.body.splitlines():
            match = _LIST_ITEM.match(line)
            if match:
                items.append(match.group("text").strip())
        return tuple(items)


@dataclass(frozen=True)
class CodeSample:
    """A fenced code block embedded in a document.

    Attributes:
        document_path: Path of the owning document.
        position: 1-based index of the sample within the document.
        section: Name of the section containing the sample.
        line: 1-based line of the opening fence.
        text: Raw sample text, without the fences.
        version_tags: Every version declaration found, in order (``"v6"``).
    """

    document_path: str
    position: int
    section: str
    line: int
    text: str
    version_tags: tuple[str, ...] = ()

    @property
    def distinct_tags(self) -> tuple[str, ...]:
        return tuple(dict.fromkeys(self.version_tags))

    @property
    def version_tag(self) -> str | None:
        """The declared tag, or None when zero or several distinct tags are declared."""
        tags = self.distinct_tags
        return tags[0] if len(tags) == 1 else None

    @property
    def label(self) -> str:
        return f"sample #{self.position} (line {self.line})"


@dataclass(frozen=True)
class Document:
    """One knowledge-base file.

    Attributes:
        path: Unique corpus-relative POSIX path.
        title: First-level heading, if any.
        status: Parsed status block, or None when the header declares none.
        behavior: Whether the document documents executable behavior.
        sections: Ordered sections.
        samples: Embedded code samples in document order.
        prose_lines: ``(line_number, text)`` for every line outside code fences.
    """

    path: str
    title: str = ""
    status: DocumentStatus | None = None
    behavior: Behavior = Behavior.EXECUTABLE
    sections: tuple[Section, ...] = ()
    samples: tuple[CodeSample, ...] = ()
    prose_lines: tuple[tuple[int, str], ...] = ()

    @property
    def is_executable(self) -> bool:
        return self.behavior == Behavior.EXECUTABLE

    @property
    def is_deprecated(self) -> bool:
        return self.status is not None and self.status.is_deprecated

    @property
    def is_stub(self) -> bool:
        """True when no canonical section has a populated body."""
        return not any(s.is_canonical and s.is_populated for s in self.sections)

    def section(self, canonical: str) -> Section | None:
        """First section whose canonical name is ``canonical``."""
        for s in self.sections:
            if s.canonical_name == canonical:
                return s
        return None

    def has_section(self, canonical: str) -> bool:
        return self.section(canonical) is not None
