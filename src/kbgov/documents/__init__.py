"""Document model, parser and corpus for knowledge-base files."""

from kbgov.documents.corpus import Corpus
from kbgov.documents.model import (
    CANONICAL_SECTIONS,
    Behavior,
    CodeSample,
    Confidence,
    Document,
    DocumentStatus,
    Lifecycle,
    Section,
)
from kbgov.documents.parser import load_document, parse_document

__all__ = [
    "CANONICAL_SECTIONS",
    "Behavior",
    "CodeSample",
    "Confidence",
    "Corpus",
    "Document",
    "DocumentStatus",
    "Lifecycle",
    "Section",
    "load_document",
    "parse_document",
]
