"""The set of documents the engine governs.

A ``Corpus`` maps document paths to the latest accepted ``Document``
snapshot. It has no removal operation: a document leaves active use by
being committed with ``Status: deprecated`` and stays in place.
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

from kbgov.core.logging import get_logger
from kbgov.documents.model import Document
from kbgov.documents.parser import load_document

logger = get_logger(__name__)


def discover(root: Path, pattern: str = "**/*.md") -> list[Path]:
    """Document files under ``root``, sorted, skipping hidden directories."""
    files = []
    for file in sorted(root.glob(pattern)):
        if any(part.startswith(".") for part in file.relative_to(root).parts):
            continue
        if file.is_file():
            files.append(file)
    return files


def document_paths(root: Path, pattern: str = "**/*.md") -> set[str]:
    """Corpus-relative paths of every document under ``root``, without parsing."""
    return {file.relative_to(root).as_posix() for file in discover(root, pattern)}


class Corpus:
    """In-memory index of documents keyed by corpus-relative path."""

    def __init__(self, documents: list[Document] | None = None):
        self._documents: dict[str, Document] = {}
        for doc in documents or []:
            self._documents[doc.path] = doc

    @classmethod
    def load(cls, root: Path, pattern: str = "**/*.md") -> Corpus:
        """Parse every document under ``root``.

        Hidden directories (``.changelog`` and the like) are skipped.

        Raises:
            DocumentParseError: A document file is malformed.
        """
        docs = [load_document(file, root) for file in discover(root, pattern)]
        logger.info("corpus_loaded", root=str(root), documents=len(docs))
        return cls(docs)

    def get(self, path: str) -> Document | None:
        return self._documents.get(path)

    def put(self, document: Document) -> None:
        """Store a new snapshot of a document, replacing the previous one."""
        self._documents[document.path] = document

    def paths(self) -> list[str]:
        return sorted(self._documents)

    def copy(self) -> Corpus:
        return Corpus(list(self._documents.values()))

    def __contains__(self, path: object) -> bool:
        return path in self._documents

    def __iter__(self) -> Iterator[Document]:
        for path in self.paths():
            yield self._documents[path]

    def __len__(self) -> int:
        return len(self._documents)
