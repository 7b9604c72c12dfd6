"""Tests for kbgov.documents.corpus."""

import pytest

from kbgov.core.errors import DocumentParseError
from kbgov.documents.corpus import Corpus, document_paths
from kbgov.documents.parser import parse_document
from tests._support import VALID_DOCUMENT, build_document


class TestCorpus:
    def test_load(self, corpus_root):
        corpus = Corpus.load(corpus_root)
        assert corpus.paths() == ["indicators/rsi.md", "language/na-values.md", "language/overview.md"]
        assert "indicators/rsi.md" in corpus
        assert len(corpus) == 3

    def test_hidden_directories_skipped(self, corpus_root):
        hidden = corpus_root / ".changelog" / "notes.md"
        hidden.parent.mkdir()
        hidden.write_text("not a document", encoding="utf-8")
        assert ".changelog/notes.md" not in Corpus.load(corpus_root)
        assert ".changelog/notes.md" not in document_paths(corpus_root)

    def test_document_paths_match_load(self, corpus_root):
        assert document_paths(corpus_root) == set(Corpus.load(corpus_root).paths())

    def test_malformed_document_fails_load(self, corpus_root):
        (corpus_root / "broken.md").write_text("# T\n```pine\n//@version=6\n", encoding="utf-8")
        with pytest.raises(DocumentParseError):
            Corpus.load(corpus_root)

    def test_put_replaces_snapshot(self):
        corpus = Corpus([parse_document(VALID_DOCUMENT, "a.md")])
        newer = parse_document(build_document(title="Newer"), "a.md")
        corpus.put(newer)
        assert corpus.get("a.md").title == "Newer"
        assert len(corpus) == 1

    def test_copy_is_independent(self):
        corpus = Corpus([parse_document(VALID_DOCUMENT, "a.md")])
        clone = corpus.copy()
        clone.put(parse_document(VALID_DOCUMENT, "b.md"))
        assert "b.md" not in corpus
