"""Tests for DocumentLoader."""

from __future__ import annotations

from pathlib import Path

import pytest

from docslm.errors import ConfigurationError
from docslm.ingestion.loader import DocumentLoader, read_document
from docslm.utils.text import TextSplitter


@pytest.fixture
def docs(tmp_path: Path) -> Path:
    root = tmp_path / "docs"
    (root / "nested").mkdir(parents=True)
    (root / "one.md").write_text("# One\nfirst", encoding="utf-8")
    (root / "nested" / "two.md").write_text("# Two\nsecond", encoding="utf-8")
    (root / "skip.txt").write_text("ignored", encoding="utf-8")
    return root


class TestReadDocument:
    def test_reads_text_and_source(self, docs: Path) -> None:
        document = read_document(docs / "one.md")

        assert document is not None
        assert document.text == "# One\nfirst"
        assert document.metadata == {"source": str(docs / "one.md"), "title": "one"}

    def test_undecodable_file(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.md"
        path.write_bytes(b"\xff\xfe\xfa")
        assert read_document(path) is None


class TestDocumentLoader:
    def test_load_documents(self, docs: Path) -> None:
        documents = DocumentLoader(docs).load_documents()

        assert [document.source for document in documents] == [
            str(docs / "nested" / "two.md"),
            str(docs / "one.md"),
        ]

    def test_custom_suffixes(self, docs: Path) -> None:
        documents = DocumentLoader(docs, suffixes=(".txt",)).load_documents()
        assert [document.text for document in documents] == ["ignored"]

    def test_missing_directory(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError):
            DocumentLoader(tmp_path / "missing").load_documents()

    def test_load_and_split(self, docs: Path) -> None:
        loader = DocumentLoader(docs, TextSplitter(chunk_size=8, chunk_overlap=0))

        chunks = loader.load_and_split()

        assert len(chunks) >= 4
        assert {chunk.source for chunk in chunks} == {str(docs / "one.md"), str(docs / "nested" / "two.md")}
