"""Tests for the recursive text splitter."""

from __future__ import annotations

import pytest

from docslm.models import TextChunk
from docslm.utils.text import MARKDOWN_SEPARATORS, TextSplitter


class TestTextSplitter:
    def test_empty_text(self) -> None:
        assert TextSplitter().split_text("") == []

    def test_short_text_single_chunk(self) -> None:
        assert TextSplitter(chunk_size=100, chunk_overlap=10).split_text("  hello world \n") == ["hello world"]

    def test_prefers_heading_boundaries(self) -> None:
        text = "# Title\nintro\n## A\n" + "a" * 50 + "\n## B\n" + "b" * 50
        splitter = TextSplitter(chunk_size=80, chunk_overlap=0)

        chunks = splitter.split_text(text)

        assert chunks == ["# Title\nintro\n## A\n" + "a" * 50, "## B\n" + "b" * 50]

    def test_chunks_respect_size_and_overlap(self) -> None:
        text = " ".join(f"w{i}" for i in range(100))
        splitter = TextSplitter(chunk_size=50, chunk_overlap=20)

        chunks = splitter.split_text(text)

        assert len(chunks) > 1
        assert all(len(chunk) <= 50 for chunk in chunks)
        for previous, current in zip(chunks, chunks[1:]):
            assert previous.split()[-1] in current.split()

    def test_falls_back_to_characters(self) -> None:
        chunks = TextSplitter(chunk_size=100, chunk_overlap=0).split_text("x" * 250)
        assert [len(chunk) for chunk in chunks] == [100, 100, 50]

    def test_custom_separators(self) -> None:
        splitter = TextSplitter(chunk_size=10, chunk_overlap=0, separators=["|", ""])
        assert splitter.split_text("aaaa|bbbb|cccc") == ["aaaa|bbbb", "|cccc"]

    def test_invalid_parameters(self) -> None:
        with pytest.raises(ValueError):
            TextSplitter(chunk_size=0)
        with pytest.raises(ValueError):
            TextSplitter(chunk_size=100, chunk_overlap=100)

    def test_default_separators(self) -> None:
        splitter = TextSplitter()
        assert splitter.chunk_size == 1000
        assert splitter.chunk_overlap == 200
        assert splitter.separators == list(MARKDOWN_SEPARATORS)


class TestSplitDocuments:
    def test_copies_metadata_and_numbers_chunks(self) -> None:
        document = TextChunk(text="x" * 25, metadata={"source": "a.md"})
        splitter = TextSplitter(chunk_size=10, chunk_overlap=0)

        chunks = splitter.split_documents([document])

        assert [chunk.metadata["chunk_index"] for chunk in chunks] == [0, 1, 2]
        assert all(chunk.metadata["source"] == "a.md" for chunk in chunks)
        assert document.metadata == {"source": "a.md"}
