"""Text helpers including a boundary-aware recursive splitter."""

from __future__ import annotations

from typing import Iterable, List, Sequence

from docslm.models import TextChunk

MARKDOWN_SEPARATORS: tuple[str, ...] = ("\n## ", "\n### ", "\n#### ", "\n\n", "\n", " ", "")


def _split_keeping_separator(text: str, separator: str) -> List[str]:
    if not separator:
        return list(text)
    parts = text.split(separator)
    pieces = [parts[0]] + [separator + part for part in parts[1:]]
    return [piece for piece in pieces if piece]


class TextSplitter:
    """Split text into overlapping chunks, preferring the earliest separator.

    Separators are tried in order; a piece that is still longer than
    ``chunk_size`` is split again with the remaining separators. The empty
    separator falls back to single characters.
    """

    def __init__(
        self,
        chunk_size: int = 1000,
        chunk_overlap: int = 200,
        separators: Sequence[str] = MARKDOWN_SEPARATORS,
    ) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if chunk_overlap < 0 or chunk_overlap >= chunk_size:
            raise ValueError("chunk_overlap must be in [0, chunk_size)")
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self.separators = list(separators)

    def split_text(self, text: str) -> List[str]:
        if not text:
            return []
        return self._split(text, self.separators)

    def split_documents(self, documents: Iterable[TextChunk]) -> List[TextChunk]:
        """Split documents, copying each document's metadata onto its chunks."""
        chunks: List[TextChunk] = []
        for document in documents:
            for index, piece in enumerate(self.split_text(document.text)):
                metadata = dict(document.metadata)
                metadata["chunk_index"] = index
                chunks.append(TextChunk(text=piece, metadata=metadata))
        return chunks

    def _split(self, text: str, separators: Sequence[str]) -> List[str]:
        separator = separators[-1] if separators else ""
        remaining: Sequence[str] = []
        for index, candidate in enumerate(separators):
            if candidate == "":
                separator = ""
                break
            if candidate in text:
                separator = candidate
                remaining = separators[index + 1 :]
                break

        chunks: List[str] = []
        pending: List[str] = []
        for piece in _split_keeping_separator(text, separator):
            if len(piece) < self.chunk_size:
                pending.append(piece)
                continue
            if pending:
                chunks.extend(self._merge(pending))
                pending = []
            if remaining:
                chunks.extend(self._split(piece, remaining))
            else:
                chunks.append(piece.strip())
        if pending:
            chunks.extend(self._merge(pending))
        return [chunk for chunk in chunks if chunk]

    def _merge(self, pieces: Sequence[str]) -> List[str]:
        merged: List[str] = []
        window: List[str] = []
        total = 0
        for piece in pieces:
            size = len(piece)
            if window and total + size > self.chunk_size:
                chunk = "".join(window).strip()
                if chunk:
                    merged.append(chunk)
                # Keep a tail of at most chunk_overlap characters as context.
                while window and (total > self.chunk_overlap or total + size > self.chunk_size):
                    total -= len(window.pop(0))
            window.append(piece)
            total += size
        chunk = "".join(window).strip()
        if chunk:
            merged.append(chunk)
        return merged
