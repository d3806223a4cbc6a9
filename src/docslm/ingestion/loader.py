"""Markdown/text document loading and chunking."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Sequence

from docslm.errors import ConfigurationError
from docslm.models import TextChunk
from docslm.utils.files import DEFAULT_SUFFIXES, iter_document_paths
from docslm.utils.text import TextSplitter

LOGGER = logging.getLogger(__name__)


def read_document(path: Path) -> TextChunk | None:
    """Read one file into a document, or ``None`` if it cannot be decoded."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        LOGGER.warning("Failed to read %s: %s", path, exc)
        return None
    return TextChunk(text=text, metadata={"source": str(path), "title": Path(path).stem})


class DocumentLoader:
    """Loads documents from a directory and splits them into chunks."""

    def __init__(
        self,
        source_path: Path,
        splitter: TextSplitter | None = None,
        *,
        suffixes: Sequence[str] = DEFAULT_SUFFIXES,
    ) -> None:
        self.source_path = Path(source_path)
        self.splitter = splitter or TextSplitter()
        self.suffixes = tuple(suffixes)

    def load_documents(self) -> List[TextChunk]:
        if not self.source_path.exists():
            raise ConfigurationError(f"Document path not found: {self.source_path}")

        LOGGER.info("Loading documents from %s", self.source_path)
        documents = []
        for path in iter_document_paths([self.source_path], self.suffixes):
            document = read_document(path)
            if document is not None:
                documents.append(document)

        if not documents:
            LOGGER.warning("No documents found in %s", self.source_path)
        else:
            LOGGER.info("Loaded %d documents", len(documents))
        return documents

    def split_documents(self, documents: Sequence[TextChunk]) -> List[TextChunk]:
        chunks = self.splitter.split_documents(documents)
        LOGGER.info("Created %d chunks from %d documents", len(chunks), len(documents))
        return chunks

    def load_and_split(self) -> List[TextChunk]:
        return self.split_documents(self.load_documents())
