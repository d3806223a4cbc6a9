"""Core DocsLM data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List


class StoreMode(str, Enum):
    """Whether store mutations are flushed to disk."""

    EPHEMERAL = "ephemeral"
    DURABLE = "durable"


@dataclass(slots=True)
class TextChunk:
    """Chunk of document text waiting to be embedded."""

    text: str
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def source(self) -> str:
        return str(self.metadata.get("source", "unknown"))


@dataclass(slots=True)
class Chunk:
    """Indexed chunk as held by the vector store."""

    id: str
    text: str
    embedding: List[float]
    metadata: Dict[str, Any]

    @property
    def source(self) -> str:
        return str(self.metadata.get("source", "unknown"))


@dataclass(slots=True, frozen=True)
class ProcessedFileRecord:
    """A specific version of a source file that has been indexed."""

    source: str
    mtime: float
    size: int = 0
    processed_at: str = ""

    @property
    def key(self) -> tuple[str, float]:
        return (self.source, self.mtime)


@dataclass(slots=True)
class StoreSnapshot:
    """Point-in-time copy of the store's parallel collections."""

    collection_name: str
    ids: List[str] = field(default_factory=list)
    documents: List[str] = field(default_factory=list)
    embeddings: List[List[float]] = field(default_factory=list)
    metadatas: List[Dict[str, Any]] = field(default_factory=list)
    timestamp: str = ""

    def __len__(self) -> int:
        return len(self.ids)

    def is_aligned(self) -> bool:
        size = len(self.ids)
        return len(self.documents) == size and len(self.embeddings) == size and len(self.metadatas) == size
