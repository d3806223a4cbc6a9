"""Shared fakes for the embedding and completion providers."""

from __future__ import annotations

from typing import Dict, Iterator, List, Sequence

import pytest

from docslm.index.storage import VectorStore
from docslm.models import StoreMode


class FakeEmbeddings:
    """Deterministic embedder; known texts map to fixed vectors."""

    def __init__(self, vectors: Dict[str, Sequence[float]] | None = None, dimension: int = 2) -> None:
        self.vectors = dict(vectors or {})
        self.dimension = dimension
        self.fail = False
        self.document_calls = 0
        self.query_calls = 0

    def _vector(self, text: str) -> List[float]:
        if self.fail:
            raise RuntimeError("quota exceeded")
        if text in self.vectors:
            return list(self.vectors[text])
        vector = [0.0] * self.dimension
        for char in text:
            vector[ord(char) % self.dimension] += 1.0
        return vector

    def embed_query(self, text: str) -> List[float]:
        self.query_calls += 1
        return self._vector(text)

    def embed_documents(self, texts: Sequence[str]) -> List[List[float]]:
        self.document_calls += 1
        return [self._vector(text) for text in texts]


class QueryOnlyEmbeddings:
    """Provider without a batch method."""

    def __init__(self) -> None:
        self.calls: List[str] = []

    def embed_query(self, text: str) -> List[float]:
        self.calls.append(text)
        return [float(len(text)), 1.0]


class FakeLLM:
    def __init__(self, reply: str = "answer") -> None:
        self.reply = reply
        self.prompts: List[str] = []
        self.fail = False

    def invoke(self, prompt: str) -> str:
        if self.fail:
            raise RuntimeError("completion unavailable")
        self.prompts.append(prompt)
        return f"{self.reply} {len(self.prompts)}"

    def stream(self, prompt: str) -> Iterator[str]:
        self.prompts.append(prompt)
        yield "Hel"
        yield "lo"


@pytest.fixture
def embeddings() -> FakeEmbeddings:
    return FakeEmbeddings(
        {
            "alpha": [1.0, 0.0],
            "beta": [0.0, 1.0],
            "gamma": [0.7, 0.7],
        }
    )


@pytest.fixture
def store(embeddings: FakeEmbeddings, tmp_path) -> VectorStore:
    return VectorStore(embeddings, persist_path=tmp_path / "persist").initialize(StoreMode.EPHEMERAL)


@pytest.fixture
def durable_store(embeddings: FakeEmbeddings, tmp_path) -> VectorStore:
    return VectorStore(embeddings, persist_path=tmp_path / "persist").initialize(StoreMode.DURABLE)
