"""Embedding providers.

The vector store only talks to the :class:`EmbeddingProvider` protocol. Providers
that can only embed one text at a time are wrapped with
:func:`ensure_batch_embedder`, so callers never probe for a batch method at
query time.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Protocol, Sequence, runtime_checkable

import numpy as np
from sentence_transformers import SentenceTransformer

from docslm.errors import ConfigurationError, ProviderError

DEFAULT_MODEL = "sentence-transformers/all-MiniLM-L6-v2"

logger = logging.getLogger(__name__)

Vector = List[float]


@runtime_checkable
class QueryEmbedder(Protocol):
    def embed_query(self, text: str) -> Sequence[float]: ...


@runtime_checkable
class EmbeddingProvider(QueryEmbedder, Protocol):
    def embed_documents(self, texts: Sequence[str]) -> Sequence[Sequence[float]]: ...


class LoopingEmbedder:
    """Batch adapter for providers that only expose ``embed_query``."""

    def __init__(self, inner: QueryEmbedder) -> None:
        self.inner = inner

    def embed_query(self, text: str) -> Sequence[float]:
        return self.inner.embed_query(text)

    def embed_documents(self, texts: Sequence[str]) -> List[Sequence[float]]:
        return [self.inner.embed_query(text) for text in texts]


def ensure_batch_embedder(provider: QueryEmbedder) -> EmbeddingProvider:
    """Return ``provider`` unchanged if it batches, otherwise wrap it."""
    if isinstance(provider, EmbeddingProvider):
        return provider
    if isinstance(provider, QueryEmbedder):
        logger.debug("Embedding provider %s has no batch method, embedding one at a time", provider)
        return LoopingEmbedder(provider)
    raise ConfigurationError(
        f"{type(provider).__name__} does not implement embed_query/embed_documents"
    )


@dataclass(slots=True)
class EmbeddingConfig:
    model_name: str = DEFAULT_MODEL
    batch_size: int = 16
    normalize: bool = True
    device: str | None = None


class EmbeddingModel:
    """Thin wrapper around `SentenceTransformer` for query and document embeddings."""

    def __init__(self, config: EmbeddingConfig | None = None) -> None:
        self.config = config or EmbeddingConfig()
        if not self.config.model_name:
            raise ConfigurationError("An embedding model name is required")

        logger.info("Loading embedding model %s", self.config.model_name)
        try:
            self._model = SentenceTransformer(self.config.model_name, device=self.config.device)
        except OSError as exc:
            raise ProviderError(f"Model {self.config.model_name} not found: {exc}") from exc

        self.dimension = int(self._model.get_sentence_embedding_dimension())
        logger.info("Embedding model ready (dimension %d)", self.dimension)

    def embed(self, texts: Sequence[str] | Iterable[str]) -> np.ndarray:
        """Return float32 embeddings for input texts."""
        sentences = list(texts)
        try:
            embeddings = self._model.encode(
                sentences,
                batch_size=self.config.batch_size,
                show_progress_bar=False,
                convert_to_numpy=True,
                normalize_embeddings=self.config.normalize,
            )
        except Exception as exc:
            raise ProviderError(f"Embedding failed: {exc}") from exc
        return embeddings.astype("float32", copy=False)

    def embed_documents(self, texts: Sequence[str]) -> List[Vector]:
        if not texts:
            return []
        return self.embed(texts).tolist()

    def embed_query(self, text: str) -> Vector:
        """Convenience wrapper for single-query embedding."""
        return self.embed([text])[0].tolist()
