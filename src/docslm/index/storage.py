"""Embedded vector store with optional JSON persistence."""

from __future__ import annotations

import logging
import uuid
from pathlib import Path
from typing import Any, Dict, List, Mapping, Sequence, Tuple

import numpy as np

from docslm.embedding.encoder import EmbeddingProvider, QueryEmbedder, ensure_batch_embedder
from docslm.errors import NotInitializedError, ProviderError
from docslm.index.persistence import SnapshotPersistence, utc_timestamp
from docslm.models import Chunk, StoreMode, StoreSnapshot, TextChunk

LOGGER = logging.getLogger(__name__)

DEFAULT_COLLECTION = "docs_collection"
DEFAULT_PERSIST_PATH = Path("database/persist")


def cosine_scores(query: np.ndarray, matrix: np.ndarray) -> np.ndarray:
    """Cosine similarity between ``query`` and each row of ``matrix``.

    Rows or queries with zero norm score 0.0.
    """
    if matrix.shape[1] != query.shape[0]:
        raise ValueError(
            f"Vectors must have the same length: query has {query.shape[0]}, "
            f"stored vectors have {matrix.shape[1]}"
        )
    norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
    dots = matrix @ query
    scores = np.zeros_like(dots)
    np.divide(dots, norms, out=scores, where=norms > 0)
    return scores


def matches_filter(metadata: Mapping[str, Any], filter: Mapping[str, Any] | None) -> bool:
    if not filter:
        return True
    return all(key in metadata and metadata[key] == value for key, value in filter.items())


def _as_vector(values: Sequence[float]) -> List[float]:
    return [float(value) for value in values]


class VectorStore:
    """In-process store of parallel id/text/embedding/metadata collections.

    In durable mode every mutation is followed by a full snapshot write.
    Callers must serialize access; the store holds no lock.
    """

    def __init__(
        self,
        embedder: QueryEmbedder,
        *,
        persist_path: Path = DEFAULT_PERSIST_PATH,
        collection_name: str = DEFAULT_COLLECTION,
    ) -> None:
        self.embedder: EmbeddingProvider = ensure_batch_embedder(embedder)
        self.persist_path = Path(persist_path)
        self.collection_name = collection_name
        self.mode = StoreMode.EPHEMERAL
        self._persistence: SnapshotPersistence | None = None
        self._initialized = False
        self._ids: List[str] = []
        self._documents: List[str] = []
        self._embeddings: List[List[float]] = []
        self._metadatas: List[Dict[str, Any]] = []

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def is_durable(self) -> bool:
        return self.mode is StoreMode.DURABLE

    @property
    def persistence(self) -> SnapshotPersistence | None:
        return self._persistence

    @property
    def dimension(self) -> int | None:
        return len(self._embeddings[0]) if self._embeddings else None

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise NotInitializedError("VectorStore not initialized. Call initialize() first.")

    def initialize(self, mode: StoreMode = StoreMode.EPHEMERAL, collection_name: str | None = None) -> "VectorStore":
        """Set the mode and load the collection; durable mode reads it from disk."""
        mode = StoreMode(mode)
        if collection_name:
            self.collection_name = collection_name
        LOGGER.info("Initializing vector store in %s mode (collection %s)", mode.value, self.collection_name)

        if mode is StoreMode.DURABLE:
            persistence = SnapshotPersistence(self.persist_path, self.collection_name)
            snapshot = persistence.load()
            self._replace_state(snapshot or StoreSnapshot(self.collection_name))
            self._persistence = persistence
        else:
            self._replace_state(StoreSnapshot(self.collection_name))
            self._persistence = None

        self.mode = mode
        self._initialized = True
        return self

    def _replace_state(self, snapshot: StoreSnapshot) -> None:
        self._ids = list(snapshot.ids)
        self._documents = list(snapshot.documents)
        self._embeddings = [list(vector) for vector in snapshot.embeddings]
        self._metadatas = [dict(metadata) for metadata in snapshot.metadatas]

    def _snapshot(self) -> StoreSnapshot:
        return StoreSnapshot(
            collection_name=self.collection_name,
            ids=list(self._ids),
            documents=list(self._documents),
            embeddings=[list(vector) for vector in self._embeddings],
            metadatas=[dict(metadata) for metadata in self._metadatas],
            timestamp=utc_timestamp(),
        )

    def _flush(self) -> None:
        if self.mode is StoreMode.DURABLE and self._persistence is not None:
            self._persistence.save(self._snapshot())

    def _check_dimension(self, vectors: Sequence[Sequence[float]], *, against_store: bool = True) -> None:
        expected = self.dimension if against_store else None
        for vector in vectors:
            if expected is None:
                expected = len(vector)
            elif len(vector) != expected:
                raise ValueError(f"Embedding dimension {len(vector)} does not match store dimension {expected}")

    def _embed_documents(self, texts: Sequence[str]) -> List[List[float]]:
        try:
            vectors = self.embedder.embed_documents(list(texts))
        except ProviderError:
            raise
        except Exception as exc:
            raise ProviderError(f"Embedding generation failed: {exc}") from exc
        vectors = [_as_vector(vector) for vector in vectors]
        if len(vectors) != len(texts):
            raise ProviderError(f"Embedding provider returned {len(vectors)} vectors for {len(texts)} texts")
        return vectors

    def _embed_query(self, text: str) -> np.ndarray:
        try:
            vector = self.embedder.embed_query(text)
        except ProviderError:
            raise
        except Exception as exc:
            raise ProviderError(f"Query embedding failed: {exc}") from exc
        return np.asarray(vector, dtype="float64")

    def add_records(self, chunks: Sequence[TextChunk]) -> List[str]:
        """Embed and append chunks; returns the generated ids.

        Nothing is appended if embedding fails for any chunk of the batch.
        """
        self._require_initialized()
        if not chunks:
            LOGGER.info("No documents to add")
            return []
        if any(not chunk.text for chunk in chunks):
            raise ValueError("Chunk text must not be empty")

        LOGGER.info("Adding %d documents to collection %s", len(chunks), self.collection_name)
        texts = [chunk.text for chunk in chunks]
        vectors = self._embed_documents(texts)
        self._check_dimension(vectors)

        ids = [str(uuid.uuid4()) for _ in chunks]
        metadatas = []
        for chunk in chunks:
            metadata = {"source": "unknown"}
            metadata.update(chunk.metadata)
            metadatas.append(metadata)

        self._ids.extend(ids)
        self._documents.extend(texts)
        self._embeddings.extend(vectors)
        self._metadatas.extend(metadatas)

        self._flush()
        return ids

    def _ranked(
        self, query_vector: np.ndarray, k: int, filter: Mapping[str, Any] | None
    ) -> List[Tuple[int, float]]:
        candidates = [i for i, metadata in enumerate(self._metadatas) if matches_filter(metadata, filter)]
        if not candidates or k <= 0:
            return []
        matrix = np.asarray([self._embeddings[i] for i in candidates], dtype="float64")
        scores = cosine_scores(query_vector, matrix)
        order = np.argsort(-scores, kind="stable")[:k]
        return [(candidates[pos], float(scores[pos])) for pos in order]

    def _chunk_at(self, index: int) -> Chunk:
        return Chunk(
            id=self._ids[index],
            text=self._documents[index],
            embedding=list(self._embeddings[index]),
            metadata=dict(self._metadatas[index]),
        )

    def similarity_search_with_scores(
        self, query: str, k: int = 4, filter: Mapping[str, Any] | None = None
    ) -> List[Tuple[Chunk, float]]:
        """Top ``k`` chunks with their cosine scores, best first."""
        self._require_initialized()
        if not self._ids:
            return []
        query_vector = self._embed_query(query)
        return [(self._chunk_at(index), score) for index, score in self._ranked(query_vector, k, filter)]

    def similarity_search(
        self, query: str, k: int = 4, filter: Mapping[str, Any] | None = None
    ) -> List[Chunk]:
        """Top ``k`` chunks, best first. Provider failures yield an empty list."""
        self._require_initialized()
        LOGGER.debug("Similarity search over %d documents: %r", len(self._ids), query)
        try:
            scored = self.similarity_search_with_scores(query, k, filter)
        except ProviderError as exc:
            LOGGER.error("Similarity search failed: %s", exc)
            return []
        return [chunk for chunk, _ in scored]

    def delete_records(self, ids: Sequence[str]) -> int:
        self._require_initialized()
        doomed = set(ids)
        indices = [i for i, record_id in enumerate(self._ids) if record_id in doomed]
        for index in reversed(indices):
            del self._ids[index]
            del self._documents[index]
            del self._embeddings[index]
            del self._metadatas[index]
        if indices:
            self._flush()
        LOGGER.info("Deleted %d documents", len(indices))
        return len(indices)

    def get_document_count(self) -> int:
        self._require_initialized()
        return len(self._ids)

    def list_collections(self) -> List[str]:
        return [self.collection_name]

    def export_all(self) -> Dict[str, Any]:
        self._require_initialized()
        snapshot = self._snapshot()
        return {
            "collectionName": snapshot.collection_name,
            "data": {
                "ids": snapshot.ids,
                "documents": snapshot.documents,
                "embeddings": snapshot.embeddings,
                "metadatas": snapshot.metadatas,
            },
            "exportedAt": snapshot.timestamp,
        }

    def import_all(self, data: Mapping[str, Any], *, replace: bool = False) -> int:
        """Append exported records to the collection; returns the number imported.

        With ``replace`` the existing records are dropped first. The payload is
        validated before anything changes, so a rejected import leaves the
        collection as it was.
        """
        self._require_initialized()
        payload = data.get("data") or {}
        ids = list(payload.get("ids") or [])
        documents = list(payload.get("documents") or [])
        embeddings = [_as_vector(vector) for vector in payload.get("embeddings") or []]
        metadatas = [dict(metadata or {}) for metadata in payload.get("metadatas") or []]
        if not (len(documents) == len(embeddings) == len(metadatas) == len(ids)):
            raise ValueError("Import arrays have different lengths")
        self._check_dimension(embeddings, against_store=not replace)

        if replace:
            self._replace_state(StoreSnapshot(self.collection_name))
        elif not ids:
            return 0

        self._ids.extend(ids)
        self._documents.extend(documents)
        self._embeddings.extend(embeddings)
        self._metadatas.extend(metadatas)

        self._flush()
        LOGGER.info("Imported %d documents", len(ids))
        return len(ids)

    def clear(self) -> None:
        self._require_initialized()
        self._replace_state(StoreSnapshot(self.collection_name))
        self._flush()
        LOGGER.info("Collection %s cleared", self.collection_name)

    def switch_mode(self, to_durable: bool, preserve_data: bool = True) -> None:
        """Re-initialize in the target mode, optionally carrying the records over.

        On any failure the previous mode and records are restored before the
        error propagates.
        """
        self._require_initialized()
        target = StoreMode.DURABLE if to_durable else StoreMode.EPHEMERAL
        carried = self.export_all() if preserve_data and self._ids else None

        previous_mode = self.mode
        previous_persistence = self._persistence
        previous_state = self._snapshot()

        try:
            self.initialize(target, self.collection_name)
            if carried is not None:
                self._replace_state(StoreSnapshot(self.collection_name))
                self.import_all(carried)
        except Exception:
            LOGGER.error("Switch to %s mode failed, restoring %s mode", target.value, previous_mode.value)
            self.mode = previous_mode
            self._persistence = previous_persistence
            self._replace_state(previous_state)
            raise

        LOGGER.info(
            "Switched to %s mode with %d documents%s",
            target.value,
            len(self._ids),
            " (data preserved)" if carried is not None else "",
        )

    def switch_to_durable(self) -> None:
        self.switch_mode(True, True)

    def switch_to_ephemeral(self) -> None:
        self.switch_mode(False, True)

    def get_retriever(self, k: int = 4, filter: Mapping[str, Any] | None = None) -> "Retriever":
        self._require_initialized()
        return Retriever(self, k=k, filter=filter)


class Retriever:
    """Fixed ``k``/filter view over a store, used by the query service."""

    def __init__(self, store: VectorStore, *, k: int = 4, filter: Mapping[str, Any] | None = None) -> None:
        self.store = store
        self.k = k
        self.filter = dict(filter or {})

    def retrieve(self, query: str) -> List[Tuple[Chunk, float]]:
        results = self.store.similarity_search_with_scores(query, self.k, self.filter)
        LOGGER.debug("Retriever found %d relevant documents", len(results))
        return results
