"""Incremental document indexing pipeline."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Sequence

from docslm.errors import NotInitializedError
from docslm.index.storage import VectorStore
from docslm.ingestion.loader import DocumentLoader, read_document
from docslm.models import ProcessedFileRecord, StoreMode, TextChunk
from docslm.utils.files import file_version

LOGGER = logging.getLogger(__name__)

FileKey = tuple[str, float]


@dataclass(slots=True)
class IndexStats:
    processed: int = 0
    added: int = 0
    skipped: int = 0

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


@dataclass(slots=True)
class UpdateReport:
    has_updates: bool = False
    files_to_update: List[str] = field(default_factory=list)
    total_files: int = 0
    processed_files: int = 0


@dataclass(slots=True)
class ProcessingStatus:
    initialized: bool
    persistent: bool
    processed_files: int
    document_count: int


class DocumentProcessor:
    """Coordinates loading, splitting and incremental indexing.

    A file version is identified by ``(source, mtime)``. Once all chunks of a
    version were added to the store, a :class:`ProcessedFileRecord` is kept and
    later runs skip that version. Chunks carry ``mtime`` in their metadata so
    the records can be rebuilt from a durable store after a restart.
    """

    def __init__(
        self,
        loader: DocumentLoader,
        store: VectorStore,
        *,
        mode: StoreMode = StoreMode.EPHEMERAL,
    ) -> None:
        self.loader = loader
        self.store = store
        self.mode = StoreMode(mode)
        self._records: Dict[FileKey, ProcessedFileRecord] = {}
        self._initialized = False

    @property
    def processed_files(self) -> Dict[FileKey, ProcessedFileRecord]:
        return dict(self._records)

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise NotInitializedError("DocumentProcessor not initialized. Call initialize() first.")

    def initialize(self) -> "DocumentProcessor":
        LOGGER.info("Initializing DocumentProcessor")
        if not self.store.is_initialized:
            self.store.initialize(self.mode)
        self.mode = self.store.mode
        if self.store.is_durable:
            restored = self.restore_processed_files()
            if restored:
                LOGGER.info("Restored %d processed file records from the store", restored)
        self._initialized = True
        return self

    def restore_processed_files(self) -> int:
        """Rebuild file records from ``source``/``mtime`` metadata in the store."""
        before = len(self._records)
        for metadata in self.store.export_all()["data"]["metadatas"]:
            source = metadata.get("source")
            mtime = metadata.get("mtime")
            if source is None or mtime is None:
                continue
            key = (str(source), float(mtime))
            if key not in self._records:
                self._records[key] = ProcessedFileRecord(
                    source=key[0], mtime=key[1], size=int(metadata.get("size", 0))
                )
        return len(self._records) - before

    def process_all_documents(self) -> IndexStats:
        self._require_initialized()
        LOGGER.info("Starting document processing")
        chunks = self.loader.load_and_split()
        if not chunks:
            LOGGER.info("No documents found to process")
            return IndexStats()

        stats = self.process_chunks(chunks)
        LOGGER.info("Document processing completed: %s", stats.as_dict())
        return stats

    def process_document_by_path(self, path: Path) -> IndexStats:
        self._require_initialized()
        path = self._source_form(Path(path))
        LOGGER.info("Processing single document: %s", path)
        if not path.is_file():
            raise FileNotFoundError(f"File not found: {path}")

        document = read_document(path)
        if document is None:
            raise ValueError(f"Document not loaded from path: {path}")

        stats = self.process_chunks(self.loader.split_documents([document]))
        LOGGER.info("Single document processing completed: %s", stats.as_dict())
        return stats

    def _source_form(self, path: Path) -> Path:
        """Spell ``path`` the way the loader does, so both name the same record."""
        root = self.loader.source_path
        try:
            return root / path.resolve().relative_to(root.resolve())
        except ValueError:
            return path

    def process_chunks(self, chunks: Sequence[TextChunk]) -> IndexStats:
        """Add chunks whose file version has not been indexed yet."""
        self._require_initialized()
        stats = IndexStats()
        versions: Dict[str, tuple[float, int]] = {}
        pending: List[TextChunk] = []
        new_keys: Dict[FileKey, int] = {}

        for chunk in chunks:
            source = chunk.source
            if source not in versions:
                versions[source] = file_version(Path(source))
            mtime, size = versions[source]
            key = (source, mtime)

            if key in self._records:
                stats.skipped += 1
                continue

            metadata = dict(chunk.metadata)
            metadata.update({"source": source, "mtime": mtime, "size": size})
            pending.append(TextChunk(text=chunk.text, metadata=metadata))
            new_keys[key] = size
            stats.processed += 1

        if pending:
            self.store.add_records(pending)
            stats.added = len(pending)
            processed_at = datetime.now(timezone.utc).isoformat()
            for (source, mtime), size in new_keys.items():
                self._records[(source, mtime)] = ProcessedFileRecord(
                    source=source, mtime=mtime, size=size, processed_at=processed_at
                )
            LOGGER.info("Added %d new chunks to the store", len(pending))
        return stats

    def refresh_database(self) -> IndexStats:
        """Forget all records, clear the store and index everything again."""
        self._require_initialized()
        LOGGER.info("Refreshing database")
        self._records.clear()
        self.store.clear()
        stats = self.process_all_documents()
        LOGGER.info("Database refresh completed")
        return stats

    def check_for_updates(self) -> UpdateReport:
        """Report source files whose current version has not been indexed."""
        self._require_initialized()
        documents = self.loader.load_documents()
        pending = []
        for document in documents:
            mtime, _ = file_version(Path(document.source))
            if (document.source, mtime) not in self._records:
                pending.append(document.source)
        return UpdateReport(
            has_updates=bool(pending),
            files_to_update=pending,
            total_files=len(documents),
            processed_files=len(self._records),
        )

    def get_processing_status(self) -> ProcessingStatus:
        return ProcessingStatus(
            initialized=self._initialized,
            persistent=self.store.is_durable,
            processed_files=len(self._records),
            document_count=self.store.get_document_count() if self.store.is_initialized else 0,
        )
