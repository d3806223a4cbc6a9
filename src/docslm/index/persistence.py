"""JSON snapshot persistence for the vector store."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict

from docslm.errors import PersistenceError
from docslm.models import StoreSnapshot

LOGGER = logging.getLogger(__name__)

_ARRAY_KEYS = ("ids", "documents", "embeddings", "metadatas")


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def snapshot_to_dict(snapshot: StoreSnapshot) -> Dict[str, Any]:
    return {
        "collectionName": snapshot.collection_name,
        "ids": snapshot.ids,
        "documents": snapshot.documents,
        "embeddings": snapshot.embeddings,
        "metadatas": snapshot.metadatas,
        "savedAt": snapshot.timestamp,
    }


def snapshot_from_dict(data: Dict[str, Any], *, default_name: str = "") -> StoreSnapshot:
    if not isinstance(data, dict):
        raise PersistenceError("Snapshot must be a JSON object")
    missing = [key for key in _ARRAY_KEYS if not isinstance(data.get(key, []), list)]
    if missing:
        raise PersistenceError(f"Snapshot fields are not arrays: {', '.join(missing)}")
    try:
        snapshot = StoreSnapshot(
            collection_name=data.get("collectionName") or default_name,
            ids=list(data.get("ids", [])),
            documents=list(data.get("documents", [])),
            embeddings=[[float(value) for value in vector] for vector in data.get("embeddings", [])],
            metadatas=[dict(metadata or {}) for metadata in data.get("metadatas", [])],
            timestamp=data.get("savedAt", ""),
        )
    except (TypeError, ValueError) as exc:
        raise PersistenceError(f"Malformed snapshot: {exc}") from exc
    if not snapshot.is_aligned():
        raise PersistenceError("Snapshot arrays have different lengths")
    return snapshot


class SnapshotPersistence:
    """Reads and writes full store snapshots at ``<base_path>/<collection>.json``.

    Every save rewrites the whole file. Writes go to a temporary file in the
    same directory which then replaces the target, so a crash mid-write leaves
    the previous snapshot readable.
    """

    def __init__(self, base_path: Path, collection_name: str) -> None:
        self.base_path = Path(base_path)
        self.collection_name = collection_name

    @property
    def path(self) -> Path:
        return self.base_path / f"{self.collection_name}.json"

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> StoreSnapshot | None:
        """Return the stored snapshot, or ``None`` when nothing was saved yet."""
        try:
            self.base_path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise PersistenceError(f"Cannot create {self.base_path}: {exc}") from exc

        if not self.path.exists():
            LOGGER.info("No snapshot at %s, starting with empty collection", self.path)
            return None

        try:
            with self.path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, ValueError) as exc:
            raise PersistenceError(f"Cannot read snapshot {self.path}: {exc}") from exc

        snapshot = snapshot_from_dict(data, default_name=self.collection_name)
        LOGGER.info("Loaded %d records from %s", len(snapshot), self.path)
        return snapshot

    def save(self, snapshot: StoreSnapshot) -> None:
        payload = snapshot_to_dict(snapshot)
        payload["savedAt"] = utc_timestamp()
        tmp_name = None
        try:
            self.base_path.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.collection_name}.", suffix=".tmp", dir=self.base_path
            )
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(payload, handle, ensure_ascii=True, indent=2)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self.path)
        except (OSError, TypeError, ValueError) as exc:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise PersistenceError(f"Cannot write snapshot {self.path}: {exc}") from exc
        LOGGER.debug("Saved %d records to %s", len(snapshot), self.path)

    def delete(self) -> bool:
        if not self.path.exists():
            return False
        try:
            self.path.unlink()
        except OSError as exc:
            raise PersistenceError(f"Cannot delete snapshot {self.path}: {exc}") from exc
        return True
