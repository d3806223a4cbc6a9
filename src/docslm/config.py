"""Application configuration defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from docslm.embedding.encoder import DEFAULT_MODEL
from docslm.errors import ConfigurationError
from docslm.llm.completion import DEFAULT_LLM_MODEL

_TRUTHY = {"1", "true", "yes", "on"}


def _env_flag(value: str | None, default: bool) -> bool:
    if value is None or not value.strip():
        return default
    return value.strip().lower() in _TRUTHY


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc


@dataclass(slots=True)
class AppConfig:
    source_path: Path = Path("data/docs")
    persist_path: Path = Path("database/persist")
    collection_name: str = "docs_collection"
    chunk_chars: int = 1000
    overlap: int = 200
    top_k: int = 4
    persistent: bool = False
    cache_enabled: bool = False
    cache_size: int = 100
    embedding_model: str = DEFAULT_MODEL
    llm_model: str = DEFAULT_LLM_MODEL
    llm_host: str | None = None

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "AppConfig":
        """Build a config from environment variables, falling back to defaults."""
        env = os.environ if env is None else env
        defaults = cls()
        return cls(
            source_path=Path(env.get("DATA_PATH") or defaults.source_path),
            persist_path=Path(env.get("PERSIST_PATH") or defaults.persist_path),
            collection_name=env.get("COLLECTION_NAME") or defaults.collection_name,
            chunk_chars=_env_int(env, "CHUNK_SIZE", defaults.chunk_chars),
            overlap=_env_int(env, "CHUNK_OVERLAP", defaults.overlap),
            top_k=_env_int(env, "RAG_TOP_K", defaults.top_k),
            persistent=_env_flag(env.get("USE_PERSISTENT_STORAGE"), defaults.persistent),
            cache_enabled=_env_flag(env.get("RAG_CACHE_ENABLED"), defaults.cache_enabled),
            cache_size=_env_int(env, "RAG_CACHE_SIZE", defaults.cache_size),
            embedding_model=env.get("EMBEDDING_MODEL") or defaults.embedding_model,
            llm_model=env.get("LLM_MODEL") or defaults.llm_model,
            llm_host=env.get("OLLAMA_HOST") or defaults.llm_host,
        )

    def validate(self) -> "AppConfig":
        if not self.collection_name:
            raise ConfigurationError("collection_name must not be empty")
        if self.chunk_chars <= 0:
            raise ConfigurationError("chunk_chars must be positive")
        if self.overlap < 0 or self.overlap >= self.chunk_chars:
            raise ConfigurationError("overlap must be in [0, chunk_chars)")
        if self.top_k <= 0:
            raise ConfigurationError("top_k must be positive")
        if self.cache_size <= 0:
            raise ConfigurationError("cache_size must be positive")
        if not self.embedding_model:
            raise ConfigurationError("embedding_model is required")
        return self

    def resolve_persist_path(self, base_dir: Path | None = None) -> Path:
        return _resolve(self.persist_path, base_dir)

    def resolve_source_path(self, base_dir: Path | None = None) -> Path:
        return _resolve(self.source_path, base_dir)


def _resolve(path: Path, base_dir: Path | None) -> Path:
    if Path(path).is_absolute() or base_dir is None:
        return Path(path)
    return base_dir / path
