"""Tests for application configuration."""

from __future__ import annotations

from pathlib import Path

import pytest

from docslm.config import AppConfig
from docslm.errors import ConfigurationError


class TestAppConfig:
    """Test AppConfig dataclass."""

    def test_default_config(self) -> None:
        config = AppConfig()

        assert config.source_path == Path("data/docs")
        assert config.persist_path == Path("database/persist")
        assert config.collection_name == "docs_collection"
        assert config.chunk_chars == 1000
        assert config.overlap == 200
        assert config.top_k == 4
        assert config.persistent is False
        assert config.cache_enabled is False
        assert config.cache_size == 100

    def test_from_env(self) -> None:
        config = AppConfig.from_env(
            {
                "DATA_PATH": "/srv/docs",
                "PERSIST_PATH": "/srv/db",
                "COLLECTION_NAME": "guides",
                "USE_PERSISTENT_STORAGE": "true",
                "RAG_CACHE_ENABLED": "1",
                "RAG_CACHE_SIZE": "5",
                "EMBEDDING_MODEL": "custom-model",
                "LLM_MODEL": "mistral",
                "OLLAMA_HOST": "http://gpu:11434",
            }
        )

        assert config.source_path == Path("/srv/docs")
        assert config.persist_path == Path("/srv/db")
        assert config.collection_name == "guides"
        assert config.persistent is True
        assert config.cache_enabled is True
        assert config.cache_size == 5
        assert config.embedding_model == "custom-model"
        assert config.llm_model == "mistral"
        assert config.llm_host == "http://gpu:11434"

    def test_from_env_empty_uses_defaults(self) -> None:
        assert AppConfig.from_env({}) == AppConfig()

    def test_from_env_bad_integer(self) -> None:
        with pytest.raises(ConfigurationError):
            AppConfig.from_env({"RAG_CACHE_SIZE": "lots"})

    @pytest.mark.parametrize(
        "overrides",
        [
            {"chunk_chars": 0},
            {"overlap": 1000},
            {"overlap": -1},
            {"top_k": 0},
            {"cache_size": 0},
            {"collection_name": ""},
            {"embedding_model": ""},
        ],
    )
    def test_validate_rejects(self, overrides: dict) -> None:
        with pytest.raises(ConfigurationError):
            AppConfig(**overrides).validate()

    def test_validate_returns_self(self) -> None:
        config = AppConfig()
        assert config.validate() is config

    def test_resolve_paths(self) -> None:
        config = AppConfig(persist_path=Path("relative/db"), source_path=Path("/abs/docs"))
        base = Path("/project")

        assert config.resolve_persist_path(base) == Path("/project/relative/db")
        assert config.resolve_persist_path() == Path("relative/db")
        assert config.resolve_source_path(base) == Path("/abs/docs")
