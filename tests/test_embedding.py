"""Tests for embedding providers."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from conftest import FakeEmbeddings, QueryOnlyEmbeddings
from docslm.embedding.encoder import (
    DEFAULT_MODEL,
    EmbeddingConfig,
    EmbeddingModel,
    EmbeddingProvider,
    LoopingEmbedder,
    ensure_batch_embedder,
)
from docslm.errors import ConfigurationError, ProviderError


class TestEnsureBatchEmbedder:
    def test_batch_provider_unchanged(self) -> None:
        provider = FakeEmbeddings()
        assert ensure_batch_embedder(provider) is provider

    def test_query_only_provider_wrapped(self) -> None:
        provider = QueryOnlyEmbeddings()

        wrapped = ensure_batch_embedder(provider)

        assert isinstance(wrapped, LoopingEmbedder)
        assert isinstance(wrapped, EmbeddingProvider)
        assert wrapped.embed_documents(["a", "bb"]) == [[1.0, 1.0], [2.0, 1.0]]
        assert provider.calls == ["a", "bb"]

    def test_unsupported_object(self) -> None:
        with pytest.raises(ConfigurationError):
            ensure_batch_embedder(object())


@pytest.fixture
def mock_transformer():
    with patch("docslm.embedding.encoder.SentenceTransformer") as mock_class:
        model = MagicMock()
        model.get_sentence_embedding_dimension.return_value = 3
        model.encode.side_effect = lambda sentences, **kwargs: np.ones((len(sentences), 3), dtype="float64")
        mock_class.return_value = model
        yield mock_class


class TestEmbeddingModel:
    def test_default_config(self) -> None:
        config = EmbeddingConfig()
        assert config.model_name == DEFAULT_MODEL
        assert config.normalize is True

    def test_loads_model(self, mock_transformer: MagicMock) -> None:
        model = EmbeddingModel(EmbeddingConfig(model_name="tiny", device="cpu"))

        assert model.dimension == 3
        mock_transformer.assert_called_once_with("tiny", device="cpu")

    def test_embed_returns_float32(self, mock_transformer: MagicMock) -> None:
        embeddings = EmbeddingModel().embed(["a", "b"])

        assert embeddings.dtype == np.float32
        assert embeddings.shape == (2, 3)

    def test_embed_documents_and_query_return_lists(self, mock_transformer: MagicMock) -> None:
        model = EmbeddingModel()

        assert model.embed_documents(["a", "b"]) == [[1.0, 1.0, 1.0], [1.0, 1.0, 1.0]]
        assert model.embed_documents([]) == []
        assert model.embed_query("a") == [1.0, 1.0, 1.0]

    def test_encode_failure_is_provider_error(self, mock_transformer: MagicMock) -> None:
        mock_transformer.return_value.encode.side_effect = RuntimeError("CUDA out of memory")
        model = EmbeddingModel()

        with pytest.raises(ProviderError):
            model.embed_query("a")

    def test_missing_model_is_provider_error(self) -> None:
        with patch("docslm.embedding.encoder.SentenceTransformer", side_effect=OSError("404")):
            with pytest.raises(ProviderError, match="not found"):
                EmbeddingModel(EmbeddingConfig(model_name="nope/nope"))

    def test_empty_model_name(self) -> None:
        with pytest.raises(ConfigurationError):
            EmbeddingModel(EmbeddingConfig(model_name=""))
