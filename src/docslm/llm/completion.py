"""Chat-completion providers."""

from __future__ import annotations

import logging
from typing import Iterator, Protocol, runtime_checkable

import ollama

from docslm.errors import ConfigurationError, ProviderError

DEFAULT_LLM_MODEL = "llama3.1"

LOGGER = logging.getLogger(__name__)


@runtime_checkable
class CompletionProvider(Protocol):
    def invoke(self, prompt: str) -> str: ...

    def stream(self, prompt: str) -> Iterator[str]: ...


class OllamaCompletion:
    """Completion provider backed by a local Ollama server."""

    def __init__(
        self,
        model: str = DEFAULT_LLM_MODEL,
        *,
        host: str | None = None,
        temperature: float = 0.1,
        max_tokens: int = 2000,
    ) -> None:
        if not model:
            raise ConfigurationError("An LLM model name is required")
        self.model = model
        self.options = {"temperature": temperature, "num_predict": max_tokens}
        self._client = ollama.Client(host=host)

    def _messages(self, prompt: str) -> list[dict[str, str]]:
        return [{"role": "user", "content": prompt}]

    def invoke(self, prompt: str) -> str:
        try:
            response = self._client.chat(
                model=self.model,
                messages=self._messages(prompt),
                options=self.options,
            )
        except (ollama.ResponseError, ConnectionError) as exc:
            raise ProviderError(f"Ollama chat failed: {exc}") from exc
        return response["message"]["content"] or ""

    def stream(self, prompt: str) -> Iterator[str]:
        try:
            for part in self._client.chat(
                model=self.model,
                messages=self._messages(prompt),
                options=self.options,
                stream=True,
            ):
                content = part["message"]["content"]
                if content:
                    yield content
        except (ollama.ResponseError, ConnectionError) as exc:
            raise ProviderError(f"Ollama stream failed: {exc}") from exc

    def check_connection(self) -> None:
        """Fail fast when the model is not available on the server."""
        try:
            self._client.show(self.model)
        except ollama.ResponseError as exc:
            if exc.status_code == 404:
                raise ProviderError(f"Model {self.model} not found") from exc
            raise ProviderError(f"Connection validation failed: {exc}") from exc
        except ConnectionError as exc:
            raise ProviderError(f"Ollama server unreachable: {exc}") from exc
        LOGGER.info("Ollama model %s available", self.model)
