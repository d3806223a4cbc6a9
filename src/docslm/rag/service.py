"""Question answering over the indexed corpus."""

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Mapping

from docslm.errors import NotInitializedError
from docslm.index.storage import VectorStore
from docslm.llm.completion import CompletionProvider
from docslm.models import Chunk, StoreMode
from docslm.rag.prompts import build_prompt

LOGGER = logging.getLogger(__name__)

Turn = tuple[str, str]


@dataclass(slots=True)
class Answer:
    answer: str
    source_documents: List[Chunk]
    chat_history: List[Turn]
    metadata: Dict[str, Any] = field(default_factory=dict)


class QueryCache:
    """Bounded answer cache evicting the oldest inserted question first."""

    def __init__(self, capacity: int = 100) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._entries: OrderedDict[str, Answer] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, question: object) -> bool:
        return question in self._entries

    def get(self, question: str) -> Answer | None:
        return self._entries.get(question)

    def put(self, question: str, answer: Answer) -> None:
        if question in self._entries:
            self._entries[question] = answer
            return
        if len(self._entries) >= self.capacity:
            evicted, _ = self._entries.popitem(last=False)
            LOGGER.debug("Evicted cached answer for %r", evicted)
        self._entries[question] = answer

    def clear(self) -> None:
        self._entries.clear()


class ConversationHistory:
    def __init__(self) -> None:
        self._turns: List[Turn] = []

    def __len__(self) -> int:
        return len(self._turns)

    def add_exchange(self, question: str, answer: str) -> None:
        self._turns.append(("human", question))
        self._turns.append(("ai", answer))

    def messages(self) -> List[Turn]:
        return list(self._turns)

    def clear(self) -> None:
        self._turns.clear()


class QueryService:
    """Retrieves context from the store and asks the completion provider.

    Provider failures reach the caller unchanged; nothing is retried.
    """

    def __init__(
        self,
        store: VectorStore,
        llm: CompletionProvider,
        *,
        top_k: int = 4,
        cache_enabled: bool = False,
        cache_size: int = 100,
    ) -> None:
        self.store = store
        self.llm = llm
        self.top_k = top_k
        self.cache_enabled = cache_enabled
        self.cache = QueryCache(cache_size)
        self.history = ConversationHistory()
        self._initialized = False

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def initialize(self, mode: StoreMode | None = None) -> "QueryService":
        if not self.store.is_initialized:
            self.store.initialize(mode or StoreMode.EPHEMERAL)
        self._initialized = True
        LOGGER.info("Ready for queries. Document count: %d", self.store.get_document_count())
        return self

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise NotInitializedError("QueryService not initialized. Call initialize() first.")

    def _retrieve(self, question: str, k: int | None, filter: Mapping[str, Any] | None) -> List[Chunk]:
        retriever = self.store.get_retriever(k=self.top_k if k is None else k, filter=filter)
        return [chunk for chunk, _ in retriever.retrieve(question)]

    def ask(
        self,
        question: str,
        *,
        k: int | None = None,
        filter: Mapping[str, Any] | None = None,
        use_cache: bool | None = None,
    ) -> Answer:
        self._require_initialized()
        use_cache = self.cache_enabled if use_cache is None else use_cache

        if use_cache:
            cached = self.cache.get(question)
            if cached is not None:
                LOGGER.info("Returning cached response for question")
                return replace(
                    cached,
                    source_documents=list(cached.source_documents),
                    chat_history=list(cached.chat_history),
                    metadata=dict(cached.metadata),
                )

        LOGGER.info("Processing question: %r", question)
        sources = self._retrieve(question, k, filter)
        prompt = build_prompt(question, sources, self.history.messages())
        text = self.llm.invoke(prompt)
        self.history.add_exchange(question, text)

        result = Answer(
            answer=text,
            source_documents=sources,
            chat_history=self.history.messages(),
            metadata={
                "documents_retrieved": len(sources),
                "question_length": len(question),
                "cached": False,
            },
        )
        if use_cache:
            cached_metadata = dict(result.metadata, cached=True, cached_at=datetime.now(timezone.utc).isoformat())
            self.cache.put(
                question,
                replace(
                    result,
                    source_documents=list(sources),
                    chat_history=list(result.chat_history),
                    metadata=cached_metadata,
                ),
            )
        return result

    def ask_with_sources(self, question: str, **options: Any) -> Dict[str, Any]:
        """Answer plus short previews of the chunks it was grounded on."""
        result = self.ask(question, **options)
        sources = [
            {"content": chunk.text[:200] + "...", "metadata": chunk.metadata}
            for chunk in result.source_documents
        ]
        return {
            "answer": result.answer,
            "sources": sources,
            "chat_history": result.chat_history,
            "metadata": {
                "sources_count": len(sources),
                "question_length": len(question),
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        }

    def stream(
        self,
        question: str,
        *,
        k: int | None = None,
        filter: Mapping[str, Any] | None = None,
    ) -> Iterator[str]:
        """Yield answer fragments; the exchange joins history once complete."""
        self._require_initialized()
        sources = self._retrieve(question, k, filter)
        prompt = build_prompt(question, sources, self.history.messages())
        parts: List[str] = []
        for fragment in self.llm.stream(prompt):
            parts.append(fragment)
            yield fragment
        self.history.add_exchange(question, "".join(parts))

    def similarity_search(
        self, query: str, k: int | None = None, filter: Mapping[str, Any] | None = None
    ) -> List[Chunk]:
        self._require_initialized()
        documents = self.store.similarity_search(query, self.top_k if k is None else k, filter)
        LOGGER.info("Found %d relevant documents", len(documents))
        return documents

    def clear_history(self) -> None:
        self._require_initialized()
        self.history.clear()
        self.cache.clear()
        LOGGER.info("Chat history and query cache cleared")

    def get_history(self) -> List[Turn]:
        self._require_initialized()
        return self.history.messages()

    def switch_to_durable(self) -> None:
        self._require_initialized()
        self.store.switch_to_durable()

    def switch_to_ephemeral(self) -> None:
        self._require_initialized()
        self.store.switch_to_ephemeral()

    def get_status(self) -> Dict[str, Any]:
        initialized = self._initialized and self.store.is_initialized
        return {
            "initialized": initialized,
            "persistent": self.store.is_durable,
            "document_count": self.store.get_document_count() if initialized else 0,
            "cache_size": len(self.cache),
            "cache_enabled": self.cache_enabled,
            "history_length": len(self.history),
        }
