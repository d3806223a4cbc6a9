"""Prompt used to ground answers in retrieved context."""

from __future__ import annotations

from typing import Sequence

from docslm.models import Chunk

SYSTEM_PROMPT = """You are a helpful assistant that answers questions using the provided context.
Only use information from the context to answer.
If the answer is not in the context, say that you don't know.

{history}Context:
{context}

Question: {input}"""


def format_context(chunks: Sequence[Chunk]) -> str:
    return "\n\n".join(f"[{chunk.source}]\n{chunk.text}" for chunk in chunks)


def format_history(turns: Sequence[tuple[str, str]]) -> str:
    if not turns:
        return ""
    lines = [f"{role.capitalize()}: {content}" for role, content in turns]
    return "Conversation so far:\n" + "\n".join(lines) + "\n\n"


def build_prompt(question: str, chunks: Sequence[Chunk], history: Sequence[tuple[str, str]] = ()) -> str:
    return SYSTEM_PROMPT.format(
        history=format_history(history),
        context=format_context(chunks),
        input=question,
    )
