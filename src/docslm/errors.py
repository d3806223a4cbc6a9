"""Exceptions raised by DocsLM components."""

from __future__ import annotations


class DocsLMError(Exception):
    """Base class for all DocsLM errors."""


class ConfigurationError(DocsLMError):
    """A required setting, credential or path is missing or invalid."""


class ProviderError(DocsLMError):
    """An embedding or completion provider call failed."""


class NotInitializedError(DocsLMError):
    """A component was used before its ``initialize`` completed."""


class PersistenceError(DocsLMError):
    """Reading or writing the persisted snapshot failed."""
