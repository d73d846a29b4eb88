"""Base LLM Provider Protocol - Abstract interface for language model backends.

All providers (Ollama, Gemini) implement this protocol so the intent
resolver, the smart handler and the search handler can stay backend-agnostic.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from deskhand.errors import LLMConnectionError, LLMError, LLMResponseError, LLMTimeoutError

__all__ = [
    "LLMConnectionError",
    "LLMError",
    "LLMProvider",
    "LLMResponseError",
    "LLMTimeoutError",
    "ModelInfo",
    "ProviderHealth",
]


@dataclass
class ProviderHealth:
    """Health status of an LLM provider.

    Attributes:
        reachable: Whether the provider is accessible.
        model_count: Number of available models.
        error: Error message if not reachable.
        current_model: Currently selected model name.
    """

    reachable: bool
    model_count: int = 0
    error: str | None = None
    current_model: str | None = None


@dataclass
class ModelInfo:
    """Information about an available model."""

    name: str
    size_gb: float | None = None
    context_length: int | None = None
    capabilities: list[str] = field(default_factory=list)
    description: str | None = None


@runtime_checkable
class LLMProvider(Protocol):
    """Abstract interface for LLM providers.

    Example:
        provider = get_provider()
        reply = provider.chat_text(
            system=COMMAND_INSTRUCTIONS,
            user="open notepad and write hello",
        )
    """

    @property
    def provider_type(self) -> str:
        """Provider identifier (e.g., "ollama")."""
        ...

    def chat_text(
        self,
        *,
        system: str,
        user: str,
        timeout_seconds: float = 60.0,
        temperature: float | None = None,
        top_p: float | None = None,
    ) -> str:
        """Generate a plain text response.

        Raises:
            LLMError: On any failure (network, auth, parsing, etc.).
        """
        ...

    def chat_json(
        self,
        *,
        system: str,
        user: str,
        timeout_seconds: float = 60.0,
        temperature: float | None = None,
        top_p: float | None = None,
    ) -> str:
        """Generate a JSON-formatted response.

        Returns the raw JSON string; the caller parses it.

        Raises:
            LLMError: On any failure.
        """
        ...

    def list_models(self) -> list[ModelInfo]:
        """List available models."""
        ...

    def check_health(self) -> ProviderHealth:
        """Check provider health and connectivity."""
        ...
