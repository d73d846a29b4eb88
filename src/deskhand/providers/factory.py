"""Provider Factory - Create LLM providers based on configuration.

The provider is picked by ``settings.provider`` (``DESKHAND_PROVIDER``)
unless a type is passed explicitly. ``none`` means offline operation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from deskhand.errors import ConfigurationError
from deskhand.settings import settings

from .base import LLMError, LLMProvider, ProviderHealth

logger = logging.getLogger(__name__)


# =============================================================================
# Provider Information
# =============================================================================


@dataclass
class ProviderInfo:
    """Information about an available provider.

    Attributes:
        id: Provider identifier (e.g., "ollama").
        name: Human-readable name.
        description: Short description.
        is_local: Whether the provider runs locally.
        requires_api_key: Whether an API key is required.
    """

    id: str
    name: str
    description: str
    is_local: bool = False
    requires_api_key: bool = False


AVAILABLE_PROVIDERS: list[ProviderInfo] = [
    ProviderInfo(
        id="ollama",
        name="Ollama (Local)",
        description="Runs on your machine. No data leaves your computer.",
        is_local=True,
        requires_api_key=False,
    ),
    ProviderInfo(
        id="gemini",
        name="Google Gemini",
        description="Hosted model. Instructions are sent to Google.",
        is_local=False,
        requires_api_key=True,
    ),
    ProviderInfo(
        id="none",
        name="Offline",
        description="No language model. Only the built-in phrase parser is used.",
        is_local=True,
        requires_api_key=False,
    ),
]


def list_providers() -> list[ProviderInfo]:
    """List all available LLM providers."""
    return AVAILABLE_PROVIDERS.copy()


def get_provider_info(provider_id: str) -> ProviderInfo | None:
    """Get information about a specific provider, or None if unknown."""
    for p in AVAILABLE_PROVIDERS:
        if p.id == provider_id:
            return p
    return None


# =============================================================================
# Provider Creation
# =============================================================================


def get_provider(provider_type: str | None = None) -> LLMProvider:
    """Create the configured LLM provider.

    Args:
        provider_type: Override for settings.provider.

    Returns:
        A provider instance.

    Raises:
        ConfigurationError: Unknown provider, offline mode, or missing API key.
    """
    kind = (provider_type or settings.provider).strip().lower()

    if kind == "ollama":
        from .ollama import OllamaProvider

        return OllamaProvider()

    if kind == "gemini":
        from .gemini import GeminiProvider
        from .secrets import get_api_key

        api_key = get_api_key("gemini")
        if not api_key:
            raise ConfigurationError(
                "No Gemini API key found. Set DESKHAND_GEMINI_API_KEY or store one "
                "with 'deskhand --store-key gemini'.",
                setting="gemini_api_key",
            )
        return GeminiProvider(api_key=api_key)

    if kind == "none":
        raise ConfigurationError("Language model disabled (offline mode)", setting="provider")

    raise ConfigurationError(f"Unknown LLM provider: {kind}", setting="provider")


def get_provider_or_none(provider_type: str | None = None) -> LLMProvider | None:
    """Like get_provider() but returns None instead of raising."""
    try:
        return get_provider(provider_type)
    except (ConfigurationError, LLMError) as e:
        logger.info("No language model backend: %s", e.message)
        return None


def check_provider_health(provider_type: str | None = None) -> ProviderHealth:
    """Health of the configured provider without raising."""
    try:
        provider = get_provider(provider_type)
    except ConfigurationError as e:
        return ProviderHealth(reachable=False, error=e.message)
    return provider.check_health()
