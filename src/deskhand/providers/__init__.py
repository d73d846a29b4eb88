"""Language model providers.

Usage:
    from deskhand.providers import get_provider_or_none

    provider = get_provider_or_none()
    if provider is not None:
        reply = provider.chat_text(system="...", user="...")
"""

from deskhand.providers.base import (
    LLMConnectionError,
    LLMError,
    LLMProvider,
    LLMResponseError,
    LLMTimeoutError,
    ModelInfo,
    ProviderHealth,
)
from deskhand.providers.factory import (
    AVAILABLE_PROVIDERS,
    ProviderInfo,
    check_provider_health,
    get_provider,
    get_provider_info,
    get_provider_or_none,
    list_providers,
)
from deskhand.providers.gemini import GeminiProvider
from deskhand.providers.ollama import OllamaProvider, check_ollama_installed

__all__ = [
    "AVAILABLE_PROVIDERS",
    "GeminiProvider",
    "LLMConnectionError",
    "LLMError",
    "LLMProvider",
    "LLMResponseError",
    "LLMTimeoutError",
    "ModelInfo",
    "OllamaProvider",
    "ProviderHealth",
    "ProviderInfo",
    "check_ollama_installed",
    "check_provider_health",
    "get_provider",
    "get_provider_info",
    "get_provider_or_none",
    "list_providers",
]
