"""Ollama Provider - Local language model inference via Ollama.

Implements the LLMProvider protocol over Ollama's HTTP API with:
- Retry with exponential backoff for transient failures
- Typed errors for connection, timeout and response problems
- Model auto-selection when none is configured
"""

from __future__ import annotations

import logging
import shutil
from typing import Any

import httpx

from deskhand.config import TIMEOUTS
from deskhand.settings import settings

from ._http import extract_json, retry_transient
from .base import (
    LLMConnectionError,
    LLMError,
    LLMProvider,
    LLMResponseError,
    LLMTimeoutError,
    ModelInfo,
    ProviderHealth,
)

logger = logging.getLogger(__name__)

# Small instruction-following models that keep to a JSON format directive
_PREFERRED_MODELS = ["mistral", "llama3", "qwen", "gemma", "phi"]


def check_ollama_installed() -> bool:
    """Check if the Ollama binary is installed on the system."""
    return shutil.which("ollama") is not None


class OllamaProvider:
    """LLM Provider implementation for Ollama.

    Example:
        provider = OllamaProvider(url="http://localhost:11434", model="llama3.2:3b")
        reply = provider.chat_text(system="You are helpful.", user="Hello!")
    """

    def __init__(
        self,
        *,
        url: str | None = None,
        model: str | None = None,
    ) -> None:
        """Initialize Ollama provider.

        Args:
            url: Ollama server URL. Defaults to settings.ollama_url.
            model: Model to use. Defaults to settings.ollama_model or the
                first suitable installed model.
        """
        self._url = (url or settings.ollama_url).rstrip("/")
        self._model = model or settings.ollama_model

    @property
    def provider_type(self) -> str:
        return "ollama"

    def chat_text(
        self,
        *,
        system: str,
        user: str,
        timeout_seconds: float = TIMEOUTS.LLM_DEFAULT,
        temperature: float | None = None,
        top_p: float | None = None,
    ) -> str:
        """Generate plain text response.

        Automatically retries on transient failures.
        """
        payload = self._build_payload(system=system, user=user, temperature=temperature, top_p=top_p)
        payload["format"] = ""
        return self._post_chat(payload, timeout_seconds)

    def chat_json(
        self,
        *,
        system: str,
        user: str,
        timeout_seconds: float = TIMEOUTS.LLM_DEFAULT,
        temperature: float | None = None,
        top_p: float | None = None,
    ) -> str:
        """Generate JSON-formatted response.

        Handles models that wrap JSON in markdown code blocks.
        """
        payload = self._build_payload(system=system, user=user, temperature=temperature, top_p=top_p)
        payload["format"] = "json"
        return extract_json(self._post_chat(payload, timeout_seconds))

    def list_models(self) -> list[ModelInfo]:
        """List installed Ollama models."""
        try:
            with httpx.Client(timeout=TIMEOUTS.LLM_HEALTH_CHECK * 2) as client:
                res = client.get(f"{self._url}/api/tags")
                res.raise_for_status()
                data = res.json()
        except Exception as e:
            logger.warning("Failed to list Ollama models: %s", e)
            return []

        models = []
        for m in data.get("models", []):
            if not isinstance(m, dict) or not isinstance(m.get("name"), str):
                continue
            details = m.get("details", {}) or {}
            size_bytes = m.get("size", 0)
            size_gb = size_bytes / (1024**3) if size_bytes else None
            models.append(
                ModelInfo(
                    name=m["name"],
                    size_gb=round(size_gb, 1) if size_gb else None,
                    context_length=details.get("context_length"),
                    description=details.get("family"),
                )
            )
        return models

    def check_health(self) -> ProviderHealth:
        """Check Ollama server health."""
        try:
            with httpx.Client(timeout=TIMEOUTS.LLM_HEALTH_CHECK) as client:
                res = client.get(f"{self._url}/api/tags")
                res.raise_for_status()
                models = res.json().get("models", [])
        except Exception as e:
            return ProviderHealth(reachable=False, error=str(e))

        current = self._model
        if current is None and models:
            current = models[0].get("name")
        return ProviderHealth(reachable=True, model_count=len(models), current_model=current)

    # -------------------------------------------------------------------------
    # Private Methods
    # -------------------------------------------------------------------------

    def _build_payload(
        self,
        *,
        system: str,
        user: str,
        temperature: float | None,
        top_p: float | None,
    ) -> dict[str, Any]:
        """Build the chat request payload."""
        options: dict[str, Any] = {}
        if temperature is not None:
            options["temperature"] = float(temperature)
        if top_p is not None:
            options["top_p"] = float(top_p)

        return {
            "model": self._model or self._get_default_model(),
            "stream": False,
            "options": options,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
        }

    @retry_transient
    def _post_chat(self, payload: dict[str, Any], timeout_seconds: float) -> str:
        """Send chat request to Ollama with automatic retry."""
        url = f"{self._url}/api/chat"
        model = payload.get("model", "unknown")
        try:
            with httpx.Client(timeout=timeout_seconds) as client:
                res = client.post(url, json=payload)
                res.raise_for_status()
                data = res.json()

        except httpx.ConnectError as e:
            raise LLMConnectionError(
                f"Cannot connect to Ollama at {self._url}. Is 'ollama serve' running?",
                provider="ollama",
            ) from e

        except httpx.TimeoutException as e:
            raise LLMTimeoutError(
                f"Ollama request timed out after {timeout_seconds}s",
                provider="ollama",
                model=model,
            ) from e

        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                raise LLMConnectionError(
                    f"Model '{model}' not found. Run 'ollama pull {model}' to download it.",
                    provider="ollama",
                    model=model,
                    context={"status": 404},
                ) from e
            raise LLMError(f"Ollama HTTP error: {e}", provider="ollama", model=model) from e

        except ValueError as e:
            raise LLMResponseError("Ollama returned invalid JSON", provider="ollama") from e

        message = data.get("message")
        if not isinstance(message, dict):
            raise LLMResponseError("Unexpected Ollama response: missing message", provider="ollama")

        content = message.get("content")
        if not isinstance(content, str):
            raise LLMResponseError("Unexpected Ollama response: missing content", provider="ollama")

        return content.strip()

    def _get_default_model(self) -> str:
        """Pick a model when none is configured."""
        models = self.list_models()
        if models:
            names = [m.name for m in models]
            for pattern in _PREFERRED_MODELS:
                for name in names:
                    if pattern in name.lower():
                        logger.info("Auto-selected model: %s (preferred pattern: %s)", name, pattern)
                        self._model = name
                        return name
            logger.info("Auto-selected first available model: %s", names[0])
            self._model = names[0]
            return names[0]

        raise LLMConnectionError(
            "No Ollama model available. Set DESKHAND_OLLAMA_MODEL or pull a model.",
            provider="ollama",
        )


def _check_protocol() -> None:
    """Verify OllamaProvider implements LLMProvider protocol."""
    provider: LLMProvider = OllamaProvider()
    _ = provider  # noqa: F841
