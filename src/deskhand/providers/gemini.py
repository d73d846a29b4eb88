"""Gemini Provider - Google's hosted models over the generateContent REST API."""

from __future__ import annotations

import logging
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


class GeminiProvider:
    """LLM Provider implementation for the Gemini API.

    The API key travels in the ``x-goog-api-key`` header and is never logged.
    """

    def __init__(
        self,
        *,
        api_key: str,
        model: str | None = None,
        url: str | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model or settings.gemini_model
        self._url = (url or settings.gemini_url).rstrip("/")

    @property
    def provider_type(self) -> str:
        return "gemini"

    def chat_text(
        self,
        *,
        system: str,
        user: str,
        timeout_seconds: float = TIMEOUTS.LLM_DEFAULT,
        temperature: float | None = None,
        top_p: float | None = None,
    ) -> str:
        payload = self._build_payload(system=system, user=user, temperature=temperature, top_p=top_p)
        return self._generate(payload, timeout_seconds)

    def chat_json(
        self,
        *,
        system: str,
        user: str,
        timeout_seconds: float = TIMEOUTS.LLM_DEFAULT,
        temperature: float | None = None,
        top_p: float | None = None,
    ) -> str:
        payload = self._build_payload(system=system, user=user, temperature=temperature, top_p=top_p)
        payload["generationConfig"]["responseMimeType"] = "application/json"
        return extract_json(self._generate(payload, timeout_seconds))

    def list_models(self) -> list[ModelInfo]:
        try:
            with httpx.Client(timeout=TIMEOUTS.LLM_HEALTH_CHECK * 2) as client:
                res = client.get(f"{self._url}/models", headers=self._headers())
                res.raise_for_status()
                data = res.json()
        except Exception as e:
            logger.warning("Failed to list Gemini models: %s", e)
            return []

        models = []
        for m in data.get("models", []):
            name = m.get("name") if isinstance(m, dict) else None
            if not isinstance(name, str):
                continue
            models.append(
                ModelInfo(
                    name=name.removeprefix("models/"),
                    context_length=m.get("inputTokenLimit"),
                    description=m.get("displayName"),
                )
            )
        return models

    def check_health(self) -> ProviderHealth:
        try:
            with httpx.Client(timeout=TIMEOUTS.LLM_HEALTH_CHECK) as client:
                res = client.get(f"{self._url}/models/{self._model}", headers=self._headers())
                res.raise_for_status()
        except Exception as e:
            return ProviderHealth(reachable=False, error=str(e), current_model=self._model)
        return ProviderHealth(reachable=True, model_count=1, current_model=self._model)

    # -------------------------------------------------------------------------
    # Private Methods
    # -------------------------------------------------------------------------

    def _headers(self) -> dict[str, str]:
        return {"x-goog-api-key": self._api_key, "Content-Type": "application/json"}

    def _build_payload(
        self,
        *,
        system: str,
        user: str,
        temperature: float | None,
        top_p: float | None,
    ) -> dict[str, Any]:
        generation: dict[str, Any] = {}
        if temperature is not None:
            generation["temperature"] = float(temperature)
        if top_p is not None:
            generation["topP"] = float(top_p)
        return {
            "systemInstruction": {"parts": [{"text": system}]},
            "contents": [{"role": "user", "parts": [{"text": user}]}],
            "generationConfig": generation,
        }

    @retry_transient
    def _generate(self, payload: dict[str, Any], timeout_seconds: float) -> str:
        url = f"{self._url}/models/{self._model}:generateContent"
        try:
            with httpx.Client(timeout=timeout_seconds) as client:
                res = client.post(url, json=payload, headers=self._headers())
                res.raise_for_status()
                data = res.json()

        except httpx.ConnectError as e:
            raise LLMConnectionError(
                f"Cannot connect to Gemini at {self._url}", provider="gemini"
            ) from e

        except httpx.TimeoutException as e:
            raise LLMTimeoutError(
                f"Gemini request timed out after {timeout_seconds}s",
                provider="gemini",
                model=self._model,
            ) from e

        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status == 404:
                raise LLMConnectionError(
                    f"Gemini endpoint not found for model '{self._model}'",
                    provider="gemini",
                    model=self._model,
                    context={"status": 404},
                ) from e
            if status in (401, 403):
                raise LLMError(
                    "Gemini rejected the API key", provider="gemini", recoverable=False
                ) from e
            raise LLMError(f"Gemini HTTP error: {status}", provider="gemini", model=self._model) from e

        except ValueError as e:
            raise LLMResponseError("Gemini returned invalid JSON", provider="gemini") from e

        try:
            parts = data["candidates"][0]["content"]["parts"]
            text = "".join(p.get("text", "") for p in parts if isinstance(p, dict))
        except (KeyError, IndexError, TypeError) as e:
            raise LLMResponseError(
                "Unexpected Gemini response: no candidate text", provider="gemini"
            ) from e

        if not text.strip():
            raise LLMResponseError("Gemini returned an empty reply", provider="gemini")
        return text.strip()


def _check_protocol() -> None:
    provider: LLMProvider = GeminiProvider(api_key="")
    _ = provider  # noqa: F841
