"""Tests for the providers package."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import httpx
import pytest
from keyring.errors import KeyringError

from deskhand.errors import ConfigurationError
from deskhand.providers._http import extract_json
from deskhand.providers.base import (
    LLMConnectionError,
    LLMError,
    LLMProvider,
    LLMResponseError,
    LLMTimeoutError,
    ProviderHealth,
)
from deskhand.providers.factory import (
    AVAILABLE_PROVIDERS,
    check_provider_health,
    get_provider,
    get_provider_info,
    get_provider_or_none,
    list_providers,
)
from deskhand.providers.gemini import GeminiProvider
from deskhand.providers.ollama import OllamaProvider
from deskhand.providers import secrets


@pytest.fixture(autouse=True)
def no_retry_sleep(monkeypatch: pytest.MonkeyPatch) -> None:
    """Retries happen immediately in tests."""
    monkeypatch.setattr(OllamaProvider._post_chat.retry, "sleep", lambda seconds: None)
    monkeypatch.setattr(GeminiProvider._generate.retry, "sleep", lambda seconds: None)


def json_response(data: object) -> MagicMock:
    response = MagicMock()
    response.json.return_value = data
    return response


def status_error(code: int) -> httpx.HTTPStatusError:
    request = httpx.Request("POST", "http://test")
    return httpx.HTTPStatusError("boom", request=request, response=httpx.Response(code, request=request))


# =============================================================================
# JSON extraction
# =============================================================================


class TestExtractJson:
    """Tests for pulling JSON out of model replies."""

    def test_plain_object(self) -> None:
        """Should return bare JSON unchanged."""
        assert extract_json(' {"a": 1} ') == '{"a": 1}'

    def test_markdown_block(self) -> None:
        """Should unwrap fenced code blocks."""
        assert extract_json('Here:\n```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_embedded_object(self) -> None:
        """Should find an object surrounded by prose."""
        assert extract_json('Sure! {"a": 1} Hope that helps') == '{"a": 1}'


# =============================================================================
# Ollama
# =============================================================================


class TestOllamaProvider:
    """Tests for OllamaProvider over a mocked HTTP client."""

    def test_implements_protocol(self) -> None:
        """Should satisfy the LLMProvider protocol."""
        assert isinstance(OllamaProvider(model="m"), LLMProvider)

    def test_chat_text(self) -> None:
        """Should post a chat request and return stripped content."""
        provider = OllamaProvider(url="http://ollama:11434/", model="llama3")
        with patch("deskhand.providers.ollama.httpx.Client") as client_cls:
            client = client_cls.return_value.__enter__.return_value
            client.post.return_value = json_response({"message": {"content": "  hello  "}})

            reply = provider.chat_text(system="sys", user="hi", temperature=0.0)

        assert reply == "hello"
        url = client.post.call_args.args[0]
        payload = client.post.call_args.kwargs["json"]
        assert url == "http://ollama:11434/api/chat"
        assert payload["model"] == "llama3"
        assert payload["options"] == {"temperature": 0.0}
        assert payload["messages"][0] == {"role": "system", "content": "sys"}

    def test_chat_json_unwraps_markdown(self) -> None:
        """Should return only the JSON part of the reply."""
        provider = OllamaProvider(model="llama3")
        with patch("deskhand.providers.ollama.httpx.Client") as client_cls:
            client = client_cls.return_value.__enter__.return_value
            client.post.return_value = json_response({"message": {"content": '```json\n{"ok": true}\n```'}})

            assert provider.chat_json(system="s", user="u") == '{"ok": true}'
            assert client.post.call_args.kwargs["json"]["format"] == "json"

    def test_connection_error_is_retried(self) -> None:
        """Should retry transient failures then raise LLMConnectionError."""
        provider = OllamaProvider(model="llama3")
        with patch("deskhand.providers.ollama.httpx.Client") as client_cls:
            client = client_cls.return_value.__enter__.return_value
            client.post.side_effect = httpx.ConnectError("refused")

            with pytest.raises(LLMConnectionError):
                provider.chat_text(system="s", user="u")

        assert client.post.call_count == 3

    def test_timeout(self) -> None:
        """Should raise LLMTimeoutError."""
        provider = OllamaProvider(model="llama3")
        with patch("deskhand.providers.ollama.httpx.Client") as client_cls:
            client_cls.return_value.__enter__.return_value.post.side_effect = httpx.ReadTimeout("slow")
            with pytest.raises(LLMTimeoutError):
                provider.chat_text(system="s", user="u", timeout_seconds=1)

    def test_missing_model_is_not_retried(self) -> None:
        """Should fail once with a pull hint on 404."""
        provider = OllamaProvider(model="llama3")
        with patch("deskhand.providers.ollama.httpx.Client") as client_cls:
            client = client_cls.return_value.__enter__.return_value
            client.post.return_value.raise_for_status.side_effect = status_error(404)

            with pytest.raises(LLMConnectionError, match="ollama pull llama3"):
                provider.chat_text(system="s", user="u")

        assert client.post.call_count == 1

    def test_unexpected_response(self) -> None:
        """Should raise LLMResponseError when the message is missing."""
        provider = OllamaProvider(model="llama3")
        with patch("deskhand.providers.ollama.httpx.Client") as client_cls:
            client_cls.return_value.__enter__.return_value.post.return_value = json_response({"done": True})
            with pytest.raises(LLMResponseError):
                provider.chat_text(system="s", user="u")

    def test_default_model_prefers_known_families(self) -> None:
        """Should pick a preferred model when none is configured."""
        provider = OllamaProvider()
        provider._model = None
        with patch("deskhand.providers.ollama.httpx.Client") as client_cls:
            client_cls.return_value.__enter__.return_value.get.return_value = json_response(
                {"models": [{"name": "tinyllama:1b"}, {"name": "mistral:7b"}]}
            )
            assert provider._get_default_model() == "mistral:7b"

    def test_check_health_unreachable(self) -> None:
        """Should report errors instead of raising."""
        provider = OllamaProvider(model="llama3")
        with patch("deskhand.providers.ollama.httpx.Client") as client_cls:
            client_cls.return_value.__enter__.return_value.get.side_effect = httpx.ConnectError("refused")
            health = provider.check_health()
        assert health.reachable is False
        assert "refused" in health.error


# =============================================================================
# Gemini
# =============================================================================


class TestGeminiProvider:
    """Tests for GeminiProvider over a mocked HTTP client."""

    def test_chat_text(self) -> None:
        """Should join candidate parts and send the key in a header."""
        provider = GeminiProvider(api_key="secret", model="gemini-test", url="https://gemini.example/v1")
        reply = {"candidates": [{"content": {"parts": [{"text": "Hello "}, {"text": "there"}]}}]}
        with patch("deskhand.providers.gemini.httpx.Client") as client_cls:
            client = client_cls.return_value.__enter__.return_value
            client.post.return_value = json_response(reply)

            assert provider.chat_text(system="s", user="u", temperature=0.0) == "Hello there"

        assert client.post.call_args.args[0] == "https://gemini.example/v1/models/gemini-test:generateContent"
        assert client.post.call_args.kwargs["headers"]["x-goog-api-key"] == "secret"
        payload = client.post.call_args.kwargs["json"]
        assert payload["generationConfig"] == {"temperature": 0.0}
        assert payload["systemInstruction"] == {"parts": [{"text": "s"}]}

    def test_chat_json_requests_json(self) -> None:
        """Should ask for a JSON mime type."""
        provider = GeminiProvider(api_key="secret")
        reply = {"candidates": [{"content": {"parts": [{"text": '{"a": 1}'}]}}]}
        with patch("deskhand.providers.gemini.httpx.Client") as client_cls:
            client = client_cls.return_value.__enter__.return_value
            client.post.return_value = json_response(reply)
            assert provider.chat_json(system="s", user="u") == '{"a": 1}'
        assert client.post.call_args.kwargs["json"]["generationConfig"]["responseMimeType"] == "application/json"

    def test_rejected_key(self) -> None:
        """Should raise a non-recoverable error on 401."""
        provider = GeminiProvider(api_key="bad")
        with patch("deskhand.providers.gemini.httpx.Client") as client_cls:
            client_cls.return_value.__enter__.return_value.post.return_value.raise_for_status.side_effect = (
                status_error(401)
            )
            with pytest.raises(LLMError) as exc_info:
                provider.chat_text(system="s", user="u")
        assert exc_info.value.recoverable is False

    def test_no_candidates(self) -> None:
        """Should raise LLMResponseError without candidate text."""
        provider = GeminiProvider(api_key="secret")
        with patch("deskhand.providers.gemini.httpx.Client") as client_cls:
            client_cls.return_value.__enter__.return_value.post.return_value = json_response({"candidates": []})
            with pytest.raises(LLMResponseError):
                provider.chat_text(system="s", user="u")


# =============================================================================
# Factory
# =============================================================================


class TestProviderFactory:
    """Tests for provider selection."""

    def test_list_providers(self) -> None:
        """Should list every provider id."""
        assert [p.id for p in list_providers()] == ["ollama", "gemini", "none"]
        assert list_providers() is not AVAILABLE_PROVIDERS

    def test_get_provider_info(self) -> None:
        """Should look providers up by id."""
        assert get_provider_info("gemini").requires_api_key is True
        assert get_provider_info("bogus") is None

    def test_ollama(self) -> None:
        """Should build an Ollama provider."""
        assert isinstance(get_provider("ollama"), OllamaProvider)

    def test_gemini_with_key(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Should build a Gemini provider when a key is stored."""
        monkeypatch.setattr(secrets, "get_api_key", lambda provider: "k")
        assert isinstance(get_provider("gemini"), GeminiProvider)

    def test_gemini_without_key(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Should refuse to build Gemini without a key."""
        monkeypatch.setattr(secrets, "get_api_key", lambda provider: None)
        with pytest.raises(ConfigurationError, match="No Gemini API key"):
            get_provider("gemini")

    @pytest.mark.parametrize("kind", ["none", "bogus"])
    def test_no_provider(self, kind: str) -> None:
        """Should raise for offline mode and unknown ids; the lenient variant returns None."""
        with pytest.raises(ConfigurationError):
            get_provider(kind)
        assert get_provider_or_none(kind) is None

    def test_health_of_offline_mode(self) -> None:
        """Should report offline mode as unreachable."""
        health = check_provider_health("none")
        assert isinstance(health, ProviderHealth)
        assert health.reachable is False
        assert health.error == "Language model disabled (offline mode)"


# =============================================================================
# Secrets
# =============================================================================


class TestSecrets:
    """Tests for API key lookup."""

    def test_environment_wins(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Should prefer the environment over the keyring."""
        monkeypatch.setenv("DESKHAND_GEMINI_API_KEY", " env-key ")
        monkeypatch.setattr(secrets.keyring, "get_password", MagicMock(return_value="ring-key"))
        assert secrets.get_api_key("gemini") == "env-key"

    def test_keyring_fallback(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Should read the keyring under the deskhand service."""
        monkeypatch.delenv("DESKHAND_GEMINI_API_KEY", raising=False)
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        lookup = MagicMock(return_value="ring-key")
        monkeypatch.setattr(secrets.keyring, "get_password", lookup)

        assert secrets.get_api_key("gemini") == "ring-key"
        lookup.assert_called_once_with(secrets.SERVICE_NAME, "gemini_api_key")

    def test_keyring_failure(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Should treat keyring errors as no key."""
        monkeypatch.delenv("DESKHAND_GEMINI_API_KEY", raising=False)
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        monkeypatch.setattr(secrets.keyring, "get_password", MagicMock(side_effect=KeyringError("locked")))
        assert secrets.get_api_key("gemini") is None

    def test_store(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Should write the key to the keyring."""
        store = MagicMock()
        monkeypatch.setattr(secrets.keyring, "set_password", store)
        secrets.store_api_key("gemini", "abc")
        store.assert_called_once_with("deskhand", "gemini_api_key", "abc")
