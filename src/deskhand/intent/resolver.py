"""Intent Resolver - turn free text into a Command.

The language model is asked first. Its answer is a Result so that the
local parser fallback is an explicit branch:

    outcome = resolver.ask_backend(text)
    command = outcome.value if outcome.success else parse_locally(text)
"""

from __future__ import annotations

import json
import logging
from typing import Any

from deskhand.commands import Command
from deskhand.config import TIMEOUTS
from deskhand.errors import (
    LLMConnectionError,
    LLMError,
    LLMResponseError,
    ResolutionError,
    Result,
    ValidationError,
)
from deskhand.providers.base import LLMProvider

from .fallback import parse_locally
from .prompts import COMMAND_INSTRUCTIONS

logger = logging.getLogger(__name__)


def extract_json_object(reply: str) -> str | None:
    """Return the text from the first '{' to the last '}' inclusive."""
    start = reply.find("{")
    end = reply.rfind("}")
    if start < 0 or end <= start:
        return None
    return reply[start:end + 1]


def parse_command_reply(reply: str) -> Result[Command]:
    """Parse a model reply that embeds one Command JSON object.

    Prose before or after the object is ignored. A missing ``parameters``
    field becomes an empty mapping.
    """
    payload = extract_json_object(reply)
    if payload is None:
        return Result.fail(LLMResponseError("Reply contains no JSON object", reply=reply))

    try:
        data: Any = json.loads(payload)
    except json.JSONDecodeError as e:
        return Result.fail(LLMResponseError(f"Reply JSON is malformed: {e.msg}", reply=reply))

    if not isinstance(data, dict):
        return Result.fail(LLMResponseError("Reply JSON is not an object", reply=reply))

    command = Command.from_dict(data)
    if not command.command_type:
        return Result.fail(LLMResponseError("Reply has no commandType", reply=reply))
    return Result.ok(command)


class IntentResolver:
    """Resolves instructions through the language model, or locally.

    Args:
        llm: Backend to ask. None means offline: every instruction goes to
            the local parser.
        timeout_seconds: Per-request timeout for the backend.
    """

    def __init__(
        self,
        llm: LLMProvider | None,
        *,
        timeout_seconds: float = TIMEOUTS.LLM_DEFAULT,
    ) -> None:
        self._llm = llm
        self._timeout = timeout_seconds

    @property
    def llm(self) -> LLMProvider | None:
        return self._llm

    def resolve(self, text: str) -> Command:
        """Resolve one instruction into a Command.

        Never fails on backend problems; those degrade to the local parser.

        Raises:
            ValidationError: If text is empty. Callers reject blank input first.
        """
        if not text or not text.strip():
            raise ValidationError("Cannot resolve an empty instruction", field="text")

        outcome = self.ask_backend(text)
        if outcome.success and outcome.value is not None:
            logger.info(
                "Resolved %r as %s (target=%r)",
                text,
                outcome.value.type_name,
                outcome.value.target,
            )
            return outcome.value

        reason = outcome.error.message if outcome.error else "unknown"
        logger.info("Language model unavailable (%s); parsing %r locally", reason, text)
        return parse_locally(text)

    def ask_backend(self, text: str) -> Result[Command]:
        """Ask the language model for a Command."""
        if self._llm is None:
            return Result.fail(LLMConnectionError("No language model configured"))

        try:
            reply = self._llm.chat_text(
                system=COMMAND_INSTRUCTIONS,
                user=text,
                timeout_seconds=self._timeout,
                temperature=0.0,
            )
        except LLMError as e:
            return Result.fail(e)
        except Exception as e:
            logger.warning("Unexpected backend failure for %r: %s", text, e, exc_info=True)
            return Result.fail(ResolutionError(f"Backend failure: {e}", text=text))

        return parse_command_reply(reply)
