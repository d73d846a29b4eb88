"""Retry policy and JSON extraction shared by the HTTP clients."""

from __future__ import annotations

import logging
import re

import httpx
import tenacity

from deskhand.errors import LLMConnectionError, LLMTimeoutError

logger = logging.getLogger(__name__)


def _is_retryable(exc: BaseException) -> bool:
    """Check if an exception should trigger a retry."""
    if isinstance(exc, LLMConnectionError) and exc.context.get("status") == 404:
        return False
    return isinstance(
        exc,
        (httpx.TimeoutException, httpx.ConnectError, LLMConnectionError, LLMTimeoutError),
    )


retry_transient = tenacity.retry(
    stop=tenacity.stop_after_attempt(3),
    wait=tenacity.wait_exponential(multiplier=1, min=1, max=4),
    retry=tenacity.retry_if_exception(_is_retryable),
    before_sleep=lambda rs: logger.debug(
        "Retrying %s (attempt %d)", getattr(rs.fn, "__qualname__", "request"), rs.attempt_number + 1
    ),
    reraise=True,
)


def extract_json(response: str) -> str:
    """Extract JSON from a response that might be wrapped in markdown."""
    stripped = response.strip()
    if stripped.startswith("{") or stripped.startswith("["):
        return stripped

    json_block = re.search(r"```(?:json)?\s*\n?([\s\S]*?)\n?```", response)
    if json_block:
        return json_block.group(1).strip()

    json_match = re.search(r"(\{[\s\S]*\}|\[[\s\S]*\])", response)
    if json_match:
        return json_match.group(1).strip()

    return response
