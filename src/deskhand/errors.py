"""deskhand Error Hierarchy.

Provides a structured error hierarchy for the command pipeline:
- DeskhandError: Base exception for all application errors
- ValidationError: Input validation failures
- ConfigurationError: Configuration/setup issues
- LLMError: Language model backend failures
- ResolutionError: Text could not be turned into a command
- HandlerError: A capability handler could not complete its work
- AutomationError: UI automation failures
- ServiceError: OS service control failures

Each error type includes:
- Descriptive message
- Recoverable flag for retry logic
- Context dictionary for debugging

Usage:
    from deskhand.errors import Result, LLMConnectionError

    def ask(text: str) -> Result[str]:
        try:
            return Result.ok(provider.chat_text(system=PROMPT, user=text))
        except LLMConnectionError as e:
            return Result.fail(e)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


# =============================================================================
# Result Type for Explicit Success/Failure
# =============================================================================


@dataclass
class Result(Generic[T]):
    """Structured result that makes success/failure explicit.

    Used where a failure is an expected branch rather than an exceptional
    one, e.g. the language model backend being offline.

    Usage:
        result = resolver.ask_backend("open notepad")
        if result.success:
            command = result.value
        else:
            logger.info("Backend unavailable: %s", result.error.message)
    """

    success: bool
    value: T | None = None
    error: "DeskhandError | None" = None

    @classmethod
    def ok(cls, value: T) -> "Result[T]":
        """Create a successful result."""
        return cls(success=True, value=value)

    @classmethod
    def fail(cls, error: "DeskhandError") -> "Result[T]":
        """Create a failed result."""
        return cls(success=False, error=error)

    def unwrap(self) -> T:
        """Get value or raise the error.

        Raises:
            DeskhandError: If this is a failed result.
        """
        if self.success:
            return self.value  # type: ignore
        if self.error:
            raise self.error
        raise DeskhandError("Result failed with no error")

    def unwrap_or(self, default: T) -> T:
        """Get value or return default."""
        if self.success:
            return self.value  # type: ignore
        return default


# =============================================================================
# Error Base Classes
# =============================================================================


class DeskhandError(Exception):
    """Base exception for all deskhand errors.

    Attributes:
        message: Human-readable error description
        recoverable: Whether the operation can be retried
        context: Additional context for debugging
    """

    def __init__(
        self,
        message: str,
        *,
        recoverable: bool = False,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.recoverable = recoverable
        self.context = context or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to a structured dictionary."""
        return {
            "type": type(self).__name__.lower().replace("error", ""),
            "message": self.message,
            "recoverable": self.recoverable,
            **{k: v for k, v in self.context.items() if v is not None},
        }


class ValidationError(DeskhandError):
    """Input validation failed."""

    def __init__(self, message: str, *, field: str | None = None, **kwargs: Any) -> None:
        context = kwargs.pop("context", {}) or {}
        if field:
            context["field"] = field
        super().__init__(message, context=context, **kwargs)


class ConfigurationError(DeskhandError):
    """Configuration or setup issue (missing API key, unknown provider)."""

    def __init__(self, message: str, *, setting: str | None = None, **kwargs: Any) -> None:
        context = kwargs.pop("context", {}) or {}
        if setting:
            context["setting"] = setting
        super().__init__(message, context=context, **kwargs)


# =============================================================================
# Language Model Errors
# =============================================================================


class LLMError(DeskhandError):
    """Language model backend failure.

    Wraps all provider-specific errors (network, auth, parsing) into a
    single exception family.
    """

    def __init__(
        self,
        message: str,
        *,
        provider: str | None = None,
        model: str | None = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.pop("context", {}) or {}
        if provider:
            context["provider"] = provider
        if model:
            context["model"] = model
        kwargs.setdefault("recoverable", True)
        super().__init__(message, context=context, **kwargs)


class LLMConnectionError(LLMError):
    """Backend unreachable (connection refused, endpoint not found)."""


class LLMTimeoutError(LLMError):
    """Backend did not answer in time."""


class LLMResponseError(LLMError):
    """Backend answered with something unusable."""

    def __init__(self, message: str, *, reply: str | None = None, **kwargs: Any) -> None:
        context = kwargs.pop("context", {}) or {}
        if reply is not None:
            context["reply"] = _truncate(reply, 200)
        super().__init__(message, context=context, **kwargs)


# =============================================================================
# Pipeline Errors
# =============================================================================


class ResolutionError(DeskhandError):
    """Text could not be resolved into a command by the backend."""

    def __init__(self, message: str, *, text: str | None = None, **kwargs: Any) -> None:
        context = kwargs.pop("context", {}) or {}
        if text:
            context["text"] = _truncate(text, 200)
        kwargs.setdefault("recoverable", True)
        super().__init__(message, context=context, **kwargs)


class HandlerError(DeskhandError):
    """A capability handler could not complete its work."""

    def __init__(self, message: str, *, command_type: str | None = None, **kwargs: Any) -> None:
        context = kwargs.pop("context", {}) or {}
        if command_type:
            context["command_type"] = command_type
        super().__init__(message, context=context, **kwargs)


class AutomationError(HandlerError):
    """UI automation failure."""

    def __init__(self, message: str, *, application: str | None = None, **kwargs: Any) -> None:
        context = kwargs.pop("context", {}) or {}
        if application:
            context["application"] = application
        super().__init__(message, command_type="ui", context=context, **kwargs)


class AutomationUnavailableError(AutomationError):
    """The element tree cannot be reached on this platform."""


class ElementNotFoundError(AutomationError):
    """A UI element did not appear or did not match."""

    def __init__(self, message: str, *, element: str | None = None, **kwargs: Any) -> None:
        context = kwargs.pop("context", {}) or {}
        if element:
            context["element"] = element
        kwargs.setdefault("recoverable", True)
        super().__init__(message, context=context, **kwargs)


class ServiceError(HandlerError):
    """OS service control failure."""

    def __init__(self, message: str, *, service: str | None = None, **kwargs: Any) -> None:
        context = kwargs.pop("context", {}) or {}
        if service:
            context["service"] = service
        super().__init__(message, command_type="servicecontrol", context=context, **kwargs)


# =============================================================================
# Helpers
# =============================================================================


def _truncate(value: str | None, max_len: int) -> str | None:
    """Truncate a string value for safe logging."""
    if value is None:
        return None
    if len(value) <= max_len:
        return value
    return value[:max_len] + "..."
