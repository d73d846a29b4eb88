from __future__ import annotations

import pytest

from deskhand.errors import (
    AutomationError,
    ConfigurationError,
    DeskhandError,
    ElementNotFoundError,
    HandlerError,
    LLMConnectionError,
    LLMError,
    LLMResponseError,
    Result,
    ServiceError,
    ValidationError,
)


# =============================================================================
# Error Hierarchy Tests
# =============================================================================


class TestErrorHierarchy:
    """Tests for the exception hierarchy."""

    def test_all_errors_inherit_from_base(self) -> None:
        for cls in (ValidationError, ConfigurationError, LLMError, HandlerError, ServiceError):
            assert issubclass(cls, DeskhandError)

    def test_automation_errors_are_handler_errors(self) -> None:
        assert issubclass(ElementNotFoundError, AutomationError)
        assert issubclass(AutomationError, HandlerError)

    def test_llm_errors_are_recoverable_by_default(self) -> None:
        assert LLMConnectionError("down").recoverable is True
        assert LLMError("bad key", recoverable=False).recoverable is False
        assert DeskhandError("x").recoverable is False


class TestErrorContext:
    """Tests for structured context."""

    def test_validation_error_to_dict(self) -> None:
        error = ValidationError("Empty", field="text")
        assert error.to_dict() == {
            "type": "validation",
            "message": "Empty",
            "recoverable": False,
            "field": "text",
        }

    def test_element_not_found_context(self) -> None:
        error = ElementNotFoundError("missing", element="Save", application="notepad")
        assert error.context == {"element": "Save", "application": "notepad", "command_type": "ui"}
        assert error.recoverable is True

    def test_service_error_context(self) -> None:
        error = ServiceError("failed", service="spooler")
        assert error.context["service"] == "spooler"
        assert error.context["command_type"] == "servicecontrol"

    def test_response_error_truncates_reply(self) -> None:
        error = LLMResponseError("bad", reply="x" * 500, provider="ollama")
        assert len(error.context["reply"]) == 203
        assert error.context["provider"] == "ollama"

    def test_none_values_dropped_from_dict(self) -> None:
        error = DeskhandError("x", context={"a": None, "b": 1})
        assert error.to_dict() == {"type": "deskhand", "message": "x", "recoverable": False, "b": 1}


# =============================================================================
# Result Tests
# =============================================================================


class TestResult:
    """Tests for Result."""

    def test_ok(self) -> None:
        result = Result.ok(5)
        assert result.success is True
        assert result.unwrap() == 5
        assert result.unwrap_or(0) == 5

    def test_fail(self) -> None:
        result: Result[int] = Result.fail(ValidationError("bad"))
        assert result.success is False
        assert result.unwrap_or(0) == 0
        with pytest.raises(ValidationError):
            result.unwrap()
