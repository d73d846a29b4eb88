"""Centralized configuration constants for deskhand.

This module provides a single source of truth for:
- Timeouts (backend calls, process exit, service transitions, UI waits)
- Pacing delays between sequence steps
- Sequence execution budgets
- Output truncation and matching limits

Constants can be overridden via environment variables where noted.
"""

from __future__ import annotations

import os
from dataclasses import dataclass


# =============================================================================
# Helper functions
# =============================================================================


def _env_int(name: str, default: int, min_val: int | None = None) -> int:
    """Get integer from environment with optional minimum enforcement."""
    val = int(os.environ.get(name, str(default)))
    if min_val is not None and val < min_val:
        return min_val
    return val


def _env_float(name: str, default: float, min_val: float | None = None) -> float:
    """Get float from environment with optional minimum enforcement."""
    val = float(os.environ.get(name, str(default)))
    if min_val is not None and val < min_val:
        return min_val
    return val


# =============================================================================
# Timeouts
# =============================================================================


@dataclass(frozen=True)
class Timeouts:
    """Timeout values in seconds."""

    # Language model calls
    LLM_DEFAULT: float = _env_float("DESKHAND_LLM_TIMEOUT", 60.0, min_val=1.0)
    LLM_HEALTH_CHECK: float = 2.0

    # Plain HTTP (web search)
    HTTP_REQUEST: float = _env_float("DESKHAND_HTTP_TIMEOUT", 10.0, min_val=1.0)

    # Grace period between terminate() and kill()
    PROCESS_EXIT: float = 5.0

    # systemctl / sc invocations and the wait for a state change
    SERVICE_COMMAND: int = 30
    SERVICE_TRANSITION: float = 15.0

    # Bounded polling for windows and UI elements
    APP_READY: float = _env_float("DESKHAND_APP_READY_TIMEOUT", 10.0, min_val=0.0)
    ELEMENT_WAIT: float = _env_float("DESKHAND_ELEMENT_WAIT_TIMEOUT", 10.0, min_val=0.0)
    POLL_INTERVAL: float = 0.5


TIMEOUTS = Timeouts()


# =============================================================================
# Delays
# =============================================================================


@dataclass(frozen=True)
class Delays:
    """Best-effort pauses that let OS side effects settle."""

    STEP: float = _env_float("DESKHAND_STEP_DELAY", 0.5, min_val=0.0)
    APP_INIT: float = _env_float("DESKHAND_APP_INIT_DELAY", 2.0, min_val=0.0)
    TYPING_INTERVAL: float = 0.02


DELAYS = Delays()


# =============================================================================
# Sequence Budgets
# =============================================================================


@dataclass(frozen=True)
class SequenceLimits:
    """Budgets for multi-step instructions."""

    MAX_SECONDS: float = _env_float("DESKHAND_SEQUENCE_MAX_SECONDS", 300.0, min_val=1.0)
    MAX_STEPS: int = _env_int("DESKHAND_SEQUENCE_MAX_STEPS", 25, min_val=2)
    # Off: later steps still run after a failed one
    STOP_ON_FAILURE: bool = os.environ.get("DESKHAND_SEQUENCE_STOP_ON_FAILURE", "").lower() in {
        "1",
        "true",
        "yes",
    }


SEQUENCE = SequenceLimits()


# =============================================================================
# Output and Matching Limits
# =============================================================================


@dataclass(frozen=True)
class Limits:
    """Truncation and fuzzy-matching limits."""

    MAX_FILE_DISPLAY: int = 4000
    MAX_SEARCH_RESULTS: int = 5
    MAX_SUGGESTIONS: int = 5
    MAX_HISTORY: int = 200
    FUZZY_CUTOFF: float = 0.6


LIMITS = Limits()
