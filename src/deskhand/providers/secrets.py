"""API key lookup for hosted providers.

Keys are read from the environment first, then from the system keyring
under the ``deskhand`` service name.
"""

from __future__ import annotations

import logging
import os

import keyring
from keyring.errors import KeyringError

logger = logging.getLogger(__name__)

SERVICE_NAME = "deskhand"

_ENV_VARS: dict[str, tuple[str, ...]] = {
    "gemini": ("DESKHAND_GEMINI_API_KEY", "GEMINI_API_KEY"),
}


def get_api_key(provider: str) -> str | None:
    """Return the API key for a provider, or None if none is stored."""
    for name in _ENV_VARS.get(provider, ()):
        value = os.environ.get(name, "").strip()
        if value:
            logger.debug("Using %s API key from %s", provider, name)
            return value

    try:
        value = keyring.get_password(SERVICE_NAME, f"{provider}_api_key")
    except KeyringError as e:
        logger.warning("Keyring lookup failed for %s: %s", provider, e)
        return None
    if value:
        logger.debug("Using %s API key from keyring", provider)
        return value.strip()
    return None


def store_api_key(provider: str, key: str) -> None:
    """Save an API key in the system keyring."""
    keyring.set_password(SERVICE_NAME, f"{provider}_api_key", key)
    logger.info("Stored %s API key in keyring", provider)


def check_keyring_available() -> bool:
    """True when a usable (non-fail) keyring backend is configured."""
    backend = keyring.get_keyring()
    return "fail" not in type(backend).__module__.lower()


def get_keyring_backend_name() -> str:
    backend = keyring.get_keyring()
    return f"{type(backend).__module__}.{type(backend).__name__}"
