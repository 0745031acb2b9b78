"""In-memory credential provider.

Notes:
- Per-process only: nothing is persisted.
- Thread-safe: uses a lock around the stored key.
"""

from __future__ import annotations

import threading

from fleet_client.adapters.credentials.base import AbstractCredentialProvider

MIN_API_KEY_LENGTH = 8
MAX_API_KEY_LENGTH = 256


def mask_api_key(api_key: str | None) -> str:
    """Mask an API key for display, keeping the first and last four characters.

    Examples:
        >>> mask_api_key("abcd1234wxyz")
        'abcd****wxyz'
        >>> mask_api_key("short")
        '****'
    """
    if not api_key or len(api_key) <= 8:
        return "****"
    return f"{api_key[:4]}****{api_key[-4:]}"


def is_valid_api_key_format(api_key: str | None) -> bool:
    """Check that a key is a plausible API key (length only, no server check)."""
    if not api_key:
        return False
    key = api_key.strip()
    return MIN_API_KEY_LENGTH <= len(key) <= MAX_API_KEY_LENGTH


class InMemoryCredentialProvider(AbstractCredentialProvider):
    """Holds an API key in memory, falling back to a configured default.

    An explicitly set key wins over ``default_api_key``. Clearing the key
    also hides the default, so a "logged out" client stays logged out.
    """

    def __init__(self, default_api_key: str | None = None) -> None:
        self._lock = threading.Lock()
        self._api_key: str | None = None
        self._default_api_key = default_api_key or None
        self._cleared = False

    def get_api_key(self) -> str | None:
        with self._lock:
            if self._api_key:
                return self._api_key
            if self._cleared:
                return None
            return self._default_api_key

    def set_api_key(self, api_key: str) -> None:
        """Store a key for subsequent calls.

        Raises:
            ValueError: If the key fails the format check.
        """
        if not is_valid_api_key_format(api_key):
            raise ValueError(
                f"API key must be {MIN_API_KEY_LENGTH}-{MAX_API_KEY_LENGTH} characters"
            )
        with self._lock:
            self._api_key = api_key.strip()
            self._cleared = False

    def clear_api_key(self) -> None:
        with self._lock:
            self._api_key = None
            self._cleared = True
