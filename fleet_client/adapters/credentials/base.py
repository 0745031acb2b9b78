"""Credential provider interface."""

from __future__ import annotations

from abc import ABC, abstractmethod


class AbstractCredentialProvider(ABC):
    """Interface for objects that hold the backend API key."""

    @abstractmethod
    def get_api_key(self) -> str | None:
        """Return the API key to send as ``X-API-Key``, or None when unset."""
        raise NotImplementedError

    def has_api_key(self) -> bool:
        return bool(self.get_api_key())
