"""Credential adapters.

The client only needs "the current API key, if any". Where it comes from
(environment, keychain, a login flow) stays behind this interface.
"""

from fleet_client.adapters.credentials.base import AbstractCredentialProvider
from fleet_client.adapters.credentials.in_memory import (
    InMemoryCredentialProvider,
    is_valid_api_key_format,
    mask_api_key,
)

__all__ = [
    "AbstractCredentialProvider",
    "InMemoryCredentialProvider",
    "is_valid_api_key_format",
    "mask_api_key",
]
