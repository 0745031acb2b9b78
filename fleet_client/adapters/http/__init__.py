"""HTTP transport adapters - execute request descriptors against the backend."""

from fleet_client.adapters.http.base import AbstractRequestExecutor
from fleet_client.adapters.http.factory import create_request_executor
from fleet_client.adapters.http.httpx_executor import HttpxRequestExecutor

__all__ = [
    "AbstractRequestExecutor",
    "HttpxRequestExecutor",
    "create_request_executor",
]
