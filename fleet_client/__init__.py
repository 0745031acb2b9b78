"""Resilient async client for the device-fleet backend (legacy and V1 APIs)."""

from fleet_client.core.diagnostics import (
    CompatibilityOutcome,
    DiagnosticContext,
    create_debug_info,
    format_debug_info,
)
from fleet_client.core.errors import ClassifiedError
from fleet_client.core.taxonomy import ErrorCategory, get_error_category, get_user_message
from fleet_client.schemas.result import Err, FeatureProbe, Ok, Result
from fleet_client.services.api_client import FleetApiClient
from fleet_client.services.cameras import CameraService
from fleet_client.services.inventory import InventoryService

__version__ = "0.1.0"

__all__ = [
    "CameraService",
    "ClassifiedError",
    "CompatibilityOutcome",
    "DiagnosticContext",
    "Err",
    "ErrorCategory",
    "FeatureProbe",
    "FleetApiClient",
    "InventoryService",
    "Ok",
    "Result",
    "create_debug_info",
    "format_debug_info",
    "get_error_category",
    "get_user_message",
]
