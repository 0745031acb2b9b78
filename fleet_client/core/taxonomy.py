"""Static error taxonomy: machine codes, categories and display text.

The category partition and the message registry are deliberately separate
tables, so display wording can change without touching the wire contract.
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable, Mapping


class ErrorCategory(str, Enum):
    """Error category used for UI styling and handling."""

    AUTH = "auth"
    SESSION = "session"
    DEVICE = "device"
    CAMERA = "camera"
    NETWORK = "network"
    VALIDATION = "validation"
    INFRASTRUCTURE = "infrastructure"
    UNKNOWN = "unknown"


# Codes produced by the client itself rather than by the server
HTML_FALLBACK_CODE = "HTML_FALLBACK"
MALFORMED_RESPONSE_CODE = "MALFORMED_RESPONSE"

GENERIC_USER_MESSAGE = "An unexpected error occurred. Please try again."

CATEGORY_CODES: dict[ErrorCategory, tuple[str, ...]] = {
    ErrorCategory.AUTH: ("UNAUTHORIZED", "TOTP_INVALID", "TOTP_EXPIRED"),
    ErrorCategory.SESSION: (
        "SESSION_NOT_FOUND",
        "SESSION_EXPIRED",
        "SESSION_ALREADY_ACTIVE",
        "SESSION_ALREADY_CLOSED",
        "SESSION_NOT_RECOVERABLE",
    ),
    ErrorCategory.DEVICE: (
        "DEVICE_NOT_FOUND",
        "DEVICE_NOT_IN_ALLOWLIST",
        "DEVICE_ALREADY_PROVISIONING",
        "DEVICE_INVALID_STATE",
        "MAX_RETRIES_EXCEEDED",
        "DEVICE_UNREACHABLE",
        "DEVICE_REJECTED",
        "DEVICE_TIMEOUT",
        "VERIFICATION_TIMEOUT",
    ),
    ErrorCategory.CAMERA: (
        "CAMERA_OFFLINE",
        "CAMERA_NOT_FOUND",
        "CAPTURE_FAILED",
        "CAPTURE_TIMEOUT",
        "REBOOT_FAILED",
    ),
    ErrorCategory.NETWORK: ("NETWORK_ERROR", "CIRCUIT_OPEN", "RATE_LIMITED"),
    ErrorCategory.VALIDATION: ("VALIDATION_FAILED", "INVALID_REQUEST", "MISSING_PARAMETER"),
    ErrorCategory.INFRASTRUCTURE: ("MQTT_UNAVAILABLE", "DATABASE_ERROR", "INTERNAL_ERROR"),
}

ERROR_MESSAGES: dict[str, str] = {
    # Session
    "SESSION_NOT_FOUND": "The provisioning session was not found. It may have expired.",
    "SESSION_EXPIRED": "The session has expired. Please start a new session.",
    "SESSION_ALREADY_ACTIVE": "Another provisioning session is already running.",
    "SESSION_ALREADY_CLOSED": "This session has already been closed.",
    "SESSION_NOT_RECOVERABLE": "This session cannot be recovered. Please start a new session.",
    # Device
    "DEVICE_NOT_FOUND": "The device was not found in this session.",
    "DEVICE_NOT_IN_ALLOWLIST": (
        "This device is not approved for provisioning. Add it to the allowlist first."
    ),
    "DEVICE_ALREADY_PROVISIONING": "This device is already being provisioned.",
    "DEVICE_INVALID_STATE": "Cannot perform this action on the device in its current state.",
    "MAX_RETRIES_EXCEEDED": "Maximum retry attempts reached. Please try again later.",
    "DEVICE_UNREACHABLE": (
        "Cannot connect to the device. Check that it is powered on and in range."
    ),
    "DEVICE_REJECTED": "The device rejected the connection. It may be in a different mode.",
    "DEVICE_TIMEOUT": (
        "The device is not responding. Try moving closer or restarting the device."
    ),
    "VERIFICATION_TIMEOUT": (
        "Device verification timed out. The device may not have connected to WiFi."
    ),
    # Auth
    "UNAUTHORIZED": "Authentication required. Please configure your API key.",
    "TOTP_INVALID": "The authentication code is invalid. Please try again.",
    "TOTP_EXPIRED": "The authentication code has expired. Please generate a new one.",
    # Network
    "NETWORK_ERROR": "Network unavailable. Check your connection.",
    "CIRCUIT_OPEN": "Service temporarily unavailable. The system is recovering from errors.",
    "RATE_LIMITED": "Too many requests. Please wait before trying again.",
    # Infrastructure
    "MQTT_UNAVAILABLE": "Message broker is unavailable. Some features may be limited.",
    "DATABASE_ERROR": "Database error occurred. Please try again.",
    "INTERNAL_ERROR": "An internal error occurred. Please try again or contact support.",
    # Validation
    "VALIDATION_FAILED": "Invalid input. Please check your data and try again.",
    "INVALID_REQUEST": "The request was invalid. Please check your input.",
    "MISSING_PARAMETER": "A required parameter was missing from the request.",
    # Camera
    "CAMERA_OFFLINE": "Camera is offline. Check that it is powered on and connected to WiFi.",
    "CAMERA_NOT_FOUND": "Camera not found. It may have been removed or the ID is incorrect.",
    "CAPTURE_FAILED": (
        "Failed to capture image. The camera may be busy or experiencing issues."
    ),
    "CAPTURE_TIMEOUT": (
        "Capture timed out. The camera may be slow to respond or disconnected."
    ),
    "REBOOT_FAILED": "Failed to reboot camera. Try again or check the camera status.",
}


def build_code_index(
    partition: Mapping[ErrorCategory, Iterable[str]],
) -> dict[str, ErrorCategory]:
    """Invert a category partition into a code -> category lookup.

    Args:
        partition: Codes grouped by category.

    Returns:
        Mapping from each code to its single category.

    Raises:
        ValueError: If a code appears under more than one category.
    """

    index: dict[str, ErrorCategory] = {}
    for category, codes in partition.items():
        for code in codes:
            previous = index.get(code)
            if previous is not None and previous is not category:
                raise ValueError(
                    f"Error code {code!r} listed under both "
                    f"{previous.value!r} and {category.value!r}"
                )
            index[code] = category
    return index


CODE_CATEGORIES: dict[str, ErrorCategory] = build_code_index(CATEGORY_CODES)


def get_error_category(code: str) -> ErrorCategory:
    """Return the category for an error code (``UNKNOWN`` for unlisted codes)."""

    return CODE_CATEGORIES.get(code, ErrorCategory.UNKNOWN)


def get_user_message(code: str) -> str:
    """Return display text for an error code, falling back to a generic sentence."""

    return ERROR_MESSAGES.get(code) or GENERIC_USER_MESSAGE
