"""Camera operations: V1 first, legacy dashboard endpoints as fallback."""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

from fleet_client.schemas.cameras import CameraListResponse, RebootResult
from fleet_client.schemas.result import Ok, Result
from fleet_client.services.api_client import FleetApiClient
from fleet_client.utils.normalize import extract_list, normalize_legacy_record

V1_CAMERAS_BASE = "/cameras"
LEGACY_CAMERAS_BASE = "/dashboard/cameras"


def _camera_path(base: str, camera_id: str, suffix: str) -> str:
    return f"{base}/{quote(camera_id, safe='')}/{suffix}"


def normalize_cameras(value: Any) -> list[dict[str, Any]]:
    """Normalize a camera list in either shape (bare array or wrapped)."""
    return [
        normalize_legacy_record(item)
        for item in extract_list(value, "cameras", "devices")
        if isinstance(item, dict)
    ]


def _identity(value: Any) -> Any:
    return value


class CameraService:
    """Camera listing, diagnostics, reboot and capture.

    Attributes:
        client: Configured fleet API client.
    """

    def __init__(self, client: FleetApiClient) -> None:
        self.client = client

    async def list_cameras(self) -> Result:
        """List cameras, normalized to the V1 record shape.

        Both protocols' payloads are checked against ``CameraListResponse``
        after normalization.

        Returns:
            Ok(list of camera dicts) or Err(ClassifiedError).
        """
        result = await self.client.call_with_fallback(
            lambda: self.client.v1_get(V1_CAMERAS_BASE, operation="cameras.list"),
            lambda: self.client.legacy_get(LEGACY_CAMERAS_BASE, operation="cameras.list.legacy"),
            normalize_cameras,
            operation="cameras.list",
        )
        if isinstance(result, Ok):
            self.client.check_contract(
                CameraListResponse,
                {"cameras": result.value, "count": len(result.value)},
                operation="cameras.list",
                path=V1_CAMERAS_BASE,
            )
        return result

    async def get_diagnostics(self) -> Result:
        """Per-camera health diagnostics."""
        return await self.client.call_with_fallback(
            lambda: self.client.v1_get(
                f"{V1_CAMERAS_BASE}/diagnostics",
                operation="cameras.diagnostics",
            ),
            lambda: self.client.legacy_get(
                f"{LEGACY_CAMERAS_BASE}/diagnostics",
                operation="cameras.diagnostics.legacy",
            ),
            normalize_cameras,
            operation="cameras.diagnostics",
        )

    async def reboot(self, camera_id: str) -> Result:
        """Send a reboot command; the camera goes offline for a while afterwards."""
        return await self.client.call_with_fallback(
            lambda: self.client.v1_post(
                _camera_path(V1_CAMERAS_BASE, camera_id, "reboot"),
                schema=RebootResult,
                operation="cameras.reboot",
            ),
            lambda: self.client.legacy_post(
                _camera_path(LEGACY_CAMERAS_BASE, camera_id, "reboot"),
                operation="cameras.reboot.legacy",
            ),
            _identity,
            legacy_normalize=_normalize_legacy_reboot,
            operation="cameras.reboot",
        )

    async def capture(self, camera_id: str) -> Result:
        """Capture a still image, using the dedicated capture timeout."""
        timeout_ms = self.client.settings.capture_timeout_ms

        def normalize(value: Any) -> dict[str, Any]:
            result = dict(value) if isinstance(value, dict) else {"success": True}
            result.setdefault("camera_id", camera_id)
            return result

        return await self.client.call_with_fallback(
            lambda: self.client.v1_post(
                _camera_path(V1_CAMERAS_BASE, camera_id, "snapshot"),
                timeout_ms=timeout_ms,
                operation="cameras.capture",
            ),
            lambda: self.client.legacy_post(
                _camera_path(LEGACY_CAMERAS_BASE, camera_id, "capture"),
                timeout_ms=timeout_ms,
                operation="cameras.capture.legacy",
            ),
            normalize,
            operation="cameras.capture",
        )


def _normalize_legacy_reboot(value: Any) -> dict[str, Any]:
    body = dict(value) if isinstance(value, dict) else {}
    success = bool(body.get("success", False))
    message = body.get("message") or (
        "Reboot command sent" if success else body.get("error") or "Reboot failed"
    )
    return {"success": success, "message": message, "error": body.get("error")}
