"""Inventory analysis operations (V1 only, with feature detection)."""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

from fleet_client.core.errors import ClassifiedError
from fleet_client.schemas.envelope import NO_CONTENT
from fleet_client.schemas.result import Err, FeatureProbe, Ok, Result
from fleet_client.services.api_client import FleetApiClient

RERUN_IN_PROGRESS = "RERUN_IN_PROGRESS"
INVENTORY_NOT_FOUND = "INVENTORY_NOT_FOUND"


class InventoryService:
    """Inventory analysis lookups and re-runs.

    Attributes:
        client: Configured fleet API client.
    """

    def __init__(self, client: FleetApiClient) -> None:
        self.client = client

    async def get_latest(self, container_id: str) -> Result:
        """Latest analysis run for a container.

        Returns:
            Ok(run dict), Ok(None) when the container has no analysis yet
            (404 or INVENTORY_NOT_FOUND), or Err(ClassifiedError).
        """
        result = await self.client.v1_get(
            f"/containers/{quote(container_id, safe='')}/inventory/latest",
            operation="inventory.latest",
        )
        if isinstance(result, Err):
            error = result.error
            if error.code == INVENTORY_NOT_FOUND or error.http_status == 404:
                return Ok(None)
            return result
        if result.value is NO_CONTENT:
            return Ok(None, correlation_id=result.correlation_id)
        return result

    async def rerun_analysis(self, run_id: str) -> Result:
        """Ask the backend to re-run an errored analysis.

        Older backends don't implement this endpoint; that is reported as
        ``FeatureProbe(supported=False)`` rather than as an error.

        Returns:
            Ok(FeatureProbe(supported, value={"new_run_id": ...})) or
            Err(ClassifiedError) with code RERUN_IN_PROGRESS on 409.
        """
        result = await self.client.probe_feature(
            lambda: self.client.v1_post(
                f"/inventory/{quote(run_id, safe='')}/rerun",
                {},
                operation="inventory.rerun",
            ),
            operation="inventory.rerun",
        )

        if isinstance(result, Err):
            if result.error.http_status == 409:
                return Err(
                    ClassifiedError(
                        code=RERUN_IN_PROGRESS,
                        message="A re-run is already in progress for this analysis.",
                        retryable=False,
                        correlation_id=result.error.correlation_id,
                        http_status=409,
                        endpoint=result.error.endpoint,
                        user_message_override="A re-run is already in progress for this analysis.",
                    )
                )
            return result

        probe: FeatureProbe = result.value
        if not probe.supported:
            return result

        data: Any = probe.value if isinstance(probe.value, dict) else {}
        return Ok(
            FeatureProbe(supported=True, value={"new_run_id": data.get("new_run_id")}),
            correlation_id=result.correlation_id,
        )
