"""Pydantic schemas for camera payloads in their V1 (normalized) shape."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class CameraRecord(BaseModel):
    """A camera as the V1 API describes it.

    Unknown fields are allowed so new backend fields don't count as drift.
    """

    model_config = ConfigDict(extra="allow")

    id: str = Field(..., description="Camera device id.")
    lastSeen: str = Field(..., description="ISO8601 time the camera last reported.")
    name: str | None = None
    status: str | None = Field(default=None, description="online, offline, error, ...")
    ipAddress: str | None = None
    macAddress: str | None = None


class RebootResult(BaseModel):
    """Outcome of a camera reboot command."""

    model_config = ConfigDict(extra="allow")

    success: bool
    message: str | None = None
    error: str | None = None


class CameraListResponse(BaseModel):
    """Normalized camera list as returned to callers."""

    cameras: list[CameraRecord]
    count: int = Field(..., ge=0)
