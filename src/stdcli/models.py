"""Pydantic models for persisted configuration and telemetry payloads.

**Configuration models** -- serialised as JSON in the user's config
directory: :class:`TelemetryConfig`, :class:`OutputConfig` and
:class:`GlobalConfig`.

**Telemetry payloads** -- built by :mod:`stdcli.telemetry` and posted to the
analytics and crash-report services: :class:`TrackEvent` and
:class:`CrashItem`.

Command descriptors live in :mod:`stdcli.registry` because they carry a
callable handler rather than serialisable data.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, Field

from stdcli.output import OutputFormat
from stdcli.settings import DEFAULT_SETTINGS_DIR


# --- Configuration ---


class TelemetryConfig(BaseModel):
    """Where and whether usage events and crash reports are sent.

    Sinks without credentials are replaced by no-op sinks, so a default
    config sends nothing.
    """

    enabled: bool = Field(default=True, description="Master switch for all telemetry")
    segment_write_key: Optional[str] = Field(
        default=None, description="Write key for the analytics service"
    )
    rollbar_token: Optional[str] = Field(
        default=None, description="Access token for the crash-report service"
    )
    segment_endpoint: str = Field(
        default="https://api.segment.io", description="Analytics API base URL"
    )
    rollbar_endpoint: str = Field(
        default="https://api.rollbar.com", description="Crash-report API base URL"
    )
    timeout: float = Field(default=5.0, ge=0, description="Per-request timeout in seconds")
    client_id: Optional[str] = Field(
        default=None, description="Anonymous identifier attached to every event"
    )


class OutputConfig(BaseModel):
    """Output defaults applied when no global flag overrides them."""

    format: OutputFormat = Field(
        default=OutputFormat.AUTO, description="Output format: auto, json, plain, rich"
    )
    color: bool = Field(default=True, description="Colourise diagnostics")


class GlobalConfig(BaseModel):
    """Top-level user configuration stored at ``<config_dir>/config.json``."""

    settings_dir: str = Field(
        default=DEFAULT_SETTINGS_DIR,
        description="Hidden per-project directory holding settings files",
    )
    telemetry: TelemetryConfig = Field(default_factory=TelemetryConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)


# --- Telemetry payloads ---


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TrackEvent(BaseModel):
    """A single analytics ``track`` message."""

    type: str = "track"
    event: str
    user_id: str = Field(serialization_alias="userId")
    properties: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=_utcnow)


class CrashItem(BaseModel):
    """A single crash-report item, queued until the sink is flushed."""

    level: str = "error"
    environment: str
    error_class: str
    message: str
    frames: list[dict[str, Any]] = Field(default_factory=list)
    fields: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=_utcnow)
