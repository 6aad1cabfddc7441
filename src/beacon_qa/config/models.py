"""Pydantic models for Beacon configuration."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TargetKind(str, Enum):
    """How a target is probed: a plain HTTP request or a full page load."""

    API = "api"
    PAGE = "page"


class TargetEntry(BaseModel):
    """Configuration for a monitored application endpoint."""

    url: str
    kind: TargetKind = TargetKind.PAGE
    path: str = ""
    latency_ceiling_ms: float | None = Field(default=None, gt=0)
    collect_render_metrics: bool = True
    expected_content_type: str | None = None

    @field_validator("kind", mode="before")
    @classmethod
    def _normalise_kind(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @property
    def full_url(self) -> str:
        if not self.path:
            return self.url
        return self.url.rstrip("/") + "/" + self.path.lstrip("/")


# Known application categories and where they listen when nothing is configured.
DEFAULT_TARGETS: dict[str, TargetEntry] = {
    "blog": TargetEntry(url="http://localhost:3000", kind=TargetKind.PAGE, latency_ceiling_ms=2500),
    "api": TargetEntry(
        url="http://localhost:3001",
        kind=TargetKind.API,
        path="/api/data",
        expected_content_type="application/json",
    ),
    "upload": TargetEntry(url="http://localhost:3002", kind=TargetKind.PAGE),
    "cron": TargetEntry(url="http://localhost:3003", kind=TargetKind.PAGE),
}


class PolicyConfig(BaseModel):
    """Pass/fail thresholds applied to every verdict.

    Unknown keys are rejected. The success status range is fixed by
    ``Outcome.from_status``.
    """

    model_config = ConfigDict(extra="forbid")

    api_latency_ceiling_ms: float = Field(default=5000.0, gt=0)
    page_latency_ceiling_ms: float = Field(default=10000.0, gt=0)
    lcp_ceiling_ms: float = Field(default=2500.0, gt=0)
    cls_ceiling: float = Field(default=0.1, ge=0)

    def kind_ceiling_ms(self, kind: TargetKind) -> float:
        if kind is TargetKind.API:
            return self.api_latency_ceiling_ms
        return self.page_latency_ceiling_ms


class ProbeConfig(BaseModel):
    """How probes are issued."""

    timeout: float = 30.0
    render_window: float = Field(default=3.0, ge=0)
    samples: int = Field(default=1, ge=1)
    max_concurrency: int = Field(default=8, ge=1)
    viewport_width: int = 1440
    viewport_height: int = 900
    headless: bool = True


class BeaconIdentity(BaseModel):
    """Top-level Beacon identity metadata."""

    name: str = "Beacon"
    version: str = "0.1.0"


class BeaconConfig(BaseModel):
    """Root configuration model for .beacon.yaml."""

    beacon: BeaconIdentity = Field(default_factory=BeaconIdentity)
    include_default_targets: bool = True
    targets: dict[str, TargetEntry] = Field(default_factory=dict)
    policy: PolicyConfig = Field(default_factory=PolicyConfig)
    probe: ProbeConfig = Field(default_factory=ProbeConfig)
