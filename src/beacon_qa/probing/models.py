"""Data models for probe observations."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from beacon_qa.registry.models import Target

SUCCESS_STATUS_RANGE = range(200, 400)


class Outcome(str, Enum):
    """Classification of a single probe attempt."""

    SUCCESS = "success"
    HTTP_ERROR = "http_error"  # reachable, bad status
    TRANSPORT_ERROR = "transport_error"  # unreachable, DNS, refused, broken connection
    TIMEOUT = "timeout"

    @classmethod
    def from_status(cls, status_code: Optional[int]) -> Outcome:
        if status_code is not None and status_code in SUCCESS_STATUS_RANGE:
            return cls.SUCCESS
        return cls.HTTP_ERROR


@dataclass(frozen=True)
class RenderMetrics:
    """Paint and layout signals sampled from a live page.

    Any field may be ``None``: the browser signal never fired inside the
    observation window. That means unmeasured, not failed.
    """

    largest_contentful_paint_ms: Optional[float] = None
    first_contentful_paint_ms: Optional[float] = None
    cumulative_layout_shift: Optional[float] = None

    @property
    def is_empty(self) -> bool:
        return (
            self.largest_contentful_paint_ms is None
            and self.first_contentful_paint_ms is None
            and self.cumulative_layout_shift is None
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "lcp_ms": self.largest_contentful_paint_ms,
            "fcp_ms": self.first_contentful_paint_ms,
            "cls": self.cumulative_layout_shift,
        }


@dataclass(frozen=True)
class Observation:
    """Result of one probe against one target."""

    target: Target
    attempted_at: datetime
    outcome: Outcome
    status_code: Optional[int] = None
    latency_ms: Optional[float] = None
    content_type: Optional[str] = None
    body_size: Optional[int] = None
    render_metrics: Optional[RenderMetrics] = None
    error: Optional[str] = None

    def __post_init__(self) -> None:
        in_range = self.status_code is not None and self.status_code in SUCCESS_STATUS_RANGE
        if (self.outcome is Outcome.SUCCESS) != in_range:
            raise ValueError(
                f"Outcome {self.outcome.value} is inconsistent with status code {self.status_code} "
                f"for target {self.target.name}"
            )

    @property
    def succeeded(self) -> bool:
        return self.outcome is Outcome.SUCCESS

    def to_dict(self) -> dict[str, Any]:
        return {
            "target": self.target.name,
            "attempted_at": self.attempted_at.isoformat(),
            "outcome": self.outcome.value,
            "status_code": self.status_code,
            "latency_ms": self.latency_ms,
            "content_type": self.content_type,
            "body_size": self.body_size,
            "render_metrics": self.render_metrics.to_dict() if self.render_metrics else None,
            "error": self.error,
        }
