"""Data models for monitored targets."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from beacon_qa.config.models import TargetEntry, TargetKind


@dataclass(frozen=True)
class Target:
    """One named, independently deployed application under observation."""

    name: str
    url: str
    kind: TargetKind
    latency_ceiling_ms: Optional[float] = None
    collect_render_metrics: bool = True
    expected_content_type: Optional[str] = None

    @classmethod
    def from_entry(cls, name: str, entry: TargetEntry) -> Target:
        return cls(
            name=name,
            url=entry.full_url,
            kind=entry.kind,
            latency_ceiling_ms=entry.latency_ceiling_ms,
            collect_render_metrics=entry.collect_render_metrics,
            expected_content_type=entry.expected_content_type,
        )

    @property
    def is_page(self) -> bool:
        return self.kind is TargetKind.PAGE

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "url": self.url,
            "kind": self.kind.value,
            "latency_ceiling_ms": self.latency_ceiling_ms,
        }
