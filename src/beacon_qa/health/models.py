"""Data models for per-target verdicts and the system-wide report."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from types import MappingProxyType
from typing import Any, Optional

from beacon_qa.probing.models import Observation
from beacon_qa.registry.models import Target


@dataclass(frozen=True)
class HealthVerdict:
    """Pass/fail judgment for one target, derived from its observations.

    ``best`` is the successful observation the thresholds were checked
    against, or ``None`` when no attempt succeeded.
    """

    target: Target
    observations: tuple[Observation, ...] = ()
    passed: bool = False
    reasons: frozenset[str] = frozenset()
    best: Optional[Observation] = None

    @property
    def status_label(self) -> str:
        if self.passed:
            return "healthy"
        if not any(o.succeeded for o in self.observations):
            return "unreachable"
        return "degraded"

    @property
    def failed_outcomes(self) -> list[str]:
        """Distinct non-success outcomes seen, in first-seen order."""
        seen: dict[str, None] = {}
        for o in self.observations:
            if not o.succeeded:
                seen.setdefault(o.outcome.value, None)
        return list(seen)

    def to_dict(self) -> dict[str, Any]:
        return {
            "target": self.target.to_dict(),
            "passed": self.passed,
            "status": self.status_label,
            "reasons": sorted(self.reasons),
            "failed_outcomes": self.failed_outcomes,
            "best": self.best.to_dict() if self.best else None,
            "observations": [o.to_dict() for o in self.observations],
        }


@dataclass(frozen=True)
class HealthReport:
    """Point-in-time reduction of every verdict into one score."""

    verdicts: Mapping[str, HealthVerdict]
    overall_score: float
    generated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self) -> None:
        object.__setattr__(self, "verdicts", MappingProxyType(dict(self.verdicts)))

    @property
    def passed(self) -> list[str]:
        return [name for name, v in self.verdicts.items() if v.passed]

    @property
    def failed(self) -> list[str]:
        return [name for name, v in self.verdicts.items() if not v.passed]

    def to_dict(self) -> dict[str, Any]:
        return {
            "generated_at": self.generated_at.isoformat(),
            "overall_score": self.overall_score,
            "passed": len(self.passed),
            "total": len(self.verdicts),
            "verdicts": {name: v.to_dict() for name, v in self.verdicts.items()},
        }
