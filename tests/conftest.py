"""Shared fixtures for Beacon tests."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any, Dict, Optional

import pytest
import yaml

from beacon_qa.config.models import BeaconConfig, TargetKind
from beacon_qa.probing.models import Observation, Outcome, RenderMetrics
from beacon_qa.registry.models import Target

SAMPLE_CONFIG: Dict[str, Any] = {
    "beacon": {"name": "Beacon", "version": "0.1.0"},
    "include_default_targets": False,
    "targets": {
        "blog": {
            "url": "http://localhost:3000",
            "kind": "page",
            "latency_ceiling_ms": 2500,
        },
        "api": {
            "url": "http://localhost:3001",
            "kind": "api",
            "path": "/api/data",
            "expected_content_type": "application/json",
        },
    },
    "policy": {
        "api_latency_ceiling_ms": 5000,
        "page_latency_ceiling_ms": 10000,
        "lcp_ceiling_ms": 2500,
        "cls_ceiling": 0.1,
    },
    "probe": {"timeout": 5.0, "render_window": 0.0, "samples": 1, "max_concurrency": 4},
}

BASE_TIME = datetime(2026, 1, 1, 12, 0, 0, tzinfo=UTC)


@pytest.fixture()
def sample_config() -> BeaconConfig:
    """Return a parsed BeaconConfig from sample data."""
    return BeaconConfig(**SAMPLE_CONFIG)


@pytest.fixture()
def sample_config_dict() -> Dict[str, Any]:
    """Return raw sample config dict."""
    return dict(SAMPLE_CONFIG)


@pytest.fixture()
def config_file(tmp_path: Path) -> Path:
    """Write sample config to a temp .beacon.yaml and return the path."""
    path = tmp_path / ".beacon.yaml"
    with path.open("w") as fh:
        yaml.dump(SAMPLE_CONFIG, fh)
    return path


@pytest.fixture()
def api_target() -> Target:
    return Target(name="api", url="http://localhost:3001/api/data", kind=TargetKind.API)


@pytest.fixture()
def page_target() -> Target:
    return Target(name="blog", url="http://localhost:3000", kind=TargetKind.PAGE, latency_ceiling_ms=2500)


def make_observation(
    target: Target,
    outcome: Outcome = Outcome.SUCCESS,
    *,
    status_code: Optional[int] = None,
    latency_ms: Optional[float] = 800.0,
    offset_s: float = 0.0,
    lcp: Optional[float] = None,
    fcp: Optional[float] = None,
    cls: Optional[float] = None,
    content_type: Optional[str] = None,
) -> Observation:
    """Build an observation consistent with the outcome/status invariant."""
    if status_code is None:
        status_code = {Outcome.SUCCESS: 200, Outcome.HTTP_ERROR: 500}.get(outcome)
    metrics = None
    if lcp is not None or fcp is not None or cls is not None:
        metrics = RenderMetrics(
            largest_contentful_paint_ms=lcp,
            first_contentful_paint_ms=fcp,
            cumulative_layout_shift=cls,
        )
    if outcome is Outcome.TRANSPORT_ERROR:
        latency_ms = None
    return Observation(
        target=target,
        attempted_at=BASE_TIME + timedelta(seconds=offset_s),
        outcome=outcome,
        status_code=status_code,
        latency_ms=latency_ms,
        content_type=content_type,
        render_metrics=metrics,
    )


@pytest.fixture()
def observe():
    """Factory fixture for hand-built observations."""
    return make_observation
