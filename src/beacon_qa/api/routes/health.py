"""Target listing and health report endpoints."""

from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, HTTPException

from beacon_qa.config.loader import load_config
from beacon_qa.health.monitor import HealthMonitor

router = APIRouter(tags=["health"])


def _get_monitor() -> HealthMonitor:
    try:
        return HealthMonitor(load_config())
    except (FileNotFoundError, ValueError) as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc


@router.get("/targets")
async def list_targets() -> List[Dict[str, Any]]:
    monitor = _get_monitor()
    return [target.to_dict() for target in monitor.registry]


@router.get("/report")
async def health_report() -> Dict[str, Any]:
    monitor = _get_monitor()
    report = await monitor.run()
    return report.to_dict()


@router.get("/targets/{name}/verdict")
async def target_verdict(name: str) -> Dict[str, Any]:
    monitor = _get_monitor()
    if name not in monitor.registry:
        raise HTTPException(status_code=404, detail=f"Unknown target: {name}")
    verdict = await monitor.check_one(name)
    return verdict.to_dict()
