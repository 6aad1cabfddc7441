"""Health judgments: verdicts, reports and the concurrent monitor."""

from beacon_qa.health.aggregator import evaluate, summarize
from beacon_qa.health.models import HealthReport, HealthVerdict
from beacon_qa.health.monitor import HealthMonitor

__all__ = ["HealthMonitor", "HealthReport", "HealthVerdict", "evaluate", "summarize"]
