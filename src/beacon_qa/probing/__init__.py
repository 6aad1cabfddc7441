"""Probing: one observation per target per call."""

from beacon_qa.probing.models import Observation, Outcome, RenderMetrics
from beacon_qa.probing.prober import probe
from beacon_qa.probing.render_metrics import extract_render_metrics, install_render_observers

__all__ = [
    "Observation",
    "Outcome",
    "RenderMetrics",
    "extract_render_metrics",
    "install_render_observers",
    "probe",
]
