"""Beacon configuration system."""

from beacon_qa.config.loader import find_config_file, load_config
from beacon_qa.config.models import BeaconConfig, PolicyConfig, ProbeConfig, TargetEntry

__all__ = [
    "BeaconConfig",
    "PolicyConfig",
    "ProbeConfig",
    "TargetEntry",
    "load_config",
    "find_config_file",
]
