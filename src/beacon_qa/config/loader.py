"""YAML config loader with environment variable interpolation."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from beacon_qa.config.models import BeaconConfig

CONFIG_FILENAMES = (".beacon.yaml", ".beacon.yml")

_ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")


def _interpolate_env(value: str) -> str:
    """Expand ${VAR} and ${VAR:-default}; unknown variables without a default stay verbatim."""

    def _replace(match: re.Match[str]) -> str:
        expr = match.group(1)
        name, sep, default = expr.partition(":-")
        found = os.environ.get(name.strip())
        if found is not None:
            return found
        return default if sep else match.group(0)

    return _ENV_VAR_PATTERN.sub(_replace, value)


def _interpolate_recursive(data: Any) -> Any:
    if isinstance(data, str):
        return _interpolate_env(data)
    if isinstance(data, dict):
        return {key: _interpolate_recursive(item) for key, item in data.items()}
    if isinstance(data, list):
        return [_interpolate_recursive(item) for item in data]
    return data


def find_config_file(start: Path | None = None) -> Path | None:
    """Walk up from *start* (default cwd) looking for .beacon.yaml or .beacon.yml."""
    current = (start or Path.cwd()).resolve()
    for ancestor in [current, *current.parents]:
        for filename in CONFIG_FILENAMES:
            candidate = ancestor / filename
            if candidate.is_file():
                return candidate
    return None


def parse_config(raw: Any, source: str = "<memory>") -> BeaconConfig:
    """Validate an already-parsed YAML document."""
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ValueError(f"Invalid configuration in {source}: expected a mapping at top level")
    try:
        return BeaconConfig(**_interpolate_recursive(raw))
    except ValidationError as exc:
        raise ValueError(f"Invalid configuration in {source}: {exc}") from exc


def load_config(path: Path | None = None) -> BeaconConfig:
    """Load and validate the Beacon config file, applying env-var interpolation."""
    config_path = path or find_config_file()
    if not config_path or not config_path.exists():
        raise FileNotFoundError(
            f"Could not find {CONFIG_FILENAMES[0]}. Create one from .beacon.yaml.example or specify a path."
        )
    with config_path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh)
    return parse_config(raw, source=str(config_path))
