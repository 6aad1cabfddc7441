"""Target registry — the fixed set of endpoints a run observes."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Dict, List, Optional

from beacon_qa.config.models import DEFAULT_TARGETS, BeaconConfig, TargetEntry, TargetKind
from beacon_qa.registry.models import Target


class EmptyRegistryError(ValueError):
    """Raised when configuration yields no targets at all."""


class TargetRegistry:
    """Read-only registry of named targets, built once from configuration."""

    def __init__(self, config: BeaconConfig) -> None:
        entries: Dict[str, TargetEntry] = {}
        if config.include_default_targets:
            entries.update(DEFAULT_TARGETS)
        entries.update(config.targets)
        if not entries:
            raise EmptyRegistryError("No targets configured: add entries under 'targets' in .beacon.yaml")
        self._targets: Dict[str, Target] = {
            name: Target.from_entry(name, entry) for name, entry in entries.items()
        }

    @classmethod
    def from_mapping(cls, base_urls: Mapping[str, str], include_defaults: bool = False) -> TargetRegistry:
        """Build from a plain ``{target_name: base_url}`` mapping.

        Known categories keep their default kind and path; any other name is
        probed as a page.
        """
        targets: Dict[str, TargetEntry] = {}
        for name, base_url in base_urls.items():
            known = DEFAULT_TARGETS.get(name)
            if known is not None:
                targets[name] = known.model_copy(update={"url": base_url})
            else:
                targets[name] = TargetEntry(url=base_url, kind=TargetKind.PAGE)
        return cls(BeaconConfig(include_default_targets=include_defaults, targets=targets))

    @property
    def names(self) -> List[str]:
        return list(self._targets.keys())

    @property
    def has_pages(self) -> bool:
        return any(t.is_page for t in self._targets.values())

    def get(self, name: str) -> Optional[Target]:
        return self._targets.get(name)

    def __iter__(self) -> Iterator[Target]:
        return iter(self._targets.values())

    def __len__(self) -> int:
        return len(self._targets)

    def __contains__(self, name: object) -> bool:
        return name in self._targets
