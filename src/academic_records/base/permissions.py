# src/academic_records/base/permissions.py
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple


@dataclass(frozen=True)
class Capability:
    """A named flag granted when the caller holds `method` on `url`."""

    name: str
    url: str
    method: str


class CapabilityResolver:
    """Resolves capability flags from the caller's resource grants."""

    def __init__(self, capabilities: Iterable[Capability] = ()):
        self._capabilities: Tuple[Capability, ...] = tuple(capabilities)

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(c.name for c in self._capabilities)

    def resolve(
        self, resources: Optional[Iterable[Mapping[str, Any]]]
    ) -> Dict[str, bool]:
        """
        Args:
            resources: Grants as ``{"url": ..., "method": ...}`` mappings.
                ``None`` grants nothing.

        Returns:
            One boolean per declared capability.
        """
        granted = {
            (resource.get("url"), str(resource.get("method", "")).upper())
            for resource in resources or ()
        }
        return {
            capability.name: (capability.url, capability.method.upper()) in granted
            for capability in self._capabilities
        }
