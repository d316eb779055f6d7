"""Per-driver customer tallies."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Optional, Sequence

from ...models.domain import Zone

UNASSIGNED = "unassigned"


@dataclass(frozen=True, slots=True)
class DriverTally:
    counts: dict[str, int] = field(default_factory=dict)
    zones: dict[str, tuple[Zone, ...]] = field(default_factory=dict)
    unassigned: int = 0

    @property
    def total(self) -> int:
        return sum(self.counts.values())


def driver_for(zone: Zone, assignments: Mapping[str, str]) -> Optional[str]:
    """Exact key first, then the zone's base key."""

    return assignments.get(zone.key) or assignments.get(zone.base_key) or None


def aggregate(
    selected_zones: Sequence[Zone],
    assignments: Mapping[str, str],
    selected_counts: Mapping[str, int],
) -> DriverTally:
    """Sum in-selection customer counts per driver.

    Counts are keyed by zone key, so a key repeated across day layers is
    counted and listed once. Zones without a resolvable driver add to ``unassigned``.
    """

    counts: dict[str, int] = {}
    groups: dict[str, list[Zone]] = {}
    unassigned = 0
    counted: set[str] = set()
    for zone in selected_zones:
        if zone.key in counted:
            continue
        counted.add(zone.key)
        driver = driver_for(zone, assignments)
        if driver:
            groups.setdefault(driver, []).append(zone)
        count = selected_counts.get(zone.key, 0)
        if not count:
            continue
        if driver:
            counts[driver] = counts.get(driver, 0) + count
        else:
            unassigned += count

    return DriverTally(
        counts=counts,
        zones={driver: tuple(zones) for driver, zones in groups.items()},
        unassigned=unassigned,
    )
