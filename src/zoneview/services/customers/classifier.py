"""Attribution of customer points to visible and selected zones."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Optional, Sequence

from shapely.prepared import prep

from ...models.domain import CustomerPoint, Zone
from ..geospatial import point_within


@dataclass(frozen=True, slots=True)
class PointAttribution:
    point: CustomerPoint
    any_zone: Optional[Zone]
    selected_zone: Optional[Zone]


@dataclass(frozen=True, slots=True)
class ClassificationResult:
    attributions: tuple[PointAttribution, ...] = ()
    any_counts: Counter = field(default_factory=Counter)
    selected_counts: Counter = field(default_factory=Counter)
    per_day_selected: Counter = field(default_factory=Counter)
    inside_selected: int = 0
    outside_selected: int = 0

    @property
    def total_points(self) -> int:
        return len(self.attributions)


class _ZoneIndex:
    """First-match lookup over zones in their given order.

    Overlapping zones resolve to the earliest one; catalog load order is
    therefore the tie-break.
    """

    def __init__(self, zones: Sequence[Zone]) -> None:
        self._entries = [(zone, prep(zone.geometry)) for zone in zones]

    def first_containing(self, point: CustomerPoint) -> Optional[Zone]:
        for zone, prepared in self._entries:
            if point_within(prepared, point.lat, point.lng):
                return zone
        return None


def classify(
    points: Sequence[CustomerPoint],
    all_visible_zones: Sequence[Zone],
    selected_zones: Sequence[Zone],
) -> ClassificationResult:
    any_index = _ZoneIndex(all_visible_zones)
    selected_index = _ZoneIndex(selected_zones)

    attributions: list[PointAttribution] = []
    any_counts: Counter = Counter()
    selected_counts: Counter = Counter()
    per_day: Counter = Counter()
    inside = 0
    for point in points:
        any_zone = any_index.first_containing(point)
        selected_zone = selected_index.first_containing(point)
        if any_zone is not None:
            any_counts[any_zone.key] += 1
        if selected_zone is not None:
            selected_counts[selected_zone.key] += 1
            per_day[selected_zone.day] += 1
            inside += 1
        attributions.append(PointAttribution(point, any_zone, selected_zone))

    return ClassificationResult(
        attributions=tuple(attributions),
        any_counts=any_counts,
        selected_counts=selected_counts,
        per_day_selected=per_day,
        inside_selected=inside,
        outside_selected=len(attributions) - inside,
    )
