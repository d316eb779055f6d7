"""Visibility resolution across overlapping base, quadrant and sub-quadrant layers.

Finer granularity overrides coarser granularity for the same area:

* a base zone is shown only if no quadrant or sub-quadrant of it is selected;
* a quadrant is shown only if none of its own sub-quadrants is selected;
* a sub-quadrant is shown whenever it is selected.

Sibling selections never suppress each other. An empty selection shows every
zone of every tier, none of them selected, so a failed selection source never
blanks the map.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Literal, Optional

from ...models.domain import Zone, ZoneTier
from ..catalog import ZoneCatalog
from ..geospatial import zones_bounds
from ..keys import base_key_from, base_plus_quadrant, is_quadrant_key, is_sub_quadrant_key
from .models import SelectionResult, SelectionSet, VisibilityDecision

logger = logging.getLogger(__name__)

UnselectedMode = Literal["hide", "dim"]


@dataclass(slots=True)
class ScopedKeySet:
    """Keys with the days they apply to; ``None`` days means every day."""

    scopes: dict[str, Optional[set[str]]] = field(default_factory=dict)

    def add(self, key: str, days: Optional[frozenset[str]]) -> None:
        if key in self.scopes and self.scopes[key] is None:
            return
        if days is None:
            self.scopes[key] = None
            return
        self.scopes.setdefault(key, set()).update(days)

    def covers(self, key: str, day: str) -> bool:
        if key not in self.scopes:
            return False
        days = self.scopes[key]
        return days is None or day in days

    def __contains__(self, key: object) -> bool:
        return key in self.scopes

    def keys(self) -> set[str]:
        return set(self.scopes)


@dataclass(slots=True)
class PrecedenceSets:
    quad_bases: ScopedKeySet
    subq_bases: ScopedKeySet
    subq_quads: ScopedKeySet


def precedence_sets(selection: SelectionSet) -> PrecedenceSets:
    """Collect which bases and quadrants have finer selections nested inside them."""

    sets = PrecedenceSets(ScopedKeySet(), ScopedKeySet(), ScopedKeySet())
    for key in selection.keys:
        days = selection.days_for(key)
        if is_sub_quadrant_key(key):
            sets.subq_bases.add(base_key_from(key), days)
            sets.subq_quads.add(base_plus_quadrant(key), days)
        elif is_quadrant_key(key):
            sets.quad_bases.add(base_key_from(key), days)
    return sets


def is_suppressed(zone: Zone, sets: PrecedenceSets) -> bool:
    """True when a finer selection nested in this zone overrides it."""

    if zone.tier is ZoneTier.BASE:
        return sets.quad_bases.covers(zone.base_key, zone.day) or sets.subq_bases.covers(zone.base_key, zone.day)
    if zone.tier is ZoneTier.QUADRANT:
        return sets.subq_quads.covers(base_plus_quadrant(zone.key), zone.day)
    return False


def resolve(
    selection: SelectionSet,
    catalog: ZoneCatalog,
    *,
    unselected_mode: UnselectedMode = "hide",
) -> SelectionResult:
    zones = catalog.all_zones()

    if selection.is_empty:
        logger.info("Empty selection; showing all %d zones unselected", len(zones))
        return SelectionResult(
            decisions=tuple(VisibilityDecision(zone, True, False) for zone in zones),
            active_keys=(),
            bounds=None,
            fallback=True,
        )

    sets = precedence_sets(selection)
    decisions: list[VisibilityDecision] = []
    matched_keys: set[str] = set()
    selected_keys: set[str] = set()
    for zone in zones:
        requested = selection.matches(zone)
        suppressed = is_suppressed(zone, sets)
        if requested:
            matched_keys.add(zone.key)
        if requested and not suppressed:
            selected_keys.add(zone.key)
            decisions.append(VisibilityDecision(zone, True, True))
        elif unselected_mode == "dim" and not suppressed:
            decisions.append(VisibilityDecision(zone, True, False))
        else:
            decisions.append(VisibilityDecision(zone, False, False))

    active = tuple(key for key in selection.keys if key in selected_keys)
    unmatched = tuple(key for key in selection.keys if key not in matched_keys)
    overridden = tuple(key for key in selection.keys if key in matched_keys and key not in selected_keys)
    selected_zones = [decision.zone for decision in decisions if decision.is_selected]

    logger.debug(
        "Resolved %d keys: %d active, %d overridden, %d unmatched",
        len(selection),
        len(active),
        len(overridden),
        len(unmatched),
    )
    return SelectionResult(
        decisions=tuple(decisions),
        active_keys=active,
        bounds=zones_bounds(selected_zones),
        unmatched_keys=unmatched,
        overridden_keys=overridden,
    )
