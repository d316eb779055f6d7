"""In-memory index of zone polygons across base, quadrant and sub-quadrant tiers."""

from __future__ import annotations

import logging
from typing import Iterable, Iterator, Mapping, Optional

from ..models.domain import Zone, ZoneTier
from .geospatial import polygon_from_feature
from .keys import base_key_from, normalize

logger = logging.getLogger(__name__)


class ZoneCatalog:
    """Zones keyed by canonical key, kept in load order.

    Tiers are never deduplicated against each other: ``W1``, ``W1_NE`` and
    ``W1_NE_TL`` are separate key-spaces sharing only the base-key prefix.
    The same key may also appear once per day layer.
    """

    def __init__(self) -> None:
        self._zones: list[Zone] = []
        self._by_base: dict[str, list[Zone]] = {}

    def __len__(self) -> int:
        return len(self._zones)

    def __iter__(self) -> Iterator[Zone]:
        return iter(self._zones)

    def load(
        self,
        tier: ZoneTier | str,
        day: str,
        records: Iterable[Mapping],
        *,
        key_field: str = "key",
        label_field: str = "label",
        day_field: Optional[str] = None,
    ) -> int:
        """Append zones for one tier/day layer from GeoJSON features.

        Features without a polygon geometry or a key are skipped. Returns the
        number of zones added.
        """

        tier = ZoneTier(tier)
        added = 0
        skipped = 0
        for record in records:
            properties = (record.get("properties") if isinstance(record, Mapping) else None) or {}
            if not isinstance(properties, Mapping):
                skipped += 1
                continue
            key = normalize(properties.get(key_field))
            geometry = polygon_from_feature(record)
            if not key or geometry is None:
                skipped += 1
                continue
            zone_day = day
            if day_field and properties.get(day_field) not in (None, ""):
                zone_day = str(properties[day_field]).strip()
            zone = Zone(
                key=key,
                tier=tier,
                day=zone_day,
                geometry=geometry,
                label=str(properties.get(label_field) or "").strip(),
                base_key=base_key_from(key),
                order=len(self._zones),
            )
            self._zones.append(zone)
            self._by_base.setdefault(zone.base_key, []).append(zone)
            added += 1
        if skipped:
            logger.warning("Skipped %d %s features for day %s without key or polygon geometry", skipped, tier.value, day)
        return added

    def all_zones(self, tier: ZoneTier | str | None = None) -> list[Zone]:
        if tier is None:
            return list(self._zones)
        wanted = ZoneTier(tier)
        return [zone for zone in self._zones if zone.tier is wanted]

    def zones_by_base_key(self, key: str) -> list[Zone]:
        """Every zone of every tier and day sharing the base key of ``key``."""

        return list(self._by_base.get(base_key_from(key), ()))
