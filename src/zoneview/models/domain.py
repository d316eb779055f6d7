"""Domain models for zone geometry and customer points."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from shapely.geometry.base import BaseGeometry


class ZoneTier(str, Enum):
    """Granularity of a zone polygon; finer tiers override coarser ones."""

    BASE = "base"
    QUADRANT = "quadrant"
    SUBQUADRANT = "subquadrant"


@dataclass(frozen=True, slots=True)
class Zone:
    """One polygon record owned by a ZoneCatalog."""

    key: str
    tier: ZoneTier
    day: str
    geometry: BaseGeometry = field(compare=False, repr=False)
    label: str
    base_key: str
    order: int = 0

    @property
    def bounds(self) -> tuple[float, float, float, float]:
        return self.geometry.bounds


@dataclass(frozen=True, slots=True)
class CustomerPoint:
    """A customer location taken from the customer sheet."""

    lat: float
    lng: float
    note: str = ""
    row: Optional[int] = None


@dataclass(frozen=True, slots=True)
class Bounds:
    """Lat/lng bounding box (south, west, north, east)."""

    south: float
    west: float
    north: float
    east: float

    @classmethod
    def from_xy(cls, minx: float, miny: float, maxx: float, maxy: float) -> "Bounds":
        return cls(south=miny, west=minx, north=maxy, east=maxx)

    def extend(self, other: "Bounds") -> "Bounds":
        return Bounds(
            south=min(self.south, other.south),
            west=min(self.west, other.west),
            north=max(self.north, other.north),
            east=max(self.east, other.east),
        )

    def pad(self, ratio: float) -> "Bounds":
        """Widen the box by ``ratio`` of its span on every side."""
        lat_pad = abs(self.north - self.south) * ratio
        lng_pad = abs(self.east - self.west) * ratio
        return Bounds(
            south=self.south - lat_pad,
            west=self.west - lng_pad,
            north=self.north + lat_pad,
            east=self.east + lng_pad,
        )

    def as_list(self) -> list[list[float]]:
        return [[self.south, self.west], [self.north, self.east]]
