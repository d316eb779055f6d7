"""Geospatial helper functions."""

from __future__ import annotations

import logging
from typing import Iterable, Mapping, Optional

from shapely.errors import GEOSException
from shapely.geometry import MultiPolygon, Point, Polygon, shape
from shapely.geometry.base import BaseGeometry

from ..models.domain import Bounds, Zone

logger = logging.getLogger(__name__)


def polygon_from_feature(feature: Mapping) -> Optional[BaseGeometry]:
    """Return the polygonal geometry of a GeoJSON feature, or None if it has none."""

    geometry = feature.get("geometry") if isinstance(feature, Mapping) else None
    if not geometry:
        return None
    try:
        geom = shape(geometry)
    except (GEOSException, ValueError, TypeError, AttributeError, KeyError) as exc:
        logger.debug("Skipping feature with unreadable geometry: %s", exc)
        return None
    if not isinstance(geom, (Polygon, MultiPolygon)) or geom.is_empty:
        return None
    return geom


def point_within(geometry: BaseGeometry, lat: float, lng: float) -> bool:
    """Return True if the point lies inside or on the boundary of the geometry.

    Boundary points count as inside so classification never depends on
    floating-point noise along shared edges.
    """

    return geometry.covers(Point(lng, lat))


def zones_bounds(zones: Iterable[Zone]) -> Optional[Bounds]:
    """Union of the zones' bounding boxes, or None when there are no zones."""

    combined: Optional[Bounds] = None
    for zone in zones:
        if zone.geometry.is_empty:
            continue
        box = Bounds.from_xy(*zone.bounds)
        combined = box if combined is None else combined.extend(box)
    return combined


def valid_coordinate(lat: float, lng: float) -> bool:
    return -90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0
