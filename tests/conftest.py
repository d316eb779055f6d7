import pytest

from zoneview.services.catalog import ZoneCatalog


def _box_feature(key, minx, miny, maxx, maxy, label=""):
    return {
        "type": "Feature",
        "properties": {"key": key, "muni": label or key},
        "geometry": {
            "type": "Polygon",
            "coordinates": [[[minx, miny], [maxx, miny], [maxx, maxy], [minx, maxy], [minx, miny]]],
        },
    }


# W1 spans lng 0..2 / lat 0..2, split into quadrants of 1x1 and W1_NE into 0.5x0.5 sub-quadrants.
BASE_FEATURES = [
    _box_feature("W01", 0, 0, 2, 2, "Westfield"),
    _box_feature("W2", 2, 0, 4, 2, "Riverside"),
]
QUADRANT_FEATURES = [
    _box_feature("W1_NE", 1, 1, 2, 2),
    _box_feature("W1_NW", 0, 1, 1, 2),
    _box_feature("W1_SE", 1, 0, 2, 1),
    _box_feature("W1_SW", 0, 0, 1, 1),
]
SUBQUADRANT_FEATURES = [
    _box_feature("W1_NE_TL", 1, 1.5, 1.5, 2),
    _box_feature("W1_NE_TR", 1.5, 1.5, 2, 2),
    _box_feature("W1_NE_LL", 1, 1, 1.5, 1.5),
    _box_feature("W1_NE_LR", 1.5, 1, 2, 1.5),
]


@pytest.fixture
def box_feature():
    return _box_feature


@pytest.fixture
def layer_features():
    return {
        "base": BASE_FEATURES,
        "quadrant": QUADRANT_FEATURES,
        "subquadrant": SUBQUADRANT_FEATURES,
    }


@pytest.fixture
def catalog(layer_features):
    zones = ZoneCatalog()
    zones.load("base", "Monday", layer_features["base"], label_field="muni")
    zones.load("quadrant", "Monday", layer_features["quadrant"], label_field="muni")
    zones.load("subquadrant", "Monday", layer_features["subquadrant"], label_field="muni")
    return zones
