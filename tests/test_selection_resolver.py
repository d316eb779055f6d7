import pytest

from zoneview.services.selection import SelectionSet, precedence_sets, resolve
from zoneview.services.selection.models import VisibilityDecision


def _selected(result):
    return sorted({zone.key for zone in result.selected_zones})


def _visible(result):
    return sorted({zone.key for zone in result.visible_zones})


def test_quadrant_overrides_base(catalog):
    result = resolve(SelectionSet.from_keys(["W1", "W1_NE"]), catalog)

    assert _selected(result) == ["W1_NE"]
    assert result.active_keys == ("W1_NE",)
    assert result.overridden_keys == ("W1",)
    assert result.visible["W1"] is False


def test_subquadrant_overrides_its_quadrant_only(catalog):
    result = resolve(SelectionSet.from_keys(["W1_NE", "W1_NE_TL", "W1_SW"]), catalog)

    assert _selected(result) == ["W1_NE_TL", "W1_SW"]
    assert result.active_keys == ("W1_NE_TL", "W1_SW")
    assert result.visible["W1_NE"] is False


def test_sibling_quadrants_do_not_suppress_each_other(catalog):
    result = resolve(SelectionSet.from_keys(["W1_NE", "W1_SW", "W2"]), catalog)
    assert _selected(result) == ["W1_NE", "W1_SW", "W2"]


def test_subquadrant_suppresses_base(catalog):
    result = resolve(SelectionSet.from_keys(["W1", "W1_NE_LR"]), catalog)
    assert _selected(result) == ["W1_NE_LR"]


def test_empty_selection_shows_everything_unselected(catalog):
    result = resolve(SelectionSet(), catalog)

    assert result.fallback is True
    assert len(result.visible_zones) == len(catalog)
    assert result.selected_zones == []
    assert result.active_keys == ()
    assert result.bounds is None


def test_active_keys_follow_request_order(catalog):
    result = resolve(SelectionSet.from_keys(["W1_NE_TL", "W2"]), catalog)
    assert result.active_keys == ("W1_NE_TL", "W2")

    reordered = resolve(SelectionSet.from_keys(["w2", "w01_ne_tl", "W2"]), catalog)
    assert reordered.active_keys == ("W2", "W1_NE_TL")


def test_unmatched_keys_are_dropped_without_failing(catalog):
    result = resolve(SelectionSet.from_keys(["W1_NE", "Z9", "W5_SE"]), catalog)

    assert result.active_keys == ("W1_NE",)
    assert result.unmatched_keys == ("Z9", "W5_SE")
    assert result.unmatched_ratio(3) == pytest.approx(2 / 3)


def test_selection_bounds_cover_selected_zones(catalog):
    result = resolve(SelectionSet.from_keys(["W1_SW", "W2"]), catalog)
    bounds = result.bounds
    assert (bounds.south, bounds.west, bounds.north, bounds.east) == (0, 0, 2, 4)

    padded = bounds.pad(0.1)
    assert padded.west == pytest.approx(-0.4)
    assert padded.north == pytest.approx(2.2)


def test_hide_mode_hides_unselected_zones(catalog):
    result = resolve(SelectionSet.from_keys(["W2"]), catalog)
    assert _visible(result) == ["W2"]


def test_dim_mode_keeps_unselected_visible_but_hides_overridden_ancestors(catalog):
    result = resolve(SelectionSet.from_keys(["W1_NE_TL"]), catalog, unselected_mode="dim")

    assert _selected(result) == ["W1_NE_TL"]
    visible = _visible(result)
    assert "W2" in visible
    assert "W1_SW" in visible
    assert "W1" not in visible
    assert "W1_NE" not in visible


def test_selected_zones_are_always_visible(catalog):
    for keys in (["W1"], ["W1", "W1_NE"], ["W1_NE", "W1_NE_TL"], []):
        result = resolve(SelectionSet.from_keys(keys), catalog)
        assert all(decision.visible for decision in result.decisions if decision.is_selected)


def test_decision_rejects_selected_hidden_zone(catalog):
    zone = catalog.all_zones()[0]
    with pytest.raises(ValueError):
        VisibilityDecision(zone, visible=False, is_selected=True)


def test_precedence_sets_are_computed_from_keys_alone():
    sets = precedence_sets(SelectionSet.from_keys(["W1_NE", "W1_NE_TL", "W3_SW_LR", "W4"]))

    assert sets.quad_bases.keys() == {"W1"}
    assert sets.subq_bases.keys() == {"W1", "W3"}
    assert sets.subq_quads.keys() == {"W1_NE", "W3_SW"}


def test_day_scoped_selection_only_applies_to_listed_days(box_feature):
    from zoneview.services.catalog import ZoneCatalog

    catalog = ZoneCatalog()
    catalog.load("base", "Monday", [box_feature("W1", 0, 0, 2, 2)])
    catalog.load("base", "Tuesday", [box_feature("W1", 0, 0, 2, 2)])
    catalog.load("quadrant", "Tuesday", [box_feature("W1_NE", 1, 1, 2, 2)])

    selection = SelectionSet(keys=("W1", "W1_NE"), day_scopes={"W1": frozenset({"Monday", "Tuesday"}), "W1_NE": frozenset({"Tuesday"})})
    result = resolve(selection, catalog)

    selected = sorted((zone.key, zone.day) for zone in result.selected_zones)
    assert selected == [("W1", "Monday"), ("W1_NE", "Tuesday")]
