"""Utilities to serialize selection and customer results into JSON/CSV artifacts."""

from __future__ import annotations

import csv
import io
from typing import TYPE_CHECKING, Iterable, Mapping, Optional

from ..customers.classifier import ClassificationResult
from ..drivers.aggregator import DriverTally

if TYPE_CHECKING:
    from ..selection.models import SelectionResult, SelectionSet, VisibilityDecision


def status_text(result: SelectionResult) -> str:
    keys = ", ".join(result.active_keys) or "—"
    return f"Selected features: {result.selected_count} • Keys: {keys}"


def zone_state(decision: VisibilityDecision) -> dict:
    return {
        "key": decision.zone.key,
        "tier": decision.zone.tier.value,
        "day": decision.zone.day,
        "label": decision.zone.label,
        "visible": decision.visible,
        "selected": decision.is_selected,
    }


def selection_summary(
    selection: SelectionSet,
    result: SelectionResult,
    *,
    include_zones: bool = False,
    padding: Optional[float] = None,
) -> dict:
    bounds = result.bounds
    if bounds is not None and padding:
        bounds = bounds.pad(padding)
    summary = {
        "requested_keys": list(selection.keys),
        "active_keys": list(result.active_keys),
        "unmatched_keys": list(result.unmatched_keys),
        "overridden_keys": list(result.overridden_keys),
        "fallback": result.fallback,
        "visible_count": sum(1 for decision in result.decisions if decision.visible),
        "selected_count": result.selected_count,
        "bounds": None
        if bounds is None
        else {"south": bounds.south, "west": bounds.west, "north": bounds.north, "east": bounds.east},
        "status": status_text(result),
        "zones": [],
    }
    if include_zones:
        summary["zones"] = [zone_state(decision) for decision in result.decisions]
    return summary


def customer_summary(classification: ClassificationResult, tally: DriverTally) -> dict:
    drivers = sorted(tally.counts.items(), key=lambda item: (-item[1], item[0].lower()))
    return {
        "total_points": classification.total_points,
        "inside_selected": classification.inside_selected,
        "outside_selected": classification.outside_selected,
        "any_counts": dict(classification.any_counts),
        "selected_counts": dict(classification.selected_counts),
        "per_day_selected": dict(classification.per_day_selected),
        "drivers": [
            {
                "driver": driver,
                "customers": count,
                "zones": [zone.key for zone in tally.zones.get(driver, ())],
            }
            for driver, count in drivers
        ],
        "unassigned": tally.unassigned,
    }


def driver_tally_to_csv(tally: DriverTally) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=["driver", "customers", "zones"])
    writer.writeheader()
    for driver, count in sorted(tally.counts.items()):
        writer.writerow(
            {
                "driver": driver,
                "customers": count,
                "zones": ";".join(zone.key for zone in tally.zones.get(driver, ())),
            }
        )
    return buffer.getvalue()


BATCH_INDEX_FIELDS = ["file", "name", "day", "driver", "selected", "active_keys", "unmatched_keys"]


def batch_index_to_csv(rows: Iterable[Mapping]) -> str:
    """One line per persisted batch summary; key lists are ``;``-joined."""

    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=BATCH_INDEX_FIELDS)
    writer.writeheader()
    for row in rows:
        writer.writerow(
            {
                **row,
                "active_keys": ";".join(row.get("active_keys", ())),
                "unmatched_keys": ";".join(row.get("unmatched_keys", ())),
            }
        )
    return buffer.getvalue()
