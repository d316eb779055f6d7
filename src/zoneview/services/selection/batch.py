"""Per-item and overview selections for batch runs."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from ...persistence.filesystem import FileStorage
from ...schemas.selection import BatchItem, BatchItemResultModel, BatchRequest, BatchResponse, SelectionSummaryModel
from ..catalog import ZoneCatalog
from ..outputs.formatter import batch_index_to_csv, selection_summary
from .models import SelectionResult, SelectionSet
from .resolver import UnselectedMode, resolve

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class BatchItemResult:
    item: BatchItem
    selection: SelectionSet
    result: SelectionResult


@dataclass(frozen=True, slots=True)
class BatchResult:
    items: tuple[BatchItemResult, ...]
    overview_selection: SelectionSet
    overview: SelectionResult


def selection_for_item(item: BatchItem) -> SelectionSet:
    return SelectionSet.from_keys(item.keys)


def overview_selection(items: Sequence[BatchItem]) -> SelectionSet:
    """Union of every item's keys, in first-seen order across items."""

    return SelectionSet.from_keys(key for item in items for key in item.keys)


def resolve_batch(
    items: Sequence[BatchItem],
    catalog: ZoneCatalog,
    *,
    unselected_mode: UnselectedMode = "hide",
) -> BatchResult:
    results = []
    for item in items:
        selection = selection_for_item(item)
        results.append(BatchItemResult(item, selection, resolve(selection, catalog, unselected_mode=unselected_mode)))
    overview = overview_selection(items)
    return BatchResult(
        items=tuple(results),
        overview_selection=overview,
        overview=resolve(overview, catalog, unselected_mode=unselected_mode),
    )


def process_batch_request(
    payload: BatchRequest,
    catalog: ZoneCatalog,
    *,
    unselected_mode: UnselectedMode = "hide",
    padding: Optional[float] = None,
) -> BatchResponse:
    """Resolve every batch item plus the overview, optionally persisting summaries."""

    batch = resolve_batch(payload.items, catalog, unselected_mode=unselected_mode)
    items: list[BatchItemResultModel] = []
    for entry in batch.items:
        summary = selection_summary(entry.selection, entry.result, padding=padding)
        items.append(
            BatchItemResultModel(
                name=entry.item.name,
                day=entry.item.day,
                driver=entry.item.driver,
                out_name=entry.item.out_name,
                selection=SelectionSummaryModel(**summary),
                stats=entry.item.stats,
            )
        )
    overview = SelectionSummaryModel(**selection_summary(batch.overview_selection, batch.overview, padding=padding))

    output_dir = None
    if payload.persist:
        storage = FileStorage()
        run_dir = storage.make_run_directory(prefix=payload.run_label or "batch")
        index_rows = []
        for index, item in enumerate(items, start=1):
            name = item.out_name or item.name or f"item_{index:03d}"
            path = storage.write_summary(run_dir, name, item.model_dump())
            index_rows.append(
                {
                    "file": path.name,
                    "name": item.name,
                    "day": item.day,
                    "driver": item.driver,
                    "selected": item.selection.selected_count,
                    "active_keys": item.selection.active_keys,
                    "unmatched_keys": item.selection.unmatched_keys,
                }
            )
        storage.write_summary(run_dir, "overview", overview.model_dump())
        storage.write_csv(run_dir / "index.csv", batch_index_to_csv(index_rows))
        output_dir = str(run_dir)
        logger.info("Persisted %d batch summaries to %s", len(items), run_dir)

    return BatchResponse(items=items, overview=overview, output_dir=output_dir)
