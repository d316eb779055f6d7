"""Output formatting helpers."""

from .formatter import (
    batch_index_to_csv,
    customer_summary,
    driver_tally_to_csv,
    selection_summary,
    status_text,
    zone_state,
)

__all__ = [
    "batch_index_to_csv",
    "customer_summary",
    "driver_tally_to_csv",
    "selection_summary",
    "status_text",
    "zone_state",
]
