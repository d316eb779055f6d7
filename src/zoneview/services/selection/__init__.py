"""Selection parsing and visibility resolution."""

from .batch import BatchResult, overview_selection, resolve_batch, selection_for_item
from .models import SelectionResult, SelectionSet, VisibilityDecision
from .parser import parse_selection_rows
from .resolver import precedence_sets, resolve

__all__ = [
    "BatchResult",
    "SelectionResult",
    "SelectionSet",
    "VisibilityDecision",
    "overview_selection",
    "parse_selection_rows",
    "precedence_sets",
    "resolve",
    "resolve_batch",
    "selection_for_item",
]
