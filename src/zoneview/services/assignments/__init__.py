"""Driver assignment helpers."""

from .extractor import AssignmentExtraction, NameMatcher, extract, extract_detailed, merge_assignments

__all__ = [
    "AssignmentExtraction",
    "NameMatcher",
    "extract",
    "extract_detailed",
    "merge_assignments",
]
