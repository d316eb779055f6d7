"""Customer service helpers."""

from .classifier import ClassificationResult, PointAttribution, classify
from .parser import CustomerParse, parse_coordinates, parse_customer_rows

__all__ = [
    "ClassificationResult",
    "CustomerParse",
    "PointAttribution",
    "classify",
    "parse_coordinates",
    "parse_customer_rows",
]
