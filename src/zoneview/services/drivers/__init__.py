"""Driver aggregation helpers."""

from .aggregator import UNASSIGNED, DriverTally, aggregate, driver_for

__all__ = ["UNASSIGNED", "DriverTally", "aggregate", "driver_for"]
