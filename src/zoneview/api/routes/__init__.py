"""API route modules."""

from . import customers, health, selection

__all__ = ["customers", "health", "selection"]
