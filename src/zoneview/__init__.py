"""Zone selection resolution and customer attribution service."""

__version__ = "0.1.0"
