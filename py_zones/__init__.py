"""Support-zone territory partitioning."""

__version__ = "0.1.0"
