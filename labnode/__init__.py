"""Node lifecycle drivers for container-backed network labs."""

__version__ = "0.1.0"
