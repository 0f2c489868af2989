"""Route group exports."""

from . import health, pooling

__all__ = ["health", "pooling"]
