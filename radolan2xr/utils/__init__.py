"""
Utilities for radolan2xr package.
"""

from .core import (
    apply_selection,
    batch,
    cell_centers,
    timestamp_from_name,
)

__all__ = [
    "apply_selection",
    "batch",
    "cell_centers",
    "timestamp_from_name",
]
