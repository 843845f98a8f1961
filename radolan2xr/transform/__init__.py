from .georeferencing import (
    GEOGRAPHIC_CRS,
    RADOLAN_CRS,
    RADOLAN_EXTENT,
    RW_EXTENT,
    SEASONAL_CRS,
    SEASONAL_EXTENT,
    ProjectionSpec,
    RioxarrayEngine,
    attach,
)

__all__ = [
    "GEOGRAPHIC_CRS",
    "RADOLAN_CRS",
    "RADOLAN_EXTENT",
    "RW_EXTENT",
    "SEASONAL_CRS",
    "SEASONAL_EXTENT",
    "ProjectionSpec",
    "RioxarrayEngine",
    "attach",
]
