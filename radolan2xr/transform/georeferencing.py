"""
Attach coordinate reference and extent to decoded grids.

The named projections follow the RADOLAN Kompositformatbeschreibung
(projection 1.5, extents 1.4 and 1.2 Abb. 3) and the DWD description of the
seasonal ``grids_germany`` products.
"""

from __future__ import annotations

import dataclasses
import logging
import math
from dataclasses import dataclass
from typing import Protocol

import numpy as np
import xarray as xr
from pyproj import CRS
from pyproj.exceptions import CRSError

from ..builder.stack import GridStack
from ..errors import DependencyUnavailableError
from ..io.radolan import GridLayer
from ..utils.core import cell_centers

logger = logging.getLogger(__name__)

RADOLAN_CRS = (
    "+proj=stere +lat_0=90 +lat_ts=90 +lon_0=10 +k=0.93301270189 "
    "+x_0=0 +y_0=0 +a=6370040 +b=6370040 +to_meter=1000 +no_defs"
)
SEASONAL_CRS = (
    "+proj=tmerc +lat_0=0 +lon_0=9 +k=1 +x_0=3500000 +y_0=0 "
    "+ellps=bessel +datum=potsdam +units=m +no_defs"
)
GEOGRAPHIC_CRS = "+proj=longlat +datum=WGS84 +no_defs"

RADOLAN_EXTENT = (-523.4622, 376.5378, -4658.645, -3758.645)
RW_EXTENT = (-443.4622, 456.5378, -4758.645, -3658.645)
SEASONAL_EXTENT = (
    3280414.71163347,
    3934414.71163347,
    5237500.62890625,
    6103500.62890625,
)


def check_extent(extent) -> tuple[float, float, float, float]:
    """Validate ``(xmin, xmax, ymin, ymax)`` and return it as a float tuple."""
    values = tuple(float(v) for v in extent)
    if len(values) != 4:
        raise ValueError(f"Extent must have 4 values (xmin, xmax, ymin, ymax), got {extent}")
    if not all(math.isfinite(v) for v in values):
        raise ValueError(f"Extent values must be finite, got {extent}")
    xmin, xmax, ymin, ymax = values
    if xmin >= xmax or ymin >= ymax:
        raise ValueError(f"Extent must satisfy xmin < xmax and ymin < ymax, got {extent}")
    return values


def validate_crs(crs: str) -> str:
    """Raise ``ValueError`` unless pyproj can parse ``crs``."""
    try:
        CRS.from_user_input(crs)
    except CRSError as e:
        raise ValueError(f"Invalid CRS definition {crs!r}: {e}") from e
    return crs


@dataclass(frozen=True)
class ProjectionSpec:
    """Named or explicit spatial reference: CRS string plus extent."""

    name: str
    crs: str
    extent: tuple[float, float, float, float]

    def __post_init__(self):
        object.__setattr__(self, "extent", check_extent(self.extent))

    @classmethod
    def radolan(cls) -> ProjectionSpec:
        return cls("radolan", RADOLAN_CRS, RADOLAN_EXTENT)

    @classmethod
    def rw(cls) -> ProjectionSpec:
        return cls("rw", RADOLAN_CRS, RW_EXTENT)

    @classmethod
    def seasonal(cls) -> ProjectionSpec:
        return cls("seasonal", SEASONAL_CRS, SEASONAL_EXTENT)

    @classmethod
    def custom(cls, crs: str, extent) -> ProjectionSpec:
        return cls("custom", crs, extent)


NAMED_PROJECTIONS = {
    "radolan": ProjectionSpec.radolan,
    "rw": ProjectionSpec.rw,
    "seasonal": ProjectionSpec.seasonal,
}


def resolve_projection(spec: ProjectionSpec | str | None) -> ProjectionSpec | None:
    """Turn a variant name (or an existing spec, or None) into a ``ProjectionSpec``."""
    if spec is None or isinstance(spec, ProjectionSpec):
        return spec
    if isinstance(spec, str):
        key = spec.lower()
        if key not in NAMED_PROJECTIONS:
            raise ValueError(
                f"Unknown projection '{spec}'. Use one of {sorted(NAMED_PROJECTIONS)} "
                "or ProjectionSpec.custom(crs, extent)"
            )
        return NAMED_PROJECTIONS[key]()
    raise TypeError(f"Cannot interpret {type(spec).__name__} as a projection")


class GeoEngine(Protocol):
    """Geospatial capability consumed for reprojection."""

    def reproject(
        self, data: xr.DataArray, src_crs: str, dst_crs: str
    ) -> xr.DataArray: ...


def _require_rioxarray():
    try:
        import rioxarray  # noqa: F401
    except ImportError as e:
        raise DependencyUnavailableError(
            "Reprojection",
            "It requires rioxarray (and rasterio), e.g. `pip install rioxarray`.",
        ) from e
    return rioxarray


class RioxarrayEngine:
    """Reprojection backed by rioxarray / rasterio."""

    def __init__(self, resampling: str = "nearest"):
        self.resampling = resampling

    def reproject(
        self, data: xr.DataArray, src_crs: str, dst_crs: str
    ) -> xr.DataArray:
        _require_rioxarray()
        from rasterio.enums import Resampling

        da = data.sortby("y", ascending=False)
        da = (
            da.rio.set_spatial_dims(x_dim="x", y_dim="y")
            .rio.write_crs(CRS.from_user_input(src_crs).to_wkt())
            .rio.write_nodata(np.nan)
        )
        return da.rio.reproject(dst_crs, resampling=Resampling[self.resampling])


def default_engine() -> GeoEngine:
    _require_rioxarray()
    return RioxarrayEngine()


def _extent_from_coords(x: np.ndarray, y: np.ndarray) -> tuple[float, float, float, float]:
    dx = abs(float(x[1] - x[0])) if len(x) > 1 else 0.0
    dy = abs(float(y[1] - y[0])) if len(y) > 1 else 0.0
    return (
        float(x.min()) - dx / 2,
        float(x.max()) + dx / 2,
        float(y.min()) - dy / 2,
        float(y.max()) + dy / 2,
    )


def _stamp(grid: GridStack | GridLayer, spec: ProjectionSpec) -> GridStack | GridLayer:
    if isinstance(grid, GridLayer):
        return dataclasses.replace(
            grid, crs=spec.crs, extent=spec.extent, x=None, y=None
        )

    x, y = cell_centers(spec.extent, grid.shape)
    attrs = {"crs": spec.crs, "extent": list(spec.extent)}
    data = grid.data.assign_coords(x=x, y=y).assign_attrs(attrs)
    masks = {
        key: mask.assign_coords(x=x, y=y) if mask is not None else None
        for key, mask in (("nodata", grid.nodata), ("clutter", grid.clutter))
    }
    return dataclasses.replace(
        grid, data=data, crs=spec.crs, extent=spec.extent, **masks
    )


def _reproject(grid: GridStack | GridLayer, engine: GeoEngine) -> GridStack | GridLayer:
    source = grid.data if isinstance(grid, GridStack) else grid.to_dataarray()
    if "x" not in source.coords or "y" not in source.coords:
        raise ValueError("Grid has a CRS but no extent; cannot reproject it")

    out = engine.reproject(source, grid.crs, GEOGRAPHIC_CRS).sortby("y")
    extent = _extent_from_coords(out["x"].values, out["y"].values)
    out = out.assign_attrs({"crs": GEOGRAPHIC_CRS, "extent": list(extent)})
    logger.info("Reprojected grid from %s to %s", grid.crs, GEOGRAPHIC_CRS)

    # masks describe the native grid only
    if isinstance(grid, GridStack):
        return dataclasses.replace(
            grid,
            data=out,
            nodata=None,
            clutter=None,
            crs=GEOGRAPHIC_CRS,
            extent=extent,
        )
    return dataclasses.replace(
        grid,
        data=out.values,
        nodata_mask=None,
        clutter_mask=None,
        crs=GEOGRAPHIC_CRS,
        extent=extent,
        x=out["x"].values,
        y=out["y"].values,
    )


def attach(
    grid: GridStack | GridLayer,
    spec: ProjectionSpec | str | None = "radolan",
    reproject_to_geographic: bool = False,
    engine: GeoEngine | None = None,
) -> GridStack | GridLayer:
    """
    Set CRS and extent on a grid, optionally reprojecting it to lon/lat.

    Parameters:
        grid (GridStack | GridLayer): Grid to georeference.
        spec (ProjectionSpec | str | None, optional): Projection variant
            ("radolan", "rw", "seasonal"), an explicit ``ProjectionSpec``, or
            None to leave CRS and extent untouched. Defaults to "radolan".
        reproject_to_geographic (bool, optional): Resample to WGS84 lon/lat
            through the geospatial engine. Defaults to False.
        engine (GeoEngine, optional): Reprojection capability. Defaults to the
            rioxarray-backed engine, resolved only when reprojection is asked for.

    Returns:
        GridStack | GridLayer: A new grid of the same type; the input is not modified.

    Raises:
        ValueError: If the CRS is invalid, or reprojection is requested for a
            grid without CRS.
        DependencyUnavailableError: If reprojection is requested and no
            engine is available.
    """
    if not isinstance(grid, (GridStack, GridLayer)):
        raise TypeError(f"Expected GridStack or GridLayer, got {type(grid).__name__}")

    spec = resolve_projection(spec)
    if spec is not None:
        validate_crs(spec.crs)
        grid = _stamp(grid, spec)

    if reproject_to_geographic:
        if grid.crs is None:
            raise ValueError(
                "Cannot reproject a grid without CRS; attach a projection first"
            )
        grid = _reproject(grid, engine or default_engine())
    return grid
