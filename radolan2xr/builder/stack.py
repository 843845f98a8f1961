from __future__ import annotations

import os
from collections.abc import Sequence
from dataclasses import dataclass, field

import numpy as np
import pandas as pd
import xarray as xr

from ..errors import DimensionMismatchError
from ..io.radolan import GridLayer
from ..utils.core import apply_selection


@dataclass
class GridStack:
    """
    Time-ordered stack of equally shaped grid layers.

    Attributes:
        data (xr.DataArray): Values with dims ("time", "y", "x").
        meta (dict): Representative header of the first layer with per-file
            fields replaced by the file list and the timestamp vector.
        nodata (xr.DataArray, optional): Stacked no-data masks.
        clutter (xr.DataArray, optional): Stacked clutter masks.
        crs (str, optional): CRS definition attached by the projector.
        extent (tuple, optional): (xmin, xmax, ymin, ymax) in CRS units.
        failures (list): (member, error) pairs of members that were skipped.
    """

    data: xr.DataArray
    meta: dict
    nodata: xr.DataArray | None = None
    clutter: xr.DataArray | None = None
    crs: str | None = None
    extent: tuple[float, float, float, float] | None = None
    failures: list[tuple[str, Exception]] = field(default_factory=list)

    def __len__(self) -> int:
        return self.data.sizes["time"]

    @property
    def timestamps(self) -> pd.DatetimeIndex:
        return pd.DatetimeIndex(self.data["time"].values)

    @property
    def shape(self) -> tuple[int, int]:
        return self.data.sizes["y"], self.data.sizes["x"]

    def to_dataset(self) -> xr.Dataset:
        """Values and masks as one Dataset, with JSON-serialisable attributes."""
        variables = {"value": self.data}
        if self.nodata is not None:
            variables["nodata"] = self.nodata
        if self.clutter is not None:
            variables["clutter"] = self.clutter
        ds = xr.Dataset(variables)
        ds.attrs = meta_to_attrs(self.meta)
        if self.crs is not None:
            ds.attrs["crs"] = self.crs
        if self.extent is not None:
            ds.attrs["extent"] = list(self.extent)
        return ds


def meta_to_attrs(meta: dict) -> dict:
    attrs = {}
    for key, value in meta.items():
        if isinstance(value, (list, tuple, pd.DatetimeIndex)):
            attrs[key] = [_attr_value(v) for v in value]
        else:
            attrs[key] = _attr_value(value)
    return attrs


def _attr_value(value):
    if isinstance(value, pd.Timestamp):
        return value.isoformat()
    if value is pd.NaT:
        return ""
    if isinstance(value, np.generic):
        return value.item()
    return value


def _stack_masks(
    masks: list[np.ndarray | None], template: xr.DataArray, name: str
) -> xr.DataArray | None:
    if any(mask is None for mask in masks):
        return None
    return xr.DataArray(
        np.stack(masks), dims=template.dims, coords=template.coords, name=name
    )


def assemble_stack(
    layers: Sequence[GridLayer],
    selection: Sequence[int] | None = None,
    source: str | os.PathLike | None = None,
) -> GridStack:
    """
    Combine decoded layers into one ``GridStack``.

    Parameters:
        layers (Sequence[GridLayer]): Layers sorted by member filename.
        selection (Sequence[int], optional): Ordered 1-based positions into
            ``layers``; only those layers are stacked, in that order.
        source (str | os.PathLike, optional): Archive the layers came from,
            recorded as the stack's ``filename``.

    Returns:
        GridStack: Stack with one time step per layer, in input order.

    Raises:
        ValueError: If no layers remain, or ``selection`` is malformed.
        IndexError: If a selection position is out of range.
        DimensionMismatchError: At the first layer whose shape differs from
            the first layer's. No partial stack is produced.
    """
    layers = apply_selection(list(layers), selection)
    if not layers:
        raise ValueError("Cannot assemble a stack from zero layers")

    first = layers[0]
    expected = first.shape
    for idx, layer in enumerate(layers, start=1):
        if layer.shape != expected:
            raise DimensionMismatchError(expected, layer.shape, idx, layer.filename)

    timestamps = pd.DatetimeIndex([layer.timestamp for layer in layers])
    files = [layer.filename for layer in layers]

    meta = dict(first.header.to_attrs())
    meta["filename"] = os.fspath(source) if source is not None else files
    meta["files"] = files
    meta["datetime"] = list(timestamps)
    meta["datasize"] = int(sum(layer.header.datasize for layer in layers))

    data = xr.DataArray(
        np.stack([layer.data for layer in layers]),
        dims=("time", "y", "x"),
        coords={"time": timestamps},
        name=first.header.product,
        attrs={"product": first.header.product},
    )

    crs = first.crs if all(layer.crs == first.crs for layer in layers) else None
    extent = (
        first.extent if all(layer.extent == first.extent for layer in layers) else None
    )
    coords = first.coords()
    if coords is not None and (extent is not None or first.x is not None):
        data = data.assign_coords(x=coords[0], y=coords[1])

    return GridStack(
        data=data,
        meta=meta,
        nodata=_stack_masks([layer.nodata_mask for layer in layers], data, "nodata"),
        clutter=_stack_masks([layer.clutter_mask for layer in layers], data, "clutter"),
        crs=crs,
        extent=extent,
    )
