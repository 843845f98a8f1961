"""
Reader for ESRI ASCII grids as shipped by DWD (``.asc`` / ``.asc.gz``).

The interpolated RADOLAN ``asc`` products and the seasonal/monthly
``grids_germany`` rasters are stored as tenths of the physical unit.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

import numpy as np
import pandas as pd

from ..errors import FormatError
from ..utils.core import timestamp_from_name
from .radolan import GridLayer

HEADER_KEYS = ("ncols", "nrows", "xllcorner", "yllcorner", "cellsize")


@dataclass(frozen=True)
class AscHeader:
    """Header of an ESRI ASCII grid."""

    rows: int
    cols: int
    xllcorner: float
    yllcorner: float
    cellsize: float
    nodata_value: float | None
    datetime: pd.Timestamp
    filename: str | None = None
    product: str = "asc"
    radars: tuple[str, ...] = ()

    @property
    def shape(self) -> tuple[int, int]:
        return self.rows, self.cols

    @property
    def datasize(self) -> int:
        return self.rows * self.cols

    @property
    def extent(self) -> tuple[float, float, float, float]:
        return (
            self.xllcorner,
            self.xllcorner + self.cols * self.cellsize,
            self.yllcorner,
            self.yllcorner + self.rows * self.cellsize,
        )

    def to_attrs(self) -> dict:
        attrs = {
            "product": self.product,
            "datetime": "" if pd.isna(self.datetime) else self.datetime.isoformat(),
            "rows": self.rows,
            "cols": self.cols,
            "xllcorner": self.xllcorner,
            "yllcorner": self.yllcorner,
            "cellsize": self.cellsize,
        }
        if self.nodata_value is not None:
            attrs["nodata_value"] = self.nodata_value
        if self.filename is not None:
            attrs["filename"] = self.filename
        return attrs


def _read_header(f, path: str) -> dict:
    fields = {}
    while True:
        pos = f.tell()
        line = f.readline()
        parts = line.split()
        if len(parts) != 2 or not parts[0][0].isalpha():
            f.seek(pos)
            break
        fields[parts[0].lower()] = parts[1]

    missing = [key for key in HEADER_KEYS if key not in fields]
    if missing:
        raise FormatError(path, f"ASCII grid header lacks {missing}")
    return fields


def read_asc_grid(path: str | os.PathLike, divide_by_ten: bool = True) -> GridLayer:
    """
    Read one ESRI ASCII grid into a ``GridLayer``.

    Parameters:
        path (str | os.PathLike): Path of the ``.asc`` file.
        divide_by_ten (bool, optional): Divide the stored values by ten.
            Defaults to True.

    Returns:
        GridLayer: Values with NaN for no-data cells, with ``extent`` taken
        from the lower-left corner and cell size. ``clutter_mask`` is None.

    Raises:
        FormatError: If the header is incomplete or the value count does not
            match ``nrows * ncols``.
    """
    path = os.fspath(path)
    with open(path, encoding="ascii") as f:
        fields = _read_header(f, path)
        try:
            values = np.loadtxt(f, dtype="float64", ndmin=2)
        except ValueError as e:
            raise FormatError(path, f"unparsable ASCII grid values: {e}") from e

    header = AscHeader(
        rows=int(fields["nrows"]),
        cols=int(fields["ncols"]),
        xllcorner=float(fields["xllcorner"]),
        yllcorner=float(fields["yllcorner"]),
        cellsize=float(fields["cellsize"]),
        nodata_value=float(fields["nodata_value"]) if "nodata_value" in fields else None,
        datetime=timestamp_from_name(path),
        filename=os.path.basename(path),
    )
    if values.shape != header.shape:
        raise FormatError(
            path,
            "ASCII grid value count does not match its header",
            header.rows * header.cols,
            values.size,
        )

    nodata_mask = np.zeros(header.shape, dtype=bool)
    if header.nodata_value is not None:
        nodata_mask = values == header.nodata_value
    values[nodata_mask] = np.nan
    if divide_by_ten:
        values = values / 10

    # ASCII grids list the northern row first
    return GridLayer(
        data=values[::-1].copy(),
        header=header,
        nodata_mask=nodata_mask[::-1].copy(),
        clutter_mask=None,
        extent=header.extent,
    )
