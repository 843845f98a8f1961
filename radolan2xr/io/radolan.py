"""
Decoder for DWD RADOLAN binary composites.

A composite file is an ASCII header terminated by ETX (``0x03``) followed by
``rows * cols`` little-endian 16-bit cells. Each cell packs the magnitude in
its low bits and no-data / negative / clutter flags in its high bits; the
exact layout comes from the versioned format description in
``config/radolan_formats.json``.

See the Kompositformatbeschreibung at
https://www.dwd.de/DE/leistungen/radolan/radolan.html
"""

from __future__ import annotations

import logging
import math
import os
import re
from dataclasses import dataclass, field

import numpy as np
import pandas as pd
import xarray as xr

from ..config.formats import CompositeFormat, get_composite_format
from ..errors import FormatError, UnsupportedFormatError
from ..utils.core import cell_centers

logger = logging.getLogger(__name__)

PREFIX_LENGTH = 17
_PRODUCT_CODE = re.compile(r"^[A-Z][A-Z0-9]$")


@dataclass(frozen=True)
class CompositeHeader:
    """Parsed header of one composite file."""

    product: str
    datetime: pd.Timestamp
    wmo: str
    rows: int
    cols: int
    precision: int
    datasize: int
    radars: tuple[str, ...] = ()
    version: int | None = None
    software: str | None = None
    interval: int | None = None
    filename: str | None = None
    format_version: str | None = None
    extra: dict = field(default_factory=dict)
    text: str = ""

    @property
    def shape(self) -> tuple[int, int]:
        return self.rows, self.cols

    @property
    def divisor(self) -> float:
        return 10.0**self.precision

    def to_attrs(self) -> dict:
        """Flat attribute dict suitable for xarray / netCDF / Zarr."""
        attrs = {
            "product": self.product,
            "datetime": self.datetime.isoformat(),
            "wmo": self.wmo,
            "rows": self.rows,
            "cols": self.cols,
            "precision": self.precision,
            "datasize": self.datasize,
            "radars": ",".join(self.radars),
        }
        for key in ("version", "software", "interval", "filename", "format_version"):
            value = getattr(self, key)
            if value is not None:
                attrs[key] = value
        for key, value in self.extra.items():
            attrs[key] = ",".join(value) if isinstance(value, tuple) else value
        return attrs


@dataclass
class GridLayer:
    """One decoded raster with its masks and header."""

    data: np.ndarray
    header: CompositeHeader
    nodata_mask: np.ndarray | None = None
    clutter_mask: np.ndarray | None = None
    crs: str | None = None
    extent: tuple[float, float, float, float] | None = None
    x: np.ndarray | None = None
    y: np.ndarray | None = None

    @property
    def shape(self) -> tuple[int, int]:
        return tuple(self.data.shape)

    @property
    def timestamp(self) -> pd.Timestamp:
        return self.header.datetime

    @property
    def filename(self) -> str | None:
        return self.header.filename

    def coords(self) -> tuple[np.ndarray, np.ndarray] | None:
        if self.x is not None and self.y is not None:
            return self.x, self.y
        if self.extent is not None:
            return cell_centers(self.extent, self.shape)
        return None

    def to_dataarray(self, name: str | None = None) -> xr.DataArray:
        da = xr.DataArray(
            self.data,
            dims=("y", "x"),
            name=name or self.header.product,
            attrs=self.header.to_attrs(),
        )
        coords = self.coords()
        if coords is not None:
            da = da.assign_coords(x=coords[0], y=coords[1])
        if self.crs is not None:
            da.attrs["crs"] = self.crs
        if self.extent is not None:
            da.attrs["extent"] = list(self.extent)
        return da


def _resolve_format(fmt: CompositeFormat | str | None) -> CompositeFormat:
    if isinstance(fmt, CompositeFormat):
        return fmt
    if fmt is None:
        return get_composite_format()
    return get_composite_format(fmt)


def _split_list(value: str) -> tuple[str, ...]:
    items = value.strip().strip("<>").split(",")
    return tuple(item.strip() for item in items if item.strip())


def split_header(
    raw: bytes, fmt: CompositeFormat, path: str | None = None
) -> tuple[str, int]:
    """
    Locate the ETX sentinel within the first ``max_header_length`` bytes.

    Returns:
        tuple[str, int]: Header text (without sentinel) and payload offset.
    """
    end = raw.find(bytes([fmt.sentinel]), 0, fmt.max_header_length)
    if end < 0:
        raise FormatError(
            path,
            f"header sentinel 0x{fmt.sentinel:02x} not found in the first "
            f"{fmt.max_header_length} bytes",
        )
    return raw[:end].decode("latin-1"), end + 1


def parse_header(
    text: str,
    fmt: CompositeFormat | str | None = None,
    path: str | os.PathLike | None = None,
) -> CompositeHeader:
    """
    Tokenize a composite header into a ``CompositeHeader``.

    Parameters:
        text (str): Header text without the ETX sentinel.
        fmt (CompositeFormat | str, optional): Format description or its version.
        path (str | os.PathLike, optional): Source file, used in error messages.

    Raises:
        UnsupportedFormatError: If the product code is not handled by ``fmt``.
        FormatError: If the header does not follow the token grammar.
    """
    fmt = _resolve_format(fmt)
    path = os.fspath(path) if path is not None else None

    if len(text) < PREFIX_LENGTH:
        raise FormatError(
            path, "header shorter than the fixed prefix", PREFIX_LENGTH, len(text)
        )

    def prefix(key: str) -> str:
        start, stop = fmt.prefix[key]
        return text[start:stop]

    product = prefix("product")
    if product not in fmt.products:
        if product in fmt.single_byte_products:
            raise UnsupportedFormatError(
                product, path, f"1-byte cells; {fmt.version} decodes 2-byte cells only"
            )
        if _PRODUCT_CODE.match(product):
            raise UnsupportedFormatError(product, path)
        raise FormatError(path, f"invalid product code {product!r}")

    stamp = prefix("day_time") + prefix("month_year")
    try:
        timestamp = pd.to_datetime(stamp, format=fmt.datetime_format)
    except ValueError as e:
        raise FormatError(path, f"invalid date-time field {stamp!r}") from e

    values = _tokenize(text, fmt, path)

    missing = [key for key in ("bytes", "precision", "dims") if key not in values]
    if missing:
        raise FormatError(path, f"header lacks required fields: {missing}")

    rows, cols = values.pop("dims")
    declared = values.pop("bytes") - (len(text) + 1)
    known = {
        key: values.pop(key, None) for key in ("version", "software", "interval")
    }
    return CompositeHeader(
        product=product,
        datetime=timestamp,
        wmo=prefix("wmo").strip(),
        rows=rows,
        cols=cols,
        precision=-values.pop("precision"),
        datasize=declared,
        radars=values.pop("radars", ()),
        filename=os.path.basename(path) if path else None,
        format_version=fmt.version,
        extra=values,
        text=text,
        **known,
    )


def _tokenize(text: str, fmt: CompositeFormat, path: str | None) -> dict:
    tokens = fmt.tokens_by_length()
    values = {}
    pos = PREFIX_LENGTH
    while pos < len(text):
        if text[pos].isspace():
            pos += 1
            continue
        for name, token in tokens:
            if text.startswith(name, pos):
                break
        else:
            raise FormatError(
                path, f"unknown header token at offset {pos}: {text[pos:pos + 8]!r}"
            )

        match = re.compile(token.pattern).match(text, pos + len(name))
        if match is None:
            raise FormatError(path, f"malformed value of header token {name!r}")
        pos = match.end()

        if token.kind == "length_prefixed":
            length = int(match.group(1))
            value = text[pos : pos + length]
            if len(value) != length:
                raise FormatError(
                    path, f"truncated value of header token {name!r}", length, len(value)
                )
            pos += length
            values[token.field] = _split_list(value)
        elif token.kind == "dims":
            values[token.field] = (int(match.group(1)), int(match.group(2)))
        elif token.kind in ("int", "exponent"):
            values[token.field] = int(match.group(1))
        else:
            values[token.field] = match.group(1)
    return values


def decode_cells(
    payload: bytes,
    header: CompositeHeader,
    fmt: CompositeFormat,
    na: float = math.nan,
    clutter: float = math.nan,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Decode the bit-packed payload.

    No-data takes precedence over clutter; both take precedence over the
    magnitude, which is divided by ``10**precision``.

    Returns:
        tuple: (values, nodata_mask, clutter_mask), each of shape (rows, cols).
    """
    enc = fmt.encoding
    raw = np.frombuffer(payload, dtype=fmt.dtype).reshape(header.rows, header.cols)

    nodata_mask = (raw & enc.nodata_flag) != 0
    clutter_mask = ((raw & enc.clutter_flag) != 0) & ~nodata_mask

    values = (raw & enc.value_mask).astype("float64") / header.divisor
    if enc.negative_flag:
        values = np.where((raw & enc.negative_flag) != 0, -values, values)
    values[clutter_mask] = clutter
    values[nodata_mask] = na
    return values, nodata_mask, clutter_mask


def decode_composite_bytes(
    raw: bytes,
    na: float = math.nan,
    clutter: float = math.nan,
    fmt: CompositeFormat | str | None = None,
    path: str | os.PathLike | None = None,
) -> GridLayer:
    """Decode a complete composite held in memory; see ``decode_composite``."""
    fmt = _resolve_format(fmt)
    path = os.fspath(path) if path is not None else None

    text, offset = split_header(raw, fmt, path)
    header = parse_header(text, fmt, path)

    expected = header.rows * header.cols * fmt.cell_width
    if header.datasize != expected:
        raise FormatError(
            path,
            "declared payload length does not match the grid dimensions",
            expected,
            header.datasize,
        )
    actual = len(raw) - offset
    if actual != expected:
        raise FormatError(path, "payload length mismatch", expected, actual)

    values, nodata_mask, clutter_mask = decode_cells(
        raw[offset:], header, fmt, na=na, clutter=clutter
    )
    return GridLayer(
        data=values,
        header=header,
        nodata_mask=nodata_mask,
        clutter_mask=clutter_mask,
    )


def decode_composite(
    path: str | os.PathLike,
    na: float = math.nan,
    clutter: float = math.nan,
    fmt: CompositeFormat | str | None = None,
) -> GridLayer:
    """
    Decode one RADOLAN composite file into a ``GridLayer``.

    Parameters:
        path (str | os.PathLike): Path of the binary composite.
        na (float, optional): Value emitted for cells flagged as no-data.
            Defaults to NaN.
        clutter (float, optional): Value emitted for cells flagged as clutter.
            Defaults to NaN.
        fmt (CompositeFormat | str, optional): Format description or version
            name. Defaults to ``radolan-2byte``.

    Returns:
        GridLayer: Decoded values, masks and header.

    Raises:
        UnsupportedFormatError: If the product code is not handled.
        FormatError: On any structural violation of header or payload.
    """
    with open(path, "rb") as f:
        raw = f.read()
    layer = decode_composite_bytes(raw, na=na, clutter=clutter, fmt=fmt, path=path)
    logger.debug("Decoded %s (%s, %dx%d)", path, layer.header.product, *layer.shape)
    return layer
