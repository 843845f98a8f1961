import os
import re
from collections.abc import Iterable, Iterator, Sequence
from itertools import islice
from typing import TypeVar

import numpy as np
import pandas as pd

T = TypeVar("T")

GRID_FILENAME_PATTERN = re.compile(r"(\d{8})[-_](\d{4})")
RADOLAN_FILENAME_PATTERN = re.compile(r"-(\d{10})-")


def batch(iterable: Iterable[T], n: int = 1) -> Iterator[list[T]]:
    """Yield successive lists of at most ``n`` items."""
    if n < 1:
        raise ValueError(f"batch size must be positive, got {n}")
    it = iter(iterable)
    while chunk := list(islice(it, n)):
        yield chunk


def apply_selection(items: Sequence[T], selection: Sequence[int] | None) -> list[T]:
    """
    Pick items by 1-based position, in the order given by ``selection``.

    Parameters
    ----------
    items : Sequence
        Items sorted the way positions refer to them.
    selection : Sequence[int] or None
        Ordered, duplicate-free 1-based positions. ``None`` keeps everything.

    Raises
    ------
    ValueError
        If a position is duplicated or not positive.
    IndexError
        If a position is beyond the end of ``items``.
    """
    if selection is None:
        return list(items)
    if len(set(selection)) != len(selection):
        raise ValueError(f"selection contains duplicate positions: {list(selection)}")
    out = []
    for pos in selection:
        if pos < 1:
            raise ValueError(f"selection positions are 1-based, got {pos}")
        if pos > len(items):
            raise IndexError(
                f"selection position {pos} out of range for {len(items)} members"
            )
        out.append(items[pos - 1])
    return out


def cell_centers(
    extent: Sequence[float], shape: tuple[int, int]
) -> tuple[np.ndarray, np.ndarray]:
    """
    Cell-centre coordinates of a grid spanning ``extent``.

    Row 0 lies at the southern edge, so ``y`` is ascending.

    Parameters
    ----------
    extent : Sequence[float]
        (xmin, xmax, ymin, ymax)
    shape : tuple[int, int]
        (rows, cols)

    Returns
    -------
    tuple[np.ndarray, np.ndarray]
        (x, y)
    """
    xmin, xmax, ymin, ymax = extent
    rows, cols = shape
    dx = (xmax - xmin) / cols
    dy = (ymax - ymin) / rows
    x = xmin + dx * (np.arange(cols) + 0.5)
    y = ymin + dy * (np.arange(rows) + 0.5)
    return x, y


def timestamp_from_name(filename: str | os.PathLike) -> pd.Timestamp:
    """
    Parse a timestamp from grid file names.

    Supports ``RW_20180901-0050.asc`` and
    ``raa01-rw_10000-1712010050-dwd---bin`` style names. Returns ``NaT`` when
    no timestamp is found.
    """
    name = os.path.basename(os.fspath(filename))
    match = GRID_FILENAME_PATTERN.search(name)
    if match:
        return pd.to_datetime("".join(match.groups()), format="%Y%m%d%H%M")
    match = RADOLAN_FILENAME_PATTERN.search(name)
    if match:
        return pd.to_datetime(match.group(1), format="%y%m%d%H%M")
    return pd.NaT
