import os
from collections.abc import Mapping, MutableMapping
from os import PathLike
from typing import Any

from xarray.core.types import ZarrWriteModes

from ..builder.stack import GridStack
from ..transform.encoding import stack_encoding


def _store_exists(store: MutableMapping | str | PathLike[str]) -> bool:
    if isinstance(store, (str, PathLike)):
        return os.path.exists(store)
    return len(store) > 0


def stack_to_zarr(
    stack: GridStack,
    store: MutableMapping | str | PathLike[str],
    mode: ZarrWriteModes = "w-",
    encoding: Mapping[str, Any] | None = None,
    consolidated: bool = False,
    zarr_format: int = 3,
    append_dim: str | None = None,
    **kwargs,
) -> None:
    """Write a GridStack (values, masks, coordinates, attributes) to a Zarr store.

    When ``append_dim`` is given and the store already holds data, the stack
    is appended along it; encodings are then taken from the existing store.

    Args:
        stack: GridStack to write
        store: Zarr store or path
        mode: Write mode ('w-', 'w', 'a', 'a-')
        encoding: Per-variable encodings. Defaults to ``stack_encoding``
        consolidated: Whether to consolidate metadata
        zarr_format: Zarr format version (2 or 3)
        append_dim: Dimension name for appending (usually "time")
        **kwargs: Additional arguments passed to to_zarr
    """
    ds = stack.to_dataset()

    if append_dim and _store_exists(store):
        ds.to_zarr(
            store,
            mode="a",
            append_dim=append_dim,
            consolidated=consolidated,
            zarr_format=zarr_format,
            **kwargs,
        )
        return

    if encoding is None:
        encoding = stack_encoding(ds, append_dim=append_dim or "time")
    ds.to_zarr(
        store,
        mode="w-" if mode in ("a", "a-") else mode,
        encoding=encoding,
        consolidated=consolidated,
        zarr_format=zarr_format,
        **kwargs,
    )
