import math
import os
from enum import Enum
from typing import Callable

from .asc import read_asc_grid
from .radolan import GridLayer, decode_composite


class FileKind(str, Enum):
    OBSERVATIONAL = "observational"
    METADATA = "metadata"
    MULTI_ANNUAL = "multi_annual"
    BINARY_GRID = "binary_grid"
    RASTER_GRID = "raster_grid"
    ASC_GRID = "asc_grid"

    @property
    def is_grid(self) -> bool:
        return self in GRID_KINDS


GRID_KINDS = frozenset(
    {FileKind.BINARY_GRID, FileKind.RASTER_GRID, FileKind.ASC_GRID}
)


def detect_file_kind(path: str | os.PathLike) -> FileKind:
    """
    Determine how a downloaded DWD file has to be read, from its name only.

    Parameters:
        path (str | os.PathLike): File name or path.

    Returns:
        FileKind: ``.tar.gz`` -> BINARY_GRID, ``.asc.gz`` -> RASTER_GRID,
        ``.tar`` -> ASC_GRID, ``Standort.txt`` -> MULTI_ANNUAL,
        ``.txt`` -> METADATA, anything else -> OBSERVATIONAL.
    """
    name = os.path.basename(os.fspath(path))
    if name.endswith(".tar.gz"):
        return FileKind.BINARY_GRID
    if name.endswith(".asc.gz"):
        return FileKind.RASTER_GRID
    if name.endswith(".tar"):
        return FileKind.ASC_GRID
    if name.endswith("Standort.txt"):
        return FileKind.MULTI_ANNUAL
    if name.endswith(".txt"):
        return FileKind.METADATA
    return FileKind.OBSERVATIONAL


def binary_loader(
    path: str,
    na: float = math.nan,
    clutter: float = math.nan,
    format_version: str | None = None,
    **kwargs,
) -> GridLayer:
    return decode_composite(path, na=na, clutter=clutter, fmt=format_version)


def asc_loader(path: str, divide_by_ten: bool = True, **kwargs) -> GridLayer:
    return read_asc_grid(path, divide_by_ten=divide_by_ten)


LOADER_REGISTRY: dict[FileKind, Callable[..., GridLayer]] = {
    FileKind.BINARY_GRID: binary_loader,
    FileKind.RASTER_GRID: asc_loader,
    FileKind.ASC_GRID: asc_loader,
}


def load_grid(path: str | os.PathLike, kind: FileKind, **kwargs) -> GridLayer:
    """
    Load one staged grid member with the loader registered for ``kind``.

    Parameters:
        path (str | os.PathLike): Staged member file.
        kind (FileKind): Kind of the archive the member came from.
        **kwargs: Passed to the loader (``na``, ``clutter``,
            ``format_version``, ``divide_by_ten``).

    Raises:
        ValueError: If ``kind`` has no grid loader.
    """
    if kind not in LOADER_REGISTRY:
        raise ValueError(
            f"Unsupported file kind '{kind}'. Supported: {[k.value for k in LOADER_REGISTRY]}"
        )
    return LOADER_REGISTRY[kind](os.fspath(path), **kwargs)
