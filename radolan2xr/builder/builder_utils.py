import os
from datetime import datetime

from ..io.load import FileKind
from ..io.staging import (
    default_staging_dir,
    ensure_decompressed,
    ensure_extracted,
    ensure_extracted_nested,
    strip_archive_suffix,
)


def _log_problematic_file(filepath: str, error_msg: str, log_file: str = None):
    """
    Log problematic files to output.txt with error details.

    Parameters:
        filepath (str): Path to the problematic file
        error_msg (str): Error message description
        log_file (str): Path to log file. If None, uses "output.txt" in current directory
    """
    if log_file is None:
        log_file = "output.txt"

    log_entry = f"{datetime.now().isoformat()}, {filepath}, SKIPPED:, {error_msg}\n"

    os.makedirs(
        os.path.dirname(log_file) if os.path.dirname(log_file) else ".", exist_ok=True
    )

    with open(log_file, "a", encoding="utf-8") as f:
        f.write(log_entry)


def staging_dir_for(
    archive_path: str | os.PathLike, kind: FileKind, staging_root: str | None = None
) -> str:
    """
    Directory an archive is staged into.

    With ``staging_root`` every archive gets its own subdirectory named after
    it; otherwise the directory sits next to the archive (for single ``.gz``
    grids, the archive's own directory).
    """
    if staging_root:
        name = os.path.basename(strip_archive_suffix(archive_path))
        return os.path.join(staging_root, name)
    if kind is FileKind.RASTER_GRID:
        return os.path.dirname(os.path.abspath(archive_path))
    return default_staging_dir(archive_path)


def stage_archive(
    archive_path: str | os.PathLike,
    kind: FileKind,
    dest_dir: str,
    pattern: str | None = None,
) -> list[str]:
    """
    Stage the grid members of one archive, returning them sorted by filename.

    Raises:
        ValueError: If ``kind`` is not a grid kind.
        ExtractionError: If staging fails.
    """
    if kind is FileKind.BINARY_GRID:
        return ensure_extracted(archive_path, dest_dir, pattern)
    if kind is FileKind.ASC_GRID:
        return ensure_extracted_nested(archive_path, dest_dir, pattern or "*.asc")
    if kind is FileKind.RASTER_GRID:
        return [ensure_decompressed(archive_path, dest_dir)]
    raise ValueError(f"File kind '{kind.value}' has no grid members to stage")
