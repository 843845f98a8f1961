from .asc import AscHeader, read_asc_grid
from .load import FileKind, detect_file_kind, load_grid
from .radolan import CompositeHeader, GridLayer, decode_composite, parse_header
from .staging import (
    ArchiveStaging,
    ensure_decompressed,
    ensure_extracted,
    ensure_extracted_nested,
)

__all__ = [
    "ArchiveStaging",
    "AscHeader",
    "CompositeHeader",
    "FileKind",
    "GridLayer",
    "decode_composite",
    "detect_file_kind",
    "ensure_decompressed",
    "ensure_extracted",
    "ensure_extracted_nested",
    "load_grid",
    "parse_header",
    "read_asc_grid",
]
