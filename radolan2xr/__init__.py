"""
radolan2xr
==========

High-level API for turning downloaded DWD RADOLAN and grid archives into
xarray stacks.

Author: Alfonso Ladino
Email: alfonso8@illinois.edu
Version: 0.1.0
"""

__author__ = "Alfonso Ladino"
__email__ = "alfonso8@illinois.edu"
__version__ = "0.1.0"

from radolan2xr.builder.pipeline import process_archive, run_pipeline
from radolan2xr.builder.stack import GridStack, assemble_stack
from radolan2xr.config.options import PipelineOptions
from radolan2xr.errors import (
    DependencyUnavailableError,
    DimensionMismatchError,
    ExtractionError,
    FormatError,
    Radolan2xrError,
    UnsupportedFormatError,
)
from radolan2xr.io.load import FileKind, detect_file_kind
from radolan2xr.io.radolan import GridLayer, decode_composite
from radolan2xr.io.staging import ensure_extracted, ensure_extracted_nested
from radolan2xr.transform.georeferencing import ProjectionSpec, attach
from radolan2xr.writer.zarr_writer import stack_to_zarr

__all__ = [
    "run_pipeline",
    "process_archive",
    "PipelineOptions",
    "GridStack",
    "GridLayer",
    "assemble_stack",
    "decode_composite",
    "ensure_extracted",
    "ensure_extracted_nested",
    "attach",
    "ProjectionSpec",
    "FileKind",
    "detect_file_kind",
    "stack_to_zarr",
    "Radolan2xrError",
    "ExtractionError",
    "FormatError",
    "UnsupportedFormatError",
    "DimensionMismatchError",
    "DependencyUnavailableError",
]
