from __future__ import annotations

import logging
import os
import threading
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, field
from typing import Any

from ..config.options import PipelineOptions
from ..errors import DependencyUnavailableError, Radolan2xrError
from ..io.load import FileKind, detect_file_kind
from ..io.radolan import GridLayer
from ..transform.georeferencing import GeoEngine, ProjectionSpec, attach
from ..utils.core import apply_selection
from .builder_utils import _log_problematic_file, stage_archive, staging_dir_for
from .executor import ProgressCallback, ProgressEvent, decode_members
from .stack import GridStack, assemble_stack

logger = logging.getLogger(__name__)

ARCHIVE_ERRORS = (Radolan2xrError, OSError, ValueError, IndexError)

TabularReader = Callable[..., Any]


@dataclass
class DecodedLayers:
    """Ordered decoded layers of one archive, returned when no stack is wanted."""

    layers: list[GridLayer]
    failures: list[tuple[str, Exception]] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.layers)

    def __iter__(self) -> Iterator[GridLayer]:
        return iter(self.layers)

    def __getitem__(self, idx: int) -> GridLayer:
        return self.layers[idx]


def projection_from_options(options: PipelineOptions) -> ProjectionSpec | str | None:
    if options.crs is not None and options.extent is not None:
        return ProjectionSpec.custom(options.crs, options.extent)
    if options.crs is not None or options.extent is not None:
        raise ValueError("A custom projection needs both 'crs' and 'extent'")
    return options.projection


def _emit(progress, stage, source, done, total, path=None):
    if progress is not None:
        progress(ProgressEvent(stage, source, done, total, path))


def process_archive(
    archive_path: str | os.PathLike,
    kind: FileKind,
    options: PipelineOptions,
    engine: GeoEngine | None = None,
    progress: ProgressCallback | None = None,
    cancel: threading.Event | None = None,
) -> GridStack | DecodedLayers | None:
    """
    Stage, decode, assemble and project one grid archive.

    Parameters:
        archive_path (str | os.PathLike): Archive (or single ``.asc.gz``) to process.
        kind (FileKind): Grid kind of the archive, determined by the caller.
        options (PipelineOptions): Pipeline options.
        engine (GeoEngine, optional): Reprojection capability.
        progress (ProgressCallback, optional): Progress event receiver.
        cancel (threading.Event, optional): Cancellation signal.

    Returns:
        GridStack | DecodedLayers | None: None if cancelled before all selected
        members were decoded.

    Raises:
        ExtractionError, FormatError, DimensionMismatchError: Archive-level
            failures; with ``on_member_error="raise"`` the first member error.
    """
    source = os.fspath(archive_path)
    dest_dir = staging_dir_for(source, kind, options.staging_dir)

    members = stage_archive(source, kind, dest_dir, options.member_pattern)
    _emit(progress, "stage", source, len(members), len(members))
    members = apply_selection(members, options.selection)

    outcomes = decode_members(
        members,
        kind,
        process_mode=options.process_mode,
        loader_kwargs={
            "na": options.na,
            "clutter": options.clutter,
            "format_version": options.format_version,
            "divide_by_ten": options.divide_by_ten,
        },
        progress=progress,
        cancel=cancel,
        source=source,
        batch_size=options.batch_size,
        scheduler=options.scheduler,
    )
    if len(outcomes) < len(members):
        return None

    failures = [(o.path, o.error) for o in outcomes if o.error is not None]
    for path, error in failures:
        logger.warning("Failed to decode %s: %s", path, error)
        if options.log_file:
            _log_problematic_file(path, str(error), options.log_file)
    if failures and options.on_member_error == "raise":
        raise failures[0][1]

    layers = [o.layer for o in outcomes if o.layer is not None]
    spec = projection_from_options(options)
    project = spec is not None or options.reproject_to_geographic

    if not options.stack:
        if project:
            layers = [
                attach(layer, spec, options.reproject_to_geographic, engine)
                for layer in layers
            ]
        return DecodedLayers(layers, failures)

    stack = assemble_stack(layers, source=source)
    _emit(progress, "assemble", source, len(stack), len(stack))
    stack.failures = failures
    if project:
        stack = attach(stack, spec, options.reproject_to_geographic, engine)
        _emit(progress, "project", source, len(stack), len(stack))
    return stack


def read_tabular(
    path: str,
    kind: FileKind,
    reader: TabularReader | None,
    encoding: str,
) -> Any:
    """Delegate a non-grid file to the injected tabular reader."""
    if reader is None:
        raise DependencyUnavailableError(
            f"Reading {kind.value} files",
            "Pass a tabular_reader(path, kind=..., encoding=...) to run_pipeline.",
        )
    return reader(path, kind=kind, encoding=encoding)


def run_pipeline(
    archive_files: str | os.PathLike | Iterable[str | os.PathLike],
    options: PipelineOptions | None = None,
    engine: GeoEngine | None = None,
    progress: ProgressCallback | None = None,
    cancel: threading.Event | None = None,
    tabular_reader: TabularReader | None = None,
) -> dict[str, Any]:
    """
    Run the ingestion pipeline over a batch of downloaded DWD files.

    The kind of every file is determined once, from its name, before any
    processing starts. Grid archives are staged, decoded, stacked and
    optionally projected; other kinds are handed to ``tabular_reader``.
    A failing file never aborts its siblings: its exception becomes its result.

    Parameters:
        archive_files (str | os.PathLike | Iterable[str | os.PathLike]):
            Files to process.
        options (PipelineOptions, optional): Pipeline options. Defaults to
            ``PipelineOptions()``.
        engine (GeoEngine, optional): Reprojection capability, only used
            when ``options.reproject_to_geographic`` is set.
        progress (ProgressCallback, optional): Advisory progress events.
        cancel (threading.Event, optional): Once set, no further files or
            members are scheduled; unprocessed files are absent from the result.
        tabular_reader (callable, optional): Reader for observational,
            metadata and multi-annual files, called as
            ``reader(path, kind=..., encoding=options.encoding)``.

    Returns:
        dict[str, Any]: Per input file (in input order) a ``GridStack``, a
        ``DecodedLayers`` (``options.stack=False``), the tabular reader's
        result, or the exception that stopped that file.

    Example:
        >>> results = run_pipeline(
        ...     ["RW2017.002_201712.tar.gz"],
        ...     PipelineOptions(selection=(1, 2, 3), projection="rw"),
        ... )
    """
    options = options or PipelineOptions()
    if isinstance(archive_files, (str, os.PathLike)):
        archive_files = [archive_files]
    kinds = {os.fspath(f): detect_file_kind(f) for f in archive_files}

    results: dict[str, Any] = {}
    total = len(kinds)
    for idx, (source, kind) in enumerate(kinds.items(), start=1):
        if cancel is not None and cancel.is_set():
            logger.info("Cancelled; %d of %d files not processed", total - idx + 1, total)
            break
        try:
            if kind.is_grid:
                result = process_archive(source, kind, options, engine, progress, cancel)
            else:
                result = read_tabular(source, kind, tabular_reader, options.encoding)
        except ARCHIVE_ERRORS as e:
            logger.error("Failed to process %s: %s", source, e)
            result = e
        if result is None:
            logger.info("Cancelled while processing %s", source)
            break
        results[source] = result
        _emit(progress, "done", source, idx, total)
    return results
