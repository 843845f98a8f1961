from __future__ import annotations

import logging
import os
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Literal, NamedTuple

from ..errors import Radolan2xrError
from ..io.load import FileKind, load_grid
from ..io.radolan import GridLayer
from ..utils.core import batch

logger = logging.getLogger(__name__)

MEMBER_ERRORS = (Radolan2xrError, OSError, ValueError)


@dataclass(frozen=True)
class ProgressEvent:
    """
    Advisory progress notification.

    ``stage`` is one of "stage", "decode", "assemble", "project" or "done";
    ``done``/``total`` count members for "decode" and archives otherwise.
    """

    stage: str
    source: str
    done: int
    total: int
    path: str | None = None


ProgressCallback = Callable[[ProgressEvent], None]


class DecodeOutcome(NamedTuple):
    path: str
    layer: GridLayer | None
    error: Exception | None


def log_progress(event: ProgressEvent) -> None:
    """Progress callback that reports through the module logger."""
    logger.info(
        "[%s] %s %d/%d%s",
        event.stage,
        event.source,
        event.done,
        event.total,
        f" {event.path}" if event.path else "",
    )


def decode_one(path: str, kind: FileKind, loader_kwargs: dict | None = None) -> DecodeOutcome:
    """Decode a single member, returning the error instead of raising it."""
    try:
        return DecodeOutcome(path, load_grid(path, kind, **(loader_kwargs or {})), None)
    except MEMBER_ERRORS as e:
        return DecodeOutcome(path, None, e)


def _emit(progress, source, done, total, path=None):
    if progress is not None:
        progress(ProgressEvent("decode", source, done, total, path))


def decode_sequential(
    paths: Sequence[str | os.PathLike],
    kind: FileKind,
    loader_kwargs: dict | None = None,
    progress: ProgressCallback | None = None,
    cancel: threading.Event | None = None,
    source: str = "",
) -> list[DecodeOutcome]:
    """
    Decode members one at a time, in the given order.

    Parameters:
        paths (Sequence[str | os.PathLike]): Staged member files, sorted by filename.
        kind (FileKind): Kind of the archive the members came from.
        loader_kwargs (dict, optional): Passed to the loader.
        progress (ProgressCallback, optional): Receives one event per member.
        cancel (threading.Event, optional): Once set, no further members are decoded.
        source (str, optional): Archive name reported in progress events.

    Returns:
        list[DecodeOutcome]: One outcome per decoded member, in input order.
    """
    outcomes = []
    total = len(paths)
    for idx, path in enumerate(paths, start=1):
        if cancel is not None and cancel.is_set():
            logger.info("Cancelled after %d of %d members of %s", idx - 1, total, source)
            break
        outcome = decode_one(os.fspath(path), kind, loader_kwargs)
        outcomes.append(outcome)
        _emit(progress, source, idx, total, outcome.path)
    return outcomes


def decode_parallel(
    paths: Sequence[str | os.PathLike],
    kind: FileKind,
    loader_kwargs: dict | None = None,
    progress: ProgressCallback | None = None,
    cancel: threading.Event | None = None,
    source: str = "",
    batch_size: int | None = None,
    scheduler: Literal["threads", "processes", "synchronous"] = "threads",
) -> list[DecodeOutcome]:
    """
    Decode members in parallel using Dask bags.

    Members are processed in batches of ``batch_size``; each batch is a bag
    whose computed result keeps the input order, so the outcome order never
    depends on which worker finishes first. Cancellation is checked between
    batches.

    Parameters:
        paths (Sequence[str | os.PathLike]): Staged member files, sorted by filename.
        kind (FileKind): Kind of the archive the members came from.
        loader_kwargs (dict, optional): Passed to the loader.
        progress (ProgressCallback, optional): Receives one event per member.
        cancel (threading.Event, optional): Once set, no further batches are scheduled.
        source (str, optional): Archive name reported in progress events.
        batch_size (int, optional): Members per Dask batch. Defaults to the
            number of available CPU cores.
        scheduler (str, optional): Dask scheduler. Defaults to "threads".

    Returns:
        list[DecodeOutcome]: One outcome per decoded member, in input order.
    """
    from dask import bag as db

    if not batch_size:
        batch_size = os.cpu_count() or 1

    outcomes: list[DecodeOutcome] = []
    total = len(paths)
    for paths_batch in batch([os.fspath(p) for p in paths], n=batch_size):
        if cancel is not None and cancel.is_set():
            logger.info(
                "Cancelled after %d of %d members of %s", len(outcomes), total, source
            )
            break
        bag = db.from_sequence(paths_batch, npartitions=len(paths_batch)).map(
            decode_one, kind=kind, loader_kwargs=loader_kwargs
        )
        for outcome in bag.compute(scheduler=scheduler):
            outcomes.append(outcome)
            _emit(progress, source, len(outcomes), total, outcome.path)
    return outcomes


def decode_members(
    paths: Sequence[str | os.PathLike],
    kind: FileKind,
    process_mode: Literal["sequential", "parallel"] = "sequential",
    **kwargs,
) -> list[DecodeOutcome]:
    """
    Decode members using either sequential or parallel processing.

    Raises:
        ValueError: If an unsupported process_mode is provided.
    """
    if process_mode == "sequential":
        kwargs.pop("batch_size", None)
        kwargs.pop("scheduler", None)
        return decode_sequential(paths, kind, **kwargs)
    elif process_mode == "parallel":
        return decode_parallel(paths, kind, **kwargs)
    else:
        raise ValueError(
            f"Unsupported mode: {process_mode}. Use 'sequential' or 'parallel'."
        )
