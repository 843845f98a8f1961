"""
Exception types raised while staging, decoding, stacking and projecting grids.

Every error carries the offending file (or member position) and the
expectation that was violated, so batch callers can report it as is.
"""

from __future__ import annotations

import os
from collections.abc import Iterable


class Radolan2xrError(Exception):
    """Base class for all radolan2xr errors."""


class ExtractionError(Radolan2xrError):
    """Archive unreadable, or declared members still missing after extraction."""

    def __init__(
        self,
        archive_path: str | os.PathLike,
        missing_members: Iterable[str] = (),
        reason: str | None = None,
    ):
        self.archive_path = os.fspath(archive_path)
        self.missing_members = list(missing_members)
        self.reason = reason
        msg = f"Failed to extract {self.archive_path}"
        if self.missing_members:
            shown = ", ".join(self.missing_members[:5])
            if len(self.missing_members) > 5:
                shown += f", ... ({len(self.missing_members)} in total)"
            msg += f"; missing members: {shown}"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg)


class FormatError(Radolan2xrError, ValueError):
    """Header unparsable or payload length different from the declared one."""

    def __init__(
        self,
        path: str | os.PathLike | None,
        reason: str,
        expected: int | None = None,
        actual: int | None = None,
    ):
        self.path = os.fspath(path) if path is not None else None
        self.reason = reason
        self.expected = expected
        self.actual = actual
        msg = f"{self.path or '<bytes>'}: {reason}"
        if expected is not None or actual is not None:
            msg += f" (expected {expected}, got {actual})"
        super().__init__(msg)


class UnsupportedFormatError(FormatError):
    """Product code recognised as a composite but not handled by the decoder."""

    def __init__(
        self,
        product_code: str,
        path: str | os.PathLike | None = None,
        detail: str | None = None,
    ):
        self.product_code = product_code
        reason = f"unsupported product code {product_code!r}"
        if detail:
            reason += f" ({detail})"
        super().__init__(path, reason)


class DimensionMismatchError(Radolan2xrError, ValueError):
    """Layers intended for one stack disagree on their (rows, columns)."""

    def __init__(
        self,
        expected: tuple[int, int],
        actual: tuple[int, int],
        member_index: int,
        filename: str | None = None,
    ):
        self.expected = tuple(expected)
        self.actual = tuple(actual)
        self.member_index = member_index
        self.filename = filename
        where = f"layer {member_index}"
        if filename:
            where += f" ({filename})"
        super().__init__(
            f"{where} has shape {self.actual}, expected {self.expected}"
        )


class DependencyUnavailableError(Radolan2xrError, ImportError):
    """A capability was requested whose backing library is not available."""

    def __init__(self, capability: str, hint: str | None = None):
        self.capability = capability
        msg = f"{capability} is not available in this environment"
        if hint:
            msg += f". {hint}"
        super().__init__(msg)
