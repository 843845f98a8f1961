"""
Idempotent extraction of (nested) tar archives into a staging directory.

The staging directory acts as a cache owned by the caller: members already
present (by name) are never extracted again, and nothing in it is ever
deleted. Two concurrent stagings into the same directory are not supported.
"""

from __future__ import annotations

import gzip
import logging
import os
import posixpath
import shutil
import tarfile
import zlib
from fnmatch import fnmatch

from ..errors import ExtractionError

logger = logging.getLogger(__name__)

OUTER_STAGING_DIR = "_outer"
ARCHIVE_SUFFIXES = (".tar.gz", ".tgz", ".tar.bz2", ".tar.xz", ".tar")
_READ_ERRORS = (tarfile.TarError, OSError, EOFError, zlib.error)


def is_archive(path: str | os.PathLike) -> bool:
    return os.fspath(path).lower().endswith(ARCHIVE_SUFFIXES)


def strip_archive_suffix(path: str | os.PathLike) -> str:
    path = os.fspath(path)
    for suffix in ARCHIVE_SUFFIXES + (".gz",):
        if path.lower().endswith(suffix):
            return path[: -len(suffix)]
    return path


def default_staging_dir(archive_path: str | os.PathLike) -> str:
    """Staging directory next to the archive, named after it without suffix."""
    return strip_archive_suffix(archive_path)


def member_sort_key(name: str) -> tuple[str, str]:
    return posixpath.basename(name), name


class ArchiveStaging:
    """
    Extraction state of one archive into one destination directory.

    Parameters:
        archive_path (str | os.PathLike): Path of the tar archive (any compression).
        dest_dir (str | os.PathLike): Directory the members are extracted into.
        pattern (str, optional): fnmatch glob applied to member basenames; only
            matching members are needed.
    """

    def __init__(
        self,
        archive_path: str | os.PathLike,
        dest_dir: str | os.PathLike,
        pattern: str | None = None,
    ):
        self.archive_path = os.fspath(archive_path)
        self.dest_dir = os.fspath(dest_dir)
        self.pattern = pattern
        self.extracted: list[str] = []
        self._declared: list[str] | None = None

    def __repr__(self) -> str:
        return (
            f"ArchiveStaging({self.archive_path!r}, {self.dest_dir!r}, "
            f"pattern={self.pattern!r})"
        )

    @property
    def declared(self) -> list[str]:
        """Needed member names from the table of contents, sorted by filename."""
        if self._declared is None:
            self._declared = self.list_members()
        return self._declared

    def list_members(self) -> list[str]:
        try:
            with tarfile.open(self.archive_path, mode="r:*") as tar:
                names = [m.name for m in tar.getmembers() if m.isfile()]
        except _READ_ERRORS as e:
            raise ExtractionError(
                self.archive_path, reason=f"cannot list archive: {e}"
            ) from e

        for name in names:
            self._check_member_name(name)
        if self.pattern:
            names = [n for n in names if fnmatch(posixpath.basename(n), self.pattern)]
        return sorted(names, key=member_sort_key)

    def member_path(self, name: str) -> str:
        return os.path.join(self.dest_dir, *name.split("/"))

    def present_members(self) -> set[str]:
        return {n for n in self.declared if os.path.isfile(self.member_path(n))}

    def missing_members(self) -> list[str]:
        present = self.present_members()
        return [n for n in self.declared if n not in present]

    def ensure_extracted(self) -> list[str]:
        """
        Extract the members not yet present and return all needed member paths.

        Returns:
            list[str]: Paths of the needed members in ``dest_dir``, sorted by filename.

        Raises:
            ExtractionError: If the archive is unreadable or members are still
                missing afterwards.
        """
        self.extracted = []
        missing = self.missing_members()
        if missing:
            logger.info(
                "Unpacking %d of %d files in %s to %s",
                len(missing),
                len(self.declared),
                self.archive_path,
                self.dest_dir,
            )
            os.makedirs(self.dest_dir, exist_ok=True)
            self._extract(missing)
        else:
            logger.info(
                "All %d files of %s were already unpacked",
                len(self.declared),
                self.archive_path,
            )

        still_missing = self.missing_members()
        if still_missing:
            raise ExtractionError(
                self.archive_path, still_missing, "members missing after extraction"
            )
        return [self.member_path(n) for n in self.declared]

    def _check_member_name(self, name: str) -> None:
        parts = name.split("/")
        if name.startswith("/") or ".." in parts or os.path.isabs(name):
            raise ExtractionError(
                self.archive_path,
                [name],
                "member path escapes the staging directory",
            )

    def _extract(self, names: list[str]) -> None:
        wanted = set(names)
        failed = []
        try:
            with tarfile.open(self.archive_path, mode="r:*") as tar:
                for member in tar:
                    if member.name not in wanted:
                        continue
                    wanted.discard(member.name)
                    try:
                        self._extract_member(tar, member)
                    except _READ_ERRORS as e:
                        logger.warning(
                            "Failed to extract %s from %s: %s",
                            member.name,
                            self.archive_path,
                            e,
                        )
                        failed.append(member.name)
                    if not wanted:
                        break
        except _READ_ERRORS as e:
            raise ExtractionError(
                self.archive_path, sorted(set(failed) | wanted), str(e)
            ) from e

        if failed or wanted:
            raise ExtractionError(
                self.archive_path,
                sorted(set(failed) | wanted),
                "archive truncated or unreadable",
            )

    def _extract_member(self, tar: tarfile.TarFile, member: tarfile.TarInfo) -> None:
        target = self.member_path(member.name)
        os.makedirs(os.path.dirname(target), exist_ok=True)
        partial = f"{target}.part"
        source = tar.extractfile(member)
        if source is None:
            raise tarfile.ExtractError(f"{member.name} is not a regular file")
        try:
            with source, open(partial, "wb") as dest:
                shutil.copyfileobj(source, dest)
            os.replace(partial, target)
        except BaseException:
            if os.path.exists(partial):
                os.remove(partial)
            raise
        self.extracted.append(member.name)


def ensure_extracted(
    archive_path: str | os.PathLike,
    dest_dir: str | os.PathLike,
    pattern: str | None = None,
) -> list[str]:
    """Extract the missing members of one archive; see ``ArchiveStaging``."""
    return ArchiveStaging(archive_path, dest_dir, pattern).ensure_extracted()


def ensure_extracted_nested(
    archive_path: str | os.PathLike,
    dest_dir: str | os.PathLike,
    pattern: str | None = None,
) -> list[str]:
    """
    Two-layer extraction: an outer archive holding per-period inner archives.

    Outer members land in ``dest_dir/_outer`` and inner members in ``dest_dir``,
    so names of both layers never collide. Both layers are idempotent.

    Parameters:
        archive_path (str | os.PathLike): Outer archive (e.g. a monthly ``.tar``).
        dest_dir (str | os.PathLike): Destination of the inner members.
        pattern (str, optional): fnmatch glob restricting the inner members.

    Returns:
        list[str]: Paths of all inner members, sorted by filename.
    """
    outer = ArchiveStaging(archive_path, os.path.join(dest_dir, OUTER_STAGING_DIR))
    inner_archives = [p for p in outer.ensure_extracted() if is_archive(p)]
    if not inner_archives:
        logger.warning("No inner archives found in %s", archive_path)

    files = []
    for inner in inner_archives:
        files.extend(ensure_extracted(inner, dest_dir, pattern))
    return sorted(files, key=os.path.basename)


def ensure_decompressed(
    gz_path: str | os.PathLike,
    dest_dir: str | os.PathLike | None = None,
) -> str:
    """
    Gunzip a single file into ``dest_dir`` unless it is already there.

    Parameters:
        gz_path (str | os.PathLike): Path of the ``.gz`` file.
        dest_dir (str | os.PathLike, optional): Target directory. Defaults to
            the directory of ``gz_path``.

    Returns:
        str: Path of the decompressed file.
    """
    gz_path = os.fspath(gz_path)
    dest_dir = os.fspath(dest_dir) if dest_dir else os.path.dirname(gz_path)
    target = os.path.join(dest_dir, os.path.basename(strip_archive_suffix(gz_path)))
    if os.path.isfile(target):
        return target

    os.makedirs(dest_dir, exist_ok=True)
    partial = f"{target}.part"
    try:
        with gzip.open(gz_path, "rb") as gz, open(partial, "wb") as dest:
            shutil.copyfileobj(gz, dest)
        os.replace(partial, target)
    except (OSError, EOFError, zlib.error) as e:
        if os.path.exists(partial):
            os.remove(partial)
        raise ExtractionError(gz_path, [os.path.basename(target)], str(e)) from e
    return target
