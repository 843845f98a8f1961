import threading

import numpy as np
import pytest

from radolan2xr.builder.executor import (
    ProgressEvent,
    decode_members,
    decode_one,
    decode_parallel,
    decode_sequential,
)
from radolan2xr.errors import FormatError
from radolan2xr.io.load import FileKind


@pytest.fixture
def member_files(tmp_path, make_members):
    paths = []
    for name, data in make_members(6).items():
        path = tmp_path / name
        path.write_bytes(data)
        paths.append(str(path))
    return sorted(paths)


def _first_cells(outcomes):
    return [o.layer.data[0, 0] for o in outcomes]


class TestDecode:
    def test_decode_one_returns_error(self, tmp_path):
        path = tmp_path / "broken-bin"
        path.write_bytes(b"garbage without sentinel")
        outcome = decode_one(str(path), FileKind.BINARY_GRID)

        assert outcome.layer is None
        assert isinstance(outcome.error, FormatError)

    def test_sequential_order(self, member_files):
        outcomes = decode_sequential(member_files, FileKind.BINARY_GRID)

        assert [o.path for o in outcomes] == member_files
        np.testing.assert_allclose(_first_cells(outcomes), [0, 1, 2, 3, 4, 5])

    @pytest.mark.parametrize("scheduler", ["synchronous", "threads"])
    def test_parallel_matches_sequential(self, member_files, scheduler):
        outcomes = decode_parallel(
            member_files, FileKind.BINARY_GRID, batch_size=4, scheduler=scheduler
        )

        assert [o.path for o in outcomes] == member_files
        np.testing.assert_allclose(_first_cells(outcomes), [0, 1, 2, 3, 4, 5])

    def test_progress_events(self, member_files):
        events = []
        decode_sequential(
            member_files, FileKind.BINARY_GRID, progress=events.append, source="RW.tar.gz"
        )

        assert len(events) == 6
        assert all(isinstance(e, ProgressEvent) for e in events)
        assert events[-1].done == events[-1].total == 6
        assert {e.stage for e in events} == {"decode"}
        assert events[0].source == "RW.tar.gz"

    def test_cancel_stops_sequential(self, member_files):
        cancel = threading.Event()

        def stop_after_two(event):
            if event.done == 2:
                cancel.set()

        outcomes = decode_sequential(
            member_files, FileKind.BINARY_GRID, progress=stop_after_two, cancel=cancel
        )
        assert len(outcomes) == 2

    def test_cancel_between_batches(self, member_files):
        cancel = threading.Event()

        def stop(event):
            cancel.set()

        outcomes = decode_parallel(
            member_files,
            FileKind.BINARY_GRID,
            progress=stop,
            cancel=cancel,
            batch_size=4,
            scheduler="synchronous",
        )
        assert len(outcomes) == 4

    def test_decode_members_dispatch(self, member_files):
        outcomes = decode_members(
            member_files,
            FileKind.BINARY_GRID,
            process_mode="sequential",
            batch_size=2,
            scheduler="threads",
        )
        assert len(outcomes) == 6

    def test_invalid_mode(self, member_files):
        with pytest.raises(ValueError, match="Unsupported mode"):
            decode_members(member_files, FileKind.BINARY_GRID, process_mode="magic")
