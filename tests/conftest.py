import io
import tarfile

import numpy as np
import pandas as pd
import pytest

from radolan2xr.io.radolan import CompositeHeader, GridLayer

NODATA = 0x2000


def composite_bytes(
    cells,
    rows=2,
    cols=2,
    product="RW",
    day_time="030950",
    month_year="0814",
    precision="E-01",
    radars="<boo,ros,emd>",
    bytes_delta=0,
    payload=None,
):
    """Build a RADOLAN composite: header, ETX, little-endian 16-bit cells."""
    if payload is None:
        payload = np.asarray(cells, dtype="<u2").tobytes()
    prefix = f"{product}{day_time}10000{month_year}"
    tail = (
        f"VS 3SW   2.18.3PR {precision}INT  60"
        f"GP{rows:4d}x{cols:4d}MS{len(radars):3d}{radars}"
    )
    header_length = len(prefix) + len("BY") + 7 + len(tail)
    total = header_length + 1 + rows * cols * 2 + bytes_delta
    header = f"{prefix}BY{total:7d}{tail}"
    return header.encode("latin-1") + b"\x03" + payload


def member_name(day: int, hour: int = 9, minute: int = 50) -> str:
    return f"raa01-rw_10000-1408{day:02d}{hour:02d}{minute:02d}-dwd---bin"


def write_tar(path, members: dict, mode: str = "w:gz"):
    """Write ``{name: bytes}`` into a tar archive at ``path``."""
    with tarfile.open(path, mode) as tar:
        for name, data in members.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
    return str(path)


def composite_members(n: int, rows=2, cols=2, start_day=1) -> dict:
    """``n`` valid composites, one per day, keyed by DWD-style member name."""
    members = {}
    for i in range(n):
        day = start_day + i
        cells = np.arange(rows * cols) + 10 * i
        members[member_name(day)] = composite_bytes(
            cells, rows=rows, cols=cols, day_time=f"{day:02d}0950"
        )
    return members


def make_layer(rows=2, cols=2, timestamp="2014-08-01 09:50", filename=None, fill=0.0):
    header = CompositeHeader(
        product="RW",
        datetime=pd.Timestamp(timestamp),
        wmo="10000",
        rows=rows,
        cols=cols,
        precision=1,
        datasize=rows * cols * 2,
        radars=("boo", "ros"),
        filename=filename,
    )
    data = np.full((rows, cols), fill, dtype="float64")
    return GridLayer(
        data=data,
        header=header,
        nodata_mask=np.zeros((rows, cols), dtype=bool),
        clutter_mask=np.zeros((rows, cols), dtype=bool),
    )


@pytest.fixture
def composite_file(tmp_path):
    """Single composite file with cells [478, 0, 5000, no-data]."""
    path = tmp_path / member_name(3)
    path.write_bytes(composite_bytes([478, 0, 5000, NODATA]))
    return str(path)


@pytest.fixture
def binary_archive(tmp_path):
    """RW-style monthly archive with five 2x2 composites."""
    return write_tar(tmp_path / "RW-201408.tar.gz", composite_members(5))


@pytest.fixture
def asc_text():
    return (
        "ncols 3\n"
        "nrows 2\n"
        "xllcorner -443462\n"
        "yllcorner -4758645\n"
        "cellsize 1000\n"
        "NODATA_value -1\n"
        "1 2 3\n"
        "4 -1 6\n"
    )


@pytest.fixture
def asc_file(tmp_path, asc_text):
    path = tmp_path / "RW_20180901-0050.asc"
    path.write_text(asc_text)
    return str(path)


@pytest.fixture
def layers_10():
    return [
        make_layer(timestamp=f"2014-08-{day:02d} 09:50", filename=member_name(day), fill=day)
        for day in range(1, 11)
    ]


@pytest.fixture
def make_composite():
    return composite_bytes


@pytest.fixture
def make_tar():
    return write_tar


@pytest.fixture
def make_members():
    return composite_members


@pytest.fixture
def make_grid_layer():
    return make_layer


@pytest.fixture
def member_filename():
    return member_name
