import numpy as np
import pandas as pd
import pytest

from radolan2xr.errors import FormatError
from radolan2xr.io.asc import read_asc_grid


def test_read_asc_grid(asc_file):
    layer = read_asc_grid(asc_file)

    # southern row first
    np.testing.assert_allclose(layer.data, [[0.4, np.nan, 0.6], [0.1, 0.2, 0.3]])
    assert layer.nodata_mask.tolist() == [[False, True, False], [False, False, False]]
    assert layer.clutter_mask is None
    assert layer.extent == (-443462.0, -440462.0, -4758645.0, -4756645.0)
    assert layer.timestamp == pd.Timestamp("2018-09-01 00:50")
    assert layer.filename == "RW_20180901-0050.asc"


def test_read_asc_grid_raw_values(asc_file):
    layer = read_asc_grid(asc_file, divide_by_ten=False)
    np.testing.assert_allclose(layer.data[1], [1.0, 2.0, 3.0])


def test_coordinates_from_extent(asc_file):
    da = read_asc_grid(asc_file).to_dataarray()
    np.testing.assert_allclose(da["x"].values, [-442962.0, -441962.0, -440962.0])
    np.testing.assert_allclose(da["y"].values, [-4758145.0, -4757145.0])


def test_no_timestamp_in_name(tmp_path, asc_text):
    path = tmp_path / "grids_germany_seasonal.asc"
    path.write_text(asc_text)
    assert pd.isna(read_asc_grid(path).timestamp)


def test_value_count_mismatch(tmp_path, asc_text):
    path = tmp_path / "short.asc"
    path.write_text(asc_text.replace("4 -1 6\n", "4 -1\n"))
    with pytest.raises(FormatError):
        read_asc_grid(path)


def test_incomplete_header(tmp_path):
    path = tmp_path / "bad.asc"
    path.write_text("ncols 2\nnrows 1\n1 2\n")
    with pytest.raises(FormatError, match="lacks"):
        read_asc_grid(path)
