import numpy as np
import pytest

from radolan2xr.io.load import (
    LOADER_REGISTRY,
    FileKind,
    detect_file_kind,
    load_grid,
)


@pytest.mark.parametrize(
    "name, kind",
    [
        ("RW-201712.tar.gz", FileKind.BINARY_GRID),
        ("grids_germany_monthly_air_temp_mean_201501.asc.gz", FileKind.RASTER_GRID),
        ("RW-201809.tar", FileKind.ASC_GRID),
        ("/data/Beschreibung_Stationen_Standort.txt", FileKind.MULTI_ANNUAL),
        ("KL_Tageswerte_Beschreibung_Stationen.txt", FileKind.METADATA),
        ("tageswerte_KL_00003_18910101_20110331_hist.zip", FileKind.OBSERVATIONAL),
    ],
)
def test_detect_file_kind(name, kind):
    assert detect_file_kind(name) is kind


def test_grid_kinds():
    assert FileKind.BINARY_GRID.is_grid
    assert FileKind.ASC_GRID.is_grid
    assert not FileKind.METADATA.is_grid
    assert set(LOADER_REGISTRY) == {k for k in FileKind if k.is_grid}


def test_load_binary(composite_file):
    layer = load_grid(composite_file, FileKind.BINARY_GRID, na=0.0, divide_by_ten=False)
    np.testing.assert_allclose(layer.data, [[47.8, 0.0], [500.0, 0.0]])


def test_load_asc(asc_file):
    layer = load_grid(asc_file, FileKind.ASC_GRID, divide_by_ten=True, na=0.0)
    assert layer.shape == (2, 3)


def test_load_unsupported_kind(composite_file):
    with pytest.raises(ValueError, match="Unsupported file kind"):
        load_grid(composite_file, FileKind.METADATA)
