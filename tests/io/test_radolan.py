import numpy as np
import pandas as pd
import pytest

from radolan2xr.config.formats import get_composite_format
from radolan2xr.errors import FormatError, UnsupportedFormatError
from radolan2xr.io.radolan import (
    decode_composite,
    decode_composite_bytes,
    parse_header,
    split_header,
)

NODATA = 0x2000
NEGATIVE = 0x4000
CLUTTER = 0x8000


class TestDecodeComposite:
    def test_values_and_nodata(self, composite_file):
        layer = decode_composite(composite_file, na=-1.0)

        np.testing.assert_allclose(layer.data, [[47.8, 0.0], [500.0, -1.0]])
        assert layer.shape == (2, 2)
        assert layer.nodata_mask.tolist() == [[False, False], [False, True]]
        assert not layer.clutter_mask.any()

    def test_default_substitute_is_nan(self, composite_file):
        layer = decode_composite(composite_file)
        assert np.isnan(layer.data[1, 1])
        assert np.isfinite(layer.data[:, 0]).all()

    def test_clutter_takes_substitute(self, make_composite):
        raw = make_composite([CLUTTER | 123, 10, 20, 30])
        layer = decode_composite_bytes(raw, na=-1.0, clutter=-2.0)

        assert layer.data[0, 0] == -2.0
        assert layer.clutter_mask[0, 0]
        np.testing.assert_allclose(layer.data.ravel()[1:], [1.0, 2.0, 3.0])

    def test_nodata_wins_over_clutter(self, make_composite):
        raw = make_composite([NODATA | CLUTTER | 5, 0, 0, 0])
        layer = decode_composite_bytes(raw, na=-1.0, clutter=-2.0)

        assert layer.data[0, 0] == -1.0
        assert layer.nodata_mask[0, 0]
        assert not layer.clutter_mask[0, 0]

    def test_negative_flag(self, make_composite):
        layer = decode_composite_bytes(make_composite([NEGATIVE | 25, 0, 0, 0]))
        assert layer.data[0, 0] == pytest.approx(-2.5)

    def test_precision_exponent(self, make_composite):
        raw = make_composite([478, 0, 5000, 1], precision="E-02")
        layer = decode_composite_bytes(raw)
        np.testing.assert_allclose(layer.data, [[4.78, 0.0], [50.0, 0.01]])

    def test_twelve_bit_format_version(self, make_composite):
        raw = make_composite([4095, 4096 | 7, 0, 0])
        layer = decode_composite_bytes(raw, fmt="radolan-2byte-12bit")
        np.testing.assert_allclose(layer.data.ravel()[:2], [409.5, 0.7])

    def test_payload_one_byte_short(self, make_composite):
        raw = make_composite([1, 2, 3, 4])[:-1]
        with pytest.raises(FormatError) as excinfo:
            decode_composite_bytes(raw, path="short-bin")
        assert excinfo.value.expected == 8
        assert excinfo.value.actual == 7
        assert "short-bin" in str(excinfo.value)

    def test_declared_length_mismatch(self, make_composite):
        raw = make_composite([1, 2, 3, 4], bytes_delta=2)
        with pytest.raises(FormatError, match="declared payload length"):
            decode_composite_bytes(raw)

    def test_trailing_bytes(self, make_composite):
        raw = make_composite([1, 2, 3, 4]) + b"\x00\x00"
        with pytest.raises(FormatError, match="payload length mismatch"):
            decode_composite_bytes(raw)

    def test_missing_sentinel(self):
        raw = b"RW030950100000814BY 1000" + b"\x00" * 5000
        with pytest.raises(FormatError, match="sentinel"):
            decode_composite_bytes(raw.replace(b"\x03", b"\x00"))

    def test_unsupported_product(self, make_composite):
        raw = make_composite([1, 2, 3, 4], product="RZ")
        with pytest.raises(UnsupportedFormatError) as excinfo:
            decode_composite_bytes(raw)
        assert excinfo.value.product_code == "RZ"
        assert "1-byte" not in str(excinfo.value)

    def test_single_byte_product(self, make_composite):
        raw = make_composite([1, 2, 3, 4], product="EX")
        with pytest.raises(UnsupportedFormatError, match="1-byte cells") as excinfo:
            decode_composite_bytes(raw)
        assert excinfo.value.product_code == "EX"

    def test_garbage_product_is_format_error(self, make_composite):
        raw = make_composite([1, 2, 3, 4], product="r?")
        with pytest.raises(FormatError) as excinfo:
            decode_composite_bytes(raw)
        assert not isinstance(excinfo.value, UnsupportedFormatError)


class TestParseHeader:
    def test_fields(self, make_composite):
        fmt = get_composite_format()
        text, offset = split_header(make_composite([1, 2, 3, 4]), fmt)
        header = parse_header(text, fmt, path="/data/raa01-rw_10000-1408030950-dwd---bin")

        assert offset == len(text) + 1
        assert header.product == "RW"
        assert header.datetime == pd.Timestamp("2014-08-03 09:50")
        assert header.wmo == "10000"
        assert header.shape == (2, 2)
        assert header.precision == 1
        assert header.datasize == 8
        assert header.radars == ("boo", "ros", "emd")
        assert header.version == 3
        assert header.software == "2.18.3"
        assert header.interval == 60
        assert header.filename == "raa01-rw_10000-1408030950-dwd---bin"

    def test_optional_tokens_land_in_extra(self):
        text = "SF030950100000814BY   1000VS 3PR E-01INT1440U0GP   2x   2VV 015MF 00000002"
        header = parse_header(text)

        assert header.product == "SF"
        assert header.extra["interval_unit"] == 0
        assert header.extra["prediction_time"] == 15
        assert header.extra["module_flags"] == 2
        assert header.interval == 1440

    @pytest.mark.parametrize("exponent, precision", [("E+00", 0), ("E-02", 2)])
    def test_signed_precision(self, exponent, precision):
        header = parse_header(f"RW030950100000814BY   1000PR {exponent}GP   2x   2")
        assert header.precision == precision

    def test_unknown_token(self):
        text = "RW030950100000814BY   1000ZZ 12PR E-01GP   2x   2"
        with pytest.raises(FormatError, match="unknown header token"):
            parse_header(text)

    def test_missing_required_field(self):
        with pytest.raises(FormatError, match="required fields"):
            parse_header("RW030950100000814BY   1000PR E-01")

    def test_invalid_datetime(self):
        with pytest.raises(FormatError, match="date-time"):
            parse_header("RW999950100000814BY   1000PR E-01GP   2x   2")

    def test_to_attrs(self, make_composite):
        layer = decode_composite_bytes(make_composite([1, 2, 3, 4]))
        attrs = layer.header.to_attrs()

        assert attrs["datetime"] == "2014-08-03T09:50:00"
        assert attrs["radars"] == "boo,ros,emd"
        assert attrs["format_version"] == "radolan-2byte"


def test_to_dataarray_without_extent(composite_file):
    da = decode_composite(composite_file).to_dataarray()
    assert da.dims == ("y", "x")
    assert da.name == "RW"
    assert "x" not in da.coords
