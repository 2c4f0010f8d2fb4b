"""Tests for the Malå decoder."""

from datetime import datetime

import numpy as np
import pytest

from gprpipe.core import InvalidHeader, MissingTiming, TruncatedData, UnsupportedFormatVariant
from gprpipe.formats import MalaDecoder, decoder_for, load
from gprpipe.formats.mala import parse_rad_header, read_cor

from tests.helpers.synthetic import write_mala

pytestmark = pytest.mark.unit


def test_parse_rad_header_upper_cases_keys():
    header = parse_rad_header(["samples:512", "", "Antennas: 500 MHz", "NO COLON LINE"])
    assert header == {"SAMPLES": "512", "ANTENNAS": "500 MHz"}


class TestMalaDecode:

    def test_header_fields_round_trip(self, temp_dir):
        rad = write_mala(temp_dir, n_traces=25, samples=64, frequency_mhz=1000.0)
        rg = load(rad)

        assert rg.n_traces == 25
        assert rg.samples_per_trace == 64
        assert rg.sample_interval == pytest.approx(1e-9)
        assert rg.metadata.instrument == "Malå"
        assert rg.metadata.antenna_mhz == 800.0
        assert rg.metadata.antenna_separation == pytest.approx(0.14)
        assert rg.metadata.stacking_count == 4
        assert rg.applied_filters == ()

    def test_data_member_resolves_header(self, temp_dir):
        write_mala(temp_dir, stem="a", n_traces=5)
        rg = load(temp_dir / "a.rd3")
        assert rg.source == str(temp_dir / "a.rad")

    def test_scaling_of_16_bit_samples(self, temp_dir):
        rad = write_mala(temp_dir, n_traces=5, samples=32, with_cor=False, header_timing=True)
        rg = load(rad)
        raw = np.fromfile(temp_dir / "line.rd3", dtype="<i2").reshape(5, 32).T
        np.testing.assert_allclose(rg.data, raw / 2 ** 15, rtol=1e-6)

    def test_rd7_is_32_bit(self, temp_dir):
        rad = write_mala(temp_dir, n_traces=6, samples=16, rd7=True)
        rg = load(rad)
        assert rg.samples_per_trace == 16
        assert rg.n_traces == 6
        assert np.abs(rg.data).max() < 1.0

    def test_cor_positions_and_times(self, temp_dir):
        start = datetime(2024, 6, 1, 12, 0, 0)
        rad = write_mala(temp_dir, n_traces=21, start=start, interval_s=0.5, fix_every=10)
        rg = load(rad)

        assert rg.geolocated
        assert rg.crs == "EPSG:4326"
        assert rg.positions[0, 1] == pytest.approx(61.0)
        assert rg.positions[0, 0] == pytest.approx(9.0)
        assert rg.positions[20, 2] == pytest.approx(1000.2)
        assert rg.start_time == np.datetime64("2024-06-01T12:00:00")
        # Interpolated between fixes at traces 1 and 11
        assert rg.timestamps[5] == np.datetime64("2024-06-01T12:00:02.500")
        assert np.all(np.diff(rg.timestamps.astype(np.int64)) >= 0)

    def test_header_timing_without_cor(self, temp_dir):
        rad = write_mala(temp_dir, n_traces=4, with_cor=False, header_timing=True, interval_s=2.0)
        rg = load(rad)
        assert not rg.geolocated
        assert rg.timestamps[-1] - rg.timestamps[0] == np.timedelta64(6, "s")
        np.testing.assert_allclose(rg.distances, [0.0, 0.05, 0.1, 0.15])

    def test_missing_timing(self, temp_dir):
        rad = write_mala(temp_dir, with_cor=False, header_timing=False)
        with pytest.raises(MissingTiming):
            load(rad)

    def test_truncated_data(self, temp_dir):
        rad = write_mala(temp_dir, n_traces=5, samples=32, truncate_bytes=3)
        with pytest.raises(TruncatedData) as excinfo:
            load(rad)
        assert excinfo.value.filepath.endswith("line.rd3")

    def test_empty_data(self, temp_dir):
        rad = write_mala(temp_dir, n_traces=1, samples=8, truncate_bytes=16)
        with pytest.raises(TruncatedData):
            load(rad)

    @pytest.mark.parametrize("stacks", ["nan", "inf", "-inf"])
    def test_non_finite_stacks(self, temp_dir, stacks):
        rad = write_mala(temp_dir, n_traces=3, stacks=stacks)
        with pytest.raises(InvalidHeader, match="STACKS") as excinfo:
            load(rad)
        assert excinfo.value.filepath.endswith("line.rad")

    def test_infinite_sample_count(self, temp_dir):
        rad = write_mala(temp_dir, n_traces=3)
        rad.write_text(rad.read_text().replace("SAMPLES:64", "SAMPLES:inf"))
        with pytest.raises(InvalidHeader, match="not finite"):
            load(rad)

    def test_missing_required_field(self, temp_dir):
        rad = write_mala(temp_dir, n_traces=3)
        rad.write_text("FREQUENCY:1000\n")
        with pytest.raises(InvalidHeader, match="SAMPLES"):
            load(rad)

    def test_missing_data_file(self, temp_dir):
        (temp_dir / "lonely.rad").write_text("SAMPLES:8\nFREQUENCY:1000\n")
        with pytest.raises(InvalidHeader):
            load(temp_dir / "lonely.rad")

    def test_override_antenna_frequency(self, temp_dir):
        rad = write_mala(temp_dir, n_traces=3)
        rg = load(rad, override_antenna_mhz=500.0)
        assert rg.metadata.antenna_mhz == 500.0

    def test_explicit_cor_path(self, temp_dir):
        write_mala(temp_dir, stem="gps", n_traces=10)
        rad = write_mala(temp_dir, stem="nogps", n_traces=10, with_cor=False, header_timing=True)
        rg = load(rad, cor_path=str(temp_dir / "gps.cor"))
        assert rg.geolocated

    def test_explicit_cor_path_missing(self, temp_dir):
        rad = write_mala(temp_dir, n_traces=3, with_cor=False, header_timing=True)
        with pytest.raises(InvalidHeader):
            load(rad, cor_path=str(temp_dir / "absent.cor"))


def test_read_cor_southern_western(temp_dir):
    path = temp_dir / "sw.cor"
    path.write_text("1\t2024-01-01\t10:00:00.000000\t33.50000000\tS\t70.25000000\tW\t12.5\tM\t1\n")
    frame = read_cor(path)
    assert frame.loc[0, "index"] == 0
    assert frame.loc[0, "y"] == pytest.approx(-33.5)
    assert frame.loc[0, "x"] == pytest.approx(-70.25)


def test_decoder_for_unknown_suffix(temp_dir):
    with pytest.raises(UnsupportedFormatVariant):
        decoder_for(temp_dir / "file.xyz")


def test_decoder_for_picks_mala():
    assert isinstance(decoder_for("line.RD3"), MalaDecoder)
