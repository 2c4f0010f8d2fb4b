"""Tests for NetCDF and track export and output path resolution."""

from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from gprpipe.io import read_netcdf, resolve_targets, write_netcdf, write_track

from tests.helpers.synthetic import make_radargram

pytestmark = pytest.mark.unit


class TestNetcdf:

    def test_written_file_describes_radargram(self, located_radargram, temp_dir):
        rg = located_radargram.with_filter("dewow", {"window": 5})
        path = write_netcdf(rg, temp_dir / "sub" / "line.nc")
        ds = read_netcdf(path)

        np.testing.assert_allclose(ds["amplitude"].values, rg.data)
        np.testing.assert_allclose(ds["twt"].values, rg.two_way_time)
        np.testing.assert_allclose(ds["distance"].values, rg.distances)
        np.testing.assert_allclose(ds["z"].values, rg.positions[:, 2])
        assert ds.attrs["crs"] == "EPSG:32632"
        assert ds.attrs["processing"] == "dewow(5)"
        assert ds.attrs["source_file"] == "memory.rad"
        assert pd.Timestamp(ds["time"].values[0]) == pd.Timestamp(rg.start_time)

    def test_ungeolocated_has_no_position_coordinates(self, radargram, temp_dir):
        ds = read_netcdf(write_netcdf(radargram, temp_dir / "raw.nc", compression_level=0))

        assert "x" not in ds.coords
        assert "crs" not in ds.attrs
        assert ds.attrs["processing"] == ""


class TestTrack:

    def test_geolocated_columns(self, located_radargram, temp_dir):
        path = write_track(located_radargram, temp_dir / "track.csv")
        frame = pd.read_csv(path)

        assert list(frame.columns) == ["trace", "time", "distance", "x", "y", "z"]
        assert len(frame) == located_radargram.n_traces
        assert frame["x"].iloc[-1] == pytest.approx(500014.5)

    def test_ungeolocated_columns(self, radargram, temp_dir):
        frame = pd.read_csv(write_track(radargram, temp_dir / "track.csv"))
        assert list(frame.columns) == ["trace", "time", "distance"]


class TestResolveTargets:

    def test_defaults_next_to_input(self, internal_config):
        targets = resolve_targets(Path("/data/line01.rad"), internal_config)

        assert targets.netcdf == Path("/data/line01.nc")
        assert targets.track is None
        assert targets.image is None

    def test_output_directory_and_stem(self, make_config, temp_dir):
        config = make_config(cli={"output": str(temp_dir), "track": True, "render": True})
        targets = resolve_targets(Path("/data/line01.rad"), config, stem="line01_merged")

        assert targets.netcdf == temp_dir / "line01_merged.nc"
        assert targets.track == temp_dir / "line01_merged_track.csv"
        assert targets.image == temp_dir / "line01_merged.jpg"

    def test_output_file(self, make_config, temp_dir):
        config = make_config(cli={"output": str(temp_dir / "result.nc")})
        targets = resolve_targets(Path("/data/line01.rad"), config)
        assert targets.netcdf == temp_dir / "result.nc"

    def test_output_file_in_batch_uses_its_directory(self, make_config, temp_dir):
        config = make_config(cli={"output": str(temp_dir / "result.nc")})
        targets = resolve_targets(Path("/data/line02.rad"), config, batch=True)
        assert targets.netcdf == temp_dir / "line02.nc"

    def test_explicit_track_and_image_paths(self, make_config, temp_dir):
        config = make_config(cli={"track_path": str(temp_dir / "gps.csv"),
                                  "render_path": str(temp_dir / "img")})
        targets = resolve_targets(Path("/data/line01.rad"), config)

        assert targets.track == temp_dir / "gps.csv"
        assert targets.image == temp_dir / "img" / "line01.jpg"

    def test_no_export_keeps_other_outputs(self, make_config):
        config = make_config(cli={"no_export": True, "track": True})
        targets = resolve_targets(Path("/data/line01.rad"), config)

        assert targets.netcdf is None
        assert targets.track == Path("/data/line01_track.csv")
