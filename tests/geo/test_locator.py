"""Tests for reprojection, UTM selection and DEM sampling."""

import numpy as np
import pytest
import rasterio as rio
from pyproj import CRS
from rasterio.transform import from_origin

from gprpipe.core import GeoError, OutOfBounds, UnsupportedCrs
from gprpipe.geo import DemSource, GeoLocator, along_track_distances, utm_crs_for

from tests.helpers.synthetic import make_radargram

pytestmark = pytest.mark.unit


def geographic_radargram(n_traces=10):
    # Positions in degrees around 9 E / 61 N
    return make_radargram(n_traces=n_traces, geolocated=True, crs="EPSG:4326",
                          x0=9.0, y0=61.0, spacing_m=1e-5)


class TestUtm:

    @pytest.mark.parametrize("lon,lat,epsg", [
        (9.0, 61.0, 32632),
        (-70.0, -33.0, 32719),
        (179.9, 10.0, 32660),
        (-180.0, 0.0, 32601),
    ])
    def test_zone(self, lon, lat, epsg):
        assert utm_crs_for(lon, lat) == CRS.from_epsg(epsg)


class TestAlongTrack:

    def test_projected_distances(self):
        positions = np.array([[0.0, 0.0, 0.0], [3.0, 4.0, 0.0], [3.0, 10.0, 0.0]])
        np.testing.assert_allclose(along_track_distances(positions, CRS.from_epsg(32632)),
                                   [0.0, 5.0, 11.0])

    def test_geographic_distances(self):
        positions = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0]])
        d = along_track_distances(positions, CRS.from_epsg(4326))
        assert d[1] == pytest.approx(111319.49, rel=1e-4)

    def test_single_trace(self):
        assert along_track_distances(np.zeros((1, 3)), CRS.from_epsg(32632)).tolist() == [0.0]


class TestGeoLocator:

    def test_ungeolocated_is_returned_unchanged(self, radargram):
        located, misses = GeoLocator().locate_with_report(radargram)
        assert located is radargram
        assert misses == []

    def test_auto_utm_target(self):
        rg = geographic_radargram()
        located = GeoLocator().locate(rg)

        assert located.crs == "EPSG:32632"
        # 9 E is the central meridian of zone 32
        assert located.positions[0, 0] == pytest.approx(500000.0, abs=1.0)
        assert located.distances[0] == 0.0
        assert np.all(np.diff(located.distances) > 0)
        # Elevation untouched without a DEM
        np.testing.assert_allclose(located.positions[:, 2], rg.positions[:, 2])

    def test_reprojection_is_idempotent(self):
        once = GeoLocator().locate(geographic_radargram())
        twice = GeoLocator().locate(once)
        np.testing.assert_allclose(twice.positions, once.positions)
        assert twice.crs == once.crs

    def test_explicit_target(self):
        located = GeoLocator("EPSG:3857").locate(geographic_radargram())
        assert located.crs == "EPSG:3857"

    def test_same_crs_is_noop(self, located_radargram):
        located = GeoLocator("EPSG:32632").locate(located_radargram)
        np.testing.assert_allclose(located.positions, located_radargram.positions)
        np.testing.assert_allclose(located.distances, np.arange(30) * 0.5)

    def test_bad_target_crs(self):
        with pytest.raises(UnsupportedCrs):
            GeoLocator("not a crs")

    def test_bad_source_crs(self, located_radargram):
        rg = located_radargram.replace(crs="EPSG:999999")
        with pytest.raises(UnsupportedCrs) as excinfo:
            GeoLocator().locate(rg)
        assert excinfo.value.filepath == rg.source


class TestDem:

    def make_dem(self, value=250.0, nodata=None):
        # 20 x 20 one-metre cells from x 499990 to 500010, y 6759990 to 6760010
        heights = np.full((20, 20), value)
        return DemSource(heights, from_origin(499990.0, 6760010.0, 1.0, 1.0), "EPSG:32632",
                         nodata=nodata)

    def test_dem_heights_replace_elevation(self, located_radargram):
        located, misses = GeoLocator(dem=self.make_dem()).locate_with_report(located_radargram)

        # Traces 0..19 lie inside the DEM (x < 500010)
        np.testing.assert_allclose(located.positions[:20, 2], 250.0)
        np.testing.assert_allclose(located.positions[20:, 2], 100.0)
        assert [m.trace_index for m in misses] == list(range(20, 30))
        assert all(isinstance(m, OutOfBounds) for m in misses)

    def test_sample_reprojects_points(self):
        dem = self.make_dem()
        lon, lat = 9.0, 50.0
        # Far outside the tiny grid
        assert np.isnan(dem.sample(np.array([lon]), np.array([lat]), "EPSG:4326"))[0]

    def test_nodata_cells_are_nan(self):
        dem = self.make_dem(value=-9999.0, nodata=-9999.0)
        out = dem.sample(np.array([500000.5]), np.array([6760000.5]))
        assert np.isnan(out[0])

    def test_heights_are_read_only(self):
        dem = self.make_dem()
        with pytest.raises(ValueError):
            dem.heights[0, 0] = 1.0

    def test_open_geotiff(self, temp_dir):
        path = temp_dir / "dem.tif"
        heights = np.arange(16, dtype="float32").reshape(4, 4)
        with rio.open(path, "w", driver="GTiff", height=4, width=4, count=1, dtype="float32",
                      crs="EPSG:32632", transform=from_origin(500000.0, 6760004.0, 1.0, 1.0)) as dst:
            dst.write(heights, 1)

        dem = DemSource.open(path)
        # Row 1 (y between 6760002 and 6760003), column 2
        assert dem.sample(np.array([500002.5]), np.array([6760002.5]))[0] == 6.0
        assert dem.crs.to_epsg() == 32632

    def test_open_missing_file(self, temp_dir):
        with pytest.raises(GeoError):
            DemSource.open(temp_dir / "absent.tif")
