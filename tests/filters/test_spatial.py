"""Tests for the spatial filters."""

import numpy as np
import pytest

from gprpipe.core import NumericInstability, PreconditionUnmet
from gprpipe.filters import FilterContext, FilterPipeline, build_filter
from gprpipe.filters.spatial import window_middle_indices

from tests.helpers.synthetic import make_radargram

pytestmark = pytest.mark.unit

CONTEXT = FilterContext(medium_velocity=0.1)


def apply(step, rg):
    return build_filter(step).apply(rg, CONTEXT)


@pytest.mark.parametrize("length,window,expected", [
    (10, 4, [1, 5, 8]),
    (9, 3, [1, 4, 7]),
    (5, 5, [2]),
    (7, 2, [0, 2, 4, 6]),
])
def test_window_middle_indices(length, window, expected):
    assert window_middle_indices(length, window).tolist() == expected


class TestSubset:

    def test_crop(self, radargram):
        out = apply("subset(2 5 1 3)", radargram)
        assert out.data.shape == (4, 3)
        np.testing.assert_array_equal(out.data, radargram.data[2:6, 1:4])
        assert out.time_zero == pytest.approx(2e-9)
        assert out.timestamps[0] == radargram.timestamps[1]

    def test_minus_one_means_end(self, radargram):
        out = apply("subset(10 -1 0 -1)", radargram)
        assert out.data.shape == (40, 30)

    def test_out_of_range(self, radargram):
        with pytest.raises(PreconditionUnmet, match="sample range"):
            apply("subset(0 80)", radargram)


class TestRemoveEmptyTraces:

    def test_drops_constant_traces(self, radargram):
        data = radargram.data.copy()
        data[:, [3, 7]] = 0.0
        out = apply("remove_empty_traces", radargram.replace(data=data))
        assert out.n_traces == radargram.n_traces - 2
        assert radargram.timestamps[3] not in out.timestamps

    def test_nothing_to_drop_returns_input(self, radargram):
        assert apply("remove_empty_traces", radargram) is radargram

    def test_all_empty(self):
        with pytest.raises(NumericInstability):
            apply("remove_empty_traces", make_radargram(data=np.ones((5, 4))))


class TestAverageTraces:

    def test_means_and_middle_metadata(self):
        rg = make_radargram(n_traces=10, samples=6)
        out = apply("average_traces(4)", rg)

        assert out.n_traces == 3
        np.testing.assert_allclose(out.data[:, 0], rg.data[:, :4].mean(axis=1), rtol=1e-5, atol=1e-6)
        np.testing.assert_allclose(out.data[:, 2], rg.data[:, 8:].mean(axis=1), rtol=1e-5, atol=1e-6)
        np.testing.assert_array_equal(out.timestamps, rg.timestamps[[1, 5, 8]])
        np.testing.assert_allclose(out.distances, rg.distances[[1, 5, 8]])

    def test_window_equal_to_width(self):
        rg = make_radargram(n_traces=5)
        assert apply("average_traces(5)", rg).n_traces == 1

    def test_window_larger_than_width(self):
        rg = make_radargram(n_traces=5)
        with pytest.raises(PreconditionUnmet, match="larger than the data width"):
            FilterPipeline.from_steps("average_traces(6)").run(rg)

    def test_window_of_one_rejected(self):
        with pytest.raises(ValueError):
            build_filter("average_traces(1)")


class TestEquidistantTraces:

    def test_requires_positions(self, radargram):
        with pytest.raises(PreconditionUnmet, match="no positions"):
            FilterPipeline.from_steps("equidistant_traces").run(radargram)

    def test_nearest_trace_on_grid(self, located_radargram):
        rg = located_radargram.select_traces(np.arange(5)).replace(
            distances=np.array([0.0, 0.4, 1.1, 1.9, 3.0]))
        out = apply("equidistant_traces(1)", rg)

        np.testing.assert_allclose(out.distances, [0.0, 1.0, 2.0, 3.0])
        np.testing.assert_array_equal(out.timestamps, rg.timestamps[[0, 2, 3, 4]])

    def test_median_step(self, located_radargram):
        out = apply("equidistant_traces", located_radargram)
        assert out.n_traces == located_radargram.n_traces
        np.testing.assert_allclose(np.diff(out.distances), 0.5)

    def test_standing_still(self, located_radargram):
        rg = located_radargram.replace(distances=np.zeros(located_radargram.n_traces))
        with pytest.raises(PreconditionUnmet, match="no horizontal movement"):
            apply("equidistant_traces", rg)


def test_normalize_horizontal_magnitudes():
    base = make_radargram(n_traces=6, samples=40)
    scales = np.array([1.0, 2.0, 0.5, 4.0, 1.0, 3.0], dtype=np.float32)
    rg = base.replace(data=base.data * scales)
    out = apply("normalize_horizontal_magnitudes(0.3)", rg)

    magnitudes = np.abs(out.data[12:]).mean(axis=0)
    np.testing.assert_allclose(magnitudes, magnitudes[0], rtol=1e-4)


class TestCorrectTopography:

    def test_shifts_lower_traces_down(self):
        data = np.zeros((20, 3))
        data[2, :] = 1.0
        rg = make_radargram(data=data, geolocated=True, elevation=[100.0, 99.9, 99.8])
        out = apply("correct_topography", rg)

        # 0.1 m lower is 2 ns two-way at 0.1 m/ns
        assert np.argmax(out.data, axis=0).tolist() == [2, 4, 6]
        assert out.samples_per_trace == 20

    def test_requires_elevation(self):
        rg = make_radargram(geolocated=True, elevation=np.full(30, np.nan))
        with pytest.raises(PreconditionUnmet, match="no elevation"):
            FilterPipeline.from_steps("correct_topography").run(rg)
