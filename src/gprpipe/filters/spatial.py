"""
Spatial (across-trace) filters.

Filters that select, combine or equalize traces, or move them vertically
according to their position.
"""

import logging

import numpy as np

from gprpipe.core import Radargram, NumericInstability
from gprpipe.filters.base import (
    BaseFilter,
    FilterContext,
    FilterParameterSpec,
    ParameterType,
    RequiresElevation,
    RequiresPositions,
    WindowWithinTraces,
)
from gprpipe.filters.registry import register_filter
from gprpipe.filters.temporal import shift_traces

logger = logging.getLogger(__name__)


def window_middle_indices(length: int, window: int) -> np.ndarray:
    """Index of the middle element of each consecutive window.

    Even windows pick the element left of the middle; a shorter last window
    uses its own middle.

    >>> window_middle_indices(10, 4).tolist()
    [1, 5, 8]
    """
    starts = np.arange(0, length, window)
    widths = np.minimum(starts + window, length) - starts
    return starts + (widths - 1) // 2


@register_filter
class SubsetFilter(BaseFilter):
    """Crop to a sample and trace range (inclusive; -1 means to the end)."""

    category = "spatial"
    filter_name = "subset"
    description = "Crop the radargram to a sample and trace range"

    parameter_specs = [
        FilterParameterSpec("min_sample", ParameterType.INT, 0, min_value=0),
        FilterParameterSpec("max_sample", ParameterType.INT, -1, min_value=-1),
        FilterParameterSpec("min_trace", ParameterType.INT, 0, min_value=0),
        FilterParameterSpec("max_trace", ParameterType.INT, -1, min_value=-1),
    ]

    @staticmethod
    def _range(low: int, high: int, size: int, what: str, flt: "SubsetFilter"):
        high = size - 1 if high == -1 else high
        if low > high or high >= size:
            raise flt.precondition_error(f"{what} range {low}..{high} is outside 0..{size - 1}")
        return low, high

    def apply(self, rg: Radargram, context: FilterContext) -> Radargram:
        s0, s1 = self._range(self.get_parameter("min_sample"), self.get_parameter("max_sample"),
                             rg.samples_per_trace, "sample", self)
        t0, t1 = self._range(self.get_parameter("min_trace"), self.get_parameter("max_trace"),
                             rg.n_traces, "trace", self)
        cropped = rg.select_traces(np.arange(t0, t1 + 1))
        return cropped.replace(
            data=cropped.data[s0:s1 + 1],
            time_zero=rg.time_zero + s0 * rg.sample_interval,
        )


@register_filter
class RemoveEmptyTracesFilter(BaseFilter):
    """Drop traces whose samples are all identical (dead or padded traces)."""

    category = "spatial"
    filter_name = "remove_empty_traces"
    description = "Remove traces without signal"
    repeatable = False

    def apply(self, rg: Radargram, context: FilterContext) -> Radargram:
        empty = np.all(rg.data == rg.data[:1], axis=0)
        if empty.all():
            raise NumericInstability("every trace is empty", self.filter_name)
        if not empty.any():
            return rg
        logger.info("%s: removing %d empty trace(s)", rg.source, int(empty.sum()))
        return rg.select_traces(np.flatnonzero(~empty))


@register_filter
class AverageTracesFilter(BaseFilter):
    """
    Average consecutive traces.

    Every ``window`` traces are replaced by their mean (the last group may be
    shorter). Time, distance and position of the middle trace of each group
    are kept.
    """

    category = "spatial"
    filter_name = "average_traces"
    description = "Average traces in consecutive windows"

    parameter_specs = [
        FilterParameterSpec("window", ParameterType.INT, 2, min_value=2, units="traces"),
    ]
    preconditions = (WindowWithinTraces("window"),)

    def apply(self, rg: Radargram, context: FilterContext) -> Radargram:
        window = self.get_parameter("window")
        starts = np.arange(0, rg.n_traces, window)
        sums = np.add.reduceat(rg.data.astype(np.float64), starts, axis=1)
        counts = np.diff(np.append(starts, rg.n_traces))
        middles = window_middle_indices(rg.n_traces, window)
        return rg.select_traces(middles).replace(data=sums / counts)


@register_filter
class EquidistantTracesFilter(BaseFilter):
    """
    Resample traces to a constant along-track spacing.

    For every point of a regular distance grid the nearest trace is taken.
    A step of 0 uses the median spacing of the moving traces.
    """

    category = "spatial"
    filter_name = "equidistant_traces"
    description = "Pick traces at a constant distance step"
    repeatable = False
    preconditions = (RequiresPositions(),)

    parameter_specs = [
        FilterParameterSpec("step", ParameterType.FLOAT, 0.0, min_value=0.0, units="m"),
    ]

    def apply(self, rg: Radargram, context: FilterContext) -> Radargram:
        distances = rg.distances
        step = self.get_parameter("step")
        if step == 0:
            moves = np.diff(distances)
            moves = moves[moves > 0]
            if moves.size == 0:
                raise self.precondition_error("the track has no horizontal movement")
            step = float(np.median(moves))

        grid = np.arange(distances[0], distances[-1] + step / 2, step)
        if rg.n_traces == 1:
            nearest = np.zeros(len(grid), dtype=int)
        else:
            right = np.clip(np.searchsorted(distances, grid), 1, rg.n_traces - 1)
            left = right - 1
            nearest = np.where(np.abs(distances[left] - grid) <= np.abs(distances[right] - grid),
                               left, right)
        logger.debug("%s: %d traces -> %d at %.3f m", rg.source, rg.n_traces, len(grid), step)
        return rg.select_traces(nearest).replace(distances=grid)


@register_filter
class NormalizeHorizontalMagnitudesFilter(BaseFilter):
    """
    Equalize trace magnitudes.

    Each trace is divided by its mean absolute amplitude below the top
    ``skip_fraction`` of samples (which hold the strong direct wave), then
    rescaled by the mean of those magnitudes so the overall level is kept.
    Removes horizontal striping from varying coupling.
    """

    category = "spatial"
    filter_name = "normalize_horizontal_magnitudes"
    description = "Equalize the magnitude of every trace"

    parameter_specs = [
        FilterParameterSpec("skip_fraction", ParameterType.FLOAT, 0.3, min_value=0.0, max_value=0.99,
                            tooltip="Fraction of the top samples ignored when measuring"),
    ]

    def apply(self, rg: Radargram, context: FilterContext) -> Radargram:
        skip = int(rg.samples_per_trace * self.get_parameter("skip_fraction"))
        magnitudes = np.abs(rg.data[skip:]).mean(axis=0)
        live = magnitudes > 0
        if not live.any():
            raise NumericInstability("all traces have zero magnitude", self.filter_name)
        reference = magnitudes[live].mean()
        scale = np.ones_like(magnitudes)
        scale[live] = reference / magnitudes[live]
        return rg.replace(data=rg.data * scale[None, :])


@register_filter
class CorrectTopographyFilter(BaseFilter):
    """
    Topographic correction.

    Traces are shifted down by the two-way time from the highest trace
    elevation to their own elevation, so reflections line up with true
    heights. The sample count is kept; samples pushed past the end of the
    trace are dropped and the top is zero filled.
    """

    category = "spatial"
    filter_name = "correct_topography"
    description = "Shift traces vertically by their elevation"
    repeatable = False
    preconditions = (RequiresElevation(),)

    def apply(self, rg: Radargram, context: FilterContext) -> Radargram:
        elevation = rg.positions[:, 2]
        drop_m = elevation.max() - elevation
        # Two-way time (ns) to travel the elevation difference
        shift_ns = 2.0 * drop_m / context.medium_velocity
        shifts = np.round(shift_ns / (rg.sample_interval * 1e9)).astype(int)
        if shifts.max() >= rg.samples_per_trace:
            logger.warning("%s: elevation range exceeds the time window, deepest traces are blank",
                           rg.source)
        return rg.replace(data=shift_traces(rg.data, shifts))
