"""
Temporal (along-trace) filters.

Filters that operate down each trace, on the two-way-time axis.
"""

import logging

import numpy as np
from scipy import signal

from gprpipe.core import Radargram, NumericInstability
from gprpipe.filters.base import (
    BaseFilter,
    BelowNyquist,
    FilterContext,
    FilterParameterSpec,
    ParameterType,
)
from gprpipe.filters.registry import register_filter

logger = logging.getLogger(__name__)


def running_mean(data: np.ndarray, window: int) -> np.ndarray:
    """Centred running mean down axis 0; the window shrinks at the trace ends."""
    n_samples = data.shape[0]
    half = window // 2
    cumsum = np.zeros((n_samples + 1,) + data.shape[1:], dtype=np.float64)
    cumsum[1:] = np.cumsum(data, axis=0, dtype=np.float64)
    rows = np.arange(n_samples)
    start = np.clip(rows - half, 0, n_samples)
    end = np.clip(rows - half + window, 0, n_samples)
    counts = (end - start).reshape((-1,) + (1,) * (data.ndim - 1))
    return (cumsum[end] - cumsum[start]) / counts


def shift_traces(data: np.ndarray, shifts: np.ndarray) -> np.ndarray:
    """Shift each trace by ``shifts[i]`` samples (positive moves data down), zero filled."""
    n_samples, n_traces = data.shape
    rows = np.arange(n_samples)[:, None] - shifts[None, :]
    valid = (rows >= 0) & (rows < n_samples)
    out = np.zeros_like(data)
    cols = np.broadcast_to(np.arange(n_traces), rows.shape)
    out[valid] = data[rows[valid], cols[valid]]
    return out


@register_filter
class DewowFilter(BaseFilter):
    """
    Dewow filter.

    Removes the slowly varying "wow" (low-frequency inductive coupling and
    DC drift) by subtracting a running mean from each trace.
    """

    category = "temporal"
    filter_name = "dewow"
    description = "Subtract a running mean down each trace (low-cut)"

    parameter_specs = [
        FilterParameterSpec(
            name="window",
            param_type=ParameterType.INT,
            default=5,
            min_value=2,
            units="samples",
            tooltip="Running mean window length",
        ),
    ]

    def apply(self, rg: Radargram, context: FilterContext) -> Radargram:
        window = self.get_parameter("window")
        data = rg.data - running_mean(rg.data, window)
        return rg.replace(data=data)


@register_filter
class BandpassFilter(BaseFilter):
    """
    Zero-phase Butterworth bandpass.

    Designed as second-order sections and run forward and backward, so the
    effective order is twice the given order and no phase shift is introduced.
    """

    category = "temporal"
    filter_name = "bandpass"
    description = "Zero-phase Butterworth bandpass filter"

    parameter_specs = [
        FilterParameterSpec("low_mhz", ParameterType.FLOAT, 100.0, min_value=0.0, units="MHz",
                            tooltip="Low corner frequency"),
        FilterParameterSpec("high_mhz", ParameterType.FLOAT, 1000.0, min_value=0.0, units="MHz",
                            tooltip="High corner frequency"),
        FilterParameterSpec("order", ParameterType.INT, 4, min_value=1, max_value=10),
    ]
    preconditions = (BelowNyquist("high_mhz"),)

    def apply(self, rg: Radargram, context: FilterContext) -> Radargram:
        low = self.get_parameter("low_mhz") * 1e6
        high = self.get_parameter("high_mhz") * 1e6
        order = self.get_parameter("order")
        if not 0 < low < high:
            raise self.precondition_error(f"need 0 < low_mhz < high_mhz, got {low / 1e6:g} and {high / 1e6:g}")

        fs = 1.0 / rg.sample_interval
        sos = signal.iirfilter(order, [low, high], btype="bandpass", ftype="butter",
                               output="sos", fs=fs)
        padlen = 3 * (2 * len(sos) + 1)
        if rg.samples_per_trace <= padlen:
            raise self.precondition_error(
                f"traces need more than {padlen} samples for order {order}, got {rg.samples_per_trace}")
        data = signal.sosfiltfilt(sos, rg.data, axis=0)
        return rg.replace(data=data)


@register_filter
class ZeroCorrFilter(BaseFilter):
    """
    Time-zero correction from the first break.

    The first sample at which the mean absolute trace exceeds ``threshold``
    times its maximum is taken as time zero. The data are not moved; only
    ``time_zero`` is rewritten.
    """

    category = "temporal"
    filter_name = "zero_corr"
    description = "Set time zero at the first break of the mean trace"
    exclusive_group = "time_zero"

    parameter_specs = [
        FilterParameterSpec("threshold", ParameterType.FLOAT, 0.5, min_value=0.0, max_value=1.0,
                            tooltip="Fraction of the peak mean amplitude marking the first break"),
    ]

    def apply(self, rg: Radargram, context: FilterContext) -> Radargram:
        envelope = np.abs(rg.data).mean(axis=1)
        peak = envelope.max()
        if peak <= 0:
            raise NumericInstability("all traces are zero, no first break", self.filter_name)
        first_break = int(np.argmax(envelope >= self.get_parameter("threshold") * peak))
        logger.debug("%s: first break at sample %d", rg.source, first_break)
        return rg.replace(time_zero=-first_break * rg.sample_interval)


@register_filter
class ZeroCorrMaxPeakFilter(BaseFilter):
    """
    Per-trace time-zero alignment on the direct-wave peak.

    Each trace is shifted so its strongest sample lands on the median peak
    row of the radargram (zero filled), and time zero is set to that row.
    The number of samples does not change.
    """

    category = "temporal"
    filter_name = "zero_corr_max_peak"
    description = "Align every trace on its maximum peak and set time zero there"
    exclusive_group = "time_zero"

    def apply(self, rg: Radargram, context: FilterContext) -> Radargram:
        peaks = np.argmax(np.abs(rg.data), axis=0)
        target = int(np.median(peaks))
        data = shift_traces(rg.data, target - peaks)
        logger.debug("%s: aligned peaks on sample %d (spread %d)", rg.source, target,
                     int(peaks.max() - peaks.min()))
        return rg.replace(data=data, time_zero=-target * rg.sample_interval)


@register_filter
class AntennaSeparationFilter(BaseFilter):
    """
    Antenna separation (offset) correction.

    With transmitter and receiver ``s`` metres apart, a reflector at depth
    ``d`` arrives at ``t = sqrt((2d)^2 + s^2) / v``. Each trace is resampled
    so that ``t' = 2d / v``, i.e. the value at ``t'`` is read from
    ``sqrt(t'^2 + (s / v)^2)``. Samples before time zero are untouched.
    """

    category = "temporal"
    filter_name = "correct_antenna_separation"
    description = "Resample traces to remove the antenna offset from travel times"
    repeatable = False

    def apply(self, rg: Radargram, context: FilterContext) -> Radargram:
        separation = rg.metadata.antenna_separation
        if separation <= 0:
            logger.debug("%s: antenna separation is 0, nothing to correct", rg.source)
            return rg

        twt = rg.two_way_time  # ns
        offset_ns = separation / context.medium_velocity
        source_twt = np.where(twt > 0, np.sqrt(twt ** 2 + offset_ns ** 2), twt)
        position = (source_twt - twt[0]) / (rg.sample_interval * 1e9)

        lower = np.floor(position).astype(int)
        frac = (position - lower)[:, None]
        n_samples = rg.samples_per_trace
        inside = (lower >= 0) & (lower < n_samples)
        lower_c = np.clip(lower, 0, n_samples - 1)
        upper_c = np.clip(lower + 1, 0, n_samples - 1)
        data = (1 - frac) * rg.data[lower_c] + frac * rg.data[upper_c]
        data[~inside] = 0.0
        return rg.replace(data=data)


@register_filter
class UnphaseFilter(BaseFilter):
    """
    Envelope (instantaneous amplitude) from the analytic signal.

    Removes the oscillating phase of the wavelet so each reflection shows
    as a single positive lobe.
    """

    category = "temporal"
    filter_name = "unphase"
    description = "Replace each trace by its Hilbert envelope"
    repeatable = False

    def apply(self, rg: Radargram, context: FilterContext) -> Radargram:
        return rg.replace(data=np.abs(signal.hilbert(rg.data, axis=0)))
