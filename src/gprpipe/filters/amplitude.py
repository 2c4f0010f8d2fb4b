"""
Amplitude filters.

Gain recovery and logarithmic compression. The two gain filters exclude
each other, as do the two log transforms.
"""

import logging

import numpy as np

from gprpipe.core import Radargram, NumericInstability
from gprpipe.filters.base import BaseFilter, FilterContext, FilterParameterSpec, ParameterType
from gprpipe.filters.registry import register_filter

logger = logging.getLogger(__name__)

ABSLOG_QUANTILES = (0.01, 0.05, 0.5, 0.9)


@register_filter
class GainFilter(BaseFilter):
    """
    Linear depth gain.

    Multiplies every sample by ``1 + factor * depth`` where depth (m) follows
    from the two-way time and the medium velocity. Samples above time zero
    are left unchanged.
    """

    category = "amplitude"
    filter_name = "gain"
    description = "Linear gain with depth"
    exclusive_group = "gain"

    parameter_specs = [
        FilterParameterSpec("factor", ParameterType.FLOAT, 1.0, min_value=0.0, units="1/m"),
    ]

    def apply(self, rg: Radargram, context: FilterContext) -> Radargram:
        depth = np.clip(rg.depth(context.medium_velocity), 0.0, None)
        gain = 1.0 + self.get_parameter("factor") * depth
        return rg.replace(data=rg.data * gain[:, None])


@register_filter
class AutoGainFilter(BaseFilter):
    """
    Automatic gain from the amplitude decay.

    The traces are cut into ``n_bins`` horizontal bands; each band is scaled
    by the inverse of its standard deviation (over all traces) so every band
    ends up with unit spread. The per-band gains are interpolated to every
    sample row.
    """

    category = "amplitude"
    filter_name = "auto_gain"
    description = "Scale horizontal bands to equal standard deviation"
    exclusive_group = "gain"

    parameter_specs = [
        FilterParameterSpec("n_bins", ParameterType.INT, 100, min_value=1, tooltip="Number of bands"),
    ]

    def apply(self, rg: Radargram, context: FilterContext) -> Radargram:
        n_samples = rg.samples_per_trace
        n_bins = min(self.get_parameter("n_bins"), n_samples)
        edges = np.linspace(0, n_samples, n_bins + 1).round().astype(int)

        centres = []
        stds = []
        for start, end in zip(edges[:-1], edges[1:]):
            if end <= start:
                continue
            centres.append((start + end - 1) / 2.0)
            stds.append(float(np.std(rg.data[start:end])))
        centres = np.asarray(centres)
        stds = np.asarray(stds)

        usable = stds > 0
        if not usable.any():
            raise NumericInstability("every band has zero standard deviation", self.filter_name)

        gains = np.interp(np.arange(n_samples), centres[usable], 1.0 / stds[usable])
        return rg.replace(data=rg.data * gains[:, None])


@register_filter
class SiglogFilter(BaseFilter):
    """
    Signed logarithmic compression.

    ``v -> sign(v) * max(log10|v| - minval_log10, 0)``, so magnitudes below
    ``10 ** minval_log10`` become zero and the polarity is kept.
    """

    category = "amplitude"
    filter_name = "siglog"
    description = "Signed log10 compression"
    exclusive_group = "log"

    parameter_specs = [
        FilterParameterSpec("minval_log10", ParameterType.FLOAT, -5.0,
                            tooltip="log10 of the smallest magnitude kept"),
    ]

    def apply(self, rg: Radargram, context: FilterContext) -> Radargram:
        return rg.replace(data=siglog(rg.data, self.get_parameter("minval_log10")))


@register_filter
class AbslogFilter(BaseFilter):
    """
    Absolute logarithmic compression.

    ``v -> log10(|v| + m)`` where ``m`` is the first non-zero of the 1, 5, 50
    and 90 % quantiles of ``|v|`` (1 if all of them are zero).
    """

    category = "amplitude"
    filter_name = "abslog"
    description = "log10 of the absolute amplitude"
    exclusive_group = "log"

    def apply(self, rg: Radargram, context: FilterContext) -> Radargram:
        return rg.replace(data=abslog(rg.data))


def siglog(data: np.ndarray, minval_log10: float) -> np.ndarray:
    with np.errstate(divide="ignore"):
        magnitude = np.log10(np.abs(data)) - minval_log10
    return np.maximum(magnitude, 0.0) * np.sign(data)


def abslog(data: np.ndarray) -> np.ndarray:
    magnitude = np.abs(data)
    minval = 1.0
    for quantile in np.quantile(magnitude, ABSLOG_QUANTILES):
        if quantile > 0:
            minval = float(quantile)
            break
    return np.log10(magnitude + minval)
