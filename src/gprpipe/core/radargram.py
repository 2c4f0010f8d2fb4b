"""Canonical in-memory radargram model.

A :class:`Radargram` holds one acquisition: a 2-D amplitude matrix with one
column per trace, per-trace timestamps, along-track distances and optional
positions, plus survey-wide provenance metadata. Both decoders produce this
type and every later stage consumes and returns it.

Stages never mutate a radargram they did not create; they return a new
instance via :meth:`Radargram.replace` or :meth:`Radargram.select_traces`.
Invariants are enforced at stage boundaries by
:func:`gprpipe.contracts.assert_radargram`.
"""

from dataclasses import dataclass, field, replace as dc_replace
from typing import Any, Dict, Optional, Tuple
import logging

import numpy as np
import pandas as pd
import xarray as xr

__all__ = ["Radargram", "SurveyMetadata", "AppliedFilter"]

logger = logging.getLogger(__name__)


def _format_value(value: Any) -> str:
    if isinstance(value, float):
        return f"{value:g}"
    return str(value)


@dataclass(frozen=True)
class AppliedFilter:
    """One entry of the append-only filter log."""

    name: str
    parameters: Dict[str, Any] = field(default_factory=dict)

    def describe(self) -> str:
        """Render the entry in step syntax, e.g. ``dewow(5)``."""
        if not self.parameters:
            return self.name
        args = " ".join(_format_value(v) for v in self.parameters.values())
        return f"{self.name}({args})"


@dataclass(frozen=True)
class SurveyMetadata:
    """Provenance metadata carried unchanged through the pipeline."""

    instrument: str
    filepath: str
    antenna: str = ""
    antenna_mhz: Optional[float] = None
    antenna_separation: float = 0.0
    stacking_count: int = 1
    header: Dict[str, str] = field(default_factory=dict)


@dataclass
class Radargram:
    """A decoded GPR acquisition.

    Attributes
    ----------
    data : np.ndarray
        Amplitudes with shape (samples_per_trace, n_traces), float32.
    sample_interval : float
        Time between vertical samples in seconds.
    timestamps : np.ndarray
        Acquisition time of each trace (datetime64[ns]), non-decreasing.
    distances : np.ndarray
        Along-track distance of each trace in metres.
    metadata : SurveyMetadata
        Instrument and antenna provenance.
    positions : np.ndarray, optional
        (n_traces, 3) x/y/z coordinates in ``crs``. z may be NaN.
        None while the radargram is ungeolocated.
    crs : str, optional
        Coordinate reference system of ``positions``.
    time_zero : float
        Two-way time of sample 0 relative to the true time zero, seconds.
    applied_filters : tuple of AppliedFilter
        Ordered log of filters applied so far.
    """

    data: np.ndarray
    sample_interval: float
    timestamps: np.ndarray
    distances: np.ndarray
    metadata: SurveyMetadata
    positions: Optional[np.ndarray] = None
    crs: Optional[str] = None
    time_zero: float = 0.0
    applied_filters: Tuple[AppliedFilter, ...] = ()

    def __post_init__(self):
        self.data = np.asarray(self.data, dtype=np.float32)
        self.timestamps = np.asarray(self.timestamps).astype("datetime64[ns]")
        self.distances = np.asarray(self.distances, dtype=np.float64)
        if self.positions is not None:
            self.positions = np.asarray(self.positions, dtype=np.float64)
        self.applied_filters = tuple(self.applied_filters)

    # ------------------------------------------------------------------
    # Shape and time axes
    # ------------------------------------------------------------------

    @property
    def n_traces(self) -> int:
        return int(self.data.shape[1]) if self.data.ndim == 2 else 0

    @property
    def samples_per_trace(self) -> int:
        return int(self.data.shape[0]) if self.data.ndim == 2 else 0

    @property
    def geolocated(self) -> bool:
        return self.positions is not None

    @property
    def start_time(self) -> np.datetime64:
        return self.timestamps[0]

    @property
    def end_time(self) -> np.datetime64:
        return self.timestamps[-1]

    @property
    def two_way_time(self) -> np.ndarray:
        """Two-way travel time of each sample row in nanoseconds."""
        return (self.time_zero + np.arange(self.samples_per_trace) * self.sample_interval) * 1e9

    def depth(self, velocity: float) -> np.ndarray:
        """Depth of each sample row in metres for a medium velocity in m/ns."""
        return self.two_way_time * velocity / 2.0

    @property
    def source(self) -> str:
        return self.metadata.filepath

    @property
    def filter_names(self) -> Tuple[str, ...]:
        return tuple(f.name for f in self.applied_filters)

    def has_filter(self, name: str) -> bool:
        return name in self.filter_names

    # ------------------------------------------------------------------
    # Derivation
    # ------------------------------------------------------------------

    def replace(self, **changes) -> "Radargram":
        """Return a new radargram with the given fields replaced."""
        return dc_replace(self, **changes)

    def copy(self) -> "Radargram":
        """Deep copy of all arrays."""
        return self.replace(
            data=self.data.copy(),
            timestamps=self.timestamps.copy(),
            distances=self.distances.copy(),
            positions=None if self.positions is None else self.positions.copy(),
        )

    def select_traces(self, indices) -> "Radargram":
        """Return a radargram holding only the traces at ``indices`` (in that order)."""
        idx = np.asarray(indices)
        return self.replace(
            data=self.data[:, idx],
            timestamps=self.timestamps[idx],
            distances=self.distances[idx],
            positions=None if self.positions is None else self.positions[idx],
        )

    def with_filter(self, name: str, parameters: Optional[Dict[str, Any]] = None,
                    **changes) -> "Radargram":
        """Return a new radargram with a filter entry appended to the log."""
        entry = AppliedFilter(name, dict(parameters or {}))
        return self.replace(applied_filters=self.applied_filters + (entry,), **changes)

    # ------------------------------------------------------------------
    # Export views
    # ------------------------------------------------------------------

    def to_dataset(self) -> xr.Dataset:
        """Self-describing xarray view (amplitude + time/distance/position axes)."""
        coords = {
            "twt": ("twt", self.two_way_time, {"units": "ns", "long_name": "Two-way travel time"}),
            "trace": ("trace", np.arange(self.n_traces)),
            "time": ("trace", self.timestamps),
            "distance": ("trace", self.distances, {"units": "m", "long_name": "Along-track distance"}),
        }
        if self.positions is not None:
            coords["x"] = ("trace", self.positions[:, 0])
            coords["y"] = ("trace", self.positions[:, 1])
            coords["z"] = ("trace", self.positions[:, 2], {"units": "m"})

        meta = self.metadata
        attrs = {
            "instrument": meta.instrument,
            "source_file": meta.filepath,
            "antenna": meta.antenna,
            "antenna_separation_m": meta.antenna_separation,
            "stacking_count": meta.stacking_count,
            "sample_interval_s": self.sample_interval,
            "time_zero_s": self.time_zero,
            "processing": ",".join(f.describe() for f in self.applied_filters),
        }
        # NetCDF attributes cannot hold None
        if meta.antenna_mhz is not None:
            attrs["antenna_mhz"] = meta.antenna_mhz
        if self.crs is not None:
            attrs["crs"] = self.crs

        return xr.Dataset(
            {"amplitude": (("twt", "trace"), self.data)},
            coords=coords,
            attrs=attrs,
        )

    def track(self) -> pd.DataFrame:
        """Per-trace location track."""
        frame = pd.DataFrame({
            "trace": np.arange(self.n_traces),
            "time": pd.to_datetime(self.timestamps),
            "distance": self.distances,
        })
        if self.positions is not None:
            frame["x"] = self.positions[:, 0]
            frame["y"] = self.positions[:, 1]
            frame["z"] = self.positions[:, 2]
        return frame

    def summary(self) -> str:
        """Multi-line description used by info mode."""
        meta = self.metadata
        duration = (self.end_time - self.start_time) / np.timedelta64(1, "s")
        lines = [
            f"File:               {meta.filepath}",
            f"Instrument:         {meta.instrument}",
            f"Antenna:            {meta.antenna or 'unknown'}",
            f"Antenna MHz:        {meta.antenna_mhz if meta.antenna_mhz is not None else 'unknown'}",
            f"Antenna separation: {meta.antenna_separation:g} m",
            f"Stacks:             {meta.stacking_count}",
            f"Traces:             {self.n_traces}",
            f"Samples per trace:  {self.samples_per_trace}",
            f"Sample interval:    {self.sample_interval * 1e9:.4f} ns",
            f"Time window:        {self.samples_per_trace * self.sample_interval * 1e9:.2f} ns",
            f"Start time:         {pd.Timestamp(self.start_time).isoformat()}",
            f"End time:           {pd.Timestamp(self.end_time).isoformat()}",
            f"Duration:           {duration:.1f} s",
            f"Track length:       {self.distances[-1] - self.distances[0]:.2f} m",
            f"Geolocated:         {'yes (' + str(self.crs) + ')' if self.geolocated else 'no'}",
        ]
        if self.applied_filters:
            lines.append("Processing:         " + ", ".join(f.describe() for f in self.applied_filters))
        return "\n".join(lines)
