"""Decoder interface shared by the instrument formats.

Each instrument family is one :class:`FormatDecoder` subclass that declares
its header suffix, its data suffixes and, per data suffix, the on-disk sample
dtype (explicit byte order and width) together with the scale factor that
maps raw integers to amplitudes. The base class resolves the header/data
pair from either member, checks that the data block holds a whole number of
traces, and provides the timing and position helpers both formats need.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional, Tuple
import logging

import numpy as np
import pandas as pd

from gprpipe.core import (
    Radargram,
    InvalidHeader,
    TruncatedData,
    MissingTiming,
    UnsupportedFormatVariant,
)

__all__ = [
    "FormatDecoder",
    "SampleLayout",
    "synthesize_timestamps",
    "interpolate_timestamps",
    "interpolate_positions",
    "enforce_non_decreasing",
]

logger = logging.getLogger(__name__)


class SampleLayout:
    """On-disk sample encoding of one data suffix."""

    def __init__(self, dtype: str, scale: float):
        self.dtype = np.dtype(dtype)
        self.scale = scale

    def __repr__(self):
        return f"SampleLayout({self.dtype.str!r}, scale={self.scale:g})"


class FormatDecoder(ABC):
    """Base class of the instrument decoders.

    Subclasses set the class attributes below and implement :meth:`decode_pair`.

    Attributes
    ----------
    instrument : str
        Human readable instrument family name.
    header_suffix : str
        Lower-case suffix of the text header.
    layouts : dict
        Lower-case data suffix -> :class:`SampleLayout`.
    """

    instrument: str = ""
    header_suffix: str = ""
    layouts: Dict[str, SampleLayout] = {}

    def __init__(self, cor_path: Optional[str] = None,
                 override_antenna_mhz: Optional[float] = None):
        self.cor_path = Path(cor_path) if cor_path else None
        self.override_antenna_mhz = override_antenna_mhz

    @classmethod
    def suffixes(cls) -> Tuple[str, ...]:
        return (cls.header_suffix,) + tuple(cls.layouts)

    @classmethod
    def handles(cls, path) -> bool:
        return Path(path).suffix.lower() in cls.suffixes()

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    @staticmethod
    def _partner(path: Path, suffix: str) -> Optional[Path]:
        """Find ``path`` with ``suffix`` in lower or upper case."""
        for candidate in (path.with_suffix(suffix), path.with_suffix(suffix.upper())):
            if candidate.exists():
                return candidate
        return None

    def resolve_pair(self, path) -> Tuple[Path, Path, str]:
        """Return (header path, data path, data suffix) for either member of the pair."""
        path = Path(path)
        suffix = path.suffix.lower()
        if suffix not in self.suffixes():
            raise UnsupportedFormatVariant(
                f"Suffix '{path.suffix}' is not a {self.instrument} file", filepath=path)

        if suffix == self.header_suffix:
            header = path
            for data_suffix in self.layouts:
                data = self._partner(path, data_suffix)
                if data is not None:
                    break
            else:
                raise InvalidHeader(
                    f"No data file ({', '.join(self.layouts)}) next to header", filepath=path)
        else:
            data_suffix = suffix
            data = path
            header = self._partner(path, self.header_suffix)
            if header is None:
                raise InvalidHeader(f"Header file ({self.header_suffix}) not found", filepath=path)

        if not header.exists():
            raise InvalidHeader("Header file not found", filepath=header)
        if not data.exists():
            raise InvalidHeader("Data file not found", filepath=data)
        return header, data, data.suffix.lower()

    # ------------------------------------------------------------------
    # Decoding
    # ------------------------------------------------------------------

    def decode(self, path) -> Radargram:
        """Decode one acquisition.

        Raises
        ------
        FormatError
            Any of its subclasses, carrying the offending file.
        """
        header, data, data_suffix = self.resolve_pair(path)
        logger.debug("Decoding %s (%s) with header %s", data, self.instrument, header)
        return self.decode_pair(header, data, self.layouts[data_suffix])

    @abstractmethod
    def decode_pair(self, header_path: Path, data_path: Path,
                    layout: SampleLayout) -> Radargram:
        """Decode a resolved header/data pair."""

    def antenna_mhz(self, header_value: Optional[float]) -> Optional[float]:
        if self.override_antenna_mhz is not None:
            return float(self.override_antenna_mhz)
        return header_value

    # ------------------------------------------------------------------
    # Shared helpers
    # ------------------------------------------------------------------

    @staticmethod
    def read_text(path: Path) -> List[str]:
        try:
            return path.read_text(encoding="latin-1").splitlines()
        except OSError as exc:
            raise InvalidHeader(f"Cannot read header: {exc}", filepath=path) from exc

    @staticmethod
    def require_number(header: Dict[str, str], key: str, path: Path, kind=float):
        """Return a numeric header field or raise InvalidHeader."""
        if key not in header:
            raise InvalidHeader(f"Header field '{key}' is missing", filepath=path)
        try:
            number = float(header[key])
        except ValueError:
            raise InvalidHeader(f"Header field '{key}' is not numeric: {header[key]!r}",
                                filepath=path) from None
        if not np.isfinite(number):
            raise InvalidHeader(f"Header field '{key}' is not finite: {header[key]!r}",
                                filepath=path)
        value = kind(number)
        if value <= 0:
            raise InvalidHeader(f"Header field '{key}' must be positive, got {value}",
                                filepath=path)
        return value

    @staticmethod
    def optional_number(header: Dict[str, str], key: str, default=None, path=None):
        """Numeric header field, ``default`` when missing or unparsable.

        Raises InvalidHeader for NaN or infinite values.
        """
        try:
            value = float(header[key])
        except (KeyError, ValueError):
            return default
        if not np.isfinite(value):
            raise InvalidHeader(f"Header field '{key}' is not finite: {header[key]!r}",
                                filepath=path)
        return value

    @staticmethod
    def check_trace_count(n_bytes: int, trace_bytes: int, path: Path) -> int:
        """Number of whole traces in ``n_bytes`` or TruncatedData."""
        if n_bytes == 0:
            raise TruncatedData("Data file contains no traces", filepath=path)
        if n_bytes % trace_bytes != 0:
            raise TruncatedData(
                f"Data length {n_bytes} B is not a multiple of the trace length {trace_bytes} B",
                filepath=path)
        return n_bytes // trace_bytes

    @staticmethod
    def header_timing(header: Dict[str, str], n_traces: int,
                      path: Path) -> np.ndarray:
        """Synthesize trace times from ``START TIME`` and ``TIME INTERVAL``."""
        start = header.get("START TIME")
        interval = FormatDecoder.optional_number(header, "TIME INTERVAL", path=path)
        if not start or interval is None:
            raise MissingTiming(
                "No per-trace times and no START TIME / TIME INTERVAL in the header",
                filepath=path)
        try:
            start_time = pd.Timestamp(start)
        except ValueError:
            raise MissingTiming(f"Cannot parse START TIME {start!r}", filepath=path) from None
        if start_time.tzinfo is not None:
            start_time = start_time.tz_convert("UTC").tz_localize(None)
        return synthesize_timestamps(start_time, interval, n_traces)


def synthesize_timestamps(start, interval_s: float, n_traces: int) -> np.ndarray:
    """Evenly spaced trace times starting at ``start``."""
    start = np.datetime64(pd.Timestamp(start).to_datetime64(), "ns")
    offsets = np.round(np.arange(n_traces) * interval_s * 1e9).astype("timedelta64[ns]")
    return start + offsets


def interpolate_timestamps(indices: np.ndarray, times: np.ndarray, n_traces: int) -> np.ndarray:
    """Linearly interpolate sparse trace times to every trace index.

    Times are interpolated as float offsets from the first known time; traces
    outside the known range take the nearest known time.
    """
    order = np.argsort(indices, kind="stable")
    indices = np.asarray(indices, dtype=float)[order]
    times = np.asarray(times).astype("datetime64[ns]")[order]
    indices, unique = np.unique(indices, return_index=True)
    times = times[unique]
    origin = times[0]
    offsets = (times - origin) / np.timedelta64(1, "ns")
    filled = np.interp(np.arange(n_traces, dtype=float), indices, offsets)
    return origin + np.round(filled).astype("timedelta64[ns]")


def interpolate_positions(indices: np.ndarray, coords: np.ndarray, n_traces: int) -> np.ndarray:
    """Linearly interpolate sparse (k, 3) coordinates to every trace index."""
    order = np.argsort(indices, kind="stable")
    indices = np.asarray(indices, dtype=float)[order]
    coords = np.asarray(coords, dtype=float)[order]
    indices, unique = np.unique(indices, return_index=True)
    coords = coords[unique]
    target = np.arange(n_traces, dtype=float)
    out = np.empty((n_traces, 3), dtype=float)
    for axis in range(3):
        column = coords[:, axis]
        valid = np.isfinite(column)
        if valid.any():
            out[:, axis] = np.interp(target, indices[valid], column[valid])
        else:
            out[:, axis] = np.nan
    return out


def enforce_non_decreasing(timestamps: np.ndarray, filepath=None) -> np.ndarray:
    """Clamp backwards time steps (clock jitter) so trace times never decrease."""
    ns = timestamps.astype("datetime64[ns]").astype(np.int64)
    clamped = np.maximum.accumulate(ns)
    n_fixed = int(np.count_nonzero(clamped != ns))
    if n_fixed:
        logger.warning("%s: %d trace time(s) went backwards and were clamped",
                       filepath or "radargram", n_fixed)
    return clamped.astype("datetime64[ns]")
