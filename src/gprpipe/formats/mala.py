"""Malå Geoscience RAMAC / GroundExplorer decoder.

An acquisition is a ``.rad`` text header of ``KEY:VALUE`` lines next to a
``.rd3`` (16-bit) or ``.rd7`` (32-bit) little-endian binary block of
trace-major samples. An optional ``.cor`` file holds GNSS fixes for a subset
of traces, one tab separated row per fix::

    <trace> <date> <time> <lat> <N|S> <lon> <E|W> <elevation> <unit> [quality]

Trace numbers in ``.cor`` files are 1-based.
"""

from pathlib import Path
from typing import Dict, Optional
import logging
import re

import numpy as np
import pandas as pd

from gprpipe.core import Radargram, SurveyMetadata, InvalidHeader
from gprpipe.formats.base import (
    FormatDecoder,
    SampleLayout,
    interpolate_positions,
    interpolate_timestamps,
    enforce_non_decreasing,
)

__all__ = ["MalaDecoder", "parse_rad_header", "read_cor"]

logger = logging.getLogger(__name__)

COR_COLUMNS = ["trace", "date", "time", "lat", "ns", "lon", "ew", "elevation", "unit", "quality"]

_LEADING_NUMBER = re.compile(r"^\s*([0-9]+(?:\.[0-9]*)?)")


def parse_rad_header(lines) -> Dict[str, str]:
    """Parse ``KEY:VALUE`` lines. Keys are upper-cased; blank lines are skipped."""
    header = {}
    for line in lines:
        if ":" not in line:
            continue
        key, value = line.split(":", 1)
        header[key.strip().upper()] = value.strip()
    return header


def read_cor(path: Path) -> pd.DataFrame:
    """Read a ``.cor`` positions file.

    Returns
    -------
    pd.DataFrame
        Columns ``index`` (0-based trace), ``time`` (datetime64), ``x`` (lon),
        ``y`` (lat), ``z`` (elevation), sorted by trace.

    Raises
    ------
    InvalidHeader
        If the file cannot be parsed.
    """
    try:
        frame = pd.read_csv(path, sep=r"\s+", header=None, names=COR_COLUMNS,
                            engine="python", dtype=str)
    except (OSError, ValueError, pd.errors.ParserError) as exc:
        raise InvalidHeader(f"Cannot parse positions file: {exc}", filepath=path) from exc
    if frame.empty:
        raise InvalidHeader("Positions file is empty", filepath=path)

    try:
        trace = frame["trace"].astype(int).to_numpy()
        lat = frame["lat"].astype(float).to_numpy()
        lon = frame["lon"].astype(float).to_numpy()
        elevation = pd.to_numeric(frame["elevation"], errors="coerce").to_numpy(dtype=float)
        times = pd.to_datetime(frame["date"] + " " + frame["time"]).to_numpy()
    except (ValueError, TypeError) as exc:
        raise InvalidHeader(f"Malformed row in positions file: {exc}", filepath=path) from exc

    lat = np.where(frame["ns"].str.upper() == "S", -lat, lat)
    lon = np.where(frame["ew"].str.upper() == "W", -lon, lon)
    return pd.DataFrame({
        "index": trace - 1,
        "time": times,
        "x": lon,
        "y": lat,
        "z": elevation,
    }).sort_values("index", kind="stable").reset_index(drop=True)


class MalaDecoder(FormatDecoder):
    """Decoder for Malå ``.rad`` + ``.rd3`` / ``.rd7`` files."""

    instrument = "Malå"
    header_suffix = ".rad"
    layouts = {
        ".rd3": SampleLayout("<i2", 1.0 / 2 ** 15),
        ".rd7": SampleLayout("<i4", 1.0 / 2 ** 31),
    }

    def find_cor(self, header_path: Path) -> Optional[Path]:
        if self.cor_path is not None:
            if not self.cor_path.exists():
                raise InvalidHeader("Positions file not found", filepath=self.cor_path)
            return self.cor_path
        return self._partner(header_path, ".cor")

    def decode_pair(self, header_path: Path, data_path: Path,
                    layout: SampleLayout) -> Radargram:
        header = parse_rad_header(self.read_text(header_path))
        samples = self.require_number(header, "SAMPLES", header_path, kind=int)
        frequency = self.require_number(header, "FREQUENCY", header_path)
        sample_interval = 1.0 / (frequency * 1e6)

        n_bytes = data_path.stat().st_size
        n_traces = self.check_trace_count(n_bytes, samples * layout.dtype.itemsize, data_path)
        raw = np.fromfile(data_path, dtype=layout.dtype, count=n_traces * samples)
        data = raw.reshape(n_traces, samples).T.astype(np.float32) * np.float32(layout.scale)

        positions = None
        crs = None
        cor_path = self.find_cor(header_path)
        if cor_path is not None:
            cor = read_cor(cor_path)
            in_range = cor["index"].between(0, n_traces - 1)
            if not in_range.all():
                logger.warning("%s: %d fix(es) refer to traces outside 1..%d and were ignored",
                               cor_path, int((~in_range).sum()), n_traces)
                cor = cor[in_range]
            if cor.empty:
                raise InvalidHeader("No usable fixes in positions file", filepath=cor_path)
            timestamps = interpolate_timestamps(cor["index"].to_numpy(), cor["time"].to_numpy(),
                                                n_traces)
            positions = interpolate_positions(cor["index"].to_numpy(),
                                              cor[["x", "y", "z"]].to_numpy(), n_traces)
            crs = "EPSG:4326"
            logger.debug("Loaded %d fixes from %s", len(cor), cor_path)
        else:
            timestamps = self.header_timing(header, n_traces, header_path)

        distance_interval = self.optional_number(header, "DISTANCE INTERVAL", 0.0, path=header_path)
        trace_index = np.arange(n_traces, dtype=float)
        distances = trace_index * distance_interval if distance_interval > 0 else trace_index

        antenna = header.get("ANTENNAS", "")
        match = _LEADING_NUMBER.match(antenna)
        metadata = SurveyMetadata(
            instrument=self.instrument,
            filepath=str(header_path),
            antenna=antenna,
            antenna_mhz=self.antenna_mhz(float(match.group(1)) if match else None),
            antenna_separation=self.optional_number(header, "ANTENNA SEPARATION", 0.0,
                                                   path=header_path),
            stacking_count=int(self.optional_number(header, "STACKS", 1, path=header_path)),
            header=header,
        )
        return Radargram(
            data=data,
            sample_interval=sample_interval,
            timestamps=enforce_non_decreasing(timestamps, header_path),
            distances=distances,
            metadata=metadata,
            positions=positions,
            crs=crs,
        )
