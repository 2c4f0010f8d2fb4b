"""Sensors & Software pulseEKKO decoder.

An acquisition is a ``.HD`` text header next to a ``.DT1`` binary file and an
optional ``.GPS`` file. The header starts with the ``1234`` format marker,
followed by free text (title, survey date) and ``KEY = VALUE`` lines.

Every DT1 trace is a 128-byte header of 32 little-endian float32 words
followed by the samples. Word indices used here (0-based):

====  ===============================
1     position along the line (m)
5     bytes per sample point (2 or 4)
23    time of day, seconds past midnight
====  ===============================
"""

from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Tuple
import logging
import re

import numpy as np
import pandas as pd

from gprpipe.core import (
    Radargram,
    SurveyMetadata,
    InvalidHeader,
    UnsupportedFormatVariant,
    MissingTiming,
    TruncatedData,
)
from gprpipe.formats.base import (
    FormatDecoder,
    SampleLayout,
    interpolate_positions,
    enforce_non_decreasing,
)

__all__ = ["PulseEkkoDecoder", "parse_hd_header", "read_gps"]

logger = logging.getLogger(__name__)

FORMAT_MARKER = "1234"
TRACE_HEADER_WORDS = 32
TRACE_HEADER_BYTES = TRACE_HEADER_WORDS * 4
POSITION_WORD = 1
BYTES_PER_POINT_WORD = 5
TIME_OF_DAY_WORD = 23

DATE_FORMATS = ("%Y-%b-%d", "%d/%m/%Y", "%Y-%m-%d")

SAMPLE_WIDTHS = {
    2: SampleLayout("<i2", 1.0 / 2 ** 15),
    4: SampleLayout("<i4", 1.0 / 2 ** 31),
}

_TRACE_LINE = re.compile(r"Trace\s*#\s*(\d+)", re.IGNORECASE)


def _parse_date(text: str) -> Optional[datetime]:
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text.strip(), fmt)
        except ValueError:
            continue
    return None


def parse_hd_header(lines: List[str], path: Path) -> Tuple[Dict[str, str], Optional[datetime]]:
    """Parse an HD header into fields and the survey date.

    Raises
    ------
    InvalidHeader
        If the first non-empty line is not the format marker.
    """
    content = [line.strip() for line in lines if line.strip()]
    if not content or content[0] != FORMAT_MARKER:
        found = content[0] if content else "<empty>"
        raise InvalidHeader(f"Unrecognized format marker {found!r}, expected {FORMAT_MARKER}",
                            filepath=path)

    header = {}
    survey_date = None
    for line in content[1:]:
        if "=" in line:
            key, value = line.split("=", 1)
            header[key.strip().upper()] = value.strip()
        elif survey_date is None:
            survey_date = _parse_date(line)
    return header, survey_date


def _nmea_degrees(value: str, hemisphere: str) -> float:
    """Convert NMEA ``(d)ddmm.mmmm`` to signed decimal degrees."""
    raw = float(value)
    degrees = int(raw // 100)
    decimal = degrees + (raw - degrees * 100) / 60.0
    return -decimal if hemisphere.upper() in ("S", "W") else decimal


def read_gps(path: Path) -> pd.DataFrame:
    """Read a ``.GPS`` file of ``Trace #N at position P`` + ``$GPGGA`` pairs.

    Returns
    -------
    pd.DataFrame
        Columns ``index`` (0-based trace), ``x`` (lon), ``y`` (lat), ``z`` (altitude).
    """
    rows = []
    current = None
    try:
        lines = path.read_text(encoding="latin-1").splitlines()
    except OSError as exc:
        raise InvalidHeader(f"Cannot read GPS file: {exc}", filepath=path) from exc

    for line in lines:
        match = _TRACE_LINE.search(line)
        if match:
            current = int(match.group(1))
            continue
        if current is None or "GGA" not in line:
            continue
        fields = line.strip().split(",")
        try:
            lat = _nmea_degrees(fields[2], fields[3])
            lon = _nmea_degrees(fields[4], fields[5])
            alt = float(fields[9]) if fields[9] else np.nan
        except (IndexError, ValueError):
            logger.warning("%s: skipping malformed GGA sentence for trace %d", path, current)
            current = None
            continue
        rows.append((current - 1, lon, lat, alt))
        current = None

    return pd.DataFrame(rows, columns=["index", "x", "y", "z"])


class PulseEkkoDecoder(FormatDecoder):
    """Decoder for pulseEKKO ``.HD`` + ``.DT1`` files."""

    instrument = "pulseEKKO"
    header_suffix = ".hd"
    # The sample width is read from the trace headers; this entry only routes the suffix.
    layouts = {".dt1": SAMPLE_WIDTHS[2]}

    def decode_pair(self, header_path: Path, data_path: Path,
                    layout: SampleLayout) -> Radargram:
        header, survey_date = parse_hd_header(self.read_text(header_path), header_path)
        samples = self.require_number(header, "NUMBER OF PTS/TRC", header_path, kind=int)
        window_ns = self.require_number(header, "TOTAL TIME WINDOW", header_path)
        sample_interval = window_ns * 1e-9 / samples

        layout = self._sample_layout(data_path)
        trace_bytes = TRACE_HEADER_BYTES + samples * layout.dtype.itemsize
        n_traces = self.check_trace_count(data_path.stat().st_size, trace_bytes, data_path)

        record = np.dtype([
            ("header", "<f4", (TRACE_HEADER_WORDS,)),
            ("samples", layout.dtype, (samples,)),
        ])
        traces = np.fromfile(data_path, dtype=record, count=n_traces)
        words = traces["header"]
        data = traces["samples"].T.astype(np.float32) * np.float32(layout.scale)

        timestamps = self._timestamps(words[:, TIME_OF_DAY_WORD], survey_date, header,
                                      n_traces, header_path)

        positions = None
        crs = None
        gps_path = self._partner(header_path, ".gps")
        if gps_path is not None:
            gps = read_gps(gps_path)
            gps = gps[gps["index"].between(0, n_traces - 1)]
            if gps.empty:
                logger.warning("%s: no usable fixes, radargram stays ungeolocated", gps_path)
            else:
                positions = interpolate_positions(gps["index"].to_numpy(),
                                                  gps[["x", "y", "z"]].to_numpy(), n_traces)
                crs = "EPSG:4326"
                logger.debug("Loaded %d fixes from %s", len(gps), gps_path)

        timezero_point = self.optional_number(header, "TIMEZERO AT POINT", 0.0, path=header_path)
        metadata = SurveyMetadata(
            instrument=self.instrument,
            filepath=str(header_path),
            antenna=header.get("NOMINAL FREQUENCY", ""),
            antenna_mhz=self.antenna_mhz(
                self.optional_number(header, "NOMINAL FREQUENCY", path=header_path)),
            antenna_separation=self.optional_number(header, "ANTENNA SEPARATION", 0.0,
                                                   path=header_path),
            stacking_count=int(self.optional_number(header, "NUMBER OF STACKS", 1,
                                                       path=header_path)),
            header=header,
        )
        return Radargram(
            data=data,
            sample_interval=sample_interval,
            timestamps=enforce_non_decreasing(timestamps, header_path),
            distances=words[:, POSITION_WORD].astype(float),
            metadata=metadata,
            positions=positions,
            crs=crs,
            time_zero=-timezero_point * sample_interval,
        )

    @staticmethod
    def _sample_layout(data_path: Path) -> SampleLayout:
        first = np.fromfile(data_path, dtype="<f4", count=TRACE_HEADER_WORDS)
        if first.size < TRACE_HEADER_WORDS:
            raise TruncatedData("Data file is shorter than one trace header", filepath=data_path)
        word = float(first[BYTES_PER_POINT_WORD])
        if not np.isfinite(word):
            raise UnsupportedFormatVariant(
                f"Unreadable sample width word {word}", filepath=data_path)
        width = int(round(word))
        if width not in SAMPLE_WIDTHS:
            raise UnsupportedFormatVariant(
                f"Unsupported sample width of {width} bytes per point", filepath=data_path)
        return SAMPLE_WIDTHS[width]

    def _timestamps(self, seconds: np.ndarray, survey_date: Optional[datetime],
                    header: Dict[str, str], n_traces: int, path: Path) -> np.ndarray:
        seconds = seconds.astype(float)
        if survey_date is None or not np.any(seconds):
            try:
                return self.header_timing(header, n_traces, path)
            except MissingTiming:
                reason = "no survey date" if survey_date is None else "all trace times are zero"
                raise MissingTiming(
                    f"Cannot derive trace times ({reason}) and no START TIME / TIME INTERVAL",
                    filepath=path) from None

        # A drop of more than half a day is a pass through midnight
        rollover = np.concatenate([[0], np.cumsum(np.diff(seconds) < -43200.0)])
        total = seconds + rollover * 86400.0
        origin = np.datetime64(survey_date, "ns")
        return origin + np.round(total * 1e9).astype("timedelta64[ns]")
