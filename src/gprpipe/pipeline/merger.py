"""Time-windowed merging of sequential acquisitions.

Acquisitions recorded one after the other (a survey line split over several
files) are concatenated along the trace axis when the gap between the end of
one and the start of the next does not exceed a threshold. Grouping is a
pure function of the time intervals; merging checks that the members share
their vertical geometry and coordinate system.
"""

from dataclasses import dataclass, field
from datetime import timedelta
from typing import List, Optional, Sequence, Tuple
import logging

import numpy as np
import pandas as pd
from pyproj import CRS

from gprpipe.core import Radargram, MergeError, IncompatibleGeometry
from gprpipe.contracts import assert_radargram, assert_start_ordered
from gprpipe.geo.locator import along_track_distances

__all__ = ["MergeOutcome", "group_by_gap", "merge_group", "merge_radargrams"]

logger = logging.getLogger(__name__)


@dataclass
class MergeOutcome:
    """Result of merging one group.

    Attributes
    ----------
    members : list of int
        Positions of the group's radargrams in the merge input.
    radargram : Radargram or None
        The merged radargram, None if the group failed.
    error : MergeError or None
        Why the group failed.
    """

    members: List[int] = field(default_factory=list)
    radargram: Optional[Radargram] = None
    error: Optional[MergeError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def group_by_gap(intervals: Sequence[Tuple], threshold: timedelta) -> List[List[int]]:
    """Partition time-ordered intervals into runs with small gaps.

    Parameters
    ----------
    intervals : sequence of (start, end)
        Acquisition time spans ordered by start. Anything pandas can turn
        into a Timestamp is accepted.
    threshold : timedelta
        Largest gap (start of next minus end of previous) that still joins
        two intervals. A gap equal to the threshold joins.

    Returns
    -------
    list of list of int
        Groups of indices into ``intervals``, in order. Every index appears
        exactly once.

    Examples
    --------
    >>> t = pd.Timestamp("2024-01-01 12:00")
    >>> m = pd.Timedelta("1 min")
    >>> group_by_gap([(t, t + m), (t + 3 * m, t + 4 * m), (t + 30 * m, t + 31 * m)],
    ...              timedelta(minutes=5))
    [[0, 1], [2]]
    """
    limit = pd.Timedelta(threshold)
    groups: List[List[int]] = []
    previous_end = None
    for index, (start, end) in enumerate(intervals):
        start, end = pd.Timestamp(start), pd.Timestamp(end)
        if groups and start - previous_end <= limit:
            groups[-1].append(index)
        else:
            groups.append([index])
        previous_end = end if previous_end is None else max(previous_end, end)
    return groups


def _check_compatible(radargrams: Sequence[Radargram]) -> None:
    first = radargrams[0]
    for other in radargrams[1:]:
        if other.samples_per_trace != first.samples_per_trace:
            raise IncompatibleGeometry(
                f"{other.source} has {other.samples_per_trace} samples per trace, "
                f"{first.source} has {first.samples_per_trace}", filepath=first.source)
        if not np.isclose(other.sample_interval, first.sample_interval, rtol=1e-9, atol=0.0):
            raise IncompatibleGeometry(
                f"{other.source} samples every {other.sample_interval * 1e9:g} ns, "
                f"{first.source} every {first.sample_interval * 1e9:g} ns", filepath=first.source)
        if other.geolocated != first.geolocated:
            raise IncompatibleGeometry(
                "cannot merge geolocated and ungeolocated radargrams", filepath=first.source)
        if first.geolocated and CRS.from_user_input(other.crs) != CRS.from_user_input(first.crs):
            raise IncompatibleGeometry(
                f"{other.source} is in {other.crs}, {first.source} in {first.crs}",
                filepath=first.source)


def _concatenated_distances(radargrams: Sequence[Radargram]) -> np.ndarray:
    """Continue each member's distances where the previous one ended."""
    parts = []
    offset = 0.0
    for rg in radargrams:
        local = rg.distances - rg.distances[0]
        parts.append(local + offset)
        spacing = np.median(np.diff(local)) if rg.n_traces > 1 else 0.0
        offset = parts[-1][-1] + spacing
    return np.concatenate(parts)


def merge_group(radargrams: Sequence[Radargram]) -> Radargram:
    """Concatenate a start-ordered group along the trace axis.

    A single member is returned unchanged. Metadata and the filter log of
    the first member are kept.

    Raises
    ------
    IncompatibleGeometry
        If trace length, sample interval, geolocation state or CRS differ.
    MergeError
        If members overlap in time.
    """
    if len(radargrams) == 1:
        return radargrams[0]

    _check_compatible(radargrams)
    first = radargrams[0]
    for previous, current in zip(radargrams[:-1], radargrams[1:]):
        if current.start_time < previous.end_time:
            raise MergeError(f"{current.source} starts before {previous.source} ends",
                             filepath=first.source)
        if current.time_zero != first.time_zero:
            logger.warning("Merging %s with a different time zero (%.3f ns vs %.3f ns); "
                           "keeping the first", current.source, current.time_zero * 1e9,
                           first.time_zero * 1e9)
        if current.filter_names != first.filter_names:
            logger.warning("Merging %s processed with %s into a group processed with %s",
                           current.source, current.filter_names, first.filter_names)

    positions = None
    if first.geolocated:
        positions = np.concatenate([rg.positions for rg in radargrams])
        distances = along_track_distances(positions, CRS.from_user_input(first.crs))
    else:
        distances = _concatenated_distances(radargrams)

    merged = first.replace(
        data=np.concatenate([rg.data for rg in radargrams], axis=1),
        timestamps=np.concatenate([rg.timestamps for rg in radargrams]),
        distances=distances,
        positions=positions,
    )
    assert_radargram(merged, stage="merge")
    logger.info("Merged %d acquisitions starting with %s: %d traces", len(radargrams),
                first.source, merged.n_traces)
    return merged


def merge_radargrams(radargrams: Sequence[Radargram], threshold: timedelta) -> List[MergeOutcome]:
    """Group start-ordered radargrams by gap and merge every group.

    A failing group is reported on its outcome and does not affect the
    other groups. Outcomes are in input order.
    """
    assert_start_ordered(radargrams)
    groups = group_by_gap([(rg.start_time, rg.end_time) for rg in radargrams], threshold)
    outcomes = []
    for members in groups:
        try:
            merged = merge_group([radargrams[i] for i in members])
            outcomes.append(MergeOutcome(members=members, radargram=merged))
        except MergeError as exc:
            logger.error("Merge of %s failed: %s",
                         ", ".join(radargrams[i].source for i in members), exc)
            outcomes.append(MergeOutcome(members=members, error=exc))
    return outcomes
