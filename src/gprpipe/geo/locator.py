"""Geolocation of radargram traces.

Reprojects trace positions to a target CRS, optionally replaces elevations
with DEM heights, and recomputes along-track distances from the projected
positions. A ``pyproj.Transformer`` is created per call because transformer
objects are not safe to share between threads.
"""

from typing import List, Optional, Tuple
import logging

import numpy as np
from pyproj import CRS, Transformer
from pyproj.exceptions import CRSError

from gprpipe.core import Radargram, GeoError, UnsupportedCrs, OutOfBounds
from gprpipe.contracts import assert_radargram
from gprpipe.geo.dem import DemSource

__all__ = ["GeoLocator", "utm_crs_for", "along_track_distances"]

logger = logging.getLogger(__name__)


def _to_crs(value, filepath=None) -> CRS:
    try:
        return CRS.from_user_input(value)
    except CRSError as exc:
        raise UnsupportedCrs(f"Cannot resolve CRS {value!r}: {exc}", filepath=filepath) from exc


def utm_crs_for(lon: float, lat: float) -> CRS:
    """WGS84 / UTM zone containing a geographic point (EPSG:326xx north, 327xx south)."""
    zone = int((lon + 180.0) // 6.0) % 60 + 1
    return CRS.from_epsg((32600 if lat >= 0 else 32700) + zone)


def along_track_distances(positions: np.ndarray, crs: CRS) -> np.ndarray:
    """Cumulative horizontal distance in metres, starting at 0."""
    if len(positions) < 2:
        return np.zeros(len(positions))
    x, y = positions[:, 0], positions[:, 1]
    if crs.is_geographic:
        geod = crs.get_geod()
        _, _, steps = geod.inv(x[:-1], y[:-1], x[1:], y[1:])
        steps = np.abs(np.asarray(steps, dtype=float))
    else:
        steps = np.hypot(np.diff(x), np.diff(y))
    return np.concatenate([[0.0], np.cumsum(steps)])


class GeoLocator:
    """Attach and reproject trace positions.

    Parameters
    ----------
    target_crs : str, optional
        Target CRS in any form pyproj accepts. None selects the UTM zone of
        the first trace.
    dem : DemSource, optional
        Height source; shared read-only between threads.

    Examples
    --------
    >>> locator = GeoLocator("EPSG:32633")
    >>> located, misses = locator.locate_with_report(radargram)
    """

    def __init__(self, target_crs: Optional[str] = None, dem: Optional[DemSource] = None):
        # Fail early on a bad target rather than once per file
        self.target_crs = _to_crs(target_crs) if target_crs is not None else None
        self.dem = dem

    def target_for(self, rg: Radargram, source: CRS) -> CRS:
        if self.target_crs is not None:
            return self.target_crs
        first = rg.positions[0]
        if source.is_geographic:
            lon, lat = first[0], first[1]
        else:
            to_geo = Transformer.from_crs(source, CRS.from_epsg(4326), always_xy=True)
            lon, lat = to_geo.transform(first[0], first[1])
        return utm_crs_for(lon, lat)

    def locate_with_report(self, rg: Radargram) -> Tuple[Radargram, List[OutOfBounds]]:
        """Geolocate a radargram and report traces outside the DEM.

        Returns
        -------
        (Radargram, list of OutOfBounds)
            The located radargram and one error per trace that kept its prior
            elevation because the DEM does not cover it.

        Raises
        ------
        UnsupportedCrs
            If the source or target CRS cannot be resolved.
        GeoError
            If reprojection yields non-finite coordinates.
        """
        if not rg.geolocated:
            logger.info("%s has no positions, left ungeolocated", rg.source)
            return rg, []

        source = _to_crs(rg.crs, rg.source)
        target = self.target_for(rg, source)
        positions = rg.positions.copy()

        if source == target:
            logger.debug("%s already in %s, no reprojection", rg.source, target.to_string())
        else:
            transformer = Transformer.from_crs(source, target, always_xy=True)
            x, y = transformer.transform(positions[:, 0], positions[:, 1])
            positions[:, 0] = x
            positions[:, 1] = y
            if not np.isfinite(positions[:, :2]).all():
                raise GeoError(
                    f"Reprojection to {target.to_string()} produced non-finite coordinates",
                    filepath=rg.source)

        misses: List[OutOfBounds] = []
        if self.dem is not None:
            heights = self.dem.sample(positions[:, 0], positions[:, 1], target)
            covered = np.isfinite(heights)
            positions[covered, 2] = heights[covered]
            for idx in np.flatnonzero(~covered):
                misses.append(OutOfBounds(f"Trace {idx} outside DEM coverage", int(idx),
                                          filepath=rg.source))
            if misses:
                logger.warning("%s: %d of %d traces outside DEM %s, prior elevation kept",
                               rg.source, len(misses), rg.n_traces, self.dem.name)

        located = rg.replace(
            positions=positions,
            crs=target.to_string(),
            distances=along_track_distances(positions, target),
        )
        assert_radargram(located, stage="geolocate")
        return located, misses

    def locate(self, rg: Radargram) -> Radargram:
        """Geolocate a radargram; DEM misses are logged, not raised."""
        located, _ = self.locate_with_report(rg)
        return located
