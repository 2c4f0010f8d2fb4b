"""CSV export of the per-trace location track."""

from pathlib import Path
from typing import Union
import logging

from gprpipe.core import Radargram

__all__ = ["write_track"]

logger = logging.getLogger(__name__)


def write_track(rg: Radargram, path: Union[str, Path]) -> Path:
    """Write trace number, time, distance and (if geolocated) x, y, z as CSV."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    frame = rg.track()
    if not rg.geolocated:
        logger.warning("%s is not geolocated, track holds time and distance only", rg.source)
    frame.to_csv(path, index=False, date_format="%Y-%m-%dT%H:%M:%S.%f")
    logger.info("Saved track: %s", path)
    return path
