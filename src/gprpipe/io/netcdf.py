"""NetCDF export of processed radargrams."""

from pathlib import Path
from typing import Union
import logging

import xarray as xr

from gprpipe.core import Radargram

__all__ = ["write_netcdf", "read_netcdf"]

logger = logging.getLogger(__name__)


def write_netcdf(rg: Radargram, path: Union[str, Path], compression_level: int = 4) -> Path:
    """Write a radargram as a compressed NetCDF file.

    The amplitude matrix is stored as ``amplitude(twt, trace)`` with per-trace
    time, distance and (when geolocated) x/y/z coordinates. Processing
    provenance is stored in the ``processing`` attribute.

    Parameters
    ----------
    rg : Radargram
        Radargram to write.
    path : str or Path
        Target file; parent directories are created.
    compression_level : int
        zlib level 0-9; 0 disables compression.

    Returns
    -------
    Path
        The written file.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    ds = rg.to_dataset()
    if compression_level > 0:
        encoding = {var: {"zlib": True, "complevel": compression_level} for var in ds.data_vars}
    else:
        encoding = {}
    ds.to_netcdf(path, encoding=encoding, compute=True)
    logger.info("Saved NetCDF: %s", path)
    return path


def read_netcdf(path: Union[str, Path]) -> xr.Dataset:
    """Load an exported radargram into memory."""
    with xr.open_dataset(path) as ds:
        return ds.load()
