"""Export of processed radargrams (NetCDF, location track CSV)."""

from gprpipe.io.netcdf import write_netcdf, read_netcdf
from gprpipe.io.track import write_track
from gprpipe.io.targets import OutputTargets, resolve_targets

__all__ = ["write_netcdf", "read_netcdf", "write_track", "OutputTargets", "resolve_targets"]
