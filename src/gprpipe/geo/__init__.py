"""Reprojection and DEM height sampling."""

from gprpipe.geo.dem import DemSource
from gprpipe.geo.locator import GeoLocator, utm_crs_for, along_track_distances

__all__ = ["DemSource", "GeoLocator", "utm_crs_for", "along_track_distances"]
