"""Digital elevation model sampling.

The DEM band is read into memory once when the source is opened and is
never written to, so one :class:`DemSource` can be shared by all worker
threads.
"""

from pathlib import Path
from typing import Optional, Union
import logging

import numpy as np
import rasterio as rio
from rasterio.transform import Affine
from pyproj import CRS, Transformer
from pyproj.exceptions import CRSError

from gprpipe.core import GeoError, UnsupportedCrs

__all__ = ["DemSource"]

logger = logging.getLogger(__name__)


class DemSource:
    """Read-only raster of surface heights.

    Parameters
    ----------
    heights : np.ndarray
        (rows, cols) height grid. Non-finite cells are treated as nodata.
    transform : Affine
        Pixel-to-world affine transform of the grid.
    crs : str or CRS
        Coordinate reference system of the grid.
    nodata : float, optional
        Value marking cells without data.
    """

    def __init__(self, heights: np.ndarray, transform: Affine, crs,
                 nodata: Optional[float] = None, name: str = "<memory>"):
        heights = np.asarray(heights, dtype=np.float64).copy()
        if nodata is not None:
            heights[heights == nodata] = np.nan
        heights.setflags(write=False)
        self.heights = heights
        self.transform = transform
        try:
            self.crs = CRS.from_user_input(crs)
        except CRSError as exc:
            raise UnsupportedCrs(f"DEM CRS cannot be resolved: {exc}", filepath=name) from exc
        self.name = name

    @classmethod
    def open(cls, path: Union[str, Path]) -> "DemSource":
        """Load band 1 of a raster file."""
        try:
            with rio.open(path, "r") as src:
                heights = src.read(1)
                if src.crs is None:
                    raise UnsupportedCrs("DEM has no CRS", filepath=path)
                dem = cls(heights, src.transform, src.crs.to_wkt(), nodata=src.nodata,
                          name=str(path))
        except rio.errors.RasterioIOError as exc:
            raise GeoError(f"Cannot open DEM: {exc}", filepath=path) from exc
        logger.info("Loaded DEM %s (%d x %d, %s)", path, heights.shape[1], heights.shape[0],
                    dem.crs.to_string())
        return dem

    def sample(self, x: np.ndarray, y: np.ndarray, crs=None) -> np.ndarray:
        """Nearest-cell heights at the given points.

        Points are reprojected into the DEM CRS first when ``crs`` differs.
        Points outside the grid or on nodata cells yield NaN.
        """
        x = np.asarray(x, dtype=float)
        y = np.asarray(y, dtype=float)
        if crs is not None:
            src = CRS.from_user_input(crs)
            if src != self.crs:
                transformer = Transformer.from_crs(src, self.crs, always_xy=True)
                x, y = transformer.transform(x, y)
                x = np.asarray(x, dtype=float)
                y = np.asarray(y, dtype=float)

        cols, rows = ~self.transform * (x, y)
        rows = np.floor(np.asarray(rows, dtype=float))
        cols = np.floor(np.asarray(cols, dtype=float))
        n_rows, n_cols = self.heights.shape
        inside = (np.isfinite(rows) & np.isfinite(cols)
                  & (rows >= 0) & (rows < n_rows) & (cols >= 0) & (cols < n_cols))

        out = np.full(x.shape, np.nan)
        out[inside] = self.heights[rows[inside].astype(int), cols[inside].astype(int)]
        return out
