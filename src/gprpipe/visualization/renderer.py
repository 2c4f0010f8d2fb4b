"""Radargram image rendering.

Renders the amplitude matrix as a grey-scale section with two-way time on
the left axis, depth on the right axis and distance along the bottom.
"""

import logging
from pathlib import Path
from typing import Tuple

import numpy as np
import pandas as pd
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt

from gprpipe.core import Radargram

__all__ = ['RadargramRenderer']

logger = logging.getLogger(__name__)

_FORMATS = {"jpg": "jpeg", "png": "png"}


class RadargramRenderer:
    """Renders radargrams to image files.

    The colour scale is symmetric around zero and clipped at the
    ``clip_percentile`` / ``100 - clip_percentile`` percentiles of the data,
    so a few strong direct-wave samples do not wash out the section.

    Example usage::

        renderer = RadargramRenderer(config.render, velocity=0.168)
        renderer.render(radargram, Path("line01.jpg"))
    """

    def __init__(self, render_config, velocity: float = 0.168):
        """Initialize renderer.

        Parameters
        ----------
        render_config : InternalRenderConfig
            dpi, colour map, clip percentile and output format.
        velocity : float
            Medium velocity (m/ns) for the depth axis.
        """
        self.dpi = render_config.dpi
        self.cmap = render_config.cmap
        self.clip_percentile = render_config.clip_percentile
        self.output_format = render_config.output_format
        self.velocity = velocity

    def _color_limits(self, data: np.ndarray) -> Tuple[float, float]:
        finite = data[np.isfinite(data)]
        if finite.size == 0:
            return -1.0, 1.0
        low, high = np.percentile(finite, [self.clip_percentile, 100 - self.clip_percentile])
        limit = max(abs(low), abs(high))
        if limit == 0:
            limit = 1.0
        if low >= 0:
            # Envelope or log data has no negative half
            return 0.0, float(high) or 1.0
        return -float(limit), float(limit)

    def _figure_size(self, rg: Radargram) -> Tuple[float, float]:
        width = float(np.clip(rg.n_traces / 150.0, 6.0, 24.0))
        height = float(np.clip(rg.samples_per_trace / 100.0, 4.0, 10.0))
        return width, height

    def render(self, rg: Radargram, output_path: Path) -> Path:
        """Render a radargram and save it.

        Returns
        -------
        Path
            The written image (suffix follows the configured format).
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        twt = rg.two_way_time
        vmin, vmax = self._color_limits(rg.data)
        output_file = output_path.with_suffix(f'.{self.output_format}')
        fig, ax = plt.subplots(figsize=self._figure_size(rg), dpi=self.dpi)
        try:
            ax.imshow(
                rg.data,
                cmap=self.cmap,
                vmin=vmin,
                vmax=vmax,
                aspect='auto',
                interpolation='nearest',
                extent=[rg.distances[0], rg.distances[-1], twt[-1], twt[0]],
            )
            ax.set_xlabel('Distance (m)', fontsize=11)
            ax.set_ylabel('Two-way time (ns)', fontsize=11)

            half_velocity = self.velocity / 2.0
            depth_axis = ax.secondary_yaxis(
                'right',
                functions=(lambda t: t * half_velocity, lambda d: d / half_velocity),
            )
            depth_axis.set_ylabel(f'Depth (m) at {self.velocity:g} m/ns', fontsize=11)

            start = pd.Timestamp(rg.start_time).strftime('%Y-%m-%d %H:%M:%S')
            processing = ", ".join(f.describe() for f in rg.applied_filters) or "raw"
            ax.set_title(f'{Path(rg.source).name}  {start}\n{processing}', fontsize=10, pad=10)

            fig.savefig(
                output_file,
                dpi=self.dpi,
                bbox_inches='tight',
                format=_FORMATS[self.output_format],
            )
        finally:
            # Release the figure even when the save fails
            plt.close(fig)
        logger.info("Saved image: %s", output_file)
        return output_file
