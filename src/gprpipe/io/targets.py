"""Output path resolution for exports, tracks and images."""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional
import logging

from gprpipe.schemas import InternalConfig

__all__ = ["OutputTargets", "resolve_targets"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OutputTargets:
    netcdf: Optional[Path]
    track: Optional[Path]
    image: Optional[Path]


def _is_directory(path: Path) -> bool:
    return path.is_dir() or path.suffix == ""


def resolve_targets(source: Path, config: InternalConfig, stem: Optional[str] = None,
                    batch: bool = False) -> OutputTargets:
    """Work out where the outputs of one radargram go.

    Parameters
    ----------
    source : Path
        Input file the radargram came from (first member for merges).
    config : InternalConfig
        Runtime configuration.
    stem : str, optional
        File stem to use instead of the source stem (merged outputs).
    batch : bool
        True when several outputs are produced; an explicit output file is
        then treated as its directory.

    Returns
    -------
    OutputTargets
        Paths, or None for outputs that are disabled.

    Notes
    -----
    - NetCDF: ``export.output_path`` as a file, or ``<dir>/<stem>.nc``;
      by default next to the input.
    - Track: ``export.track_path`` or ``<netcdf stem>_track.csv``.
    - Image: ``render.path`` as a file or directory, by default next to the
      NetCDF target.
    """
    source = Path(source)
    stem = stem or source.stem
    output = config.export.output_path

    if output is None:
        netcdf = source.with_name(f"{stem}.nc")
    else:
        output = Path(output)
        if _is_directory(output):
            netcdf = output / f"{stem}.nc"
        elif batch:
            logger.warning("Several outputs but a single output file given; writing into %s",
                           output.parent)
            netcdf = output.parent / f"{stem}.nc"
        else:
            netcdf = output

    track = None
    if config.export.track:
        name = f"{netcdf.stem}_track.csv"
        if config.export.track_path is None:
            track = netcdf.with_name(name)
        else:
            track_path = Path(config.export.track_path)
            if _is_directory(track_path):
                track = track_path / name
            elif batch:
                track = track_path.parent / name
            else:
                track = track_path

    image = None
    if config.render.enabled:
        suffix = f".{config.render.output_format}"
        if config.render.path is None:
            image = netcdf.with_suffix(suffix)
        else:
            render_path = Path(config.render.path)
            if _is_directory(render_path):
                image = render_path / f"{netcdf.stem}{suffix}"
            elif batch:
                image = render_path.parent / f"{netcdf.stem}{suffix}"
            else:
                image = render_path

    return OutputTargets(
        netcdf=netcdf if config.export.enabled else None,
        track=track,
        image=image,
    )
