"""Command-line entry point and Python API for batch GPR processing.

This module holds the actual runner, separated from argument parsing, so
scripts stay thin wrappers and the same run is reachable from Python via
:func:`run_cli`.
"""

import sys
import glob
import json
import logging
import argparse
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from gprpipe import __version__
from gprpipe.core import GPRError
from gprpipe.filters import describe_all_filters, describe_profile
from gprpipe.formats import DECODERS, is_header_file, load
from gprpipe.pipeline import BatchOrchestrator, BatchReport
from gprpipe.schemas import resolve_config, load_user_config, ParamConfig, CLIConfig

__all__ = ['expand_paths', 'print_info', 'run_gprpipe', 'run_cli', 'build_parser', 'main']

logger = logging.getLogger(__name__)


def _supported(path: Path) -> bool:
    return any(cls.handles(path) for cls in DECODERS)


def expand_paths(pattern: str) -> List[Path]:
    """Expand a path or glob into one path per acquisition.

    Both members of a header/data pair may match a glob; only one per stem
    is kept, preferring the header. Unsupported suffixes are ignored.

    Raises
    ------
    FileNotFoundError
        If nothing matches.
    """
    matches = sorted(Path(p) for p in glob.glob(pattern))
    if not matches and Path(pattern).exists():
        matches = [Path(pattern)]

    chosen: Dict[Path, Path] = {}
    for path in matches:
        if not path.is_file() or not _supported(path):
            continue
        key = path.with_suffix("")
        if key not in chosen or (is_header_file(path) and not is_header_file(chosen[key])):
            chosen[key] = path

    if not chosen:
        raise FileNotFoundError(f"No supported GPR files match '{pattern}'")
    return sorted(chosen.values())


def print_info(paths: List[Path], cor_path: Optional[str] = None,
               override_antenna_mhz: Optional[float] = None) -> int:
    """Print the metadata summary of every file; returns the number of failures."""
    failures = 0
    for path in paths:
        try:
            rg = load(path, cor_path=cor_path, override_antenna_mhz=override_antenna_mhz)
        except GPRError as e:
            print(f"Error: {e}", file=sys.stderr)
            failures += 1
            continue
        print(rg.summary())
        print()
    return failures


def run_gprpipe(
    paths: List[Path],
    user_config_path: Optional[str] = None,
    cli_args: Optional[Dict[str, Any]] = None,
    verbose: bool = False,
) -> BatchReport:
    """Execute the batch pipeline.

    1. Loads and resolves configuration (Param < User < CLI)
    2. Runs the orchestrator (decode, geolocate, filter, merge, export)

    Parameters
    ----------
    paths : list of Path
        Input files.
    user_config_path : str, optional
        Python file with a ``CONFIG`` dict.
    cli_args : dict, optional
        :class:`CLIConfig` overrides; None values are ignored.
    verbose : bool
        Print the full resolved configuration.

    Returns
    -------
    BatchReport
        Per-file, merge and export results.

    Raises
    ------
    ValidationError
        If configuration validation fails.
    FileNotFoundError
        If the user config file does not exist.
    """
    param_cfg = ParamConfig()
    user_cfg = load_user_config(user_config_path) if user_config_path else None

    cli_dict = {k: v for k, v in (cli_args or {}).items() if v is not None}
    cli_cfg = CLIConfig.model_validate(cli_dict)

    config = resolve_config(param_cfg, user_cfg, cli_cfg)

    if verbose:
        print("\nFull Internal Configuration:")
        print(json.dumps(config.model_dump(mode="json"), indent=2))
        print('=' * 60)

    orchestrator = BatchOrchestrator(config)
    return orchestrator.start(paths)


def run_cli(filepath: str, config: Optional[str] = None, info: bool = False,
            **options) -> Optional[BatchReport]:
    """Python counterpart of the ``gprpipe`` command.

    Keyword options are the :class:`CLIConfig` fields, e.g.::

        run_cli("survey/*.rad", profile="default", merge="10 min", track=True)

    Returns the batch report, or None in info mode.
    """
    paths = expand_paths(filepath)
    if info:
        print_info(paths, cor_path=options.get("cor"),
                   override_antenna_mhz=options.get("override_antenna_mhz"))
        return None
    return run_gprpipe(paths, user_config_path=config, cli_args=options)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gprpipe",
        description="Batch processing of ground-penetrating radar files (Malå .rad/.rd3/.rd7, "
                    "pulseEKKO .hd/.dt1)",
    )
    parser.add_argument("-f", "--filepath", help="Input file or glob pattern (quote globs)")
    parser.add_argument("-v", "--velocity", type=float, help="Medium velocity in m/ns")
    parser.add_argument("-i", "--info", action="store_true", help="Print file metadata and exit")
    parser.add_argument("-c", "--cor", help="Malå .cor GNSS file (default: next to the .rad)")
    parser.add_argument("-d", "--dem", help="DEM raster used to sample elevations")
    parser.add_argument("--crs", help="Target CRS (default: UTM zone of the first trace)")
    parser.add_argument("-t", "--track", nargs="?", const=True, default=None, metavar="PATH",
                        help="Export the location track as CSV (optional file or directory)")

    chain = parser.add_mutually_exclusive_group()
    chain.add_argument("--default", dest="profile", action="store_const", const="default",
                       help="Process with the default profile")
    chain.add_argument("--default-with-topo", dest="profile", action="store_const",
                       const="default_with_topo",
                       help="Default profile followed by topographic correction")
    chain.add_argument("--steps", help="Comma separated steps, or a file with one step per line")

    parser.add_argument("--show-default", action="store_true", help="List the default profile")
    parser.add_argument("--show-all-steps", action="store_true", help="List every available step")
    parser.add_argument("-o", "--output", help="Output file or directory for the NetCDF export")
    parser.add_argument("--no-export", action="store_true", help="Do not write NetCDF files")
    parser.add_argument("-r", "--render", nargs="?", const=True, default=None, metavar="PATH",
                        help="Render an image (optional file or directory)")
    parser.add_argument("--merge", metavar="DURATION",
                        help="Merge acquisitions separated by at most DURATION, e.g. '10 min'")
    parser.add_argument("--override-antenna-mhz", type=float,
                        help="Antenna frequency to use instead of the header value")
    parser.add_argument("--max-workers", type=int, help="Number of worker threads")
    parser.add_argument("--abort-on-error", action="store_true",
                        help="Export nothing if any file fails")
    parser.add_argument("--config", help="Python file with a CONFIG dict")
    parser.add_argument("-q", "--quiet", action="store_true", help="Only log warnings and errors")
    parser.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
                        type=str.upper, help="Logging level")
    parser.add_argument("--verbose", action="store_true", help="Print the resolved configuration")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def _cli_args(args: argparse.Namespace) -> Dict[str, Any]:
    """Map parsed arguments onto CLIConfig fields."""
    cli_args = {
        "velocity": args.velocity,
        "cor": args.cor,
        "override_antenna_mhz": args.override_antenna_mhz,
        "dem": args.dem,
        "crs": args.crs,
        "profile": args.profile,
        "steps": args.steps,
        "merge": args.merge,
        "output": args.output,
        "no_export": args.no_export,
        "max_workers": args.max_workers,
        "on_error": "abort" if args.abort_on_error else None,
        "quiet": args.quiet,
        "log_level": args.log_level,
    }
    if args.track is True:
        cli_args["track"] = True
    elif args.track is not None:
        cli_args["track_path"] = args.track
    if args.render is True:
        cli_args["render"] = True
    elif args.render is not None:
        cli_args["render_path"] = args.render
    return cli_args


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.show_default:
        print(describe_profile("default"))
        return 0
    if args.show_all_steps:
        print(describe_all_filters())
        return 0
    if not args.filepath:
        parser.error("-f/--filepath is required")

    try:
        paths = expand_paths(args.filepath)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.info:
        return 1 if print_info(paths, args.cor, args.override_antenna_mhz) else 0

    try:
        report = run_gprpipe(paths, user_config_path=args.config, cli_args=_cli_args(args),
                             verbose=args.verbose)
    except (ValidationError, ValueError, FileNotFoundError, GPRError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return 130

    return 1 if report.failed else 0


if __name__ == "__main__":
    sys.exit(main())
