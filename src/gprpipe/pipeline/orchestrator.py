"""Multi-threaded batch orchestration.

Coordinates the file workers, the merge step and the exporters. Files are
processed concurrently; merging and export run on the calling thread once
every worker has finished.
"""

import queue
import threading
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from gprpipe.core import Radargram
from gprpipe.contracts import FailurePolicy
from gprpipe.filters import FilterContext, FilterPipeline
from gprpipe.geo import DemSource, GeoLocator
from gprpipe.io import OutputTargets, resolve_targets, write_netcdf, write_track
from gprpipe.pipeline.merger import MergeOutcome, merge_radargrams
from gprpipe.pipeline.processor import FileResult, FileWorker, GPRProcessor
from gprpipe.schemas import InternalConfig
from gprpipe.visualization import RadargramRenderer

__all__ = ['BatchOrchestrator', 'BatchReport']

logger = logging.getLogger(__name__)


@dataclass
class BatchReport:
    """What a batch run produced.

    Attributes
    ----------
    files : list of FileResult
        One result per input file, in input order.
    merges : list of MergeOutcome
        Merge groups; empty when merging is disabled.
    outputs : list of OutputTargets
        Files written per exported radargram.
    export_errors : list of (Path, OSError)
        Export targets that could not be written.
    aborted : bool
        True when the abort policy stopped the batch before export.
    """

    files: List[FileResult] = field(default_factory=list)
    merges: List[MergeOutcome] = field(default_factory=list)
    outputs: List[OutputTargets] = field(default_factory=list)
    export_errors: List[Tuple[Path, OSError]] = field(default_factory=list)
    aborted: bool = False

    @property
    def failed(self) -> bool:
        """True when any file, merge group or export failed."""
        return (
            self.aborted
            or any(not r.ok for r in self.files)
            or any(not m.ok for m in self.merges)
            or bool(self.export_errors)
        )


class BatchOrchestrator:
    """Runs a batch of GPR files through the full pipeline.

    Workflow:

    1. Build the shared geolocator (target CRS, DEM) and filter pipeline.
    2. Start up to ``processor.max_workers`` :class:`FileWorker` threads
       consuming ``(index, path)`` items from a queue; every file is
       decoded, geolocated and filtered independently.
    3. Collect the per-file results in input order.
    4. Optionally merge acquisitions whose time gap is below the
       threshold.
    5. Export NetCDF, location tracks and images.

    Per-file failures are reported on the :class:`BatchReport`. With
    ``processor.on_error == "abort"`` the first failure stops the remaining
    files and nothing is merged or exported.

    Example usage::

        from gprpipe.schemas import ParamConfig, CLIConfig, resolve_config

        config = resolve_config(ParamConfig(), None, CLIConfig(profile="default"))
        report = BatchOrchestrator(config).start(["line01.rad", "line02.rad"])
    """

    def __init__(self, config: InternalConfig):
        """Initialize orchestrator with the resolved runtime configuration.

        Parameters
        ----------
        config : InternalConfig
            Fully validated runtime configuration.
        """
        self.config = config
        self.policy = FailurePolicy(config.processor.on_error)

    def _setup_logging(self):
        """Configure the root logger with console and optional file handlers.

        Log level and log file are taken from ``config.logging``.
        """
        log_level = getattr(logging, self.config.logging.level, logging.INFO)

        formatter = logging.Formatter(
            fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        # Clear existing handlers and add new ones
        root = logging.getLogger()
        root.setLevel(log_level)
        for handler in root.handlers[:]:
            root.removeHandler(handler)

        # File handler
        log_path = self.config.logging.file
        if log_path is not None:
            log_path = Path(log_path)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            fh = logging.FileHandler(log_path)
            fh.setLevel(log_level)
            fh.setFormatter(formatter)
            root.addHandler(fh)

        # Console handler
        ch = logging.StreamHandler()
        ch.setLevel(log_level)
        ch.setFormatter(formatter)
        root.addHandler(ch)

        logger.debug("Logging: level=%s, file=%s", self.config.logging.level, log_path)

    def build_pipeline(self) -> FilterPipeline:
        """Filter chain from the configured profile or steps (may be empty)."""
        context = FilterContext(medium_velocity=self.config.reader.medium_velocity)
        processing = self.config.processing
        if processing.profile is not None:
            return FilterPipeline.from_profile(processing.profile, context)
        return FilterPipeline.from_steps(processing.steps, context)

    def build_locator(self) -> GeoLocator:
        """Geolocator with the configured target CRS and DEM."""
        dem = None
        if self.config.geolocation.dem_path is not None:
            dem = DemSource.open(self.config.geolocation.dem_path)
        return GeoLocator(target_crs=self.config.geolocation.crs, dem=dem)

    def process_files(self, paths: Sequence, processor: GPRProcessor) -> List[FileResult]:
        """Process files on worker threads; results come back in input order."""
        paths = [Path(p) for p in paths]
        if not paths:
            return []

        input_queue: queue.Queue = queue.Queue()
        results = {}
        lock = threading.Lock()
        abort_event = threading.Event()
        abort_on_error = self.policy is FailurePolicy.ABORT

        n_workers = min(self.config.processor.max_workers, len(paths))
        workers = [
            FileWorker(input_queue, processor, results, lock, abort_event=abort_event,
                       abort_on_error=abort_on_error, name=f"FileWorker-{i}")
            for i in range(n_workers)
        ]
        for worker in workers:
            worker.start()

        for index, path in enumerate(paths):
            input_queue.put((index, path))
        for _ in workers:
            input_queue.put(None)

        input_queue.join()
        for worker in workers:
            worker.join()

        return [results[i] for i in range(len(paths))]

    def _products(self, files: List[FileResult], merges: List[MergeOutcome],
                  ordered: List[FileResult]) -> List[Tuple[Path, str, Radargram]]:
        """(source, stem, radargram) of everything to export."""
        if not merges:
            return [(r.path, r.path.stem, r.radargram) for r in files if r.ok]
        products = []
        for outcome in merges:
            if not outcome.ok:
                continue
            first = ordered[outcome.members[0]].path
            stem = f"{first.stem}_merged" if len(outcome.members) > 1 else first.stem
            products.append((first, stem, outcome.radargram))
        return products

    def export(self, products: List[Tuple[Path, str, Radargram]], report: BatchReport):
        """Write NetCDF, track and image outputs of every product."""
        batch = len(products) > 1
        renderer = None
        if self.config.render.enabled:
            renderer = RadargramRenderer(self.config.render,
                                         velocity=self.config.reader.medium_velocity)

        for source, stem, rg in products:
            targets = resolve_targets(source, self.config, stem=stem, batch=batch)
            try:
                if targets.netcdf is not None:
                    write_netcdf(rg, targets.netcdf,
                                 compression_level=self.config.export.compression_level)
                if targets.track is not None:
                    write_track(rg, targets.track)
                if renderer is not None and targets.image is not None:
                    renderer.render(rg, targets.image)
            except OSError as e:
                logger.error("Export of %s failed: %s", stem, e)
                report.export_errors.append((source, e))
                continue
            report.outputs.append(targets)

    def run(self, paths: Sequence) -> BatchReport:
        """Process, merge and export a batch of files.

        Parameters
        ----------
        paths : sequence of str or Path
            Input files (one member of each header/data pair).

        Returns
        -------
        BatchReport
            Per-file, per-group and export results.

        Raises
        ------
        GeoError
            If the DEM cannot be opened.
        ValueError
            If the configured steps cannot be parsed.
        """
        pipeline = self.build_pipeline()
        locator = self.build_locator()
        if len(pipeline):
            logger.info("Processing chain: %s", ", ".join(pipeline.step_strings()))

        processor = GPRProcessor(self.config, locator, pipeline)
        report = BatchReport(files=self.process_files(paths, processor))

        failures = [r for r in report.files if not r.ok]
        if failures and self.policy is FailurePolicy.ABORT:
            logger.error("Aborting: %d of %d file(s) failed; nothing exported",
                         len(failures), len(report.files))
            report.aborted = True
            return report

        ordered: List[FileResult] = []
        threshold = self.config.merge.threshold
        ok = [r for r in report.files if r.ok]
        if threshold is not None and len(ok) > 1:
            # Stable sort keeps input order for identical start times
            ordered = sorted(ok, key=lambda r: r.radargram.start_time)
            report.merges = merge_radargrams([r.radargram for r in ordered], threshold)

        self.export(self._products(report.files, report.merges, ordered), report)

        logger.info("Batch finished: %d file(s), %d failed, %d output(s)",
                    len(report.files), len(failures), len(report.outputs))
        return report

    def start(self, paths: Sequence) -> BatchReport:
        """Configure logging, then run the batch."""
        self._setup_logging()
        return self.run(paths)
