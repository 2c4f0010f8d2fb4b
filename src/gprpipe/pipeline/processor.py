"""Per-file GPR processing.

Runs one input file through decode, geolocate and filter. Worker threads
pull (index, path) items from a queue and store a :class:`FileResult` per
item, so results can be put back into input order whatever order the
workers finish in.
"""

import logging
import queue
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, TYPE_CHECKING

from gprpipe.core import Radargram, GPRError, OutOfBounds
from gprpipe.contracts import ContractViolation
from gprpipe.filters import FilterPipeline
from gprpipe.formats import load
from gprpipe.geo import GeoLocator

if TYPE_CHECKING:
    from gprpipe.schemas import InternalConfig

__all__ = ['FileResult', 'GPRProcessor', 'FileWorker']

logger = logging.getLogger(__name__)


@dataclass
class FileResult:
    """Outcome of processing one input file.

    Attributes
    ----------
    index : int
        Position of the file in the batch input.
    path : Path
        Input file.
    radargram : Radargram or None
        Processed radargram; None when processing failed or was skipped.
    error : Exception or None
        Exception that stopped the file: a GPRError, a ContractViolation or
        any unexpected error raised while decoding or filtering.
    dem_misses : list of OutOfBounds
        Traces that kept their prior elevation.
    skipped : bool
        True when the batch was aborted before this file was started.
    """

    index: int
    path: Path
    radargram: Optional[Radargram] = None
    error: Optional[Exception] = None
    dem_misses: List[OutOfBounds] = field(default_factory=list)
    skipped: bool = False

    @property
    def ok(self) -> bool:
        return self.radargram is not None and self.error is None


class GPRProcessor:
    """Decode, geolocate and filter single files.

    One instance is shared by all worker threads: the locator, DEM and
    filter pipeline are read-only after construction.

    Parameters
    ----------
    config : InternalConfig
        Fully validated runtime configuration.
    locator : GeoLocator
        Shared geolocator.
    pipeline : FilterPipeline
        Shared filter chain (may be empty).
    """

    def __init__(self, config: "InternalConfig", locator: GeoLocator, pipeline: FilterPipeline):
        self.config = config
        self.locator = locator
        self.pipeline = pipeline

    def process(self, path, index: int = 0) -> FileResult:
        """Process one file; errors are recorded on the result, not raised."""
        path = Path(path)
        result = FileResult(index=index, path=path)
        try:
            logger.info("Processing: %s", path.name)
            rg = load(
                path,
                cor_path=self.config.reader.cor_path,
                override_antenna_mhz=self.config.reader.override_antenna_mhz,
            )
            rg, result.dem_misses = self.locator.locate_with_report(rg)
            if len(self.pipeline):
                rg = self.pipeline.run(rg)
            result.radargram = rg
            logger.info("Finished %s: %d traces, processing: %s", path.name, rg.n_traces,
                        ", ".join(rg.filter_names) or "none")

        except GPRError as e:
            if e.filepath is None:
                e.filepath = str(path)
            logger.error("Failed %s: %s", path.name, e)
            result.error = e

        except ContractViolation as e:
            logger.exception("Pipeline contract violated on %s: %s", path.name, e)
            result.error = e

        except Exception as e:
            logger.exception("Unexpected error processing %s: %s", path.name, e)
            result.error = e

        return result


class FileWorker(threading.Thread):
    """Worker thread consuming (index, path) items until a None sentinel.

    Parameters
    ----------
    input_queue : queue.Queue
        Items are ``(index, path)`` tuples; None stops the worker.
    processor : GPRProcessor
        Shared per-file processor.
    results : dict
        Shared ``index -> FileResult`` mapping, written under ``lock``.
    lock : threading.Lock
        Guards ``results``.
    abort_event : threading.Event, optional
        When set, remaining items are recorded as skipped. Set by a worker
        after a failure if ``abort_on_error`` is True.
    """

    def __init__(self, input_queue: queue.Queue, processor: GPRProcessor,
                 results: Dict[int, FileResult], lock: threading.Lock,
                 abort_event: Optional[threading.Event] = None,
                 abort_on_error: bool = False, name: str = "FileWorker"):
        super().__init__(daemon=True, name=name)
        self.input_queue = input_queue
        self.processor = processor
        self.results = results
        self.lock = lock
        self.abort_event = abort_event or threading.Event()
        self.abort_on_error = abort_on_error

    def run(self):
        """Main worker loop (runs in thread)."""
        logger.debug("%s started", self.name)
        while True:
            item = self.input_queue.get()
            try:
                if item is None:
                    break
                index, path = item
                if self.abort_event.is_set():
                    result = FileResult(index=index, path=Path(path), skipped=True)
                else:
                    try:
                        result = self.processor.process(path, index=index)
                    except Exception as e:
                        logger.exception("Worker error on %s: %s", path, e)
                        result = FileResult(index=index, path=Path(path), error=e)
                    if not result.ok and self.abort_on_error:
                        self.abort_event.set()
                with self.lock:
                    self.results[index] = result
            finally:
                # Always mark task as done to prevent queue from blocking
                self.input_queue.task_done()
        logger.debug("%s stopped", self.name)
