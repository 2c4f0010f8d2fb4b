"""Batch processing: per-file workers, merging and orchestration."""

from gprpipe.pipeline.merger import MergeOutcome, group_by_gap, merge_group, merge_radargrams
from gprpipe.pipeline.processor import FileResult, GPRProcessor, FileWorker
from gprpipe.pipeline.orchestrator import BatchOrchestrator, BatchReport

__all__ = [
    "MergeOutcome",
    "group_by_gap",
    "merge_group",
    "merge_radargrams",
    "FileResult",
    "GPRProcessor",
    "FileWorker",
    "BatchOrchestrator",
    "BatchReport",
]
