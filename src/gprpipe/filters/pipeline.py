"""
Filter pipeline for running ordered filter chains on radargrams.

Provides:
- FilterPipeline: Ordered list of filter instances applied strictly in sequence
"""

from __future__ import annotations
from typing import Iterable, Iterator, Optional
import logging

import numpy as np

from gprpipe.core import Radargram, FilterError, PreconditionUnmet, AlreadyApplied, NumericInstability
from gprpipe.contracts import assert_radargram
from gprpipe.filters.base import BaseFilter, FilterContext
from gprpipe.filters.registry import FilterRegistry
from gprpipe.filters.profiles import profile_steps
from gprpipe.filters.steps import build_filters

__all__ = ["FilterPipeline"]

logger = logging.getLogger(__name__)


class FilterPipeline:
    """
    Manages an ordered list of filter instances.

    Filters are applied sequentially in order. Before each filter the
    radargram's log is checked (a non-repeatable filter, or any member of
    its exclusive group including itself, must not be there yet), then the declared
    preconditions. After each filter the output must be finite and satisfy
    the radargram contract; the filter is then appended to the log.

    The first failure aborts the chain with a :class:`FilterError` that
    carries the last valid radargram.

    Examples
    --------
    >>> pipeline = FilterPipeline.from_steps("dewow(5),auto_gain")
    >>> processed = pipeline.run(radargram)
    >>> processed.filter_names
    ('dewow', 'auto_gain')
    """

    def __init__(self, filters: Optional[Iterable[BaseFilter]] = None,
                 context: Optional[FilterContext] = None) -> None:
        self._filters: list[BaseFilter] = list(filters or [])
        self.context = context or FilterContext()

    @classmethod
    def from_steps(cls, steps, context: Optional[FilterContext] = None) -> FilterPipeline:
        """Build from step strings or a chain string (comma list or step file)."""
        return cls(build_filters(steps), context)

    @classmethod
    def from_profile(cls, name: str, context: Optional[FilterContext] = None) -> FilterPipeline:
        return cls.from_steps(profile_steps(name), context)

    @property
    def filters(self) -> list[BaseFilter]:
        """Get the list of filters (copy)."""
        return list(self._filters)

    def __len__(self) -> int:
        return len(self._filters)

    def __iter__(self) -> Iterator[BaseFilter]:
        return iter(self._filters)

    def __getitem__(self, index: int) -> BaseFilter:
        return self._filters[index]

    def add_filter(self, filter_instance: BaseFilter) -> None:
        """Add a filter to the end of the pipeline."""
        self._filters.append(filter_instance)

    def step_strings(self) -> list[str]:
        return [f.step_string() for f in self._filters]

    @staticmethod
    def _logged_groups(rg: Radargram) -> set[str]:
        """Exclusive groups of the logged filters."""
        registry = FilterRegistry.get_instance()
        groups = set()
        for name in rg.filter_names:
            if name in registry:
                group = registry.get_filter_class(name).exclusive_group
                if group:
                    groups.add(group)
        return groups

    def _guard(self, flt: BaseFilter, rg: Radargram) -> None:
        if not flt.repeatable and rg.has_filter(flt.filter_name):
            raise AlreadyApplied("filter has already been applied", flt.filter_name)
        if flt.exclusive_group and flt.exclusive_group in self._logged_groups(rg):
            raise AlreadyApplied(
                f"a '{flt.exclusive_group}' filter has already been applied", flt.filter_name)
        reasons = flt.unmet_preconditions(rg)
        if reasons:
            raise PreconditionUnmet("; ".join(reasons), flt.filter_name)

    def run(self, rg: Radargram) -> Radargram:
        """
        Apply all filters in sequence.

        Raises
        ------
        FilterError
            Subclass of the first failure, with ``index`` set to the failing
            step and ``radargram`` to the last valid state.
        """
        current = rg
        for index, flt in enumerate(self._filters):
            try:
                self._guard(flt, current)
                result = flt.apply(current, self.context)
                if not np.isfinite(result.data).all():
                    raise NumericInstability("output contains non-finite values", flt.filter_name)
            except FilterError as exc:
                exc.index = index
                exc.radargram = current
                exc.filepath = exc.filepath or current.source
                raise

            result = result.with_filter(flt.filter_name, flt.parameters)
            assert_radargram(result, stage=f"filter '{flt.filter_name}'")
            logger.debug("%s: applied %s (%d traces x %d samples)", rg.source, flt.step_string(),
                         result.n_traces, result.samples_per_trace)
            current = result
        return current
