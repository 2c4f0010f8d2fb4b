"""
Radargram filters.

Importing this package registers every filter:

- spatial: subset, remove_empty_traces, average_traces, equidistant_traces,
  normalize_horizontal_magnitudes, correct_topography
- temporal: dewow, bandpass, zero_corr, zero_corr_max_peak,
  correct_antenna_separation, unphase
- amplitude: gain, auto_gain, siglog, abslog
"""

from gprpipe.filters.base import (
    BaseFilter,
    FilterParameterSpec,
    ParameterType,
    FilterContext,
)
from gprpipe.filters.registry import FilterRegistry, register_filter
from gprpipe.filters import spatial, temporal, amplitude  # noqa: F401  (registration)
from gprpipe.filters.steps import split_step_list, parse_step, build_filter, build_filters
from gprpipe.filters.profiles import PROFILE_VERSION, PROFILES, profile_steps, describe_profile
from gprpipe.filters.pipeline import FilterPipeline

__all__ = [
    "BaseFilter",
    "FilterParameterSpec",
    "ParameterType",
    "FilterContext",
    "FilterRegistry",
    "register_filter",
    "split_step_list",
    "parse_step",
    "build_filter",
    "build_filters",
    "PROFILE_VERSION",
    "PROFILES",
    "profile_steps",
    "describe_profile",
    "FilterPipeline",
    "describe_all_filters",
]


def describe_all_filters() -> str:
    """Listing of every registered filter grouped by category."""
    registry = FilterRegistry.get_instance()
    blocks = []
    for category in registry.get_categories():
        blocks.append(f"== {category} ==")
        for name in registry.get_filter_names(category):
            blocks.append(registry.get_filter_class(name).describe())
    return "\n".join(blocks)
