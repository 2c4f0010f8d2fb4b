"""Named processing profiles.

Profiles are plain step lists so they can be printed, diffed and stored in
provenance. Bump ``PROFILE_VERSION`` whenever a profile changes.
"""

from gprpipe.filters.registry import FilterRegistry
from gprpipe.filters.steps import parse_step

__all__ = ["PROFILE_VERSION", "PROFILES", "profile_steps", "describe_profile"]

PROFILE_VERSION = "1"

_DEFAULT = [
    "remove_empty_traces",
    "zero_corr_max_peak",
    "correct_antenna_separation",
    "dewow(5)",
    "normalize_horizontal_magnitudes(0.3)",
    "auto_gain(100)",
]

PROFILES = {
    "default": _DEFAULT,
    "default_with_topo": _DEFAULT + ["correct_topography"],
}


def profile_steps(name: str) -> list[str]:
    """Steps of a named profile (a copy).

    Raises
    ------
    KeyError
        If the profile does not exist.
    """
    key = name.replace("-", "_")
    if key not in PROFILES:
        raise KeyError(f"Unknown profile '{name}'. Available: {', '.join(PROFILES)}")
    return list(PROFILES[key])


def describe_profile(name: str) -> str:
    """Numbered listing of a profile with each step's description."""
    registry = FilterRegistry.get_instance()
    lines = [f"Profile '{name}' (version {PROFILE_VERSION}):"]
    for number, step in enumerate(profile_steps(name), start=1):
        filter_name, _ = parse_step(step)
        lines.append(f"  {number}. {step:<40s} {registry.get_filter_class(filter_name).description}")
    return "\n".join(lines)
