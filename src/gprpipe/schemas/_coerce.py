"""Shared value coercion for config schemas."""

from datetime import timedelta
from typing import Any, Optional

import pandas as pd


def parse_duration(value: Any) -> Optional[timedelta]:
    """Parse a human readable duration such as ``"10 min"`` or ``"1h30m"``.

    Numbers are interpreted as seconds. None passes through.

    Raises
    ------
    ValueError
        If the value cannot be parsed or is negative.
    """
    if value is None or isinstance(value, timedelta):
        duration = value
    elif isinstance(value, (int, float)):
        duration = timedelta(seconds=float(value))
    else:
        try:
            duration = pd.Timedelta(str(value).strip()).to_pytimedelta()
        except (ValueError, TypeError) as exc:
            raise ValueError(f"Cannot parse duration '{value}': {exc}") from exc
    if duration is not None and duration < timedelta(0):
        raise ValueError(f"Duration must not be negative, got '{value}'")
    return duration


def split_steps(value: Any) -> Any:
    """Accept a comma separated step string in place of a list."""
    if isinstance(value, str):
        from gprpipe.filters.steps import split_step_list
        return split_step_list(value)
    return value
