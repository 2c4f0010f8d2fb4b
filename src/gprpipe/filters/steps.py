"""
Step-string parsing.

A step is ``name`` or ``name(arg arg ...)``. A chain is either a comma
separated list of steps or the path of a file holding one step per line
(blank lines and ``#`` comments are skipped).
"""

from __future__ import annotations
from pathlib import Path
import re

from gprpipe.filters.base import BaseFilter
from gprpipe.filters.registry import FilterRegistry

__all__ = ["split_step_list", "parse_step", "build_filter", "build_filters"]

_STEP = re.compile(r"^\s*([A-Za-z_][A-Za-z0-9_]*)\s*(?:\((.*)\))?\s*$")


def _split_commas(text: str) -> list[str]:
    """Split on commas outside parentheses."""
    parts, depth, current = [], 0, []
    for char in text:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        if char == "," and depth == 0:
            parts.append("".join(current))
            current = []
        else:
            current.append(char)
    parts.append("".join(current))
    return [p.strip() for p in parts if p.strip()]


def split_step_list(text: str) -> list[str]:
    """Split a chain string (or step file path) into step strings."""
    candidate = Path(text.strip())
    if text.strip() and candidate.is_file():
        lines = candidate.read_text(encoding="utf-8").splitlines()
        steps = []
        for line in lines:
            line = line.split("#", 1)[0].strip()
            if line:
                steps.extend(_split_commas(line))
        return steps
    return _split_commas(text)


def parse_step(step: str) -> tuple[str, list[str]]:
    """Split ``name(a b)`` into ``("name", ["a", "b"])``.

    Raises:
        ValueError: If the step is not valid step syntax
    """
    match = _STEP.match(step)
    if match is None:
        raise ValueError(f"Invalid step syntax: {step!r}")
    name, args = match.group(1), match.group(2)
    return name, (args.replace(",", " ").split() if args else [])


def build_filter(step: str) -> BaseFilter:
    """Instantiate the filter a step string names.

    Raises:
        ValueError: On syntax errors, unknown filters or invalid parameters
    """
    name, args = parse_step(step)
    registry = FilterRegistry.get_instance()
    if name not in registry:
        raise ValueError(
            f"Unknown step '{name}'. Available: {', '.join(registry.get_all_filter_names())}")
    try:
        return registry.create_filter(name, *args)
    except ValueError as exc:
        raise ValueError(f"Invalid step {step!r}: {exc}") from exc


def build_filters(steps) -> list[BaseFilter]:
    """Instantiate a chain given as a list of step strings or a chain string."""
    if isinstance(steps, str):
        steps = split_step_list(steps)
    return [build_filter(step) for step in steps]
