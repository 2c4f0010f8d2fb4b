"""
Base classes for the radargram filter system.

Provides:
- ParameterType: Enum for parameter data types
- FilterParameterSpec: Dataclass defining filter parameters
- FilterContext: Survey-wide values filters may read (wave velocity)
- Precondition classes: Declarative checks run before a filter is applied
- BaseFilter: Abstract base class for all filters
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Optional

import numpy as np

from gprpipe.core import Radargram, PreconditionUnmet

__all__ = [
    "ParameterType",
    "FilterParameterSpec",
    "FilterContext",
    "Precondition",
    "RequiresPositions",
    "RequiresElevation",
    "WindowWithinTraces",
    "BelowNyquist",
    "BaseFilter",
]


class ParameterType(Enum):
    """Types of filter parameters."""
    INT = "int"
    FLOAT = "float"


@dataclass
class FilterParameterSpec:
    """
    Specification for a single filter parameter.

    Step strings pass parameters positionally, so the order of a filter's
    specs is part of its step syntax.
    """
    name: str                                    # Internal parameter name
    param_type: ParameterType                    # Data type
    default: Any                                 # Default value
    min_value: float | int | None = None         # Inclusive lower bound
    max_value: float | int | None = None         # Inclusive upper bound
    units: str = ""                              # Units label (MHz, samples, etc.)
    tooltip: str = ""                            # Help text

    def coerce(self, value: Any) -> Any:
        """
        Convert a value (possibly a step-string token) to the parameter type.

        Raises:
            ValueError: If the value is not a number of the right type or is out of range
        """
        try:
            number = float(value)
        except (TypeError, ValueError):
            raise ValueError(f"{self.name} must be a number, got {value!r}") from None

        if self.param_type == ParameterType.INT:
            if not number.is_integer():
                raise ValueError(f"{self.name} must be an integer, got {value!r}")
            number = int(number)

        if self.min_value is not None and number < self.min_value:
            raise ValueError(f"{self.name} must be >= {self.min_value}, got {number}")
        if self.max_value is not None and number > self.max_value:
            raise ValueError(f"{self.name} must be <= {self.max_value}, got {number}")
        return number


@dataclass(frozen=True)
class FilterContext:
    """Values shared by every filter of a run."""
    medium_velocity: float = 0.168  # m/ns


# ----------------------------------------------------------------------------
# Preconditions
# ----------------------------------------------------------------------------

class Precondition:
    """A check a radargram must pass before a filter runs.

    ``check`` returns None when satisfied, otherwise the reason.
    """

    description: str = ""

    def check(self, rg: Radargram, flt: "BaseFilter") -> Optional[str]:
        raise NotImplementedError


class RequiresPositions(Precondition):
    description = "radargram must be geolocated"

    def check(self, rg, flt):
        if not rg.geolocated:
            return "radargram has no positions"
        return None


class RequiresElevation(Precondition):
    description = "every trace must have an elevation"

    def check(self, rg, flt):
        if not rg.geolocated:
            return "radargram has no positions"
        missing = int(np.count_nonzero(~np.isfinite(rg.positions[:, 2])))
        if missing:
            return f"{missing} of {rg.n_traces} traces have no elevation"
        return None


class WindowWithinTraces(Precondition):
    """Parameter ``param`` (a trace count) must not exceed the number of traces."""

    def __init__(self, param: str):
        self.param = param
        self.description = f"{param} <= number of traces"

    def check(self, rg, flt):
        window = flt.get_parameter(self.param)
        if window > rg.n_traces:
            return f"{self.param} ({window}) is larger than the data width ({rg.n_traces})"
        return None


class BelowNyquist(Precondition):
    """Frequency parameter ``param`` (MHz) must be below the Nyquist frequency."""

    def __init__(self, param: str):
        self.param = param
        self.description = f"{param} < Nyquist frequency"

    def check(self, rg, flt):
        nyquist_mhz = 0.5 / rg.sample_interval / 1e6
        value = flt.get_parameter(self.param)
        if value >= nyquist_mhz:
            return f"{self.param} ({value:g} MHz) must be below the Nyquist frequency ({nyquist_mhz:g} MHz)"
        return None


# ----------------------------------------------------------------------------
# Filters
# ----------------------------------------------------------------------------

class BaseFilter(ABC):
    """
    Abstract base class for all radargram filters.

    Each filter class defines:
    - category: spatial, temporal or amplitude
    - filter_name: Unique step name (dewow, auto_gain, etc.)
    - parameter_specs: Ordered list of FilterParameterSpec
    - preconditions: Checks run by the pipeline before apply()
    - repeatable: False if the filter may appear only once in a radargram's log
    - exclusive_group: At most one filter of the group may be in the log
    - apply(): The actual filtering logic
    """

    # Class attributes (set by subclasses)
    category: ClassVar[str]
    filter_name: ClassVar[str]  # Must be unique across all filters
    description: ClassVar[str] = ""
    parameter_specs: ClassVar[list[FilterParameterSpec]] = []
    preconditions: ClassVar[tuple[Precondition, ...]] = ()
    repeatable: ClassVar[bool] = True
    exclusive_group: ClassVar[Optional[str]] = None

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        """
        Initialize filter with parameters.

        Args:
            *args: Parameter values in spec order (step-string syntax)
            **kwargs: Parameter values by name

        Raises:
            ValueError: On too many, unknown or invalid parameters
        """
        if len(args) > len(self.parameter_specs):
            raise ValueError(
                f"{self.filter_name} takes at most {len(self.parameter_specs)} "
                f"parameter(s), got {len(args)}")

        specs = {spec.name: spec for spec in self.parameter_specs}
        unknown = set(kwargs) - set(specs)
        if unknown:
            raise ValueError(f"{self.filter_name} has no parameter(s) {sorted(unknown)}")

        self._parameters: dict[str, Any] = {spec.name: spec.default for spec in self.parameter_specs}
        for spec, value in zip(self.parameter_specs, args):
            self._parameters[spec.name] = spec.coerce(value)
        for name, value in kwargs.items():
            self._parameters[name] = specs[name].coerce(value)

    @property
    def parameters(self) -> dict[str, Any]:
        """Current parameter values (copy)."""
        return dict(self._parameters)

    def get_parameter(self, name: str) -> Any:
        """Get a parameter value by name."""
        return self._parameters[name]

    def unmet_preconditions(self, rg: Radargram) -> list[str]:
        reasons = []
        for precondition in self.preconditions:
            reason = precondition.check(rg, self)
            if reason:
                reasons.append(reason)
        return reasons

    def precondition_error(self, message: str) -> PreconditionUnmet:
        """PreconditionUnmet for data-dependent checks made inside apply()."""
        return PreconditionUnmet(message, self.filter_name)

    def step_string(self) -> str:
        """This instance in step syntax, e.g. ``dewow(5)``."""
        if not self._parameters:
            return self.filter_name
        args = " ".join(f"{v:g}" if isinstance(v, float) else str(v)
                        for v in self._parameters.values())
        return f"{self.filter_name}({args})"

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.step_string()}>"

    @classmethod
    def describe(cls) -> str:
        """Return a description of the filter and all its parameters."""
        if cls.parameter_specs:
            signature = f"{cls.filter_name}({' '.join(s.name for s in cls.parameter_specs)})"
        else:
            signature = cls.filter_name
        lines = [f"{signature} [{cls.category}]", f"  {cls.description}"]
        for spec in cls.parameter_specs:
            param_line = f"    {spec.name}: {spec.param_type.value}, default {spec.default}"
            if spec.units:
                param_line += f" [{spec.units}]"
            if spec.tooltip:
                param_line += f". {spec.tooltip}"
            lines.append(param_line)
        rules = [p.description for p in cls.preconditions]
        if not cls.repeatable:
            rules.append("applied at most once")
        if cls.exclusive_group:
            rules.append(f"at most one '{cls.exclusive_group}' filter")
        if rules:
            lines.append(f"    requires: {'; '.join(rules)}")
        return "\n".join(lines)

    @abstractmethod
    def apply(self, rg: Radargram, context: FilterContext) -> Radargram:
        """
        Apply the filter.

        Args:
            rg: Input radargram; never modified
            context: Run-wide values

        Returns:
            New radargram. The pipeline appends the log entry.
        """
        pass
