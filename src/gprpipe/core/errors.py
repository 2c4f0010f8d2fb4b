"""Error taxonomy for GPR processing.

Every component raises a subclass of :class:`GPRError`. Errors are scoped:

- FormatError: the affected file cannot be decoded. The file is skipped.
- GeoError: UnsupportedCrs aborts geolocation of the file. OutOfBounds
  concerns a single trace and never aborts the radargram.
- FilterError: the filter chain for that radargram stops at the failing
  filter. The last valid radargram is kept on the error for inspection.
- MergeError: only the affected merge group fails.

Pipeline bugs (broken invariants) are not GPRErrors; they raise
:class:`gprpipe.contracts.ContractViolation`.
"""

from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from gprpipe.core.radargram import Radargram

__all__ = [
    "GPRError",
    "FormatError",
    "InvalidHeader",
    "TruncatedData",
    "MissingTiming",
    "UnsupportedFormatVariant",
    "GeoError",
    "UnsupportedCrs",
    "OutOfBounds",
    "FilterError",
    "PreconditionUnmet",
    "AlreadyApplied",
    "NumericInstability",
    "MergeError",
    "IncompatibleGeometry",
]


class GPRError(Exception):
    """Base class of all processing errors.

    Parameters
    ----------
    message : str
        Human readable description.
    filepath : str, optional
        Identity of the file the error belongs to.
    """

    def __init__(self, message: str, filepath: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.filepath = str(filepath) if filepath is not None else None

    def __str__(self) -> str:
        if self.filepath:
            return f"{self.filepath}: {self.message}"
        return self.message


# ----------------------------------------------------------------------------
# Decoding
# ----------------------------------------------------------------------------

class FormatError(GPRError):
    """A raw instrument file could not be decoded."""


class InvalidHeader(FormatError):
    """Header missing, unparsable, or with an unrecognized format marker."""


class TruncatedData(FormatError):
    """Data block length is not a multiple of the declared trace length."""


class MissingTiming(FormatError):
    """Neither per-trace times nor a header start time and trace interval exist."""


class UnsupportedFormatVariant(FormatError):
    """File suffix or sample width is not one of the supported layouts."""


# ----------------------------------------------------------------------------
# Geolocation
# ----------------------------------------------------------------------------

class GeoError(GPRError):
    """Geolocation failed."""


class UnsupportedCrs(GeoError):
    """Source or target coordinate reference system cannot be resolved."""


class OutOfBounds(GeoError):
    """A trace position falls outside the DEM coverage."""

    def __init__(self, message: str, trace_index: int, filepath: Optional[str] = None):
        super().__init__(message, filepath)
        self.trace_index = trace_index


# ----------------------------------------------------------------------------
# Filtering
# ----------------------------------------------------------------------------

class FilterError(GPRError):
    """A filter rejected its input or produced an invalid result.

    Attributes
    ----------
    filter_name : str
        Name of the failing filter.
    index : int
        Position of the failing filter in the chain (0-based).
    radargram : Radargram or None
        Last valid state, i.e. the radargram before the failing filter ran.
        Set by the pipeline; never exported implicitly.
    """

    def __init__(self, message: str, filter_name: str, index: int = -1,
                 radargram: Optional["Radargram"] = None, filepath: Optional[str] = None):
        super().__init__(message, filepath)
        self.filter_name = filter_name
        self.index = index
        self.radargram = radargram

    def __str__(self) -> str:
        where = f"filter '{self.filter_name}'"
        if self.index >= 0:
            where += f" (step {self.index})"
        text = f"{where}: {self.message}"
        if self.filepath:
            return f"{self.filepath}: {text}"
        return text


class PreconditionUnmet(FilterError):
    """The radargram does not satisfy a declared filter precondition."""


class AlreadyApplied(FilterError):
    """A non-repeatable filter (or one of its exclusive group) is already in the log."""


class NumericInstability(FilterError):
    """The filter produced non-finite values or hit a degenerate input."""


# ----------------------------------------------------------------------------
# Merging
# ----------------------------------------------------------------------------

class MergeError(GPRError):
    """A merge group could not be concatenated."""


class IncompatibleGeometry(MergeError):
    """Members of a merge group differ in trace length, sample interval or CRS."""
