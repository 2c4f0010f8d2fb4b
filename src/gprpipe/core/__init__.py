"""Core data model and error taxonomy."""

from gprpipe.core.radargram import Radargram, SurveyMetadata, AppliedFilter
from gprpipe.core.errors import (
    GPRError,
    FormatError,
    InvalidHeader,
    TruncatedData,
    MissingTiming,
    UnsupportedFormatVariant,
    GeoError,
    UnsupportedCrs,
    OutOfBounds,
    FilterError,
    PreconditionUnmet,
    AlreadyApplied,
    NumericInstability,
    MergeError,
    IncompatibleGeometry,
)

__all__ = [
    "Radargram",
    "SurveyMetadata",
    "AppliedFilter",
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
