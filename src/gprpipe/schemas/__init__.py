"""Pydantic configuration schemas for the gprpipe pipeline.

This module provides strictly typed configuration models for the GPR
processing pipeline. All configuration validation, coercion, and
normalization happens at schema validation time via Pydantic.

Exports
-------
resolve_config : function
    Single entrypoint for configuration resolution
load_user_config : function
    Read a ``CONFIG`` dict from a Python file
InternalConfig : class
    Fully validated, authoritative runtime configuration
ParamConfig : class
    Expert defaults (complete)
UserConfig : class
    User-facing configuration (forgiving, minimal)
CLIConfig : class
    Command-line operational overrides
"""

from gprpipe.schemas.resolve import resolve_config, load_user_config, deep_merge
from gprpipe.schemas.internal import InternalConfig
from gprpipe.schemas.param import ParamConfig
from gprpipe.schemas.user import UserConfig
from gprpipe.schemas.cli import CLIConfig

__all__ = [
    'resolve_config',
    'load_user_config',
    'deep_merge',
    'InternalConfig',
    'ParamConfig',
    'UserConfig',
    'CLIConfig',
]
