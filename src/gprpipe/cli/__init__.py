"""Command-line interface for gprpipe.

This package contains the execution logic, so scripts/ stay thin wrappers.
"""

from gprpipe.cli.main import run_cli, run_gprpipe, main

__all__ = ['run_cli', 'run_gprpipe', 'main']
