"""Root-level pytest fixtures for the gprpipe test suite.

Provides shared configuration fixtures following the Pydantic-based
configuration layers. Tests use these fixtures instead of raw dict configs.
"""

import pytest
from pathlib import Path
import tempfile
import shutil

from gprpipe.schemas import ParamConfig, UserConfig, CLIConfig, resolve_config

from tests.helpers.synthetic import make_radargram


# =============================================================================
# Configuration Fixtures (Pydantic-based)
# =============================================================================

@pytest.fixture
def param_config():
    """Expert configuration with all defaults."""
    return ParamConfig()


@pytest.fixture
def internal_config(param_config):
    """Fully validated runtime configuration (no overrides)."""
    return resolve_config(param_config, None, None)


@pytest.fixture
def make_config(param_config):
    """Factory fixture for creating custom test configs.

    Keyword arguments are UserConfig fields (flat aliases or nested
    sections); ``cli`` may hold a dict of CLIConfig overrides.

    Examples
    --------
    >>> def test_merge_threshold(make_config):
    ...     config = make_config(MERGE="10 min")
    ...     assert config.merge.threshold.total_seconds() == 600
    """
    def _make(cli=None, **user_overrides):
        user = UserConfig(**user_overrides) if user_overrides else None
        cli_cfg = CLIConfig(**cli) if cli else None
        return resolve_config(param_config, user, cli_cfg)

    return _make


# =============================================================================
# Data Fixtures
# =============================================================================

@pytest.fixture
def radargram():
    """Small ungeolocated radargram."""
    return make_radargram()


@pytest.fixture
def located_radargram():
    """Small radargram with projected positions (EPSG:32632)."""
    return make_radargram(geolocated=True)


# =============================================================================
# Directory Fixtures
# =============================================================================

@pytest.fixture
def temp_dir():
    """Temporary directory that is cleaned up after test."""
    d = tempfile.mkdtemp()
    yield Path(d)
    shutil.rmtree(d, ignore_errors=True)
