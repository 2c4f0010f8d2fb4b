import pytest
from datetime import datetime

from tests.helpers.synthetic import write_mala


@pytest.fixture
def survey_files(temp_dir):
    """Two Malå lines, 500 traces each, recorded 8 minutes apart."""
    first = write_mala(temp_dir, stem="line01", n_traces=500, start=datetime(2024, 6, 1, 12, 0, 0),
                       seed=1)
    # 500 traces at 0.5 s end at 12:04:09.5, the second line starts 8 min later
    second = write_mala(temp_dir, stem="line02", n_traces=500,
                        start=datetime(2024, 6, 1, 12, 12, 9, 500000), lon0=9.0005, seed=2)
    return [first, second]


@pytest.fixture
def broken_file(temp_dir):
    """Malå line whose data file is cut in the middle of a trace."""
    return write_mala(temp_dir, stem="broken", n_traces=10, truncate_bytes=3)
