"""Tests for CLIConfig parsing and its internal overrides."""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from gprpipe.schemas import CLIConfig

pytestmark = pytest.mark.unit


def test_empty_cli_has_no_overrides():
    assert CLIConfig().to_internal_overrides() == {}


def test_quiet_lowers_level():
    assert CLIConfig(quiet=True).log_level == "WARNING"


def test_explicit_level_wins_over_quiet():
    assert CLIConfig(quiet=True, log_level="debug").log_level == "DEBUG"


@pytest.mark.parametrize("text,expected", [
    ("10 min", timedelta(minutes=10)),
    ("1h30m", timedelta(hours=1, minutes=30)),
    ("45s", timedelta(seconds=45)),
    (120, timedelta(seconds=120)),
])
def test_merge_durations(text, expected):
    assert CLIConfig(merge=text).merge == expected


def test_bad_duration_rejected():
    with pytest.raises(ValidationError):
        CLIConfig(merge="soon")


def test_negative_duration_rejected():
    with pytest.raises(ValidationError):
        CLIConfig(merge=-5)


def test_track_path_enables_track():
    overrides = CLIConfig(track_path="out/tracks").to_internal_overrides()
    assert overrides["export"] == {"track": True, "track_path": "out/tracks"}


def test_render_path_enables_render():
    overrides = CLIConfig(render_path="img.png").to_internal_overrides()
    assert overrides["render"] == {"enabled": True, "path": "img.png"}


def test_no_export_and_on_error():
    overrides = CLIConfig(no_export=True, on_error="abort", max_workers=3).to_internal_overrides()
    assert overrides["export"] == {"enabled": False}
    assert overrides["processor"] == {"max_workers": 3, "on_error": "abort"}


def test_unknown_field_rejected():
    with pytest.raises(ValidationError):
        CLIConfig(antenna_serial="A-1234")


def test_steps_from_file(temp_dir):
    steps = temp_dir / "steps.txt"
    steps.write_text("# chain\ndewow(5)\n\nbandpass(50 400)  # band\nauto_gain(100)\n")
    assert CLIConfig(steps=str(steps)).steps == ["dewow(5)", "bandpass(50 400)", "auto_gain(100)"]
