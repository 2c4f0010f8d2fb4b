"""Tests for UserConfig aliases and normalization."""

from datetime import timedelta

import pytest

from gprpipe.schemas import ParamConfig, UserConfig, resolve_config

pytestmark = pytest.mark.unit


def test_flat_aliases_map_to_sections():
    user = UserConfig(VELOCITY=1 / 10, CRS="EPSG:32633", DEM="dem.tif", OUTPUT="out",
                      TRACK=True, RENDER=True, MAX_WORKERS=2, ON_ERROR="abort", LOG_LEVEL="debug")
    overrides = user.to_internal_overrides()

    assert overrides["reader"] == {"medium_velocity": 0.1}
    assert overrides["geolocation"] == {"crs": "EPSG:32633", "dem_path": "dem.tif"}
    assert overrides["export"] == {"output_path": "out", "track": True}
    assert overrides["render"] == {"enabled": True}
    assert overrides["processor"] == {"max_workers": 2, "on_error": "abort"}
    assert overrides["logging"] == {"level": "DEBUG"}


def test_integer_velocity_accepted():
    assert UserConfig(VELOCITY=0).velocity == 0.0


def test_profile_name_normalized():
    assert UserConfig(PROFILE="Default-With-Topo").profile == "default_with_topo"


def test_lowercase_field_names_accepted():
    user = UserConfig(velocity=0.1, merge="2 min")
    assert user.velocity == 0.1
    assert user.merge == timedelta(minutes=2)


def test_unknown_keys_ignored():
    user = UserConfig(VELOCITY=0.1, ANTENNA_SERIAL="A-1234")
    assert user.to_internal_overrides() == {"reader": {"medium_velocity": 0.1}}


def test_nested_sections_win_over_flat_aliases():
    user = UserConfig(RENDER=False, render_config={"enabled": True, "dpi": 300, "cmap": "seismic"})
    config = resolve_config(ParamConfig(), user)
    assert config.render.enabled is True
    assert config.render.dpi == 300
    assert config.render.cmap == "seismic"


def test_nested_reader_section():
    user = UserConfig(reader={"medium_velocity": 0.11, "cor_path": "track.cor"})
    config = resolve_config(ParamConfig(), user)
    assert config.reader.medium_velocity == 0.11
    assert config.reader.cor_path == "track.cor"


def test_step_string_split_on_commas_outside_parentheses():
    user = UserConfig(STEPS="dewow(5), bandpass(50,400), auto_gain")
    assert user.steps == ["dewow(5)", "bandpass(50,400)", "auto_gain"]
