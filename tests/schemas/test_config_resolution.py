"""Test config resolution and validation with Pydantic."""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from gprpipe.schemas import ParamConfig, UserConfig, CLIConfig, InternalConfig, deep_merge
from gprpipe.schemas.resolve import resolve_config, load_user_config

pytestmark = pytest.mark.unit


class TestConfigResolution:
    """Test resolve_config() precedence and merging."""

    def test_resolve_config_all_defaults(self):
        config = resolve_config(ParamConfig(), None, None)

        assert isinstance(config, InternalConfig)
        assert config.reader.medium_velocity == 0.168
        assert config.processing.profile is None
        assert config.processing.steps == []
        assert config.merge.threshold is None
        assert config.export.enabled is True
        assert config.export.compression_level == 4
        assert config.render.enabled is False
        assert config.processor.on_error == "continue"
        assert config.logging.level == "INFO"

    def test_user_config_overrides_param_config(self):
        config = resolve_config(ParamConfig(), UserConfig(VELOCITY=0.1), None)
        assert config.reader.medium_velocity == 0.1

    def test_cli_overrides_user(self):
        user = UserConfig(VELOCITY=0.1, MERGE="5 min", PROFILE="default")
        cli = CLIConfig(velocity=0.12, merge="10 min")
        config = resolve_config(ParamConfig(), user, cli)

        assert config.reader.medium_velocity == 0.12
        assert config.merge.threshold == timedelta(minutes=10)
        # Untouched by the CLI
        assert config.processing.profile == "default"

    def test_cli_steps_replace_user_profile(self):
        user = UserConfig(PROFILE="default")
        cli = CLIConfig(steps="dewow(5),auto_gain(50)")
        config = resolve_config(ParamConfig(), user, cli)

        assert config.processing.profile is None
        assert config.processing.steps == ["dewow(5)", "auto_gain(50)"]

    def test_cli_profile_replaces_user_steps(self):
        user = UserConfig(STEPS=["dewow"])
        config = resolve_config(ParamConfig(), user, CLIConfig(profile="default_with_topo"))

        assert config.processing.profile == "default_with_topo"
        assert config.processing.steps == []

    def test_profile_and_steps_together_rejected(self):
        with pytest.raises(ValidationError, match="either a processing profile"):
            resolve_config(ParamConfig(), {"processing": {"profile": "default", "steps": ["dewow"]}})

    def test_dict_inputs_are_validated(self):
        config = resolve_config({}, {"VELOCITY": 0.09}, {"max_workers": 2})
        assert config.reader.medium_velocity == 0.09
        assert config.processor.max_workers == 2

    def test_internal_config_is_frozen(self, internal_config):
        with pytest.raises(ValidationError):
            internal_config.reader = None

    def test_invalid_velocity_rejected(self):
        with pytest.raises(ValidationError):
            resolve_config(ParamConfig(), UserConfig(VELOCITY=-0.1))

    def test_unknown_profile_rejected(self):
        with pytest.raises(ValidationError):
            resolve_config(ParamConfig(), UserConfig(PROFILE="fancy"))

    def test_make_config_fixture(self, make_config):
        config = make_config(MERGE="90s", cli={"quiet": True})
        assert config.merge.threshold == timedelta(seconds=90)
        assert config.logging.level == "WARNING"


class TestDeepMerge:

    def test_nested_values_merge(self):
        base = {"a": {"x": 1, "y": 2}, "b": 3}
        merged = deep_merge(base, {"a": {"y": 20}}, {"b": 30})
        assert merged == {"a": {"x": 1, "y": 20}, "b": 30}
        assert base == {"a": {"x": 1, "y": 2}, "b": 3}


class TestLoadUserConfig:

    def test_load_config_file(self, temp_dir):
        path = temp_dir / "user_config.py"
        path.write_text('CONFIG = {"VELOCITY": 0.1, "MERGE": "10 min", "TRACK": True}\n')
        user = load_user_config(path)
        config = resolve_config(ParamConfig(), user)

        assert config.reader.medium_velocity == 0.1
        assert config.export.track is True

    def test_missing_config_dict(self, temp_dir):
        path = temp_dir / "empty.py"
        path.write_text("X = 1\n")
        with pytest.raises(ValueError, match="CONFIG"):
            load_user_config(path)

    def test_missing_file(self, temp_dir):
        with pytest.raises(FileNotFoundError):
            load_user_config(temp_dir / "absent.py")
