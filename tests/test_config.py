"""
Tests for encounter tunables and JSON overrides.
"""

import json

import pytest

from config import ConfigError, EncounterConfig, load_config


class TestEncounterConfig:
    """Defaults, overrides and validation."""

    def test_defaults(self, encounter_config):
        assert encounter_config.poll_interval_ms == 600
        assert encounter_config.proximity_threshold == 6.0
        assert encounter_config.lunge_count == 5
        assert encounter_config.portal_blackout_delay_ms == 7500
        assert encounter_config.door_increment == 0.02

    def test_overrides_are_coerced(self, encounter_config):
        updated = encounter_config.with_overrides({"lunge_count": 3.0, "proximity_threshold": 4})
        assert updated.lunge_count == 3
        assert isinstance(updated.lunge_count, int)
        assert updated.proximity_threshold == 4.0
        assert isinstance(updated.proximity_threshold, float)
        assert encounter_config.lunge_count == 5

    def test_unknown_key_rejected(self, encounter_config):
        with pytest.raises(ConfigError, match="Unknown config keys"):
            encounter_config.with_overrides({"lunges": 3})

    @pytest.mark.parametrize("value", ["5", None, True, [1]])
    def test_non_numeric_rejected(self, encounter_config, value):
        with pytest.raises(ConfigError, match="must be numeric"):
            encounter_config.with_overrides({"lunge_count": value})

    @pytest.mark.parametrize(
        "overrides",
        [{"lunge_count": 5.9}, {"poll_interval_ms": 0.5}, {"portal_blackout_delay_ms": 7500.25}],
    )
    def test_fractional_values_for_whole_number_keys_rejected(self, encounter_config, overrides):
        with pytest.raises(ConfigError, match="whole number"):
            encounter_config.with_overrides(overrides)

    @pytest.mark.parametrize(
        "overrides",
        [
            {"poll_interval_ms": 0},
            {"proximity_threshold": 0},
            {"lunge_count": -1},
            {"lunge_ms": -10},
            {"impact_shake_ms": -1},
            {"lunge_stop_short": 1.5},
            {"door_increment": 0},
            {"portal_pull_rate": 0},
            {"portal_background_rate": 1.5},
            {"portal_scale_step": 0},
            {"portal_scale_cap": 0.001},
            {"portal_light_cap": 0},
        ],
    )
    def test_invalid_values_rejected(self, encounter_config, overrides):
        with pytest.raises(ConfigError):
            encounter_config.with_overrides(overrides)


class TestLoadConfig:
    """Reading overrides from disk."""

    def test_no_path_gives_defaults(self):
        assert load_config() == EncounterConfig()

    def test_file_overrides(self, tmp_path):
        path = tmp_path / "tuning.json"
        path.write_text(json.dumps({"portal_blackout_delay_ms": 3000, "lunge_stop_short": 0.5}))
        config = load_config(path)
        assert config.portal_blackout_delay_ms == 3000
        assert config.lunge_stop_short == 0.5
        assert config.lunge_count == 5

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="Cannot read"):
            load_config(tmp_path / "absent.json")

    def test_bad_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        with pytest.raises(ConfigError, match="not valid JSON"):
            load_config(path)

    def test_non_object_payload(self, tmp_path):
        path = tmp_path / "list.json"
        path.write_text("[1, 2]")
        with pytest.raises(ConfigError, match="JSON object"):
            load_config(str(path))
