"""
Test config.py - Defaults, config.json and environment overrides
"""

import json
import pytest
import sys
from pathlib import Path

# Add repo root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from smartgarden.config import REPO_ROOT, GardenConfig, load_config


class TestGardenConfig:
    """Test defaults and validation."""

    def test_defaults(self):
        config = GardenConfig()
        assert config.fan_threshold_c == 32.0
        assert config.dry_ratio == 0.10
        assert config.fallback_baseline == 700.0
        assert config.water_seconds == 60.0
        assert config.interval_minutes == 100
        assert config.moisture_channels == (0, 1, 2, 3)
        assert config.valve_pin == 25
        assert config.fan_pin == 24
        assert config.bmp280_address == 0x77

    def test_relative_log_path(self):
        assert GardenConfig().log_path == REPO_ROOT / "Measurements.txt"

    def test_absolute_log_path(self, tmp_path):
        path = tmp_path / "log.txt"
        assert GardenConfig(log_file=str(path)).log_path == path

    @pytest.mark.parametrize("kwargs", [
        {"dry_ratio": 0.0},
        {"dry_ratio": 1.5},
        {"water_seconds": 0},
        {"settle_seconds": -1},
        {"interval_minutes": 0},
        {"fallback_baseline": 0},
        {"moisture_channels": (0, 1, 2)},
        {"moisture_channels": (0, 1, 2, 8)},
    ])
    def test_invalid_values(self, kwargs):
        with pytest.raises(ValueError):
            GardenConfig(**kwargs)


class TestLoadConfig:
    """Test layered configuration loading."""

    def test_missing_file_gives_defaults(self, tmp_path):
        config = load_config(tmp_path / "absent.json", env={})
        assert config == GardenConfig()

    def test_nested_config_file(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({
            "log_file": "garden.txt",
            "thresholds": {"fan_c": 30.0, "dry_ratio": 0.2},
            "watering": {"seconds": 45, "settle_seconds": 10},
            "pins": {"valve": 17, "fan": 27},
        }))
        config = load_config(path, env={})
        assert config.log_file == "garden.txt"
        assert config.fan_threshold_c == 30.0
        assert config.dry_ratio == 0.2
        assert config.water_seconds == 45
        assert config.settle_seconds == 10
        assert config.valve_pin == 17
        assert config.fan_pin == 27

    def test_env_overrides_file(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"thresholds": {"fan_c": 30.0}}))
        env = {"FAN_THRESHOLD_C": "28.5", "LOG_INTERVAL_MIN": "15", "BMP280_ADDR": "0x76"}
        config = load_config(path, env=env)
        assert config.fan_threshold_c == 28.5
        assert config.interval_minutes == 15
        assert config.bmp280_address == 0x76

    def test_empty_env_value_ignored(self, tmp_path):
        config = load_config(tmp_path / "absent.json", env={"DRY_RATIO": ""})
        assert config.dry_ratio == 0.10

    def test_mock_hardware(self, tmp_path):
        assert load_config(tmp_path / "absent.json", env={"MOCK_HARDWARE": "1"}).mock is True
        assert load_config(tmp_path / "absent.json", env={"MOCK_HARDWARE": "0"}).mock is False

    def test_unconvertible_env_value(self, tmp_path):
        with pytest.raises(ValueError, match="WATER_SECONDS"):
            load_config(tmp_path / "absent.json", env={"WATER_SECONDS": "soon"})

    def test_out_of_range_env_value(self, tmp_path):
        with pytest.raises(ValueError):
            load_config(tmp_path / "absent.json", env={"DRY_RATIO": "2"})

    def test_corrupt_file_falls_back(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{not json")
        assert load_config(path, env={}) == GardenConfig()

    def test_fallback_baseline_configurable(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"thresholds": {"fallback_baseline": 650}}))
        assert load_config(path, env={}).fallback_baseline == 650.0
        assert load_config(path, env={"FALLBACK_BASELINE": "800"}).fallback_baseline == 800.0

    def test_file_values_converted(self, tmp_path):
        """Quoted numbers in config.json get the same conversion as env values."""
        path = tmp_path / "config.json"
        path.write_text(json.dumps({
            "thresholds": {"fan_c": "32", "dry_ratio": "0.15"},
            "pins": {"valve": "17"},
            "bmp280_address": "0x76",
        }))
        config = load_config(path, env={})
        assert config.fan_threshold_c == 32.0
        assert isinstance(config.fan_threshold_c, float)
        assert config.dry_ratio == 0.15
        assert config.valve_pin == 17
        assert config.bmp280_address == 0x76

    def test_numeric_address_in_file(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"bmp280_address": 118}))
        assert load_config(path, env={}).bmp280_address == 0x76

    @pytest.mark.parametrize("content", [
        {"thresholds": {"fan_c": "hot"}},
        {"pins": {"fan": [24]}},
        {"thresholds": {"fallback_baseline": 0}},
    ])
    def test_invalid_file_value_fails_at_load(self, tmp_path, content):
        path = tmp_path / "config.json"
        path.write_text(json.dumps(content))
        with pytest.raises(ValueError):
            load_config(path, env={})


if __name__ == "__main__":
    pytest.main([__file__])
