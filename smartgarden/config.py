"""
config.py - Controller settings
================================

Defaults, overridden by ../config.json when present, overridden again by
environment variables.

Env (overrides config.json if present):
  GARDEN_LOG_FILE=Measurements.txt
  FAN_THRESHOLD_C=32.0     # fan on strictly above this temperature
  DRY_RATIO=0.10           # water when current/baseline <= this ratio
  FALLBACK_BASELINE=700    # baseline used until the log holds one
  WATER_SECONDS=60         # valve open time
  SETTLE_SECONDS=60        # wait after the valve closes before re-baselining
  LOG_INTERVAL_MIN=100     # minutes between decision cycles
  SEA_LEVEL_HPA=1013.25
  VALVE_PIN=25
  FAN_PIN=24
  BMP280_ADDR=0x77
  SPI_CS=0
  MOCK_HARDWARE=0|1

Config file (optional): ../config.json
  {
    "log_file": "Measurements.txt",
    "thresholds": { "fan_c": 32.0, "dry_ratio": 0.10, "fallback_baseline": 700 },
    "watering":   { "seconds": 60, "settle_seconds": 60 },
    "pins":       { "valve": 25, "fan": 24 }
  }
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

REPO_ROOT = Path(__file__).parent.parent
CONFIG_FILE = REPO_ROOT / "config.json"


@dataclass(frozen=True)
class GardenConfig:
    # -------------------------------
    # Measurement log
    # -------------------------------
    log_file: str = "Measurements.txt"

    # -------------------------------
    # Decision policy
    # -------------------------------
    fan_threshold_c: float = 32.0
    dry_ratio: float = 0.10
    fallback_baseline: float = 700.0

    # -------------------------------
    # Watering (seconds)
    # -------------------------------
    water_seconds: float = 60.0
    settle_seconds: float = 60.0

    # -------------------------------
    # Scheduling
    # -------------------------------
    interval_minutes: int = 100

    # -------------------------------
    # Hardware
    # -------------------------------
    moisture_channels: tuple = (0, 1, 2, 3)
    valve_pin: int = 25
    fan_pin: int = 24
    bmp280_address: int = 0x77
    spi_chip_select: int = 0
    sea_level_hpa: float = 1013.25
    mock: bool = False

    def __post_init__(self):
        if not 0.0 < self.dry_ratio < 1.0:
            raise ValueError(f"dry_ratio must be between 0 and 1, got {self.dry_ratio}")
        if self.fallback_baseline <= 0:
            raise ValueError(f"fallback_baseline must be positive, got {self.fallback_baseline}")
        if self.water_seconds <= 0:
            raise ValueError(f"water_seconds must be positive, got {self.water_seconds}")
        if self.settle_seconds < 0:
            raise ValueError(f"settle_seconds must not be negative, got {self.settle_seconds}")
        if self.interval_minutes <= 0:
            raise ValueError(f"interval_minutes must be positive, got {self.interval_minutes}")
        if len(self.moisture_channels) != 4:
            raise ValueError("exactly four moisture channels are required")
        for ch in self.moisture_channels:
            if ch not in range(8):
                raise ValueError(f"Invalid moisture channel {ch}, must be 0-7")

    @property
    def log_path(self) -> Path:
        path = Path(self.log_file)
        return path if path.is_absolute() else REPO_ROOT / path


# ---------- Helpers ----------

def _load_config_file(path: Path) -> Dict[str, Any]:
    cfg = {}
    try:
        if path.exists():
            with open(path, "r") as f:
                cfg = json.load(f) or {}
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("failed to read %s: %s", path, e)
    return cfg


def _lookup(cfg: Dict[str, Any], path: str, default=None):
    """Walk a dotted path like 'thresholds.fan_c' through nested dicts."""
    cur = cfg
    for key in path.split("."):
        if not isinstance(cur, dict) or key not in cur:
            return default
        cur = cur[key]
    return cur


def _int_auto(value) -> int:
    """int() that also accepts hex/octal strings like '0x77'."""
    return int(value, 0) if isinstance(value, str) else int(value)


# config.json path -> (GardenConfig field, env variable, converter)
_FIELDS = {
    "log_file": ("log_file", "GARDEN_LOG_FILE", str),
    "thresholds.fan_c": ("fan_threshold_c", "FAN_THRESHOLD_C", float),
    "thresholds.dry_ratio": ("dry_ratio", "DRY_RATIO", float),
    "thresholds.fallback_baseline": ("fallback_baseline", "FALLBACK_BASELINE", float),
    "watering.seconds": ("water_seconds", "WATER_SECONDS", float),
    "watering.settle_seconds": ("settle_seconds", "SETTLE_SECONDS", float),
    "interval_minutes": ("interval_minutes", "LOG_INTERVAL_MIN", int),
    "sea_level_hpa": ("sea_level_hpa", "SEA_LEVEL_HPA", float),
    "pins.valve": ("valve_pin", "VALVE_PIN", int),
    "pins.fan": ("fan_pin", "FAN_PIN", int),
    "bmp280_address": ("bmp280_address", "BMP280_ADDR", _int_auto),
    "spi_chip_select": ("spi_chip_select", "SPI_CS", int),
}

# Env variable name -> config.json path
_ENV_KEYS = {env_var: path for path, (_, env_var, _) in _FIELDS.items()}


def load_config(config_file: Optional[Path] = None, env: Optional[Dict[str, str]] = None) -> GardenConfig:
    """Build a GardenConfig from defaults, config.json and the environment.

    File and environment values go through the same converters, so a
    quoted number in config.json is accepted and a bad one fails here
    rather than mid-cycle.

    Args:
        config_file: JSON file to read (default ../config.json)
        env: Mapping to read overrides from (default os.environ)

    Returns:
        Validated GardenConfig

    Raises:
        ValueError: if a value cannot be converted or fails validation
    """
    env = os.environ if env is None else env
    cfg = _load_config_file(Path(config_file) if config_file else CONFIG_FILE)

    overrides = {}
    for path, (field_name, env_var, convert) in _FIELDS.items():
        value = _lookup(cfg, path)
        if value is not None:
            try:
                overrides[field_name] = convert(value)
            except (TypeError, ValueError):
                raise ValueError(f"Invalid value for {path} in config file: {value!r}")

        raw = env.get(env_var)
        if raw is None or raw == "":
            continue
        try:
            overrides[field_name] = convert(raw)
        except ValueError:
            raise ValueError(f"Invalid value for {env_var}: {raw!r}")

    if env.get("MOCK_HARDWARE", "0") == "1":
        overrides["mock"] = True

    return replace(GardenConfig(), **overrides)
