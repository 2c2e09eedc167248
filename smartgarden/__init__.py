"""
SmartGarden Irrigation Package
==============================

Unattended irrigation for a single garden bed. Samples soil moisture through
an MCP3008 ADC and temperature/pressure through a BMP280, keeps a plain-text
measurement log, and drives a water valve and cooling fan.
"""

from .errors import (
    GardenError,
    CalibrationError,
    TransportError,
    LogParseError,
    LogUnavailable,
    SensorsDisconnected,
    BaselineUnavailable,
)
from .calibration import CalibrationCoefficients, CalibrationStore
from .compensation import (
    compensate_temperature,
    compensate_pressure,
    pressure_to_pascals,
    altitude_from_pressure,
)
from .mcp3008 import Mcp3008, build_command, decode_response, validate_sample
from .bmp280 import Bmp280
from .records import MeasurementRecord, MeasurementLog, parse_log, validate_log_integrity
from .baseline import resolve_baseline, connected_average, FALLBACK_BASELINE
from .actuators import Fan, Solenoid
from .controller import IrrigationController, CycleResult
from .config import GardenConfig, load_config

__version__ = "1.0.0"

__all__ = [
    # Errors
    "GardenError",
    "CalibrationError",
    "TransportError",
    "LogParseError",
    "LogUnavailable",
    "SensorsDisconnected",
    "BaselineUnavailable",

    # BMP280 calibration and compensation
    "CalibrationCoefficients",
    "CalibrationStore",
    "compensate_temperature",
    "compensate_pressure",
    "pressure_to_pascals",
    "altitude_from_pressure",
    "Bmp280",

    # MCP3008 frame codec
    "Mcp3008",
    "build_command",
    "decode_response",
    "validate_sample",

    # Measurement log
    "MeasurementRecord",
    "MeasurementLog",
    "parse_log",
    "validate_log_integrity",
    "resolve_baseline",
    "connected_average",
    "FALLBACK_BASELINE",

    # Decision cycle
    "Fan",
    "Solenoid",
    "IrrigationController",
    "CycleResult",
    "GardenConfig",
    "load_config",
]
