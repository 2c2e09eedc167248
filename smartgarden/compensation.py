"""
BMP280 Compensation Formulas
============================

Pure functions converting raw BMP280 ADC codes into physical units using the
factory calibration coefficients. Formulas follow the BST-BMP280-DS001
datasheet: temperature in double precision (section 8.1), pressure in 64-bit
fixed point (section 3.11.3).

Temperature compensation returns the "fine" temperature alongside degrees
Celsius; pressure compensation takes it as an argument, so the ordering
between the two is carried in the call signatures rather than in shared state.
"""

import logging
from typing import Tuple

from .calibration import CalibrationCoefficients

logger = logging.getLogger(__name__)

RAW_CODE_MAX = 0xFFFFF  # 20-bit ADC output

INT64_MIN = -(1 << 63)
INT64_MAX = (1 << 63) - 1

Q24_8_SCALE = 256.0


class _Int64Overflow(ArithmeticError):
    pass


def _int64(value: int) -> int:
    if not INT64_MIN <= value <= INT64_MAX:
        raise _Int64Overflow(value)
    return value


def _div_trunc(numerator: int, denominator: int) -> int:
    # C integer division truncates toward zero; Python's // floors
    quotient = abs(numerator) // abs(denominator)
    return quotient if (numerator >= 0) == (denominator >= 0) else -quotient


def _check_raw(raw: int, name: str) -> None:
    if not 0 <= raw <= RAW_CODE_MAX:
        raise ValueError(f"{name} must be a 20-bit code (0-{RAW_CODE_MAX}), got {raw}")


def compensate_temperature(raw_temp: int, coeffs: CalibrationCoefficients) -> Tuple[float, int]:
    """Convert a raw temperature code to degrees Celsius.

    Args:
        raw_temp: 20-bit temperature code (adc_T)
        coeffs: Factory calibration

    Returns:
        (celsius, fine) where fine is the t_fine value pressure compensation needs

    Example:
        # Datasheet example: adc_T=519888 -> 25.08 degC, t_fine=128422
        celsius, fine = compensate_temperature(519888, coeffs)

    Note:
        var2 uses the datasheet's squared term. Logs written by the earlier
        SmartGarden firmware, which left it unsquared, read about 0.05 degC
        lower around room temperature (25.03 vs 25.08 degC for the example
        above), and their pressures shift slightly through t_fine. Compare
        historical temperatures with that offset in mind.
    """
    _check_raw(raw_temp, "raw_temp")

    offset_fine = raw_temp / 16384.0 - coeffs.dig_T1 / 1024.0
    var1 = offset_fine * coeffs.dig_T2

    offset_coarse = raw_temp / 131072.0 - coeffs.dig_T1 / 8192.0
    var2 = (offset_coarse * offset_coarse) * coeffs.dig_T3

    fine = int(var1 + var2)
    celsius = (var1 + var2) / 5120.0
    return celsius, fine


def compensate_pressure(raw_pres: int, fine: int, coeffs: CalibrationCoefficients) -> int:
    """Convert a raw pressure code to pascals in Q24.8 fixed point.

    Output value of 24674867 represents 24674867/256 = 96386.2 Pa.

    Args:
        raw_pres: 20-bit pressure code (adc_P)
        fine: t_fine from compensate_temperature in the same cycle
        coeffs: Factory calibration

    Returns:
        Pressure in Pa as Q24.8, or 0 when the formula degenerates (zero
        denominator or an intermediate outside the signed 64-bit range).
        Callers should treat 0 as "unavailable" rather than a vacuum reading.
    """
    _check_raw(raw_pres, "raw_pres")

    try:
        var1 = _int64(fine - 128000)
        var2 = _int64(var1 * var1 * coeffs.dig_P6)
        var2 = _int64(var2 + _int64((var1 * coeffs.dig_P5) << 17))
        var2 = _int64(var2 + (coeffs.dig_P4 << 35))
        var1 = _int64(_int64((var1 * var1 * coeffs.dig_P3) >> 8) + _int64((var1 * coeffs.dig_P2) << 12))
        var1 = _int64(_int64(((1 << 47) + var1) * coeffs.dig_P1) >> 33)
        if var1 == 0:
            logger.warning("pressure compensation denominator is zero, returning 0")
            return 0

        p = 1048576 - raw_pres
        p = _div_trunc(_int64(_int64((p << 31) - var2) * 3125), var1)
        var1 = _int64(coeffs.dig_P9 * (p >> 13) * (p >> 13)) >> 25
        var2 = _int64(coeffs.dig_P8 * p) >> 19
        return _int64(((p + var1 + var2) >> 8) + (coeffs.dig_P7 << 4))
    except _Int64Overflow as e:
        logger.warning("pressure compensation overflowed 64 bits (%s), returning 0", e)
        return 0


def pressure_to_pascals(q24_8: int) -> float:
    """Convert Q24.8 fixed-point pressure to pascals."""
    return q24_8 / Q24_8_SCALE


def altitude_from_pressure(pressure_hpa: float, sea_level_hpa: float = 1013.25) -> float:
    """Estimate altitude with the international barometric formula.

    Args:
        pressure_hpa: Measured pressure in hectopascals
        sea_level_hpa: Current sea-level pressure in hectopascals

    Returns:
        Altitude in metres
    """
    if sea_level_hpa <= 0:
        raise ValueError(f"sea_level_hpa must be positive, got {sea_level_hpa}")
    if pressure_hpa < 0:
        raise ValueError(f"pressure_hpa must not be negative, got {pressure_hpa}")
    return 44330.0 * (1.0 - (pressure_hpa / sea_level_hpa) ** 0.1903)
