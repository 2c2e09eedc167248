"""
BMP280 Temperature / Pressure Sensor
====================================

Thin driver over a PeripheralBus: runs the begin sequence (signature,
calibration, control registers), assembles raw 20-bit codes and hands them
to the compensation functions.
"""

import logging
from typing import Optional, Tuple

from .calibration import CalibrationCoefficients, CalibrationStore
from .compensation import (
    altitude_from_pressure,
    compensate_pressure,
    compensate_temperature,
    pressure_to_pascals,
)
from .hal import PeripheralBus

logger = logging.getLogger(__name__)

REG_CTRL_HUM = 0xF2
REG_CTRL_MEAS = 0xF4
REG_PRESS_MSB = 0xF7
REG_TEMP_MSB = 0xFA

# osrs_t x1, osrs_p x16, normal mode
CTRL_MEAS_VALUE = 0x3F
CTRL_HUM_VALUE = 0x03


def assemble_raw(data: bytes) -> int:
    """Combine MSB, LSB and XLSB<7:4> into a 20-bit code."""
    msb, lsb, xlsb = data[0], data[1], data[2]
    return (msb << 12) + (lsb << 4) + (xlsb >> 4)


class Bmp280:
    """BMP280 on a register bus; calibration is read lazily on first use."""

    def __init__(self, bus: PeripheralBus):
        self.bus = bus
        self.coefficients: Optional[CalibrationCoefficients] = None

    def begin(self) -> CalibrationCoefficients:
        """Verify the chip, read coefficients and start continuous measurement.

        Raises:
            CalibrationError: on signature mismatch
            TransportError: if the bus fails
        """
        if self.coefficients is None:
            self.coefficients = CalibrationStore(self.bus).load()
            self.bus.write_bytes(REG_CTRL_MEAS, bytes([CTRL_MEAS_VALUE]))
            self.bus.write_bytes(REG_CTRL_HUM, bytes([CTRL_HUM_VALUE]))
        return self.coefficients

    def read_raw_temperature(self) -> int:
        return assemble_raw(self.bus.read_bytes(REG_TEMP_MSB, 3))

    def read_raw_pressure(self) -> int:
        return assemble_raw(self.bus.read_bytes(REG_PRESS_MSB, 3))

    def read_temperature(self) -> Tuple[float, int]:
        """Return (celsius, fine)."""
        coeffs = self.begin()
        return compensate_temperature(self.read_raw_temperature(), coeffs)

    def read_pressure(self, fine: Optional[int] = None) -> float:
        """Return pressure in Pa.

        Args:
            fine: t_fine from read_temperature in this cycle; when omitted a
                temperature read is performed first
        """
        coeffs = self.begin()
        if fine is None:
            _, fine = self.read_temperature()
        return pressure_to_pascals(compensate_pressure(self.read_raw_pressure(), fine, coeffs))

    def read(self) -> Tuple[float, float]:
        """Return (celsius, pascals), temperature first."""
        celsius, fine = self.read_temperature()
        return celsius, self.read_pressure(fine)

    def read_altitude(self, sea_level_hpa: float = 1013.25) -> float:
        pascals = self.read_pressure()
        return altitude_from_pressure(pascals / 100.0, sea_level_hpa)
