"""
BMP280 Factory Calibration
==========================

Reads the twelve trimming coefficients programmed into the BMP280 at the
factory. Register offsets follow the BST-BMP280-DS001 datasheet memory map
and must not be renumbered.
"""

import logging
import struct
from dataclasses import dataclass

from .errors import CalibrationError
from .hal import PeripheralBus

logger = logging.getLogger(__name__)

REG_CHIP_ID = 0xD0
BMP280_SIGNATURE = 0x58

# First coefficient register; dig_T1..dig_P9 follow as 16-bit little-endian pairs
REG_DIG_T1 = 0x88
CALIBRATION_LENGTH = 24

# T1 and P1 are unsigned, everything else signed
_CALIBRATION_FORMAT = "<HhhHhhhhhhhh"


@dataclass(frozen=True)
class CalibrationCoefficients:
    """Factory-programmed compensation coefficients, immutable once read."""

    dig_T1: int
    dig_T2: int
    dig_T3: int
    dig_P1: int
    dig_P2: int
    dig_P3: int
    dig_P4: int
    dig_P5: int
    dig_P6: int
    dig_P7: int
    dig_P8: int
    dig_P9: int

    @classmethod
    def from_bytes(cls, data: bytes) -> "CalibrationCoefficients":
        """Decode the 24-byte block starting at register 0x88."""
        if len(data) != CALIBRATION_LENGTH:
            raise CalibrationError(
                f"Calibration block must be {CALIBRATION_LENGTH} bytes, got {len(data)}"
            )
        return cls(*struct.unpack(_CALIBRATION_FORMAT, data))


class CalibrationStore:
    """Loads calibration from a BMP280 once per process."""

    def __init__(self, bus: PeripheralBus):
        self.bus = bus

    def read_signature(self) -> int:
        return self.bus.read_bytes(REG_CHIP_ID, 1)[0]

    def load(self) -> CalibrationCoefficients:
        """Verify the chip signature and read the coefficient table.

        Returns:
            CalibrationCoefficients

        Raises:
            CalibrationError: if the signature register does not read 0x58
            TransportError: if the bus fails; never retried here
        """
        signature = self.read_signature()
        logger.debug("BMP280 signature: 0x%02X", signature)
        if signature != BMP280_SIGNATURE:
            raise CalibrationError(
                f"BMP280 signature mismatch: expected 0x{BMP280_SIGNATURE:02X}, "
                f"read 0x{signature:02X}"
            )

        coeffs = CalibrationCoefficients.from_bytes(
            self.bus.read_bytes(REG_DIG_T1, CALIBRATION_LENGTH)
        )
        logger.info("BMP280 calibration loaded")
        return coeffs
