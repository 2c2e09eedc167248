"""
Hardware Abstraction Layer for the Garden Controller
====================================================

Defines protocols for the collaborators the decision engine talks to (the
BMP280 register bus, the MCP3008 SPI transport, digital output pins and the
measurement log store). Provides real implementations on Adafruit Blinka and
mock implementations for testing and for running without a Pi.
"""

import os
import struct
import tempfile
import logging
from enum import Enum
from pathlib import Path
from typing import Protocol, Optional, Dict, List

from .errors import LogUnavailable, TransportError

logger = logging.getLogger(__name__)


class Level(Enum):
    """Logic level of a digital output pin."""

    LOW = 0
    HIGH = 1


class PeripheralBus(Protocol):
    """Protocol for a register-addressed peripheral (I2C)."""

    def read_bytes(self, register: int, length: int = 1) -> bytes:
        """Read `length` consecutive bytes starting at `register`."""
        ...

    def write_bytes(self, register: int, data: bytes) -> None:
        """Write `data` starting at `register`."""
        ...


class SpiTransport(Protocol):
    """Protocol for a full-duplex SPI transport."""

    def transfer_full_duplex(self, tx: bytes) -> bytes:
        """Clock out `tx` and return the bytes clocked in, same length."""
        ...


class Actuator(Protocol):
    """Protocol for a digital output driving a relay or MOSFET."""

    def set_level(self, level: Level) -> None:
        ...


class LogStore(Protocol):
    """Protocol for whole-text durable storage of the measurement log."""

    def read_all(self) -> str:
        """Return the stored text.

        Raises:
            LogUnavailable: if nothing has ever been written
        """
        ...

    def write_all(self, text: str) -> None:
        ...


# ---------- Real hardware (Adafruit Blinka) ----------

def _import_error(e: Exception) -> TransportError:
    return TransportError(f"Adafruit Blinka libraries not available: {e}")


class BlinkaI2CBus:
    """BMP280 register access over I2C using adafruit_bus_device."""

    def __init__(self, address: int = 0x77):
        """Open the I2C bus and probe the device.

        Args:
            address: I2C address (0x77 on the Adafruit breakout, 0x76 otherwise)
        """
        try:
            import board
            import busio
            from adafruit_bus_device.i2c_device import I2CDevice
        except (ImportError, NotImplementedError, RuntimeError) as e:
            raise _import_error(e)

        self.address = address
        try:
            self.i2c = busio.I2C(board.SCL, board.SDA)
            self.device = I2CDevice(self.i2c, address)
        except (OSError, ValueError, RuntimeError, AttributeError) as e:
            raise TransportError(f"No I2C device at 0x{address:02X}: {e}")

    def read_bytes(self, register: int, length: int = 1) -> bytes:
        buf = bytearray(length)
        try:
            with self.device as dev:
                dev.write_then_readinto(bytes([register]), buf)
        except OSError as e:
            raise TransportError(f"I2C read of 0x{register:02X} failed: {e}")
        return bytes(buf)

    def write_bytes(self, register: int, data: bytes) -> None:
        try:
            with self.device as dev:
                dev.write(bytes([register]) + bytes(data))
        except OSError as e:
            raise TransportError(f"I2C write of 0x{register:02X} failed: {e}")


class BlinkaSpiTransport:
    """MCP3008 transport over SPI0 using adafruit_bus_device."""

    # 3.6MHz is the rated speed of the MCP3008 at 5V
    BAUDRATE = 3_600_000

    def __init__(self, chip_select: int = 0):
        try:
            import board
            import busio
            import digitalio
            from adafruit_bus_device.spi_device import SPIDevice
        except (ImportError, NotImplementedError, RuntimeError) as e:
            raise _import_error(e)

        if chip_select not in (0, 1):
            raise ValueError(f"Invalid chip select {chip_select}, must be 0 or 1")

        try:
            spi = busio.SPI(board.SCK, MOSI=board.MOSI, MISO=board.MISO)
            cs = digitalio.DigitalInOut(board.CE0 if chip_select == 0 else board.CE1)
            self.device = SPIDevice(spi, cs, baudrate=self.BAUDRATE, polarity=0, phase=0)
        except (OSError, ValueError, RuntimeError, AttributeError) as e:
            raise TransportError(f"SPI chip select {chip_select} unavailable: {e}")

    def transfer_full_duplex(self, tx: bytes) -> bytes:
        rx = bytearray(len(tx))
        try:
            with self.device as spi:
                spi.write_readinto(bytes(tx), rx)
        except OSError as e:
            raise TransportError(f"SPI transfer failed: {e}")
        return bytes(rx)


class BlinkaDigitalOut:
    """GPIO output pin via digitalio, driven LOW on open."""

    def __init__(self, pin: int):
        try:
            import board
            import digitalio
        except (ImportError, NotImplementedError, RuntimeError) as e:
            raise _import_error(e)

        board_pin = getattr(board, f"D{pin}", None)
        if board_pin is None:
            raise TransportError(f"GPIO {pin} not available on this board")

        self.pin = pin
        self.io = digitalio.DigitalInOut(board_pin)
        self.io.switch_to_output(value=False)

    def set_level(self, level: Level) -> None:
        self.io.value = level is Level.HIGH


# ---------- Mocks ----------

# BMP280 datasheet (BST-BMP280-DS001) section 8.2 example coefficients
DATASHEET_COEFFICIENTS = {
    "dig_T1": 27504, "dig_T2": 26435, "dig_T3": -1000,
    "dig_P1": 36477, "dig_P2": -10685, "dig_P3": 3024,
    "dig_P4": 2855, "dig_P5": 140, "dig_P6": -7,
    "dig_P7": 15500, "dig_P8": -14600, "dig_P9": 6000,
}
DATASHEET_RAW_TEMPERATURE = 519888
DATASHEET_RAW_PRESSURE = 415148


def _raw_to_registers(raw: int) -> List[int]:
    """Split a 20-bit code into MSB, LSB, XLSB<7:4> register bytes."""
    return [(raw >> 12) & 0xFF, (raw >> 4) & 0xFF, (raw & 0x0F) << 4]


class MockI2CBus:
    """Mock BMP280 register file preloaded with the datasheet example."""

    def __init__(self, address: int = 0x77, chip_id: int = 0x58,
                 coefficients: Optional[Dict[str, int]] = None):
        self.address = address
        self.registers: Dict[int, int] = {}
        self.writes: List[tuple] = []
        self.fail = False

        coeffs = dict(DATASHEET_COEFFICIENTS)
        if coefficients:
            coeffs.update(coefficients)
        self.load_coefficients(coeffs)
        self.registers[0xD0] = chip_id
        self.set_raw_temperature(DATASHEET_RAW_TEMPERATURE)
        self.set_raw_pressure(DATASHEET_RAW_PRESSURE)

    def load_coefficients(self, coeffs: Dict[str, int]) -> None:
        names = ["dig_T1", "dig_T2", "dig_T3", "dig_P1", "dig_P2", "dig_P3",
                 "dig_P4", "dig_P5", "dig_P6", "dig_P7", "dig_P8", "dig_P9"]
        for i, name in enumerate(names):
            unsigned = name in ("dig_T1", "dig_P1")
            lo, hi = struct.pack("<H" if unsigned else "<h", coeffs[name])
            self.registers[0x88 + 2 * i] = lo
            self.registers[0x89 + 2 * i] = hi

    def set_raw_temperature(self, raw: int) -> None:
        for i, b in enumerate(_raw_to_registers(raw)):
            self.registers[0xFA + i] = b

    def set_raw_pressure(self, raw: int) -> None:
        for i, b in enumerate(_raw_to_registers(raw)):
            self.registers[0xF7 + i] = b

    def read_bytes(self, register: int, length: int = 1) -> bytes:
        if self.fail:
            raise TransportError(f"Mock I2C read of 0x{register:02X} failed")
        return bytes(self.registers.get(register + i, 0x00) for i in range(length))

    def write_bytes(self, register: int, data: bytes) -> None:
        if self.fail:
            raise TransportError(f"Mock I2C write of 0x{register:02X} failed")
        self.writes.append((register, bytes(data)))
        for i, b in enumerate(data):
            self.registers[register + i] = b


class MockSpiTransport:
    """Mock MCP3008 answering each frame with a fixed per-channel code."""

    def __init__(self, values: Optional[Dict[int, int]] = None):
        # Deterministic moist-soil readings on the four moisture channels
        self.values = {0: 512, 1: 498, 2: 505, 3: 520}
        if values is not None:
            self.values = dict(values)
        self.transfers: List[bytes] = []
        self.fail = False

    def transfer_full_duplex(self, tx: bytes) -> bytes:
        if self.fail:
            raise TransportError("Mock SPI transfer failed")
        if len(tx) != 3:
            raise TransportError(f"MCP3008 frames are 3 bytes, got {len(tx)}")
        self.transfers.append(bytes(tx))
        channel = (tx[1] >> 4) & 0x07
        value = self.values.get(channel, 0)
        return bytes([0x00, (value >> 8) & 0x03, value & 0xFF])


class MockActuator:
    """Mock output pin recording every level it is driven to."""

    def __init__(self, pin: int = 0):
        self.pin = pin
        self.level = Level.LOW
        self.history: List[Level] = []

    def set_level(self, level: Level) -> None:
        self.level = level
        self.history.append(level)


# ---------- Log stores ----------

class FileLogStore:
    """Measurement log kept as a single text file, written atomically."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def read_all(self) -> str:
        try:
            # Undecodable bytes become U+FFFD so only their line fails to parse
            with open(self.path, "r", encoding="utf-8", errors="replace") as f:
                return f.read()
        except FileNotFoundError:
            raise LogUnavailable(f"{self.path} not found")

    def write_all(self, text: str) -> None:
        # Write to temporary file first, then rename over the log
        temp_fd, temp_path = tempfile.mkstemp(suffix=".tmp", dir=self.path.parent)
        try:
            with os.fdopen(temp_fd, "w", encoding="utf-8", newline="") as f:
                f.write(text)
            os.replace(temp_path, self.path)
        except Exception:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise


class MemoryLogStore:
    """In-memory log store for tests and dry runs."""

    def __init__(self, text: Optional[str] = None):
        self.text = text
        self.writes = 0

    def read_all(self) -> str:
        if self.text is None:
            raise LogUnavailable("log has never been written")
        return self.text

    def write_all(self, text: str) -> None:
        self.text = text
        self.writes += 1


# ---------- Factories ----------

def _mock_requested(mock: bool) -> bool:
    return mock or os.getenv("MOCK_HARDWARE", "0") == "1"


def create_i2c_bus(address: int = 0x77, mock: bool = False) -> PeripheralBus:
    """Factory function to create the BMP280 register bus.

    Args:
        address: I2C address of the BMP280
        mock: If True, return mock implementation

    Returns:
        PeripheralBus instance (real or mock)

    Raises:
        TransportError: if real hardware is requested but unavailable
    """
    if _mock_requested(mock):
        return MockI2CBus(address)
    return BlinkaI2CBus(address)


def create_spi_transport(chip_select: int = 0, mock: bool = False) -> Optional[SpiTransport]:
    """Factory function to create the MCP3008 transport.

    Returns:
        SpiTransport instance, or None if the SPI bus is unavailable. The
        ADC reader then yields 0 on every channel, which the decision cycle
        reports as disconnected sensors.
    """
    if _mock_requested(mock):
        return MockSpiTransport()
    try:
        return BlinkaSpiTransport(chip_select)
    except TransportError as e:
        logger.warning("SPI transport unavailable, moisture channels will read 0: %s", e)
        return None


def create_actuator(pin: int, mock: bool = False) -> Actuator:
    """Factory function to create a digital output.

    Raises:
        TransportError: if real hardware is requested but unavailable
    """
    if _mock_requested(mock):
        return MockActuator(pin)
    return BlinkaDigitalOut(pin)
