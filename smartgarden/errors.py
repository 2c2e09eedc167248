"""
Error Taxonomy for the Garden Controller
========================================

Every condition the decision cycle can surface derives from GardenError so
callers (the daemon, the CLI) can catch the whole family in one place.
"""

from typing import Optional, Sequence


class GardenError(Exception):
    """Base class for all garden controller errors."""


class CalibrationError(GardenError):
    """BMP280 signature mismatch; the compensation engine cannot run."""


class TransportError(GardenError):
    """A bus or pin transaction failed or the transport is unavailable."""


class LogParseError(GardenError, ValueError):
    """A single measurement log line could not be parsed."""

    def __init__(self, message: str, line: str = "", line_number: Optional[int] = None):
        self.line = line
        self.line_number = line_number
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)


class LogUnavailable(GardenError):
    """The log store has never been written."""


class SensorsDisconnected(GardenError):
    """All current moisture channels read 0."""

    def __init__(self, values: Sequence[float]):
        self.values = tuple(values)
        super().__init__(f"Sensors disconnected, all moisture channels read 0: {list(self.values)}")


class BaselineUnavailable(GardenError):
    """Every baseline channel reads 0 so no dryness ratio can be formed."""

    def __init__(self, baseline: Sequence[float]):
        self.baseline = tuple(baseline)
        super().__init__(f"Baseline unavailable, no connected baseline channels: {list(self.baseline)}")
