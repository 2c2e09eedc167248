"""
Fan and water valve drivers on top of the Actuator protocol.
"""

import logging
from contextlib import contextmanager
from typing import Callable, Iterator

from .hal import Actuator, Level

logger = logging.getLogger(__name__)

# Waits for `seconds`; returns True if woken early by a stop request
Waiter = Callable[[float], bool]


class Fan:
    """Cooling fan on a single output pin, off on initialization."""

    def __init__(self, actuator: Actuator):
        self.actuator = actuator
        self.is_on = False
        self.actuator.set_level(Level.LOW)

    def set(self, on: bool) -> None:
        self.actuator.set_level(Level.HIGH if on else Level.LOW)
        if on != self.is_on:
            logger.info("Fan %s", "on" if on else "off")
        self.is_on = on


class Solenoid:
    """Water valve; closed on initialization and after every watering."""

    def __init__(self, actuator: Actuator):
        self.actuator = actuator
        self.is_open = False
        self.close()

    def close(self) -> None:
        self.actuator.set_level(Level.LOW)
        self.is_open = False

    @contextmanager
    def opened(self) -> Iterator["Solenoid"]:
        """Hold the valve open for the body of the with-block."""
        self.actuator.set_level(Level.HIGH)
        self.is_open = True
        logger.info("Valve open")
        try:
            yield self
        finally:
            self.close()
            logger.info("Valve closed")

    def water(self, duration: float, wait: Waiter) -> bool:
        """Open the valve for `duration` seconds.

        Args:
            duration: Seconds to keep the valve open
            wait: Blocking wait returning True if interrupted by shutdown

        Returns:
            True if the full duration elapsed, False if cut short
        """
        with self.opened():
            interrupted = wait(duration)
        if interrupted:
            logger.warning("Watering interrupted before %.0f s elapsed", duration)
        return not interrupted
