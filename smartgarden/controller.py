"""
Irrigation Decision Cycle
=========================

One decision cycle:

1. Resolve the baseline moisture from the log and average its connected channels
2. Measure four moisture channels, temperature and pressure
3. Append the measurement to the log
4. Fan on iff temperature is above the fan threshold
5. Average the connected current channels (SensorsDisconnected if none)
6. If current/baseline <= dry ratio: water, let the soil settle, then
   append a fresh measurement flagged as the new baseline
7. Otherwise nothing more happens this cycle

The controller holds no state between cycles beyond what is in the log.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional, Protocol, Tuple

from .actuators import Fan, Solenoid, Waiter
from .baseline import connected_average, resolve_baseline
from .config import GardenConfig
from .errors import BaselineUnavailable, SensorsDisconnected
from .mcp3008 import Mcp3008
from .records import MeasurementLog, MeasurementRecord

logger = logging.getLogger(__name__)


class Barometer(Protocol):
    def read(self) -> Tuple[float, float]:
        """Return (celsius, pascals), temperature compensated first."""
        ...


@dataclass
class CycleResult:
    """What one decision cycle observed and did."""

    record: MeasurementRecord
    baseline: Tuple[float, ...]
    baseline_avg: float
    current_avg: float
    ratio: float
    fan_on: bool
    watered: bool = False
    baseline_record: Optional[MeasurementRecord] = None


class IrrigationController:
    """Runs decision cycles against injected sensors, actuators and log."""

    def __init__(self, adc: Mcp3008, barometer: Barometer, log: MeasurementLog,
                 valve: Solenoid, fan: Fan, config: Optional[GardenConfig] = None,
                 stop_event: Optional[threading.Event] = None,
                 wait: Optional[Waiter] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        """Initialize the controller.

        Args:
            adc: Moisture ADC
            barometer: Temperature/pressure source
            log: Measurement log
            valve: Water valve
            fan: Cooling fan
            config: Thresholds and durations (defaults if omitted)
            stop_event: Set to interrupt watering and settle waits on shutdown
            wait: Blocking wait returning True if interrupted (default stop_event.wait)
            clock: Timestamp source (default current UTC time)
        """
        self.adc = adc
        self.barometer = barometer
        self.log = log
        self.valve = valve
        self.fan = fan
        self.config = config or GardenConfig()
        self.stop_event = stop_event or threading.Event()
        self.wait = wait or self.stop_event.wait
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def measure(self, is_baseline: bool = False) -> MeasurementRecord:
        temperature, pressure = self.barometer.read()
        if pressure == 0:
            logger.warning("Pressure compensation unavailable this cycle, recording 0")
        moisture = self.adc.read_channels(self.config.moisture_channels)
        logger.debug("Moisture %s, %.2f degC, %.2f Pa", moisture, temperature, pressure)
        return MeasurementRecord(tuple(moisture), temperature, pressure, self.clock(), is_baseline)

    def current_baseline(self) -> Tuple[float, ...]:
        fallback = (self.config.fallback_baseline,) * 4
        try:
            text = self.log.read_text()
        except OSError as e:
            logger.warning("Measurement log unreadable, using fallback baseline: %s", e)
            text = ""
        return resolve_baseline(text, fallback)

    def run_cycle(self) -> CycleResult:
        """Run one decision cycle.

        Returns:
            CycleResult describing the measurement and any watering

        Raises:
            SensorsDisconnected: every current moisture channel read 0; the
                sample is still logged and the fan still set, nothing is watered
            BaselineUnavailable: every baseline channel is 0; the watering
                decision is skipped
        """
        baseline = self.current_baseline()
        baseline_avg = connected_average(baseline)

        record = self.measure(is_baseline=False)
        self.log.append(record)

        fan_on = record.temperature > self.config.fan_threshold_c
        self.fan.set(fan_on)

        current_avg = connected_average(record.moisture)
        if current_avg is None:
            raise SensorsDisconnected(record.moisture)
        if baseline_avg is None:
            raise BaselineUnavailable(baseline)

        ratio = current_avg / baseline_avg
        result = CycleResult(record, baseline, baseline_avg, current_avg, ratio, fan_on)
        logger.info("Moisture %.2f vs baseline %.2f (ratio %.3f)", current_avg, baseline_avg, ratio)

        if ratio <= self.config.dry_ratio:
            result.watered = self.valve.water(self.config.water_seconds, self.wait)
            if result.watered:
                result.baseline_record = self._rebaseline()
        return result

    def _rebaseline(self) -> Optional[MeasurementRecord]:
        if self.config.settle_seconds > 0 and self.wait(self.config.settle_seconds):
            logger.warning("Interrupted while the soil settled, baseline not updated")
            return None
        record = self.measure(is_baseline=True)
        self.log.append(record)
        logger.info("New baseline recorded: %s", list(record.moisture))
        return record

    def shutdown(self) -> None:
        """Leave the valve closed and the fan off."""
        self.stop_event.set()
        self.valve.close()
        self.fan.set(False)
