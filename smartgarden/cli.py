#!/usr/bin/env python3
"""
cli.py - SmartGarden irrigation controller
==========================================

Wires the BMP280, MCP3008, valve, fan and measurement log together and runs
decision cycles, either once or as a daemon.

Usage:
  smartgarden --once            # one decision cycle then exit
  smartgarden --interval 100    # daemon, cycle every 100 minutes
  smartgarden --mock --once     # run against mock hardware
  smartgarden --stats           # summarize the measurement log
"""

import argparse
import json
import logging
import signal
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional

from .actuators import Fan, Solenoid
from .bmp280 import Bmp280
from .config import GardenConfig, load_config
from .controller import IrrigationController
from .errors import GardenError
from .hal import FileLogStore, create_actuator, create_i2c_bus, create_spi_transport
from .mcp3008 import Mcp3008
from .records import MeasurementLog
from .runner import GardenDaemon

logger = logging.getLogger(__name__)


def build_controller(config: GardenConfig) -> IrrigationController:
    """Create the hardware collaborators and the controller.

    Raises:
        CalibrationError: BMP280 signature mismatch
        TransportError: I2C bus or GPIO pins unavailable
    """
    barometer = Bmp280(create_i2c_bus(config.bmp280_address, mock=config.mock))
    barometer.begin()

    adc = Mcp3008(create_spi_transport(config.spi_chip_select, mock=config.mock))
    fan = Fan(create_actuator(config.fan_pin, mock=config.mock))
    valve = Solenoid(create_actuator(config.valve_pin, mock=config.mock))
    log = MeasurementLog(FileLogStore(config.log_path))

    return IrrigationController(adc, barometer, log, valve, fan, config)


def print_stats(config: GardenConfig) -> None:
    log = MeasurementLog(FileLogStore(config.log_path))
    print(json.dumps(log.get_log_stats(), indent=2))


def main(argv: Optional[list] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Soil-moisture irrigation controller for Raspberry Pi"
    )
    parser.add_argument("--once", action="store_true",
                        help="Run one decision cycle then exit")
    parser.add_argument("--interval", type=int, default=None,
                        help="Daemon interval minutes (default: LOG_INTERVAL_MIN or 100)")
    parser.add_argument("--log-file", type=Path, default=None,
                        help="Measurement log path (default: Measurements.txt)")
    parser.add_argument("--config", type=Path, default=None,
                        help="Path to config.json")
    parser.add_argument("--mock", action="store_true",
                        help="Use mock hardware")
    parser.add_argument("--stats", action="store_true",
                        help="Print measurement log statistics and exit")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        config = load_config(args.config)
        overrides = {}
        if args.interval is not None:
            overrides["interval_minutes"] = args.interval
        if args.log_file is not None:
            overrides["log_file"] = str(args.log_file)
        if args.mock:
            overrides["mock"] = True
        config = replace(config, **overrides)
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    if args.stats:
        print_stats(config)
        return 0

    print("SmartGarden Irrigation Controller")
    print("=" * 40)

    try:
        controller = build_controller(config)
    except GardenError as e:
        logger.error("Startup failed: %s", e)
        return 1

    daemon = GardenDaemon(controller, config.interval_minutes)

    if args.once:
        print("Running single decision cycle...")
        try:
            result = daemon.run_once()
        finally:
            daemon.stop()
        return 0 if result is not None else 1

    print(f"Running as daemon ({config.interval_minutes}-minute intervals)")
    print("Press Ctrl+C to stop\n")
    signal.signal(signal.SIGTERM, lambda signum, frame: daemon.stop_event.set())
    try:
        daemon.run_forever()
    except KeyboardInterrupt:
        print("\nStopping irrigation controller")
    finally:
        daemon.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
