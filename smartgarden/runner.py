"""
runner.py - Periodic decision cycles
====================================

Triggers a decision cycle every `interval_minutes` using `schedule`. Cycles
run on a single worker thread; a trigger that arrives while a cycle is still
running (for instance one that is watering) is dropped, so the log's
read-modify-write appends and the bus transactions never interleave.

On stop the watering wait is interrupted, the worker is joined and the valve
and fan are driven LOW.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Optional

import schedule

from .controller import CycleResult, IrrigationController
from .errors import BaselineUnavailable, GardenError, SensorsDisconnected

logger = logging.getLogger(__name__)


class GardenDaemon:
    """Single-worker scheduler around an IrrigationController."""

    def __init__(self, controller: IrrigationController, interval_minutes: int = 100,
                 scheduler: Optional[schedule.Scheduler] = None):
        self.controller = controller
        self.interval_minutes = interval_minutes
        self.scheduler = scheduler or schedule.Scheduler()
        self.stop_event = controller.stop_event
        self.dropped_triggers = 0
        self._busy = threading.Lock()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="garden-cycle")
        self._stopped = False

    def trigger(self) -> Optional[Future]:
        """Start a cycle unless one is already running.

        Returns:
            Future resolving to the CycleResult (or None if the cycle failed),
            or None if the trigger was dropped
        """
        if self.stop_event.is_set():
            return None
        if not self._busy.acquire(blocking=False):
            self.dropped_triggers += 1
            logger.warning("Previous decision cycle still running, dropping trigger")
            return None
        try:
            return self._executor.submit(self._run_cycle)
        except RuntimeError:
            self._busy.release()
            raise

    def _run_cycle(self) -> Optional[CycleResult]:
        try:
            result = self.controller.run_cycle()
            if result.watered:
                logger.info("Garden watered and re-baselined")
            return result
        except (SensorsDisconnected, BaselineUnavailable) as e:
            logger.warning("Watering decision skipped: %s", e)
        except GardenError as e:
            logger.error("Decision cycle failed: %s", e)
        except OSError as e:
            logger.error("Measurement log write failed: %s", e)
        except Exception:
            logger.exception("Unexpected error in decision cycle")
        finally:
            self._busy.release()
        return None

    def run_once(self) -> Optional[CycleResult]:
        future = self.trigger()
        return future.result() if future is not None else None

    def run_forever(self, poll_seconds: float = 1.0) -> None:
        """Run a cycle now and then every interval until stop() is called."""
        self.scheduler.every(self.interval_minutes).minutes.do(self.trigger)
        self.trigger()
        try:
            while not self.stop_event.is_set():
                self.scheduler.run_pending()
                self.stop_event.wait(poll_seconds)
        finally:
            self.stop()

    def stop(self) -> None:
        """Interrupt any wait, finish the running cycle, leave actuators LOW."""
        if self._stopped:
            return
        self._stopped = True
        self.stop_event.set()
        self.scheduler.clear()
        self._executor.shutdown(wait=True)
        self.controller.shutdown()
        logger.info("Garden daemon stopped, valve closed and fan off")
