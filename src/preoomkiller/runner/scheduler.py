"""
scheduler.py
- Drives Controller.run_once() immediately and then every `interval` seconds.
- A failed cycle is logged and the loop carries on; only stop() ends it.
- Cancellation is checked between cycles only, never during one.
"""

import signal
import threading
import time

from loguru import logger

from preoomkiller.core.errors import EnumerationFailure

# --- Metrics ---
cycles_total = 0
cycle_errors_total = 0
last_cycle_duration_seconds = 0.0
last_cycle_completed_at = 0.0  # unix timestamp of the last successful cycle, 0 until one finishes
last_cycle_attempted_at = 0.0  # unix timestamp of the last cycle, failed or not

# longest single Event.wait, bounds how late a signal-requested stop is noticed
WAIT_SLICE_SECONDS = 1.0


class Scheduler:
    def __init__(self, controller, interval, stop_event=None):
        self.controller = controller
        self.interval = interval
        self.stop_event = stop_event or threading.Event()
        self.stop_signal = None

    def stop(self):
        self.stop_event.set()

    def request_stop(self, signum):
        # runs inside a signal handler: plain attribute write, no locks
        self.stop_signal = signum

    @property
    def stopped(self):
        return self.stop_signal is not None or self.stop_event.is_set()

    def wait(self, seconds):
        """Sleep up to `seconds`; return True as soon as a stop is requested."""
        deadline = time.monotonic() + seconds
        while not self.stopped:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return False
            self.stop_event.wait(min(remaining, WAIT_SLICE_SECONDS))
        return True

    def tick(self):
        """
        Run one cycle and contain its failure.

        Returns:
            CycleResult | None: None when the cycle failed.
        """
        global cycles_total, cycle_errors_total, last_cycle_duration_seconds
        global last_cycle_completed_at, last_cycle_attempted_at

        started = time.monotonic()
        try:
            result = self.controller.run_once()
        except EnumerationFailure as e:
            logger.error(f"[scheduler] Cycle aborted: {e}")
            cycle_errors_total += 1
            return None
        except Exception as e:
            logger.exception(f"[scheduler] Unexpected error during cycle: {e}")
            cycle_errors_total += 1
            return None
        finally:
            last_cycle_duration_seconds = time.monotonic() - started
            last_cycle_attempted_at = time.time()

        cycles_total += 1
        last_cycle_completed_at = time.time()
        logger.info(
            f"[scheduler] Cycle done in {result.duration_seconds:.2f}s: "
            f"{result.candidates} checked, {result.evictions} evicted, {result.throttled} throttled, "
            f"{result.failed} failed, {result.skipped} skipped"
        )
        return result

    def run(self, max_cycles=None):
        """
        Block until stop() is called (or max_cycles cycles have run).

        Returns:
            int: Number of cycles started.
        """
        logger.info(f"[scheduler] Starting reconciliation loop (interval={self.interval}s)")
        cycles = 0

        while not self.stopped:
            started = time.monotonic()
            self.tick()
            cycles += 1

            if max_cycles is not None and cycles >= max_cycles:
                break

            remaining = self.interval - (time.monotonic() - started)
            if self.wait(max(0.0, remaining)):
                break

        if self.stop_signal is not None:
            logger.info(f"[scheduler] Received {signal.Signals(self.stop_signal).name}. Terminating...")
        logger.info("[scheduler] Terminating main controller loop")
        return cycles


def install_signal_handlers(scheduler, signals=(signal.SIGTERM, signal.SIGINT)):
    """Stop the scheduler on SIGTERM/SIGINT. Only possible from the main thread."""
    if threading.current_thread() is not threading.main_thread():
        logger.warning("[scheduler] Not on the main thread, signal handlers not installed")
        return False

    def handle_signal(signum, frame):
        scheduler.request_stop(signum)

    for signum in signals:
        signal.signal(signum, handle_signal)
    return True
