import math
import threading
import time

from server_monitor import log

LOGGER = log.get_logger(__name__)


class Scheduler:
    """
    Runs a tick callback every 'interval' seconds, one tick at a time.

    A tick that takes longer than the interval is never interrupted. The slots
    it overran are skipped and the next tick starts right after it returns.
    """

    def __init__(self, interval, clock=time.monotonic, sleep=None):
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self.interval = interval
        self.clock = clock
        self._stop_event = threading.Event()
        self.sleep = sleep if sleep is not None else self._stop_event.wait

    @property
    def stopped(self):
        return self._stop_event.is_set()

    def stop(self):
        LOGGER.debug("Stop requested")
        self._stop_event.set()

    def run(self, tick, max_ticks=None):
        """Return the number of ticks that ran."""
        count = 0
        next_at = self.clock()
        while not self.stopped:
            if max_ticks is not None and count >= max_ticks:
                break
            tick()
            count += 1

            next_at += self.interval
            now = self.clock()
            if now > next_at:
                skipped = math.ceil((now - next_at) / self.interval)
                LOGGER.info(
                    f"Tick {count} overran the {self.interval}s interval, "
                    f"skipping {skipped} slot(s)"
                )
                next_at = now
            elif now < next_at and (max_ticks is None or count < max_ticks):
                self.sleep(next_at - now)
        LOGGER.debug(f"Scheduler stopped after {count} tick(s)")
        return count
