import signal

from rich.console import Console

from server_monitor import evaluator, io, log, report
from server_monitor.scheduler import Scheduler

LOGGER = log.get_logger(__name__)


def tick(
    sampler, thresholds, previous_counters=None, file_path=None, console=None
):
    """
    Sample, evaluate, render and emit once.

    The report file gets the plain text rendering. A report file that cannot
    be written is logged and does not fail the tick.

    Returns the health report and the network counters for the next tick.
    """
    snapshot, counters = sampler.sample(previous_counters)
    health = evaluator.evaluate(snapshot, thresholds)
    io.emit(report.build_report(snapshot, health), console=console)
    if file_path:
        io.save_report(report.format_report(snapshot, health), file_path)
    LOGGER.info(f"Overall health: {health.overall.name}")
    return health, counters


class Monitor:
    """
    Periodic monitoring loop. Owns the network counters threaded from one
    tick to the next.
    """

    def __init__(
        self,
        sampler,
        thresholds,
        interval,
        file_path=None,
        console=None,
        scheduler=None,
    ):
        self.sampler = sampler
        self.thresholds = thresholds
        self.file_path = file_path
        if console is None:
            console = Console(highlight=False)
        self.console = console
        if scheduler is None:
            scheduler = Scheduler(interval)
        self.scheduler = scheduler
        self.counters = None
        self.last_report = None

    def tick(self):
        # Only clears when writing to a terminal.
        self.console.clear()
        self.last_report, self.counters = tick(
            self.sampler,
            self.thresholds,
            previous_counters=self.counters,
            file_path=self.file_path,
            console=self.console,
        )

    def stop(self):
        self.scheduler.stop()

    def run(self, max_ticks=None):
        LOGGER.debug("Entering monitoring loop")
        return self.scheduler.run(self.tick, max_ticks=max_ticks)


def monitor(
    sampler,
    thresholds,
    interval,
    file_path=None,
    console=None,
    max_ticks=None,
):
    """
    Run the monitoring loop until SIGTERM, Ctrl+C or 'max_ticks' ticks.

    SIGTERM lets the tick in progress finish. The previous SIGTERM handler is
    restored on return.
    """
    m = Monitor(
        sampler, thresholds, interval, file_path=file_path, console=console
    )
    previous_handler = signal.signal(
        signal.SIGTERM, lambda signum, frame: m.stop()
    )
    try:
        m.run(max_ticks=max_ticks)
    except KeyboardInterrupt:
        LOGGER.info("Interrupted, leaving monitoring loop")
        m.stop()
    finally:
        signal.signal(signal.SIGTERM, previous_handler)
    return m
