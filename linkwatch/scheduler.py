"""Fixed-interval monitoring loop with cooperative shutdown."""

import logging
import math
import time
from datetime import timedelta
from threading import Event, Lock, Thread

from .aggregator import RoundAggregator
from .checker import TargetChecker
from .config import MonitorConfig
from .detector import OutageDetector
from .models import OutageDeclared, OutageEvent, OutageState, Recovery, RoundResult, format_timestamp

logger = logging.getLogger(__name__)

SHUTDOWN_MESSAGE = "Internet monitoring stopped gracefully."


def next_tick(anchor: float, now: float, interval: float) -> float:
    """Return the first tick strictly after ``now`` on the grid anchor + k * interval.

    Ticks missed by an overrunning round are skipped rather than replayed.
    """
    elapsed = max(0.0, now - anchor)
    return anchor + (math.floor(elapsed / interval) + 1) * interval


def format_duration(duration: timedelta) -> str:
    total = max(0, int(duration.total_seconds()))
    hours, remainder = divmod(total, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours}:{minutes:02d}:{seconds:02d}"


class Scheduler:
    """Drives rounds at a fixed cadence until the stop event is set.

    The first round runs immediately. Rounds never overlap: the next one
    starts only after the aggregator and detector are done with the
    previous one. Shutdown is observed before each round and during the
    inter-round wait; an in-flight round is allowed to finish.

    Example:
        scheduler = Scheduler(config)
        scheduler.start()
        # ... later ...
        scheduler.stop()
    """

    def __init__(
        self,
        config: MonitorConfig,
        aggregator: RoundAggregator | None = None,
        detector: OutageDetector | None = None,
    ) -> None:
        self._config = config
        self._aggregator = aggregator or RoundAggregator(
            TargetChecker(
                retry_delay=config.retry_delay_seconds,
                timeout=config.request_timeout_seconds,
            )
        )
        self._detector = detector or OutageDetector(config.failure_threshold)
        self._stop_event = Event()
        self._thread: Thread | None = None
        self._rounds_completed = 0
        self._shutdown_lock = Lock()
        self._shutdown_logged = False

    @property
    def state(self) -> OutageState:
        return self._detector.state

    @property
    def rounds_completed(self) -> int:
        return self._rounds_completed

    def start(self, stop_event: Event | None = None) -> None:
        """Start the loop in a background thread."""
        if self._thread is not None and self._thread.is_alive():
            logger.warning("Scheduler already running")
            return

        # A caller-supplied event may already carry a shutdown request; never clear it.
        self._stop_event = stop_event if stop_event is not None else Event()
        with self._shutdown_lock:
            self._shutdown_logged = False
        self._log_startup_summary()
        self._thread = Thread(target=self.run, args=(self._stop_event,), daemon=True, name="monitor-loop")
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        """Signal the loop to stop and wait for the in-flight round.

        The shutdown message is logged even when the grace period runs out,
        since a daemon loop thread is killed at interpreter exit.

        Args:
            timeout: Grace period in seconds. Defaults to the worst-case
                duration of one round plus one second.
        """
        self._stop_event.set()
        if self._thread is None:
            return

        if self._thread.is_alive():
            if timeout is None:
                timeout = self._config.round_budget_seconds + 1.0
            self._thread.join(timeout=timeout)

            if self._thread.is_alive():
                logger.warning("Monitor thread did not stop within %.1fs", timeout)

        self._log_shutdown()

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run(self, stop_event: Event) -> None:
        """Blocking loop. Returns once ``stop_event`` is set."""
        interval = self._config.check_interval_seconds
        anchor = time.monotonic()
        logger.debug("Monitor loop started")

        try:
            while not stop_event.is_set():
                self.run_once()
                now = time.monotonic()
                stop_event.wait(timeout=next_tick(anchor, now, interval) - now)
        finally:
            self._log_shutdown()

    def _log_shutdown(self) -> None:
        """Emit the shutdown message once per run, from whichever side gets here first."""
        with self._shutdown_lock:
            if self._shutdown_logged:
                return
            self._shutdown_logged = True
        logger.info(SHUTDOWN_MESSAGE)

    def run_once(self) -> RoundResult | None:
        """Run one round and emit its events. Never raises."""
        try:
            result = self._aggregator.run_round(self._config.targets, self._config.max_retries)
            event = self._detector.update(result)
        except Exception:
            logger.exception("Round failed unexpectedly")
            return None

        self._rounds_completed += 1
        self._log_round(result)
        if event is not None:
            self._log_event(event)
        return result

    def _log_startup_summary(self) -> None:
        logger.info("Internet monitoring started.")
        logger.info("Check target: %s", ", ".join(self._config.targets))
        logger.info("Check interval: %d seconds.", self._config.check_interval_seconds)
        logger.info("Outage log file: %s", self._config.log_file)
        if self._config.round_budget_seconds > self._config.check_interval_seconds:
            logger.warning(
                "Worst-case round duration (%.0fs) exceeds the check interval (%ds); rounds may run back to back",
                self._config.round_budget_seconds,
                self._config.check_interval_seconds,
            )

    def _log_round(self, result: RoundResult) -> None:
        total = len(result.outcomes)
        verdict = "reachable" if result.internet_reachable else "unreachable"
        logger.info("Round checked: internet %s (%d/%d targets up)", verdict, result.successes, total)

        level = logging.DEBUG if result.internet_reachable else logging.WARNING
        for outcome in result.failures:
            logger.log(
                level,
                "Target %s unreachable after %d attempt(s): %s",
                outcome.target,
                outcome.attempts_used,
                outcome.last_error,
            )

    def _log_event(self, event: OutageEvent) -> None:
        if isinstance(event, OutageDeclared):
            started = format_timestamp(event.started_at)
            logger.error("Internet unavailable since %s. Error: %s", started, event.last_error or "unknown error")
            logger.error("Internet outage: %s", started)
        elif isinstance(event, Recovery):
            recovered = format_timestamp(event.recovered_at)
            logger.info("Internet appeared at %s", recovered)
            logger.info("Internet outage ended at %s (duration %s)", recovered, format_duration(event.duration))
