"""Concurrent per-round fan-out over all targets."""

import logging
from collections.abc import Callable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime

from .checker import TargetChecker, describe_failure
from .models import ProbeResult, RoundResult, TargetOutcome

logger = logging.getLogger(__name__)


def local_now() -> datetime:
    """Current local time, timezone-aware."""
    return datetime.now().astimezone()


class RoundAggregator:
    """Runs a TargetChecker for every target of a round and combines the verdicts.

    Any single reachable target is enough for the round to count as
    reachable. All outcomes are kept in target order regardless.
    """

    def __init__(
        self,
        checker: TargetChecker | None = None,
        clock: Callable[[], datetime] = local_now,
    ) -> None:
        self._checker = checker or TargetChecker()
        self._clock = clock

    def run_round(self, targets: Sequence[str], max_retries: int) -> RoundResult:
        """Check every target concurrently and wait for all of them."""
        timestamp = self._clock()
        if not targets:
            return RoundResult(timestamp=timestamp, internet_reachable=False, outcomes=())

        with ThreadPoolExecutor(max_workers=len(targets), thread_name_prefix="target-check") as executor:
            futures = [executor.submit(self._checker.check, target, max_retries) for target in targets]
            outcomes = tuple(self._collect(future, target, max_retries) for future, target in zip(futures, targets))

        return RoundResult(
            timestamp=timestamp,
            internet_reachable=any(outcome.succeeded for outcome in outcomes),
            outcomes=outcomes,
        )

    @staticmethod
    def _collect(future: Future[TargetOutcome], target: str, max_retries: int) -> TargetOutcome:
        try:
            return future.result()
        except Exception as e:
            logger.error("Failed to check %s: %s", target, e)
            return TargetOutcome(
                target=target,
                succeeded=False,
                attempts_used=max_retries + 1,
                last_error=describe_failure(ProbeResult(error=str(e))),
            )
