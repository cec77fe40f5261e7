"""Threshold-based outage detection.

States: Normal, Outage. Transitions:
- Normal -> Outage when the consecutive failed-round count reaches the threshold.
- Outage -> Normal on the first reachable round.

A single failed round, or any streak shorter than the threshold, never
produces an event. Once in Outage, further failed rounds only grow the
counter; no second declaration is made until a recovery happens.
"""

from dataclasses import replace

from .models import OutageDeclared, OutageEvent, OutageState, Recovery, RoundResult


def transition(
    state: OutageState, result: RoundResult, failure_threshold: int
) -> tuple[OutageState, OutageEvent | None]:
    """Compute the next state for one round. Pure; never mutates ``state``."""
    if result.internet_reachable:
        if state.in_outage:
            event = Recovery(outage_started_at=state.outage_started_at, recovered_at=result.timestamp)
            return OutageState(), event
        return replace(state, consecutive_failures=0), None

    failures = state.consecutive_failures + 1
    if failures == failure_threshold and not state.in_outage:
        new_state = OutageState(
            consecutive_failures=failures,
            in_outage=True,
            outage_started_at=result.timestamp,
        )
        return new_state, OutageDeclared(started_at=result.timestamp, failures=result.failures)
    return replace(state, consecutive_failures=failures), None


class OutageDetector:
    """Owns the OutageState for the process lifetime.

    Not thread-safe: only the scheduler loop calls update().
    """

    def __init__(self, failure_threshold: int, state: OutageState | None = None) -> None:
        if failure_threshold < 1:
            raise ValueError(f"failure_threshold must be at least 1 (got {failure_threshold})")
        self._failure_threshold = failure_threshold
        self._state = state or OutageState()

    @property
    def state(self) -> OutageState:
        return self._state

    @property
    def in_outage(self) -> bool:
        return self._state.in_outage

    def update(self, result: RoundResult) -> OutageEvent | None:
        """Apply one round and return the transition event, if any."""
        self._state, event = transition(self._state, result, self._failure_threshold)
        return event
