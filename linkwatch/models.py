"""Data models for connectivity checks, rounds, and outage tracking."""

from dataclasses import dataclass
from datetime import datetime, timedelta

# Used both for log record timestamps and for timestamps inside messages.
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def format_timestamp(value: datetime) -> str:
    """Render a timestamp the way it appears in log messages."""
    return value.strftime(TIMESTAMP_FORMAT)


@dataclass(frozen=True)
class ProbeResult:
    """Answer of a single HTTP attempt.

    Attributes:
        status_code: HTTP status code, or None if no response was received.
        error: Transport error description, or None if a response was received.
    """

    status_code: int | None = None
    error: str | None = None

    @property
    def is_success(self) -> bool:
        """True for any 2xx response."""
        return self.status_code is not None and 200 <= self.status_code < 300


@dataclass(frozen=True)
class TargetOutcome:
    """Final verdict for one target in one round.

    Attributes:
        target: URL that was checked.
        succeeded: Whether any attempt got a 2xx response.
        attempts_used: Number of attempts made (1 to max_retries + 1).
        last_error: Diagnostic of the last failed attempt, None on success.
    """

    target: str
    succeeded: bool
    attempts_used: int
    last_error: str | None = None


@dataclass(frozen=True)
class RoundResult:
    """Aggregated result of checking every target once.

    Attributes:
        timestamp: When the round started.
        internet_reachable: True if at least one target succeeded.
        outcomes: Per-target outcomes in configured target order.
    """

    timestamp: datetime
    internet_reachable: bool
    outcomes: tuple[TargetOutcome, ...]

    @property
    def failures(self) -> tuple[TargetOutcome, ...]:
        return tuple(outcome for outcome in self.outcomes if not outcome.succeeded)

    @property
    def successes(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.succeeded)

    @property
    def last_error(self) -> str | None:
        """Diagnostic of the last failed target, in target order."""
        for outcome in reversed(self.outcomes):
            if not outcome.succeeded and outcome.last_error:
                return outcome.last_error
        return None


@dataclass(frozen=True)
class OutageState:
    """Detector state: Normal when in_outage is False, Outage otherwise."""

    consecutive_failures: int = 0
    in_outage: bool = False
    outage_started_at: datetime | None = None


@dataclass(frozen=True)
class OutageDeclared:
    """Emitted once when a failure streak reaches the threshold."""

    started_at: datetime
    failures: tuple[TargetOutcome, ...]

    @property
    def last_error(self) -> str | None:
        for outcome in reversed(self.failures):
            if outcome.last_error:
                return outcome.last_error
        return None


@dataclass(frozen=True)
class Recovery:
    """Emitted once when a reachable round ends an outage."""

    outage_started_at: datetime
    recovered_at: datetime

    @property
    def duration(self) -> timedelta:
        return self.recovered_at - self.outage_started_at


OutageEvent = OutageDeclared | Recovery
