"""Single-target HTTP reachability check with bounded retries."""

import logging
import time
from collections.abc import Callable

import requests

from .config import DEFAULT_REQUEST_TIMEOUT_SECONDS
from .models import ProbeResult, TargetOutcome

logger = logging.getLogger(__name__)

USER_AGENT = "linkwatch/0.1"

Probe = Callable[[str], ProbeResult]


def http_probe(url: str, timeout: float = DEFAULT_REQUEST_TIMEOUT_SECONDS) -> ProbeResult:
    """Perform one HTTP GET and report the status code or transport error.

    Redirects are followed, so the reported status is the final one. The
    body is never downloaded; the connection is released on return.
    """
    try:
        response = requests.get(url, timeout=timeout, headers={"User-Agent": USER_AGENT}, stream=True)
    except requests.RequestException as e:
        return ProbeResult(error=str(e) or e.__class__.__name__)
    with response:
        return ProbeResult(status_code=response.status_code)


def describe_failure(result: ProbeResult) -> str:
    """Operator-facing diagnostic for a failed attempt."""
    if result.status_code is not None:
        return f"status code {result.status_code}"
    return f"request error: {result.error or 'unknown error'}"


class TargetChecker:
    """Checks one target with up to ``max_retries`` additional attempts.

    The checker never logs above DEBUG; the final verdict and the last
    diagnostic travel upward in the returned TargetOutcome.
    """

    def __init__(
        self,
        probe: Probe | None = None,
        retry_delay: float = 0.0,
        timeout: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the checker.

        Args:
            probe: Transport used for each attempt. Defaults to http_probe.
            retry_delay: Seconds to pause between attempts.
            timeout: Per-attempt timeout passed to the default probe.
            sleep: Sleep function, replaceable in tests.
        """
        if probe is None:

            def probe(url: str) -> ProbeResult:
                return http_probe(url, timeout=timeout)

        self._probe = probe
        self._retry_delay = retry_delay
        self._sleep = sleep

    def check(self, target: str, max_retries: int) -> TargetOutcome:
        """Check ``target`` and return its verdict for this round."""
        total_attempts = max_retries + 1
        last_error: str | None = None

        for attempt in range(1, total_attempts + 1):
            try:
                result = self._probe(target)
            except Exception as e:
                result = ProbeResult(error=str(e) or e.__class__.__name__)

            if result.is_success:
                return TargetOutcome(target=target, succeeded=True, attempts_used=attempt)

            last_error = describe_failure(result)
            logger.debug("%s: attempt %d/%d failed: %s", target, attempt, total_attempts, last_error)

            if attempt < total_attempts and self._retry_delay > 0:
                self._sleep(self._retry_delay)

        return TargetOutcome(
            target=target,
            succeeded=False,
            attempts_used=total_attempts,
            last_error=last_error,
        )
