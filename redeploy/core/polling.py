"""Wait-then-poll helpers for observing an external asynchronous actor.

The application server exposes no completion signal for startup, shutdown or
content extraction. Each wait is therefore a fixed settle delay followed by a
bounded number of checks, with early exit as soon as the condition holds.
Waits are not cancellable.
"""

import time
from dataclasses import dataclass
from typing import Callable

from .log import get_logger

logger = get_logger(__name__)

Sleeper = Callable[[float], None]


@dataclass(frozen=True)
class PollPolicy:
    """Fixed settle delay followed by ``attempts`` checks ``interval`` apart."""

    delay: float
    attempts: int = 1
    interval: float = 0.0

    def __post_init__(self) -> None:
        if self.delay < 0 or self.interval < 0:
            raise ValueError("Poll delay and interval must not be negative")
        if self.attempts < 1:
            raise ValueError("Poll attempts must be at least 1")

    @property
    def max_wait(self) -> float:
        """Longest time a poll under this policy can take."""
        return self.delay + self.interval * (self.attempts - 1)


def poll_until(
    condition: Callable[[], bool],
    policy: PollPolicy,
    sleep: Sleeper = time.sleep,
    name: str = "condition",
) -> bool:
    """Wait ``policy.delay`` then check ``condition`` up to ``policy.attempts`` times.

    Returns True as soon as the condition holds, False once every attempt
    has been used.
    """
    if policy.delay > 0:
        sleep(policy.delay)

    for attempt in range(1, policy.attempts + 1):
        if condition():
            logger.debug("%s satisfied on attempt %d/%d", name, attempt, policy.attempts)
            return True
        if attempt < policy.attempts and policy.interval > 0:
            sleep(policy.interval)

    logger.debug("%s not satisfied after %d attempt(s)", name, policy.attempts)
    return False
