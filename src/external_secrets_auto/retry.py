"""Bounded retry with exponential backoff.

Used wherever the backend is only eventually consistent (IAM policy
propagation after creating a service account). Built on tenacity; callers
get either the operation's result or :class:`RetryExhaustedError`.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

from icecream import ic
from tenacity import RetryCallState, RetryError, Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Retry schedule.

    Attempt ``n`` (1-based) that fails is followed by a pause of
    ``base_delay * multiplier ** (n - 1)`` seconds, except the last one.

    Attributes:
        max_attempts: Total number of attempts, including the first.
        base_delay: Pause after the first failure, in seconds.
        multiplier: Growth factor between consecutive pauses.

    """

    max_attempts: int = 5
    base_delay: float = 2.0
    multiplier: float = 2.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay < 0:
            raise ValueError("base_delay cannot be negative")
        if self.multiplier < 1:
            raise ValueError("multiplier must be at least 1")

    def delays(self) -> list[float]:
        """Return every pause the schedule can make, in order."""
        return [self.base_delay * self.multiplier**attempt for attempt in range(self.max_attempts - 1)]

    @property
    def max_total_delay(self) -> float:
        return sum(self.delays())


class RetryExhaustedError(Exception):
    """Raised when every attempt of a retried operation failed.

    Attributes:
        attempts: Number of attempts made.
        last_error: Exception raised by the final attempt.

    """

    def __init__(self, attempts: int, last_error: BaseException) -> None:
        super().__init__(f"gave up after {attempts} attempt(s): {last_error}")
        self.attempts = attempts
        self.last_error = last_error


def retry_call(
    operation: Callable[[], T],
    policy: RetryPolicy,
    *,
    retry_on: type[BaseException] | tuple[type[BaseException], ...] = Exception,
    on_retry: Callable[[int, float, BaseException], None] | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call ``operation`` until it succeeds or the policy is exhausted.

    Args:
        operation: Zero-argument callable to run.
        policy: Attempt budget and backoff schedule.
        retry_on: Exception types that trigger another attempt. Anything
            else propagates immediately.
        on_retry: Called as ``on_retry(attempt, delay, error)`` before each pause.
        sleep: Pause function, replaceable in tests.

    Returns:
        Whatever ``operation`` returns on its first successful attempt.

    Raises:
        RetryExhaustedError: If all ``policy.max_attempts`` attempts failed.

    """

    def _before_sleep(state: RetryCallState) -> None:
        delay = state.next_action.sleep if state.next_action else 0.0
        error = state.outcome.exception() if state.outcome else None
        ic(state.attempt_number, delay)
        if on_retry is not None and error is not None:
            on_retry(state.attempt_number, delay, error)

    retrying = Retrying(
        stop=stop_after_attempt(policy.max_attempts),
        wait=wait_exponential(multiplier=policy.base_delay, exp_base=policy.multiplier, min=0, max=float("inf")),
        retry=retry_if_exception_type(retry_on),
        before_sleep=_before_sleep,
        sleep=sleep,
    )

    try:
        return retrying(operation)
    except RetryError as err:
        last_error = err.last_attempt.exception()
        raise RetryExhaustedError(err.last_attempt.attempt_number, last_error) from last_error
