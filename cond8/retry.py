"""
Retry combinator for operations that fail on optimistic concurrency conflicts.

The loop runs the operation immediately, then sleeps between attempts with an
interval that may grow by a backoff factor up to a cap. It gives up once the
overall timeout, measured from the first attempt, is spent. Time is read
through a Clock so that tests can run the loop without real sleeps.
"""

# Standard
from dataclasses import dataclass
from typing import Callable, Optional, Tuple, Type, TypeVar
import abc
import time

# First Party
import alog

# Local
from . import config
from .exceptions import ConflictError, RetryTimeoutError

log = alog.use_channel("RETRY")

T = TypeVar("T")

## Clock #######################################################################


class Clock(abc.ABC):
    """Source of monotonic time and sleeping"""

    @abc.abstractmethod
    def now(self) -> float:
        """Monotonic time in seconds"""

    @abc.abstractmethod
    def sleep(self, seconds: float):
        """Block for the given number of seconds"""


class SystemClock(Clock):
    """The real clock"""

    def now(self) -> float:
        return time.monotonic()

    def sleep(self, seconds: float):
        time.sleep(seconds)


## Policy ######################################################################


@dataclass
class RetryPolicy:
    """How long to wait between attempts and when to give up"""

    interval: float
    timeout: float
    backoff_factor: float = 1.0
    max_interval: Optional[float] = None

    @classmethod
    def from_config(cls) -> "RetryPolicy":
        """Build the policy from the library config"""
        return cls(
            interval=config.retry.interval_seconds,
            timeout=config.retry.timeout_seconds,
            backoff_factor=config.retry.backoff_factor,
            max_interval=config.retry.max_interval_seconds,
        )

    def next_interval(self, current: float) -> float:
        interval = current * self.backoff_factor
        if self.max_interval is not None:
            interval = min(interval, self.max_interval)
        return interval


## Public ######################################################################


def retry_on_conflict(
    operation: Callable[[], T],
    description: str,
    policy: Optional[RetryPolicy] = None,
    clock: Optional[Clock] = None,
    retry_on: Tuple[Type[Exception], ...] = (ConflictError,),
) -> T:
    """Run the operation until it succeeds, retrying only on the given errors

    Args:
        operation:  Callable[[], T]
            The operation to run. Each call is one attempt.
        description:  str
            Human readable name of what is being retried, used in errors
        policy:  Optional[RetryPolicy]
            The retry intervals and timeout (defaults to the library config)
        clock:  Optional[Clock]
            The clock to use (defaults to the system clock)
        retry_on:  Tuple[Type[Exception], ...]
            The errors that trigger a retry. Anything else propagates
            immediately.

    Returns:
        result:  T
            The result of the first successful attempt

    Raises:
        RetryTimeoutError: if the timeout is spent before an attempt succeeds
    """
    policy = policy or RetryPolicy.from_config()
    clock = clock or SystemClock()
    deadline = clock.now() + policy.timeout
    interval = policy.interval
    attempt = 0
    while True:
        attempt += 1
        try:
            return operation()
        except retry_on as err:
            remaining = deadline - clock.now()
            if remaining <= 0:
                log.warning(
                    "Giving up on %s after %d attempts: %s", description, attempt, err
                )
                raise RetryTimeoutError(
                    f"failed to update {description} after {attempt} attempts due to {err}",
                    description=description,
                    attempts=attempt,
                ) from err
            sleep_time = min(interval, remaining)
            log.debug2(
                "Attempt %d for %s failed (%s). Retrying in %fs",
                attempt,
                description,
                err,
                sleep_time,
            )
            clock.sleep(sleep_time)
            interval = policy.next_interval(interval)
