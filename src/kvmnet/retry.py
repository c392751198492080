"""
Fixed-interval retry helper for hypervisor state transitions.

Network activation, destruction and undefinition are not guaranteed to be
visible synchronously with the call that starts them, so every mutation is
written as a small operation that is polled until it reports success.
"""

import time
from typing import Callable, Optional

from kvmnet.errors import RetryTimeoutError
from kvmnet.logging import get_logger

log = get_logger(__name__)

DEFAULT_RETRY_INTERVAL = 0.5


class RetryLater(Exception):
    """Raised by an operation whose desired state is not reached yet."""


class StopRetrying(Exception):
    """Raised by an operation to abort the loop and surface ``cause``."""

    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__(str(cause))


def retry_local(
    operation: Callable[[], None],
    max_duration: float,
    interval: float = DEFAULT_RETRY_INTERVAL,
    description: Optional[str] = None,
) -> None:
    """Run ``operation`` until it returns without raising or ``max_duration`` elapses.

    Any exception other than :class:`StopRetrying` counts as "try again".
    The operation always runs at least once.

    Raises:
        RetryTimeoutError: the deadline passed; ``last_error`` holds the
            exception of the final attempt.
    """
    what = description or getattr(operation, "__name__", "operation")
    deadline = time.monotonic() + max_duration
    attempt = 0
    last_error: Optional[Exception] = None

    while True:
        attempt += 1
        try:
            operation()
            if attempt > 1:
                log.debug("retry_succeeded", operation=what, attempts=attempt)
            return
        except StopRetrying as stop:
            raise stop.cause
        except Exception as e:
            last_error = e
            log.debug("retry_attempt_failed", operation=what, attempt=attempt, error=str(e))

        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise RetryTimeoutError(
                f"{what}: gave up after {max_duration}s ({attempt} attempts): {last_error}",
                last_error=last_error,
            ) from last_error
        time.sleep(min(interval, remaining))
