"""
Retry/Backoff Executor
======================

Every remote call goes through RetryExecutor.execute. Failures are
classified once, here, into a ChainError carrying an ErrorKind. Transient
faults (rate limiting, header timeouts) are retried forever with a fixed
delay; anything else is raised on the first failure.

The executor is a small state machine:

    ATTEMPTING -> DONE
    ATTEMPTING -> BACKOFF -> ATTEMPTING -> ...
    ATTEMPTING -> FAILED
"""

import time
from enum import Enum
from typing import Any, Callable, Optional, TypeVar

import requests
from tenacity import Retrying, retry_if_exception, stop_never, wait_fixed

from .utils import ChainError, ErrorKind, logger


T = TypeVar("T")

DEFAULT_RETRY_DELAY_SECONDS = 600

TRANSIENT_MARKERS = (
    "429",
    "too many requests",
    "headers timeout",
    "und_err_headers_timeout",
)

NOT_FOUND_MARKERS = (
    "not found",
    "no such contract",
)


class RetryState(Enum):
    ATTEMPTING = "attempting"
    BACKOFF = "backoff"
    DONE = "done"
    FAILED = "failed"


def classify_error(exc: BaseException, context: Optional[str] = None) -> ChainError:
    """Map any exception raised by a remote call onto a ChainError."""
    if isinstance(exc, ChainError):
        if exc.context is None:
            exc.context = context
        return exc

    message = str(exc) or exc.__class__.__name__
    lowered = message.lower()

    if isinstance(exc, (requests.exceptions.Timeout, requests.exceptions.ConnectionError)):
        kind = ErrorKind.TRANSIENT
    elif isinstance(exc, requests.exceptions.HTTPError) and exc.response is not None \
            and exc.response.status_code == 429:
        kind = ErrorKind.TRANSIENT
    elif any(marker in lowered for marker in TRANSIENT_MARKERS):
        kind = ErrorKind.TRANSIENT
    elif isinstance(exc, requests.exceptions.HTTPError) and exc.response is not None \
            and exc.response.status_code == 404:
        kind = ErrorKind.NOT_FOUND
    elif any(marker in lowered for marker in NOT_FOUND_MARKERS):
        kind = ErrorKind.NOT_FOUND
    else:
        kind = ErrorKind.PERMANENT

    return ChainError(message, kind=kind, context=context)


def _is_transient(exc: BaseException) -> bool:
    return isinstance(exc, ChainError) and exc.is_transient


class RetryExecutor:
    """
    Runs remote operations, waiting out transient faults.

    Args:
        delay_seconds: Fixed pause between attempts after a transient fault
        sleep: Sleep function, injectable so tests never really wait
    """

    def __init__(self, delay_seconds: float = DEFAULT_RETRY_DELAY_SECONDS,
                 sleep: Callable[[float], None] = time.sleep):
        self.delay_seconds = delay_seconds
        self._sleep = sleep
        self.state: Optional[RetryState] = None
        self.backoff_count = 0

    def _on_backoff(self, retry_state) -> None:
        self.state = RetryState.BACKOFF
        self.backoff_count += 1
        error = retry_state.outcome.exception()
        logger.warning(
            f"Retry: {error.context} - {error}. "
            f"Waiting {self.delay_seconds / 60:g} minute(s)..."
        )

    def execute(self, operation: Callable[[], T], context: str) -> T:
        """
        Run operation until it succeeds or fails permanently.

        Args:
            operation: Zero-argument callable performing one remote call
            context: Call-site label used in backoff warnings

        Returns:
            Whatever operation returns

        Raises:
            ChainError: First non-transient failure, with the original
                exception chained as __cause__
        """
        retrying = Retrying(
            retry=retry_if_exception(_is_transient),
            wait=wait_fixed(self.delay_seconds),
            stop=stop_never,
            sleep=self._sleep,
            before_sleep=self._on_backoff,
            reraise=True,
        )

        try:
            for attempt in retrying:
                with attempt:
                    self.state = RetryState.ATTEMPTING
                    result = self._attempt(operation, context)
        except ChainError:
            self.state = RetryState.FAILED
            raise

        self.state = RetryState.DONE
        return result

    @staticmethod
    def _attempt(operation: Callable[[], T], context: str) -> T:
        try:
            return operation()
        except ChainError as e:
            raise classify_error(e, context)
        except Exception as e:
            raise classify_error(e, context) from e
