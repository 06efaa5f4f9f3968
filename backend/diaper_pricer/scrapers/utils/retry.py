"""Retry policies with jittered exponential backoff."""

import random
from typing import Tuple, Type

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
)
from tenacity.wait import wait_base
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from diaper_pricer.core.exceptions import TransientFetchError


logger = structlog.get_logger(__name__)


class wait_jittered_backoff(wait_base):
    """base * factor^(n-1) + uniform(0, jitter), capped at max_delay.

    n is the number of the attempt that just failed, so the first retry
    waits roughly base seconds.
    """

    def __init__(self, base: float = 1.5, factor: float = 1.5, jitter: float = 0.5, max_delay: float = 10.0):
        self.base = base
        self.factor = factor
        self.jitter = jitter
        self.max_delay = max_delay

    def compute(self, attempt_number: int) -> float:
        delay = self.base * (self.factor ** (attempt_number - 1))
        if self.jitter > 0:
            delay += random.uniform(0, self.jitter)
        return min(delay, self.max_delay)

    def __call__(self, retry_state: RetryCallState) -> float:
        return self.compute(retry_state.attempt_number)


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "retrying_after_error",
        attempt=retry_state.attempt_number,
        sleep_seconds=round(retry_state.next_action.sleep, 2) if retry_state.next_action else None,
        error=str(exc) if exc else None,
    )


def fetch_retrying(
    max_attempts: int,
    wait: wait_base,
    retry_on: Tuple[Type[BaseException], ...] = (TransientFetchError,),
) -> AsyncRetrying:
    """Retry controller for one URL fetch.

    Only transient failures are retried; anything else (including blocked
    responses) propagates on the first attempt.
    """
    return AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait,
        retry=retry_if_exception_type(retry_on),
        before_sleep=_log_retry,
        reraise=True,
    )


# Retry decorator for Playwright navigation steps
playwright_retry = retry(
    stop=stop_after_attempt(2),
    wait=wait_jittered_backoff(base=2.0, jitter=1.0),
    retry=retry_if_exception_type((PlaywrightTimeoutError,)),
    before_sleep=_log_retry,
    reraise=True,
)

