"""RetryPolicy — opt-in retries for provider calls.

Provider errors are never retried by default. A policy with
``max_attempts > 1`` retries only errors flagged ``retryable`` (throttling,
transient API failures), with exponential backoff between attempts.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from stackctl.domain.errors import ProviderError

logger = logging.getLogger(__name__)

_T = TypeVar("_T")


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, ProviderError) and exc.retryable


@dataclass(frozen=True)
class RetryPolicy:
    """Retry parameters for a single provider call."""

    max_attempts: int = 1
    multiplier: float = 1.0
    min_wait: float = 1.0
    max_wait: float = 30.0

    @property
    def enabled(self) -> bool:
        return self.max_attempts > 1

    def call(self, fn: Callable[[], _T]) -> _T:
        """Invoke *fn*, retrying retryable provider errors."""
        if not self.enabled:
            return fn()
        retrying = Retrying(
            retry=retry_if_exception(_is_retryable),
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(
                multiplier=self.multiplier, min=self.min_wait, max=self.max_wait
            ),
            before_sleep=before_sleep_log(logger, logging.DEBUG),
            reraise=True,
        )
        return retrying(fn)
