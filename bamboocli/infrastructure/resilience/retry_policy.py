"""Retry decisions with exponential backoff and jitter.

Delay for the n-th failed attempt is

    base_delay(category) * 2 ** (n - 1) + uniform(0, jitter_ms)

capped at max_delay_ms. When the remote side gave an explicit wait (e.g. a
Retry-After header on a 429) that wait replaces the exponential term; jitter
is still added so concurrent callers do not all wake together.
"""

import logging
import random
from typing import Optional

from bamboocli.domain.models.errors import ClassifiedError
from bamboocli.domain.models.request import RetryDecision

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_MAX_DELAY_MS = 30_000
DEFAULT_JITTER_MS = 1_000


class RetryPolicy:
    """Decides whether and when a classified failure is retried."""

    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        max_delay_ms: float = DEFAULT_MAX_DELAY_MS,
        jitter_ms: float = DEFAULT_JITTER_MS,
        rng: Optional[random.Random] = None,
    ):
        """Initializes the RetryPolicy.

        Args:
            max_attempts: Highest attempt number after which a retry is still
                allowed; with 3, a call is tried at most 4 times.
            max_delay_ms: Cap on any single computed or advisory delay.
            jitter_ms: Upper bound of the random noise added to each delay.
            rng: Injectable Random instance for deterministic testing.
        """
        if max_attempts < 0:
            raise ValueError("max_attempts must not be negative.")
        if max_delay_ms < 0 or jitter_ms < 0:
            raise ValueError("max_delay_ms and jitter_ms must not be negative.")
        self.max_attempts = max_attempts
        self.max_delay_ms = max_delay_ms
        self.jitter_ms = jitter_ms
        self._rng = rng or random.Random()
        logger.info(
            f"RetryPolicy initialized: max_attempts={max_attempts}, "
            f"max_delay={max_delay_ms}ms, jitter<={jitter_ms}ms"
        )

    def _jitter(self) -> float:
        return self._rng.uniform(0, self.jitter_ms) if self.jitter_ms else 0.0

    def compute_delay_ms(self, error: ClassifiedError, attempt_number: int) -> float:
        """Backoff delay for the given failed attempt (1-based)."""
        if error.retry_delay_ms is not None:
            delay = error.retry_delay_ms + self._jitter()
        else:
            exponent = max(attempt_number, 1) - 1
            delay = error.profile.base_delay_ms * (2 ** exponent) + self._jitter()
        return min(delay, self.max_delay_ms)

    def should_retry(self, error: ClassifiedError, attempt_number: int) -> RetryDecision:
        """Whether the failed attempt `attempt_number` should be retried.

        Non-retryable categories never retry, whatever the attempt number.
        """
        if not error.is_retryable:
            return RetryDecision(retry=False)
        if attempt_number > self.max_attempts:
            logger.debug(
                f"Retries exhausted for {error.endpoint} after attempt {attempt_number} ({error.category.value})."
            )
            return RetryDecision(retry=False)
        return RetryDecision(retry=True, delay_ms=self.compute_delay_ms(error, attempt_number))
