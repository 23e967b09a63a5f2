"""Implementation of a per-resource-class rate limiter.

Controls the frequency of outgoing requests so that no resource class sends
more than its configured budget per window. Uses fixed-window counting:
O(1) state per class, at the cost of allowing a burst right after a reset.
"""

import logging
import time
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Dict, Mapping, Optional

from bamboocli.domain.models.common import ResourceClass
from bamboocli.domain.models.config import ResourceClassConfig, resolve_resource_class
from bamboocli.domain.models.request import Admission

logger = logging.getLogger(__name__)

# Used when no configuration is supplied at all
DEFAULT_MAX_REQUESTS = 60
DEFAULT_WINDOW_SECONDS = 60


@dataclass
class RateWindow:
    """Counting state for one resource class."""
    window_start: float
    window_seconds: float
    max_requests: int
    count: int = 0

    def remaining_ms(self, now: float) -> float:
        return max(0.0, (self.window_start + self.window_seconds - now) * 1000)


class RateLimiter:
    """Fixed-window request budget, one independent window per resource class."""

    def __init__(
        self,
        limits: Optional[Mapping[ResourceClass, ResourceClassConfig]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initializes the RateLimiter.

        Args:
            limits: Budget per resource class. Classes not listed use the
                'default' entry (or module defaults) but get their own window.
            clock: Monotonic time source in seconds (injectable for tests).
        """
        self._limits: Dict[ResourceClass, ResourceClassConfig] = dict(limits or {})
        self._windows: Dict[ResourceClass, RateWindow] = {}
        self._clock = clock
        # Admission is synchronous, so on one event loop it is already atomic;
        # the lock keeps it correct if a caller uses worker threads.
        self._lock = Lock()
        logger.info(f"RateLimiter initialized for resource classes: {sorted(self._limits) or ['<defaults>']}")

    def _budget_for(self, resource_class: ResourceClass) -> ResourceClassConfig:
        config = resolve_resource_class(self._limits, resource_class)
        if config is None:
            config = ResourceClassConfig(
                cache_ttl_seconds=0,
                max_requests=DEFAULT_MAX_REQUESTS,
                window_seconds=DEFAULT_WINDOW_SECONDS,
            )
        return config

    def _window_for(self, resource_class: ResourceClass, now: float) -> RateWindow:
        window = self._windows.get(resource_class)
        if window is None:
            budget = self._budget_for(resource_class)
            window = RateWindow(window_start=now, window_seconds=budget.window_seconds, max_requests=budget.max_requests)
            self._windows[resource_class] = window
        return window

    def try_admit(self, resource_class: ResourceClass) -> Admission:
        """Admits one request for `resource_class` if its window has budget left.

        Returns:
            Admission(admitted=True) on success, otherwise Admission(False,
            retry_after_ms) where retry_after_ms is the time left until the
            window resets (never more than the window size).
        """
        with self._lock:
            now = self._clock()
            window = self._window_for(resource_class, now)

            if now - window.window_start >= window.window_seconds:
                window.window_start = now
                window.count = 0

            if window.count < window.max_requests:
                window.count += 1
                logger.debug(
                    f"Rate limit admission for '{resource_class}': {window.count}/{window.max_requests}"
                )
                return Admission(admitted=True)

            retry_after_ms = window.remaining_ms(now)
            logger.debug(
                f"Rate limit reached for '{resource_class}' ({window.max_requests}/{window.window_seconds}s). "
                f"Retry after {retry_after_ms:.0f}ms."
            )
            return Admission(admitted=False, retry_after_ms=retry_after_ms)

    def snapshot(self, resource_class: ResourceClass) -> Optional[RateWindow]:
        """Copy of a class's window state (None if it has never been used)."""
        with self._lock:
            window = self._windows.get(resource_class)
            return None if window is None else RateWindow(**vars(window))

    def reset(self) -> None:
        """Forgets all windows."""
        with self._lock:
            self._windows.clear()
