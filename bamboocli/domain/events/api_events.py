"""Domain Events related to API calls and resilience.

Examples include events for when calls are served from cache, rate limited,
retried, fail, or succeed.
"""

from dataclasses import dataclass, field
import time
from typing import Optional


@dataclass
class DomainEvent:
    """Base class for domain events."""
    pass


# --- Specific API Events ---

@dataclass
class ApiCallInitiated(DomainEvent):
    """Event triggered when a transport call is about to be made."""
    endpoint: str
    method: str
    attempt_number: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class ApiCallSucceeded(DomainEvent):
    """Event triggered when a transport call succeeds."""
    endpoint: str
    method: str
    latency_ms: float
    attempt_number: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class ApiCallFailed(DomainEvent):
    """Event triggered when a call fails definitively (non-retryable or retries exhausted)."""
    endpoint: str
    method: str
    category: str
    error_message: str
    attempts: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class ApiCallServedFromCache(DomainEvent):
    """Event triggered when a call is answered from the response cache."""
    endpoint: str
    cache_key: str
    timestamp: float = field(default_factory=time.time)


@dataclass
class ApiCallRateLimited(DomainEvent):
    """Event triggered when the local rate limiter refuses admission."""
    endpoint: str
    resource_class: str
    retry_after_ms: float
    timestamp: float = field(default_factory=time.time)


@dataclass
class RetryScheduled(DomainEvent):
    """Event triggered when a retry is scheduled for a failed API call."""
    endpoint: str
    attempt_number: int
    delay_ms: float
    category: str
    advisory_delay_ms: Optional[float] = None
    timestamp: float = field(default_factory=time.time)
