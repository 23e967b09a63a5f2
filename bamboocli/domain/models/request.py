"""Domain models describing a single outbound call and its lifecycle."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Optional

from .common import (
    DEFAULT_RESOURCE_CLASS,
    EndpointPath,
    OperationLabel,
    RequestParams,
    ResourceClass,
    ToolName,
)
from .errors import ClassifiedError


@dataclass
class RequestSpec:
    """Everything the executor needs to perform one logical call.

    `params` are sent as the query string for GET and as the JSON body for
    POST. `deadline` is an absolute monotonic timestamp; None means only the
    per-attempt timeout applies.
    """
    path: EndpointPath
    method: str = "GET"
    params: RequestParams = field(default_factory=dict)
    resource_class: ResourceClass = DEFAULT_RESOURCE_CLASS
    operation: OperationLabel = OperationLabel("BambooHR request")
    tool_name: ToolName = ToolName("bamboocli")
    deadline: Optional[float] = None
    skip_cache: bool = False
    cacheable: Optional[bool] = None  # None: only GET is cached

    def __post_init__(self) -> None:
        self.method = self.method.upper()
        if self.method not in ("GET", "POST"):
            raise ValueError(f"Unsupported HTTP method: {self.method}")

    @property
    def uses_cache(self) -> bool:
        if self.skip_cache:
            return False
        if self.cacheable is not None:
            return self.cacheable
        return self.method == "GET"


class CallState(str, Enum):
    """Lifecycle states of one execute() invocation."""
    PENDING = "PENDING"
    CACHE_HIT = "CACHE_HIT"
    RATE_LIMITED = "RATE_LIMITED"
    IN_FLIGHT = "IN_FLIGHT"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    RETRYING = "RETRYING"
    TERMINAL_FAILURE = "TERMINAL_FAILURE"


TERMINAL_STATES: FrozenSet[CallState] = frozenset(
    {CallState.CACHE_HIT, CallState.SUCCEEDED, CallState.TERMINAL_FAILURE}
)

ALLOWED_TRANSITIONS: Dict[CallState, FrozenSet[CallState]] = {
    CallState.PENDING: frozenset({CallState.CACHE_HIT, CallState.RATE_LIMITED, CallState.IN_FLIGHT}),
    CallState.RATE_LIMITED: frozenset({CallState.TERMINAL_FAILURE, CallState.PENDING}),
    CallState.IN_FLIGHT: frozenset({CallState.SUCCEEDED, CallState.FAILED}),
    CallState.FAILED: frozenset({CallState.RETRYING, CallState.TERMINAL_FAILURE}),
    CallState.RETRYING: frozenset({CallState.PENDING}),
}


@dataclass
class AttemptRecord:
    """Ephemeral per-call bookkeeping; lives for one execute() invocation."""
    attempt_number: int = 1
    last_error: Optional[ClassifiedError] = None
    state: CallState = CallState.PENDING
    history: List[CallState] = field(default_factory=lambda: [CallState.PENDING])

    @property
    def done(self) -> bool:
        return self.state in TERMINAL_STATES

    def transition(self, new_state: CallState) -> None:
        """Moves to `new_state`; a terminal state is never left."""
        if new_state not in ALLOWED_TRANSITIONS.get(self.state, frozenset()):
            raise RuntimeError(f"Illegal call state transition {self.state.value} -> {new_state.value}")
        self.state = new_state
        self.history.append(new_state)


@dataclass(frozen=True)
class Admission:
    """Result of a rate limiter admission request."""
    admitted: bool
    retry_after_ms: Optional[float] = None


@dataclass(frozen=True)
class RetryDecision:
    """Result of consulting the retry policy after a failure."""
    retry: bool
    delay_ms: float = 0.0
