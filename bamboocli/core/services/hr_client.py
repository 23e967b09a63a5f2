"""Application service exposing the resilient BambooHR API client.

HrApiClient owns one cache, one rate limiter and one executor. Nothing is
shared between instances, so tests (and separate tenants) can build as many
independent clients as they need.
"""

import asyncio
import logging
import random
import time
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Union

from bamboocli.domain.events.api_events import DomainEvent
from bamboocli.domain.interfaces.cache import CacheService
from bamboocli.domain.interfaces.progress import ProgressReporter
from bamboocli.domain.interfaces.transport import Transport
from bamboocli.domain.models.common import (
    DEFAULT_RESOURCE_CLASS,
    EndpointPath,
    OperationLabel,
    RequestParams,
    ResourceClass,
    ToolName,
)
from bamboocli.domain.models.config import ClientSettings
from bamboocli.domain.models.errors import ApiCallError, ClassifiedError
from bamboocli.domain.models.request import RequestSpec
from bamboocli.infrastructure.cache.caching_service import InMemoryCacheStore
from bamboocli.infrastructure.monitoring.progress import NullProgressReporter
from bamboocli.infrastructure.resilience.error_classifier import ErrorClassifier
from bamboocli.infrastructure.resilience.rate_limiter import RateLimiter
from bamboocli.infrastructure.resilience.request_executor import RequestExecutor, SleepFunc
from bamboocli.infrastructure.resilience.retry_policy import RetryPolicy
from bamboocli.infrastructure.transport.http_transport import HttpxTransport

logger = logging.getLogger(__name__)

FetchResult = Union[Any, ClassifiedError]


class HrApiClient:
    """Fetches BambooHR resources, returning either the payload or a ClassifiedError."""

    def __init__(
        self,
        settings: ClientSettings,
        transport: Transport,
        cache: CacheService,
        rate_limiter: RateLimiter,
        classifier: ErrorClassifier,
        retry_policy: RetryPolicy,
        sleep_func: Optional[SleepFunc] = None,
        clock: Callable[[], float] = time.monotonic,
        event_listeners: Optional[Iterable[Callable[[DomainEvent], None]]] = None,
    ):
        """Initializes the client with its collaborators.

        Prefer `create_hr_client` unless a test needs to swap a component.
        """
        self.settings = settings
        self.transport = transport
        self.cache = cache
        self.rate_limiter = rate_limiter
        self.classifier = classifier
        self.retry_policy = retry_policy
        self._clock = clock
        self.executor = RequestExecutor(
            transport=transport,
            cache=cache,
            rate_limiter=rate_limiter,
            classifier=classifier,
            retry_policy=retry_policy,
            resource_classes=settings.resource_classes,
            request_timeout_seconds=settings.request_timeout_seconds,
            coalesce_requests=settings.coalesce_requests,
            sleep_func=sleep_func,
            clock=clock,
            event_listeners=event_listeners,
        )
        logger.info(f"HrApiClient initialized for subdomain '{settings.subdomain}'.")

    def build_spec(
        self,
        path: str,
        *,
        method: str = "GET",
        params: Optional[RequestParams] = None,
        resource_class: str = DEFAULT_RESOURCE_CLASS,
        operation: Optional[str] = None,
        tool_name: str = "bamboocli",
        timeout_seconds: Optional[float] = None,
        skip_cache: bool = False,
        cacheable: Optional[bool] = None,
    ) -> RequestSpec:
        """Turns keyword options into a RequestSpec with an absolute deadline."""
        deadline = self._clock() + timeout_seconds if timeout_seconds is not None else None
        return RequestSpec(
            path=EndpointPath(path),
            method=method,
            params=dict(params or {}),
            resource_class=ResourceClass(resource_class),
            operation=OperationLabel(operation or f"{method.upper()} {path}"),
            tool_name=ToolName(tool_name),
            deadline=deadline,
            skip_cache=skip_cache,
            cacheable=cacheable,
        )

    async def fetch(self, path: str, **options: Any) -> FetchResult:
        """Fetches `path` and returns the decoded JSON or a ClassifiedError.

        Args:
            path: Endpoint path relative to the API base URL (e.g. '/employees/directory').
            **options: Keyword options accepted by `build_spec`.

        Returns:
            The payload on success, otherwise the ClassifiedError describing
            why the call failed. Remote failures never raise.
        """
        spec = self.build_spec(path, **options)
        try:
            return await self.executor.execute(spec)
        except ApiCallError as e:
            logger.debug(f"fetch {spec.method} {path} surfaced {e.classified.category.value} after {e.attempts} attempt(s)")
            return e.classified

    async def fetch_many(
        self,
        requests: Sequence[Union[RequestSpec, Dict[str, Any]]],
        progress: Optional[ProgressReporter] = None,
    ) -> List[FetchResult]:
        """Runs several fetches concurrently, preserving input order in the result.

        Args:
            requests: RequestSpec objects or dicts of `fetch` keyword options
                (with a 'path' key).
            progress: Receives one report per finished request.
        """
        reporter = progress or NullProgressReporter()
        specs = [
            request if isinstance(request, RequestSpec) else self.build_spec(**request)
            for request in requests
        ]
        total = len(specs)
        completed = 0
        await self._report(reporter, 0, total, "starting")

        async def run_one(spec: RequestSpec) -> FetchResult:
            nonlocal completed
            try:
                result: FetchResult = await self.executor.execute(spec)
            except ApiCallError as e:
                result = e.classified
            completed += 1
            await self._report(reporter, completed, total, f"{spec.method} {spec.path}")
            return result

        return list(await asyncio.gather(*(run_one(spec) for spec in specs)))

    @staticmethod
    async def _report(reporter: ProgressReporter, completed: int, total: int, message: str) -> None:
        try:
            await reporter.report(completed, total, message)
        except Exception as e:
            logger.warning(f"Progress reporter failed: {e}")

    # --- Cache management ---

    def cache_stats(self) -> Dict[str, Any]:
        return self.cache.stats()

    def clear_cache(self) -> None:
        self.cache.clear()

    async def close(self) -> None:
        await self.transport.close()
        logger.debug("HrApiClient transport closed.")


def create_hr_client(
    settings: ClientSettings,
    transport: Optional[Transport] = None,
    *,
    sleep_func: Optional[SleepFunc] = None,
    clock: Callable[[], float] = time.monotonic,
    rng: Optional[random.Random] = None,
    event_listeners: Optional[Iterable[Callable[[DomainEvent], None]]] = None,
) -> HrApiClient:
    """Builds a client with fresh, unshared cache and rate-limit state.

    Args:
        settings: Validated client settings.
        transport: Override the default httpx transport (tests).
        sleep_func: Override the retry wait (tests).
        clock: Monotonic time source shared by cache, limiter and deadlines.
        rng: Random source for retry jitter.
        event_listeners: Callables receiving domain events.
    """
    transport = transport or HttpxTransport(
        base_url=settings.effective_base_url,
        api_key=settings.api_key,
        timeout_seconds=settings.request_timeout_seconds,
    )
    return HrApiClient(
        settings=settings,
        transport=transport,
        cache=InMemoryCacheStore(clock=clock),
        rate_limiter=RateLimiter(limits=settings.resource_classes, clock=clock),
        classifier=ErrorClassifier(),
        retry_policy=RetryPolicy(
            max_attempts=settings.max_retry_attempts,
            max_delay_ms=settings.retry_max_delay_ms,
            jitter_ms=settings.retry_jitter_ms,
            rng=rng,
        ),
        sleep_func=sleep_func,
        clock=clock,
        event_listeners=event_listeners,
    )
