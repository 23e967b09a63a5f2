"""Service for executing API calls with caching, rate limiting and retries.

Per call the executor:
    1. answers from the cache when a live entry exists (no admission, no network);
    2. asks the rate limiter for admission and fails fast with a RATE_LIMIT
       error when refused;
    3. performs the transport call bounded by the request timeout and the
       call's deadline;
    4. on success stores the value under the resource class TTL;
    5. on failure classifies it, consults the retry policy and either waits
       and goes back to step 2 or surfaces the classified error.

Cache and rate-window mutations are synchronous, so each read-modify-write
finishes inside one event loop turn. The only suspension points are the
transport call and the retry wait.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional

from bamboocli.domain.events.api_events import (
    ApiCallFailed,
    ApiCallInitiated,
    ApiCallRateLimited,
    ApiCallServedFromCache,
    ApiCallSucceeded,
    DomainEvent,
    RetryScheduled,
)
from bamboocli.domain.interfaces.cache import CacheService
from bamboocli.domain.interfaces.transport import Transport
from bamboocli.domain.models.common import CacheKey, ResourceClass
from bamboocli.domain.models.config import ResourceClassConfig, resolve_resource_class
from bamboocli.domain.models.errors import ApiCallError, ErrorContext, RateLimitExceeded
from bamboocli.domain.models.request import AttemptRecord, CallState, RequestSpec
from bamboocli.infrastructure.cache.caching_service import build_cache_key
from bamboocli.infrastructure.resilience.error_classifier import ErrorClassifier
from bamboocli.infrastructure.resilience.rate_limiter import RateLimiter
from bamboocli.infrastructure.resilience.retry_policy import RetryPolicy

logger = logging.getLogger(__name__)

DEFAULT_REQUEST_TIMEOUT_SECONDS = 30.0
DEFAULT_CACHE_TTL_SECONDS = 300

SleepFunc = Callable[[float], Awaitable[None]]
EventListener = Callable[[DomainEvent], None]


class RequestExecutor:
    """Orchestrates cache, rate limiter, transport, classifier and retry policy."""

    def __init__(
        self,
        transport: Transport,
        cache: CacheService,
        rate_limiter: RateLimiter,
        classifier: ErrorClassifier,
        retry_policy: RetryPolicy,
        resource_classes: Optional[Mapping[ResourceClass, ResourceClassConfig]] = None,
        request_timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
        coalesce_requests: bool = False,
        sleep_func: Optional[SleepFunc] = None,
        clock: Callable[[], float] = time.monotonic,
        event_listeners: Optional[Iterable[EventListener]] = None,
    ):
        """Initializes the RequestExecutor.

        Args:
            transport: Performs the actual HTTP call.
            cache: Response cache shared by all calls of this client.
            rate_limiter: Per-resource-class admission control.
            classifier: Turns raw failures into ClassifiedError.
            retry_policy: Decides whether/when to retry.
            resource_classes: TTL per resource class ('default' as fallback).
            request_timeout_seconds: Upper bound for any single attempt.
            coalesce_requests: Share one in-flight call between concurrent
                identical cacheable requests.
            sleep_func: Injectable sleep for time control in tests.
            clock: Monotonic clock used for deadlines.
            event_listeners: Callables receiving every dispatched domain event.
        """
        self.transport = transport
        self.cache = cache
        self.rate_limiter = rate_limiter
        self.classifier = classifier
        self.retry_policy = retry_policy
        self.resource_classes: Dict[ResourceClass, ResourceClassConfig] = dict(resource_classes or {})
        self.request_timeout_seconds = request_timeout_seconds
        self.coalesce_requests = coalesce_requests
        self._sleep = sleep_func or asyncio.sleep
        self._clock = clock
        self._listeners: List[EventListener] = list(event_listeners or [])
        self._inflight: Dict[CacheKey, "asyncio.Future[Any]"] = {}

        logger.info(
            f"RequestExecutor initialized: timeout={request_timeout_seconds}s, "
            f"max_attempts={retry_policy.max_attempts}, coalesce={coalesce_requests}"
        )

    # --- Events ---

    def _dispatch(self, event: DomainEvent) -> None:
        logger.debug(f"EVENT: {event}")
        for listener in self._listeners:
            try:
                listener(event)
            except Exception as e:
                logger.warning(f"Event listener {listener!r} failed on {type(event).__name__}: {e}")

    # --- Helpers ---

    def ttl_for(self, resource_class: ResourceClass) -> float:
        config = resolve_resource_class(self.resource_classes, resource_class)
        return config.cache_ttl_seconds if config else DEFAULT_CACHE_TTL_SECONDS

    def _attempt_timeout(self, spec: RequestSpec) -> float:
        if spec.deadline is None:
            return self.request_timeout_seconds
        return min(self.request_timeout_seconds, spec.deadline - self._clock())

    def _deadline_allows(self, spec: RequestSpec, delay_ms: float) -> bool:
        return spec.deadline is None or self._clock() + delay_ms / 1000 < spec.deadline

    # --- Public API ---

    async def execute(self, spec: RequestSpec) -> Any:
        """Runs one logical call and returns the decoded payload.

        Raises:
            ApiCallError: When a failure is surfaced (non-retryable, retries
                exhausted, deadline passed, or local rate limit refused).
        """
        key = build_cache_key(spec.method, spec.path, spec.params)
        record = AttemptRecord()

        if spec.uses_cache:
            cached = self.cache.get(key)
            if cached is not None:
                record.transition(CallState.CACHE_HIT)
                logger.debug(f"BambooHR API request served from cache: {spec.method} {spec.path}")
                self._dispatch(ApiCallServedFromCache(endpoint=spec.path, cache_key=key))
                return cached

        if not (self.coalesce_requests and spec.uses_cache):
            return await self._run(spec, key, record)

        inflight = self._inflight.get(key)
        if inflight is not None:
            logger.debug(f"Joining in-flight request for key: {key}")
            return await asyncio.shield(inflight)

        future: "asyncio.Future[Any]" = asyncio.get_running_loop().create_future()
        self._inflight[key] = future
        try:
            result = await self._run(spec, key, record)
        except asyncio.CancelledError:
            future.cancel()
            raise
        except BaseException as e:
            future.set_exception(e)
            # Mark retrieved so an unjoined future does not warn on collection.
            future.exception()
            raise
        else:
            future.set_result(result)
            return result
        finally:
            self._inflight.pop(key, None)

    async def _run(self, spec: RequestSpec, key: CacheKey, record: AttemptRecord) -> Any:
        context = ErrorContext(
            operation=spec.operation,
            tool_name=spec.tool_name,
            endpoint=spec.path,
            parameters=dict(spec.params),
            resource_class=spec.resource_class,
        )

        while True:
            admission = self.rate_limiter.try_admit(spec.resource_class)
            if not admission.admitted:
                record.transition(CallState.RATE_LIMITED)
                retry_after_ms = admission.retry_after_ms or 0.0
                self._dispatch(ApiCallRateLimited(
                    endpoint=spec.path, resource_class=spec.resource_class, retry_after_ms=retry_after_ms,
                ))
                classified = self.classifier.classify(RateLimitExceeded(spec.resource_class, retry_after_ms), context)
                record.last_error = classified
                record.transition(CallState.TERMINAL_FAILURE)
                raise ApiCallError(classified, attempts=record.attempt_number - 1)

            record.transition(CallState.IN_FLIGHT)
            self._dispatch(ApiCallInitiated(endpoint=spec.path, method=spec.method, attempt_number=record.attempt_number))
            timeout = self._attempt_timeout(spec)
            start_time = time.perf_counter()
            try:
                if timeout <= 0:
                    raise asyncio.TimeoutError(f"Deadline exceeded before sending request: {spec.path}")
                value = await asyncio.wait_for(
                    self.transport.send(spec.method, spec.path, spec.params, timeout_seconds=timeout),
                    timeout=timeout,
                )
            except asyncio.CancelledError:
                raise
            except Exception as e:
                record.transition(CallState.FAILED)
                raw_error: Exception = e
                if isinstance(e, asyncio.TimeoutError) and not str(e):
                    raw_error = asyncio.TimeoutError(
                        f"Request to BambooHR API timed out after {timeout:.1f} seconds: {spec.path}"
                    )
                classified = self.classifier.classify(raw_error, context)
                record.last_error = classified

                decision = self.retry_policy.should_retry(classified, record.attempt_number)
                if decision.retry and self._deadline_allows(spec, decision.delay_ms):
                    record.transition(CallState.RETRYING)
                    logger.warning(
                        f"Retryable error ({classified.category.value}) calling {spec.method} {spec.path} "
                        f"on attempt {record.attempt_number}. Waiting {decision.delay_ms:.0f}ms..."
                    )
                    self._dispatch(RetryScheduled(
                        endpoint=spec.path,
                        attempt_number=record.attempt_number,
                        delay_ms=decision.delay_ms,
                        category=classified.category.value,
                        advisory_delay_ms=classified.retry_delay_ms,
                    ))
                    await self._sleep(decision.delay_ms / 1000)
                    record.attempt_number += 1
                    record.transition(CallState.PENDING)
                    continue

                record.transition(CallState.TERMINAL_FAILURE)
                logger.error(
                    f"BambooHR API request failed: {spec.method} {spec.path} after "
                    f"{record.attempt_number} attempt(s): {classified.category.value}"
                )
                self._dispatch(ApiCallFailed(
                    endpoint=spec.path,
                    method=spec.method,
                    category=classified.category.value,
                    error_message=classified.original_message,
                    attempts=record.attempt_number,
                ))
                raise ApiCallError(classified, attempts=record.attempt_number) from e

            latency_ms = (time.perf_counter() - start_time) * 1000
            record.transition(CallState.SUCCEEDED)
            if spec.uses_cache:
                self.cache.put(key, value, self.ttl_for(spec.resource_class))
            logger.info(f"BambooHR API request completed successfully: {spec.method} {spec.path}")
            self._dispatch(ApiCallSucceeded(
                endpoint=spec.path, method=spec.method, latency_ms=latency_ms, attempt_number=record.attempt_number,
            ))
            return value
