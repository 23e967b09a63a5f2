"""Maps raw failures to an ErrorCategory and builds ClassifiedError objects.

Classification order (first match wins):
    1. explicit HTTP status code (or local rate limiter rejection); other
       4xx codes are VALIDATION and other 5xx codes are API_ERROR
    2. transport exception type (timeouts, connection failures)
    3. a status code quoted in the message ("error: 404", "status 503"),
       only when the failure carries no status of its own, then keywords
    4. API_ERROR for anything else that carries a message

A failure with nothing to go on, or one that breaks classification itself,
becomes UNKNOWN_ERROR. classify() never raises.
"""

import asyncio
import logging
import re
from typing import Any, Dict, Optional, Tuple

import httpx

from bamboocli.domain.models.errors import (
    CATEGORY_PROFILES,
    ApiResponseError,
    ClassifiedError,
    ErrorCategory,
    ErrorContext,
    RateLimitExceeded,
)
from bamboocli.infrastructure.monitoring.redaction import redact, redact_text

logger = logging.getLogger(__name__)

STATUS_CATEGORIES: Dict[int, ErrorCategory] = {
    400: ErrorCategory.VALIDATION,
    401: ErrorCategory.AUTHENTICATION,
    403: ErrorCategory.AUTHENTICATION,
    404: ErrorCategory.NOT_FOUND,
    429: ErrorCategory.RATE_LIMIT,
    500: ErrorCategory.API_ERROR,
    502: ErrorCategory.API_ERROR,
    503: ErrorCategory.API_ERROR,
    504: ErrorCategory.TIMEOUT_ERROR,
}

# Bare numbers are ignored: endpoint paths such as /employees/404 carry IDs.
_STATUS_IN_MESSAGE = re.compile(r"\b(?:status(?:\s+code)?|error|http(?:/\d(?:\.\d)?)?)[\s:=]+(\d{3})\b")

# Ordered: earlier groups win when a message matches several.
MESSAGE_KEYWORDS: Tuple[Tuple[ErrorCategory, Tuple[str, ...]], ...] = (
    (ErrorCategory.AUTHENTICATION, ("unauthorized", "forbidden", "invalid credentials")),
    (ErrorCategory.RATE_LIMIT, ("rate limit", "too many requests")),
    (ErrorCategory.NOT_FOUND, ("not found", "does not exist")),
    (ErrorCategory.VALIDATION, ("bad request", "invalid parameter", "validation")),
    (ErrorCategory.NETWORK_ERROR, ("network", "enotfound", "econnrefused", "connection refused", "connection reset")),
    (ErrorCategory.TIMEOUT_ERROR, ("timeout", "timed out", "etimedout")),
    (ErrorCategory.AUTHENTICATION, ("api key", "subdomain", "credential", "authentication")),
)

TIMEOUT_EXCEPTIONS = (httpx.TimeoutException, asyncio.TimeoutError, TimeoutError)
NETWORK_EXCEPTIONS = (httpx.TransportError, ConnectionError, OSError)


def _status_of(raw_error: BaseException) -> Optional[int]:
    if isinstance(raw_error, httpx.HTTPStatusError):
        return raw_error.response.status_code
    status = getattr(raw_error, "status_code", None)
    return status if isinstance(status, int) else None


def _category_for_status(status: int) -> Optional[ErrorCategory]:
    if status in STATUS_CATEGORIES:
        return STATUS_CATEGORIES[status]
    if 400 <= status < 500:
        return ErrorCategory.VALIDATION
    if 500 <= status < 600:
        return ErrorCategory.API_ERROR
    return None


class ErrorClassifier:
    """Turns a raw exception plus call context into a ClassifiedError."""

    def categorize(self, raw_error: BaseException) -> ErrorCategory:
        """Category for a raw failure; see module docstring for the order."""
        if isinstance(raw_error, RateLimitExceeded):
            return ErrorCategory.RATE_LIMIT

        status = _status_of(raw_error)
        if status is not None:
            category = _category_for_status(status)
            if category is not None:
                return category

        if isinstance(raw_error, TIMEOUT_EXCEPTIONS):
            return ErrorCategory.TIMEOUT_ERROR
        if isinstance(raw_error, NETWORK_EXCEPTIONS):
            return ErrorCategory.NETWORK_ERROR

        message = str(raw_error).strip().lower()
        if not message and status is None:
            return ErrorCategory.UNKNOWN_ERROR

        if status is None:
            embedded = _STATUS_IN_MESSAGE.search(message)
            category = _category_for_status(int(embedded.group(1))) if embedded else None
            if category is not None:
                return category

        for category, keywords in MESSAGE_KEYWORDS:
            if any(keyword in message for keyword in keywords):
                return category

        return ErrorCategory.API_ERROR

    def classify(self, raw_error: BaseException, context: ErrorContext) -> ClassifiedError:
        """Classifies `raw_error` and logs a structured, redacted record."""
        original_message = self._describe(raw_error)
        try:
            category = self.categorize(raw_error)
            advisory_ms = self._advisory_delay_ms(raw_error, category)
            status = _status_of(raw_error)
        except Exception as e:
            logger.error(f"Error classification failed for {type(raw_error).__name__}: {e}", exc_info=True)
            category, advisory_ms, status = ErrorCategory.UNKNOWN_ERROR, None, None

        classified = ClassifiedError(
            category=category,
            operation=str(context.operation),
            tool_name=str(context.tool_name),
            endpoint=str(context.endpoint),
            original_message=original_message,
            is_retryable=CATEGORY_PROFILES[category].retryable,
            retry_delay_ms=advisory_ms,
            status_code=status,
            local_rejection=isinstance(raw_error, RateLimitExceeded),
        )
        self._log(classified, context)
        return classified

    @staticmethod
    def _describe(raw_error: BaseException) -> str:
        try:
            return str(raw_error) or type(raw_error).__name__
        except Exception:
            return type(raw_error).__name__

    @staticmethod
    def _advisory_delay_ms(raw_error: BaseException, category: ErrorCategory) -> Optional[float]:
        if category is not ErrorCategory.RATE_LIMIT:
            return None
        if isinstance(raw_error, (RateLimitExceeded, ApiResponseError)):
            return raw_error.retry_after_ms
        return None

    @staticmethod
    def _log(classified: ClassifiedError, context: ErrorContext) -> None:
        record: Dict[str, Any] = {
            "category": classified.category.value,
            "is_retryable": classified.is_retryable,
            "operation": classified.operation,
            "tool_name": classified.tool_name,
            "endpoint": classified.endpoint,
            "resource_class": context.resource_class,
            "status_code": classified.status_code,
            "retry_delay_ms": classified.retry_delay_ms,
            "original_message": redact_text(classified.original_message),
            "parameters": redact(context.parameters),
        }
        level = logging.WARNING if classified.is_retryable else logging.ERROR
        logger.log(
            level,
            f"{classified.tool_name}: {classified.operation} failed "
            f"[{classified.category.value}, retryable={classified.is_retryable}] "
            f"endpoint={classified.endpoint} params={record['parameters']}",
            extra={"error_record": record},
        )
