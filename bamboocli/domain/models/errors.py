"""Error taxonomy for calls to the HR provider.

The category catalog below is the single source of truth for both the
automated retry decision (retryable flag, base delay) and the guidance
shown to people (message template, troubleshooting steps).
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .common import EndpointPath, OperationLabel, ResourceClass, ToolName


class ErrorCategory(str, Enum):
    """Closed set of failure categories."""
    API_ERROR = "API_ERROR"
    RATE_LIMIT = "RATE_LIMIT"
    AUTHENTICATION = "AUTHENTICATION"
    NOT_FOUND = "NOT_FOUND"
    VALIDATION = "VALIDATION"
    NETWORK_ERROR = "NETWORK_ERROR"
    TIMEOUT_ERROR = "TIMEOUT_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


@dataclass(frozen=True)
class CategoryProfile:
    """Guidance and retry characteristics attached to one category."""
    message_template: str  # formatted with {operation}
    troubleshooting: Tuple[str, ...]
    retryable: bool
    base_delay_ms: int


# Local limiter refusals never reach the network, so they name the wait instead.
LOCAL_RATE_LIMIT_TEMPLATE = (
    "Request budget for {operation} is used up on this client. Try again in {seconds} second(s)."
)


CATEGORY_PROFILES: Dict[ErrorCategory, CategoryProfile] = {
    ErrorCategory.AUTHENTICATION: CategoryProfile(
        message_template="Authentication failed for {operation}. Please verify your BambooHR API key and subdomain.",
        troubleshooting=(
            "Verify BAMBOO_API_KEY is correctly set",
            "Verify BAMBOO_SUBDOMAIN matches your BambooHR instance",
            "Check that your API key has not expired",
            "Ensure your API key has the required permissions",
            "Confirm subdomain format (no .bamboohr.com suffix)",
        ),
        retryable=False,
        base_delay_ms=0,
    ),
    ErrorCategory.RATE_LIMIT: CategoryProfile(
        message_template="Rate limit exceeded for {operation}. Please wait a moment before trying again.",
        troubleshooting=(
            "Wait a moment and try again",
            "Consider reducing the frequency of requests",
            "Check if other tools are using the same API key",
            "Monitor rate limit headers in responses",
        ),
        retryable=True,
        base_delay_ms=5000,
    ),
    ErrorCategory.NOT_FOUND: CategoryProfile(
        message_template="No data found for {operation}. Please verify your search criteria.",
        troubleshooting=(
            "Verify the employee/data exists in BambooHR",
            "Check spelling and format of search terms",
            "Try broader search criteria",
            "Confirm you have access to the requested data",
        ),
        retryable=False,
        base_delay_ms=0,
    ),
    ErrorCategory.VALIDATION: CategoryProfile(
        message_template="Invalid parameters provided for {operation}. Please check your input.",
        troubleshooting=(
            "Check parameter format (dates should be YYYY-MM-DD)",
            "Verify required parameters are provided",
            "Check parameter value ranges and constraints",
            "Ensure parameter types match expected values",
        ),
        retryable=False,
        base_delay_ms=0,
    ),
    ErrorCategory.NETWORK_ERROR: CategoryProfile(
        message_template="Network error during {operation}. Please check your internet connection.",
        troubleshooting=(
            "Check your internet connection",
            "Verify you can access https://api.bamboohr.com",
            "Check firewall and proxy settings",
            "Test DNS resolution for api.bamboohr.com",
        ),
        retryable=True,
        base_delay_ms=1000,
    ),
    ErrorCategory.TIMEOUT_ERROR: CategoryProfile(
        message_template="Request timeout during {operation}. The operation took too long to complete.",
        troubleshooting=(
            "Try again with a smaller date range",
            "Consider breaking large requests into smaller ones",
            "Check your network connection speed",
            "Verify server is not under heavy load",
        ),
        retryable=True,
        base_delay_ms=2000,
    ),
    ErrorCategory.API_ERROR: CategoryProfile(
        message_template="BambooHR API error during {operation}. Please try again later.",
        troubleshooting=(
            "Check BambooHR service status",
            "Try again in a few minutes",
            "Verify your request format is correct",
            "Contact BambooHR support if issue persists",
        ),
        retryable=True,
        base_delay_ms=3000,
    ),
    ErrorCategory.UNKNOWN_ERROR: CategoryProfile(
        message_template="Unexpected error during {operation}. Please contact support if this persists.",
        troubleshooting=(
            "Check the server logs for more details",
            "Try again in a few minutes",
            "Contact support with error details",
            "Provide the exact operation that failed",
        ),
        retryable=False,
        base_delay_ms=1000,
    ),
}


@dataclass
class ErrorContext:
    """Describes the call that failed; supplied by the caller of the classifier."""
    operation: OperationLabel
    tool_name: ToolName
    endpoint: EndpointPath
    parameters: Dict[str, Any] = field(default_factory=dict)
    resource_class: Optional[ResourceClass] = None


@dataclass(frozen=True)
class ClassifiedError:
    """A raw failure annotated with category, retryability and guidance.

    `original_message` is the technical text (for logs); `user_message` is
    the sanitized text built from the category template (for display).
    """
    category: ErrorCategory
    operation: str
    tool_name: str
    endpoint: str
    original_message: str
    is_retryable: bool
    retry_delay_ms: Optional[float] = None
    status_code: Optional[int] = None
    local_rejection: bool = False

    @property
    def profile(self) -> CategoryProfile:
        return CATEGORY_PROFILES[self.category]

    @property
    def user_message(self) -> str:
        if self.local_rejection:
            seconds = math.ceil((self.retry_delay_ms or 0) / 1000)
            return LOCAL_RATE_LIMIT_TEMPLATE.format(operation=self.operation, seconds=seconds)
        return self.profile.message_template.format(operation=self.operation)

    @property
    def troubleshooting(self) -> List[str]:
        return list(self.profile.troubleshooting)

    def render(self) -> str:
        """Markdown text for display: message, numbered steps and a retry note."""
        steps = "\n".join(f"{index}. {step}" for index, step in enumerate(self.troubleshooting, start=1))
        if self.is_retryable:
            note = "**Note:** This error may be temporary and could resolve with a retry."
        else:
            note = "**Note:** This error requires manual intervention."
        return f"**{self.user_message}**\n\n**Troubleshooting Steps:**\n{steps}\n{note}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category.value,
            "operation": self.operation,
            "tool_name": self.tool_name,
            "endpoint": self.endpoint,
            "user_message": self.user_message,
            "original_message": self.original_message,
            "is_retryable": self.is_retryable,
            "retry_delay_ms": self.retry_delay_ms,
            "status_code": self.status_code,
            "local_rejection": self.local_rejection,
        }


# --- Raw failures (consumed by the ErrorClassifier) ---

class ApiResponseError(Exception):
    """The provider answered, but with a non-success status or an unusable body."""

    def __init__(self, message: str, status_code: Optional[int] = None, retry_after_ms: Optional[float] = None):
        self.status_code = status_code
        self.retry_after_ms = retry_after_ms
        super().__init__(message)


class RateLimitExceeded(Exception):
    """The local rate limiter refused admission for a resource class."""

    def __init__(self, resource_class: str, retry_after_ms: float):
        self.resource_class = resource_class
        self.retry_after_ms = retry_after_ms
        super().__init__(
            f"Local rate limit reached for resource class '{resource_class}'; "
            f"retry after {retry_after_ms:.0f}ms"
        )


# --- Surfaced failure ---

class ApiCallError(Exception):
    """Raised by the request executor when a failure is surfaced to the caller."""

    def __init__(self, classified: ClassifiedError, attempts: int):
        self.classified = classified
        self.attempts = attempts
        super().__init__(
            f"{classified.category.value} after {attempts} attempt(s): {classified.original_message}"
        )
