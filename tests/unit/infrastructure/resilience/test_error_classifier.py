import asyncio
import logging

import httpx
import pytest

from bamboocli.domain.models.errors import (
    ApiResponseError,
    ErrorCategory,
    ErrorContext,
    RateLimitExceeded,
)
from bamboocli.infrastructure.resilience.error_classifier import ErrorClassifier

CLASSIFIER_LOGGER = "bamboocli.infrastructure.resilience.error_classifier"


@pytest.fixture
def classifier():
    return ErrorClassifier()


@pytest.fixture
def context():
    return ErrorContext(
        operation="Get employee directory",
        tool_name="get_employee_directory",
        endpoint="/employees/directory",
        parameters={"fields": "firstName", "api_key": "abc123secret"},
        resource_class="employees",
    )


@pytest.mark.parametrize("status, expected", [
    (400, ErrorCategory.VALIDATION),
    (401, ErrorCategory.AUTHENTICATION),
    (403, ErrorCategory.AUTHENTICATION),
    (404, ErrorCategory.NOT_FOUND),
    (429, ErrorCategory.RATE_LIMIT),
    (500, ErrorCategory.API_ERROR),
    (502, ErrorCategory.API_ERROR),
    (503, ErrorCategory.API_ERROR),
    (504, ErrorCategory.TIMEOUT_ERROR),
])
def test_status_codes_map_to_categories(classifier, context, status, expected):
    error = ApiResponseError(f"BambooHR API error: {status}", status_code=status)
    classified = classifier.classify(error, context)
    assert classified.category is expected
    assert classified.status_code == status


def test_status_code_wins_over_message_keywords(classifier, context):
    error = ApiResponseError("BambooHR API error: 404 Not Found - invalid api key", status_code=404)
    assert classifier.classify(error, context).category is ErrorCategory.NOT_FOUND


@pytest.mark.parametrize("raw, expected", [
    (httpx.ReadTimeout("read timed out"), ErrorCategory.TIMEOUT_ERROR),
    (asyncio.TimeoutError(), ErrorCategory.TIMEOUT_ERROR),
    (httpx.ConnectError("[Errno 111] Connection refused"), ErrorCategory.NETWORK_ERROR),
    (ConnectionResetError("peer reset"), ErrorCategory.NETWORK_ERROR),
    (RateLimitExceeded("employees", 4200), ErrorCategory.RATE_LIMIT),
])
def test_exception_types(classifier, context, raw, expected):
    assert classifier.classify(raw, context).category is expected


@pytest.mark.parametrize("message, expected", [
    ("Request failed with status 404", ErrorCategory.NOT_FOUND),
    ("BambooHR API error: 503 Service Unavailable", ErrorCategory.API_ERROR),
    ("HTTP/1.1 401 Unauthorized", ErrorCategory.AUTHENTICATION),
    ("Unauthorized access to resource", ErrorCategory.AUTHENTICATION),
    ("Rate limit exceeded for this key", ErrorCategory.RATE_LIMIT),
    ("Employee does not exist", ErrorCategory.NOT_FOUND),
    ("Invalid parameter: start", ErrorCategory.VALIDATION),
    ("network unreachable", ErrorCategory.NETWORK_ERROR),
    ("Connection timed out", ErrorCategory.TIMEOUT_ERROR),
    ("Invalid API key supplied", ErrorCategory.AUTHENTICATION),
    ("Something odd happened upstream", ErrorCategory.API_ERROR),
])
def test_message_heuristics(classifier, context, message, expected):
    assert classifier.classify(RuntimeError(message), context).category is expected


@pytest.mark.parametrize("status, expected", [
    (405, ErrorCategory.VALIDATION),
    (409, ErrorCategory.VALIDATION),
    (418, ErrorCategory.VALIDATION),
    (422, ErrorCategory.VALIDATION),
    (501, ErrorCategory.API_ERROR),
    (507, ErrorCategory.API_ERROR),
])
def test_unlisted_status_codes_fall_back_by_class(classifier, context, status, expected):
    error = ApiResponseError(f"BambooHR API error: {status}", status_code=status)
    classified = classifier.classify(error, context)
    assert classified.category is expected
    assert classified.is_retryable is (expected is ErrorCategory.API_ERROR)


@pytest.mark.parametrize("employee_id", ["400", "401", "404", "503"])
def test_numbers_in_endpoint_paths_are_not_status_codes(classifier, context, employee_id):
    error = ApiResponseError(
        "Incomplete JSON response from BambooHR API. Response was truncated "
        f"or corrupted. Endpoint: /employees/{employee_id}",
        status_code=200,
    )
    classified = classifier.classify(error, context)
    assert classified.category is ErrorCategory.API_ERROR
    assert classified.is_retryable


def test_path_number_without_status_context_is_ignored(classifier, context):
    error = RuntimeError("Unexpected payload shape from /employees/404/files")
    assert classifier.classify(error, context).category is ErrorCategory.API_ERROR


def test_embedded_status_is_read_only_when_no_status_code(classifier, context):
    error = ApiResponseError("Upstream said error: 404", status_code=200)
    assert classifier.classify(error, context).category is ErrorCategory.API_ERROR


def test_failure_without_information_is_unknown(classifier, context):
    classified = classifier.classify(RuntimeError(), context)
    assert classified.category is ErrorCategory.UNKNOWN_ERROR
    assert not classified.is_retryable
    assert classified.original_message == "RuntimeError"


def test_classify_never_raises(classifier, context):
    class Unprintable(Exception):
        def __str__(self):
            raise RuntimeError("cannot render")

    classified = classifier.classify(Unprintable(), context)
    assert classified.category is ErrorCategory.UNKNOWN_ERROR
    assert classified.original_message == "Unprintable"


def test_retryability_follows_category(classifier, context):
    assert classifier.classify(ApiResponseError("x", status_code=503), context).is_retryable
    assert not classifier.classify(ApiResponseError("x", status_code=401), context).is_retryable


def test_advisory_delay_only_for_rate_limits(classifier, context):
    limited = classifier.classify(ApiResponseError("slow down", status_code=429, retry_after_ms=5000), context)
    assert limited.retry_delay_ms == 5000
    local = classifier.classify(RateLimitExceeded("employees", 1200), context)
    assert local.retry_delay_ms == 1200
    server = classifier.classify(ApiResponseError("boom", status_code=500, retry_after_ms=5000), context)
    assert server.retry_delay_ms is None


def test_classified_error_carries_context(classifier, context):
    classified = classifier.classify(ApiResponseError("BambooHR API error: 401", status_code=401), context)
    assert classified.operation == "Get employee directory"
    assert classified.tool_name == "get_employee_directory"
    assert classified.endpoint == "/employees/directory"
    assert "Authentication failed for Get employee directory" in classified.user_message


def test_log_record_is_structured_and_redacted(classifier, context, caplog):
    error = ApiResponseError("BambooHR API error: 401 - token=abcdef123", status_code=401)
    with caplog.at_level(logging.WARNING, logger=CLASSIFIER_LOGGER):
        classifier.classify(error, context)

    record = caplog.records[-1]
    assert record.levelno == logging.ERROR
    assert "get_employee_directory: Get employee directory failed" in record.getMessage()
    error_record = record.error_record
    assert error_record["category"] == "AUTHENTICATION"
    assert error_record["is_retryable"] is False
    assert error_record["endpoint"] == "/employees/directory"
    assert error_record["parameters"] == {"fields": "firstName", "api_key": "[REDACTED]"}
    assert "abcdef123" not in error_record["original_message"]
    assert "abc123secret" not in caplog.text
    assert context.parameters["api_key"] == "abc123secret"


def test_retryable_failures_log_at_warning(classifier, context, caplog):
    with caplog.at_level(logging.WARNING, logger=CLASSIFIER_LOGGER):
        classifier.classify(ApiResponseError("busy", status_code=503), context)
    assert caplog.records[-1].levelno == logging.WARNING
