"""Concrete Transport implementation using httpx.

Hides the specifics of the HTTP library: attaches HTTP Basic auth (API key
as username, 'x' as password), sends params as a query string for GET and as
a JSON body for POST, and turns non-success responses or unusable bodies into
ApiResponseError. Network and timeout exceptions from httpx propagate as-is.
"""

import json
import logging
import math
import time
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Optional

import httpx

from bamboocli.domain.interfaces.transport import Transport
from bamboocli.domain.models.common import EndpointPath, RequestParams
from bamboocli.domain.models.errors import ApiResponseError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0
MAX_ERROR_TEXT_LENGTH = 500
USER_AGENT = "bamboocli/1.0"


def parse_retry_after(response: httpx.Response) -> Optional[float]:
    """Parses the Retry-After header into milliseconds.

    Accepts delay-seconds ("120") or an HTTP date. Returns None when the
    header is missing, unparseable or not a finite number.
    """
    value = response.headers.get("Retry-After")
    if not value:
        return None
    value = value.strip()
    try:
        seconds = float(value)
    except ValueError:
        pass
    else:
        return max(seconds, 0.0) * 1000 if math.isfinite(seconds) else None
    try:
        retry_at = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None
    if retry_at.tzinfo is None:
        retry_at = retry_at.replace(tzinfo=timezone.utc)
    return max((retry_at - datetime.now(timezone.utc)).total_seconds() * 1000, 0.0)


def build_error_message(response: httpx.Response) -> str:
    """Human-readable message for a non-success response."""
    message = f"BambooHR API error: {response.status_code} {response.reason_phrase}"
    text = response.text
    if not text:
        return message
    try:
        body = json.loads(text)
    except ValueError:
        if len(text) > MAX_ERROR_TEXT_LENGTH:
            text = text[:MAX_ERROR_TEXT_LENGTH] + "..."
        return f"{message} - {text}"

    if isinstance(body, str):
        detail = body
    elif isinstance(body, dict) and body.get("message"):
        detail = str(body["message"])
    elif isinstance(body, dict) and body.get("error"):
        error = body["error"]
        detail = error if isinstance(error, str) else json.dumps(error)
    elif isinstance(body, dict) and isinstance(body.get("errors"), list):
        detail = ", ".join(str(item) for item in body["errors"])
    elif isinstance(body, dict) and body.get("detail"):
        detail = str(body["detail"])
    else:
        detail = json.dumps(body)
    return f"{message} - {detail}"


def parse_body(response: httpx.Response, path: str) -> Any:
    """Decodes a success response body; an empty body decodes to None."""
    text = response.text
    if not text or not text.strip():
        logger.debug(f"Empty response from BambooHR API: {path}")
        return None
    try:
        return json.loads(text)
    except ValueError as e:
        stripped = text.strip()
        logger.error(
            f"Failed to parse BambooHR API response: {path} "
            f"(length={len(text)}, preview={stripped[:200]!r}): {e}"
        )
        if stripped.startswith("<"):
            raise ApiResponseError(
                "BambooHR returned HTML instead of JSON. This usually indicates an "
                f"authentication or server error. Endpoint: {path}",
                status_code=response.status_code,
            ) from e
        if stripped.startswith(("{", "[")):
            raise ApiResponseError(
                "Incomplete JSON response from BambooHR API. Response was truncated "
                f"or corrupted. Endpoint: {path}",
                status_code=response.status_code,
            ) from e
        raise ApiResponseError(
            f"Invalid JSON response from BambooHR API: {e}",
            status_code=response.status_code,
        ) from e


class HttpxTransport(Transport):
    """Sends authenticated requests to the BambooHR REST API."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        client: Optional[httpx.AsyncClient] = None,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initializes the transport.

        Args:
            base_url: Provider base URL including the company subdomain.
            api_key: Static API key, used as the Basic auth username.
            timeout_seconds: Default per-request timeout.
            client: Pre-built AsyncClient to use as-is.
            http_transport: Low-level httpx transport for the default client
                (e.g. httpx.MockTransport in tests).
        """
        if not api_key:
            raise ValueError("BambooHR API key not provided.")
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._client = client or httpx.AsyncClient(
            base_url=self.base_url,
            auth=httpx.BasicAuth(api_key, "x"),
            headers={"Accept": "application/json", "User-Agent": USER_AGENT},
            timeout=timeout_seconds,
            transport=http_transport,
        )
        logger.info(f"HttpxTransport initialized for {self.base_url}")

    async def send(
        self,
        method: str,
        path: EndpointPath,
        params: Optional[RequestParams] = None,
        timeout_seconds: Optional[float] = None,
    ) -> Any:
        method = method.upper()
        kwargs: dict = {"timeout": timeout_seconds or self.timeout_seconds}
        if method == "GET":
            if params:
                kwargs["params"] = params
        elif params is not None:
            kwargs["json"] = params

        logger.debug(f"Sending BambooHR API request: {method} {path}")
        start_time = time.perf_counter()
        response = await self._client.request(method, path, **kwargs)
        latency_ms = (time.perf_counter() - start_time) * 1000

        if not response.is_success:
            message = build_error_message(response)
            logger.debug(f"BambooHR API request failed: {method} {path} status={response.status_code}")
            raise ApiResponseError(
                message,
                status_code=response.status_code,
                retry_after_ms=parse_retry_after(response),
            )

        logger.debug(f"BambooHR API responded {response.status_code} for {method} {path} in {latency_ms:.2f}ms")
        return parse_body(response, path)

    async def close(self) -> None:
        await self._client.aclose()
