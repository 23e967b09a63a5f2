"""Interface for the outbound transport to the HR provider.

Implementations attach the static credential, enforce the per-attempt
timeout, and translate non-success responses into ApiResponseError. Any
other failure (network, timeout) is raised as-is for the ErrorClassifier.
"""

import abc
from typing import Any, Optional

from ..models.common import EndpointPath, RequestParams


class Transport(abc.ABC):
    """Abstract Base Class for sending one request and returning parsed JSON."""

    @abc.abstractmethod
    async def send(
        self,
        method: str,
        path: EndpointPath,
        params: Optional[RequestParams] = None,
        timeout_seconds: Optional[float] = None,
    ) -> Any:
        """Sends a request asynchronously.

        Args:
            method: 'GET' or 'POST'.
            path: Endpoint path relative to the provider base URL.
            params: Query parameters (GET) or JSON body (POST).
            timeout_seconds: Upper bound for this single attempt.

        Returns:
            The deserialized JSON payload (None for an empty body).

        Raises:
            ApiResponseError: For non-success statuses or unusable bodies.
        """
        pass

    async def close(self) -> None:
        """Releases any underlying connections."""
        pass
