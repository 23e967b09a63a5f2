"""Command Handler: Orchestrates CLI command execution.

Receives commands from the main entry point (main.py), delegates the work to
the HrApiClient and renders the outcome through the UserInterface.
"""

import logging
from typing import Any, Dict, List, Optional

from bamboocli.core.services.hr_client import HrApiClient
from bamboocli.domain.interfaces.user_interface import UserInterface
from bamboocli.domain.models.common import DEFAULT_RESOURCE_CLASS
from bamboocli.domain.models.errors import ClassifiedError

logger = logging.getLogger(__name__)


def parse_params(pairs: Optional[List[str]]) -> Dict[str, Any]:
    """Turns ['key=value', ...] into a dict; a repeated key becomes a list.

    Raises:
        ValueError: If an item has no '=' or an empty key.
    """
    params: Dict[str, Any] = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ValueError(f"Invalid parameter '{pair}'. Expected key=value.")
        if key in params:
            existing = params[key]
            params[key] = existing + [value] if isinstance(existing, list) else [existing, value]
        else:
            params[key] = value
    return params


class CommandHandler:
    """Handles incoming commands and delegates to the API client."""

    def __init__(self, client: HrApiClient, ui: UserInterface):
        self.client = client
        self.ui = ui

    async def handle_fetch(
        self,
        path: str,
        method: str = "GET",
        param_pairs: Optional[List[str]] = None,
        resource_class: str = DEFAULT_RESOURCE_CLASS,
        operation: Optional[str] = None,
    ) -> bool:
        """Handles the 'fetch' command.

        Returns:
            True when a payload was displayed, False on any failure.
        """
        logger.info(f"Handling 'fetch' command: {method.upper()} {path} (resource class: {resource_class})")
        try:
            params = parse_params(param_pairs)
            result = await self.client.fetch(
                path,
                method=method,
                params=params,
                resource_class=resource_class,
                operation=operation,
                tool_name="bamboocli fetch",
            )
        except ValueError as e:
            logger.error(f"Invalid fetch request: {e}")
            self.ui.display_error(str(e))
            return False
        finally:
            await self.client.close()

        if isinstance(result, ClassifiedError):
            self.ui.display_classified_error(result)
            return False

        self.ui.display_output(result, title=f"{method.upper()} {path}")
        return True

    async def handle_cache_stats(self) -> bool:
        """Handles the 'cache-stats' command."""
        logger.info("Handling 'cache-stats' command")
        self.ui.display_cache_stats(self.client.cache_stats())
        return True

    async def handle_clear_cache(self) -> bool:
        """Handles the 'clear-cache' command."""
        logger.info("Handling 'clear-cache' command")
        self.client.clear_cache()
        self.ui.display_info("Response cache cleared successfully.")
        return True
