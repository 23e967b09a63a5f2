"""Interface for interacting with the user (output only).

Defines the contract for displaying results, classified errors, warnings
and informational messages, allowing different UI implementations.
"""

import abc
from typing import Any, Dict, List

from ..models.errors import ClassifiedError


class UserInterface(abc.ABC):
    """Abstract Base Class for user interaction."""

    @abc.abstractmethod
    def display_output(self, output: Any, **kwargs: Any) -> None:
        """Displays a result payload (typically decoded JSON) to the user.

        Args:
            output: The payload to display.
            **kwargs: Additional arguments for formatting (e.g., title).
        """
        pass

    @abc.abstractmethod
    def display_classified_error(self, error: ClassifiedError) -> None:
        """Displays a classified failure with its troubleshooting steps."""
        pass

    @abc.abstractmethod
    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message to the user."""
        pass

    @abc.abstractmethod
    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        """Displays a warning message to the user."""
        pass

    @abc.abstractmethod
    def display_info(self, info_message: str, **kwargs: Any) -> None:
        """Displays an informational message to the user."""
        pass

    def display_cache_stats(self, stats: Dict[str, Any]) -> None:
        """Displays cache statistics. Default falls back to plain info lines."""
        entries: List[str] = stats.get("entries", [])
        self.display_info(f"Cached entries: {stats.get('size', len(entries))}")
        for entry in entries:
            self.display_info(f"  {entry}")
