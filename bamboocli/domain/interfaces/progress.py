"""Interface for reporting progress of long-running, multi-step operations."""

import abc
from typing import Optional


class ProgressReporter(abc.ABC):
    """Receives progress notifications; must never raise into the caller."""

    @abc.abstractmethod
    async def report(self, completed: int, total: int, message: Optional[str] = None) -> None:
        """Reports that `completed` of `total` steps are done."""
        pass
