"""Progress reporter implementations for multi-request operations."""

import logging
from typing import Optional

from bamboocli.domain.interfaces.progress import ProgressReporter

logger = logging.getLogger(__name__)


class NullProgressReporter(ProgressReporter):
    """Discards all progress notifications."""

    async def report(self, completed: int, total: int, message: Optional[str] = None) -> None:
        return None


class LoggingProgressReporter(ProgressReporter):
    """Writes progress notifications to the log."""

    def __init__(self, label: str = "progress", level: int = logging.INFO):
        self.label = label
        self.level = level

    async def report(self, completed: int, total: int, message: Optional[str] = None) -> None:
        suffix = f" - {message}" if message else ""
        logger.log(self.level, f"[{self.label}] {completed}/{total}{suffix}")
