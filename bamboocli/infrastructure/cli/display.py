import json
import logging
from typing import Any, Dict, Optional

from rich.box import HEAVY, SIMPLE
from rich.console import Console
from rich.json import JSON
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from bamboocli.domain.interfaces.user_interface import UserInterface
from bamboocli.domain.models.errors import ClassifiedError

logger = logging.getLogger(__name__)


class ConsoleDisplay(UserInterface):
    """Concrete implementation of UserInterface using the rich library for console output."""

    def __init__(self, console: Optional[Console] = None):
        """Initializes the rich Console."""
        self._console = console or Console()

    @property
    def console(self):
        """Get the Rich console instance for direct operations."""
        return self._console

    @console.setter
    def console(self, value) -> None:
        self._console = value

    def display_output(self, output: Any, **kwargs: Any) -> None:
        """Displays a result payload.

        Dicts and lists are pretty-printed as JSON; strings are rendered as
        Markdown; None prints a short notice.

        Args:
            output: The payload returned by the API.
            **kwargs: Additional arguments including:
                - title: Optional heading printed above the payload
        """
        title = kwargs.get("title")
        if title:
            self.console.print(Text(title, style="bold"))

        if output is None:
            self.console.print(Text("(empty response)", style="dim"))
        elif isinstance(output, (dict, list)):
            self.console.print(JSON(json.dumps(output, default=str)))
        else:
            self.console.print(Markdown(str(output)))

    def display_classified_error(self, error: ClassifiedError) -> None:
        """Displays a classified failure as a Markdown panel with troubleshooting steps."""
        border = "yellow" if error.is_retryable else "red"
        panel = Panel(
            Markdown(error.render()),
            title=f"[bold {border}]{error.category.value}[/bold {border}]",
            title_align="left",
            border_style=border,
            box=HEAVY,
            padding=(0, 1),
        )
        self.console.print(panel)

    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message in a distinct style.

        Args:
            error_message: The error message to display.
        """
        panel = Panel(
            Text(error_message, style="white"),
            title="[bold red]Error[/bold red]",
            border_style="red",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        logger.warning(f"Display warning: {warning_message}")
        panel = Panel(
            Text(warning_message, style="white"),
            title="[bold yellow]Warning[/bold yellow]",
            border_style="yellow",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_info(self, info_message: str, **kwargs: Any) -> None:
        """Displays an informational message.

        Args:
            info_message: The informational message to display.
        """
        panel = Panel(
            Text(info_message, style="white"),
            title="[bold blue]Info[/bold blue]",
            border_style="blue",
            box=SIMPLE,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_cache_stats(self, stats: Dict[str, Any]) -> None:
        """Displays the cache size and live keys as a table."""
        entries = stats.get("entries", [])
        table = Table(title=f"Response cache ({stats.get('size', len(entries))} live entries)", box=SIMPLE)
        table.add_column("#", justify="right", style="dim")
        table.add_column("Cache key")
        for index, key in enumerate(entries, start=1):
            table.add_row(str(index), str(key))
        self.console.print(table)
