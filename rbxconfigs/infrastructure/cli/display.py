import logging
from typing import Any, Dict, List, Optional

from rich.box import HEAVY, ROUNDED, SIMPLE
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from rbxconfigs.domain.interfaces.user_interface import UserInterface

logger = logging.getLogger(__name__)


class ConsoleDisplay(UserInterface):
    """Concrete implementation of UserInterface using the rich library for console output."""

    def __init__(self, console: Optional[Console] = None):
        """Initializes the rich Console."""
        self._console = console or Console()

    @property
    def console(self) -> Console:
        """Get the Rich console instance for direct operations."""
        return self._console

    def display_info(self, info_message: str) -> None:
        """Displays an informational message.

        Args:
            info_message: The informational message to display.
        """
        self.console.print(Text(info_message, style="blue"))

    def display_success(self, message: str) -> None:
        self.console.print(Text(message, style="bold green"))

    def display_warning(self, warning_message: str) -> None:
        """Displays a warning message with enhanced styling.

        Args:
            warning_message: The warning message to display.
        """
        panel = Panel(
            Text(warning_message, style="white"),
            title="[bold yellow]Warning[/bold yellow]",
            border_style="yellow",
            box=SIMPLE,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_error(self, error_message: str) -> None:
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

    def display_summary(self, title: str, rows: List[Dict[str, Any]]) -> None:
        """Displays rows as a table, one column per key of the first row."""
        if not rows:
            self.display_info(f"{title}: nothing to show.")
            return

        table = Table(title=title, box=ROUNDED, show_header=True, header_style="bold cyan")
        columns = list(rows[0].keys())
        for column in columns:
            table.add_column(str(column))
        for row in rows:
            table.add_row(*(str(row.get(column, "")) for column in columns))
        self.console.print(table)

    def ask_yes_no_question(self, question: str) -> bool:
        """Asks a yes/no question and returns the answer.

        Args:
            question: The question to ask

        Returns:
            True if the answer is yes, False otherwise
        """
        logger.debug(f"Asking yes/no question: {question}")
        panel = Panel(
            Text(f"{question} (y/n)", style="white"),
            title="[bold yellow]Question[/bold yellow]",
            border_style="yellow",
            box=ROUNDED,
            padding=(0, 1)
        )
        self.console.print(panel)
        response = self.console.input("[bold yellow]> [/bold yellow]").strip().lower()
        return response in ('y', 'yes')
