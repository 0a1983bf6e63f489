"""Interface for interacting with the user (input/output).

Defines the contract for displaying information, errors, warnings and
summaries, and for asking confirmation, allowing different UI
implementations.
"""

import abc
from typing import Any, Dict, List


class UserInterface(abc.ABC):
    """Abstract Base Class for user interaction."""

    @abc.abstractmethod
    def display_info(self, info_message: str) -> None:
        """Displays an informational message to the user."""
        pass

    @abc.abstractmethod
    def display_success(self, message: str) -> None:
        """Displays a message reporting a completed operation."""
        pass

    @abc.abstractmethod
    def display_warning(self, warning_message: str) -> None:
        """Displays a warning message to the user."""
        pass

    @abc.abstractmethod
    def display_error(self, error_message: str) -> None:
        """Displays an error message to the user."""
        pass

    @abc.abstractmethod
    def display_summary(self, title: str, rows: List[Dict[str, Any]]) -> None:
        """Displays a table of results.

        Args:
            title: Heading shown above the table.
            rows: One mapping per row; keys of the first row become columns.
        """
        pass

    @abc.abstractmethod
    def ask_yes_no_question(self, question: str) -> bool:
        """Asks a yes/no question and returns True if the answer is yes."""
        pass
