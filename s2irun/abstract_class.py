"""
abstract_class.py

This module contains the AbstractClass which provides logging through an
explicitly passed logger and colored printing capabilities using Rich.
"""

import logging
from typing import Optional
from rich.console import Console

PACKAGE_LOGGER_NAME = 's2irun'


class AbstractClass:
    """
    AbstractClass

    A base class that provides logging functionality and methods for printing colored messages.

    Every component receives the orchestrator's logger and logs through a child
    logger named after its class, so no global logger state is mutated here.
    """

    # Shared console instance for consistent styling
    _console = Console(stderr=True)

    def __init__(self, logger: Optional[logging.Logger] = None):
        """
        Initialize the AbstractClass.

        Args:
            logger: Parent logger handle. Defaults to the package logger.
        """
        parent = logger if logger is not None else logging.getLogger(PACKAGE_LOGGER_NAME)
        self.logger = parent.getChild(self.__class__.__name__)

    def cprint(self, message: str, color: Optional[str] = None, highlight: Optional[str] = None):
        """
        Print a message with optional color and background using Rich.

        Args:
            message: The message to print
            color: Color name (e.g., 'green', 'red', 'blue', 'yellow', 'cyan', 'magenta')
            highlight: Background color (use format like 'on_blue', 'on_red')
        """
        color_map = {
            'light_grey': 'bright_black',
            'light_blue': 'bright_blue',
            'light_red': 'bright_red',
        }

        styles = []
        if color:
            styles.append(color_map.get(color, color))

        if highlight:
            # Convert 'on_blue' to 'on blue' for Rich
            styles.append(highlight.replace('on_', 'on '))

        style = ' '.join(styles) if styles else None
        self._console.print(message, style=style, markup=False, highlight=False)

    def print_success(self, message: str):
        """Print a success message in green."""
        self.cprint(f"✓ {message}", "green")

    def print_error(self, message: str):
        """Print an error message in red."""
        self.cprint(f"✗ {message}", "red")

    def print_warning(self, message: str):
        """Print a warning message in yellow."""
        self.cprint(f"⚠ {message}", "yellow")

    def print_info(self, message: str):
        """Print an info message in cyan."""
        self.cprint(f"ℹ {message}", "cyan")
