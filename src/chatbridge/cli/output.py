"""
Output formatting utilities for the CLI.

Provides consistent console output and logging setup across commands.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler

# Global console instance
console = Console()


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]✓[/green] {message}")


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[red]✗[/red] {message}")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]![/yellow] {message}")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[blue]i[/blue] {message}")


def configure_logging(level: str = "INFO", rich: bool = True) -> None:
    """
    Configure the root logger for CLI runs.

    Args:
        level: Log level name.
        rich: Render records through rich instead of plain text.
    """
    handler: logging.Handler
    if rich:
        handler = RichHandler(console=console, rich_tracebacks=True, show_path=False)
        fmt = "%(message)s"
    else:
        handler = logging.StreamHandler()
        fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"

    logging.basicConfig(level=level.upper(), format=fmt, handlers=[handler], force=True)

    # python-telegram-bot's HTTP layer is chatty at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
