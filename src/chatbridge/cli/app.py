"""
Main Typer application for the chatbridge CLI.

This module defines the root CLI application and registers all command groups.
"""

from pathlib import Path
from typing import Annotated

import typer

from chatbridge import __version__
from chatbridge.cli.commands import audit, platforms
from chatbridge.cli.output import configure_logging, print_error, print_info
from chatbridge.config.loader import load_config, set_config
from chatbridge.core.exceptions import ConfigurationError

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Create the main Typer app
app = typer.Typer(
    name="chatbridge",
    help="Multi-platform chat bot gateway.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        print_info(f"chatbridge version [green]{__version__}[/green]")
        raise typer.Exit()


# noinspection PyUnusedLocal
@app.callback()
def main_callback(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    config_path: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Additional YAML config file merged over ~/.chatbridge/config.yaml.",
        ),
    ] = None,
    log_level: Annotated[
        str | None,
        typer.Option(
            "--log-level",
            "-l",
            help="Override the configured log level.",
        ),
    ] = None,
) -> None:
    """
    [bold blue]chatbridge[/bold blue] - multi-platform chat bot gateway

    Normalizes Telegram (and future platform) traffic into one message model
    and publishes it to subscribers.
    """
    try:
        config = load_config(config_path=config_path)
    except ConfigurationError as e:
        print_error(str(e))
        raise typer.Exit(1) from e

    level = (log_level or config.logging.level).upper()
    if level not in _LOG_LEVELS:
        print_error(f"Invalid log level: {log_level} (choose from {', '.join(_LOG_LEVELS)})")
        raise typer.Exit(2)

    set_config(config)
    configure_logging(level, rich=config.logging.rich)


# Register command groups
app.add_typer(platforms.app, name="platforms")
app.add_typer(audit.app, name="audit")


if __name__ == "__main__":
    app()
