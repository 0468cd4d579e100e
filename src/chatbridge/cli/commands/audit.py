"""
chatbridge audit - Audit log access commands.

Usage:
    chatbridge audit tail [-n N]
"""

import json
from typing import Annotated

import typer
from rich.markup import escape

from chatbridge.audit import get_audit_logger
from chatbridge.cli.output import console, print_warning
from chatbridge.config import get_config

app = typer.Typer(
    name="audit",
    help="Audit log access.",
)

_EVENT_STYLES = {
    "platform_user_blocked": "red",
    "platform_adapter_error": "red",
    "platform_message_received": "cyan",
    "platform_message_sent": "green",
}


@app.command()
def tail(
    lines: Annotated[
        int,
        typer.Option(
            "--lines",
            "-n",
            min=1,
            help="Number of events to show.",
        ),
    ] = 20,
) -> None:
    """View recent audit events."""
    audit_logger = get_audit_logger(get_config().audit)
    events = audit_logger.read_recent(lines)

    if not events:
        print_warning(f"No audit events in {audit_logger.log_path}")
        return

    for event in events:
        timestamp = event.pop("timestamp", "")
        event_type = event.pop("event_type", "unknown")
        style = _EVENT_STYLES.get(event_type, "white")
        details = escape(json.dumps(event, ensure_ascii=False))
        console.print(f"[dim]{timestamp}[/dim] [{style}]{event_type}[/{style}] {details}")
