"""
chatbridge platforms - Manage platform adapters.

Usage:
    chatbridge platforms list
    chatbridge platforms start [--platform PLATFORM]
"""

import asyncio
from typing import Annotated, Optional

import typer
from rich.table import Table

from chatbridge.audit import get_audit_logger
from chatbridge.cli.output import console, print_error, print_success, print_warning
from chatbridge.config import get_config
from chatbridge.core.events import EventBridge
from chatbridge.core.models import (
    BotEvent,
    ErrorEvent,
    EventType,
    MessageEvent,
    UserJoinEvent,
    UserLeaveEvent,
)
from chatbridge.platforms.manager import ADAPTER_REGISTRY, PlatformManager
from chatbridge.storage.paths import get_global_config_path

app = typer.Typer(
    name="platforms",
    help="Manage multi-platform messaging adapters.",
)


def print_event(event: BotEvent) -> None:
    """Render one bridge event on the console."""
    platform = event.platform.value

    if isinstance(event, MessageEvent):
        user = event.data.user
        preview = event.data.message.content[:80] or f"<{event.data.message.type.value}>"
        console.print(f"[cyan]{platform}[/cyan] | [bold]{user.display_name}:[/bold] {preview}")
    elif isinstance(event, UserJoinEvent):
        console.print(f"[cyan]{platform}[/cyan] | [green]+ {event.data.user.display_name}[/green]")
    elif isinstance(event, UserLeaveEvent):
        console.print(f"[cyan]{platform}[/cyan] | [yellow]- {event.data.user.display_name}[/yellow]")
    elif isinstance(event, ErrorEvent):
        console.print(f"[cyan]{platform}[/cyan] | [red]error: {event.data.error}[/red]")


async def _run_platforms(platform_filter: Optional[str] = None) -> None:
    """Start the selected platforms and block until cancelled."""
    config = get_config()
    bridge = EventBridge()
    audit_logger = get_audit_logger(config.audit)

    manager = PlatformManager.from_config(
        config,
        bridge,
        audit_logger=audit_logger,
        platforms=[platform_filter] if platform_filter else None,
    )
    if not manager.adapters:
        if platform_filter:
            print_error(f"Platform '{platform_filter}' not enabled")
        else:
            print_warning("No platforms enabled. See: chatbridge platforms list")
        raise typer.Exit(1)

    for event_type in EventType:
        bridge.subscribe(event_type, print_event)

    console.print("[bold green]Starting platform service...[/bold green]")
    await manager.start()

    if not manager.active_platforms:
        await manager.stop()
        print_error("No platform could be started (see log above)")
        raise typer.Exit(1)

    print_success(f"Platform service started with {len(manager.active_platforms)} platform(s)")
    for name in manager.active_platforms:
        adapter = manager.get_adapter(name)
        mode = adapter.delivery_mode.value if adapter else "?"
        console.print(f"  [cyan]•[/cyan] {name} ({mode})")
    console.print("\n[dim]Press Ctrl+C to stop[/dim]\n")

    try:
        await asyncio.Event().wait()
    finally:
        console.print("\n[yellow]Stopping platform service...[/yellow]")
        await manager.stop()
        print_success("Platform service stopped")


@app.command("list")
def list_platforms() -> None:
    """List platforms and their configuration status."""
    config = get_config()

    table = Table(title="Platforms")
    table.add_column("Platform", style="cyan")
    table.add_column("Status", style="bold")
    table.add_column("Mode", style="dim")
    table.add_column("Token")
    table.add_column("Allowed users", style="dim")

    for name in ADAPTER_REGISTRY:
        platform_config = getattr(config.platforms, name)
        status = "[green]Enabled[/green]" if platform_config.enable else "[dim]Disabled[/dim]"
        token = (
            "[green]✓ Configured[/green]"
            if platform_config.credential
            else "[yellow]⚠ Missing token[/yellow]"
        )
        allowed = ", ".join(platform_config.allowed_users) or "everyone"
        table.add_row(name, status, platform_config.delivery_mode, token, allowed)

    console.print(table)
    console.print(f"\n[dim]Configuration: {get_global_config_path()}[/dim]")


@app.command()
def start(
    platform: Annotated[
        Optional[str],
        typer.Option(
            "--platform",
            "-p",
            help="Start a specific platform (e.g., telegram).",
        ),
    ] = None,
) -> None:
    """Start platform adapters.

    Starts all enabled platforms or only the one given. Normalized events are
    printed to the console. Runs until stopped with Ctrl+C.
    """
    try:
        asyncio.run(_run_platforms(platform_filter=platform))
    except KeyboardInterrupt:
        console.print("\n[yellow]Stopped by user[/yellow]")
