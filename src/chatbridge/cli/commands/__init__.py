"""CLI command modules."""

from chatbridge.cli.commands import audit, platforms

__all__ = ["audit", "platforms"]
