"""Registry for CLI commands."""

from .copy_command import CopyCommand

COMMANDS = (
    CopyCommand,
)

__all__ = ["COMMANDS", "CopyCommand"]
