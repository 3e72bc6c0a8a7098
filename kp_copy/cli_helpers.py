"""Shared CLI helpers for kp."""

import sys
from typing import Optional

from kp_copy.common.constants import ExitCodes
from kp_copy.common.errors import (
    ArchiveIOError,
    SinkError,
    SourceNotFoundError,
    TraversalError,
    UnsupportedEntryError,
    UsageError,
)


def exit_with_error(message: str, exit_code: int) -> None:
    """Print an error message and exit with the specified code."""
    print(f"Error: {message}", file=sys.stderr)
    sys.exit(exit_code)


def map_exception_to_exit_code(exc: Exception) -> Optional[int]:
    """Translate known exceptions to kp exit codes."""
    if isinstance(exc, UsageError):
        return ExitCodes.USAGE
    if isinstance(exc, SourceNotFoundError):
        return ExitCodes.SOURCE_NOT_FOUND
    if isinstance(exc, TraversalError):
        return ExitCodes.TRAVERSAL_FAILED
    if isinstance(exc, ArchiveIOError):
        return ExitCodes.ARCHIVE_IO_FAILED
    if isinstance(exc, UnsupportedEntryError):
        return ExitCodes.UNSUPPORTED_ENTRY
    if isinstance(exc, SinkError):
        return ExitCodes.SINK_FAILED
    return None


def format_context(fields: dict) -> str:
    """Render `key=value` pairs for error messages, skipping empty values."""
    return " ".join(f"{key}={value}" for key, value in fields.items() if value)
