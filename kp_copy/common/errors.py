"""
Custom exception classes for kp-copy.
"""

from typing import Optional


class KpCopyError(Exception):
    """Base exception class for kp-copy errors."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class UsageError(KpCopyError):
    """Raised when the copy target is not described well enough to build a sink."""
    pass


class SourceNotFoundError(KpCopyError):
    """Raised when the source path does not exist."""
    pass


class TraversalError(KpCopyError):
    """Raised when enumerating the source tree fails partway."""
    pass


class ArchiveIOError(KpCopyError):
    """Raised when reading a source file or writing the archive stream fails."""
    pass


class UnsupportedEntryError(KpCopyError):
    """Raised for absolute symlinks or exotic file types in strict mode."""
    pass


class SinkError(KpCopyError):
    """Raised when the extraction sink cannot start or reports failure."""

    def __init__(self, message: str, path: Optional[str] = None,
                 returncode: Optional[int] = None, stderr: str = ""):
        super().__init__(message, path)
        self.returncode = returncode
        self.stderr = stderr
