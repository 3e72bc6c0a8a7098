"""
Streaming tar writer for kp-copy.

Turns a TransferSet into a tar stream, one record per entry, using the stat
snapshot captured by the mapper. File content is copied from an open handle
straight into the stream in `buffer_size` chunks; nothing is buffered whole.
"""

import enum
import os
import stat
import tarfile
from dataclasses import dataclass, field
from typing import BinaryIO, List, Optional

from kp_copy.common.config import CopyConfig
from kp_copy.common.errors import (
    ArchiveIOError,
    KpCopyError,
    UnsupportedEntryError,
)
from kp_copy.common.logging_config import get_logger
from kp_copy.core.mapper import TransferEntry, TransferSet

_log = get_logger(__name__)


class EntryKind(enum.Enum):
    """File types the archiver distinguishes."""

    DIRECTORY = "directory"
    REGULAR_FILE = "file"
    SYMLINK = "symlink"
    FIFO = "fifo"
    CHAR_DEVICE = "char-device"
    BLOCK_DEVICE = "block-device"
    SOCKET = "socket"
    UNKNOWN = "unknown"

    @classmethod
    def from_mode(cls, mode: int) -> "EntryKind":
        if stat.S_ISDIR(mode):
            return cls.DIRECTORY
        if stat.S_ISREG(mode):
            return cls.REGULAR_FILE
        if stat.S_ISLNK(mode):
            return cls.SYMLINK
        if stat.S_ISFIFO(mode):
            return cls.FIFO
        if stat.S_ISCHR(mode):
            return cls.CHAR_DEVICE
        if stat.S_ISBLK(mode):
            return cls.BLOCK_DEVICE
        if stat.S_ISSOCK(mode):
            return cls.SOCKET
        return cls.UNKNOWN


# Exotic kinds that still have a native tar representation.
_DEGRADED_TYPES = {
    EntryKind.FIFO: tarfile.FIFOTYPE,
    EntryKind.CHAR_DEVICE: tarfile.CHRTYPE,
    EntryKind.BLOCK_DEVICE: tarfile.BLKTYPE,
}


@dataclass(frozen=True)
class UnsupportedEntryWarning:
    """An entry that was skipped or degraded; logged and collected, never raised."""

    message: str
    path: str
    kind: str


@dataclass
class ArchiveSummary:
    """What ended up in the stream."""

    entries_written: int = 0
    bytes_written: int = 0
    warnings: List[UnsupportedEntryWarning] = field(default_factory=list)

    @property
    def skipped_paths(self) -> List[str]:
        return [warning.path for warning in self.warnings if warning.kind != "degraded"]


def _base_tarinfo(entry: TransferEntry) -> tarfile.TarInfo:
    info = tarfile.TarInfo(entry.archive_path)
    info.mode = stat.S_IMODE(entry.stat.st_mode)
    info.mtime = int(entry.stat.st_mtime)
    info.uid = entry.stat.st_uid
    info.gid = entry.stat.st_gid
    return info


def _unsupported(entry: TransferEntry, message: str, kind: str,
                 config: CopyConfig, summary: ArchiveSummary) -> None:
    if config.strict_entry_types:
        raise UnsupportedEntryError(message, entry.source_path)
    _log.warning(message)
    summary.warnings.append(UnsupportedEntryWarning(message, entry.source_path, kind))


def _append_regular_file(tar: tarfile.TarFile, entry: TransferEntry, summary: ArchiveSummary) -> None:
    info = _base_tarinfo(entry)
    info.type = tarfile.REGTYPE
    info.size = entry.stat.st_size
    try:
        with open(entry.source_path, "rb") as handle:
            tar.addfile(info, handle)
    except OSError as exc:
        raise ArchiveIOError(f"Failed to stream file {entry.source_path}: {exc}", entry.source_path) from exc
    summary.bytes_written += info.size


def _append_symlink(tar: tarfile.TarFile, entry: TransferEntry,
                    config: CopyConfig, summary: ArchiveSummary) -> bool:
    try:
        target = os.readlink(entry.source_path)
    except OSError as exc:
        raise ArchiveIOError(f"Failed to read symlink {entry.source_path}: {exc}", entry.source_path) from exc

    if os.path.isabs(target):
        _unsupported(
            entry,
            f"Skipping {entry.source_path}: only relative symlinks are supported (target {target})",
            "absolute-symlink",
            config,
            summary,
        )
        return False

    info = _base_tarinfo(entry)
    info.type = tarfile.SYMTYPE
    info.linkname = target.replace(os.sep, "/")
    info.size = 0
    _write_header(tar, info, entry)
    return True


def _append_exotic(tar: tarfile.TarFile, entry: TransferEntry, kind: EntryKind,
                   config: CopyConfig, summary: ArchiveSummary) -> bool:
    tar_type = _DEGRADED_TYPES.get(kind)
    if tar_type is None:
        _unsupported(
            entry,
            f"Skipping {entry.source_path}: {kind.value} entries cannot be archived",
            kind.value,
            config,
            summary,
        )
        return False

    _unsupported(
        entry,
        f"Adding possibly unsupported file {entry.source_path} of type {kind.value}",
        "degraded",
        config,
        summary,
    )
    info = _base_tarinfo(entry)
    info.type = tar_type
    info.size = 0
    if kind is not EntryKind.FIFO:
        info.devmajor = os.major(entry.stat.st_rdev)
        info.devminor = os.minor(entry.stat.st_rdev)
    _write_header(tar, info, entry)
    return True


def _write_header(tar: tarfile.TarFile, info: tarfile.TarInfo, entry: TransferEntry) -> None:
    try:
        tar.addfile(info)
    except OSError as exc:
        raise ArchiveIOError(f"Failed to write header for {entry.source_path}: {exc}", entry.source_path) from exc


def append_entry(tar: tarfile.TarFile, entry: TransferEntry,
                 config: CopyConfig, summary: ArchiveSummary) -> None:
    """Append one TransferEntry to an open tar stream according to its type."""
    kind = EntryKind.from_mode(entry.stat.st_mode)

    if kind is EntryKind.DIRECTORY:
        info = _base_tarinfo(entry)
        info.type = tarfile.DIRTYPE
        info.size = 0
        _write_header(tar, info, entry)
        written = True
    elif kind is EntryKind.REGULAR_FILE:
        _append_regular_file(tar, entry, summary)
        written = True
    elif kind is EntryKind.SYMLINK:
        written = _append_symlink(tar, entry, config, summary)
    else:
        written = _append_exotic(tar, entry, kind, config, summary)

    if written:
        summary.entries_written += 1


def _close_output(output: BinaryIO) -> None:
    try:
        output.close()
    except OSError as exc:
        # The reader is gone; any error that matters was already raised.
        _log.debug("Ignoring error while closing archive output: %s", exc)


def write_archive(output: BinaryIO, transfer_set: TransferSet,
                  config: Optional[CopyConfig] = None, *, close_output: bool = True) -> ArchiveSummary:
    """
    Write `transfer_set` to `output` as a tar stream.

    Args:
        output: Writable binary stream (a pipe to the sink, a file, ...)
        transfer_set: Entries to archive, in the order they are emitted
        config: Copy settings (buffer size, strictness)
        close_output: Close `output` when done, whether or not writing succeeded

    Returns:
        Summary of written and skipped entries

    Raises:
        ArchiveIOError: A source file could not be read or the stream could not be written
        UnsupportedEntryError: An unsupported entry was found in strict mode
    """
    config = config or CopyConfig()
    summary = ArchiveSummary()
    try:
        # On error the context manager drops the stream without an end-of-archive marker.
        with tarfile.open(fileobj=output, mode="w|", copybufsize=config.buffer_size) as tar:
            for entry in transfer_set:
                append_entry(tar, entry, config, summary)
    except KpCopyError:
        raise
    except OSError as exc:
        # Flushing the partial stream can fail after an entry error; report the entry error.
        original = exc.__context__
        if isinstance(original, KpCopyError):
            raise original
        raise ArchiveIOError(f"Failed to finalize archive stream: {exc}") from exc
    finally:
        if close_output:
            _close_output(output)

    _log.debug(
        "Archived %d entries (%d content bytes, %d warnings)",
        summary.entries_written,
        summary.bytes_written,
        len(summary.warnings),
    )
    return summary


__all__ = ["ArchiveSummary", "EntryKind", "UnsupportedEntryWarning", "append_entry", "write_archive"]
