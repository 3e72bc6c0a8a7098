"""
Path mapping for kp-copy.

Computes, before any byte is streamed, the full set of source paths to
transfer and where each one lands under the destination root:
* A non-directory source maps to `<root>/<basename>`
* A directory source maps itself and every descendant to
  `<root>/<basename>/<relative path>`
* Symlinked directories are recorded as symlinks and never descended into
"""

import errno
import os
import posixpath
import stat
from dataclasses import dataclass
from typing import Dict, Iterator, List, Tuple

from kp_copy.common.errors import SourceNotFoundError, TraversalError
from kp_copy.common.logging_config import get_logger

_log = get_logger(__name__)

_MISSING_ERRNOS = (errno.ENOENT, errno.ENOTDIR)


@dataclass(frozen=True)
class TransferEntry:
    """A single source path and where it lands in the target."""

    source_path: str
    destination_path: str
    archive_path: str
    stat: os.stat_result

    @property
    def is_dir(self) -> bool:
        return stat.S_ISDIR(self.stat.st_mode)


class TransferSet:
    """Ordered, duplicate-free mapping of source paths to transfer entries."""

    def __init__(self, destination_root: str):
        self.destination_root = destination_root
        self._entries: Dict[str, TransferEntry] = {}

    def add(self, entry: TransferEntry) -> None:
        if entry.source_path in self._entries:
            raise ValueError(f"Source path mapped twice: {entry.source_path}")
        self._entries[entry.source_path] = entry

    def __iter__(self) -> Iterator[TransferEntry]:
        return iter(list(self._entries.values()))

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, source_path: object) -> bool:
        return source_path in self._entries

    def get(self, source_path: str) -> TransferEntry:
        return self._entries[source_path]

    def as_mapping(self) -> Dict[str, str]:
        """Return `{source_path: destination_path}` in traversal order."""
        return {src: entry.destination_path for src, entry in self._entries.items()}

    def archive_paths(self) -> List[str]:
        return [entry.archive_path for entry in self._entries.values()]


def _to_archive_path(base_name: str, rel_path: str) -> str:
    """Join base name and an OS relative path into a slash separated archive name."""
    parts = [base_name] + [part for part in rel_path.split(os.sep) if part]
    joined = posixpath.normpath("/".join(parts))
    return joined.lstrip("/") or "."


def _list_children(directory: str) -> List[Tuple[str, os.stat_result]]:
    """Return the entries of `directory` sorted by name, with lstat results."""
    try:
        with os.scandir(directory) as iterator:
            children = sorted(iterator, key=lambda item: item.name)
    except OSError as exc:
        raise TraversalError(f"Failed to list directory {directory}: {exc}", directory) from exc

    listed = []
    for child in children:
        try:
            listed.append((child.path, child.stat(follow_symlinks=False)))
        except OSError as exc:
            raise TraversalError(f"Failed to stat {child.path}: {exc}", child.path) from exc
    return listed


def _walk(directory: str) -> Iterator[Tuple[str, os.stat_result]]:
    """Pre-order, depth-first walk that never follows symlinks.

    Entries are visited in name order so the result is stable between runs
    and parents always precede their children. An explicit stack keeps
    arbitrarily deep trees off the interpreter's call stack.
    """
    stack = list(reversed(_list_children(directory)))
    while stack:
        path, path_stat = stack.pop()
        yield path, path_stat
        if stat.S_ISDIR(path_stat.st_mode):
            stack.extend(reversed(_list_children(path)))


def map_paths(source: str, destination_root: str) -> TransferSet:
    """Build the TransferSet for copying `source` under `destination_root`.

    Args:
        source: Local file or directory to copy
        destination_root: Directory inside the target that receives the copy

    Returns:
        The complete mapping, including the directory root entry itself

    Raises:
        SourceNotFoundError: `source` does not exist
        TraversalError: the source or any descendant could not be enumerated
    """
    source = os.path.normpath(source)
    destination_root = posixpath.normpath(destination_root.replace(os.sep, "/"))

    try:
        source_stat = os.lstat(source)
    except OSError as exc:
        if exc.errno in _MISSING_ERRNOS:
            raise SourceNotFoundError(f"Source path {source} does not exist", source) from exc
        raise TraversalError(f"Failed to stat source {source}: {exc}", source) from exc

    base_name = os.path.basename(os.path.abspath(source))
    transfer_set = TransferSet(destination_root)

    def record(path: str, path_stat: os.stat_result, rel_path: str) -> None:
        archive_path = _to_archive_path(base_name, rel_path)
        destination_path = posixpath.join(destination_root, archive_path)
        transfer_set.add(TransferEntry(path, destination_path, archive_path, path_stat))
        _log.debug("%s -> %s", path, destination_path)

    record(source, source_stat, "")
    if stat.S_ISDIR(source_stat.st_mode):
        for path, path_stat in _walk(source):
            record(path, path_stat, os.path.relpath(path, source))

    return transfer_set


__all__ = ["TransferEntry", "TransferSet", "map_paths"]
