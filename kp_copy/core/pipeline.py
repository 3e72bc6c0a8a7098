"""
Copy orchestration for kp-copy.

One producer thread writes the archive into the sink's stdin while two drain
threads read the sink's stdout and stderr, all concurrently with the sink
process. Draining both channels while producing keeps the sink from blocking
on a full output pipe.
"""

from __future__ import annotations

import subprocess
import threading
from dataclasses import dataclass
from typing import BinaryIO, Optional

from kp_copy.common.config import CopyConfig
from kp_copy.common.constants import THREAD_JOIN_TIMEOUT
from kp_copy.common.errors import ArchiveIOError, SinkError
from kp_copy.common.logging_config import get_logger
from kp_copy.core.archiver import ArchiveSummary, write_archive
from kp_copy.core.mapper import TransferSet, map_paths
from kp_copy.core.sinks import ExtractionSink

_log = get_logger(__name__)


@dataclass
class CopyResult:
    """Outcome of a successful copy operation."""

    summary: ArchiveSummary
    returncode: int
    stdout: str
    stderr: str


class _StreamDrain:
    """Reads one output channel of the sink to EOF on a background thread."""

    def __init__(self, stream: BinaryIO, name: str):
        self._stream = stream
        self._chunks: list[bytes] = []
        self._thread = threading.Thread(target=self._run, name=f"kp-drain-{name}", daemon=True)

    def start(self) -> None:
        self._thread.start()

    def _run(self) -> None:
        try:
            for chunk in iter(lambda: self._stream.read(8192), b""):
                self._chunks.append(chunk)
        finally:
            self._stream.close()

    def join(self, timeout: Optional[float] = None) -> None:
        self._thread.join(timeout)

    def text(self) -> str:
        return b"".join(self._chunks).decode("utf-8", errors="replace")


class _ArchiveProducer:
    """Writes the archive into the sink's stdin on a background thread."""

    def __init__(self, stdin: BinaryIO, transfer_set: TransferSet, config: CopyConfig):
        self._stdin = stdin
        self._transfer_set = transfer_set
        self._config = config
        self.summary: Optional[ArchiveSummary] = None
        self.error: Optional[BaseException] = None
        self._thread = threading.Thread(target=self._run, name="kp-producer", daemon=True)

    def start(self) -> None:
        self._thread.start()

    def _run(self) -> None:
        try:
            # write_archive closes stdin on every path so the sink sees EOF.
            self.summary = write_archive(self._stdin, self._transfer_set, self._config)
        except BaseException as exc:  # noqa: BLE001 - handed back to the caller thread
            self.error = exc

    def join(self, timeout: Optional[float] = None) -> None:
        self._thread.join(timeout)

    @property
    def broken_pipe(self) -> bool:
        return isinstance(self.error, ArchiveIOError) and isinstance(self.error.__cause__, BrokenPipeError)


def stream_to_sink(transfer_set: TransferSet, sink: ExtractionSink,
                   config: Optional[CopyConfig] = None) -> CopyResult:
    """Stream `transfer_set` into a freshly started sink and wait for it.

    Raises:
        ArchiveIOError: The archive could not be produced or fully delivered
        UnsupportedEntryError: Strict mode rejected an entry
        SinkError: The sink failed to start, timed out or exited non-zero
    """
    config = config or CopyConfig()
    process = sink.start(transfer_set.destination_root)

    producer = _ArchiveProducer(process.stdin, transfer_set, config)
    stdout_drain = _StreamDrain(process.stdout, "stdout")
    stderr_drain = _StreamDrain(process.stderr, "stderr")
    producer.start()
    stdout_drain.start()
    stderr_drain.start()

    timed_out = False
    try:
        returncode = process.wait(timeout=config.timeout)
    except subprocess.TimeoutExpired:
        timed_out = True
        _log.warning("Sink did not finish within %ss; killing PID %s", config.timeout, process.pid)
        process.kill()
        returncode = process.wait()
    except BaseException:
        process.kill()
        raise
    finally:
        producer.join(THREAD_JOIN_TIMEOUT)
        stdout_drain.join(THREAD_JOIN_TIMEOUT)
        stderr_drain.join(THREAD_JOIN_TIMEOUT)

    stdout, stderr = stdout_drain.text(), stderr_drain.text()
    if stderr:
        _log.debug("Command output: [%s], stderr: %s", stdout, stderr)
    else:
        _log.debug("Command output: [%s]", stdout)

    if timed_out:
        raise SinkError(
            f"Extraction timed out after {config.timeout}s",
            transfer_set.destination_root,
            returncode=returncode,
            stderr=stderr,
        )
    if producer.error is not None and not producer.broken_pipe:
        raise producer.error
    if returncode != 0:
        raise SinkError(
            stderr.strip() or f"Extraction command exited with code {returncode}",
            transfer_set.destination_root,
            returncode=returncode,
            stderr=stderr,
        )
    if producer.error is not None:
        raise ArchiveIOError(
            "Extraction sink closed its input before the archive was fully delivered",
            transfer_set.destination_root,
        ) from producer.error
    if producer.summary is None:
        raise ArchiveIOError(
            "Archive producer did not finish after the sink exited",
            transfer_set.destination_root,
        )
    return CopyResult(producer.summary, returncode, stdout, stderr)


def copy_path(source: str, destination_root: str, sink: ExtractionSink,
              config: Optional[CopyConfig] = None) -> CopyResult:
    """Copy `source` under `destination_root` inside the sink's target."""
    transfer_set = map_paths(source, destination_root)
    return stream_to_sink(transfer_set, sink, config)


__all__ = ["CopyResult", "copy_path", "stream_to_sink"]
