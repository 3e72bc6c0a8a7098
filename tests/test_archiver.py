from __future__ import annotations

import io
import logging
import os
import socket
import stat
import tarfile

import pytest

from kp_copy.common.config import CopyConfig
from kp_copy.common.errors import ArchiveIOError, UnsupportedEntryError
from kp_copy.core.archiver import EntryKind, UnsupportedEntryWarning, write_archive
from kp_copy.core.mapper import map_paths


class CapturingBuffer(io.BytesIO):
    """BytesIO that keeps its content once closed."""

    captured = b""

    def close(self) -> None:
        if not self.closed:
            self.captured = self.getvalue()
        super().close()


class RecordingWriter(io.RawIOBase):
    """Writable stream recording the size of every write."""

    def __init__(self):
        super().__init__()
        self.sizes = []
        self.total = 0

    def writable(self) -> bool:
        return True

    def write(self, data) -> int:
        self.sizes.append(len(data))
        self.total += len(data)
        return len(data)


def _archive(transfer_set, config=None):
    buffer = io.BytesIO()
    summary = write_archive(buffer, transfer_set, config, close_output=False)
    return buffer.getvalue(), summary


def _members(data):
    with tarfile.open(fileobj=io.BytesIO(data), mode="r:") as tar:
        return {member.name: member for member in tar.getmembers()}


def _extract(data, destination):
    with tarfile.open(fileobj=io.BytesIO(data), mode="r:") as tar:
        if hasattr(tarfile, "tar_filter"):
            tar.extractall(destination, filter="tar")
        else:
            tar.extractall(destination)


def test_entry_kind_from_mode():
    assert EntryKind.from_mode(stat.S_IFDIR | 0o755) is EntryKind.DIRECTORY
    assert EntryKind.from_mode(stat.S_IFREG | 0o644) is EntryKind.REGULAR_FILE
    assert EntryKind.from_mode(stat.S_IFLNK | 0o777) is EntryKind.SYMLINK
    assert EntryKind.from_mode(stat.S_IFIFO | 0o644) is EntryKind.FIFO
    assert EntryKind.from_mode(stat.S_IFSOCK | 0o755) is EntryKind.SOCKET


def test_scenario_archive_has_three_entries(sample_tree):
    data, summary = _archive(map_paths(str(sample_tree), "/opt"))

    with tarfile.open(fileobj=io.BytesIO(data), mode="r:") as tar:
        names = tar.getnames()
        assert names == ["a", "a/f.txt", "a/sub"]
        assert tar.getmember("a").isdir()
        assert tar.getmember("a/sub").isdir()
        assert tar.extractfile("a/f.txt").read() == b"hi"

    assert summary.entries_written == 3
    assert summary.bytes_written == 2
    assert summary.warnings == []


def test_round_trip_preserves_content_modes_and_relative_symlinks(tmp_path, sample_tree):
    os.chmod(sample_tree / "f.txt", 0o640)
    os.chmod(sample_tree / "sub", 0o750)
    (sample_tree / "link").symlink_to("f.txt")

    data, summary = _archive(map_paths(str(sample_tree), "/opt"))
    members = _members(data)
    assert members["a/link"].issym()
    assert members["a/link"].linkname == "f.txt"
    assert summary.entries_written == 4

    out = tmp_path / "out"
    out.mkdir()
    _extract(data, out)

    assert (out / "a" / "f.txt").read_text(encoding="utf-8") == "hi"
    assert stat.S_IMODE(os.stat(out / "a" / "f.txt").st_mode) == 0o640
    assert (out / "a" / "sub").is_dir()
    assert stat.S_IMODE(os.stat(out / "a" / "sub").st_mode) == 0o750
    assert os.readlink(out / "a" / "link") == "f.txt"
    assert (out / "a" / "link").read_text(encoding="utf-8") == "hi"


def test_absolute_symlink_is_skipped_with_warning(sample_tree, caplog):
    absolute = sample_tree / "abs"
    absolute.symlink_to("/etc/hostname")
    caplog.set_level(logging.WARNING)

    data, summary = _archive(map_paths(str(sample_tree), "/opt"))

    assert "a/abs" not in _members(data)
    assert summary.entries_written == 3
    assert summary.skipped_paths == [str(absolute)]
    assert summary.warnings[0].kind == "absolute-symlink"
    assert "only relative symlinks are supported" in caplog.text


def test_unsupported_entry_warning_is_a_record_not_an_exception(sample_tree):
    (sample_tree / "abs").symlink_to("/etc/passwd")

    summary = write_archive(CapturingBuffer(), map_paths(str(sample_tree), "/opt"))

    assert not issubclass(UnsupportedEntryWarning, Exception)
    assert summary.warnings == [
        UnsupportedEntryWarning(
            f"Skipping {sample_tree / 'abs'}: only relative symlinks are supported (target /etc/passwd)",
            str(sample_tree / "abs"),
            "absolute-symlink",
        )
    ]
    assert summary.skipped_paths == [str(sample_tree / "abs")]


def test_absolute_symlink_is_fatal_in_strict_mode(sample_tree):
    (sample_tree / "abs").symlink_to("/etc/hostname")

    with pytest.raises(UnsupportedEntryError):
        _archive(map_paths(str(sample_tree), "/opt"), CopyConfig(strict_entry_types=True))


def test_file_vanishing_after_mapping_fails_and_closes_output(sample_tree):
    transfer_set = map_paths(str(sample_tree), "/opt")
    (sample_tree / "f.txt").unlink()
    output = CapturingBuffer()

    with pytest.raises(ArchiveIOError) as exc:
        write_archive(output, transfer_set)

    assert exc.value.path == str(sample_tree / "f.txt")
    assert output.closed


def test_file_shrinking_after_mapping_fails(sample_tree):
    (sample_tree / "f.txt").write_text("a longer body", encoding="utf-8")
    transfer_set = map_paths(str(sample_tree), "/opt")
    (sample_tree / "f.txt").write_text("", encoding="utf-8")

    with pytest.raises(ArchiveIOError):
        _archive(transfer_set)


def test_output_is_closed_after_success(sample_tree):
    output = CapturingBuffer()

    write_archive(output, map_paths(str(sample_tree), "/opt"))

    assert output.closed
    assert sorted(_members(output.captured)) == ["a", "a/f.txt", "a/sub"]


def test_large_file_is_streamed_in_chunks(tmp_path):
    big = tmp_path / "big.bin"
    big.write_bytes(os.urandom(1024 * 1024))
    writer = RecordingWriter()

    summary = write_archive(writer, map_paths(str(big), "/data"), CopyConfig(buffer_size=16 * 1024))

    assert summary.bytes_written == 1024 * 1024
    assert writer.total > 1024 * 1024
    assert max(writer.sizes) < 1024 * 1024


@pytest.mark.skipif(not hasattr(os, "mkfifo"), reason="FIFOs not supported")
def test_fifo_is_emitted_best_effort(sample_tree, caplog):
    os.mkfifo(sample_tree / "pipe")
    caplog.set_level(logging.WARNING)

    data, summary = _archive(map_paths(str(sample_tree), "/opt"))

    members = _members(data)
    assert members["a/pipe"].isfifo()
    assert summary.entries_written == 4
    assert summary.skipped_paths == []
    assert [warning.kind for warning in summary.warnings] == ["degraded"]
    assert "possibly unsupported" in caplog.text


@pytest.mark.skipif(not hasattr(socket, "AF_UNIX"), reason="unix sockets not supported")
def test_socket_is_skipped(tmp_path):
    root = tmp_path / "s"
    root.mkdir()
    server = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    try:
        server.bind(str(root / "sock"))
        data, summary = _archive(map_paths(str(root), "/opt"))
    finally:
        server.close()

    assert list(_members(data)) == ["s"]
    assert summary.skipped_paths == [str(root / "sock")]


@pytest.mark.skipif(not hasattr(os, "mkfifo"), reason="FIFOs not supported")
def test_fifo_is_fatal_in_strict_mode(sample_tree):
    os.mkfifo(sample_tree / "pipe")

    with pytest.raises(UnsupportedEntryError):
        _archive(map_paths(str(sample_tree), "/opt"), CopyConfig(strict_entry_types=True))
