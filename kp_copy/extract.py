"""Streaming tar extraction used by the local extraction sink.

Run as ``python -m kp_copy.extract DEST``: reads a tar stream on stdin and
extracts it under DEST, rejecting members that would escape DEST and ignoring
ownership recorded in the archive.
"""

from __future__ import annotations

import sys
import tarfile
from pathlib import Path
from typing import BinaryIO, List, Optional


def _no_owner_filter(member: tarfile.TarInfo, dest_path: str) -> tarfile.TarInfo:
    member = tarfile.tar_filter(member, dest_path)
    return member.replace(uid=None, gid=None, uname=None, gname=None, deep=False)


def _check_member_path(member: tarfile.TarInfo, dest_root: Path) -> None:
    target = (dest_root / member.name).resolve()
    if target != dest_root and dest_root not in target.parents:
        raise RuntimeError(f"Unsafe tar member path detected: {member.name!r}")


def safe_extract_stream(stream: BinaryIO, destination: Path) -> int:
    """Safely extract a tar stream member by member, preventing path traversal.

    Returns the number of extracted members.
    """
    dest_root = destination.resolve()
    if not dest_root.is_dir():
        raise FileNotFoundError(f"Extraction root {destination} is not a directory")

    use_filter = hasattr(tarfile, "tar_filter")
    count = 0
    with tarfile.open(fileobj=stream, mode="r|") as tar:
        for member in tar:
            if use_filter:
                tar.extract(member, dest_root, filter=_no_owner_filter)
            else:
                _check_member_path(member, dest_root)
                tar.extract(member, dest_root)
            count += 1

    # Consume trailing padding so the writer never sees a broken pipe.
    while stream.read(65536):
        pass
    return count


def main(argv: Optional[List[str]] = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    if len(args) != 1:
        print("usage: python -m kp_copy.extract DEST", file=sys.stderr)
        return 2
    try:
        count = safe_extract_stream(sys.stdin.buffer, Path(args[0]))
    except (OSError, tarfile.TarError, RuntimeError) as exc:
        print(f"extract: {exc}", file=sys.stderr)
        return 2
    print(f"extracted {count} entries")
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
