"""kp-copy - copy local files into a running container without an agent.

Provides:
* Path mapping of a source file or tree onto a destination root
* A streaming tar writer honouring directories, files and relative symlinks
* Extraction sinks for `docker exec`, `kubectl exec` and local directories
* Thin CLI wrapper (`kp`)
"""

from ._version import __version__
from .common.config import CopyConfig  # noqa: F401
from .common.logging_config import configure_logging  # noqa: F401
from .core.archiver import ArchiveSummary, write_archive  # noqa: F401
from .core.mapper import TransferEntry, TransferSet, map_paths  # noqa: F401
from .core.pipeline import CopyResult, copy_path, stream_to_sink  # noqa: F401
from .core.sinks import (  # noqa: F401
    DockerExecSink,
    ExtractionSink,
    KubectlExecSink,
    LocalExtractSink,
    select_sink,
)

__all__ = [
    "__version__",
    "ArchiveSummary",
    "CopyConfig",
    "CopyResult",
    "DockerExecSink",
    "ExtractionSink",
    "KubectlExecSink",
    "LocalExtractSink",
    "TransferEntry",
    "TransferSet",
    "configure_logging",
    "copy_path",
    "map_paths",
    "select_sink",
    "stream_to_sink",
    "write_archive",
]
