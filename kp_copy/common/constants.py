"""
Constants and exit codes for kp-copy.
"""


class ExitCodes:
    """Exit codes for different error conditions."""
    OK = 0
    USAGE = 1
    SOURCE_NOT_FOUND = 2
    TRAVERSAL_FAILED = 3
    ARCHIVE_IO_FAILED = 4
    SINK_FAILED = 5
    UNSUPPORTED_ENTRY = 6
    COPY_FAILED = 7


DEFAULT_BUFFER_SIZE = 64 * 1024
DEFAULT_DOCKER_BIN = 'docker'
DEFAULT_KUBECTL_BIN = 'kubectl'

# Extraction command run inside the target; ownership from the archive is ignored.
TAR_EXTRACT_ARGS = ('tar', 'xmf', '-')
TAR_NO_SAME_OWNER = '--no-same-owner'

# Seconds to wait for helper threads once the sink process is gone.
THREAD_JOIN_TIMEOUT = 30.0
