"""Copy command handling for the kp CLI."""

import os
import posixpath

from kp_copy.cli_helpers import exit_with_error, format_context, map_exception_to_exit_code
from kp_copy.common.config import CopyConfig
from kp_copy.common.constants import ExitCodes
from kp_copy.common.errors import (
    SinkError,
    SourceNotFoundError,
    TraversalError,
    UsageError,
)
from kp_copy.common.logging_config import get_logger
from kp_copy.core.mapper import map_paths
from kp_copy.core.pipeline import stream_to_sink
from kp_copy.core.sinks import select_sink

_log = get_logger(__name__)


class CopyCommand:
    """Copies a local path into a running container."""

    @staticmethod
    def add_arguments(parser) -> None:
        """Add copy arguments to the parser."""
        parser.add_argument('-c', dest='container', default='', help='container ID')
        parser.add_argument('-p', dest='pod', default='', help='pod name')
        parser.add_argument('-n', dest='namespace', default='', help='kubernetes namespace')
        parser.add_argument('--timeout', type=float, default=None,
                            help='Seconds to wait for the extraction before giving up')
        parser.add_argument('--strict', action='store_true', default=None,
                            help='Fail on absolute symlinks and special files instead of skipping them')
        parser.add_argument('source', help='Local file or directory to copy')
        parser.add_argument('destination', help='Directory inside the container receiving the copy')
        parser.set_defaults(func=CopyCommand.execute)

    @staticmethod
    def execute(args) -> None:
        """Map the source, then stream it into the selected sink."""
        source = os.path.normpath(args.source)
        destination = posixpath.normpath(args.destination)
        config = CopyConfig.from_env().with_overrides(
            timeout=args.timeout,
            strict_entry_types=args.strict,
        )
        _log.debug("Copying files from %s to %s", source, destination)

        try:
            sink = select_sink(args.container, args.pod, args.namespace, config)
        except UsageError as exc:
            exit_with_error(str(exc), ExitCodes.USAGE)
            return

        try:
            transfer_set = map_paths(source, destination)
        except Exception as exc:
            context = format_context({"source": source, "destination": destination})
            if isinstance(exc, (SourceNotFoundError, TraversalError)):
                message = str(exc)
            else:
                message = f"Mapping {source} failed: {exc}"
            exit_with_error(f"{message} ({context})", map_exception_to_exit_code(exc) or ExitCodes.COPY_FAILED)
            return

        try:
            result = stream_to_sink(transfer_set, sink, config)
        except Exception as exc:
            context = format_context(sink.describe())
            message = f"Copy to {destination} failed: {exc}"
            if isinstance(exc, SinkError) and exc.returncode is not None:
                message += f" (exit code {exc.returncode})"
            exit_with_error(f"{message} ({context})", map_exception_to_exit_code(exc) or ExitCodes.COPY_FAILED)
            return

        _log.info(
            "Copied %d entries from %s to %s (%d skipped or degraded)",
            result.summary.entries_written,
            source,
            destination,
            len(result.summary.warnings),
        )
