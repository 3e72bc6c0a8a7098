"""
Command Line Interface for kp.

Copies files or directories from the local file system into a running
container file system, almost natively.
"""

import argparse
import sys
from typing import List, Optional

from ._version import __version__
from .cli_commands import CopyCommand
from .common.constants import ExitCodes
from .common.logging_config import LEVEL_NAMES, configure_logging


def create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser."""
    parser = argparse.ArgumentParser(
        prog='kp',
        description='Copying files or directories from local file system '
                    'to a running container file system (almost) natively',
    )
    parser.add_argument('-v', dest='verbosity', default=None, type=str.lower, choices=LEVEL_NAMES,
                        help='Log level (debug, info, warn, error, fatal, panic); defaults to KP_LOG_LEVEL or info')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    CopyCommand.add_arguments(parser)
    return parser


def main(args: Optional[List[str]] = None) -> None:
    """
    Main entry point for the CLI.

    Args:
        args: Command line arguments (uses sys.argv if None)
    """
    parser = create_parser()

    if args is None:
        args = sys.argv[1:]

    # If no arguments provided, show help
    if not args:
        parser.print_help()
        sys.exit(ExitCodes.OK)

    parsed_args = parser.parse_args(args)
    configure_logging(parsed_args.verbosity)
    parsed_args.func(parsed_args)


if __name__ == '__main__':
    main()
