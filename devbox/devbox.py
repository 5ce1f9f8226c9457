#!/usr/bin/env python3
"""Disposable dev boxes: CLI entrypoint."""

import argparse
import logging
import sys

from devbox.commands.copy import register_copy_command
from devbox.commands.forward import register_forward_command
from devbox.commands.keys import register_keys_command
from devbox.commands.vm import register_vm_command
from devbox.errors import DevboxError
from devbox.logging_setup import setup_cli_logging

logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(description="Disposable cloud dev boxes")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug output (requests, ssh commands)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    register_vm_command(subparsers)
    register_keys_command(subparsers)
    register_copy_command(subparsers)
    register_forward_command(subparsers)

    args = parser.parse_args()
    setup_cli_logging(verbose=args.verbose)
    try:
        args.func(args)
    except DevboxError as e:
        logger.error(f"Error: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.error("Interrupted.")
        sys.exit(130)


if __name__ == "__main__":
    main()
