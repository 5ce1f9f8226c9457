"""Copy command: scp a file to a registered box, optionally run it there."""

import asyncio
import logging
import os
import sys

from devbox.commands.options import add_config_argument, add_dry_run_argument, registry_for, settings_from_args
from devbox.errors import ConfigError
from devbox.provisioning.registry import HostRegistry
from devbox.provisioning.shell import run_shell_cmd
from devbox.provisioning.ssh_transport import exec_args, remote_path_for, scp_args

logger = logging.getLogger(__name__)


def handle_copy(args):
    """Handle the copy command."""
    rc = asyncio.run(_handle_copy(args))
    if rc != 0:
        sys.exit(rc)


async def _handle_copy(args):
    if not args.dry_run and not os.path.exists(args.local_path):
        raise ConfigError(f"Local path '{args.local_path}' does not exist")

    registry = HostRegistry(args.ssh_config) if args.ssh_config else registry_for(settings_from_args(args))
    entry = registry.lookup(args.alias)
    remote_path = remote_path_for(args.local_path)

    logger.info(f"Copying {args.local_path} -> {args.alias}:{remote_path}")
    rc, _, stderr = await run_shell_cmd(scp_args(args.local_path, entry, remote_path), dry_run=args.dry_run, timeout=None)
    if rc != 0:
        logger.error(f"scp to {args.alias} failed (exit {rc}): {stderr.strip()}")
        return rc

    if args.exec:
        logger.info(f"Running {remote_path} on {args.alias}...")
        rc, _, _ = await run_shell_cmd(exec_args(entry, remote_path), dry_run=args.dry_run, timeout=None, capture=False)
        if rc != 0:
            logger.error(f"{remote_path} exited with {rc} on {args.alias}")
    return rc


def register_copy_command(subparsers):
    """Register the copy subcommand."""
    parser = subparsers.add_parser("copy", help="Copy a file to a dev box (and optionally run it)")
    parser.add_argument("alias", help="Host alias (instance label)")
    parser.add_argument("local_path", help="Local file or directory to copy into the remote home directory")
    parser.add_argument("-x", "--exec", action="store_true", help="Run the copied file with bash after copying")
    parser.add_argument("--ssh-config", default=None, help="SSH config file to look the alias up in")
    add_config_argument(parser)
    add_dry_run_argument(parser)
    parser.set_defaults(func=handle_copy)
