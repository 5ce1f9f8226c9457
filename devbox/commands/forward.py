"""Forward command: tunnel local ports to the same ports on a registered box."""

import asyncio
import logging
import sys

from devbox.commands.options import add_config_argument, add_dry_run_argument, registry_for, settings_from_args
from devbox.errors import ConfigError
from devbox.provisioning.registry import HostRegistry
from devbox.provisioning.shell import run_shell_cmd
from devbox.provisioning.ssh_transport import forward_args

logger = logging.getLogger(__name__)


def parse_ports(values):
    """Flatten port arguments ("8000", "8000,8080") into unique ints, in order.

    Raises:
        ConfigError: on a non-numeric or out-of-range port.
    """
    ports = []
    for value in values:
        for part in value.split(","):
            part = part.strip()
            if not part:
                continue
            if not part.isdigit() or not 1 <= int(part) <= 65535:
                raise ConfigError(f"Invalid port '{part}': expected a number between 1 and 65535")
            if int(part) not in ports:
                ports.append(int(part))
    if not ports:
        raise ConfigError("At least one port is required")
    return ports


def handle_forward(args):
    """Handle the forward command. Runs until the tunnel exits or Ctrl+C."""
    try:
        rc = asyncio.run(_handle_forward(args))
    except KeyboardInterrupt:
        logger.info("Stopped.")
        return
    if rc != 0:
        sys.exit(rc)


async def _handle_forward(args):
    ports = parse_ports(args.ports)
    registry = HostRegistry(args.ssh_config) if args.ssh_config else registry_for(settings_from_args(args))
    entry = registry.lookup(args.alias)

    for port in ports:
        logger.info(f"Forwarding http://localhost:{port} -> {args.alias}:{port}")
    if not args.dry_run:
        logger.info("Press Ctrl+C to stop")

    rc, _, _ = await run_shell_cmd(forward_args(entry, ports), dry_run=args.dry_run, timeout=None, capture=False)
    if rc != 0:
        logger.error(f"ssh tunnel to {args.alias} exited with {rc}")
    return rc


def register_forward_command(subparsers):
    """Register the forward subcommand."""
    parser = subparsers.add_parser("forward", help="Forward local ports to a dev box")
    parser.add_argument("alias", help="Host alias (instance label)")
    parser.add_argument("ports", nargs="+", help="Ports to forward, e.g. '8000 8080' or '8000,8080'")
    parser.add_argument("--ssh-config", default=None, help="SSH config file to look the alias up in")
    add_config_argument(parser)
    add_dry_run_argument(parser)
    parser.set_defaults(func=handle_forward)
