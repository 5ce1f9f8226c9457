"""Vultr instance CLI handlers: create, list, delete."""

import asyncio
import logging
import os
import shlex
from datetime import datetime

from devbox.commands.options import (
    add_config_argument,
    add_dry_run_argument,
    registry_for,
    settings_from_args,
    store_for,
)
from devbox.config import resolve_api_key
from devbox.errors import ConfigError
from devbox.provisioning.provision import provision
from devbox.provisioning.types import ResourceStatus
from devbox.provisioning.vultr import VultrClient

logger = logging.getLogger(__name__)


def make_client(args, settings):
    """Build a VultrClient; the API key is only required outside dry-run."""
    if args.dry_run:
        return VultrClient(args.api_key or "", api_url=settings.api_url, dry_run=True)
    return VultrClient(resolve_api_key(args.api_key, settings), api_url=settings.api_url)


# ── CLI handlers ───────────────────────────────────────────────────


def handle_create(args):
    """CLI handler for 'vm create'."""
    record, ssh_config = asyncio.run(_handle_create(args))
    if args.connect:
        connect(record.label, ssh_config, dry_run=args.dry_run)


def connect(alias, ssh_config, dry_run=False):
    """Replace this process with an interactive ``ssh <alias>`` session."""
    cmd = ["ssh", alias]
    if os.path.abspath(ssh_config) != os.path.expanduser("~/.ssh/config"):
        cmd[1:1] = ["-F", ssh_config]
    if dry_run:
        logger.info(f"[dry-run] {shlex.join(cmd)}")
        return
    logger.info(f"Connecting to {alias}...")
    os.execvp("ssh", cmd)


async def _handle_create(args):
    settings = settings_from_args(
        args,
        region=args.region,
        plan=args.plan,
        image=args.image,
        status_timeout=args.timeout,
    )
    client = make_client(args, settings)

    logger.info("===============================")
    logger.info(" Vultr Instance Setup")
    logger.info("===============================")
    registry = registry_for(settings)
    record = await provision(
        settings,
        client,
        store_for(settings),
        registry,
        label=args.label,
        dry_run=args.dry_run,
    )
    return record, registry.path


def handle_list(args):
    """CLI handler for 'vm list'."""
    settings = settings_from_args(args)
    records = store_for(settings).all()
    if not records:
        logger.info(f"No instances recorded in {settings.state_file}")
        return

    logger.info(f"{'LABEL':<24} {'STATUS':<12} {'ADDRESS':<16} {'REGION':<6} {'PLAN':<14} CREATED")
    for r in records:
        created = datetime.fromtimestamp(r.created_at).strftime("%Y-%m-%d %H:%M")
        logger.info(f"{r.label:<24} {r.status.value:<12} {r.address or '-':<16} {r.region:<6} {r.plan:<14} {created}")


def handle_delete(args):
    """CLI handler for 'vm delete'."""
    asyncio.run(_handle_delete(args))


async def _handle_delete(args):
    settings = settings_from_args(args)
    store = store_for(settings)
    record = store.get(args.label)

    if record.status == ResourceStatus.DESTROYED:
        logger.info(f"Instance '{record.label}' is already destroyed.")
        return
    if not record.id:
        raise ConfigError(f"Instance '{record.label}' was never created (status: {record.status.value})")

    client = make_client(args, settings)
    await client.destroy_instance(record.id)
    record.status = ResourceStatus.DESTROYED
    store.save(record, dry_run=args.dry_run)

    if record.credential:
        logger.info(f"Key kept at {record.credential_ref}; remove it with 'devbox keys delete {record.label}'")


# ── Registration ───────────────────────────────────────────────────


def register_create_target(subparsers):
    """Register 'vm create'."""
    parser = subparsers.add_parser("create", help="Create a dev box and add it to ~/.ssh/config")
    parser.add_argument("--region", default=None, help="Region id (default: ewr)")
    parser.add_argument("--plan", default=None, help="Plan id (default: vc2-1c-1gb)")
    parser.add_argument("--image", default=None, help="Image name or Vultr os id (default: ubuntu-24.04)")
    parser.add_argument("--label", default=None, help="Instance label (default: <label_prefix>-<timestamp>)")
    parser.add_argument("--api-key", default=None, help="Vultr API key (fallback: VULTR_API_KEY, then ~/.auth/vultr)")
    parser.add_argument("--timeout", type=int, default=None, help="Seconds to wait for active/running (default: 600)")
    parser.add_argument("--connect", action="store_true", help="Open an SSH session once the box is ready")
    add_config_argument(parser)
    add_dry_run_argument(parser)
    parser.set_defaults(func=handle_create)


def register_list_target(subparsers):
    """Register 'vm list'."""
    parser = subparsers.add_parser("list", help="List recorded dev boxes")
    add_config_argument(parser)
    parser.set_defaults(func=handle_list)


def register_delete_target(subparsers):
    """Register 'vm delete'."""
    parser = subparsers.add_parser("delete", help="Destroy a dev box (its SSH key is kept)")
    parser.add_argument("label", help="Instance label")
    parser.add_argument("--api-key", default=None, help="Vultr API key (fallback: VULTR_API_KEY, then ~/.auth/vultr)")
    add_config_argument(parser)
    add_dry_run_argument(parser)
    parser.set_defaults(func=handle_delete)
