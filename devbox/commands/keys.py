"""Keys command: explicit cleanup of a box's SSH keypair."""

import asyncio
import logging

from devbox.commands.options import add_config_argument, add_dry_run_argument, settings_from_args, store_for
from devbox.commands.vm.vultr import make_client
from devbox.provisioning.keys import remove_credential

logger = logging.getLogger(__name__)


def handle_delete(args):
    """Handle 'keys delete': drop the provider-side key, then the local files."""
    asyncio.run(_handle_delete(args))


async def _handle_delete(args):
    settings = settings_from_args(args)
    store = store_for(settings)
    record = store.get(args.label)

    cred = record.credential
    if cred is None:
        logger.info(f"No key recorded for '{record.label}' - nothing to delete.")
        return

    if cred.provider_key_id:
        client = make_client(args, settings)
        await client.delete_key(cred.provider_key_id)
    remove_credential(cred, dry_run=args.dry_run)

    record.credential = None
    store.save(record, dry_run=args.dry_run)
    logger.info(f"Key for '{record.label}' deleted.")


def register_keys_command(subparsers):
    """Register the keys subcommand."""
    parser = subparsers.add_parser("keys", help="Manage per-instance SSH keys")
    action_subparsers = parser.add_subparsers(dest="action", required=True)

    delete_parser = action_subparsers.add_parser("delete", help="Delete a box's SSH key locally and on Vultr")
    delete_parser.add_argument("label", help="Instance label")
    delete_parser.add_argument("--api-key", default=None, help="Vultr API key (fallback: VULTR_API_KEY, then ~/.auth/vultr)")
    add_config_argument(delete_parser)
    add_dry_run_argument(delete_parser)
    delete_parser.set_defaults(func=handle_delete)
