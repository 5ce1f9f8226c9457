"""Provision pipeline: key -> upload -> create -> readiness -> host registry.

Each stage needs the previous stage's output, so the steps run strictly in
order. Nothing here destroys an instance: on timeout or interrupt the record
is left ``unreachable`` with its key on disk for manual recovery.
"""

import asyncio
import logging
import os

from devbox.errors import ConfigError, CredentialError, ProviderError, ProvisionTimeoutError
from devbox.images import resolve_os_id
from devbox.provisioning.keys import generate_credential
from devbox.provisioning.readiness import await_ready
from devbox.provisioning.types import CreateInstanceRequest, CredentialRecord, ResourceRecord, ResourceStatus, make_label

logger = logging.getLogger(__name__)


async def provision(settings, client, store, registry, label=None, dry_run=False, probe=None):
    """Create one dev box and register it as an SSH host.

    Args:
        settings: resolved Settings (region/plan/image, paths, poll budgets).
        client: provider client (VultrClient or compatible).
        store: ResourceStore for the record.
        registry: HostRegistry to add the alias to.
        label: explicit label; defaults to ``<label_prefix>-<timestamp>``.
        probe: optional SSH probe override, passed to await_ready.

    Returns:
        The ResourceRecord, status ``active``.

    Raises:
        ConfigError: invalid region/plan/image/label (before any side effect).
        CredentialError, ProviderError, StatusTimeoutError, ReachabilityTimeoutError.
    """
    label = label or make_label(settings.label_prefix)
    request = CreateInstanceRequest(
        label=label,
        region=settings.region,
        plan=settings.plan,
        os_id=resolve_os_id(settings.image),
    ).validate()
    if label in store:
        raise ConfigError(f"Label '{label}' is already recorded in {store.path}; pick another with --label")
    if label in registry:
        raise ConfigError(f"Host '{label}' already exists in {registry.path}; pick another label with --label")
    if os.path.lexists(CredentialRecord.for_label(label, settings.key_dir).private_key_path):
        raise ConfigError(f"A key for '{label}' already exists in {settings.key_dir}; pick another label with --label")

    record = ResourceRecord(label=label, region=settings.region, plan=settings.plan, image=settings.image)
    store.save(record, dry_run=dry_run)

    try:
        cred = await generate_credential(label, settings.key_dir, dry_run=dry_run)
    except CredentialError:
        record.status = ResourceStatus.FAILED
        store.save(record, dry_run=dry_run)
        raise
    record.credential = cred
    store.save(record, dry_run=dry_run)

    public_key = "ssh-ed25519 dry-run-placeholder" if dry_run else cred.public_key
    create_sent = False
    try:
        cred.provider_key_id = await client.upload_key(label, public_key)
        request.ssh_key_ids = [cred.provider_key_id]
        store.save(record, dry_run=dry_run)
        create_sent = True
        record.id = await client.create_instance(request)
    except ProviderError as e:
        if create_sent and await _adopt_orphan(client, record):
            store.save(record, dry_run=dry_run)
            logger.error(f"[{label}] create reported an error but instance {record.id} exists; delete it with 'devbox vm delete {label}'")
        else:
            record.status = ResourceStatus.FAILED
            store.save(record, dry_run=dry_run)
            logger.error(f"[{label}] instance creation failed; retry with a new label after checking the provider console")
        raise ProviderError(f"[{label}] {e}", status_code=e.status_code) from e
    record.status = ResourceStatus.PROVISIONING
    store.save(record, dry_run=dry_run)

    if dry_run:
        logger.info("[dry-run] Would poll for active/running, then wait for SSH.")
        record.address = "dry-run-host"
    else:
        try:
            record.address = await await_ready(
                client,
                record.id,
                cred.private_key_path,
                timeout=settings.status_timeout,
                interval=settings.status_interval,
                ssh_attempts=settings.ssh_attempts,
                ssh_interval=settings.ssh_interval,
                connect_timeout=settings.ssh_connect_timeout,
                user=settings.user,
                probe=probe,
            )
        except ProvisionTimeoutError as e:
            _mark_unreachable(store, record, address=e.address, last_status=e.last_status)
            logger.error(f"[{label}] {e}")
            logger.error(f"Instance {record.id} is still running; key kept at {cred.private_key_path}")
            raise
        except (asyncio.CancelledError, KeyboardInterrupt):
            _mark_unreachable(store, record)
            logger.warning(f"Interrupted. Instance {record.id} ({label}) keeps running; delete it with 'devbox vm delete {label}'")
            raise

    record.status = ResourceStatus.ACTIVE
    record.last_status = "active/running"
    store.save(record, dry_run=dry_run)
    registry.upsert(label, record.address, cred.private_key_path, user=settings.user, dry_run=dry_run)

    _log_summary(record, settings.user)
    return record


async def _adopt_orphan(client, record):
    """Re-query by label after a failed create; adopt any instance found."""
    try:
        instance_id = await client.find_instance(record.label)
    except ProviderError as e:
        logger.warning(f"[{record.label}] could not check for a half-created instance: {e}")
        return False
    if not instance_id:
        return False
    record.id = instance_id
    record.status = ResourceStatus.UNREACHABLE
    return True


def _mark_unreachable(store, record, address=None, last_status=None):
    record.status = ResourceStatus.UNREACHABLE
    record.address = address or record.address
    record.last_status = last_status or record.last_status
    store.save(record)


def _log_summary(record, user):
    logger.info("")
    logger.info("===============================")
    logger.info(" Instance Ready!")
    logger.info("===============================")
    logger.info(f"ID:       {record.id}")
    logger.info(f"Label:    {record.label}")
    logger.info(f"IP:       {record.address}")
    logger.info(f"Key:      {record.credential_ref}")
    logger.info("")
    logger.info("SSH Commands:")
    logger.info(f"  ssh {record.label}")
    logger.info(f"  ssh -i {record.credential_ref} {user}@{record.address}")
