"""Two-phase readiness: provider says active/running, then SSH actually answers.

Provider-side "active" does not mean the guest has finished booting sshd,
so the address is only handed back once a real login succeeds. Neither
phase ever destroys the instance; an interrupted or timed-out poll leaves
it running on the provider side.
"""

import logging

from devbox.errors import ReachabilityTimeoutError, StatusTimeoutError
from devbox.provisioning.retry import attempts_for, poll
from devbox.provisioning.ssh import probe_ssh

logger = logging.getLogger(__name__)


async def wait_for_status(client, instance_id, timeout=600, interval=5):
    """Poll provider status until active AND running on the same tick.

    Returns:
        The address reported on the first ready tick.

    Raises:
        StatusTimeoutError: if no tick within the budget is ready.
    """
    last = None

    async def _tick(attempt):
        nonlocal last
        status = await client.get_status(instance_id)
        last = status
        if status.is_ready:
            return status.address
        logger.info(f"   Status: {status.lifecycle_status}, Power: {status.power_status} - waiting...")
        return None

    address = await poll(_tick, attempts_for(timeout, interval), interval)
    if address is None:
        raise StatusTimeoutError(
            f"Timeout after {timeout}s waiting for instance {instance_id} to become active/running (last: '{last}')",
            instance_id=instance_id,
            last_status=str(last) if last else None,
        )
    return address


async def wait_for_ssh(address, ssh_key_path, attempts=30, interval=5, connect_timeout=5, user="root", probe=None):
    """Poll SSH logins at *address* until one succeeds.

    Raises:
        ReachabilityTimeoutError: if all *attempts* fail.
    """
    probe = probe or probe_ssh

    async def _tick(attempt):
        if await probe(address, ssh_key_path, user=user, connect_timeout=connect_timeout):
            return True
        logger.info(f"   Attempt {attempt}/{attempts} - SSH not ready yet...")
        return False

    if not await poll(_tick, attempts, interval):
        raise ReachabilityTimeoutError(
            f"SSH to {user}@{address} did not become available after {attempts} attempts",
            last_status="active/running",
            address=address,
        )


async def await_ready(
    client,
    instance_id,
    ssh_key_path,
    *,
    timeout=600,
    interval=5,
    ssh_attempts=30,
    ssh_interval=5,
    connect_timeout=5,
    user="root",
    probe=None,
):
    """Block until *instance_id* is provider-ready and reachable over SSH.

    Returns:
        The instance's address.

    Raises:
        StatusTimeoutError: provider never reported active/running in time.
        ReachabilityTimeoutError: ready, but no SSH login succeeded.
    """
    logger.info(f"Waiting for instance to be ready (timeout: {timeout}s)...")
    address = await wait_for_status(client, instance_id, timeout=timeout, interval=interval)
    logger.info(f"Instance is active (IP: {address}). Waiting for SSH to be available...")
    try:
        await wait_for_ssh(
            address,
            ssh_key_path,
            attempts=ssh_attempts,
            interval=ssh_interval,
            connect_timeout=connect_timeout,
            user=user,
            probe=probe,
        )
    except ReachabilityTimeoutError as e:
        e.instance_id = instance_id
        raise
    logger.info("SSH is ready.")
    return address
