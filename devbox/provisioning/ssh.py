"""Provider-agnostic SSH reachability probe."""

import logging

from devbox.provisioning.shell import run_shell_cmd
from devbox.provisioning.ssh_transport import ssh_base_args

logger = logging.getLogger(__name__)


async def probe_ssh(address, ssh_key_path, user="root", ssh_port=22, connect_timeout=5):
    """Try one non-interactive SSH login that runs ``exit``.

    Returns:
        True if the login succeeded, False otherwise.
    """
    destination = f"{user}@{address}" if user else address
    args = ssh_base_args(destination, ssh_key_path, ssh_port, connect_timeout=connect_timeout)
    args.append("exit")
    # Outer limit in case the TCP connect succeeds but the handshake stalls
    rc, _, stderr = await run_shell_cmd(args, timeout=connect_timeout * 3)
    if rc != 0:
        logger.debug(f"ssh {destination} not ready (exit {rc}): {stderr.strip()}")
    return rc == 0
