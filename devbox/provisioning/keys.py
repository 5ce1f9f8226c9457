"""Per-instance SSH keypairs: one ed25519 key per box, never reused."""

import logging
import os

from devbox.errors import CredentialError
from devbox.provisioning.shell import run_shell_cmd
from devbox.provisioning.types import CredentialRecord

logger = logging.getLogger(__name__)

KEY_DIR_MODE = 0o700
PRIVATE_KEY_MODE = 0o600
PUBLIC_KEY_MODE = 0o644


def _ssh_keygen_cmd(private_key_path, label):
    return ["ssh-keygen", "-t", "ed25519", "-f", private_key_path, "-N", "", "-C", label, "-q"]


async def generate_credential(label, key_dir, dry_run=False):
    """Generate a fresh keypair at ``<key_dir>/<label>`` and ``<label>.pub``.

    Any existing key material for *label* is replaced; callers keep labels
    unique. No network I/O.

    Returns:
        CredentialRecord (provider_key_id not yet set).

    Raises:
        CredentialError: if the directory or key files cannot be created
            with restrictive permissions, or ssh-keygen fails.
    """
    cred = CredentialRecord.for_label(label, key_dir)
    cmd = _ssh_keygen_cmd(cred.private_key_path, label)

    if dry_run:
        await run_shell_cmd(cmd, dry_run=True)
        return cred

    key_dir = os.path.dirname(cred.private_key_path)
    try:
        os.makedirs(key_dir, mode=KEY_DIR_MODE, exist_ok=True)
        os.chmod(key_dir, KEY_DIR_MODE)
        for path in (cred.private_key_path, cred.public_key_path):
            if os.path.lexists(path):
                os.unlink(path)
    except OSError as e:
        raise CredentialError(f"Cannot prepare key directory {key_dir}: {e}") from e

    logger.info(f"Generating SSH key for {label}...")
    rc, _, stderr = await run_shell_cmd(cmd, timeout=60)
    if rc != 0:
        raise CredentialError(f"ssh-keygen failed for {label} (exit {rc}): {stderr.strip()}")

    try:
        os.chmod(cred.private_key_path, PRIVATE_KEY_MODE)
        os.chmod(cred.public_key_path, PUBLIC_KEY_MODE)
    except OSError as e:
        raise CredentialError(f"Cannot set permissions on key files for {label}: {e}") from e

    logger.info(f"SSH key created: {cred.private_key_path}")
    return cred


def remove_credential(cred, dry_run=False):
    """Delete both key files. Missing files are ignored.

    Only called from explicit operator cleanup, never when an instance is
    destroyed.
    """
    for path in (cred.private_key_path, cred.public_key_path):
        if dry_run:
            logger.info(f"[dry-run] rm {path}")
            continue
        try:
            os.unlink(path)
            logger.info(f"Removed {path}")
        except FileNotFoundError:
            logger.debug(f"{path} already gone")
        except OSError as e:
            raise CredentialError(f"Cannot remove {path}: {e}") from e
