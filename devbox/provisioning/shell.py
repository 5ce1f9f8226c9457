"""Shell command execution helper."""

import asyncio
import logging
import shlex

logger = logging.getLogger(__name__)


async def run_shell_cmd(command, dry_run=False, timeout=600, capture=True):
    """Run a command and return (returncode, stdout, stderr).

    Args:
        command: list of command arguments (never a shell string)
        dry_run: if True, log the command instead of executing
        timeout: maximum seconds to wait for the command, None for no limit
        capture: if False, stdout/stderr go straight to the terminal

    Returns:
        (returncode, stdout, stderr) tuple
    """
    if dry_run:
        logger.info(f"[dry-run] {shlex.join(command)}")
        return 0, "", ""

    logger.debug(f"$ {shlex.join(command)}")
    pipe = asyncio.subprocess.PIPE if capture else None
    try:
        proc = await asyncio.create_subprocess_exec(*command, stdout=pipe, stderr=pipe)
    except FileNotFoundError:
        logger.error(f"Error: '{command[0]}' not found. Is it installed and on PATH?")
        return 127, "", f"'{command[0]}' not found"

    try:
        stdout_bytes, stderr_bytes = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except TimeoutError:
        logger.error(f"Command timed out after {timeout}s: {shlex.join(command)}")
        proc.kill()
        await proc.wait()
        return 1, "", ""
    stdout = stdout_bytes.decode() if stdout_bytes else ""
    stderr = stderr_bytes.decode() if stderr_bytes else ""
    return proc.returncode, stdout, stderr
