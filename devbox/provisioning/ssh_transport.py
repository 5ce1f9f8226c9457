"""SSH transport: argv builders for ssh/scp sessions against a registered host."""

import os

_COMMON_OPTIONS = [
    "-o", "StrictHostKeyChecking=no",
    "-o", "UserKnownHostsFile=/dev/null",
    "-o", "ServerAliveInterval=60",
    "-o", "ServerAliveCountMax=5",
]


def ssh_base_args(destination, ssh_key, ssh_port=22, batch=True, connect_timeout=None):
    """Build base SSH arguments ending with *destination*."""
    args = ["ssh", *_COMMON_OPTIONS]
    if batch:
        args += ["-o", "BatchMode=yes"]
    if connect_timeout:
        args += ["-o", f"ConnectTimeout={connect_timeout}"]
    if ssh_key:
        args += ["-i", ssh_key, "-o", "IdentitiesOnly=yes"]
    if ssh_port and ssh_port != 22:
        args += ["-p", str(ssh_port)]
    args.append(destination)
    return args


def remote_path_for(local_path):
    """Home-relative destination path on the box for an uploaded file."""
    return f"~/{os.path.basename(os.path.normpath(local_path))}"


def scp_args(local_path, entry, remote_path=None):
    """Build scp arguments copying *local_path* to the host *entry*."""
    args = ["scp", *_COMMON_OPTIONS, "-o", "BatchMode=yes"]
    if entry.identity_file:
        args += ["-i", entry.identity_file, "-o", "IdentitiesOnly=yes"]
    if entry.port and entry.port != 22:
        args += ["-P", str(entry.port)]
    if os.path.isdir(local_path):
        args.append("-r")
    args += [local_path, f"{entry.destination}:{remote_path or remote_path_for(local_path)}"]
    return args


def exec_args(entry, remote_path):
    """Build ssh arguments running an uploaded script with bash."""
    args = ssh_base_args(entry.destination, entry.identity_file, entry.port, batch=False)
    destination = args.pop()
    args += ["-t", destination, "bash", remote_path]
    return args


def forward_args(entry, ports):
    """Build ssh arguments forwarding each local port to the same port on the box."""
    args = ssh_base_args(entry.destination, entry.identity_file, entry.port, batch=False)
    destination = args.pop()
    args += ["-N", "-o", "ExitOnForwardFailure=yes"]
    for port in ports:
        args += ["-L", f"{port}:localhost:{port}"]
    args.append(destination)
    return args
