"""Instance provisioning: keys, provider client, readiness polling, host registry."""

from devbox.provisioning.keys import generate_credential, remove_credential
from devbox.provisioning.provision import provision
from devbox.provisioning.readiness import await_ready, wait_for_ssh, wait_for_status
from devbox.provisioning.registry import HostRegistry
from devbox.provisioning.retry import attempts_for, poll
from devbox.provisioning.shell import run_shell_cmd
from devbox.provisioning.store import ResourceStore
from devbox.provisioning.types import (
    CreateInstanceRequest,
    CredentialRecord,
    HostEntry,
    InstanceStatus,
    ResourceRecord,
    ResourceStatus,
)
from devbox.provisioning.vultr import VultrClient

__all__ = [
    "CreateInstanceRequest",
    "CredentialRecord",
    "HostEntry",
    "HostRegistry",
    "InstanceStatus",
    "ResourceRecord",
    "ResourceStatus",
    "ResourceStore",
    "VultrClient",
    "attempts_for",
    "await_ready",
    "generate_credential",
    "poll",
    "provision",
    "remove_credential",
    "run_shell_cmd",
    "wait_for_ssh",
    "wait_for_status",
]
