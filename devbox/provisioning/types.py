"""Shared data types for provisioning: records, requests, host entries."""

import os
import re
import time
from dataclasses import asdict, dataclass, field
from enum import Enum

from devbox.errors import ConfigError

LABEL_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")
MAX_LABEL_LENGTH = 63
TOKEN_RE = re.compile(r"^[a-z0-9-]+$")

# Vultr reports this before a public IP has been assigned.
UNASSIGNED_ADDRESS = "0.0.0.0"


class ResourceStatus(str, Enum):
    REQUESTED = "requested"
    PROVISIONING = "provisioning"
    ACTIVE = "active"
    UNREACHABLE = "unreachable"
    FAILED = "failed"
    DESTROYED = "destroyed"


def make_label(prefix="tiny-box", now=None):
    """Build a unique instance label: ``<prefix>-<unix timestamp>``."""
    ts = int(now if now is not None else time.time())
    return f"{prefix}-{ts}"


def validate_label(label):
    """Raise ConfigError unless *label* is usable as a host alias and key file name."""
    if not label or len(label) > MAX_LABEL_LENGTH or not LABEL_RE.match(label):
        raise ConfigError(
            f"Invalid label '{label}': use letters, digits, '.', '_' or '-' "
            f"(max {MAX_LABEL_LENGTH} chars, must start with a letter or digit)"
        )
    return label


@dataclass
class CredentialRecord:
    """One ed25519 keypair, dedicated to a single instance."""

    label: str
    private_key_path: str
    public_key_path: str
    provider_key_id: str | None = None

    @property
    def public_key(self) -> str:
        """Contents of the public key file (single line, stripped)."""
        with open(self.public_key_path) as f:
            return f.read().strip()

    @classmethod
    def for_label(cls, label, key_dir):
        private = os.path.join(os.path.expanduser(key_dir), label)
        return cls(label=label, private_key_path=private, public_key_path=f"{private}.pub")


@dataclass
class InstanceStatus:
    """One provider status snapshot. May be stale (polled, not pushed)."""

    lifecycle_status: str
    power_status: str
    address: str | None = None

    @property
    def is_ready(self) -> bool:
        return self.lifecycle_status == "active" and self.power_status == "running" and bool(self.address)

    def __str__(self):
        return f"{self.lifecycle_status}/{self.power_status}"


@dataclass
class CreateInstanceRequest:
    """Typed create-instance request, validated before it is serialized."""

    label: str
    region: str
    plan: str
    os_id: int
    ssh_key_ids: list[str] = field(default_factory=list)

    def validate(self):
        validate_label(self.label)
        for name in ("region", "plan"):
            value = getattr(self, name)
            if not isinstance(value, str) or not TOKEN_RE.match(value):
                raise ConfigError(f"Invalid {name} '{value}': expected a lowercase token like 'ewr' or 'vc2-1c-1gb'")
        if isinstance(self.os_id, bool) or not isinstance(self.os_id, int) or self.os_id <= 0:
            raise ConfigError(f"Invalid os_id '{self.os_id}': expected a positive integer")
        for key_id in self.ssh_key_ids:
            if not isinstance(key_id, str) or not key_id:
                raise ConfigError(f"Invalid SSH key id '{key_id}'")
        return self

    def to_payload(self) -> dict:
        """Request body for POST /v2/instances."""
        self.validate()
        return {
            "region": self.region,
            "plan": self.plan,
            "os_id": self.os_id,
            "label": self.label,
            "hostname": self.label,
            "sshkey_id": list(self.ssh_key_ids),
        }


@dataclass
class ResourceRecord:
    """Local view of one provisioned instance."""

    label: str
    region: str
    plan: str
    image: str
    id: str | None = None
    status: ResourceStatus = ResourceStatus.REQUESTED
    address: str | None = None
    credential: CredentialRecord | None = None
    created_at: float = field(default_factory=time.time)
    last_status: str | None = None

    @property
    def credential_ref(self) -> str | None:
        """Private key path used to reach this instance."""
        return self.credential.private_key_path if self.credential else None

    def to_dict(self) -> dict:
        d = asdict(self)
        d["status"] = self.status.value
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "ResourceRecord":
        cred = d.get("credential")
        return cls(
            label=d["label"],
            region=d.get("region", ""),
            plan=d.get("plan", ""),
            image=d.get("image", ""),
            id=d.get("id"),
            status=ResourceStatus(d.get("status", ResourceStatus.REQUESTED.value)),
            address=d.get("address"),
            credential=CredentialRecord(**cred) if cred else None,
            created_at=d.get("created_at", 0.0),
            last_status=d.get("last_status"),
        )


@dataclass
class HostEntry:
    """One Host block in the SSH client config."""

    alias: str
    address: str
    identity_file: str | None = None
    user: str = "root"
    port: int = 22

    @property
    def destination(self) -> str:
        """SSH destination string (user@host)."""
        return f"{self.user}@{self.address}" if self.user else self.address
