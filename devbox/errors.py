"""Error taxonomy shared by provisioning and CLI commands."""


class DevboxError(Exception):
    """Base class for all errors surfaced to the operator."""


class ConfigError(DevboxError):
    """Missing or invalid input, raised before any side effect."""


class CredentialError(DevboxError):
    """Local key material could not be generated or stored."""


class ProviderError(DevboxError):
    """Non-success response (or transport failure) from the cloud API."""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class RegistryError(DevboxError):
    """The SSH config host registry could not be read or updated."""


class HostNotFoundError(RegistryError, KeyError):
    """No host block exists for the requested alias."""

    def __str__(self):
        return str(self.args[0]) if self.args else "host not found"


class ProvisionTimeoutError(DevboxError, TimeoutError):
    """A bounded readiness poll ran out of budget."""

    def __init__(self, message, instance_id=None, last_status=None, address=None):
        super().__init__(message)
        self.instance_id = instance_id
        self.last_status = last_status
        self.address = address


class StatusTimeoutError(ProvisionTimeoutError):
    """Provider never reported the instance active and running."""


class ReachabilityTimeoutError(ProvisionTimeoutError):
    """Instance reported ready but SSH never accepted a connection."""
