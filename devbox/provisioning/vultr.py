"""Vultr provider: upload keys, create/query/destroy instances via the REST API v2."""

import json
import logging

import httpx

from devbox.errors import ProviderError
from devbox.provisioning.types import UNASSIGNED_ADDRESS, InstanceStatus

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.vultr.com"
REQUEST_TIMEOUT = 60

DRY_RUN_KEY_ID = "dry-run-key-id"
DRY_RUN_INSTANCE_ID = "dry-run-instance-id"


class VultrClient:
    """Thin client for the instance operations plus key cleanup.

    The API key is passed in explicitly; nothing is read from the
    environment here. Mutating calls are never retried.
    """

    def __init__(self, api_key, api_url=DEFAULT_API_URL, dry_run=False, transport=None):
        self.api_key = api_key
        self.api_url = api_url.rstrip("/")
        self.dry_run = dry_run
        self._transport = transport

    # ── API helpers ───────────────────────────────────────────────

    async def _api_request(self, method, path, data=None):
        """Make an authenticated Vultr API request.

        Returns:
            Parsed JSON body (``{}`` for empty responses), or ``None`` in dry-run mode.

        Raises:
            ProviderError: on transport failure or any non-2xx response.
        """
        url = f"{self.api_url}{path}"

        if self.dry_run:
            logger.info(f"[dry-run] {method} {url}")
            if data is not None:
                logger.info(f"[dry-run] payload: {json.dumps(data, indent=2)}")
            return None

        headers = {"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"}
        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                resp = await client.request(method, url, json=data, headers=headers, timeout=REQUEST_TIMEOUT)
        except httpx.HTTPError as e:
            raise ProviderError(f"{method} {path} failed: {e}") from e

        if not resp.is_success:
            raise ProviderError(
                f"{method} {path} returned HTTP {resp.status_code}: {_error_message(resp)}",
                status_code=resp.status_code,
            )
        if not resp.content:
            return {}
        try:
            return resp.json()
        except ValueError as e:
            raise ProviderError(f"{method} {path} returned a non-JSON body") from e

    # ── Operations ────────────────────────────────────────────────

    async def upload_key(self, label, public_key):
        """Register *public_key* under *label*. POST /v2/ssh-keys.

        Returns:
            The provider's SSH key id.
        """
        logger.info("Uploading SSH key to Vultr...")
        result = await self._api_request("POST", "/v2/ssh-keys", {"name": label, "ssh_key": public_key})
        if result is None:
            return DRY_RUN_KEY_ID
        key_id = _dig(result, "ssh_key", "id", what="SSH key id")
        logger.info(f"SSH key uploaded (ID: {key_id})")
        return key_id

    async def create_instance(self, request):
        """Create an instance from a CreateInstanceRequest. POST /v2/instances.

        A failure here may still leave an instance behind on the provider
        side; callers reconcile by querying, never by assuming it is gone.

        Returns:
            The provider-assigned instance id.
        """
        payload = request.to_payload()
        logger.info("Creating instance...")
        logger.info(f"   Label:  {request.label}")
        logger.info(f"   Region: {request.region}")
        logger.info(f"   Plan:   {request.plan}")
        logger.info(f"   OS id:  {request.os_id}")
        result = await self._api_request("POST", "/v2/instances", payload)
        if result is None:
            return DRY_RUN_INSTANCE_ID
        instance_id = _dig(result, "instance", "id", what="instance id")
        logger.info(f"Instance created (ID: {instance_id})")
        return instance_id

    async def get_status(self, instance_id):
        """Fetch one status snapshot. GET /v2/instances/{id}.

        The address is None until the provider assigns a real one.
        """
        result = await self._api_request("GET", f"/v2/instances/{instance_id}")
        if result is None:
            return InstanceStatus("active", "running", "192.0.2.1")
        instance = result.get("instance") or {}
        address = instance.get("main_ip") or None
        if address == UNASSIGNED_ADDRESS:
            address = None
        return InstanceStatus(
            lifecycle_status=instance.get("status", ""),
            power_status=instance.get("power_status", ""),
            address=address,
        )

    async def find_instance(self, label):
        """Look up an instance by label. GET /v2/instances?label=...

        Used to reconcile a create call whose outcome is unknown.

        Returns:
            The instance id, or None if no instance carries *label*.
        """
        result = await self._api_request("GET", f"/v2/instances?label={label}")
        if result is None:
            return None
        for instance in result.get("instances") or []:
            if instance.get("label") == label and instance.get("id"):
                return instance["id"]
        return None

    async def destroy_instance(self, instance_id):
        """Destroy an instance. DELETE /v2/instances/{id}."""
        logger.info(f"Destroying instance '{instance_id}'...")
        await self._api_request("DELETE", f"/v2/instances/{instance_id}")
        if not self.dry_run:
            logger.info("Instance destroyed.")

    async def delete_key(self, key_id):
        """Remove an uploaded SSH key. DELETE /v2/ssh-keys/{id}."""
        logger.info(f"Deleting SSH key '{key_id}' from Vultr...")
        await self._api_request("DELETE", f"/v2/ssh-keys/{key_id}")


def _error_message(resp):
    try:
        body = resp.json()
    except ValueError:
        return resp.text.strip() or resp.reason_phrase
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return json.dumps(body)


def _dig(result, section, key, what):
    value = (result.get(section) or {}).get(key) if isinstance(result, dict) else None
    if not value:
        raise ProviderError(f"Response did not include the {what}: {json.dumps(result)}")
    return value
