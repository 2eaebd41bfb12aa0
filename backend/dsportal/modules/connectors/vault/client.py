"""
Secret store (Vault KV v2) client.

Only reads are needed: participant client secrets are written by the
provisioning side of the deployment, not by the portal.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from dsportal.core.logging import get_logger
from dsportal.modules.connectors.base import GatewayClient, GatewayConfig

logger = get_logger(__name__)


@dataclass
class VaultConfig(GatewayConfig):
    """Configuration for the Vault HTTP API."""

    token: str = field(default="", repr=False)


class VaultClient(GatewayClient):
    system = "vault"
    display_name = "Vault"

    def __init__(self, config: VaultConfig) -> None:
        super().__init__(config)
        self._vault_config = config

    async def read_secret(self, path: str) -> str:
        """
        Return the ``content`` value stored at ``path``.

        An absent secret yields an empty string rather than an error.
        """
        response = await self._request(
            "GET",
            path,
            step="read_secret",
            headers={"X-Vault-Token": self._vault_config.token},
            allow_status=(404,),
        )
        if response.status_code == 404:
            logger.info("vault_secret_absent", path=path)
            return ""

        body: Any = self._json(response, step="read_secret")
        data = body.get("data") if isinstance(body, dict) else None
        if not isinstance(data, dict):
            return ""
        # KV v2 nests the payload one level deeper than KV v1
        payload = data.get("data", data)
        if not isinstance(payload, dict):
            return ""
        return str(payload.get("content") or "")
