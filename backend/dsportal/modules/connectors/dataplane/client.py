"""
Data plane control API client: multipart file upload and download.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from dsportal.core.errors import ProvisioningError
from dsportal.core.logging import get_logger
from dsportal.core.token_provider import (
    MANAGEMENT_API_SCOPES,
    ClientCredentials,
    OAuth2TokenProvider,
)
from dsportal.modules.connectors.base import GatewayClient, GatewayConfig

logger = get_logger(__name__)

UPLOAD_PATH = "/app/internal/api/control/upload"
DOWNLOAD_PATH = "/app/public/api/data"


@dataclass
class DataPlaneConfig(GatewayConfig):
    """Configuration for the data plane control API."""


@dataclass
class DownloadedFile:
    content: bytes
    content_type: str


class DataPlaneClient(GatewayClient):
    """Uploads and downloads participant files."""

    system = "data_plane"
    display_name = "Data plane"

    def __init__(
        self,
        config: DataPlaneConfig,
        token_provider: OAuth2TokenProvider | None = None,
    ) -> None:
        super().__init__(config, token_provider)

    async def upload(
        self,
        credentials: ClientCredentials,
        metadata: dict[str, str],
        file_name: str,
        content: bytes,
    ) -> str:
        """
        Upload ``content`` with ``metadata`` as form fields.

        Returns:
            The file id assigned by the data plane.
        """
        token = await self._token(credentials, MANAGEMENT_API_SCOPES)
        response = await self._request(
            "POST",
            UPLOAD_PATH,
            step="upload_file",
            token=token,
            data=metadata,
            files={"file": (file_name, content, "application/octet-stream")},
        )
        data: Any = self._json(response, step="upload_file")
        file_id = data.get("id") if isinstance(data, dict) else None
        if not file_id:
            raise ProvisioningError(
                "Data plane upload response carried no file id",
                status_code=response.status_code,
                system=self.system,
                step="upload_file",
            )
        logger.info("data_plane_file_uploaded", file_id=file_id, size=len(content))
        return str(file_id)

    async def download(self, credentials: ClientCredentials, file_id: str) -> DownloadedFile:
        token = await self._token(credentials, MANAGEMENT_API_SCOPES)
        response = await self._request(
            "GET",
            f"{DOWNLOAD_PATH}/{file_id}",
            step="download_file",
            token=token,
        )
        return DownloadedFile(
            content=response.content,
            content_type=response.headers.get("content-type", "application/octet-stream"),
        )
