"""File publication, listing and download endpoints."""

from __future__ import annotations

import json
from typing import Any
from uuid import UUID

from fastapi import APIRouter, File, Form, HTTPException, Response, UploadFile, status

from dsportal.core.config import get_settings
from dsportal.core.errors import PortalError, as_http_error
from dsportal.db.session import DbSession
from dsportal.modules.assets.schemas import (
    DataplaneRegistrationRequest,
    UploadedFileListResponse,
    UploadedFileResponse,
)
from dsportal.modules.assets.service import AssetService
from dsportal.modules.connectors.edc.models import DataplaneRegistration
from dsportal.modules.connectors.factory import GatewaysDep

router = APIRouter()

_PARTICIPANT_PATH = "/{provider_id}/tenants/{tenant_id}/participants/{participant_id}"


async def _read_upload_file_limited(file: UploadFile, *, max_bytes: int) -> bytes:
    """Read UploadFile in chunks and reject payloads exceeding the configured limit."""
    chunk_size = 1024 * 1024
    total = 0
    chunks: list[bytes] = []
    while chunk := await file.read(chunk_size):
        total += len(chunk)
        if total > max_bytes:
            raise HTTPException(
                status_code=status.HTTP_413_CONTENT_TOO_LARGE,
                detail=f"File exceeds maximum upload size ({max_bytes} bytes)",
            )
        chunks.append(chunk)
    return b"".join(chunks)


def _parse_metadata(raw: str | None) -> dict[str, Any]:
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="metadata must be a JSON object",
        ) from exc
    if not isinstance(parsed, dict):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="metadata must be a JSON object",
        )
    return parsed


@router.post(
    f"{_PARTICIPANT_PATH}/files",
    response_model=UploadedFileResponse,
    status_code=status.HTTP_201_CREATED,
)
async def publish_file(
    provider_id: UUID,
    tenant_id: UUID,
    participant_id: UUID,
    db: DbSession,
    gateways: GatewaysDep,
    file: UploadFile = File(...),
    metadata: str | None = Form(default=None),
) -> UploadedFileResponse:
    """Publish a file as a membership-governed asset and upload it to the data plane."""
    settings = get_settings()
    content = await _read_upload_file_limited(file, max_bytes=settings.max_upload_bytes)
    service = AssetService(db, gateways)
    try:
        record = await service.publish_file(
            participant_id,
            _parse_metadata(metadata),
            file.filename or "upload.bin",
            file.content_type or "application/octet-stream",
            content,
            tenant_id=tenant_id,
            service_provider_id=provider_id,
        )
    except PortalError as exc:
        raise as_http_error(exc) from exc

    await db.commit()
    return UploadedFileResponse.from_entity(record)


@router.get(f"{_PARTICIPANT_PATH}/files", response_model=UploadedFileListResponse)
async def list_files(
    provider_id: UUID,
    tenant_id: UUID,
    participant_id: UUID,
    db: DbSession,
    gateways: GatewaysDep,
) -> UploadedFileListResponse:
    service = AssetService(db, gateways)
    try:
        records = await service.list_files(
            participant_id, tenant_id=tenant_id, service_provider_id=provider_id
        )
    except PortalError as exc:
        raise as_http_error(exc) from exc
    return UploadedFileListResponse(
        files=[UploadedFileResponse.from_entity(r) for r in records],
        count=len(records),
    )


@router.get(f"{_PARTICIPANT_PATH}/files/{{file_id}}")
async def download_file(
    provider_id: UUID,
    tenant_id: UUID,
    participant_id: UUID,
    file_id: str,
    db: DbSession,
    gateways: GatewaysDep,
) -> Response:
    service = AssetService(db, gateways)
    try:
        record, downloaded = await service.download_file(
            participant_id, file_id, tenant_id=tenant_id, service_provider_id=provider_id
        )
    except PortalError as exc:
        raise as_http_error(exc) from exc
    return Response(
        content=downloaded.content,
        media_type=record.content_type,
        headers={"Content-Disposition": f'attachment; filename="{record.file_name}"'},
    )


@router.post(f"{_PARTICIPANT_PATH}/dataplanes", status_code=status.HTTP_204_NO_CONTENT)
async def register_dataplane(
    provider_id: UUID,
    tenant_id: UUID,
    participant_id: UUID,
    body: DataplaneRegistrationRequest,
    db: DbSession,
    gateways: GatewaysDep,
) -> None:
    service = AssetService(db, gateways)
    try:
        await service.register_dataplane(
            participant_id,
            DataplaneRegistration(**body.model_dump()),
            tenant_id=tenant_id,
            service_provider_id=provider_id,
        )
    except PortalError as exc:
        raise as_http_error(exc) from exc
