"""Pydantic schemas for file publication endpoints."""

from __future__ import annotations

from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from dsportal.db.models import UploadedFile


class UploadedFileResponse(BaseModel):
    id: UUID
    file_id: str
    asset_id: str | None = None
    file_name: str
    content_type: str
    metadata: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_entity(cls, record: UploadedFile) -> UploadedFileResponse:
        return cls(
            id=record.id,
            file_id=record.file_id,
            asset_id=record.asset_id,
            file_name=record.file_name,
            content_type=record.content_type,
            metadata=record.file_metadata or {},
        )


class UploadedFileListResponse(BaseModel):
    files: list[UploadedFileResponse]
    count: int


class DataplaneRegistrationRequest(BaseModel):
    url: str = Field(min_length=1, max_length=1024)
    allowed_source_types: list[str] = Field(default_factory=list, alias="allowedSourceTypes")
    allowed_transfer_types: list[str] = Field(
        default_factory=list, alias="allowedTransferTypes"
    )
    destination_provisioning_types: list[str] = Field(
        default_factory=list, alias="destinationProvisioningTypes"
    )
    properties: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(populate_by_name=True)
