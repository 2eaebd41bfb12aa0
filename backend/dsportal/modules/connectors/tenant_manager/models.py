"""
Pydantic models for the Fleet/Tenant Manager API payloads.

Field names are snake_case locally and camelCase on the wire.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class _TMModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


class TMTenant(_TMModel):
    id: str
    version: int = 0
    properties: dict[str, Any] = Field(default_factory=dict)


class TMTenantCreate(_TMModel):
    properties: dict[str, Any] = Field(default_factory=dict)


class TMTenantPropertiesDiff(_TMModel):
    """Patch body for a tenant: properties to set and keys to remove."""

    properties: dict[str, Any] = Field(default_factory=dict)
    removed: list[str] = Field(default_factory=list)


class TMVirtualParticipantAgent(_TMModel):
    id: str | None = None
    version: int = 0
    state: str | None = None
    state_timestamp: datetime | None = Field(default=None, alias="stateTimestamp")
    type: str | None = None
    cell_id: str | None = Field(default=None, alias="cellId")
    properties: dict[str, Any] = Field(default_factory=dict)


class TMParticipantProfile(_TMModel):
    id: str
    version: int = 0
    identifier: str
    tenant_id: str | None = Field(default=None, alias="tenantId")
    error: bool = False
    error_detail: str | None = Field(default=None, alias="errorDetail")
    participant_roles: dict[str, list[str]] = Field(
        default_factory=dict, alias="participantRoles"
    )
    properties: dict[str, Any] = Field(default_factory=dict)
    vpas: list[TMVirtualParticipantAgent] = Field(default_factory=list)


class TMParticipantProfileCreate(_TMModel):
    """Request body for creating a participant profile under a tenant."""

    id: str
    version: int = 0
    identifier: str
    tenant_id: str = Field(alias="tenantId")
    error: bool = False
    participant_roles: dict[str, list[str]] = Field(
        default_factory=dict, alias="participantRoles"
    )
    properties: dict[str, Any] = Field(default_factory=dict)
    vpas: list[TMVirtualParticipantAgent] = Field(default_factory=list)


class TMCell(_TMModel):
    id: str
    version: int = 0
    state: str
    state_timestamp: datetime | None = Field(default=None, alias="stateTimestamp")
    external_id: str | None = Field(default=None, alias="externalId")
    properties: dict[str, Any] = Field(default_factory=dict)


class TMCellCreate(_TMModel):
    state: str = "INITIAL"
    state_timestamp: datetime | None = Field(default=None, alias="stateTimestamp")
    external_id: str | None = Field(default=None, alias="externalId")
    properties: dict[str, Any] = Field(default_factory=dict)


class TMDataspaceDeployment(_TMModel):
    id: str | None = None
    version: int = 0
    state: str | None = None
    state_timestamp: datetime | None = Field(default=None, alias="stateTimestamp")
    cell_id: str | None = Field(default=None, alias="cellId")
    external_cell_id: str | None = Field(default=None, alias="externalCellId")
    properties: dict[str, Any] = Field(default_factory=dict)


class TMDataspaceProfile(_TMModel):
    id: str
    version: int = 0
    dataspace_spec: dict[str, Any] = Field(default_factory=dict, alias="dataspaceSpec")
    artifacts: list[str] = Field(default_factory=list)
    deployments: list[TMDataspaceDeployment] = Field(default_factory=list)
    properties: dict[str, Any] = Field(default_factory=dict)
