"""Pydantic schemas for tenant registration and participant deployment."""

from __future__ import annotations

from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from dsportal.db.models import DeploymentState, Participant, Tenant, VpaType


class TenantRegistrationRequest(BaseModel):
    """Register a tenant and its first participant locally."""

    tenant_name: str = Field(min_length=1, max_length=255, alias="tenantName")
    dataspace_ids: list[UUID] = Field(default_factory=list, alias="dataspaces")
    properties: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(populate_by_name=True, extra="forbid")


class DeploymentRequest(BaseModel):
    """Desired identifier (typically a web DID) for the deployed participant."""

    identifier: str = Field(min_length=1, max_length=512)

    model_config = ConfigDict(extra="forbid")


class VpaResponse(BaseModel):
    type: VpaType
    state: DeploymentState


class ParticipantResponse(BaseModel):
    id: UUID
    identifier: str
    correlation_id: str | None = None
    participant_context_id: str | None = None
    agents: list[VpaResponse] = Field(default_factory=list)
    dataspace_ids: list[UUID] = Field(default_factory=list)

    @classmethod
    def from_entity(cls, participant: Participant) -> ParticipantResponse:
        return cls(
            id=participant.id,
            identifier=participant.identifier,
            correlation_id=participant.correlation_id,
            participant_context_id=participant.participant_context_id,
            agents=[VpaResponse(type=a.type, state=a.state) for a in participant.agents],
            dataspace_ids=[d.id for d in participant.dataspaces],
        )


class TenantResponse(BaseModel):
    id: UUID
    service_provider_id: UUID
    name: str
    properties: dict[str, Any] = Field(default_factory=dict)
    correlation_id: str | None = None
    participants: list[ParticipantResponse] = Field(default_factory=list)

    @classmethod
    def from_entity(cls, tenant: Tenant) -> TenantResponse:
        return cls(
            id=tenant.id,
            service_provider_id=tenant.service_provider_id,
            name=tenant.name,
            properties=tenant.properties or {},
            correlation_id=tenant.correlation_id,
            participants=[ParticipantResponse.from_entity(p) for p in tenant.participants],
        )


class TenantListResponse(BaseModel):
    tenants: list[TenantResponse]
    count: int


class CredentialSyncResponse(BaseModel):
    participant_id: UUID
    updated: bool


class PartnerResponse(BaseModel):
    """Another member of a shared dataspace."""

    participant_id: UUID
    identifier: str
    deployed: bool

    @classmethod
    def from_entity(cls, participant: Participant) -> PartnerResponse:
        return cls(
            participant_id=participant.id,
            identifier=participant.identifier,
            deployed=participant.correlation_id is not None,
        )


class PartnerListResponse(BaseModel):
    dataspace_id: UUID
    partners: list[PartnerResponse]
