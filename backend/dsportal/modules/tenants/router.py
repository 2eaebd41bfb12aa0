"""Tenant registration and participant deployment endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, status

from dsportal.core.errors import PortalError, as_http_error
from dsportal.db.session import DbSession
from dsportal.modules.connectors.factory import GatewaysDep
from dsportal.modules.tenants.schemas import (
    CredentialSyncResponse,
    DeploymentRequest,
    ParticipantResponse,
    PartnerListResponse,
    PartnerResponse,
    TenantListResponse,
    TenantRegistrationRequest,
    TenantResponse,
)
from dsportal.modules.tenants.service import TenantService

router = APIRouter()


@router.get("/{provider_id}/tenants", response_model=TenantListResponse)
async def list_tenants(provider_id: UUID, db: DbSession) -> TenantListResponse:
    """List tenants registered under a service provider."""
    service = TenantService(db)
    tenants = await service.list_tenants(provider_id)
    return TenantListResponse(
        tenants=[TenantResponse.from_entity(t) for t in tenants],
        count=len(tenants),
    )


@router.post(
    "/{provider_id}/tenants",
    response_model=TenantResponse,
    status_code=status.HTTP_201_CREATED,
)
async def register_tenant(
    provider_id: UUID,
    body: TenantRegistrationRequest,
    db: DbSession,
) -> TenantResponse:
    """Register a tenant and its first participant. Nothing is provisioned yet."""
    service = TenantService(db)
    try:
        tenant = await service.register_tenant(
            provider_id,
            body.tenant_name,
            body.dataspace_ids,
            body.properties,
        )
    except PortalError as exc:
        raise as_http_error(exc) from exc

    await db.commit()
    return TenantResponse.from_entity(tenant)


@router.get("/{provider_id}/tenants/{tenant_id}", response_model=TenantResponse)
async def get_tenant(provider_id: UUID, tenant_id: UUID, db: DbSession) -> TenantResponse:
    service = TenantService(db)
    try:
        tenant = await service.get_tenant(provider_id, tenant_id)
    except PortalError as exc:
        raise as_http_error(exc) from exc
    return TenantResponse.from_entity(tenant)


@router.get(
    "/{provider_id}/tenants/{tenant_id}/participants/{participant_id}",
    response_model=ParticipantResponse,
)
async def get_participant(
    provider_id: UUID,
    tenant_id: UUID,
    participant_id: UUID,
    db: DbSession,
) -> ParticipantResponse:
    service = TenantService(db)
    try:
        participant = await service.get_participant(
            participant_id, tenant_id=tenant_id, service_provider_id=provider_id
        )
    except PortalError as exc:
        raise as_http_error(exc) from exc
    return ParticipantResponse.from_entity(participant)


@router.post(
    "/{provider_id}/tenants/{tenant_id}/participants/{participant_id}/deployments",
    response_model=ParticipantResponse,
)
async def deploy_participant(
    provider_id: UUID,
    tenant_id: UUID,
    participant_id: UUID,
    body: DeploymentRequest,
    db: DbSession,
    gateways: GatewaysDep,
) -> ParticipantResponse:
    """Provision the participant in the tenant manager and sync its agents."""
    service = TenantService(db, gateways)
    try:
        result = await service.deploy_participant(
            participant_id,
            body.identifier,
            tenant_id=tenant_id,
            service_provider_id=provider_id,
        )
    except PortalError as exc:
        raise as_http_error(exc) from exc

    await db.commit()
    return result


@router.post(
    "/{provider_id}/tenants/{tenant_id}/participants/{participant_id}/credentials/sync",
    response_model=CredentialSyncResponse,
)
async def sync_participant_credentials(
    provider_id: UUID,
    tenant_id: UUID,
    participant_id: UUID,
    db: DbSession,
    gateways: GatewaysDep,
) -> CredentialSyncResponse:
    """Refresh the participant's client secret from the secret store."""
    service = TenantService(db, gateways)
    try:
        updated = await service.sync_client_credentials(
            participant_id, tenant_id=tenant_id, service_provider_id=provider_id
        )
    except PortalError as exc:
        raise as_http_error(exc) from exc

    await db.commit()
    return CredentialSyncResponse(participant_id=participant_id, updated=updated)


@router.get(
    "/{provider_id}/tenants/{tenant_id}/participants/{participant_id}/partners/{dataspace_id}",
    response_model=PartnerListResponse,
)
async def list_partners(
    provider_id: UUID,
    tenant_id: UUID,
    participant_id: UUID,
    dataspace_id: UUID,
    db: DbSession,
) -> PartnerListResponse:
    """List the other members of a dataspace the participant belongs to."""
    service = TenantService(db)
    try:
        partners = await service.list_partners(
            participant_id,
            dataspace_id,
            tenant_id=tenant_id,
            service_provider_id=provider_id,
        )
    except PortalError as exc:
        raise as_http_error(exc) from exc
    return PartnerListResponse(
        dataspace_id=dataspace_id,
        partners=[PartnerResponse.from_entity(p) for p in partners],
    )
