"""Verifiable credential and key pair endpoints for a participant."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Query, status

from dsportal.core.errors import PortalError, as_http_error
from dsportal.db.session import DbSession
from dsportal.modules.connectors.factory import GatewaysDep
from dsportal.modules.connectors.identity_hub.models import (
    CredentialRequest,
    KeyPair,
    VerifiableCredential,
)
from dsportal.modules.identity.service import IdentityService

router = APIRouter()

_PARTICIPANT_PATH = "/{provider_id}/tenants/{tenant_id}/participants/{participant_id}"


@router.get(
    f"{_PARTICIPANT_PATH}/verifiable-credentials",
    response_model=list[VerifiableCredential],
    response_model_by_alias=True,
)
async def list_credentials(
    provider_id: UUID,
    tenant_id: UUID,
    participant_id: UUID,
    db: DbSession,
    gateways: GatewaysDep,
    credential_type: str | None = Query(default=None, alias="type"),
) -> list[VerifiableCredential]:
    service = IdentityService(db, gateways)
    try:
        return await service.list_credentials(
            participant_id,
            credential_type,
            tenant_id=tenant_id,
            service_provider_id=provider_id,
        )
    except PortalError as exc:
        raise as_http_error(exc) from exc


@router.post(
    f"{_PARTICIPANT_PATH}/verifiable-credentials",
    status_code=status.HTTP_202_ACCEPTED,
)
async def request_credential(
    provider_id: UUID,
    tenant_id: UUID,
    participant_id: UUID,
    body: CredentialRequest,
    db: DbSession,
    gateways: GatewaysDep,
) -> dict[str, str]:
    """Ask an issuer to issue credentials to the participant."""
    service = IdentityService(db, gateways)
    try:
        await service.request_credential(
            participant_id, body, tenant_id=tenant_id, service_provider_id=provider_id
        )
    except PortalError as exc:
        raise as_http_error(exc) from exc
    return {"status": "requested", "holderPid": body.holder_pid}


@router.get(
    f"{_PARTICIPANT_PATH}/keypairs",
    response_model=list[KeyPair],
    response_model_by_alias=True,
)
async def list_key_pairs(
    provider_id: UUID,
    tenant_id: UUID,
    participant_id: UUID,
    db: DbSession,
    gateways: GatewaysDep,
) -> list[KeyPair]:
    service = IdentityService(db, gateways)
    try:
        return await service.list_key_pairs(
            participant_id, tenant_id=tenant_id, service_provider_id=provider_id
        )
    except PortalError as exc:
        raise as_http_error(exc) from exc
