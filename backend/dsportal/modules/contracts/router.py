"""Contract negotiation and transfer endpoints."""

from __future__ import annotations

from typing import Any
from uuid import UUID

from fastapi import APIRouter, status
from pydantic import BaseModel, ConfigDict, Field

from dsportal.core.errors import PortalError, as_http_error
from dsportal.db.session import DbSession
from dsportal.modules.connectors.edc.models import (
    ContractRequest,
    NegotiationState,
    ODRLConstraint,
    ODRLRule,
    TransferProcessState,
    TransferRequest,
)
from dsportal.modules.connectors.factory import GatewaysDep
from dsportal.modules.contracts.service import ContractService

router = APIRouter()

_PARTICIPANT_PATH = "/{provider_id}/tenants/{tenant_id}/participants/{participant_id}"


class ConstraintBody(BaseModel):
    left_operand: str = Field(alias="leftOperand")
    operator: str = "eq"
    right_operand: str = Field(alias="rightOperand")

    model_config = ConfigDict(populate_by_name=True)


class ContractRequestBody(BaseModel):
    asset_id: str = Field(min_length=1, alias="assetId")
    offer_id: str = Field(min_length=1, alias="offerId")
    provider_id: str = Field(min_length=1, alias="providerId")
    counter_party_address: str = Field(min_length=1, alias="counterPartyAddress")
    permissions: list[ConstraintBody] = Field(default_factory=list)
    prohibitions: list[ConstraintBody] = Field(default_factory=list)
    obligations: list[ConstraintBody] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)

    def to_contract_request(self) -> ContractRequest:
        def rule(constraints: list[ConstraintBody]) -> list[ODRLRule]:
            if not constraints:
                return []
            return [
                ODRLRule(
                    action="use",
                    constraints=[
                        ODRLConstraint(
                            left_operand=c.left_operand,
                            operator=c.operator,
                            right_operand=c.right_operand,
                        )
                        for c in constraints
                    ],
                )
            ]

        return ContractRequest(
            counter_party_address=self.counter_party_address,
            offer_id=self.offer_id,
            asset_id=self.asset_id,
            provider_id=self.provider_id,
            permissions=rule(self.permissions) or [ODRLRule()],
            prohibitions=rule(self.prohibitions),
            obligations=rule(self.obligations),
        )


class NegotiationCreatedResponse(BaseModel):
    negotiation_id: str


@router.post(
    f"{_PARTICIPANT_PATH}/contracts",
    response_model=NegotiationCreatedResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def request_contract(
    provider_id: UUID,
    tenant_id: UUID,
    participant_id: UUID,
    body: ContractRequestBody,
    db: DbSession,
    gateways: GatewaysDep,
) -> NegotiationCreatedResponse:
    """Start a contract negotiation with the provider's connector."""
    service = ContractService(db, gateways)
    try:
        negotiation_id = await service.request_contract(
            participant_id,
            body.to_contract_request(),
            tenant_id=tenant_id,
            service_provider_id=provider_id,
        )
    except PortalError as exc:
        raise as_http_error(exc) from exc
    return NegotiationCreatedResponse(negotiation_id=negotiation_id)


@router.get(
    f"{_PARTICIPANT_PATH}/contracts/{{negotiation_id}}",
    response_model=NegotiationState,
)
async def get_negotiation(
    provider_id: UUID,
    tenant_id: UUID,
    participant_id: UUID,
    negotiation_id: str,
    db: DbSession,
    gateways: GatewaysDep,
) -> NegotiationState:
    service = ContractService(db, gateways)
    try:
        return await service.get_negotiation(
            participant_id,
            negotiation_id,
            tenant_id=tenant_id,
            service_provider_id=provider_id,
        )
    except PortalError as exc:
        raise as_http_error(exc) from exc


class TransferRequestBody(BaseModel):
    contract_id: str = Field(min_length=1, alias="contractId")
    counter_party_address: str = Field(min_length=1, alias="counterPartyAddress")
    transfer_type: str = Field(default="HttpData-PULL", min_length=1, alias="transferType")
    data_destination: dict[str, Any] | None = Field(default=None, alias="dataDestination")

    model_config = ConfigDict(populate_by_name=True)

    def to_transfer_request(self) -> TransferRequest:
        return TransferRequest(
            counter_party_address=self.counter_party_address,
            contract_id=self.contract_id,
            transfer_type=self.transfer_type,
            data_destination=self.data_destination,
        )


class TransferCreatedResponse(BaseModel):
    transfer_id: str


@router.post(
    f"{_PARTICIPANT_PATH}/transfers",
    response_model=TransferCreatedResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def request_transfer(
    provider_id: UUID,
    tenant_id: UUID,
    participant_id: UUID,
    body: TransferRequestBody,
    db: DbSession,
    gateways: GatewaysDep,
) -> TransferCreatedResponse:
    """Start a data transfer under an agreed contract."""
    service = ContractService(db, gateways)
    try:
        transfer_id = await service.request_transfer(
            participant_id,
            body.to_transfer_request(),
            tenant_id=tenant_id,
            service_provider_id=provider_id,
        )
    except PortalError as exc:
        raise as_http_error(exc) from exc
    return TransferCreatedResponse(transfer_id=transfer_id)


@router.get(
    f"{_PARTICIPANT_PATH}/transfers/{{transfer_id}}",
    response_model=TransferProcessState,
)
async def get_transfer(
    provider_id: UUID,
    tenant_id: UUID,
    participant_id: UUID,
    transfer_id: str,
    db: DbSession,
    gateways: GatewaysDep,
) -> TransferProcessState:
    service = ContractService(db, gateways)
    try:
        return await service.get_transfer(
            participant_id,
            transfer_id,
            tenant_id=tenant_id,
            service_provider_id=provider_id,
        )
    except PortalError as exc:
        raise as_http_error(exc) from exc
