"""Service provider and dataspace endpoints."""

from __future__ import annotations

from typing import Any
from uuid import UUID

from fastapi import APIRouter, status
from pydantic import BaseModel, ConfigDict, Field

from dsportal.db.session import DbSession
from dsportal.modules.providers.service import ProviderService

router = APIRouter()


class ServiceProviderCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)


class ServiceProviderResponse(BaseModel):
    id: UUID
    name: str


class DataspaceCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    properties: dict[str, Any] = Field(default_factory=dict)
    agreement_types: list[str] = Field(default_factory=list, alias="agreementTypes")
    participant_roles: dict[str, list[str]] = Field(
        default_factory=dict, alias="participantRoles"
    )

    model_config = ConfigDict(populate_by_name=True)


class DataspaceResponse(BaseModel):
    id: UUID
    name: str
    properties: dict[str, Any]
    agreement_types: list[str]
    participant_roles: dict[str, Any]


@router.get("/service-providers", response_model=list[ServiceProviderResponse])
async def list_service_providers(db: DbSession) -> list[ServiceProviderResponse]:
    providers = await ProviderService(db).list_service_providers()
    return [ServiceProviderResponse(id=p.id, name=p.name) for p in providers]


@router.post(
    "/service-providers",
    response_model=ServiceProviderResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_service_provider(
    body: ServiceProviderCreateRequest, db: DbSession
) -> ServiceProviderResponse:
    provider = await ProviderService(db).create_service_provider(body.name)
    await db.commit()
    return ServiceProviderResponse(id=provider.id, name=provider.name)


def _dataspace_response(dataspace: Any) -> DataspaceResponse:
    return DataspaceResponse(
        id=dataspace.id,
        name=dataspace.name,
        properties=dataspace.properties or {},
        agreement_types=dataspace.agreement_types or [],
        participant_roles=dataspace.participant_roles or {},
    )


@router.get("/dataspaces", response_model=list[DataspaceResponse])
async def list_dataspaces(db: DbSession) -> list[DataspaceResponse]:
    dataspaces = await ProviderService(db).list_dataspaces()
    return [_dataspace_response(d) for d in dataspaces]


@router.post(
    "/dataspaces",
    response_model=DataspaceResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_dataspace(body: DataspaceCreateRequest, db: DbSession) -> DataspaceResponse:
    dataspace = await ProviderService(db).create_dataspace(
        body.name,
        properties=body.properties,
        agreement_types=body.agreement_types,
        participant_roles=body.participant_roles,
    )
    await db.commit()
    return _dataspace_response(dataspace)
