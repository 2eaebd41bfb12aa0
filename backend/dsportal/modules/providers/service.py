"""Service providers and dataspaces: purely local bookkeeping."""

from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dsportal.core.logging import get_logger
from dsportal.db.models import Dataspace, ServiceProvider

logger = get_logger(__name__)


class ProviderService:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create_service_provider(self, name: str) -> ServiceProvider:
        provider = ServiceProvider(name=name, tenants=[])
        self._session.add(provider)
        await self._session.flush()
        logger.info("service_provider_created", service_provider_id=str(provider.id))
        return provider

    async def list_service_providers(self) -> list[ServiceProvider]:
        result = await self._session.execute(
            select(ServiceProvider).order_by(ServiceProvider.created_at)
        )
        return list(result.scalars().all())

    async def create_dataspace(
        self,
        name: str,
        *,
        properties: dict[str, Any] | None = None,
        agreement_types: list[str] | None = None,
        participant_roles: dict[str, list[str]] | None = None,
    ) -> Dataspace:
        dataspace = Dataspace(
            name=name,
            properties=dict(properties or {}),
            agreement_types=list(agreement_types or []),
            participant_roles=dict(participant_roles or {}),
        )
        self._session.add(dataspace)
        await self._session.flush()
        logger.info("dataspace_created", dataspace_id=str(dataspace.id), name=name)
        return dataspace

    async def list_dataspaces(self) -> list[Dataspace]:
        result = await self._session.execute(select(Dataspace).order_by(Dataspace.name))
        return list(result.scalars().all())
