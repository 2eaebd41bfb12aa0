"""
Tenant registration and participant deployment.

Registration is purely local. Deployment correlates the tenant and the
participant with the tenant manager and replaces the participant's agents
with whatever the tenant manager reports.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.attributes import set_committed_value

from dsportal.core.errors import NotFoundError
from dsportal.core.logging import get_logger
from dsportal.core.token_provider import ClientCredentials
from dsportal.db.models import (
    Dataspace,
    Participant,
    ServiceProvider,
    Tenant,
    VirtualParticipantAgent,
    participant_dataspaces,
)
from dsportal.modules.connectors.factory import Gateways
from dsportal.modules.connectors.tenant_manager.models import (
    TMParticipantProfile,
    TMParticipantProfileCreate,
    TMTenantCreate,
)
from dsportal.modules.tenants.mapping import map_deployment_state, map_vpa_type
from dsportal.modules.tenants.schemas import ParticipantResponse

logger = get_logger(__name__)

PARTICIPANT_CONTEXT_PROPERTY = "participantContextId"


async def load_participant(
    session: AsyncSession,
    participant_id: UUID,
    *,
    tenant_id: UUID | None = None,
    service_provider_id: UUID | None = None,
    with_files: bool = False,
) -> Participant:
    """
    Load a participant with its tenant, agents and memberships, or fail.

    The optional owner ids restrict the lookup to one tenant or provider.
    ``with_files`` also loads the uploaded file records.
    """
    options = [
        selectinload(Participant.tenant),
        selectinload(Participant.agents),
        selectinload(Participant.dataspaces),
    ]
    if with_files:
        options.append(selectinload(Participant.uploaded_files))
    result = await session.execute(
        select(Participant).where(Participant.id == participant_id).options(*options)
    )
    participant = result.scalar_one_or_none()
    if (
        participant is None
        or (tenant_id is not None and participant.tenant_id != tenant_id)
        or (
            service_provider_id is not None
            and participant.tenant.service_provider_id != service_provider_id
        )
    ):
        raise NotFoundError(f"Participant {participant_id} not found")
    return participant


def require_context(participant: Participant, *, step: str) -> tuple[str, ClientCredentials]:
    """Participant context id and credentials needed for participant-scoped calls."""
    credentials = participant.client_credentials
    if not participant.participant_context_id or credentials is None:
        raise NotFoundError(
            f"Participant {participant.id} has no participant context or client credentials",
            step=step,
        )
    return participant.participant_context_id, credentials


class TenantService:
    """Drives the tenant/participant correlation lifecycle."""

    def __init__(self, session: AsyncSession, gateways: Gateways | None = None) -> None:
        self._session = session
        self._gateways = gateways

    @property
    def gateways(self) -> Gateways:
        if self._gateways is None:
            raise RuntimeError("TenantService was created without gateways")
        return self._gateways

    # ------------------------------------------------------------------
    # Registration (local only)
    # ------------------------------------------------------------------

    async def register_tenant(
        self,
        service_provider_id: UUID,
        tenant_name: str,
        dataspace_ids: Sequence[UUID],
        properties: dict[str, Any] | None = None,
    ) -> Tenant:
        """Create a tenant with one participant named after it. No external calls."""
        provider = await self._session.get(ServiceProvider, service_provider_id)
        if provider is None:
            raise NotFoundError(f"Service provider {service_provider_id} not found")

        dataspaces = await self._load_dataspaces(dataspace_ids)

        participant = Participant(
            identifier=tenant_name,
            correlation_id=None,
            participant_context_id=None,
            dataspaces=dataspaces,
            agents=[],
            uploaded_files=[],
        )
        tenant = Tenant(
            service_provider_id=service_provider_id,
            name=tenant_name,
            properties=dict(properties or {}),
            correlation_id=None,
            participants=[participant],
        )
        self._session.add(tenant)
        await self._session.flush()

        logger.info(
            "tenant_registered",
            tenant_id=str(tenant.id),
            service_provider_id=str(service_provider_id),
            dataspace_count=len(dataspaces),
        )
        return tenant

    async def _load_dataspaces(self, dataspace_ids: Sequence[UUID]) -> list[Dataspace]:
        wanted = list(dict.fromkeys(dataspace_ids))
        if not wanted:
            return []
        result = await self._session.execute(select(Dataspace).where(Dataspace.id.in_(wanted)))
        found = {d.id: d for d in result.scalars().all()}
        missing = [str(i) for i in wanted if i not in found]
        if missing:
            raise NotFoundError(f"Dataspaces not found: {', '.join(missing)}")
        return [found[i] for i in wanted]

    # ------------------------------------------------------------------
    # Deployment
    # ------------------------------------------------------------------

    async def deploy_participant(
        self,
        participant_id: UUID,
        desired_identifier: str,
        *,
        tenant_id: UUID | None = None,
        service_provider_id: UUID | None = None,
    ) -> ParticipantResponse:
        """
        Provision the participant in the tenant manager.

        The tenant is created remotely only while it has no correlation id.
        The participant profile is created on every call, and the agent set
        is replaced wholesale with the returned one.
        """
        participant = await load_participant(
            self._session,
            participant_id,
            tenant_id=tenant_id,
            service_provider_id=service_provider_id,
        )
        tenant = participant.tenant

        tenant_correlation_id = await self._ensure_tenant_correlation(tenant)

        profile = await self.gateways.tenant_manager.create_participant_profile(
            tenant_correlation_id,
            TMParticipantProfileCreate(
                id=str(uuid4()),
                identifier=desired_identifier,
                tenant_id=tenant_correlation_id,
            ),
        )
        agents = self._translate_agents(profile)

        if participant.correlation_id is None:
            participant.correlation_id = profile.id
        participant.identifier = profile.identifier
        context_id = profile.properties.get(PARTICIPANT_CONTEXT_PROPERTY)
        if context_id and not participant.participant_context_id:
            participant.participant_context_id = str(context_id)
        participant.agents = agents

        await self._session.flush()

        logger.info(
            "participant_deployed",
            participant_id=str(participant.id),
            tenant_correlation_id=tenant_correlation_id,
            identifier=participant.identifier,
            agent_count=len(agents),
        )
        return ParticipantResponse.from_entity(participant)

    @staticmethod
    def _translate_agents(profile: TMParticipantProfile) -> list[VirtualParticipantAgent]:
        # translate everything before touching the entity
        return [
            VirtualParticipantAgent(
                type=map_vpa_type(vpa.type),
                state=map_deployment_state(vpa.state),
            )
            for vpa in profile.vpas
        ]

    async def _ensure_tenant_correlation(self, tenant: Tenant) -> str:
        if tenant.correlation_id:
            return tenant.correlation_id

        remote = await self.gateways.tenant_manager.create_tenant(
            TMTenantCreate(properties={**(tenant.properties or {}), "name": tenant.name})
        )

        # only the first writer sets the correlation id
        result = await self._session.execute(
            update(Tenant)
            .where(Tenant.id == tenant.id, Tenant.correlation_id.is_(None))
            .values(correlation_id=remote.id)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            set_committed_value(tenant, "correlation_id", remote.id)
            # the remote tenant exists now; keep the link even if a later step fails
            await self._session.commit()
            return remote.id

        winner = (
            await self._session.execute(
                select(Tenant.correlation_id).where(Tenant.id == tenant.id)
            )
        ).scalar_one()
        logger.warning(
            "tenant_manager_tenant_orphaned",
            tenant_id=str(tenant.id),
            orphaned_correlation_id=remote.id,
            correlation_id=winner,
        )
        set_committed_value(tenant, "correlation_id", winner)
        return str(winner)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list_tenants(self, service_provider_id: UUID) -> list[Tenant]:
        result = await self._session.execute(
            select(Tenant)
            .where(Tenant.service_provider_id == service_provider_id)
            .options(*self._tenant_load_options())
            .order_by(Tenant.created_at)
        )
        return list(result.scalars().all())

    async def get_tenant(self, service_provider_id: UUID, tenant_id: UUID) -> Tenant:
        result = await self._session.execute(
            select(Tenant)
            .where(Tenant.id == tenant_id, Tenant.service_provider_id == service_provider_id)
            .options(*self._tenant_load_options())
        )
        tenant = result.scalar_one_or_none()
        if tenant is None:
            raise NotFoundError(f"Tenant {tenant_id} not found")
        return tenant

    @staticmethod
    def _tenant_load_options() -> tuple[Any, ...]:
        return (
            selectinload(Tenant.participants).selectinload(Participant.agents),
            selectinload(Tenant.participants).selectinload(Participant.dataspaces),
        )

    async def get_participant(
        self,
        participant_id: UUID,
        *,
        tenant_id: UUID | None = None,
        service_provider_id: UUID | None = None,
    ) -> Participant:
        return await load_participant(
            self._session,
            participant_id,
            tenant_id=tenant_id,
            service_provider_id=service_provider_id,
        )

    async def list_partners(
        self,
        participant_id: UUID,
        dataspace_id: UUID,
        *,
        tenant_id: UUID | None = None,
        service_provider_id: UUID | None = None,
    ) -> list[Participant]:
        """Other participants that are members of one of the participant's dataspaces."""
        participant = await load_participant(
            self._session,
            participant_id,
            tenant_id=tenant_id,
            service_provider_id=service_provider_id,
        )
        if all(d.id != dataspace_id for d in participant.dataspaces):
            raise NotFoundError(
                f"Participant {participant_id} is not a member of dataspace {dataspace_id}"
            )

        result = await self._session.execute(
            select(Participant)
            .join(
                participant_dataspaces,
                participant_dataspaces.c.participant_id == Participant.id,
            )
            .where(
                participant_dataspaces.c.dataspace_id == dataspace_id,
                Participant.id != participant.id,
            )
            .order_by(Participant.identifier)
        )
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------

    async def sync_client_credentials(
        self,
        participant_id: UUID,
        *,
        tenant_id: UUID | None = None,
        service_provider_id: UUID | None = None,
    ) -> bool:
        """
        Pull the participant's client secret from the secret store.

        The client id is the participant context id. Returns ``False`` and
        leaves the stored credentials untouched when no secret is stored yet.
        """
        participant = await load_participant(
            self._session,
            participant_id,
            tenant_id=tenant_id,
            service_provider_id=service_provider_id,
        )
        context_id = participant.participant_context_id
        if not context_id:
            raise NotFoundError(
                f"Participant {participant_id} has no participant context yet",
                step="sync_client_credentials",
            )

        path = self.gateways.vault_client_secret_path.format(client_id=context_id)
        secret = await self.gateways.vault.read_secret(path)
        if not secret:
            logger.info("participant_client_secret_absent", participant_id=str(participant_id))
            return False

        participant.client_credentials = ClientCredentials(context_id, secret)
        await self._session.flush()
        logger.info("participant_client_credentials_synced", participant_id=str(participant_id))
        return True
