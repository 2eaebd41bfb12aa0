"""Unit tests for tenant registration and participant deployment."""

from __future__ import annotations

import json
from collections.abc import Callable
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest

from dsportal.core.errors import MappingError, NotFoundError, ProvisioningError
from dsportal.db.models import (
    Dataspace,
    DeploymentState,
    Participant,
    ServiceProvider,
    Tenant,
    VirtualParticipantAgent,
    VpaType,
)
from dsportal.modules.connectors.factory import Gateways
from dsportal.modules.tenants.service import TenantService, require_context
from tests.conftest import RecordingTransport, reply


def _scalar_one_or_none_result(value: Any) -> SimpleNamespace:
    return SimpleNamespace(scalar_one_or_none=lambda: value)


def _scalar_result(values: list[Any]) -> SimpleNamespace:
    return SimpleNamespace(scalars=lambda: SimpleNamespace(all=lambda: values))


def _rowcount_result(count: int) -> SimpleNamespace:
    return SimpleNamespace(rowcount=count)


def _session(*execute_results: Any) -> AsyncMock:
    session = AsyncMock()
    session.execute = AsyncMock(side_effect=list(execute_results))
    session.add = Mock()
    return session


def _tenant_creations(transport: RecordingTransport) -> list[Any]:
    posts = transport.matching("POST", "http://tm.test")
    return [r for r in posts if r.url.path.endswith("/tenants")]


def _profile(
    *,
    vpa_types: tuple[str, ...] = ("cfm.connector", "cfm.credentialservice", "cfm.dataplane"),
    state: str | None = "pending",
) -> dict[str, Any]:
    return {
        "id": "P1",
        "version": 0,
        "identifier": "did:web:acme",
        "tenantId": "T1",
        "properties": {"participantContextId": "ctx-acme"},
        "vpas": [
            {"id": f"v{i}", "state": state, "type": vpa_type}
            for i, vpa_type in enumerate(vpa_types)
        ],
    }


class TestRegisterTenant:
    @pytest.mark.asyncio
    async def test_creates_tenant_with_one_participant(self) -> None:
        provider = ServiceProvider(id=uuid4(), name="sp")
        dataspace = Dataspace(id=uuid4(), name="ds")
        session = _session(_scalar_result([dataspace]))
        session.get = AsyncMock(return_value=provider)

        # no gateways: registration must not reach any external system
        tenant = await TenantService(session).register_tenant(
            provider.id, "acme", [dataspace.id], {"region": "eu"}
        )

        session.add.assert_called_once_with(tenant)
        session.flush.assert_awaited_once()
        assert tenant.name == "acme"
        assert tenant.correlation_id is None
        assert tenant.properties == {"region": "eu"}
        assert len(tenant.participants) == 1
        participant = tenant.participants[0]
        assert participant.identifier == "acme"
        assert participant.correlation_id is None
        assert participant.participant_context_id is None
        assert participant.agents == []
        assert participant.dataspaces == [dataspace]

    @pytest.mark.asyncio
    async def test_unknown_dataspace_is_not_found(self) -> None:
        session = _session(_scalar_result([]))
        session.get = AsyncMock(return_value=ServiceProvider(id=uuid4(), name="sp"))
        missing = uuid4()

        with pytest.raises(NotFoundError, match=str(missing)):
            await TenantService(session).register_tenant(uuid4(), "acme", [missing])

        session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_service_provider_is_not_found(self) -> None:
        session = _session()
        session.get = AsyncMock(return_value=None)

        with pytest.raises(NotFoundError):
            await TenantService(session).register_tenant(uuid4(), "acme", [])


class TestDeployParticipant:
    @pytest.mark.asyncio
    async def test_first_deployment_creates_tenant_and_profile(
        self,
        transport: RecordingTransport,
        gateways: Gateways,
        participant_factory: Callable[..., Participant],
    ) -> None:
        participant = participant_factory(identifier="acme", context_id=None)
        transport.add(
            "POST", "/api/v1alpha1/tenants", reply(200, {"id": "T1", "version": 0, "properties": {}})
        )
        transport.add("POST", "/tenants/T1/participant-profiles", reply(200, _profile()))
        session = _session(_scalar_one_or_none_result(participant), _rowcount_result(1))

        result = await TenantService(session, gateways).deploy_participant(
            participant.id, "did:web:requested"
        )

        profile_body = json.loads(transport.matching("POST", "/participant-profiles")[0].content)
        assert profile_body["identifier"] == "did:web:requested"
        assert profile_body["tenantId"] == "T1"
        tm_calls = [r.url.path for r in transport.matching("POST", "http://tm.test")]
        assert tm_calls == [
            "/api/v1alpha1/tenants",
            "/api/v1alpha1/tenants/T1/participant-profiles",
        ]
        assert participant.tenant.correlation_id == "T1"
        assert participant.correlation_id == "P1"
        assert participant.identifier == "did:web:acme"
        assert participant.participant_context_id == "ctx-acme"
        assert sorted(a.type for a in participant.agents) == sorted(VpaType)
        assert all(a.state is DeploymentState.PENDING for a in participant.agents)
        assert len(result.agents) == 3
        assert result.identifier == "did:web:acme"
        session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_redeployment_skips_tenant_creation(
        self,
        transport: RecordingTransport,
        gateways: Gateways,
        participant_factory: Callable[..., Participant],
    ) -> None:
        participant = participant_factory(tenant_correlation_id="T1", correlation_id="P0")
        participant.agents = [
            VirtualParticipantAgent(type=VpaType.CONTROL_PLANE, state=DeploymentState.ACTIVE)
        ]
        transport.add("POST", "/tenants/T1/participant-profiles", reply(200, _profile(state="ACTIVE")))
        session = _session(_scalar_one_or_none_result(participant))

        await TenantService(session, gateways).deploy_participant(participant.id, "did:web:acme")

        assert _tenant_creations(transport) == []
        assert transport.count("POST", "http://tm.test") == 1
        # correlation id is kept, agents are replaced wholesale
        assert participant.correlation_id == "P0"
        assert len(participant.agents) == 3
        assert all(a.state is DeploymentState.ACTIVE for a in participant.agents)
        # an already known context id is not overwritten
        assert participant.participant_context_id == "ctx-1"
        session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_agent_type_leaves_participant_untouched(
        self,
        transport: RecordingTransport,
        gateways: Gateways,
        participant_factory: Callable[..., Participant],
    ) -> None:
        participant = participant_factory(identifier="acme", tenant_correlation_id="T1")
        transport.add(
            "POST",
            "/participant-profiles",
            reply(200, _profile(vpa_types=("cfm.connector", "cfm.mystery"))),
        )
        session = _session(_scalar_one_or_none_result(participant))

        with pytest.raises(MappingError):
            await TenantService(session, gateways).deploy_participant(
                participant.id, "did:web:acme"
            )

        assert participant.identifier == "acme"
        assert participant.correlation_id is None
        assert participant.agents == []
        session.flush.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_null_agent_state_is_mapping_error(
        self,
        transport: RecordingTransport,
        gateways: Gateways,
        participant_factory: Callable[..., Participant],
    ) -> None:
        participant = participant_factory(identifier="acme", tenant_correlation_id="T1")
        transport.add(
            "POST",
            "/tenants/T1/participant-profiles",
            reply(200, _profile(vpa_types=("cfm.connector",), state=None)),
        )
        session = _session(_scalar_one_or_none_result(participant))

        with pytest.raises(MappingError) as exc_info:
            await TenantService(session, gateways).deploy_participant(
                participant.id, "did:web:acme"
            )

        assert exc_info.value.step == "map_deployment_state"
        assert participant.agents == []
        assert participant.correlation_id is None

    @pytest.mark.asyncio
    async def test_empty_tenant_body_fails_before_correlation(
        self,
        transport: RecordingTransport,
        gateways: Gateways,
        participant_factory: Callable[..., Participant],
    ) -> None:
        participant = participant_factory(identifier="acme")
        transport.add("POST", "/api/v1alpha1/tenants", reply(201))
        session = _session(_scalar_one_or_none_result(participant))

        with pytest.raises(ProvisioningError) as exc_info:
            await TenantService(session, gateways).deploy_participant(
                participant.id, "did:web:acme"
            )

        assert exc_info.value.step == "create_tenant"
        assert participant.tenant.correlation_id is None
        assert transport.count("POST", "/participant-profiles") == 0
        session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_lost_correlation_race_adopts_winner(
        self,
        transport: RecordingTransport,
        gateways: Gateways,
        participant_factory: Callable[..., Participant],
    ) -> None:
        participant = participant_factory()
        transport.add("POST", "/api/v1alpha1/tenants", reply(200, {"id": "T-late"}))
        transport.add("POST", "/tenants/T-winner/participant-profiles", reply(200, _profile()))
        session = _session(
            _scalar_one_or_none_result(participant),
            _rowcount_result(0),
            SimpleNamespace(scalar_one=lambda: "T-winner"),
        )

        await TenantService(session, gateways).deploy_participant(participant.id, "did:web:acme")

        assert participant.tenant.correlation_id == "T-winner"
        assert transport.count("POST", "/tenants/T-winner/participant-profiles") == 1
        session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_profile_failure_keeps_tenant_correlation(
        self,
        transport: RecordingTransport,
        gateways: Gateways,
        participant_factory: Callable[..., Participant],
    ) -> None:
        participant = participant_factory(identifier="acme")
        transport.add("POST", "/api/v1alpha1/tenants", reply(200, {"id": "T1"}))
        transport.add("POST", "/tenants/T1/participant-profiles", reply(500))
        session = _session(_scalar_one_or_none_result(participant), _rowcount_result(1))

        with pytest.raises(ProvisioningError) as exc_info:
            await TenantService(session, gateways).deploy_participant(
                participant.id, "did:web:acme"
            )

        assert exc_info.value.step == "create_participant_profile"
        assert participant.tenant.correlation_id == "T1"
        session.commit.assert_awaited_once()
        assert participant.identifier == "acme"

    @pytest.mark.asyncio
    async def test_participant_of_other_tenant_is_not_found(
        self,
        gateways: Gateways,
        participant_factory: Callable[..., Participant],
    ) -> None:
        participant = participant_factory()
        session = _session(_scalar_one_or_none_result(participant))

        with pytest.raises(NotFoundError):
            await TenantService(session, gateways).deploy_participant(
                participant.id, "did:web:acme", tenant_id=uuid4()
            )


class TestPartners:
    @pytest.mark.asyncio
    async def test_lists_other_members_of_dataspace(
        self, participant_factory: Callable[..., Participant]
    ) -> None:
        dataspace = Dataspace(id=uuid4(), name="ds")
        participant = participant_factory(identifier="acme", dataspaces=[dataspace])
        partner = participant_factory(
            identifier="did:web:beta", correlation_id="P2", dataspaces=[dataspace]
        )
        session = _session(
            _scalar_one_or_none_result(participant), _scalar_result([partner])
        )

        partners = await TenantService(session).list_partners(participant.id, dataspace.id)

        assert partners == [partner]
        assert session.execute.await_count == 2

    @pytest.mark.asyncio
    async def test_foreign_dataspace_is_not_found(
        self, participant_factory: Callable[..., Participant]
    ) -> None:
        participant = participant_factory(dataspaces=[Dataspace(id=uuid4(), name="ds")])
        session = _session(_scalar_one_or_none_result(participant))

        with pytest.raises(NotFoundError, match="not a member"):
            await TenantService(session).list_partners(participant.id, uuid4())

        assert session.execute.await_count == 1


class TestCredentials:
    @pytest.mark.asyncio
    async def test_sync_stores_secret_from_vault(
        self,
        transport: RecordingTransport,
        gateways: Gateways,
        participant_factory: Callable[..., Participant],
    ) -> None:
        participant = participant_factory(context_id="ctx-9", client_id=None, client_secret=None)
        transport.add(
            "GET", "/v1/secret/data/ctx-9", reply(200, {"data": {"data": {"content": "new"}}})
        )
        session = _session(_scalar_one_or_none_result(participant))

        updated = await TenantService(session, gateways).sync_client_credentials(participant.id)

        assert updated is True
        assert participant.client_id == "ctx-9"
        assert participant.client_secret == "new"

    @pytest.mark.asyncio
    async def test_sync_without_secret_keeps_credentials(
        self,
        transport: RecordingTransport,
        gateways: Gateways,
        participant_factory: Callable[..., Participant],
    ) -> None:
        participant = participant_factory()
        transport.add("GET", "/v1/secret/data/ctx-1", reply(404))
        session = _session(_scalar_one_or_none_result(participant))

        updated = await TenantService(session, gateways).sync_client_credentials(participant.id)

        assert updated is False
        assert participant.client_secret == "s3cret"

    @pytest.mark.asyncio
    async def test_sync_requires_context(
        self,
        gateways: Gateways,
        participant_factory: Callable[..., Participant],
    ) -> None:
        participant = participant_factory(context_id=None)
        session = _session(_scalar_one_or_none_result(participant))

        with pytest.raises(NotFoundError):
            await TenantService(session, gateways).sync_client_credentials(participant.id)

    def test_require_context_needs_credentials(
        self, participant_factory: Callable[..., Participant]
    ) -> None:
        participant = participant_factory(client_secret=None)

        with pytest.raises(NotFoundError) as exc_info:
            require_context(participant, step="publish_file")

        assert exc_info.value.step == "publish_file"
