"""Unit tests for TenantManagerClient against a recording transport."""

from __future__ import annotations

import json

import pytest

from dsportal.core.errors import ProvisioningError
from dsportal.core.token_provider import OAuth2TokenProvider, TokenProviderConfig
from dsportal.modules.connectors.factory import Gateways
from dsportal.modules.connectors.tenant_manager.client import (
    TenantManagerClient,
    TenantManagerConfig,
)
from dsportal.modules.connectors.tenant_manager.models import (
    TMCellCreate,
    TMParticipantProfileCreate,
    TMTenantCreate,
    TMTenantPropertiesDiff,
)
from tests.conftest import TOKEN_URL, RecordingTransport, reply

PROFILE = {
    "id": "P1",
    "version": 0,
    "identifier": "did:web:acme",
    "tenantId": "T1",
    "error": False,
    "participantRoles": {},
    "properties": {"participantContextId": "ctx-acme"},
    "vpas": [
        {"id": "v1", "version": 0, "state": "pending", "type": "cfm.connector"},
        {"id": "v2", "version": 0, "state": "pending", "type": "cfm.credentialservice"},
        {"id": "v3", "version": 0, "state": "pending", "type": "cfm.dataplane"},
    ],
}


@pytest.mark.asyncio
async def test_create_tenant(transport: RecordingTransport, gateways: Gateways) -> None:
    transport.add("POST", "/api/v1alpha1/tenants", reply(200, {"id": "T1", "version": 0, "properties": {}}))

    tenant = await gateways.tenant_manager.create_tenant(TMTenantCreate(properties={"name": "acme"}))

    assert tenant.id == "T1"
    request = transport.matching("POST", "/api/v1alpha1/tenants")[0]
    assert json.loads(request.content) == {"properties": {"name": "acme"}}
    # no client credentials configured: no token, no auth header
    assert transport.count("POST", TOKEN_URL) == 0
    assert "Authorization" not in request.headers
    await gateways.close()


@pytest.mark.asyncio
async def test_create_participant_profile_parses_vpas(
    transport: RecordingTransport, gateways: Gateways
) -> None:
    transport.add("POST", "/tenants/T1/participant-profiles", reply(200, PROFILE))

    profile = await gateways.tenant_manager.create_participant_profile(
        "T1",
        TMParticipantProfileCreate(id="req-1", identifier="did:web:acme", tenant_id="T1"),
    )

    assert profile.identifier == "did:web:acme"
    assert [v.type for v in profile.vpas] == [
        "cfm.connector",
        "cfm.credentialservice",
        "cfm.dataplane",
    ]
    body = json.loads(transport.matching("POST", "/participant-profiles")[0].content)
    assert body["tenantId"] == "T1"
    assert body["identifier"] == "did:web:acme"
    assert body["error"] is False
    await gateways.close()


@pytest.mark.asyncio
async def test_configured_credentials_add_bearer_token(transport: RecordingTransport) -> None:
    transport.add("GET", "/api/v1alpha1/cells", reply(200, []))
    tokens = OAuth2TokenProvider(TokenProviderConfig(token_url=TOKEN_URL, transport=transport.mock))
    client = TenantManagerClient(
        TenantManagerConfig(
            base_url="http://tm.test",
            transport=transport.mock,
            client_id="portal",
            client_secret="secret",
        ),
        tokens,
    )

    assert await client.list_cells() == []
    assert transport.matching("GET", "/cells")[0].headers["Authorization"] == "Bearer test-token"
    await client.close()
    await tokens.close()


@pytest.mark.asyncio
async def test_cells_profiles_and_tenant_patch(
    transport: RecordingTransport, gateways: Gateways
) -> None:
    transport.add("POST", "/api/v1alpha1/cells", reply(200, {"id": "C1", "state": "INITIAL"}))
    transport.add(
        "GET",
        "/api/v1alpha1/dataspace-profiles/DS1",
        reply(200, {"id": "DS1", "dataspaceSpec": {}, "deployments": [{"id": "D1", "cellId": "C1"}]}),
    )
    transport.add("PATCH", "/api/v1alpha1/tenants/T1", reply(200, {"id": "T1", "properties": {"a": 1}}))

    cell = await gateways.tenant_manager.create_cell(TMCellCreate(external_id="ext-1"))
    profile = await gateways.tenant_manager.get_dataspace_profile("DS1")
    tenant = await gateways.tenant_manager.update_tenant(
        "T1", TMTenantPropertiesDiff(properties={"a": 1}, removed=["b"])
    )

    assert cell.id == "C1"
    assert profile.deployments[0].cell_id == "C1"
    assert tenant.properties == {"a": 1}
    patch_body = json.loads(transport.matching("PATCH", "/tenants/T1")[0].content)
    assert patch_body == {"properties": {"a": 1}, "removed": ["b"]}
    cell_body = json.loads(transport.matching("POST", "/cells")[0].content)
    assert cell_body["externalId"] == "ext-1"
    await gateways.close()


@pytest.mark.asyncio
async def test_delete_participant_profile_failure(
    transport: RecordingTransport, gateways: Gateways
) -> None:
    transport.add("DELETE", "/tenants/T1/participant-profiles/P1", reply(500))

    with pytest.raises(ProvisioningError) as exc_info:
        await gateways.tenant_manager.delete_participant_profile("T1", "P1")

    assert exc_info.value.system == "tenant_manager"
    assert exc_info.value.step == "delete_participant_profile"
    await gateways.close()


@pytest.mark.asyncio
async def test_empty_tenant_body_is_provisioning_error(
    transport: RecordingTransport, gateways: Gateways
) -> None:
    transport.add("POST", "/api/v1alpha1/tenants", reply(201))

    with pytest.raises(ProvisioningError) as exc_info:
        await gateways.tenant_manager.create_tenant(TMTenantCreate())

    assert exc_info.value.system == "tenant_manager"
    assert exc_info.value.step == "create_tenant"
    await gateways.close()


@pytest.mark.asyncio
async def test_profile_without_identifier_is_provisioning_error(
    transport: RecordingTransport, gateways: Gateways
) -> None:
    transport.add("POST", "/tenants/T1/participant-profiles", reply(200, {"id": "P1"}))

    with pytest.raises(ProvisioningError) as exc_info:
        await gateways.tenant_manager.create_participant_profile(
            "T1",
            TMParticipantProfileCreate(id="req-1", identifier="did:web:acme", tenant_id="T1"),
        )

    assert exc_info.value.step == "create_participant_profile"
    await gateways.close()


@pytest.mark.asyncio
async def test_null_vpa_state_is_accepted_for_mapping(
    transport: RecordingTransport, gateways: Gateways
) -> None:
    profile = {**PROFILE, "vpas": [{"type": "cfm.connector", "state": None}]}
    transport.add("GET", "/tenants/T1/participant-profiles/P1", reply(200, profile))

    result = await gateways.tenant_manager.get_participant_profile("T1", "P1")

    assert result.vpas[0].state is None
    assert result.vpas[0].type == "cfm.connector"
    await gateways.close()
