"""
Pytest fixtures for backend testing.
Provides a recording HTTP transport, a gateway bundle wired to it, and
entity factories. No database or network is needed.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any
from uuid import uuid4

import httpx
import pytest

from dsportal.core.config import get_settings
from dsportal.core.token_provider import OAuth2TokenProvider, TokenProviderConfig
from dsportal.db.models import Dataspace, Participant, Tenant
from dsportal.modules.connectors.dataplane.client import DataPlaneClient, DataPlaneConfig
from dsportal.modules.connectors.edc.client import ControlPlaneClient, ControlPlaneConfig
from dsportal.modules.connectors.factory import Gateways
from dsportal.modules.connectors.identity_hub.client import (
    IdentityHubClient,
    IdentityHubConfig,
)
from dsportal.modules.connectors.tenant_manager.client import (
    TenantManagerClient,
    TenantManagerConfig,
)
from dsportal.modules.connectors.vault.client import VaultClient, VaultConfig

TOKEN_URL = "http://keycloak.test/realms/edcv/protocol/openid-connect/token"
TM_URL = "http://tm.test"
CP_URL = "http://cp.test/api/mgmt/v4alpha"
IH_URL = "http://ih.test/cs"
DP_URL = "http://dp.test"
VAULT_URL = "http://vault.test"


class RecordingTransport:
    """
    Serves canned responses by (method, URL fragment) and records every request.

    The longest matching fragment wins; on equal length the route added last
    wins. Each route holds a queue of responses; the last one is repeated once
    the queue is drained. An unmatched request gets a 599 so tests fail loudly.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self._routes: list[tuple[str, str, list[dict[str, Any]]]] = []
        self.mock = httpx.MockTransport(self._handle)

    def add(self, method: str, fragment: str, *responses: dict[str, Any]) -> RecordingTransport:
        self._routes.append((method.upper(), fragment, list(responses)))
        return self

    def _handle(self, request: httpx.Request) -> httpx.Response:
        request.read()
        self.requests.append(request)
        url = str(request.url)
        candidates = [
            (len(fragment), index, responses)
            for index, (method, fragment, responses) in enumerate(self._routes)
            if method == request.method and fragment in url
        ]
        if candidates:
            _, _, responses = max(candidates, key=lambda route: route[:2])
            spec = responses.pop(0) if len(responses) > 1 else responses[0]
            if isinstance(spec.get("raise"), Exception):
                raise spec["raise"]
            return httpx.Response(**spec)
        return httpx.Response(599, text=f"unrouted {request.method} {url}")

    def matching(self, method: str, fragment: str) -> list[httpx.Request]:
        return [
            r for r in self.requests if r.method == method.upper() and fragment in str(r.url)
        ]

    def count(self, method: str, fragment: str) -> int:
        return len(self.matching(method, fragment))


def reply(status_code: int = 200, json: Any = None, **kwargs: Any) -> dict[str, Any]:
    spec: dict[str, Any] = {"status_code": status_code, **kwargs}
    if json is not None:
        spec["json"] = json
    return spec


@pytest.fixture(autouse=True)
def clear_settings_cache() -> None:
    get_settings.cache_clear()


@pytest.fixture
def transport() -> RecordingTransport:
    """Recording transport with the token endpoint already routed."""
    rec = RecordingTransport()
    rec.add("POST", TOKEN_URL, reply(200, {"access_token": "test-token", "expires_in": 300}))
    return rec


@pytest.fixture
def gateways(transport: RecordingTransport) -> Gateways:
    mock = transport.mock
    tokens = OAuth2TokenProvider(TokenProviderConfig(token_url=TOKEN_URL, transport=mock))
    return Gateways(
        token_provider=tokens,
        tenant_manager=TenantManagerClient(
            TenantManagerConfig(base_url=TM_URL, transport=mock), tokens
        ),
        control_plane=ControlPlaneClient(
            ControlPlaneConfig(
                base_url=CP_URL,
                transport=mock,
                admin_client_id="admin",
                admin_client_secret="edc-v-admin-secret",
            ),
            tokens,
        ),
        identity_hub=IdentityHubClient(
            IdentityHubConfig(
                base_url=IH_URL,
                transport=mock,
                admin_client_id="admin",
                admin_client_secret="edc-v-admin-secret",
            ),
            tokens,
        ),
        data_plane=DataPlaneClient(DataPlaneConfig(base_url=DP_URL, transport=mock), tokens),
        vault=VaultClient(VaultConfig(base_url=VAULT_URL, transport=mock, token="root")),
        data_plane_url=DP_URL,
        vault_client_secret_path="/v1/secret/data/{client_id}",
    )


@pytest.fixture
def participant_factory() -> Callable[..., Participant]:
    """Build detached Tenant/Participant graphs as the store would load them."""

    def _build(
        *,
        identifier: str = "acme",
        tenant_correlation_id: str | None = None,
        correlation_id: str | None = None,
        context_id: str | None = "ctx-1",
        client_id: str | None = "ctx-1",
        client_secret: str | None = "s3cret",
        dataspaces: list[Dataspace] | None = None,
    ) -> Participant:
        tenant = Tenant(
            id=uuid4(),
            service_provider_id=uuid4(),
            name=identifier,
            properties={},
            correlation_id=tenant_correlation_id,
            participants=[],
        )
        participant = Participant(
            id=uuid4(),
            tenant_id=tenant.id,
            identifier=identifier,
            correlation_id=correlation_id,
            participant_context_id=context_id,
            client_id=client_id,
            client_secret=client_secret,
            agents=[],
            dataspaces=list(dataspaces or []),
            uploaded_files=[],
        )
        tenant.participants.append(participant)
        participant.tenant = tenant
        return participant

    return _build
