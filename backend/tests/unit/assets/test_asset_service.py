"""Unit tests for the asset publication pipeline."""

from __future__ import annotations

import json
from collections.abc import Callable
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, Mock

import httpx
import pytest

from dsportal.core.errors import NotFoundError, ProvisioningError, TransportError
from dsportal.db.models import Participant, UploadedFile
from dsportal.modules.assets.service import AssetService, PublicationStage, _next_stage
from dsportal.modules.connectors.edc.models import DataplaneRegistration
from dsportal.modules.connectors.factory import Gateways
from tests.conftest import TOKEN_URL, RecordingTransport, reply

CEL = "/celexpressions"
ASSETS = "/participants/ctx-1/assets"
POLICIES = "/participants/ctx-1/policydefinitions"
CONTRACTS = "/participants/ctx-1/contractdefinitions"
UPLOAD = "/app/internal/api/control/upload"


def _scalar_one_or_none_result(value: Any) -> SimpleNamespace:
    return SimpleNamespace(scalar_one_or_none=lambda: value)


def _scalar_result(values: list[Any]) -> SimpleNamespace:
    return SimpleNamespace(scalars=lambda: SimpleNamespace(all=lambda: values))


def _session(*execute_results: Any) -> AsyncMock:
    session = AsyncMock()
    session.execute = AsyncMock(side_effect=list(execute_results))
    session.add = Mock()
    return session


def _route_pipeline(transport: RecordingTransport, **overrides: dict[str, Any]) -> None:
    routes = {
        CEL: reply(200, {"@id": "membership_expression"}),
        ASSETS: reply(200, {"@id": "asset"}),
        POLICIES: reply(409),
        CONTRACTS: reply(409),
        UPLOAD: reply(200, {"id": "generated-file-id-123"}),
    }
    names = {"cel": CEL, "asset": ASSETS, "policy": POLICIES, "contract": CONTRACTS, "upload": UPLOAD}
    for name, response in overrides.items():
        routes[names[name]] = response
    for fragment, response in routes.items():
        transport.add("POST", fragment, response)


async def _publish(
    gateways: Gateways, participant: Participant, session: AsyncMock
) -> UploadedFile:
    return await AssetService(session, gateways).publish_file(
        participant.id,
        {"foo": "bar"},
        "testdocument.pdf",
        "application/pdf",
        b"%PDF-1.4 test",
    )


class TestPublishFile:
    @pytest.mark.asyncio
    async def test_existing_governance_resources_are_tolerated(
        self,
        transport: RecordingTransport,
        gateways: Gateways,
        participant_factory: Callable[..., Participant],
    ) -> None:
        participant = participant_factory()
        _route_pipeline(transport)
        session = _session(_scalar_one_or_none_result(participant))

        uploaded = await _publish(gateways, participant, session)

        session.add.assert_called_once_with(uploaded)
        assert participant.uploaded_files == [uploaded]
        session.flush.assert_awaited_once()
        assert uploaded.file_id == "generated-file-id-123"
        assert uploaded.file_name == "testdocument.pdf"
        assert uploaded.content_type == "application/pdf"
        assert uploaded.file_metadata == {"foo": "bar"}
        assert uploaded.participant_id == participant.id

        asset_body = json.loads(transport.matching("POST", ASSETS)[0].content)
        assert asset_body["@id"] == uploaded.asset_id
        assert asset_body["properties"]["foo"] == "bar"

        upload = transport.matching("POST", UPLOAD)[0].content
        assert f'name="assetId"\r\n\r\n{uploaded.asset_id}'.encode() in upload
        assert b'name="foo"\r\n\r\nbar' in upload

    @pytest.mark.asyncio
    async def test_steps_run_in_order(
        self,
        transport: RecordingTransport,
        gateways: Gateways,
        participant_factory: Callable[..., Participant],
    ) -> None:
        participant = participant_factory()
        _route_pipeline(transport)
        session = _session(_scalar_one_or_none_result(participant))

        await _publish(gateways, participant, session)

        calls = [
            r.url.path.rsplit("/", 1)[-1]
            for r in transport.requests
            if r.url.host in {"cp.test", "dp.test"}
        ]
        assert calls == [
            "celexpressions",
            "assets",
            "policydefinitions",
            "contractdefinitions",
            "upload",
        ]
        # one fresh token per authorized call
        assert transport.count("POST", TOKEN_URL) == 5

    @pytest.mark.asyncio
    async def test_new_governance_resources_are_created(
        self,
        transport: RecordingTransport,
        gateways: Gateways,
        participant_factory: Callable[..., Participant],
    ) -> None:
        participant = participant_factory()
        _route_pipeline(transport, policy=reply(200), contract=reply(200))
        session = _session(_scalar_one_or_none_result(participant))

        uploaded = await _publish(gateways, participant, session)

        assert uploaded.file_id == "generated-file-id-123"
        policy = json.loads(transport.matching("POST", POLICIES)[0].content)
        assert policy["@id"] == "membership_policy"

    @pytest.mark.asyncio
    async def test_cel_failure_is_fatal(
        self,
        transport: RecordingTransport,
        gateways: Gateways,
        participant_factory: Callable[..., Participant],
    ) -> None:
        participant = participant_factory()
        _route_pipeline(transport, cel=reply(409))
        session = _session(_scalar_one_or_none_result(participant))

        with pytest.raises(ProvisioningError) as exc_info:
            await _publish(gateways, participant, session)

        assert exc_info.value.step == "create_cel_expression"
        assert transport.count("POST", ASSETS) == 0
        session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_asset_failure_stops_pipeline(
        self,
        transport: RecordingTransport,
        gateways: Gateways,
        participant_factory: Callable[..., Participant],
    ) -> None:
        participant = participant_factory()
        _route_pipeline(transport, asset=reply(400))
        session = _session(_scalar_one_or_none_result(participant))

        with pytest.raises(ProvisioningError) as exc_info:
            await _publish(gateways, participant, session)

        assert exc_info.value.step == "create_asset"
        assert transport.count("POST", POLICIES) == 0
        assert transport.count("POST", UPLOAD) == 0

    @pytest.mark.asyncio
    async def test_upload_failure_records_nothing(
        self,
        transport: RecordingTransport,
        gateways: Gateways,
        participant_factory: Callable[..., Participant],
    ) -> None:
        participant = participant_factory()
        _route_pipeline(transport, upload=reply(500))
        session = _session(_scalar_one_or_none_result(participant))

        with pytest.raises(ProvisioningError) as exc_info:
            await _publish(gateways, participant, session)

        assert exc_info.value.system == "data_plane"
        session.add.assert_not_called()
        assert participant.uploaded_files == []

    @pytest.mark.asyncio
    async def test_unreachable_control_plane(
        self,
        transport: RecordingTransport,
        gateways: Gateways,
        participant_factory: Callable[..., Participant],
    ) -> None:
        participant = participant_factory()
        _route_pipeline(transport, cel={"raise": httpx.ConnectError("refused")})
        session = _session(_scalar_one_or_none_result(participant))

        with pytest.raises(TransportError):
            await _publish(gateways, participant, session)

    @pytest.mark.asyncio
    async def test_participant_without_context(
        self,
        transport: RecordingTransport,
        gateways: Gateways,
        participant_factory: Callable[..., Participant],
    ) -> None:
        participant = participant_factory(context_id=None)
        session = _session(_scalar_one_or_none_result(participant))

        with pytest.raises(NotFoundError):
            await _publish(gateways, participant, session)

        assert transport.count("POST", CEL) == 0


def test_failed_stage_is_the_one_after_the_last_reached() -> None:
    assert _next_stage(PublicationStage.STARTED) is PublicationStage.CEL_READY
    assert _next_stage(PublicationStage.CONTRACT_READY) is PublicationStage.UPLOADED
    assert _next_stage(PublicationStage.RECORDED) is PublicationStage.RECORDED


class TestFiles:
    @pytest.mark.asyncio
    async def test_list_files(
        self, gateways: Gateways, participant_factory: Callable[..., Participant]
    ) -> None:
        participant = participant_factory()
        record = UploadedFile(file_id="f1", file_name="a.txt", content_type="text/plain")
        session = _session(_scalar_one_or_none_result(participant), _scalar_result([record]))

        files = await AssetService(session, gateways).list_files(participant.id)

        assert files == [record]

    @pytest.mark.asyncio
    async def test_download_unknown_file(
        self, gateways: Gateways, participant_factory: Callable[..., Participant]
    ) -> None:
        participant = participant_factory()
        session = _session(
            _scalar_one_or_none_result(participant), _scalar_one_or_none_result(None)
        )

        with pytest.raises(NotFoundError):
            await AssetService(session, gateways).download_file(participant.id, "missing")

    @pytest.mark.asyncio
    async def test_download_file(
        self,
        transport: RecordingTransport,
        gateways: Gateways,
        participant_factory: Callable[..., Participant],
    ) -> None:
        participant = participant_factory()
        record = UploadedFile(file_id="f1", file_name="a.txt", content_type="text/plain")
        transport.add("GET", "/app/public/api/data/f1", reply(200, content=b"hi"))
        session = _session(
            _scalar_one_or_none_result(participant), _scalar_one_or_none_result(record)
        )

        found, downloaded = await AssetService(session, gateways).download_file(
            participant.id, "f1"
        )

        assert found is record
        assert downloaded.content == b"hi"

    @pytest.mark.asyncio
    async def test_register_dataplane(
        self,
        transport: RecordingTransport,
        gateways: Gateways,
        participant_factory: Callable[..., Participant],
    ) -> None:
        participant = participant_factory()
        transport.add("POST", "/dataplanes/ctx-1", reply(204))
        session = _session(_scalar_one_or_none_result(participant))

        await AssetService(session, gateways).register_dataplane(
            participant.id, DataplaneRegistration(url="http://dp.test/signaling")
        )

        assert transport.count("POST", "/dataplanes/ctx-1") == 1
