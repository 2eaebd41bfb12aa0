"""
Asset publication pipeline.

Publishing a file registers a governed asset in the control plane and then
stores the bytes in the data plane:

    STARTED -> CEL_READY -> ASSET_CREATED -> POLICY_READY -> CONTRACT_READY
            -> UPLOADED -> RECORDED

Any hard failure ends the attempt in FAILED and re-raises the error of the
step being attempted. Nothing is rolled back remotely; a retry starts from
the top and only the policy and contract definition steps tolerate an
"already exists" answer.
"""

from __future__ import annotations

import json
from enum import Enum as PyEnum
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dsportal.core.errors import ConflictError, NotFoundError, PortalError
from dsportal.core.logging import get_logger
from dsportal.db.models import UploadedFile
from dsportal.modules.connectors.dataplane.client import DownloadedFile
from dsportal.modules.connectors.edc.asset_mapper import map_file_to_edc_asset
from dsportal.modules.connectors.edc.models import DataplaneRegistration
from dsportal.modules.connectors.edc.policy_builder import (
    build_membership_contract_definition,
    build_membership_expression,
    build_membership_policy,
)
from dsportal.modules.connectors.factory import Gateways
from dsportal.modules.tenants.service import load_participant, require_context

logger = get_logger(__name__)

ASSET_ID_FIELD = "assetId"


class PublicationStage(str, PyEnum):
    STARTED = "started"
    CEL_READY = "cel_ready"
    ASSET_CREATED = "asset_created"
    POLICY_READY = "policy_ready"
    CONTRACT_READY = "contract_ready"
    UPLOADED = "uploaded"
    RECORDED = "recorded"
    FAILED = "failed"


def _form_fields(metadata: dict[str, Any]) -> dict[str, str]:
    return {
        key: value if isinstance(value, str) else json.dumps(value)
        for key, value in metadata.items()
    }


class AssetService:
    """Publishes, lists and downloads participant files."""

    def __init__(self, session: AsyncSession, gateways: Gateways) -> None:
        self._session = session
        self._gateways = gateways

    async def publish_file(
        self,
        participant_id: UUID,
        metadata: dict[str, Any],
        file_name: str,
        content_type: str,
        content: bytes,
        *,
        tenant_id: UUID | None = None,
        service_provider_id: UUID | None = None,
    ) -> UploadedFile:
        participant = await load_participant(
            self._session,
            participant_id,
            tenant_id=tenant_id,
            service_provider_id=service_provider_id,
            with_files=True,
        )
        context_id, credentials = require_context(participant, step="publish_file")
        control_plane = self._gateways.control_plane

        asset_id = str(uuid4())
        log = logger.bind(participant_id=str(participant_id), asset_id=asset_id)
        stage = PublicationStage.STARTED
        log.info("publication_stage_reached", stage=stage.value)

        def advance(next_stage: PublicationStage) -> PublicationStage:
            log.info("publication_stage_reached", stage=next_stage.value)
            return next_stage

        try:
            await control_plane.create_cel_expression(build_membership_expression())
            stage = advance(PublicationStage.CEL_READY)

            asset = map_file_to_edc_asset(
                asset_id,
                file_name,
                content_type,
                _form_fields(metadata),
                self._gateways.data_plane_url,
            )
            await control_plane.create_asset(context_id, credentials, asset)
            stage = advance(PublicationStage.ASSET_CREATED)

            try:
                await control_plane.create_policy(
                    context_id, credentials, build_membership_policy()
                )
            except ConflictError:
                log.info("membership_policy_exists")
            stage = advance(PublicationStage.POLICY_READY)

            try:
                await control_plane.create_contract_definition(
                    context_id, credentials, build_membership_contract_definition()
                )
            except ConflictError:
                log.info("membership_contract_definition_exists")
            stage = advance(PublicationStage.CONTRACT_READY)

            fields = _form_fields(metadata)
            fields[ASSET_ID_FIELD] = asset_id
            file_id = await self._gateways.data_plane.upload(
                credentials, fields, file_name, content
            )
            stage = advance(PublicationStage.UPLOADED)

            uploaded = UploadedFile(
                participant_id=participant.id,
                file_id=file_id,
                asset_id=asset_id,
                file_name=file_name,
                content_type=content_type,
                file_metadata=dict(metadata),
            )
            participant.uploaded_files.append(uploaded)
            self._session.add(uploaded)
            await self._session.flush()
            advance(PublicationStage.RECORDED)
        except PortalError as exc:
            attempted = _next_stage(stage)
            exc.step = exc.step or attempted.value
            log.warning(
                "publication_stage_reached",
                stage=PublicationStage.FAILED.value,
                failed_after=stage.value,
                attempted=attempted.value,
                error=exc.message,
                **exc.context(),
            )
            raise

        return uploaded

    async def list_files(
        self,
        participant_id: UUID,
        *,
        tenant_id: UUID | None = None,
        service_provider_id: UUID | None = None,
    ) -> list[UploadedFile]:
        await load_participant(
            self._session,
            participant_id,
            tenant_id=tenant_id,
            service_provider_id=service_provider_id,
        )
        result = await self._session.execute(
            select(UploadedFile)
            .where(UploadedFile.participant_id == participant_id)
            .order_by(UploadedFile.created_at)
        )
        return list(result.scalars().all())

    async def download_file(
        self,
        participant_id: UUID,
        file_id: str,
        *,
        tenant_id: UUID | None = None,
        service_provider_id: UUID | None = None,
    ) -> tuple[UploadedFile, DownloadedFile]:
        participant = await load_participant(
            self._session,
            participant_id,
            tenant_id=tenant_id,
            service_provider_id=service_provider_id,
        )
        result = await self._session.execute(
            select(UploadedFile).where(
                UploadedFile.participant_id == participant_id,
                UploadedFile.file_id == file_id,
            )
        )
        record = result.scalar_one_or_none()
        if record is None:
            raise NotFoundError(f"File {file_id} not found", step="download_file")

        _, credentials = require_context(participant, step="download_file")
        downloaded = await self._gateways.data_plane.download(credentials, file_id)
        return record, downloaded

    async def register_dataplane(
        self,
        participant_id: UUID,
        registration: DataplaneRegistration,
        *,
        tenant_id: UUID | None = None,
        service_provider_id: UUID | None = None,
    ) -> None:
        participant = await load_participant(
            self._session,
            participant_id,
            tenant_id=tenant_id,
            service_provider_id=service_provider_id,
        )
        context_id, credentials = require_context(participant, step="register_dataplane")
        await self._gateways.control_plane.register_dataplane(
            context_id, credentials, registration
        )


_ORDER = [
    PublicationStage.STARTED,
    PublicationStage.CEL_READY,
    PublicationStage.ASSET_CREATED,
    PublicationStage.POLICY_READY,
    PublicationStage.CONTRACT_READY,
    PublicationStage.UPLOADED,
    PublicationStage.RECORDED,
]


def _next_stage(stage: PublicationStage) -> PublicationStage:
    index = _ORDER.index(stage)
    return _ORDER[min(index + 1, len(_ORDER) - 1)]
