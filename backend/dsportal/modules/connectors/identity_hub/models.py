"""Pydantic models for Identity Hub Identity API payloads."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class _IHModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


class ParticipantContext(_IHModel):
    id: str | None = None
    participant_context_id: str = Field(alias="participantContextId")
    did: str | None = None
    api_token_alias: str | None = Field(default=None, alias="apiTokenAlias")
    roles: list[str] = Field(default_factory=list)
    properties: dict[str, Any] = Field(default_factory=dict)
    state: int | None = None
    created_at: int | None = Field(default=None, alias="createdAt")
    last_modified: int | None = Field(default=None, alias="lastModified")


class VerifiableCredential(_IHModel):
    id: str
    participant_context_id: str | None = Field(default=None, alias="participantContextId")
    holder_id: str | None = Field(default=None, alias="holderId")
    issuer_id: str | None = Field(default=None, alias="issuerId")
    verifiable_credential: dict[str, Any] = Field(
        default_factory=dict, alias="verifiableCredential"
    )
    usage: str | None = None
    state: int | None = None
    timestamp: int | None = None
    created_at: int | None = Field(default=None, alias="createdAt")
    time_of_last_status_update: datetime | None = Field(
        default=None, alias="timeOfLastStatusUpdate"
    )
    metadata: dict[str, Any] = Field(default_factory=dict)


class CredentialDescriptor(_IHModel):
    format: str = "VC1_0_JWT"
    credential_type: str = Field(alias="type")
    id: str | None = None


class CredentialRequest(_IHModel):
    """Ask an issuer to issue credentials to the participant."""

    issuer_did: str = Field(alias="issuerDid")
    holder_pid: str = Field(alias="holderPid")
    credentials: list[CredentialDescriptor] = Field(default_factory=list)


class KeyDescriptor(_IHModel):
    resource_id: str | None = Field(default=None, alias="resourceId")
    key_id: str = Field(alias="keyId")
    private_key_alias: str = Field(alias="privateKeyAlias")
    public_key_pem: str | None = Field(default=None, alias="publicKeyPem")
    public_key_jwk: dict[str, Any] | None = Field(default=None, alias="publicKeyJwk")
    key_generator_params: dict[str, Any] | None = Field(
        default=None, alias="keyGeneratorParams"
    )
    type: str | None = None
    usage: list[str] = Field(default_factory=list)
    active: bool = True


class KeyPair(_IHModel):
    id: str
    participant_context_id: str | None = Field(default=None, alias="participantContextId")
    key_id: str | None = Field(default=None, alias="keyId")
    private_key_alias: str | None = Field(default=None, alias="privateKeyAlias")
    serialized_public_key: str | None = Field(default=None, alias="serializedPublicKey")
    usage: list[str] = Field(default_factory=list)
    default_pair: bool = Field(default=False, alias="defaultPair")
    group_name: str | None = Field(default=None, alias="groupName")
    key_context: str | None = Field(default=None, alias="keyContext")
    state: int | None = None
    timestamp: int | None = None
    created_at: int | None = Field(default=None, alias="createdAt")
    use_duration: int | None = Field(default=None, alias="useDuration")
    rotation_duration: int | None = Field(default=None, alias="rotationDuration")
