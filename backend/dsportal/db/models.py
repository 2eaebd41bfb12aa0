"""
SQLAlchemy ORM models for the dataspace portal.
All models use UUIDv7 for primary keys to ensure time-ordered identifiers.
"""

from datetime import datetime
from enum import Enum as PyEnum
from typing import Any
from uuid import UUID

from sqlalchemy import (
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    String,
    Table,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from dsportal.core.token_provider import ClientCredentials


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    type_annotation_map = {
        dict[str, Any]: JSONB,
        list[str]: JSONB,
    }


# =============================================================================
# Enums
# =============================================================================


class VpaType(str, PyEnum):
    """Capability deployed for a participant."""

    CONTROL_PLANE = "control_plane"
    CREDENTIAL_SERVICE = "credential_service"
    DATA_PLANE = "data_plane"


class DeploymentState(str, PyEnum):
    """Lifecycle of a deployed agent, as reported by the tenant manager."""

    INITIAL = "initial"
    PENDING = "pending"
    ACTIVE = "active"
    DISPOSING = "disposing"
    DISPOSED = "disposed"
    LOCKED = "locked"
    OFFLINE = "offline"
    ERROR = "error"


# =============================================================================
# Models
# =============================================================================


participant_dataspaces = Table(
    "participant_dataspaces",
    Base.metadata,
    Column(
        "participant_id",
        ForeignKey("participants.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "dataspace_id",
        ForeignKey("dataspaces.id", ondelete="RESTRICT"),
        primary_key=True,
    ),
)


class ServiceProvider(Base):
    """Organization owning tenants."""

    __tablename__ = "service_providers"

    id: Mapped[UUID] = mapped_column(
        primary_key=True,
        server_default=func.uuid_generate_v7(),
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )

    tenants: Mapped[list["Tenant"]] = relationship(
        back_populates="service_provider",
        cascade="all, delete-orphan",
    )


class Dataspace(Base):
    """Named ecosystem with supported agreement types and participant roles."""

    __tablename__ = "dataspaces"

    id: Mapped[UUID] = mapped_column(
        primary_key=True,
        server_default=func.uuid_generate_v7(),
    )
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    properties: Mapped[dict[str, Any]] = mapped_column(default=dict, nullable=False)
    agreement_types: Mapped[list[str]] = mapped_column(default=list, nullable=False)
    participant_roles: Mapped[dict[str, Any]] = mapped_column(
        default=dict,
        nullable=False,
        comment="Role name to list of credential types",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )


class Tenant(Base):
    """An organization's deployment unit under a service provider."""

    __tablename__ = "tenants"

    id: Mapped[UUID] = mapped_column(
        primary_key=True,
        server_default=func.uuid_generate_v7(),
    )
    service_provider_id: Mapped[UUID] = mapped_column(
        ForeignKey("service_providers.id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    properties: Mapped[dict[str, Any]] = mapped_column(default=dict, nullable=False)
    correlation_id: Mapped[str | None] = mapped_column(
        String(255),
        unique=True,
        nullable=True,
        comment="Tenant id in the tenant manager; written once",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    service_provider: Mapped["ServiceProvider"] = relationship(back_populates="tenants")
    participants: Mapped[list["Participant"]] = relationship(
        back_populates="tenant",
        cascade="all, delete-orphan",
    )

    __table_args__ = (Index("ix_tenants_service_provider_id", "service_provider_id"),)


class Participant(Base):
    """Identity that transacts in one or more dataspaces."""

    __tablename__ = "participants"

    id: Mapped[UUID] = mapped_column(
        primary_key=True,
        server_default=func.uuid_generate_v7(),
    )
    tenant_id: Mapped[UUID] = mapped_column(
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
    )
    identifier: Mapped[str] = mapped_column(
        String(512),
        nullable=False,
        comment="Chosen name until deployed, then the assigned DID",
    )
    correlation_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    participant_context_id: Mapped[str | None] = mapped_column(
        String(255),
        unique=True,
        nullable=True,
    )
    client_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    client_secret: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    tenant: Mapped["Tenant"] = relationship(back_populates="participants")
    dataspaces: Mapped[list["Dataspace"]] = relationship(secondary=participant_dataspaces)
    agents: Mapped[list["VirtualParticipantAgent"]] = relationship(
        back_populates="participant",
        cascade="all, delete-orphan",
    )
    uploaded_files: Mapped[list["UploadedFile"]] = relationship(
        back_populates="participant",
        cascade="all, delete-orphan",
    )

    __table_args__ = (Index("ix_participants_tenant_id", "tenant_id"),)

    @property
    def client_credentials(self) -> ClientCredentials | None:
        if not self.client_id or not self.client_secret:
            return None
        return ClientCredentials(self.client_id, self.client_secret)

    @client_credentials.setter
    def client_credentials(self, value: ClientCredentials | None) -> None:
        self.client_id = value.client_id if value else None
        self.client_secret = value.client_secret if value else None


class VirtualParticipantAgent(Base):
    """One deployed capability of a participant."""

    __tablename__ = "virtual_participant_agents"

    id: Mapped[UUID] = mapped_column(
        primary_key=True,
        server_default=func.uuid_generate_v7(),
    )
    participant_id: Mapped[UUID] = mapped_column(
        ForeignKey("participants.id", ondelete="CASCADE"),
        nullable=False,
    )
    type: Mapped[VpaType] = mapped_column(
        Enum(VpaType, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    state: Mapped[DeploymentState] = mapped_column(
        Enum(DeploymentState, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )

    participant: Mapped["Participant"] = relationship(back_populates="agents")


class UploadedFile(Base):
    """A file that completed the publication pipeline."""

    __tablename__ = "uploaded_files"

    id: Mapped[UUID] = mapped_column(
        primary_key=True,
        server_default=func.uuid_generate_v7(),
    )
    participant_id: Mapped[UUID] = mapped_column(
        ForeignKey("participants.id", ondelete="CASCADE"),
        nullable=False,
    )
    file_id: Mapped[str] = mapped_column(String(255), nullable=False)
    asset_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    file_name: Mapped[str] = mapped_column(String(512), nullable=False)
    content_type: Mapped[str] = mapped_column(String(255), nullable=False)
    file_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata",
        default=dict,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )

    participant: Mapped["Participant"] = relationship(back_populates="uploaded_files")

    __table_args__ = (Index("ix_uploaded_files_participant_id", "participant_id"),)
