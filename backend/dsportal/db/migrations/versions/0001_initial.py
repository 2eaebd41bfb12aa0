"""Initial schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19
"""

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def _uuid_pk() -> sa.Column:
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=True),
        server_default=sa.text("uuid_generate_v7()"),
        nullable=False,
    )


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        server_default=sa.text("now()"),
        nullable=False,
    )


def _updated_at() -> sa.Column:
    return sa.Column(
        "updated_at",
        sa.DateTime(timezone=True),
        server_default=sa.text("now()"),
        nullable=False,
    )


def upgrade() -> None:
    op.execute('CREATE EXTENSION IF NOT EXISTS "pgcrypto";')
    op.execute(
        """
CREATE OR REPLACE FUNCTION uuid_generate_v7()
RETURNS uuid AS $$
DECLARE
    unix_ts_ms bytea;
    uuid_bytes bytea;
BEGIN
    unix_ts_ms = substring(int8send(floor(extract(epoch from clock_timestamp()) * 1000)::bigint) from 3);
    uuid_bytes = unix_ts_ms || gen_random_bytes(10);
    uuid_bytes = set_byte(uuid_bytes, 6, (get_byte(uuid_bytes, 6) & 15) | 112);
    uuid_bytes = set_byte(uuid_bytes, 8, (get_byte(uuid_bytes, 8) & 63) | 128);
    RETURN encode(uuid_bytes, 'hex')::uuid;
END;
$$ LANGUAGE plpgsql VOLATILE;
        """
    )

    vpatype_enum = sa.Enum(
        "control_plane", "credential_service", "data_plane", name="vpatype"
    )
    deploymentstate_enum = sa.Enum(
        "initial",
        "pending",
        "active",
        "disposing",
        "disposed",
        "locked",
        "offline",
        "error",
        name="deploymentstate",
    )

    op.create_table(
        "service_providers",
        _uuid_pk(),
        sa.Column("name", sa.String(255), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "dataspaces",
        _uuid_pk(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("properties", postgresql.JSONB(), nullable=False),
        sa.Column("agreement_types", postgresql.JSONB(), nullable=False),
        sa.Column("participant_roles", postgresql.JSONB(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )

    op.create_table(
        "tenants",
        _uuid_pk(),
        sa.Column("service_provider_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("properties", postgresql.JSONB(), nullable=False),
        sa.Column("correlation_id", sa.String(255), nullable=True),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["service_provider_id"], ["service_providers.id"], ondelete="CASCADE"
        ),
        sa.UniqueConstraint("correlation_id"),
    )
    op.create_index("ix_tenants_service_provider_id", "tenants", ["service_provider_id"])

    op.create_table(
        "participants",
        _uuid_pk(),
        sa.Column("tenant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("identifier", sa.String(512), nullable=False),
        sa.Column("correlation_id", sa.String(255), nullable=True),
        sa.Column("participant_context_id", sa.String(255), nullable=True),
        sa.Column("client_id", sa.String(255), nullable=True),
        sa.Column("client_secret", sa.String(1024), nullable=True),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("participant_context_id"),
    )
    op.create_index("ix_participants_tenant_id", "participants", ["tenant_id"])

    op.create_table(
        "participant_dataspaces",
        sa.Column("participant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("dataspace_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.PrimaryKeyConstraint("participant_id", "dataspace_id"),
        sa.ForeignKeyConstraint(["participant_id"], ["participants.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["dataspace_id"], ["dataspaces.id"], ondelete="RESTRICT"),
    )

    op.create_table(
        "virtual_participant_agents",
        _uuid_pk(),
        sa.Column("participant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("type", vpatype_enum, nullable=False),
        sa.Column("state", deploymentstate_enum, nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["participant_id"], ["participants.id"], ondelete="CASCADE"),
    )

    op.create_table(
        "uploaded_files",
        _uuid_pk(),
        sa.Column("participant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("file_id", sa.String(255), nullable=False),
        sa.Column("asset_id", sa.String(255), nullable=True),
        sa.Column("file_name", sa.String(512), nullable=False),
        sa.Column("content_type", sa.String(255), nullable=False),
        sa.Column("metadata", postgresql.JSONB(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["participant_id"], ["participants.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_uploaded_files_participant_id", "uploaded_files", ["participant_id"])


def downgrade() -> None:
    op.drop_index("ix_uploaded_files_participant_id", table_name="uploaded_files")
    op.drop_table("uploaded_files")
    op.drop_table("virtual_participant_agents")
    op.drop_table("participant_dataspaces")
    op.drop_index("ix_participants_tenant_id", table_name="participants")
    op.drop_table("participants")
    op.drop_index("ix_tenants_service_provider_id", table_name="tenants")
    op.drop_table("tenants")
    op.drop_table("dataspaces")
    op.drop_table("service_providers")
    sa.Enum(name="deploymentstate").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="vpatype").drop(op.get_bind(), checkfirst=True)
    op.execute("DROP FUNCTION IF EXISTS uuid_generate_v7();")
