"""Database package."""

from dsportal.db.models import (
    Base,
    Dataspace,
    DeploymentState,
    Participant,
    ServiceProvider,
    Tenant,
    UploadedFile,
    VirtualParticipantAgent,
    VpaType,
)

__all__ = [
    "Base",
    "Dataspace",
    "DeploymentState",
    "Participant",
    "ServiceProvider",
    "Tenant",
    "UploadedFile",
    "VirtualParticipantAgent",
    "VpaType",
]
