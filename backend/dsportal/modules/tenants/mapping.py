"""
Translation of tenant manager agent descriptors into local enums.

Both tables are plain dict literals checked for completeness at import time;
an unknown external value is rejected instead of being stored.
"""

from __future__ import annotations

from dsportal.core.errors import MappingError
from dsportal.db.models import DeploymentState, VpaType

VPA_TYPE_BY_EXTERNAL: dict[str, VpaType] = {
    "cfm.connector": VpaType.CONTROL_PLANE,
    "cfm.credentialservice": VpaType.CREDENTIAL_SERVICE,
    "cfm.dataplane": VpaType.DATA_PLANE,
}

DEPLOYMENT_STATE_BY_NAME: dict[str, DeploymentState] = {
    state.name: state for state in DeploymentState
}

_unmapped = set(VpaType) - set(VPA_TYPE_BY_EXTERNAL.values())
if _unmapped:
    raise RuntimeError(f"VPA types without an external tag: {sorted(t.name for t in _unmapped)}")


def map_vpa_type(external_type: str | None) -> VpaType:
    """Exact lookup of a tenant manager agent type tag."""
    try:
        return VPA_TYPE_BY_EXTERNAL[external_type or ""]
    except KeyError:
        raise MappingError(
            f"Unknown agent type '{external_type}'",
            system="tenant_manager",
            step="map_vpa_type",
        ) from None


def map_deployment_state(external_state: str | None) -> DeploymentState:
    """Case-insensitive match of a state string against the enum names."""
    state = DEPLOYMENT_STATE_BY_NAME.get((external_state or "").upper())
    if state is None:
        raise MappingError(
            f"Unknown deployment state '{external_state}'",
            system="tenant_manager",
            step="map_deployment_state",
        )
    return state
