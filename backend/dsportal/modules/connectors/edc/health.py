"""
Control plane readiness probe used by the public health endpoint.
"""

from __future__ import annotations

from typing import Any

from dsportal.core.logging import get_logger
from dsportal.modules.connectors.edc.client import ControlPlaneClient

logger = get_logger(__name__)


async def check_control_plane_health(client: ControlPlaneClient) -> dict[str, Any]:
    """
    Probe the control plane management endpoint.

    Returns:
        A dict with ``status`` ("ok" | "error") and error details on failure.
    """
    result = await client.check_health()
    if "error_message" in result:
        logger.warning("control_plane_health_check_failed", error=result["error_message"])
        return {
            "status": "error",
            "error_message": result["error_message"],
            "error_code": result.get("error_code"),
        }
    logger.debug("control_plane_health_check_ok")
    return {"status": "ok"}
