"""
Error kinds raised by gateways and workflows.

Every error carries the external ``system`` it came from and the workflow
``step`` that was running, so a caller can tell where a pipeline stopped and
retry it by hand.
"""

from __future__ import annotations

from fastapi import HTTPException, status


class PortalError(RuntimeError):
    """Base class for all portal errors."""

    def __init__(
        self,
        message: str,
        *,
        system: str | None = None,
        step: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.system = system
        self.step = step

    def context(self) -> dict[str, str]:
        """Structured context for log events and error responses."""
        ctx: dict[str, str] = {}
        if self.system:
            ctx["system"] = self.system
        if self.step:
            ctx["step"] = self.step
        return ctx


class NotFoundError(PortalError):
    """A referenced entity (tenant, participant, dataspace, ...) is absent."""


class AuthenticationError(PortalError):
    """Token acquisition failed."""


class ProvisioningError(PortalError):
    """An external gateway answered a pipeline step with a failure status."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        system: str | None = None,
        step: str | None = None,
    ) -> None:
        super().__init__(message, system=system, step=step)
        self.status_code = status_code


class ConflictError(ProvisioningError):
    """The external resource already exists (HTTP 409)."""


class MappingError(PortalError):
    """An external enum or tag value has no local equivalent."""


class TransportError(PortalError):
    """Connection failure or timeout talking to a gateway."""


def as_http_error(exc: PortalError) -> HTTPException:
    """Translate a portal error into the HTTP error surfaced to API callers."""
    if isinstance(exc, NotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, ConflictError):
        code = status.HTTP_409_CONFLICT
    elif isinstance(exc, TransportError):
        code = status.HTTP_504_GATEWAY_TIMEOUT
    else:
        code = status.HTTP_502_BAD_GATEWAY
    detail: dict[str, str] = {"error": type(exc).__name__, "message": exc.message}
    detail.update(exc.context())
    return HTTPException(status_code=code, detail=detail)
