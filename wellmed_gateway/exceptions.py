"""
Gateway error taxonomy.

Every error raised inside the request pipeline derives from GatewayError and
carries the HTTP status plus the ``{error, details}`` body returned to the
caller. The exception handlers in ``wellmed_gateway.main`` render them.
"""

from typing import Optional


class GatewayError(Exception):
    """Base class for errors surfaced to the caller as ``{error, details}``."""

    status_code: int = 500
    error: str = "Gateway Error"

    def __init__(self, details: str, status_code: Optional[int] = None):
        super().__init__(details)
        self.details = details
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict:
        return {"error": self.error, "details": self.details}


class ValidationError(GatewayError):
    """Missing or malformed upload input (missing field, wrong type, too large)."""

    status_code = 400
    error = "Validation Error"


class ExtractionError(GatewayError):
    """Document bytes could not be parsed as a PDF."""

    status_code = 422
    error = "PDF Analysis Error"


class ClassificationRejection(GatewayError):
    """Hard-mode rejection of an out-of-domain conversation."""

    status_code = 400
    error = "Off-Topic Request"

    def __init__(self, details: str):
        super().__init__(details)


class UpstreamError(GatewayError):
    """Non-success response from the completion service; status is passed through."""

    error = "OpenAI API Error"

    def __init__(self, status_code: int, details: str):
        super().__init__(details, status_code=status_code)


class TransportError(GatewayError):
    """No usable response from the completion service (network, timeout, bad body)."""

    status_code = 500
    error = "Upstream Transport Error"


class InternalError(GatewayError):
    """Unexpected failure; details are never the raw exception text."""

    status_code = 500
    error = "Internal Server Error"

    def __init__(self, details: str = "An unexpected error occurred."):
        super().__init__(details)
