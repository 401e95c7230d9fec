from typing import Optional


class GatewayError(Exception):
    """Base class for failures reported to the caller as `{ok: false, error}`."""

    status_code: int = 500
    message: str = "Internal error"

    def __init__(self, message: Optional[str] = None, *, detail: Optional[str] = None):
        super().__init__(detail or message or self.message)
        if message:
            self.message = message
        # Operator-facing only, never rendered into the response body
        self.detail = detail

    def payload(self) -> dict:
        return {"ok": False, "error": self.message}


class InvalidURL(GatewayError):
    status_code = 400
    message = "Invalid URL"


class SchemeNotAllowed(GatewayError):
    status_code = 400
    message = "Only HTTPS is allowed"


class DomainNotAllowed(GatewayError):
    status_code = 403
    message = "Domain not allowed"


class UnsupportedContentType(GatewayError):
    status_code = 415
    message = "Unsupported content-type"

    def __init__(self, content_type: str):
        super().__init__(detail=f"rejected content-type {content_type!r}")
        self.content_type = content_type

    def payload(self) -> dict:
        return {"ok": False, "error": self.message, "contentType": self.content_type}


class UpstreamTransportFailure(GatewayError):
    status_code = 500
    message = "Upstream request failed"


class TooManyRedirects(UpstreamTransportFailure):
    pass


class MidStreamFailure(Exception):
    """The upstream body broke after response headers were already sent."""
