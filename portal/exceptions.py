"""Portal error taxonomy. Each error carries the HTTP status it is reported with."""
from __future__ import annotations


class PortalError(Exception):
    """Base class for errors reported synchronously to the caller."""

    status_code = 500
    default_message = "Internal error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(PortalError):
    status_code = 400
    default_message = "Invalid request"


class MissingCode(ValidationError):
    default_message = "Code missing"


class NotConfigured(PortalError):
    status_code = 403
    default_message = "Not configured"


class ProviderDisabled(NotConfigured):
    default_message = "Login provider is disabled or misconfigured"


class NotFound(PortalError):
    status_code = 404
    default_message = "Not found"


class UpstreamFailure(PortalError):
    """Store or identity provider unreachable or returned garbage."""

    status_code = 500
    default_message = "Upstream service failed"


class TokenExchangeFailed(UpstreamFailure):
    default_message = "Token exchange failed"
