"""
Domain exceptions for the partner portal.

Services raise these; the handlers registered in ``partner_portal.main``
turn them into JSON error responses.
"""
from typing import Any, Dict, Optional


class PortalError(Exception):
    """Base exception for partner portal errors."""

    status_code: int = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(PortalError):
    """Missing or malformed input (MOQ violation, bad GST number, ...)."""
    status_code = 400


class BelowMinimumOrderError(ValidationError):
    """Order total is under the minimum accepted by the payment gateway."""
    status_code = 422


class InsufficientStockError(ValidationError):
    """Requested quantity exceeds the variant's available stock."""
    status_code = 409


class AuthenticationError(PortalError):
    """Bad or missing credentials."""
    status_code = 401


class AuthorizationError(PortalError):
    """Authenticated, but not allowed (unapproved account, non-admin)."""
    status_code = 403


class NotFoundError(PortalError):
    """Missing profile, partner, variant or order record."""
    status_code = 404


class ExternalServiceError(PortalError):
    """Payment gateway, mail server or database reported a failure."""
    status_code = 502
