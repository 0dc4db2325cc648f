"""
Error taxonomy for the portal.

Every failure that crosses a module boundary is a PortalError carrying a
machine code (the backend's error.code when it sent one) and a message that
is safe to show next to the control that triggered it.
"""

from typing import Dict, Optional


# Codes produced on the client side
NETWORK_ERROR = "NETWORK_ERROR"
HTTP_ERROR = "HTTP_ERROR"
SESSION_EXPIRED = "UNAUTHORIZED"
VALIDATION_ERROR = "VALIDATION_ERROR"
PAYMENT_VERIFICATION_ERROR = "PAYMENT_VERIFICATION_ERROR"

# Codes the backend is documented to send
INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"


class PortalError(Exception):
    """Base class for all portal failures."""

    code = "PORTAL_ERROR"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code

    def __str__(self) -> str:
        return self.message


class NetworkError(PortalError):
    """The request never produced an HTTP response."""

    code = NETWORK_ERROR


class HttpError(PortalError):
    """
    The backend answered with a non-2xx status or a success:false envelope.

    `payload` keeps the decoded body so callers can pick their own message
    priority (see envelopes.extract_error_message).
    """

    code = HTTP_ERROR

    def __init__(
        self,
        message: str,
        status_code: int,
        code: Optional[str] = None,
        details=None,
        payload: Optional[dict] = None,
    ):
        super().__init__(message, code)
        self.status_code = status_code
        self.details = details
        self.payload = payload or {}


class SessionExpired(PortalError):
    """A 401 was received on an authenticated call; the session is gone."""

    code = SESSION_EXPIRED

    def __init__(self, message: str = "Unauthorized", redirect_to: Optional[str] = None):
        super().__init__(message)
        self.redirect_to = redirect_to


class ValidationError(PortalError):
    """Client-side field checks failed. Never sent to the server."""

    code = VALIDATION_ERROR

    def __init__(self, errors: Dict[str, str], message: Optional[str] = None):
        super().__init__(message or next(iter(errors.values()), "Invalid input"))
        self.errors = errors


class PaymentVerificationError(PortalError):
    """Top-up reference missing or the processor reported a failure."""

    code = PAYMENT_VERIFICATION_ERROR
