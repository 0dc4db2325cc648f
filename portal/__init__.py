# Portal services: REST client, sessions, caches, wizard and wallet
from .errors import (
    PortalError,
    NetworkError,
    HttpError,
    SessionExpired,
    ValidationError,
    PaymentVerificationError,
)
from .storage import InMemorySessionRepository, FileSessionRepository, SessionRepository

__all__ = [
    "PortalError",
    "NetworkError",
    "HttpError",
    "SessionExpired",
    "ValidationError",
    "PaymentVerificationError",
    "InMemorySessionRepository",
    "FileSessionRepository",
    "SessionRepository",
]
