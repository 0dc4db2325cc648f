"""
Verification status cache.

Holds the last VerificationRecord fetched from the backend and exposes the
derived flags every page uses (verified / pending / needs verification /
rejected). Refreshing is a background action: it never raises.
"""

import logging
from typing import Optional

from config.schemas import PENDING_STATUSES, VerificationRecord, VerificationStatus
from portal.api_client import ApiClient
from portal.envelopes import extract_verification_record
from portal.errors import PortalError, SessionExpired

logger = logging.getLogger(__name__)


STATUS_PATH = "/api/v1/customer/verification/status"


class VerificationStatusCache:
    """Memoised verification status for the signed-in customer."""

    def __init__(self, api: ApiClient):
        self.api = api
        self.data: Optional[VerificationRecord] = None
        self.loading = False
        self.error: Optional[str] = None

    def bind(self, session) -> None:
        """Refresh when `session` signs in, clear when it signs out."""
        session.subscribe(self._on_auth_change)

    def _on_auth_change(self, is_authenticated: bool) -> None:
        if is_authenticated:
            self.refresh()
        else:
            self.clear()

    def clear(self) -> None:
        self.data = None
        self.error = None

    def refresh(self) -> None:
        """
        Fetch the current status.

        No token or a 401: cached data is dropped. Any other failure: the
        error is recorded and the status falls back to inactive.
        """
        if not self.api.token:
            self.data = None
            return

        self.loading = True
        self.error = None
        try:
            raw = self.api.get(STATUS_PATH)
            record = extract_verification_record(raw)
            if record is None:
                raise PortalError("Unexpected verification status response")
            self.data = record
            logger.info(f"[Verification] Status: {record.status.value}")
        except SessionExpired:
            self.data = None
        except PortalError as e:
            logger.error(f"[Verification] Error fetching status: {e}")
            self.error = e.message or "Failed to fetch verification status"
            self.data = VerificationRecord(status=VerificationStatus.INACTIVE)
        finally:
            self.loading = False

    # -- derived state -------------------------------------------------------

    @property
    def status(self) -> VerificationStatus:
        return self.data.status if self.data else VerificationStatus.INACTIVE

    @property
    def is_verified(self) -> bool:
        return self.status == VerificationStatus.VERIFIED

    @property
    def is_pending(self) -> bool:
        return self.status in PENDING_STATUSES

    @property
    def needs_verification(self) -> bool:
        return self.status == VerificationStatus.INACTIVE

    @property
    def is_rejected(self) -> bool:
        return self.status == VerificationStatus.REJECTED
