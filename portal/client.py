"""
Portal composition root.

PortalClient wires one SessionRepository and one Navigator into the REST
clients, sessions, caches and services that the pages use. Nothing below
this module constructs its own collaborators.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, Optional

from config.schemas import Money
from config.settings import settings
from portal.api_client import ApiClient
from portal.api_keys import ApiKeyService
from portal.auth import AdminSession, CustomerSession
from portal.errors import PortalError, SessionExpired
from portal.navigation import ADMIN_LOGIN_PATH, CUSTOMER_LOGIN_PATH, Navigator, RecordingNavigator
from portal.storage import (
    ADMIN_TOKEN_KEY,
    CUSTOMER_TOKEN_KEY,
    FileSessionRepository,
    InMemorySessionRepository,
    SessionRepository,
)
from portal.usage import UsageStatsCache
from portal.verification_status import VerificationStatusCache
from portal.verification_wizard import VerificationWizard
from portal.wallet import TopUpVerifier, WalletService

logger = logging.getLogger(__name__)


DEMO_BASE_URL = "http://testserver"


class PortalClient:
    """Everything a page needs, built around one repository and navigator."""

    def __init__(
        self,
        repository: SessionRepository,
        navigator: Optional[Navigator] = None,
        http=None,
        base_url: Optional[str] = None,
    ):
        self.repository = repository
        self.navigator = navigator or RecordingNavigator()

        self.api = ApiClient(
            repository,
            token_key=CUSTOMER_TOKEN_KEY,
            base_url=base_url,
            http=http,
            navigator=self.navigator,
            login_path=CUSTOMER_LOGIN_PATH,
        )
        self.admin_api = ApiClient(
            repository,
            token_key=ADMIN_TOKEN_KEY,
            base_url=base_url,
            http=self.api.http,
            navigator=self.navigator,
            login_path=ADMIN_LOGIN_PATH,
        )

        self.session = CustomerSession(self.api)
        self.admin = AdminSession(self.admin_api)

        self.verification = VerificationStatusCache(self.api)
        self.verification.bind(self.session)
        self.wizard = VerificationWizard(self.api, self.verification)

        self.wallet = WalletService(self.api)
        self.usage = UsageStatsCache(self.api)
        self.api_keys = ApiKeyService(self.api)

        self.balance: Optional[Money] = None
        self.balance_error: Optional[str] = None

    def topup_verifier(self, sleep: Optional[Callable[[float], None]] = None) -> TopUpVerifier:
        if sleep is None:
            return TopUpVerifier(self.wallet)
        return TopUpVerifier(self.wallet, sleep=sleep)

    def refresh_balance(self) -> None:
        """Fetch the wallet balance into self.balance; never raises."""
        try:
            self.balance = self.wallet.get_balance()
            self.balance_error = None
        except SessionExpired:
            self.balance = None
        except PortalError as e:
            logger.error(f"[Wallet] Error fetching balance: {e}")
            self.balance_error = e.message or "Failed to load wallet balance"

    def load_dashboard(self) -> Dict[str, Optional[str]]:
        """
        Refresh profile, verification status, usage and balance concurrently.

        Each fetch fills its own state and handles its own failure, so one
        slow or failing endpoint does not hold up or break the others.
        Returns the error recorded by each fetch (None when it succeeded).
        """
        if not self.session.is_authenticated:
            return {}

        tasks = {
            "profile": self.session.load_me,
            "verification": self.verification.refresh,
            "usage": self.usage.refresh,
            "balance": self.refresh_balance,
        }
        with ThreadPoolExecutor(max_workers=len(tasks)) as executor:
            futures = {name: executor.submit(task) for name, task in tasks.items()}
            for name, future in futures.items():
                try:
                    future.result()
                except Exception as e:
                    # Refreshers swallow their own errors; anything here is a bug
                    logger.exception(f"[Dashboard] {name} refresh crashed: {e}")

        return {
            "profile": None,
            "verification": self.verification.error,
            "usage": self.usage.error,
            "balance": self.balance_error,
        }


def build_portal_client(
    navigator: Optional[Navigator] = None,
    repository: Optional[SessionRepository] = None,
) -> PortalClient:
    """
    Build a PortalClient from settings.

    DEMO_MODE routes every call through the in-process sandbox. Without a
    repository, headless callers get in-memory tokens in DEMO_MODE and
    SESSION_STORE_PATH otherwise; the UI passes its per-browser repository.
    """
    if settings.DEMO_MODE:
        from fastapi.testclient import TestClient
        from portal.sandbox import app as sandbox_app

        logger.info("[Portal] DEMO_MODE: using the in-process sandbox backend")
        return PortalClient(
            repository or InMemorySessionRepository(),
            navigator=navigator,
            http=TestClient(sandbox_app),
            base_url=DEMO_BASE_URL,
        )

    return PortalClient(repository or FileSessionRepository(settings.SESSION_STORE_PATH), navigator=navigator)
