"""
Wallet and top-up flow.

Top-up round trip:

    Idle -> Initiating -> Redirected (hosted payment page) -> Verifying
         -> Success | Failed | TimedOut

The browser leaves the portal entirely for the payment page and comes back
on the callback route with the reference in the query string. Verification
uses the public endpoint, keyed only by the reference, because the session
may not survive the round trip. Pending answers are re-polled on a fixed
delay up to a fixed number of attempts.
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Mapping, Optional, Tuple, Union
from urllib.parse import urlencode

from config.schemas import (
    Money,
    TopUpSession,
    TopUpStatus,
    TopUpVerification,
    TransactionPage,
    WalletTransaction,
)
from config.settings import settings
from portal.api_client import ApiClient
from portal.envelopes import (
    extract_balance,
    extract_topup_session,
    extract_topup_verification,
    extract_transaction,
    extract_transactions,
)
from portal.errors import HttpError, PaymentVerificationError, PortalError, ValidationError
from portal.navigation import CUSTOMER_WALLET_CALLBACK_PATH

logger = logging.getLogger(__name__)


BALANCE_PATH = "/api/v1/customer/wallet/balance"
TRANSACTIONS_PATH = "/api/v1/customer/wallet/transactions"
TOPUP_PATH = "/api/v1/customer/wallet/topup"
TOPUP_VERIFY_PATH = "/api/v1/customer/wallet/topup/verify/{reference}"

# Query parameter names the payment processor may use for the reference
CALLBACK_REFERENCE_PARAMS = ("reference", "trxref")

INVALID_REFERENCE_MESSAGE = "Invalid payment reference. Please try again."
TIMED_OUT_MESSAGE = (
    "We could not confirm your payment yet. If you were debited, your wallet "
    "will be credited once the payment settles."
)


# ============================================================================
# FORMATTING
# ============================================================================

def format_naira(amount: float) -> str:
    """₦1,234.50 style display string."""
    return f"₦{amount:,.2f}"


def format_kobo(kobo: int) -> str:
    return format_naira(kobo / 100)


# ============================================================================
# VALIDATION
# ============================================================================

def validate_topup_amount(amount: Union[str, float, int, None]) -> Tuple[bool, Optional[str]]:
    """
    Check a requested top-up amount (naira) against the configured bounds.

    Returns:
        Tuple of (is_valid, error_message)
    """
    minimum = settings.TOPUP_MIN_NAIRA
    maximum = settings.TOPUP_MAX_NAIRA

    try:
        value = float(amount)
    except (TypeError, ValueError):
        value = None

    if value is None or value != value or value < minimum:
        return False, f"Minimum top-up amount is {format_naira(minimum).removesuffix('.00')}"
    if value > maximum:
        return False, f"Maximum top-up amount is {format_naira(maximum).removesuffix('.00')}"
    return True, None


def callback_url(base_url: Optional[str] = None) -> str:
    """Where the payment page should send the browser back to."""
    base = (base_url or settings.APP_BASE_URL).rstrip("/")
    return f"{base}/?{urlencode({'route': CUSTOMER_WALLET_CALLBACK_PATH})}"


def parse_callback_reference(params: Mapping[str, str]) -> Optional[str]:
    """Reference from the callback query string (`reference` or `trxref`)."""
    for name in CALLBACK_REFERENCE_PARAMS:
        value = params.get(name)
        if isinstance(value, (list, tuple)):
            value = value[0] if value else None
        if value and str(value).strip():
            return str(value).strip()
    return None


# ============================================================================
# WALLET SERVICE
# ============================================================================

class WalletService:
    """Wallet calls for the signed-in customer."""

    def __init__(self, api: ApiClient):
        self.api = api

    def get_balance(self) -> Money:
        balance = extract_balance(self.api.get(BALANCE_PATH))
        if balance is None:
            raise PortalError("Unexpected wallet balance response")
        return balance

    def get_transactions(self, limit: int = 20, offset: int = 0) -> TransactionPage:
        return extract_transactions(
            self.api.get(TRANSACTIONS_PATH, params={"limit": limit, "offset": offset})
        )

    def initiate_topup(self, amount_naira: Union[str, float, int], callback: Optional[str] = None) -> TopUpSession:
        """
        Ask the backend for a hosted payment session.

        The amount is checked locally first; an out-of-range amount raises
        ValidationError without any network call.
        """
        is_valid, error = validate_topup_amount(amount_naira)
        if not is_valid:
            raise ValidationError({"amount": error})

        amount = float(amount_naira)
        body = {"amount": int(amount) if amount.is_integer() else amount}
        if callback:
            body["callbackUrl"] = callback

        session = extract_topup_session(self.api.post(TOPUP_PATH, body))
        if session is None:
            raise PortalError("Payment provider did not return a payment link")

        logger.info(f"[TopUp] Initiated {session.reference} for {session.amount.formatted or amount}")
        return session

    def check_topup_status(self, reference: str) -> WalletTransaction:
        """Authenticated status lookup of a top-up transaction."""
        transaction = extract_transaction(self.api.get(f"{TOPUP_PATH}/{reference}"))
        if transaction is None:
            raise PortalError("Unexpected top-up status response")
        return transaction

    def verify_topup(self, reference: str) -> TopUpVerification:
        """
        Public verification of a top-up by reference.
        Failures are reported as a failed verification, not raised.
        """
        try:
            raw = self.api.get(TOPUP_VERIFY_PATH.format(reference=reference), auth=False)
        except HttpError as e:
            logger.error(f"[TopUp] verifyTopUp error: {e}")
            return TopUpVerification(verified=False, status=TopUpStatus.FAILED, message=e.message or "Verification failed")
        except PortalError as e:
            logger.error(f"[TopUp] verifyTopUp error: {e}")
            return TopUpVerification(
                verified=False,
                status=TopUpStatus.FAILED,
                message=e.message or "Failed to verify payment",
            )
        return extract_topup_verification(raw)


# ============================================================================
# CALLBACK VERIFICATION
# ============================================================================

class CallbackState(str, Enum):
    """Where the callback page is in the verification flow."""
    VERIFYING = "verifying"
    SUCCESS = "success"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


@dataclass
class CallbackOutcome:
    state: CallbackState
    message: str
    reference: Optional[str] = None
    amount: Optional[Money] = None
    attempts: int = 0

    @property
    def formatted_amount(self) -> str:
        return self.amount.formatted if self.amount else ""

    @property
    def is_terminal(self) -> bool:
        return self.state != CallbackState.VERIFYING


class TopUpVerifier:
    """
    Polls verification after the payment redirect.

    `sleep` is injectable so the UI can show progress between polls and
    tests do not wait.
    """

    def __init__(
        self,
        wallet: WalletService,
        interval: Optional[float] = None,
        max_attempts: Optional[int] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.wallet = wallet
        self.interval = settings.TOPUP_POLL_INTERVAL_SECONDS if interval is None else interval
        self.max_attempts = max_attempts or settings.TOPUP_MAX_POLL_ATTEMPTS
        self.sleep = sleep

    def check(self, reference: Optional[str], attempt: int = 1) -> CallbackOutcome:
        """One verification attempt. VERIFYING means: poll again."""
        if not reference:
            return CallbackOutcome(CallbackState.FAILED, INVALID_REFERENCE_MESSAGE, attempts=attempt)

        result = self.wallet.verify_topup(reference)

        if result.verified and result.status == TopUpStatus.SUCCESS:
            return CallbackOutcome(
                CallbackState.SUCCESS,
                "Your wallet has been credited successfully!",
                reference=reference,
                amount=result.amount,
                attempts=attempt,
            )
        if result.status == TopUpStatus.PENDING:
            if attempt >= self.max_attempts:
                logger.warning(f"[TopUp] {reference} still pending after {attempt} attempts")
                return CallbackOutcome(CallbackState.TIMED_OUT, TIMED_OUT_MESSAGE, reference=reference, attempts=attempt)
            return CallbackOutcome(
                CallbackState.VERIFYING,
                "Payment is being processed. Please wait...",
                reference=reference,
                attempts=attempt,
            )
        return CallbackOutcome(
            CallbackState.FAILED,
            result.message or "Payment verification failed. Please contact support if amount was debited.",
            reference=reference,
            amount=result.amount,
            attempts=attempt,
        )

    def run(
        self,
        reference: Optional[str],
        on_progress: Optional[Callable[[CallbackOutcome], None]] = None,
    ) -> CallbackOutcome:
        """Verify until a terminal state, waiting `interval` between pending answers."""
        attempt = 1
        while True:
            outcome = self.check(reference, attempt)
            if on_progress is not None:
                on_progress(outcome)
            if outcome.is_terminal:
                logger.info(f"[TopUp] {reference} resolved as {outcome.state.value} after {attempt} attempt(s)")
                return outcome
            self.sleep(self.interval)
            attempt += 1


def require_reference(params: Mapping[str, str]) -> str:
    """Reference from the callback query, or PaymentVerificationError."""
    reference = parse_callback_reference(params)
    if not reference:
        raise PaymentVerificationError(INVALID_REFERENCE_MESSAGE)
    return reference
