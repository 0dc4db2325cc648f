"""
Envelope normalisation - the single place that knows response shapes.

The backend wraps payloads as {success, data|error}, but several endpoints
have historically answered flat or with the payload nested one level deeper.
Every extract_* function here accepts all observed shapes and returns a
typed record (or None), so the rest of the portal never inspects raw JSON.
"""

import logging
from typing import Any, List, Optional, Tuple

from pydantic import ValidationError as SchemaError

from config.schemas import (
    AdminUser,
    ApiKey,
    CustomerProfile,
    Money,
    TopUpSession,
    TopUpStatus,
    TopUpVerification,
    TransactionPage,
    TransactionSummary,
    UsageStats,
    VerificationRecord,
    WalletTransaction,
)

logger = logging.getLogger(__name__)


def _dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def unwrap_data(raw: Any) -> dict:
    """Return raw["data"] when it is an object, otherwise the body itself."""
    body = _dict(raw)
    data = body.get("data")
    return data if isinstance(data, dict) else body


# ============================================================================
# ERRORS & MESSAGES
# ============================================================================

def extract_error_code(raw: Any) -> Optional[str]:
    """Backend error.code, when the body carries a structured error."""
    code = _dict(_dict(raw).get("error")).get("code")
    return code if isinstance(code, str) and code else None


def extract_error_details(raw: Any):
    return _dict(_dict(raw).get("error")).get("details")


def extract_error_message(raw: Any, fallback: Optional[str] = None) -> Optional[str]:
    """
    Most specific human-readable message in a failure body.

    Priority: a bare string body, error.message, error (as a string),
    message, data.message, then the caller's fallback.
    """
    if isinstance(raw, str) and raw.strip():
        return raw.strip()

    body = _dict(raw)
    candidates = [
        _dict(body.get("error")).get("message"),
        body.get("error") if isinstance(body.get("error"), str) else None,
        body.get("message"),
        _dict(body.get("data")).get("message"),
    ]
    for candidate in candidates:
        if isinstance(candidate, str) and candidate.strip():
            return candidate.strip()

    return fallback


def extract_message(raw: Any, default: str) -> str:
    """Success message (data.message, then message), else the default."""
    body = _dict(raw)
    for candidate in (_dict(body.get("data")).get("message"), body.get("message")):
        if isinstance(candidate, str) and candidate.strip():
            return candidate
    return default


# ============================================================================
# AUTH
# ============================================================================

def extract_token(raw: Any) -> Optional[str]:
    """Login token, accepted flat ({token}) or nested ({data: {token}})."""
    body = _dict(raw)
    token = body.get("token") or _dict(body.get("data")).get("token")
    return token if isinstance(token, str) and token else None


def extract_profile(raw: Any) -> Optional[CustomerProfile]:
    data = unwrap_data(raw)
    if isinstance(data.get("customer"), dict):
        data = data["customer"]
    try:
        return CustomerProfile.model_validate(data)
    except SchemaError as e:
        logger.warning(f"[Envelopes] Unusable profile payload: {e.error_count()} errors")
        return None


def extract_admin_login(raw: Any) -> Optional[Tuple[str, AdminUser]]:
    """(token, admin) from the admin login envelope."""
    data = unwrap_data(raw)
    token = data.get("token") or _dict(raw).get("token")
    admin = data.get("admin")
    if not isinstance(token, str) or not token or not isinstance(admin, dict):
        return None
    try:
        return token, AdminUser.model_validate(admin)
    except SchemaError:
        return None


# ============================================================================
# VERIFICATION
# ============================================================================

def extract_verification_record(raw: Any) -> Optional[VerificationRecord]:
    data = unwrap_data(raw)
    if isinstance(data.get("verification"), dict):
        data = data["verification"]
    payload = dict(data)
    if not payload.get("status"):
        payload["status"] = "inactive"
    try:
        return VerificationRecord.model_validate(payload)
    except SchemaError as e:
        logger.warning(f"[Envelopes] Unusable verification payload (status={payload.get('status')!r}): {e.error_count()} errors")
        return None


# ============================================================================
# USAGE
# ============================================================================

# Older backends reported the counters under short names
_USAGE_LEGACY_KEYS = {
    "today": "requestsToday",
    "month": "requestsThisMonth",
    "totalRequests": "totalCalls",
}


def extract_usage(raw: Any) -> Optional[UsageStats]:
    body = _dict(raw)
    usage = _dict(body.get("data")).get("usage") or body.get("usage")
    if not isinstance(usage, dict):
        # Flat body: counters at the top level (or directly under data)
        flat = unwrap_data(raw)
        known = set(UsageStats.model_fields) | {f.alias for f in UsageStats.model_fields.values()}
        if not known.intersection(flat) and not set(_USAGE_LEGACY_KEYS).intersection(flat):
            return None
        usage = flat

    payload = dict(usage)
    for old, new in _USAGE_LEGACY_KEYS.items():
        if old in payload and new not in payload:
            payload[new] = payload[old]
    try:
        return UsageStats.model_validate(payload)
    except SchemaError as e:
        logger.warning(f"[Envelopes] Unusable usage payload: {e.error_count()} errors")
        return None


# ============================================================================
# WALLET
# ============================================================================

def _money(value: Any) -> Optional[Money]:
    if not isinstance(value, dict):
        return None
    try:
        return Money.model_validate(value)
    except SchemaError:
        logger.warning("[Envelopes] Unusable money amount")
        return None


def _int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def extract_balance(raw: Any) -> Optional[Money]:
    return _money(unwrap_data(raw).get("balance"))


def extract_transactions(raw: Any) -> TransactionPage:
    """One page of history; malformed entries are skipped."""
    data = unwrap_data(raw)
    pagination = _dict(data.get("pagination"))

    transactions = []
    for item in data.get("transactions") or []:
        if not isinstance(item, dict):
            continue
        try:
            transactions.append(WalletTransaction.model_validate(item))
        except SchemaError:
            logger.warning("[Envelopes] Skipping malformed wallet transaction")

    summary = None
    if isinstance(data.get("summary"), dict):
        try:
            summary = TransactionSummary.model_validate(data["summary"])
        except SchemaError:
            logger.warning("[Envelopes] Ignoring malformed transaction summary")

    return TransactionPage(
        transactions=transactions,
        total=_int(pagination.get("total"), len(transactions)),
        limit=_int(pagination.get("limit"), len(transactions)),
        offset=_int(pagination.get("offset"), 0),
        has_more=bool(pagination.get("hasMore", False)),
        summary=summary,
    )


def extract_transaction(raw: Any) -> Optional[WalletTransaction]:
    data = unwrap_data(raw)
    transaction = data.get("transaction") or data
    if not isinstance(transaction, dict) or not transaction:
        return None
    try:
        return WalletTransaction.model_validate(transaction)
    except SchemaError:
        logger.warning("[Envelopes] Unusable wallet transaction")
        return None


def extract_topup_session(raw: Any) -> Optional[TopUpSession]:
    data = unwrap_data(raw)
    payment = _dict(data.get("payment"))
    amount = _money(data.get("amount")) or Money()
    reference = data.get("reference") or payment.get("reference")
    url = payment.get("url") or data.get("authorizationUrl")

    if not reference or not url:
        return None

    return TopUpSession(
        reference=str(reference),
        amount_kobo=amount.kobo,
        amount=amount,
        payment_url=str(url),
        access_code=payment.get("accessCode"),
        public_key=data.get("publicKey"),
    )


def extract_topup_verification(raw: Any) -> TopUpVerification:
    """
    Resolve the payment state of a verification answer.

    The processor's own status wins over the ledger status; a completed
    ledger entry counts as success even if the processor field is missing.
    Flat bodies ({status, amount}) are read as the transaction itself.
    """
    data = unwrap_data(raw)
    transaction = _dict(data.get("transaction")) or data
    processor = _dict(data.get("paystackStatus"))

    ledger_status = transaction.get("status")
    status = processor.get("status") or ledger_status
    amount_raw = transaction.get("amount") or data.get("amount")
    amount = _money(amount_raw)

    if status == "success" or ledger_status == "completed":
        resolved = TopUpStatus.SUCCESS
        message = "Payment verified successfully"
    elif status == "pending":
        resolved = TopUpStatus.PENDING
        message = "Payment is being processed"
    else:
        resolved = TopUpStatus.ABANDONED if status == "abandoned" else TopUpStatus.FAILED
        message = processor.get("gatewayResponse") or "Payment verification failed"

    parsed_transaction = None
    if data.get("transaction"):
        try:
            parsed_transaction = WalletTransaction.model_validate(transaction)
        except SchemaError:
            parsed_transaction = None

    return TopUpVerification(
        verified=resolved == TopUpStatus.SUCCESS,
        status=resolved,
        message=message,
        amount=amount,
        transaction=parsed_transaction,
    )


# ============================================================================
# API KEYS
# ============================================================================

def extract_api_keys(raw: Any) -> List[ApiKey]:
    body = _dict(raw)
    data = _dict(body.get("data"))
    items = data.get("keys") or body.get("keys") or data.get("items") or []
    keys = []
    for item in items:
        if not isinstance(item, dict):
            continue
        try:
            keys.append(ApiKey.model_validate(item))
        except SchemaError:
            logger.warning("[Envelopes] Skipping malformed API key entry")
    return keys


def extract_created_key(raw: Any) -> Tuple[Optional[ApiKey], str]:
    """(key record if present, plain token shown once)."""
    data = unwrap_data(raw)
    token = data.get("token") or _dict(raw).get("token") or ""
    key = None
    if isinstance(data.get("key"), dict):
        try:
            key = ApiKey.model_validate(data["key"])
        except SchemaError:
            key = None
    return key, token
