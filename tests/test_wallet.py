"""
Test Suite: Wallet and Top-Up Flow

Tests:
1. Amount validation messages
2. Out-of-range amount never reaches the network
3. Initiating a top-up
4. Callback reference parsing
5. Pending then success re-polls once after the fixed delay
6. Flat verification bodies
7. Polling is bounded (TIMED_OUT)
8. Missing reference fails immediately
9. Failure paths (gateway message, abandoned, transport error)
10. Balance and transactions
11. Transaction summary
12. Malformed wallet payloads never escape as schema errors
13. Formatting and tiers
"""

import requests

from support import make_portal

from config.pricing import WALLET_TIERS, get_tier
from config.schemas import TopUpStatus
from portal.errors import PaymentVerificationError, PortalError, ValidationError
from portal.wallet import (
    INVALID_REFERENCE_MESSAGE,
    CallbackState,
    TopUpVerifier,
    callback_url,
    format_kobo,
    format_naira,
    parse_callback_reference,
    require_reference,
    validate_topup_amount,
)

TOPUP = "/api/v1/customer/wallet/topup"


def verify_path(reference: str) -> str:
    return f"/api/v1/customer/wallet/topup/verify/{reference}"


def verification_body(status: str, ledger: str = "pending", kobo: int = 500000, gateway: str = None) -> dict:
    return {"success": True, "data": {
        "transaction": {
            "reference": "abc123",
            "status": ledger,
            "amount": {"kobo": kobo, "naira": kobo / 100, "formatted": format_kobo(kobo)},
        },
        "paystackStatus": {"status": status, "gatewayResponse": gateway},
    }}


def test_amount_validation():
    print("\nTEST 1: Amount Validation")
    print("-" * 40)

    assert validate_topup_amount(50) == (False, "Minimum top-up amount is ₦100")
    assert validate_topup_amount("abc") == (False, "Minimum top-up amount is ₦100")
    assert validate_topup_amount(None) == (False, "Minimum top-up amount is ₦100")
    assert validate_topup_amount(1_000_001) == (False, "Maximum top-up amount is ₦1,000,000")
    assert validate_topup_amount(100) == (True, None)
    assert validate_topup_amount("25000") == (True, None)
    assert validate_topup_amount(1_000_000) == (True, None)
    print("   Bounds: ₦100 - ₦1,000,000")

    print(" PASSED: Amount validation")


def test_invalid_amount_makes_no_call():
    print("\nTEST 2: Invalid Amount Makes No Call")
    print("-" * 40)

    portal, http, _ = make_portal(token="T1")

    try:
        portal.wallet.initiate_topup(50)
        assert False, "expected ValidationError"
    except ValidationError as e:
        assert e.message == "Minimum top-up amount is ₦100"
        assert e.errors == {"amount": "Minimum top-up amount is ₦100"}

    assert http.calls == []

    print(" PASSED: Invalid amount makes no call")


def test_initiate_topup():
    print("\nTEST 3: Initiate Top-Up")
    print("-" * 40)

    portal, http, _ = make_portal(token="T1")
    http.add("POST", TOPUP, body={"success": True, "data": {
        "reference": "abc123",
        "amount": {"kobo": 500000, "naira": 5000, "formatted": "₦5,000.00"},
        "payment": {"url": "https://checkout.example/abc123", "accessCode": "ac_1"},
        "publicKey": "pk_test",
    }})

    session = portal.wallet.initiate_topup(5000, "http://localhost:8501/?route=%2Fcustomer%2Fwallet%2Fcallback")

    assert session.reference == "abc123"
    assert session.payment_url == "https://checkout.example/abc123"
    assert session.amount_kobo == 500000
    assert session.access_code == "ac_1"
    assert session.status == TopUpStatus.PENDING
    assert http.calls[0]["json"] == {
        "amount": 5000,
        "callbackUrl": "http://localhost:8501/?route=%2Fcustomer%2Fwallet%2Fcallback",
    }
    assert "Bearer T1" == http.calls[0]["headers"]["Authorization"]
    print(f"   Redirect to {session.payment_url}")

    assert callback_url("http://portal.example/").startswith("http://portal.example/?route=")

    print(" PASSED: Initiate top-up")


def test_callback_reference_parsing():
    print("\nTEST 4: Callback Reference")
    print("-" * 40)

    assert parse_callback_reference({"reference": "abc123"}) == "abc123"
    assert parse_callback_reference({"trxref": "xyz"}) == "xyz"
    assert parse_callback_reference({"reference": "", "trxref": "xyz"}) == "xyz"
    assert parse_callback_reference({"reference": ["abc123"]}) == "abc123"
    assert parse_callback_reference({}) is None

    assert require_reference({"reference": "abc123"}) == "abc123"
    try:
        require_reference({})
        assert False, "expected PaymentVerificationError"
    except PaymentVerificationError as e:
        assert e.message == INVALID_REFERENCE_MESSAGE

    print(" PASSED: Callback reference")


def test_pending_then_success():
    """?reference=abc123: pending, wait 3 s, success with ₦5,000.00."""
    print("\nTEST 5: Pending Then Success")
    print("-" * 40)

    portal, http, _ = make_portal()
    http.add("GET", verify_path("abc123"), body=verification_body("pending"))
    http.add("GET", verify_path("abc123"), body=verification_body("success", ledger="completed"))

    sleeps = []
    progress = []
    verifier = TopUpVerifier(portal.wallet, interval=3.0, max_attempts=20, sleep=sleeps.append)

    outcome = verifier.run(parse_callback_reference({"reference": "abc123"}), on_progress=progress.append)

    assert outcome.state == CallbackState.SUCCESS
    assert outcome.formatted_amount == "₦5,000.00"
    assert outcome.attempts == 2
    assert sleeps == [3.0]
    assert [p.state for p in progress] == [CallbackState.VERIFYING, CallbackState.SUCCESS]
    # Public endpoint: no token needed
    assert all("Authorization" not in c["headers"] for c in http.calls)
    print(f"   Credited {outcome.formatted_amount} after {outcome.attempts} polls")

    print(" PASSED: Pending then success")


def test_flat_verification_bodies():
    """Unwrapped {status, amount} bodies: pending, then success with the amount."""
    print("\nTEST 6: Flat Verification Bodies")
    print("-" * 40)

    portal, http, _ = make_portal()
    http.add("GET", verify_path("abc123"), body={"status": "pending"})
    http.add("GET", verify_path("abc123"), body={"status": "success", "amount": {"formatted": "₦5,000.00"}})

    sleeps = []
    verifier = TopUpVerifier(portal.wallet, interval=3.0, max_attempts=20, sleep=sleeps.append)
    outcome = verifier.run("abc123")

    assert outcome.state == CallbackState.SUCCESS
    assert outcome.formatted_amount == "₦5,000.00"
    assert outcome.attempts == 2
    assert sleeps == [3.0]

    # An amount that is not an object still leaves a successful outcome
    http.add("GET", verify_path("bare"), body={"status": "success", "amount": "5000"})
    bare = verifier.run("bare")
    assert bare.state == CallbackState.SUCCESS and bare.formatted_amount == ""

    print(" PASSED: Flat verification bodies")


def test_polling_is_bounded():
    print("\nTEST 7: Bounded Polling")
    print("-" * 40)

    portal, http, _ = make_portal()
    http.add("GET", verify_path("slow"), body=verification_body("pending"))

    sleeps = []
    verifier = TopUpVerifier(portal.wallet, interval=3.0, max_attempts=4, sleep=sleeps.append)
    outcome = verifier.run("slow")

    assert outcome.state == CallbackState.TIMED_OUT
    assert outcome.attempts == 4
    assert len(http.calls) == 4
    assert sleeps == [3.0, 3.0, 3.0]
    assert outcome.is_terminal
    print(f"   Gave up after {outcome.attempts} polls")

    print(" PASSED: Bounded polling")


def test_missing_reference():
    print("\nTEST 8: Missing Reference")
    print("-" * 40)

    portal, http, _ = make_portal()
    verifier = TopUpVerifier(portal.wallet, sleep=lambda _: None)

    outcome = verifier.run(parse_callback_reference({}))

    assert outcome.state == CallbackState.FAILED
    assert outcome.message == "Invalid payment reference. Please try again."
    assert http.calls == []

    print(" PASSED: Missing reference")


def test_failure_paths():
    print("\nTEST 9: Failure Paths")
    print("-" * 40)

    portal, http, _ = make_portal()
    http.add("GET", verify_path("declined"), body=verification_body("failed", ledger="failed", gateway="Declined"))
    http.add("GET", verify_path("gone"), body=verification_body("abandoned"))
    http.add("GET", verify_path("missing"), status=404, body={
        "success": False, "error": {"code": "NOT_FOUND", "message": "Transaction not found"},
    })
    http.fail("GET", verify_path("offline"), requests.ConnectionError("no route to host"))

    verifier = TopUpVerifier(portal.wallet, sleep=lambda _: None)

    declined = verifier.run("declined")
    assert declined.state == CallbackState.FAILED and declined.message == "Declined"

    abandoned = portal.wallet.verify_topup("gone")
    assert abandoned.status == TopUpStatus.ABANDONED and not abandoned.verified
    assert verifier.run("gone").message == "Payment verification failed"

    missing = verifier.run("missing")
    assert missing.state == CallbackState.FAILED and missing.message == "Transaction not found"

    offline = portal.wallet.verify_topup("offline")
    assert offline.status == TopUpStatus.FAILED and not offline.verified
    assert "no route to host" in offline.message
    print(f"   Declined: {declined.message} / Missing: {missing.message}")

    print(" PASSED: Failure paths")


def test_balance_and_transactions():
    print("\nTEST 10: Balance and Transactions")
    print("-" * 40)

    portal, http, _ = make_portal(token="T1")
    http.add("GET", "/api/v1/customer/wallet/balance", body={"success": True, "data": {
        "balance": {"kobo": 1250050, "naira": 12500.5, "formatted": "₦12,500.50"},
    }})
    http.add("GET", "/api/v1/customer/wallet/transactions", body={"success": True, "data": {
        "transactions": [{
            "id": "txn_1", "type": "credit", "reference": "abc123", "status": "completed",
            "amount": {"kobo": 500000, "naira": 5000, "formatted": "₦5,000.00"},
            "description": "Wallet top-up", "paymentMethod": "paystack",
        }],
        "pagination": {"total": 41, "limit": 20, "offset": 20, "hasMore": True},
    }})
    http.add("GET", f"{TOPUP}/abc123", body={"success": True, "data": {"transaction": {
        "reference": "abc123", "status": "completed", "amount": {"kobo": 500000},
    }}})

    balance = portal.wallet.get_balance()
    assert balance.formatted == "₦12,500.50" and balance.kobo == 1250050

    page = portal.wallet.get_transactions(limit=20, offset=20)
    assert http.calls[1]["params"] == {"limit": 20, "offset": 20}
    assert page.total == 41 and page.has_more
    assert page.transactions[0].payment_method == "paystack"

    transaction = portal.wallet.check_topup_status("abc123")
    assert transaction.status == "completed" and transaction.amount.kobo == 500000

    portal.refresh_balance()
    assert portal.balance.naira == 12500.5 and portal.balance_error is None

    print(" PASSED: Balance and transactions")


def test_transaction_summary():
    print("\nTEST 11: Transaction Summary")
    print("-" * 40)

    portal, http, _ = make_portal(token="T1")
    http.add("GET", "/api/v1/customer/wallet/transactions", body={"success": True, "data": {
        "transactions": [],
        "pagination": {"total": 0, "limit": 20, "offset": 0, "hasMore": False},
        "summary": {
            "totalCredits": {"kobo": 3000000, "naira": 30000, "formatted": "₦30,000.00"},
            "totalDebits": {"kobo": 450000, "naira": 4500, "formatted": "₦4,500.00"},
            "netChange": {"kobo": 2550000, "naira": 25500, "formatted": "₦25,500.00"},
        },
    }})

    page = portal.wallet.get_transactions()

    assert page.summary.total_credits.formatted == "₦30,000.00"
    assert page.summary.total_debits.kobo == 450000
    assert page.summary.net_change.naira == 25500
    print(f"   Net change: {page.summary.net_change.formatted}")

    print(" PASSED: Transaction summary")


def test_malformed_wallet_payloads():
    print("\nTEST 12: Malformed Wallet Payloads")
    print("-" * 40)

    portal, http, _ = make_portal(token="T1")
    http.add("GET", "/api/v1/customer/wallet/balance", body={"success": True, "data": {"balance": {"kobo": "n/a"}}})
    http.add("GET", "/api/v1/customer/wallet/transactions", body={"success": True, "data": {
        "transactions": [
            {"id": "txn_bad", "amount": {"kobo": "x"}},
            "not-a-transaction",
            {"id": "txn_ok", "reference": "abc123", "status": "completed", "amount": {"kobo": 500000}},
        ],
        "pagination": {"total": "many", "limit": None},
        "summary": {"netChange": {"kobo": "?"}},
    }})
    http.add("GET", f"{TOPUP}/abc123", body={"success": True, "data": {"transaction": {"amount": {"kobo": []}}}})
    http.add("POST", TOPUP, body={"success": True, "data": {
        "reference": "abc123", "amount": {"kobo": "?"}, "payment": {"url": "https://checkout.example/abc123"},
    }})

    # The dashboard helper records the problem instead of raising
    portal.refresh_balance()
    assert portal.balance is None
    assert portal.balance_error == "Unexpected wallet balance response"

    try:
        portal.wallet.get_balance()
        assert False, "expected PortalError"
    except PortalError as e:
        assert e.message == "Unexpected wallet balance response"

    page = portal.wallet.get_transactions()
    assert [t.id for t in page.transactions] == ["txn_ok"]
    assert page.total == 1 and page.limit == 1
    assert page.summary is None

    try:
        portal.wallet.check_topup_status("abc123")
        assert False, "expected PortalError"
    except PortalError as e:
        assert e.message == "Unexpected top-up status response"

    session = portal.wallet.initiate_topup(5000)
    assert session.payment_url == "https://checkout.example/abc123"
    assert session.amount_kobo == 0
    print(f"   Kept {len(page.transactions)} of 3 entries")

    print(" PASSED: Malformed wallet payloads")


def test_formatting_and_tiers():
    print("\nTEST 13: Formatting and Tiers")
    print("-" * 40)

    assert format_naira(5000) == "₦5,000.00"
    assert format_naira(1234.5) == "₦1,234.50"
    assert format_kobo(500000) == "₦5,000.00"

    assert [t.amount for t in WALLET_TIERS] == [5000, 10000, 25000, 50000, 100000, 250000]
    for tier in WALLET_TIERS:
        assert tier.total_credits == tier.amount + tier.bonus
        assert validate_topup_amount(tier.amount)[0]
    assert [t.amount for t in WALLET_TIERS if t.popular] == [25000]
    assert get_tier(100000).bonus == 15000
    assert get_tier(7) is None

    print(" PASSED: Formatting and tiers")


if __name__ == "__main__":
    import sys

    from support import run_suite

    ok = run_suite("WALLET", [
        test_amount_validation,
        test_invalid_amount_makes_no_call,
        test_initiate_topup,
        test_callback_reference_parsing,
        test_pending_then_success,
        test_flat_verification_bodies,
        test_polling_is_bounded,
        test_missing_reference,
        test_failure_paths,
        test_balance_and_transactions,
        test_transaction_summary,
        test_malformed_wallet_payloads,
        test_formatting_and_tiers,
    ])
    sys.exit(0 if ok else 1)
