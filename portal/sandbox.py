"""
Sandbox backend for the Business Verification Portal.

An in-memory FastAPI implementation of the platform's REST contract:
- Customer auth (login, signup, password reset, profile)
- Four-step business verification with server-side step ordering
- Wallet balance, history and hosted-payment top-ups
- Usage counters and API keys
- Admin sign-in

Top-ups settle on verification: the first SANDBOX_PENDING_POLLS verify
calls answer "pending", the next one credits the wallet. There is no real
payment page; the payment URL points straight back at the callback route.

Run standalone with:  uvicorn portal.sandbox:app --port 3000
"""

import logging
import secrets
from collections import Counter
from datetime import datetime, timezone
from typing import Dict, List, Optional

from fastapi import Depends, FastAPI, Header, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from config.schemas import (
    BusinessInfo,
    ComplianceAnswers,
    ContactPerson,
    VerificationStatus,
)
from config.settings import settings
from portal.errors import RATE_LIMIT_EXCEEDED, SESSION_EXPIRED, VALIDATION_ERROR
from portal.wallet import callback_url, format_naira, validate_topup_amount

logger = logging.getLogger(__name__)


NOT_FOUND = "NOT_FOUND"
CONFLICT = "CONFLICT"
INVALID_CREDENTIALS = "INVALID_CREDENTIALS"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _money(kobo: int) -> dict:
    return {"kobo": kobo, "naira": kobo / 100, "formatted": format_naira(kobo / 100)}


def _ok(data: dict) -> dict:
    return {"success": True, "data": data}


class ApiFailure(Exception):
    """Rendered as the {success: false, error: {...}} envelope."""

    def __init__(self, status_code: int, code: str, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message
        self.details = details


# ============================================================================
# REQUEST MODELS
# ============================================================================

class Credentials(BaseModel):
    email: str = ""
    password: str = ""


class SignupRequest(BaseModel):
    email: str = ""
    password: str = ""
    company: Optional[str] = None
    plan: Optional[str] = None
    full_name: Optional[str] = None
    nin_bvn: Optional[str] = None
    phone_number: Optional[str] = None
    id_document: Optional[str] = None


class ForgotPasswordRequest(BaseModel):
    email: str = ""


class ResetPasswordRequest(BaseModel):
    token: str = ""
    password: str = ""


class ProfileUpdate(BaseModel):
    company: Optional[str] = None
    phoneNumber: Optional[str] = None


class TopUpRequest(BaseModel):
    amount: Optional[float] = None
    callbackUrl: Optional[str] = None


class CreateKeyRequest(BaseModel):
    name: Optional[str] = None


# ============================================================================
# STATE
# ============================================================================

class SandboxState:
    """Everything the sandbox knows. One instance per app."""

    def __init__(self, pending_polls: int):
        self.pending_polls = pending_polls
        self.customers: Dict[str, dict] = {}        # id -> customer
        self.emails: Dict[str, str] = {}            # email -> id
        self.tokens: Dict[str, str] = {}            # token -> customer id
        self.admin_tokens: Dict[str, dict] = {}     # token -> admin
        self.reset_tokens: Dict[str, str] = {}      # reset token -> customer id
        self.topups: Dict[str, dict] = {}           # reference -> top-up
        self.api_keys: Dict[str, dict] = {}         # key id -> key
        self.admins: Dict[str, dict] = {}           # email -> admin
        self.rate_limit: Optional[int] = None       # max calls per customer, None = unlimited

    # -- customers -----------------------------------------------------------

    def add_customer(self, email: str, password: str, **profile) -> dict:
        customer_id = f"cus_{secrets.token_hex(6)}"
        customer = {
            "id": customer_id,
            "email": email,
            "password": password,
            "company": profile.get("company"),
            "fullName": profile.get("full_name"),
            "phoneNumber": profile.get("phone_number"),
            "plan": profile.get("plan") or "basic",
            "status": "active",
            "createdAt": _now(),
            "walletKobo": 0,
            "verification": {"status": VerificationStatus.INACTIVE.value},
            "steps": {},
            "calls": Counter(),
            "failedCalls": 0,
        }
        self.customers[customer_id] = customer
        self.emails[email.lower()] = customer_id
        return customer

    def customer_by_email(self, email: str) -> Optional[dict]:
        customer_id = self.emails.get((email or "").lower())
        return self.customers.get(customer_id) if customer_id else None

    def issue_token(self, customer: dict) -> str:
        token = secrets.token_urlsafe(24)
        self.tokens[token] = customer["id"]
        return token

    def revoke_tokens(self, email: str) -> None:
        """Invalidate every session of a customer (simulates expiry)."""
        customer = self.customer_by_email(email)
        if customer is None:
            return
        for token in [t for t, cid in self.tokens.items() if cid == customer["id"]]:
            del self.tokens[token]

    def set_verification_status(self, email: str, status: VerificationStatus, reason: Optional[str] = None) -> None:
        """Move a customer's verification, the way an operator would."""
        customer = self.customer_by_email(email)
        if customer is None:
            raise KeyError(email)
        customer["verification"]["status"] = status.value
        customer["verification"]["reviewedAt"] = _now()
        if reason:
            customer["verification"]["rejectionReason"] = reason

    # -- wallet --------------------------------------------------------------

    def fail_topup(self, reference: str, gateway_response: str = "Declined") -> None:
        topup = self.topups[reference]
        topup["status"] = "failed"
        topup["gatewayResponse"] = gateway_response

    def customer_transactions(self, customer: dict) -> List[dict]:
        entries = [t for t in self.topups.values() if t["customerId"] == customer["id"]]
        return sorted(entries, key=lambda t: t["createdAt"], reverse=True)


def _transaction_view(topup: dict) -> dict:
    return {
        "id": topup["id"],
        "type": "credit",
        "amount": _money(topup["kobo"]),
        "description": "Wallet top-up",
        "reference": topup["reference"],
        "status": topup["status"],
        "paymentMethod": "paystack",
        "createdAt": topup["createdAt"],
        "completedAt": topup.get("completedAt"),
    }


def _profile_view(customer: dict) -> dict:
    return {
        "id": customer["id"],
        "email": customer["email"],
        "company": customer["company"],
        "fullName": customer["fullName"],
        "phoneNumber": customer["phoneNumber"],
        "walletBalance": customer["walletKobo"] / 100,
        "status": customer["status"],
        "verificationStatus": customer["verification"]["status"],
        "createdAt": customer["createdAt"],
        "plan": customer["plan"],
    }


def _usage_view(customer: dict) -> dict:
    total = sum(customer["calls"].values())
    failed = min(customer["failedCalls"], total)
    successful = total - failed
    return {
        "requestsThisMonth": total,
        "requestsToday": total,
        "totalCalls": total,
        "successfulCalls": successful,
        "failedCalls": failed,
        "successRate": round(successful / total * 100, 2) if total else 0.0,
        "errorRate": round(failed / total * 100, 2) if total else 0.0,
        "popularEndpoints": [
            {"endpoint": endpoint, "count": count}
            for endpoint, count in customer["calls"].most_common(5)
        ],
        "lastCallAt": customer.get("lastCallAt"),
    }


def _require_fields(model: BaseModel, required: List[str]) -> None:
    missing = [name for name in required if not str(getattr(model, name) or "").strip()]
    if missing:
        raise ApiFailure(
            400,
            VALIDATION_ERROR,
            f"{missing[0].replace('_', ' ').capitalize()} is required",
            details={"fields": missing},
        )


# ============================================================================
# APP FACTORY
# ============================================================================

def create_sandbox_app(pending_polls: Optional[int] = None, seed_demo: bool = True) -> FastAPI:
    """
    Build a fresh sandbox with its own state (exposed as app.state.sandbox).

    Args:
        pending_polls: verify calls answered "pending" before a top-up settles
        seed_demo: create the demo customer and admin from settings
    """
    state = SandboxState(settings.SANDBOX_PENDING_POLLS if pending_polls is None else pending_polls)

    if seed_demo:
        if settings.SANDBOX_DEMO_EMAIL and settings.SANDBOX_DEMO_PASSWORD:
            state.add_customer(settings.SANDBOX_DEMO_EMAIL, settings.SANDBOX_DEMO_PASSWORD, company="Demo Ventures Ltd")
        if settings.SANDBOX_ADMIN_EMAIL and settings.SANDBOX_ADMIN_PASSWORD:
            state.admins[settings.SANDBOX_ADMIN_EMAIL.lower()] = {
                "id": "adm_1",
                "email": settings.SANDBOX_ADMIN_EMAIL,
                "password": settings.SANDBOX_ADMIN_PASSWORD,
                "role": "super_admin",
                "permissions": ["customers:read", "customers:write", "verification:review"],
            }

    app = FastAPI(
        title="Verification Platform Sandbox",
        description="In-memory implementation of the customer portal API",
        version="1.0.0",
    )
    app.state.sandbox = state

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ------------------------------------------------------------------------
    # Error envelope
    # ------------------------------------------------------------------------

    @app.exception_handler(ApiFailure)
    async def api_failure_handler(request: Request, exc: ApiFailure):
        customer_id = getattr(request.state, "customer_id", None)
        if customer_id in state.customers:
            state.customers[customer_id]["failedCalls"] += 1
        error = {"code": exc.code, "message": exc.message}
        if exc.details:
            error["details"] = exc.details
        return JSONResponse(status_code=exc.status_code, content={"success": False, "error": error})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={
                "success": False,
                "error": {"code": VALIDATION_ERROR, "message": "Invalid request body", "details": jsonable_encoder(exc.errors())},
            },
        )

    # ------------------------------------------------------------------------
    # Dependencies
    # ------------------------------------------------------------------------

    def current_customer(request: Request, authorization: Optional[str] = Header(None)) -> dict:
        token = (authorization or "").removeprefix("Bearer ").strip()
        customer_id = state.tokens.get(token)
        if not customer_id:
            raise ApiFailure(401, SESSION_EXPIRED, "Unauthorized")

        customer = state.customers[customer_id]
        if state.rate_limit is not None and sum(customer["calls"].values()) >= state.rate_limit:
            raise ApiFailure(429, RATE_LIMIT_EXCEEDED, "Too many requests. Please slow down.")

        request.state.customer_id = customer_id
        customer["calls"][request.url.path] += 1
        customer["lastCallAt"] = _now()
        return customer

    def step_gate(customer: dict, step: int) -> None:
        status = customer["verification"]["status"]
        if status not in (VerificationStatus.INACTIVE.value, VerificationStatus.REJECTED.value):
            raise ApiFailure(400, VALIDATION_ERROR, f"Verification already submitted (status: {status})")
        for earlier in range(1, step):
            if earlier not in customer["steps"]:
                raise ApiFailure(400, VALIDATION_ERROR, f"Please complete step {earlier} first")

    # ------------------------------------------------------------------------
    # Customer auth
    # ------------------------------------------------------------------------

    @app.post("/api/v1/customer/auth/login")
    async def login(body: Credentials):
        customer = state.customer_by_email(body.email)
        if customer is None or customer["password"] != body.password:
            raise ApiFailure(401, INVALID_CREDENTIALS, "Invalid email or password")
        token = state.issue_token(customer)
        logger.info(f"[Sandbox] Customer {customer['id']} signed in")
        return _ok({"token": token, "customer": _profile_view(customer)})

    @app.post("/api/v1/customer/auth/signup", status_code=201)
    async def signup(body: SignupRequest):
        _require_fields(body, ["email", "password"])
        if len(body.password) < 8:
            raise ApiFailure(400, VALIDATION_ERROR, "Password must be at least 8 characters")
        if state.customer_by_email(body.email):
            raise ApiFailure(409, CONFLICT, "An account with this email already exists")
        customer = state.add_customer(
            body.email,
            body.password,
            company=body.company,
            full_name=body.full_name,
            phone_number=body.phone_number,
            plan=body.plan,
        )
        return _ok({"customer": _profile_view(customer), "message": "Account created"})

    @app.post("/api/v1/customer/auth/forgot-password")
    async def forgot_password(body: ForgotPasswordRequest):
        customer = state.customer_by_email(body.email)
        if customer is None:
            return _ok({"message": "If this email exists in our system, a password reset link will be sent."})
        reset_token = secrets.token_urlsafe(16)
        state.reset_tokens[reset_token] = customer["id"]
        base = settings.APP_BASE_URL.rstrip("/")
        return _ok({
            "message": "Password reset link generated",
            "resetLink": f"{base}/?route=/customer/reset-password&token={reset_token}",
        })

    @app.post("/api/v1/customer/auth/reset-password")
    async def reset_password(body: ResetPasswordRequest):
        customer_id = state.reset_tokens.pop(body.token, None)
        if customer_id is None:
            raise ApiFailure(400, VALIDATION_ERROR, "Reset link is invalid or has expired")
        if len(body.password) < 8:
            raise ApiFailure(400, VALIDATION_ERROR, "Password must be at least 8 characters")
        state.customers[customer_id]["password"] = body.password
        return _ok({"message": "Password updated successfully. You can now log in."})

    @app.get("/api/v1/customer/me")
    async def get_me(customer: dict = Depends(current_customer)):
        return _ok({"customer": _profile_view(customer)})

    @app.put("/api/v1/customer/me")
    async def update_me(body: ProfileUpdate, customer: dict = Depends(current_customer)):
        if body.company is not None:
            customer["company"] = body.company
        if body.phoneNumber is not None:
            customer["phoneNumber"] = body.phoneNumber
        return _ok({"customer": _profile_view(customer)})

    # ------------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------------

    @app.get("/api/v1/customer/verification/status")
    async def verification_status(customer: dict = Depends(current_customer)):
        return _ok(dict(customer["verification"]))

    @app.post("/api/v1/customer/verification/submit-business-info")
    async def submit_business_info(body: BusinessInfo, customer: dict = Depends(current_customer)):
        step_gate(customer, 1)
        _require_fields(body, list(BusinessInfo.model_fields))
        customer["steps"] = {1: body.to_payload()}
        return _ok({"message": "Business information saved", "step": 1})

    @app.post("/api/v1/customer/verification/submit-compliance")
    async def submit_compliance(body: ComplianceAnswers, customer: dict = Depends(current_customer)):
        step_gate(customer, 2)
        _require_fields(body, ["countries_of_operation"])
        customer["steps"][2] = body.to_payload()
        return _ok({"message": "Compliance answers saved", "step": 2})

    @app.post("/api/v1/customer/verification/submit-contact-person")
    async def submit_contact_person(body: ContactPerson, customer: dict = Depends(current_customer)):
        step_gate(customer, 3)
        _require_fields(body, ["full_name", "email", "phone", "job_title"])
        customer["steps"][3] = body.to_payload()
        return _ok({"message": "Contact person saved", "step": 3})

    @app.post("/api/v1/customer/verification/complete")
    async def complete_verification(customer: dict = Depends(current_customer)):
        step_gate(customer, 4)
        business = customer["steps"][1]
        # A resubmission after rejection starts again from step 1
        customer["steps"] = {}
        customer["verification"] = {
            "status": VerificationStatus.ADMIN_REVIEW.value,
            "submittedAt": _now(),
            "cacVerification": {
                "verified": True,
                "companyName": business["companyName"],
                "rcNumber": business["rcNumber"],
                "verifiedAt": _now(),
            },
        }
        logger.info(f"[Sandbox] Verification submitted for {customer['id']}")
        return _ok({
            "message": "Verification submitted successfully! Your CAC registration has been verified.",
            "status": VerificationStatus.ADMIN_REVIEW.value,
        })

    # ------------------------------------------------------------------------
    # Wallet
    # ------------------------------------------------------------------------

    @app.get("/api/v1/customer/wallet/balance")
    async def wallet_balance(customer: dict = Depends(current_customer)):
        return _ok({"balance": _money(customer["walletKobo"])})

    @app.get("/api/v1/customer/wallet/transactions")
    async def wallet_transactions(limit: int = 20, offset: int = 0, customer: dict = Depends(current_customer)):
        entries = state.customer_transactions(customer)
        page = entries[offset:offset + limit]
        credits = sum(t["kobo"] for t in entries if t["status"] == "completed")
        return _ok({
            "transactions": [_transaction_view(t) for t in page],
            "pagination": {
                "total": len(entries),
                "limit": limit,
                "offset": offset,
                "hasMore": offset + limit < len(entries),
            },
            "summary": {
                "totalCredits": _money(credits),
                "totalDebits": _money(0),
                "netChange": _money(credits),
            },
        })

    @app.post("/api/v1/customer/wallet/topup")
    async def initiate_topup(body: TopUpRequest, customer: dict = Depends(current_customer)):
        is_valid, error = validate_topup_amount(body.amount)
        if not is_valid:
            raise ApiFailure(400, VALIDATION_ERROR, error)

        reference = f"TOPUP_{secrets.token_hex(8).upper()}"
        kobo = int(round(body.amount * 100))
        state.topups[reference] = {
            "id": f"txn_{secrets.token_hex(6)}",
            "reference": reference,
            "customerId": customer["id"],
            "kobo": kobo,
            "status": "pending",
            "polls": 0,
            "createdAt": _now(),
        }

        target = body.callbackUrl or callback_url()
        separator = "&" if "?" in target else "?"
        payment_url = f"{target}{separator}reference={reference}&trxref={reference}"
        return _ok({
            "reference": reference,
            "amount": _money(kobo),
            "payment": {"url": payment_url, "accessCode": secrets.token_hex(6), "reference": reference},
            "publicKey": "pk_test_sandbox",
        })

    @app.get("/api/v1/customer/wallet/topup/verify/{reference}")
    async def verify_topup(reference: str):
        topup = state.topups.get(reference)
        if topup is None:
            raise ApiFailure(404, NOT_FOUND, "Transaction not found")

        if topup["status"] == "pending":
            topup["polls"] += 1
            if topup["polls"] > state.pending_polls:
                topup["status"] = "completed"
                topup["completedAt"] = _now()
                state.customers[topup["customerId"]]["walletKobo"] += topup["kobo"]
                logger.info(f"[Sandbox] Top-up {reference} settled")

        processor_status = {"completed": "success", "pending": "pending"}.get(topup["status"], topup["status"])
        return _ok({
            "transaction": _transaction_view(topup),
            "paystackStatus": {
                "status": processor_status,
                "gatewayResponse": topup.get("gatewayResponse") or ("Successful" if processor_status == "success" else None),
            },
        })

    @app.get("/api/v1/customer/wallet/topup/{reference}")
    async def topup_status(reference: str, customer: dict = Depends(current_customer)):
        topup = state.topups.get(reference)
        if topup is None or topup["customerId"] != customer["id"]:
            raise ApiFailure(404, NOT_FOUND, "Transaction not found")
        return _ok({"transaction": _transaction_view(topup)})

    # ------------------------------------------------------------------------
    # Usage & API keys
    # ------------------------------------------------------------------------

    @app.get("/api/v1/customer/usage")
    async def usage(customer: dict = Depends(current_customer)):
        return _ok({"usage": _usage_view(customer)})

    @app.get("/api/v1/customer/api-keys")
    async def list_api_keys(customer: dict = Depends(current_customer)):
        keys = [
            {k: v for k, v in key.items() if k != "customerId"}
            for key in state.api_keys.values()
            if key["customerId"] == customer["id"]
        ]
        return _ok({"keys": keys})

    @app.post("/api/v1/customer/api-keys", status_code=201)
    async def create_api_key(body: CreateKeyRequest, customer: dict = Depends(current_customer)):
        token = f"vk_live_{secrets.token_urlsafe(24)}"
        key = {
            "id": f"key_{secrets.token_hex(6)}",
            "name": body.name or "Default key",
            "prefix": token[:12],
            "status": "active",
            "createdAt": _now(),
            "lastUsedAt": None,
            "customerId": customer["id"],
        }
        state.api_keys[key["id"]] = key
        public = {k: v for k, v in key.items() if k != "customerId"}
        return _ok({"key": public, "token": token})

    @app.delete("/api/v1/customer/api-keys/{key_id}")
    async def revoke_api_key(key_id: str, customer: dict = Depends(current_customer)):
        key = state.api_keys.get(key_id)
        if key is None or key["customerId"] != customer["id"]:
            raise ApiFailure(404, NOT_FOUND, "API key not found")
        key["status"] = "revoked"
        return _ok({"message": "API key revoked"})

    # ------------------------------------------------------------------------
    # Admin
    # ------------------------------------------------------------------------

    @app.post("/api/v1/admin/auth/login")
    async def admin_login(body: Credentials):
        admin = state.admins.get((body.email or "").lower())
        if admin is None or admin["password"] != body.password:
            raise ApiFailure(401, INVALID_CREDENTIALS, "Invalid email or password")
        token = secrets.token_urlsafe(24)
        public = {k: v for k, v in admin.items() if k != "password"}
        state.admin_tokens[token] = public
        return _ok({"token": token, "admin": public})

    @app.get("/health")
    async def health():
        return {"status": "healthy", "api_version": "1.0.0"}

    return app


# Default instance for uvicorn
app = create_sandbox_app()


# ============================================================================
# RUN SERVER
# ============================================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=3000)
