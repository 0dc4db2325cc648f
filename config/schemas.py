"""
Domain records for the verification portal.

These models describe what the REST backend sends and accepts. Wire keys are
camelCase; attributes are snake_case. Unknown keys from the backend are
ignored so that additive API changes never break the portal.
"""

from enum import Enum
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base for records exchanged with the backend."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        extra="ignore",
    )

    def to_payload(self) -> dict:
        """Serialize with the backend's camelCase keys."""
        return self.model_dump(by_alias=True, mode="json")


# ============================================================================
# VERIFICATION
# ============================================================================

class VerificationStatus(str, Enum):
    """Server-owned progress of a customer's business verification."""
    INACTIVE = "inactive"          # Not started (or never submitted)
    PENDING = "pending"            # Submitted, awaiting processing
    CAC_PENDING = "cac_pending"    # CAC registry check in progress
    ADMIN_REVIEW = "admin_review"  # CAC verified, awaiting admin review
    VERIFIED = "verified"
    REJECTED = "rejected"


PENDING_STATUSES = frozenset({
    VerificationStatus.PENDING,
    VerificationStatus.CAC_PENDING,
    VerificationStatus.ADMIN_REVIEW,
})


class CacVerification(WireModel):
    """Result of the Corporate Affairs Commission registry check."""
    verified: bool = False
    company_name: Optional[str] = None
    rc_number: Optional[str] = None
    verified_at: Optional[str] = None


class VerificationRecord(WireModel):
    """Verification state as reported by the backend."""
    status: VerificationStatus = VerificationStatus.INACTIVE
    submitted_at: Optional[str] = None
    reviewed_at: Optional[str] = None
    rejection_reason: Optional[str] = None
    cac_verification: Optional[CacVerification] = None


class BusinessInfo(WireModel):
    """Step 1 of the verification wizard."""
    rc_number: str = ""
    company_name: str = ""
    business_address: str = ""
    business_email: str = ""
    business_phone: str = ""
    director_name: str = ""
    year_of_incorporation: str = ""
    nature_of_business: str = ""


class ComplianceAnswers(WireModel):
    """Step 2 of the verification wizard. Yes/no answers default to No."""
    requires_license: bool = False
    aml_compliance: bool = False
    aml_sanctions: bool = False
    data_protection_policies: bool = False
    data_security_measures: bool = False
    international_data_transfer: bool = False
    alternate_database: bool = False
    regulated_by_authority: bool = False
    fraud_prevention_policies: bool = False
    nda_with_employees: bool = False
    data_breach_sanctions: bool = False
    countries_of_operation: str = ""
    other_purpose_usage: bool = False
    regulatory_sanctions: bool = False


class ContactPerson(WireModel):
    """Step 3 of the verification wizard."""
    full_name: str = ""
    email: str = ""
    phone: str = ""
    job_title: str = ""
    website: Optional[str] = ""


# ============================================================================
# ACCOUNTS
# ============================================================================

class CustomerProfile(WireModel):
    """Profile snapshot returned by /customer/me."""
    id: str
    email: str
    company: Optional[str] = None
    full_name: Optional[str] = None
    phone_number: Optional[str] = None
    wallet_balance: Optional[float] = None
    status: str = "active"
    verification_status: Optional[str] = None
    created_at: Optional[str] = None
    plan: Optional[str] = None


class AdminUser(WireModel):
    """Signed-in admin operator."""
    id: str
    email: str
    role: str = "admin"
    permissions: List[str] = Field(default_factory=list)


class AuthResult(BaseModel):
    """Outcome of an auth action. Never carries an exception."""
    ok: bool
    message: Optional[str] = None


class ApiKey(WireModel):
    """Customer API key (the secret is only shown once, at creation)."""
    id: str
    name: Optional[str] = None
    prefix: Optional[str] = None
    status: str = "active"
    created_at: Optional[str] = None
    last_used_at: Optional[str] = None


# ============================================================================
# WALLET
# ============================================================================

class Money(WireModel):
    """Amount in kobo with its naira value and display string."""
    kobo: int = 0
    naira: float = 0.0
    formatted: str = ""


class TopUpStatus(str, Enum):
    """Payment state of a top-up, as resolved by verification."""
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    ABANDONED = "abandoned"


class WalletTransaction(WireModel):
    """Single wallet ledger entry."""
    id: Optional[str] = None
    type: str = "credit"
    amount: Money = Field(default_factory=Money)
    description: str = ""
    reference: str = ""
    status: str = "pending"
    payment_method: Optional[str] = None
    created_at: Optional[str] = None
    completed_at: Optional[str] = None


class TransactionSummary(WireModel):
    """Totals over the whole history, not just the current page."""
    total_credits: Money = Field(default_factory=Money)
    total_debits: Money = Field(default_factory=Money)
    net_change: Money = Field(default_factory=Money)


class TransactionPage(BaseModel):
    """One page of wallet history."""
    transactions: List[WalletTransaction] = Field(default_factory=list)
    total: int = 0
    limit: int = 20
    offset: int = 0
    has_more: bool = False
    summary: Optional[TransactionSummary] = None


class TopUpSession(BaseModel):
    """
    A hosted-payment session allocated by the backend.
    The reference correlates the redirect round-trip with verification.
    """
    reference: str
    amount_kobo: int
    amount: Money = Field(default_factory=Money)
    payment_url: str
    access_code: Optional[str] = None
    public_key: Optional[str] = None
    status: TopUpStatus = TopUpStatus.PENDING


class TopUpVerification(BaseModel):
    """Normalised answer of the public verification endpoint."""
    verified: bool
    status: TopUpStatus
    message: str
    amount: Optional[Money] = None
    transaction: Optional[WalletTransaction] = None


# ============================================================================
# USAGE
# ============================================================================

class EndpointCount(WireModel):
    endpoint: str
    count: int = 0


class UsageStats(WireModel):
    """API usage counters for the signed-in customer."""
    requests_this_month: int = 0
    requests_today: int = 0
    total_calls: int = 0
    successful_calls: int = 0
    failed_calls: int = 0
    success_rate: float = 0.0
    error_rate: float = 0.0
    popular_endpoints: List[EndpointCount] = Field(default_factory=list)
    last_call_at: Optional[str] = None
