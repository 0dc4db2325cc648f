# Config module
from .settings import settings, validate_settings
from .pricing import WALLET_TIERS, WalletTier, get_tier
from .schemas import (
    VerificationStatus,
    PENDING_STATUSES,
    CacVerification,
    VerificationRecord,
    BusinessInfo,
    ComplianceAnswers,
    ContactPerson,
    CustomerProfile,
    AdminUser,
    AuthResult,
    ApiKey,
    Money,
    TopUpStatus,
    WalletTransaction,
    TransactionPage,
    TransactionSummary,
    TopUpSession,
    TopUpVerification,
    EndpointCount,
    UsageStats,
)

__all__ = [
    "settings",
    "validate_settings",
    "WALLET_TIERS",
    "WalletTier",
    "get_tier",
    "VerificationStatus",
    "PENDING_STATUSES",
    "CacVerification",
    "VerificationRecord",
    "BusinessInfo",
    "ComplianceAnswers",
    "ContactPerson",
    "CustomerProfile",
    "AdminUser",
    "AuthResult",
    "ApiKey",
    "Money",
    "TopUpStatus",
    "WalletTransaction",
    "TransactionPage",
    "TransactionSummary",
    "TopUpSession",
    "TopUpVerification",
    "EndpointCount",
    "UsageStats",
]
