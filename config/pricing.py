"""
Prepaid wallet tiers offered on the wallet page.
"""

from typing import List, Optional
from pydantic import BaseModel


class WalletTier(BaseModel):
    """Preset top-up amount with bonus credits (all values in naira)."""
    amount: int
    bonus: int = 0
    total_credits: int
    popular: bool = False


WALLET_TIERS: List[WalletTier] = [
    WalletTier(amount=5000, bonus=0, total_credits=5000),
    WalletTier(amount=10000, bonus=500, total_credits=10500),
    WalletTier(amount=25000, bonus=2000, total_credits=27000, popular=True),
    WalletTier(amount=50000, bonus=5000, total_credits=55000),
    WalletTier(amount=100000, bonus=15000, total_credits=115000),
    WalletTier(amount=250000, bonus=50000, total_credits=300000),
]


def get_tier(amount: int) -> Optional[WalletTier]:
    """Return the preset tier for an amount, if any."""
    return next((t for t in WALLET_TIERS if t.amount == amount), None)
