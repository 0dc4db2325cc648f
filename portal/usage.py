"""
Usage Stats Cache - API usage counters for the signed-in customer.

Provides:
- Memoised usage stats, refreshed on demand
- Health levels from the error rate (green < 5%, yellow 5-14%, red 15%+)
- Empty stats instead of an exception when the fetch fails
"""

import logging
from enum import Enum
from typing import Optional

from config.schemas import UsageStats
from portal.api_client import ApiClient
from portal.envelopes import extract_usage
from portal.errors import PortalError, SessionExpired

logger = logging.getLogger(__name__)


USAGE_PATH = "/api/v1/customer/usage"


class UsageLevel(Enum):
    """Error-rate health of the customer's traffic."""
    GREEN = "green"      # < 5% failed
    YELLOW = "yellow"    # 5-14% failed
    RED = "red"          # 15%+ failed


WARNING_ERROR_RATE = 5.0
CRITICAL_ERROR_RATE = 15.0


def usage_level(stats: UsageStats) -> UsageLevel:
    if stats.error_rate >= CRITICAL_ERROR_RATE:
        return UsageLevel.RED
    if stats.error_rate >= WARNING_ERROR_RATE:
        return UsageLevel.YELLOW
    return UsageLevel.GREEN


class UsageStatsCache:
    """Last known usage stats. refresh() never raises."""

    def __init__(self, api: ApiClient):
        self.api = api
        self.data: Optional[UsageStats] = None
        self.loading = False
        self.error: Optional[str] = None

    def refresh(self) -> None:
        if not self.api.token:
            self.data = None
            return

        self.loading = True
        self.error = None
        try:
            stats = extract_usage(self.api.get(USAGE_PATH))
            if stats is None:
                raise PortalError("Unexpected usage response")
            self.data = stats
            logger.info(f"[Usage] {stats.requests_today} today, {stats.requests_this_month} this month")
        except SessionExpired:
            self.data = None
        except PortalError as e:
            logger.error(f"[Usage] Error fetching usage: {e}")
            self.error = e.message or "Failed to fetch usage statistics"
            self.data = UsageStats()
        finally:
            self.loading = False

    @property
    def stats(self) -> UsageStats:
        return self.data or UsageStats()

    @property
    def level(self) -> UsageLevel:
        return usage_level(self.stats)
