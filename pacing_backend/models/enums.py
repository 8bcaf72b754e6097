"""
Enumeration definitions for the pacing dashboard backend.

All enums inherit from both `str` and `Enum` so they serialize as plain strings
in pydantic models and API responses, and can be passed straight into SQL
parameters.
"""

from enum import Enum


class PartnerSide(str, Enum):
    """
    Side of the ad-operations marketplace a partner sits on.

    - demand: revenue-generating partners (advertisers, DSPs)
    - supply: cost-incurring partners (publishers, SSPs)

    Demand rows carry only revenue and supply rows carry only cost; the same
    partner name may appear on both sides as two distinct records.
    """
    DEMAND = "demand"
    SUPPLY = "supply"


class MonthStatus(str, Enum):
    """
    Position of a calendar month relative to the reference date.

    - closed: entirely before the reference month, treated as 100% complete
    - open: the reference month, completion follows the N-1 rule
    - future: after the reference month, nothing elapsed yet
    """
    CLOSED = "closed"
    OPEN = "open"
    FUTURE = "future"


class PacingTrend(str, Enum):
    """Direction of pacePercent against the comparison summary."""
    UP = "up"
    DOWN = "down"
    STABLE = "stable"


class TrendBasis(str, Enum):
    """
    What a single-month pace is compared against for its trend.

    - prior_month: the previous calendar month's pacing
    - prior_day: the same month computed as of the day before
    """
    PRIOR_MONTH = "prior_month"
    PRIOR_DAY = "prior_day"


class SyncFlow(str, Enum):
    """
    Reconciliation flows the sync orchestrator can run.

    The first three are the default set run by the scheduled trigger; goal
    import and client breakdown run when requested explicitly.
    """
    PARTNER_FEED = "partner_feed"
    BILLING = "billing"
    BOARD = "board"
    GOALS = "goals"
    CLIENT_BREAKDOWN = "client_breakdown"


DEFAULT_SYNC_FLOWS = (SyncFlow.PARTNER_FEED, SyncFlow.BILLING, SyncFlow.BOARD)


class FunnelMode(str, Enum):
    """
    How funnel counts are gathered.

    - per_month: latest snapshot within each selected month, summed
    - all_time: every snapshot row summed
    """
    PER_MONTH = "per_month"
    ALL_TIME = "all_time"


class BillingBucket(str, Enum):
    """
    The five billing actuals kept on a monthly_goals row.

    Values are the column names they are stored under.
    """
    MEDIA_REVENUE = "media_revenue"
    SAAS_ACTUAL = "saas_actual"
    MEDIA_COST = "media_cost"
    TECH_COST = "tech_cost"
    BS_COST = "bs_cost"

