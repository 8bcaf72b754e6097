"""
Pydantic models for the pacing dashboard backend.

This module defines the stored record shapes (partner records, billing
breakdowns, funnel snapshots, board activity), the derived read models
(pacing sections and summaries, funnel metrics, financial overviews) and the
result envelopes returned by each reconciliation flow.

Field names are snake_case in Python; API responses are rendered in camelCase
through the alias generator on DashboardModel, matching what dashboard
consumers read (`targetMtd`, `pacePercent`, `datesSynced`, ...).

All models use Pydantic v2 syntax.
"""

from datetime import date as DateType, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from pacing_backend.models.enums import (
    FunnelMode,
    MonthStatus,
    PacingTrend,
    PartnerSide,
    SyncFlow,
)


class DashboardModel(BaseModel):
    """Base model rendering camelCase JSON while accepting snake_case input."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


# =============================================================================
# Stored Records
# =============================================================================


class DailyPartnerRecord(DashboardModel):
    """
    One partner's totals for one day on one side of the marketplace.

    Natural key: (date, partner_name, side). Re-upserting the same key with
    fresher values replaces revenue, cost and impressions in place.
    """
    date: DateType = Field(..., description="Calendar day of the totals")
    partner_name: str = Field(..., min_length=1, description="Partner display name")
    side: PartnerSide = Field(..., description="demand or supply")
    revenue: float = Field(default=0.0, description="Revenue, demand side only")
    cost: float = Field(default=0.0, description="Cost, supply side only")
    impressions: int = Field(default=0, ge=0, description="Impressions served")


class MonthlyBreakdown(DashboardModel):
    """
    Billing actuals for one month, accumulated from the billing ledger.

    Only these five fields are written by billing reconciliation; the goal
    columns of the same monthly_goals row belong to goal import.
    """
    month: DateType = Field(..., description="First day of the month")
    media_revenue: float = Field(default=0.0)
    saas_actual: float = Field(default=0.0)
    media_cost: float = Field(default=0.0)
    tech_cost: float = Field(default=0.0)
    bs_cost: float = Field(default=0.0)


class MonthlyTarget(DashboardModel):
    """Goal values for one month, written by goal import only."""
    month: DateType = Field(..., description="First day of the month")
    revenue_goal: float = Field(default=0.0, description="Media revenue goal")
    saas_goal: float = Field(default=0.0, description="SaaS revenue goal")
    profit_goal: float = Field(default=0.0, description="Profit goal")


class MonthlyGoal(MonthlyTarget):
    """A full monthly_goals row as read back from the store."""
    media_revenue: float = Field(default=0.0)
    saas_actual: float = Field(default=0.0)
    media_cost: float = Field(default=0.0)
    tech_cost: float = Field(default=0.0)
    bs_cost: float = Field(default=0.0)


class FunnelCounts(DashboardModel):
    """Lead-stage counts, widest stage first."""
    total_leads: int = Field(default=0, ge=0)
    qualified_leads: int = Field(default=0, ge=0)
    ops_approved_leads: int = Field(default=0, ge=0)
    won_deals: int = Field(default=0, ge=0)

    def __add__(self, other: "FunnelCounts") -> "FunnelCounts":
        return FunnelCounts(
            total_leads=self.total_leads + other.total_leads,
            qualified_leads=self.qualified_leads + other.qualified_leads,
            ops_approved_leads=self.ops_approved_leads + other.ops_approved_leads,
            won_deals=self.won_deals + other.won_deals,
        )


class DailyFunnelSnapshot(FunnelCounts):
    """
    Point-in-time funnel counts for one day.

    Natural key: date. A snapshot is a count as of the sync run, not a delta,
    so later snapshots in a month supersede earlier ones.
    """
    date: DateType = Field(..., description="Day the snapshot describes")


class ActivityItem(DashboardModel):
    """
    One board item creation event.

    Natural key: (item_id, board_id). created_date is the calendar day of
    created_at in the configured timezone.
    """
    item_id: str = Field(..., min_length=1)
    board_id: str = Field(..., min_length=1)
    created_at: datetime = Field(..., description="Creation timestamp")
    created_date: DateType = Field(..., description="Local calendar day of creation")
    company_name: Optional[str] = Field(
        default=None,
        description="Signed company, contracts board only"
    )


class ClientRevenueRow(DashboardModel):
    """One partner's billed amount for a month and side."""
    month: DateType
    partner_name: str
    side: PartnerSide
    revenue: float = 0.0
    business_entity: Optional[str] = None
    category: Optional[str] = None


# =============================================================================
# Pacing
# =============================================================================


class PacingSection(DashboardModel):
    """
    Pacing figures for one revenue category.

    projected and projected_vs_goal_percent are None for multi-month
    aggregates, where no single run rate exists.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "actual": 5000.0,
                "targetMtd": 5000.0,
                "projected": 14000.0,
                "goal": 14000.0,
                "pacePercent": 100,
                "projectedVsGoalPercent": 100,
                "delta": 0.0,
                "requiredDailyRunRate": 500.0
            }
        }
    )

    actual: float = Field(..., description="Actual amount through dataThroughDate")
    target_mtd: float = Field(..., description="goal x paceTargetRatio")
    projected: Optional[float] = Field(
        default=None,
        description="Straight-line month-end projection"
    )
    goal: float = Field(..., description="Full month goal")
    pace_percent: Optional[int] = Field(
        default=None,
        description="round(actual / targetMtd x 100), None when targetMtd is 0"
    )
    projected_vs_goal_percent: Optional[int] = Field(
        default=None,
        description="round(projected / goal x 100), None when goal is 0"
    )
    delta: float = Field(..., description="actual - targetMtd; positive is ahead of pace")
    required_daily_run_rate: float = Field(
        ...,
        ge=0,
        description="Per-day amount still needed to reach the goal"
    )


class PacingSummary(DashboardModel):
    """Month-to-date pacing for media, SaaS and their total."""
    month: str = Field(..., description="YYYY-MM, or a comma-joined list for multi-month views")
    status: MonthStatus = Field(..., description="closed, open or future")
    days_in_month: int = Field(..., ge=0)
    effective_days_passed: int = Field(..., ge=0)
    days_remaining: int = Field(..., ge=0)
    pace_target_ratio: float = Field(..., ge=0, le=1)
    data_through_date: Optional[DateType] = Field(
        default=None,
        description="Last day included in actuals; None for future months"
    )
    total: PacingSection
    media: PacingSection
    saas: PacingSection


class SectionTrend(DashboardModel):
    """Trend per pacing section."""
    total: PacingTrend = PacingTrend.STABLE
    media: PacingTrend = PacingTrend.STABLE
    saas: PacingTrend = PacingTrend.STABLE


class FinancialPace(PacingSummary):
    """Pacing summary with trend, or an aggregate across several months."""
    trend: SectionTrend = Field(default_factory=SectionTrend)
    is_multi_month: bool = False
    months: List[str] = Field(default_factory=list, description="YYYY-MM of each month included")


# =============================================================================
# Funnel and Activity
# =============================================================================


class ConversionPercentages(DashboardModel):
    """Stage-to-stage conversion, one decimal, None on a zero denominator."""
    lead_to_qualified: Optional[float] = None
    qualified_to_ops: Optional[float] = None
    ops_to_won: Optional[float] = None
    overall_win_rate: Optional[float] = None


class FunnelMetrics(DashboardModel):
    """Funnel counts for the selected months with their conversion rates."""
    mode: FunnelMode
    months: List[str] = Field(default_factory=list, description="Month starts included (per-month mode)")
    counts: FunnelCounts
    conversions: ConversionPercentages
    fallback_months: List[str] = Field(
        default_factory=list,
        description="Months filled from board activity because no snapshot exists"
    )


class ActivityMetrics(DashboardModel):
    """Items created in a date range, independent of pipeline status."""
    new_leads: int = 0
    new_signed_deals: int = 0


class ActivityDailyRow(DashboardModel):
    date: DateType
    total_leads: int = 0
    won_deals: int = 0


class SignedDealCompany(DashboardModel):
    created_date: DateType
    company_name: str


# =============================================================================
# Financial Overviews
# =============================================================================


class MonthOverview(DashboardModel):
    """Billing buckets for one month of the overview year."""
    month: DateType
    media_revenue: float = 0.0
    saas_revenue: float = 0.0
    media_cost: float = 0.0
    tech_cost: float = 0.0
    bs_cost: float = 0.0


class PartnerShare(DashboardModel):
    name: str
    revenue: float
    percent: float = Field(..., description="Share of the side total, one decimal")


class SideConcentration(DashboardModel):
    total: float = 0.0
    partners: List[PartnerShare] = Field(default_factory=list)


class PartnerConcentration(DashboardModel):
    """Top partners per side for a month, with an Others bucket."""
    month: DateType
    demand: SideConcentration
    supply: SideConcentration
    concentration_risk: bool = Field(
        ...,
        description="True when any single partner holds at least the threshold share of its side"
    )


# =============================================================================
# Reconciliation Results
# =============================================================================


class PartnerSyncResult(DashboardModel):
    """Outcome of a partner feed reconciliation."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={"example": {"datesSynced": 10, "rowsUpserted": 412}}
    )

    dates_synced: int = Field(..., ge=0, description="Calendar days fetched")
    rows_upserted: int = Field(..., ge=0, description="Partner records written")


class BillingSyncResult(DashboardModel):
    months_updated: int = Field(..., ge=0)
    rows_skipped: int = Field(default=0, ge=0, description="Malformed ledger rows skipped")


class BoardSyncResult(DashboardModel):
    funnel_rows: int = Field(..., ge=0, description="Daily funnel rows upserted")
    activity_rows: int = Field(..., ge=0, description="Activity items upserted")


class GoalImportResult(DashboardModel):
    months_updated: int = Field(..., ge=0)


class ClientBreakdownSyncResult(DashboardModel):
    months_updated: int = Field(..., ge=0)
    rows_inserted: int = Field(..., ge=0)


class FlowOutcome(DashboardModel):
    """Result or error of one flow inside a multi-flow sync."""
    flow: SyncFlow
    ok: bool
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


class SyncSummary(DashboardModel):
    """Per-flow outcomes of a sync trigger."""
    started_at: datetime
    finished_at: datetime
    outcomes: List[FlowOutcome] = Field(default_factory=list)

    @property
    def all_ok(self) -> bool:
        return all(o.ok for o in self.outcomes)

    @property
    def any_ok(self) -> bool:
        return any(o.ok for o in self.outcomes)


class ErrorResponse(DashboardModel):
    """Body returned for mapped errors."""
    error: str
    detail: str
