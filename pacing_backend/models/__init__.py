"""
Package initialization file for pacing dashboard models.

Re-exports every enumeration and pydantic schema so other modules can import
them from pacing_backend.models directly:

    from pacing_backend.models import (
        PartnerSide,
        PacingSummary,
        DailyPartnerRecord,
    )
"""

# =============================================================================
# Enums - Import and re-export all enumerations from enums.py
# =============================================================================

from pacing_backend.models.enums import (
    PartnerSide,
    MonthStatus,
    PacingTrend,
    TrendBasis,
    SyncFlow,
    DEFAULT_SYNC_FLOWS,
    FunnelMode,
    BillingBucket,
)


# =============================================================================
# Schemas - Import and re-export all Pydantic models from schemas.py
# =============================================================================

from pacing_backend.models.schemas import (
    DashboardModel,
    # -------------------------------------------------------------------------
    # Stored records
    # -------------------------------------------------------------------------
    DailyPartnerRecord,
    MonthlyBreakdown,
    MonthlyTarget,
    MonthlyGoal,
    FunnelCounts,
    DailyFunnelSnapshot,
    ActivityItem,
    ClientRevenueRow,

    # -------------------------------------------------------------------------
    # Pacing
    # -------------------------------------------------------------------------
    PacingSection,
    PacingSummary,
    SectionTrend,
    FinancialPace,

    # -------------------------------------------------------------------------
    # Funnel and activity
    # -------------------------------------------------------------------------
    ConversionPercentages,
    FunnelMetrics,
    ActivityMetrics,
    ActivityDailyRow,
    SignedDealCompany,

    # -------------------------------------------------------------------------
    # Financial overviews
    # -------------------------------------------------------------------------
    MonthOverview,
    PartnerShare,
    SideConcentration,
    PartnerConcentration,

    # -------------------------------------------------------------------------
    # Reconciliation results
    # -------------------------------------------------------------------------
    PartnerSyncResult,
    BillingSyncResult,
    BoardSyncResult,
    GoalImportResult,
    ClientBreakdownSyncResult,
    FlowOutcome,
    SyncSummary,
    ErrorResponse,
)


__all__ = [
    # =========================================================================
    # Enums
    # =========================================================================
    "PartnerSide",
    "MonthStatus",
    "PacingTrend",
    "TrendBasis",
    "SyncFlow",
    "DEFAULT_SYNC_FLOWS",
    "FunnelMode",
    "BillingBucket",

    # =========================================================================
    # Schemas
    # =========================================================================
    "DashboardModel",
    "DailyPartnerRecord",
    "MonthlyBreakdown",
    "MonthlyTarget",
    "MonthlyGoal",
    "FunnelCounts",
    "DailyFunnelSnapshot",
    "ActivityItem",
    "ClientRevenueRow",
    "PacingSection",
    "PacingSummary",
    "SectionTrend",
    "FinancialPace",
    "ConversionPercentages",
    "FunnelMetrics",
    "ActivityMetrics",
    "ActivityDailyRow",
    "SignedDealCompany",
    "MonthOverview",
    "PartnerShare",
    "SideConcentration",
    "PartnerConcentration",
    "PartnerSyncResult",
    "BillingSyncResult",
    "BoardSyncResult",
    "GoalImportResult",
    "ClientBreakdownSyncResult",
    "FlowOutcome",
    "SyncSummary",
    "ErrorResponse",
]
