"""
FastAPI router for the sales funnel and board activity.

Endpoints:
- GET /funnel?months=&all_time=           funnel counts and conversions
- GET /activity?months=                   new leads and signed deals in the months
- GET /activity/daily?start=&end=         per-day creation counts
- GET /activity/signed-deals?start=&end=  signed companies by creation day
"""

import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Query

from pacing_backend.api.params import split_months
from pacing_backend.core.dependencies import ClockDep, SettingsDep
from pacing_backend.models import ActivityDailyRow, ActivityMetrics, FunnelMetrics, SignedDealCompany
from pacing_backend.services.activity import (
    get_activity_daily,
    get_activity_metrics,
    get_signed_deal_companies,
)
from pacing_backend.services.funnel import aggregate_funnel

logger = logging.getLogger(__name__)

funnel_router = APIRouter()
activity_router = APIRouter()


# =============================================================================
# Funnel
# =============================================================================

@funnel_router.get("", response_model=FunnelMetrics)
async def funnel_metrics(
    clock: ClockDep,
    settings: SettingsDep,
    months: Optional[List[str]] = Query(
        default=None,
        description="Months as YYYY-MM, repeated or comma-separated; defaults to the current month",
    ),
    all_time: bool = Query(default=False, description="Sum every snapshot instead of per-month snapshots"),
) -> FunnelMetrics:
    """Funnel counts with conversion percentages."""
    return await aggregate_funnel(
        split_months(months),
        all_time=all_time,
        clock=clock,
        settings=settings,
    )


# =============================================================================
# Activity
# =============================================================================

@activity_router.get("", response_model=ActivityMetrics)
async def activity_metrics(
    clock: ClockDep,
    settings: SettingsDep,
    months: Optional[List[str]] = Query(default=None, description="Months as YYYY-MM"),
) -> ActivityMetrics:
    """New leads and new signed deals created in the selected months."""
    return await get_activity_metrics(split_months(months), clock=clock, settings=settings)


@activity_router.get("/daily", response_model=List[ActivityDailyRow])
async def activity_daily(
    settings: SettingsDep,
    start: date = Query(..., description="First day, inclusive"),
    end: date = Query(..., description="Last day, inclusive"),
) -> List[ActivityDailyRow]:
    """Per-day lead and signed-deal creation counts."""
    return await get_activity_daily(start, end, settings=settings)


@activity_router.get("/signed-deals", response_model=List[SignedDealCompany])
async def signed_deals(
    settings: SettingsDep,
    start: date = Query(..., description="First day, inclusive"),
    end: date = Query(..., description="Last day, inclusive"),
) -> List[SignedDealCompany]:
    """Companies of contracts created in the range."""
    return await get_signed_deal_companies(start, end, settings=settings)
