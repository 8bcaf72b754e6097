"""
FastAPI router for month-to-date pacing.

Endpoints:
- GET /pacing/summary?month=2026-02      single-month pacing summary
- GET /pacing/financial?months=2026-01,2026-02&trend_basis=prior_month
                                         summary with trend, or a multi-month aggregate

Invalid month strings surface as MalformedInputError and are rendered as 400
by the application's exception handlers.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Query

from pacing_backend.api.params import split_months
from pacing_backend.core.dependencies import ClockDep, SettingsDep
from pacing_backend.models import FinancialPace, PacingSummary, TrendBasis
from pacing_backend.services.pacing import compute_pacing, get_financial_pace

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/summary", response_model=PacingSummary)
async def pacing_summary(
    clock: ClockDep,
    settings: SettingsDep,
    month: Optional[str] = Query(
        default=None,
        description="YYYY-MM or YYYY-MM-01; defaults to the current month",
    ),
) -> PacingSummary:
    """
    Pacing summary for one month with media, SaaS and total sections.
    """
    return await compute_pacing(month, clock=clock, settings=settings)


@router.get("/financial", response_model=FinancialPace)
async def financial_pace(
    clock: ClockDep,
    settings: SettingsDep,
    months: Optional[List[str]] = Query(
        default=None,
        description="Months as YYYY-MM, repeated or comma-separated; defaults to the current month",
    ),
    trend_basis: TrendBasis = Query(
        default=TrendBasis.PRIOR_MONTH,
        description="Comparison used for the single-month trend",
    ),
) -> FinancialPace:
    """
    Financial pace for the selected months.

    One month returns the summary with an up/down/stable trend per section.
    Several months return summed sections with no projection.
    """
    return await get_financial_pace(
        split_months(months),
        trend_basis=trend_basis,
        clock=clock,
        settings=settings,
    )
