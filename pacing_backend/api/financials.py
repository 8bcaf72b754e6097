"""
FastAPI router for financial overviews.

Endpoints:
- GET /financials/overview?year=2026         twelve months of billing buckets
- GET /financials/concentration?month=2026-02 top partners per side
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query, status

from pacing_backend.core.dependencies import SettingsDep
from pacing_backend.models import MonthOverview, PartnerConcentration
from pacing_backend.services.financials import get_partner_concentration, get_total_overview

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/overview", response_model=List[MonthOverview])
async def total_overview(
    settings: SettingsDep,
    year: Optional[int] = Query(default=None, ge=2000, le=2100, description="Defaults to OVERVIEW_YEAR"),
) -> List[MonthOverview]:
    """Billing revenue and cost buckets for each month of the year."""
    return await get_total_overview(year, settings=settings)


@router.get("/concentration", response_model=PartnerConcentration)
async def partner_concentration(
    settings: SettingsDep,
    month: str = Query(..., description="YYYY-MM or YYYY-MM-01"),
) -> PartnerConcentration:
    """
    Partner concentration for a month.

    Raises:
        HTTPException 404: If the month has no client breakdown rows.
    """
    result = await get_partner_concentration(month, settings=settings)
    if result is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No client breakdown for {month}",
        )
    return result
