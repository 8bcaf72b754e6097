"""
Financial overviews: monthly billing totals for a year and partner
concentration for a month.
"""

import logging
from datetime import date
from typing import Dict, List, Optional, Sequence, Union

from pacing_backend.core.config import Settings, get_settings
from pacing_backend.core.errors import MalformedInputError
from pacing_backend.core.resilience import RetryPolicy, with_retry
from pacing_backend.models import (
    ClientRevenueRow,
    MonthOverview,
    PartnerConcentration,
    PartnerShare,
    PartnerSide,
    SideConcentration,
)
from pacing_backend.services import repository
from pacing_backend.services.parsing import normalize_month_param, round_half_up

logger = logging.getLogger(__name__)

OTHERS_LABEL = "Others"
UNKNOWN_LABEL = "Unknown"


# =============================================================================
# Total overview
# =============================================================================

async def get_total_overview(
    year: Optional[int] = None,
    *,
    settings: Optional[Settings] = None,
) -> List[MonthOverview]:
    """
    Billing buckets for each month of a year, January first.

    Months without a monthly_goals row are returned with zeros, so the
    result always has twelve entries.
    """
    settings = settings or get_settings()
    year = year or settings.overview_year

    goals = await with_retry(
        lambda: repository.fetch_monthly_goals(date(year, 1, 1), date(year, 12, 1)),
        RetryPolicy.from_settings(settings),
        label=f"overview {year}",
    )
    by_month = {goal.month: goal for goal in goals}

    overview = []
    for month_number in range(1, 13):
        month = date(year, month_number, 1)
        goal = by_month.get(month)
        if goal is None:
            overview.append(MonthOverview(month=month))
            continue
        overview.append(MonthOverview(
            month=month,
            media_revenue=goal.media_revenue,
            saas_revenue=goal.saas_actual,
            media_cost=goal.media_cost,
            tech_cost=goal.tech_cost,
            bs_cost=goal.bs_cost,
        ))
    return overview


# =============================================================================
# Partner concentration
# =============================================================================

def _share(amount: float, total: float) -> float:
    return round_half_up(amount / total * 100, 1) if total > 0 else 0.0


def build_side_concentration(rows: Sequence[ClientRevenueRow], top_n: int) -> SideConcentration:
    """
    Top partners of one side by revenue, with the remainder as "Others".

    Rows are merged by trimmed partner name (blank names become "Unknown").
    The Others row is added only when the partners beyond top_n sum to more
    than zero.
    """
    by_name: Dict[str, float] = {}
    for row in rows:
        name = row.partner_name.strip() or UNKNOWN_LABEL
        by_name[name] = by_name.get(name, 0.0) + row.revenue

    total = sum(by_name.values())
    ranked = sorted(by_name.items(), key=lambda pair: pair[1], reverse=True)
    top, rest = ranked[:top_n], ranked[top_n:]

    partners = [
        PartnerShare(name=name, revenue=revenue, percent=_share(revenue, total))
        for name, revenue in top
    ]
    others = sum(revenue for _, revenue in rest)
    if others > 0:
        partners.append(PartnerShare(name=OTHERS_LABEL, revenue=others, percent=_share(others, total)))

    return SideConcentration(total=total, partners=partners)


async def get_partner_concentration(
    month: Union[str, date],
    *,
    settings: Optional[Settings] = None,
) -> Optional[PartnerConcentration]:
    """
    Demand and supply partner concentration for a month.

    concentration_risk is set when any individual partner (not Others) on
    either side holds at least CONCENTRATION_THRESHOLD_PERCENT of its side.

    Returns:
        PartnerConcentration, or None when the month has no breakdown rows.
    """
    settings = settings or get_settings()
    month_date = normalize_month_param(month)
    if month_date is None:
        raise MalformedInputError("A month is required for partner concentration")

    rows = await with_retry(
        lambda: repository.fetch_client_breakdown(month_date),
        RetryPolicy.from_settings(settings),
        label=f"client breakdown {month_date}",
    )
    if not rows:
        return None

    top_n = settings.concentration_top_n
    demand = build_side_concentration([r for r in rows if r.side == PartnerSide.DEMAND], top_n)
    supply = build_side_concentration([r for r in rows if r.side == PartnerSide.SUPPLY], top_n)

    individual = [
        p for p in demand.partners + supply.partners if p.name != OTHERS_LABEL
    ]
    risk = any(p.percent >= settings.concentration_threshold_percent for p in individual)
    if risk:
        logger.info(f"Partner concentration risk in {month_date}")

    return PartnerConcentration(month=month_date, demand=demand, supply=supply, concentration_risk=risk)
