"""
Board activity reads.

Activity counts items by the day they were created on the leads and
contracts boards, independent of where they sit in the pipeline today. The
funnel uses these counts as a fallback for months without a snapshot; the API
exposes them directly for the activity panels.
"""

import logging
from datetime import date
from typing import List, Optional, Sequence, Tuple, Union

from pacing_backend.core.clock import SystemClock, get_clock
from pacing_backend.core.config import Settings, get_settings
from pacing_backend.core.errors import MalformedInputError
from pacing_backend.core.resilience import RetryPolicy, with_retry
from pacing_backend.models import ActivityDailyRow, ActivityMetrics, SignedDealCompany
from pacing_backend.services import repository
from pacing_backend.services.parsing import month_end, month_start, normalize_month_param

logger = logging.getLogger(__name__)


def _month_ranges(months: Optional[Sequence[Union[str, date]]], today: date) -> List[Tuple[date, date]]:
    """(first day, last day) of each selected month, oldest first; current month by default."""
    starts = sorted({m for m in (normalize_month_param(v) for v in (months or [])) if m})
    if not starts:
        starts = [month_start(today)]
    return [(start, month_end(start)) for start in starts]


def _check_range(start: date, end: date) -> None:
    if end < start:
        raise MalformedInputError(f"Date range end {end} is before start {start}")


async def get_activity_metrics(
    months: Optional[Sequence[Union[str, date]]] = None,
    *,
    clock: Optional[SystemClock] = None,
    settings: Optional[Settings] = None,
) -> ActivityMetrics:
    """
    Count new leads and new signed deals created within the selected months.

    Each month is counted over its own calendar range and the counts are
    summed, so a selection of January and March leaves February out.
    """
    clock = clock or get_clock()
    settings = settings or get_settings()
    policy = RetryPolicy.from_settings(settings)

    leads_board = settings.monday_leads_board_id
    contracts_board = settings.monday_contracts_board_id
    boards = [leads_board, contracts_board]

    new_leads = 0
    new_signed_deals = 0
    for start, end in _month_ranges(months, clock.today()):
        counts = await with_retry(
            lambda: repository.fetch_activity_counts(boards, start, end),
            policy,
            label=f"activity counts {start}..{end}",
        )
        new_leads += counts.get(leads_board, 0)
        new_signed_deals += counts.get(contracts_board, 0)

    return ActivityMetrics(new_leads=new_leads, new_signed_deals=new_signed_deals)


async def get_activity_daily(
    start: date,
    end: date,
    *,
    settings: Optional[Settings] = None,
) -> List[ActivityDailyRow]:
    """
    Per-day creation counts for start..end inclusive.

    Only days with at least one created item are returned, oldest first.
    """
    settings = settings or get_settings()
    _check_range(start, end)

    leads_board = settings.monday_leads_board_id
    contracts_board = settings.monday_contracts_board_id
    rows = await with_retry(
        lambda: repository.fetch_activity_daily([leads_board, contracts_board], start, end),
        RetryPolicy.from_settings(settings),
        label=f"activity daily {start}..{end}",
    )

    by_day = {}
    for day, board_id, count in rows:
        entry = by_day.setdefault(day, ActivityDailyRow(date=day))
        if board_id == leads_board:
            entry.total_leads += count
        elif board_id == contracts_board:
            entry.won_deals += count

    return [by_day[day] for day in sorted(by_day)]


async def get_signed_deal_companies(
    start: date,
    end: date,
    *,
    settings: Optional[Settings] = None,
) -> List[SignedDealCompany]:
    """Contracts created in start..end with a non-blank company name, oldest first."""
    settings = settings or get_settings()
    _check_range(start, end)

    rows = await with_retry(
        lambda: repository.fetch_signed_deal_companies(settings.monday_contracts_board_id, start, end),
        RetryPolicy.from_settings(settings),
        label=f"signed deal companies {start}..{end}",
    )

    companies = []
    for created_date, name in rows:
        name = (name or "").strip()
        if name:
            companies.append(SignedDealCompany(created_date=created_date, company_name=name))
    return companies
