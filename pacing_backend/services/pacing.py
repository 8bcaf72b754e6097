"""
Month-to-date Pacing Engine

Computes how actual revenue for a month compares with where it should be,
given the month's goal and how much of the month has elapsed.

Time completion (N-1 rule):
    Data for the current day is assumed incomplete, so an open month only
    counts fully elapsed days:

        effective_days_passed = max(0, day_of_month - 1)
        days_remaining        = max(0, days_in_month - day_of_month + 1)
        pace_target_ratio     = effective_days_passed / days_in_month
        data_through_date     = yesterday

    A closed month (before the reference month) is 100% complete and its
    MTD target is the full goal. A future month has nothing elapsed and no
    actuals are read for it.

Per section (media, saas, total):
    target_mtd              = goal x pace_target_ratio
    projected               = actual / effective_days_passed x days_in_month  (0 when no days passed)
    delta                   = actual - target_mtd
    required_daily_run_rate = max(0, (goal - actual) / days_remaining)        (0 when no days remain)
    pace_percent            = round(actual / target_mtd x 100)                (None when target_mtd is 0)
    projected_vs_goal       = round(projected / goal x 100)                   (None when goal is 0)

Media actual is the sum of partner revenue from month start through
data_through_date; SaaS actual comes from the billing ledger (saas_actual on
monthly_goals). Multi-month views sum independently computed sections and
leave projections empty, since months of different length and completion
have no single run rate.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import List, Optional, Sequence, Tuple, Union

from pacing_backend.core.clock import SystemClock, get_clock
from pacing_backend.core.config import Settings, get_settings
from pacing_backend.core.errors import DashboardError
from pacing_backend.core.resilience import RetryPolicy, with_retry
from pacing_backend.models import (
    FinancialPace,
    MonthlyGoal,
    MonthStatus,
    PacingSection,
    PacingSummary,
    PacingTrend,
    SectionTrend,
    TrendBasis,
)
from pacing_backend.services import repository
from pacing_backend.services.parsing import (
    days_in_month,
    month_end,
    month_key,
    month_start,
    normalize_month_param,
    prior_month,
    round_half_up,
)

logger = logging.getLogger(__name__)

MonthParam = Union[str, date, None]


# =============================================================================
# Time completion
# =============================================================================

@dataclass(frozen=True)
class MonthWindow:
    """
    Elapsed-time figures for one month relative to a reference date.

    Attributes:
        month_start: First day of the month.
        status: closed, open or future relative to the reference month.
        days_in_month: Calendar days in the month.
        effective_days_passed: Fully elapsed days counted toward pace.
        days_remaining: Days left including the reference day.
        pace_target_ratio: effective_days_passed / days_in_month.
        data_through_date: Last day whose data is counted; None for future months.
    """
    month_start: date
    status: MonthStatus
    days_in_month: int
    effective_days_passed: int
    days_remaining: int
    pace_target_ratio: float
    data_through_date: Optional[date]


def resolve_month_window(month: date, as_of: date) -> MonthWindow:
    """
    Work out time completion for a month as of a reference date.

    Args:
        month: Any day in the month of interest.
        as_of: Reference "today"; its month decides closed/open/future.

    Returns:
        MonthWindow for the month.

    Example:
        >>> w = resolve_month_window(date(2026, 2, 1), date(2026, 2, 11))
        >>> (w.effective_days_passed, w.days_remaining, w.days_in_month)
        (10, 18, 28)
    """
    start = month_start(month)
    dim = days_in_month(start)
    reference = month_start(as_of)

    if start < reference:
        return MonthWindow(
            month_start=start,
            status=MonthStatus.CLOSED,
            days_in_month=dim,
            effective_days_passed=dim,
            days_remaining=0,
            pace_target_ratio=1.0,
            data_through_date=month_end(start),
        )

    if start == reference:
        day = as_of.day
        effective = max(0, day - 1)
        return MonthWindow(
            month_start=start,
            status=MonthStatus.OPEN,
            days_in_month=dim,
            effective_days_passed=effective,
            days_remaining=max(0, dim - day + 1),
            pace_target_ratio=effective / dim if dim > 0 else 0.0,
            data_through_date=as_of - timedelta(days=1),
        )

    return MonthWindow(
        month_start=start,
        status=MonthStatus.FUTURE,
        days_in_month=dim,
        effective_days_passed=0,
        days_remaining=dim,
        pace_target_ratio=0.0,
        data_through_date=None,
    )


# =============================================================================
# Sections
# =============================================================================

def _rounded_percent(numerator: float, denominator: float) -> Optional[int]:
    if denominator <= 0:
        return None
    return int(round_half_up(numerator / denominator * 100))


def build_section(actual: float, goal: float, window: MonthWindow) -> PacingSection:
    """
    Build one pacing section from an actual, a goal and the month's window.

    Zero denominators give None for percentages and 0 for rates, never NaN
    or infinity.
    """
    target_mtd = goal * window.pace_target_ratio
    if window.effective_days_passed > 0:
        projected = actual / window.effective_days_passed * window.days_in_month
    else:
        projected = 0.0

    if window.days_remaining > 0:
        required = max(0.0, (goal - actual) / window.days_remaining)
    else:
        required = 0.0

    return PacingSection(
        actual=actual,
        target_mtd=target_mtd,
        projected=projected,
        goal=goal,
        pace_percent=_rounded_percent(actual, target_mtd),
        projected_vs_goal_percent=_rounded_percent(projected, goal),
        delta=actual - target_mtd,
        required_daily_run_rate=required,
    )


def aggregate_sections(sections: Sequence[PacingSection]) -> PacingSection:
    """
    Sum sections from several months into one.

    actual, goal, target_mtd and required_daily_run_rate are summed; delta
    and pace_percent are recomputed from the sums; projected and
    projected_vs_goal_percent are None.
    """
    actual = sum(s.actual for s in sections)
    goal = sum(s.goal for s in sections)
    target_mtd = sum(s.target_mtd for s in sections)
    required = sum(s.required_daily_run_rate for s in sections)

    return PacingSection(
        actual=actual,
        target_mtd=target_mtd,
        projected=None,
        goal=goal,
        pace_percent=_rounded_percent(actual, target_mtd),
        projected_vs_goal_percent=None,
        delta=actual - target_mtd,
        required_daily_run_rate=required,
    )


def compare_pace(now_percent: Optional[int], prev_percent: Optional[int]) -> PacingTrend:
    """Trend of a pace percent against a previous one; stable when either is missing."""
    if now_percent is None or prev_percent is None:
        return PacingTrend.STABLE
    if now_percent > prev_percent:
        return PacingTrend.UP
    if now_percent < prev_percent:
        return PacingTrend.DOWN
    return PacingTrend.STABLE


# =============================================================================
# Pacing summary
# =============================================================================

async def _load_actuals(window: MonthWindow, policy: RetryPolicy) -> Tuple[float, Optional[MonthlyGoal]]:
    """Partner revenue through data_through_date and the month's goal row, read concurrently."""
    if window.data_through_date is None or window.data_through_date < window.month_start:
        goal_row = await with_retry(
            lambda: repository.fetch_monthly_goal(window.month_start),
            policy,
            label=f"monthly goal {window.month_start}",
        )
        return 0.0, goal_row

    (revenue, _cost), goal_row = await asyncio.gather(
        with_retry(
            lambda: repository.fetch_partner_totals(window.month_start, window.data_through_date),
            policy,
            label=f"partner totals {window.month_start}",
        ),
        with_retry(
            lambda: repository.fetch_monthly_goal(window.month_start),
            policy,
            label=f"monthly goal {window.month_start}",
        ),
    )
    return revenue, goal_row


async def compute_pacing(
    month: MonthParam = None,
    as_of: Optional[date] = None,
    *,
    clock: Optional[SystemClock] = None,
    settings: Optional[Settings] = None,
) -> PacingSummary:
    """
    Compute the pacing summary for a month.

    Args:
        month: "YYYY-MM", "YYYY-MM-01" or a date; defaults to the as_of month.
        as_of: Reference date; defaults to the clock's today. Pass an earlier
            date to recompute a prior state for trend comparison.
        clock: Source of "today"; the process clock by default.
        settings: Retry configuration source; the cached settings by default.

    Returns:
        PacingSummary with media, saas and total sections. A month with no
        goal row behaves as goal 0 (all percentages None).

    Raises:
        MalformedInputError: If month is not a valid month string.
        TransientIOError: If a store read still fails after retries.
    """
    clock = clock or get_clock()
    settings = settings or get_settings()
    as_of = as_of or clock.today()
    target_month = normalize_month_param(month) or month_start(as_of)

    window = resolve_month_window(target_month, as_of)
    policy = RetryPolicy.from_settings(settings)

    if window.status == MonthStatus.FUTURE:
        media_revenue, goal_row = 0.0, None
    else:
        media_revenue, goal_row = await _load_actuals(window, policy)

    revenue_goal = goal_row.revenue_goal if goal_row else 0.0
    saas_goal = goal_row.saas_goal if goal_row else 0.0
    saas_actual = goal_row.saas_actual if goal_row else 0.0

    summary = PacingSummary(
        month=month_key(window.month_start),
        status=window.status,
        days_in_month=window.days_in_month,
        effective_days_passed=window.effective_days_passed,
        days_remaining=window.days_remaining,
        pace_target_ratio=window.pace_target_ratio,
        data_through_date=window.data_through_date,
        media=build_section(media_revenue, revenue_goal, window),
        saas=build_section(saas_actual, saas_goal, window),
        total=build_section(media_revenue + saas_actual, revenue_goal + saas_goal, window),
    )
    logger.debug(
        f"Pacing {summary.month} ({window.status.value}): total pace "
        f"{summary.total.pace_percent}% through {window.data_through_date}"
    )
    return summary


# =============================================================================
# Financial pace (trend and multi-month)
# =============================================================================

def _normalize_months(months: Optional[Sequence[MonthParam]], today: date) -> List[date]:
    normalized = sorted({m for m in (normalize_month_param(v) for v in (months or [])) if m})
    return normalized or [month_start(today)]


async def get_financial_pace(
    months: Optional[Sequence[MonthParam]] = None,
    *,
    trend_basis: TrendBasis = TrendBasis.PRIOR_MONTH,
    as_of: Optional[date] = None,
    clock: Optional[SystemClock] = None,
    settings: Optional[Settings] = None,
) -> FinancialPace:
    """
    Pacing for one or several months, with a trend for single-month views.

    Single month:
        The summary plus, per section, the direction of pace_percent versus
        the comparison summary (the prior calendar month, or the same month
        as of the day before with TrendBasis.PRIOR_DAY). If the comparison
        cannot be computed the trend is stable and the failure is logged.

    Several months:
        Sections summed with aggregate_sections, day counts summed,
        pace_target_ratio recomputed from the summed days, data_through_date
        and status taken from the latest month, trend stable and
        is_multi_month set.

    Args:
        months: Month strings or dates; duplicates are ignored. Defaults to
            the current month.
        trend_basis: Comparison used for single-month trends.
        as_of: Reference date; defaults to the clock's today.

    Returns:
        FinancialPace.
    """
    clock = clock or get_clock()
    settings = settings or get_settings()
    as_of = as_of or clock.today()
    selected = _normalize_months(months, as_of)

    if len(selected) == 1:
        current = selected[0]
        summary = await compute_pacing(current, as_of, clock=clock, settings=settings)

        try:
            if trend_basis == TrendBasis.PRIOR_DAY:
                previous = await compute_pacing(
                    current, as_of - timedelta(days=1), clock=clock, settings=settings
                )
            else:
                previous = await compute_pacing(
                    prior_month(current), as_of, clock=clock, settings=settings
                )
        except DashboardError as e:
            logger.warning(
                f"Trend comparison for {summary.month} failed, using current pace: {e}"
            )
            previous = summary

        trend = SectionTrend(
            total=compare_pace(summary.total.pace_percent, previous.total.pace_percent),
            media=compare_pace(summary.media.pace_percent, previous.media.pace_percent),
            saas=compare_pace(summary.saas.pace_percent, previous.saas.pace_percent),
        )
        return FinancialPace(
            **summary.model_dump(),
            trend=trend,
            is_multi_month=False,
            months=[summary.month],
        )

    summaries = await asyncio.gather(
        *(compute_pacing(m, as_of, clock=clock, settings=settings) for m in selected)
    )
    total_days = sum(s.days_in_month for s in summaries)
    total_effective = sum(s.effective_days_passed for s in summaries)
    last = summaries[-1]

    return FinancialPace(
        month=", ".join(s.month for s in summaries),
        status=last.status,
        days_in_month=total_days,
        effective_days_passed=total_effective,
        days_remaining=sum(s.days_remaining for s in summaries),
        pace_target_ratio=total_effective / total_days if total_days > 0 else 0.0,
        data_through_date=last.data_through_date,
        total=aggregate_sections([s.total for s in summaries]),
        media=aggregate_sections([s.media for s in summaries]),
        saas=aggregate_sections([s.saas for s in summaries]),
        trend=SectionTrend(),
        is_multi_month=True,
        months=[s.month for s in summaries],
    )
