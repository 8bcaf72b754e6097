"""
Sales Funnel Aggregation

Combines daily funnel snapshots into stage counts and stage-to-stage
conversion rates.

Modes:
    per_month: For each selected month, the latest snapshot dated inside it.
               Snapshots are point-in-time counts, so summing a month's days
               would double-count; taking the latest keeps re-runs idempotent.
               Counts are then summed across months. A month with no snapshot
               falls back to board activity (new leads, new signed deals).
    all_time:  Sum of every snapshot row.

Both modes finish with the monotonic clamp, narrowest stage outward:

    ops_approved = max(ops_approved, won)
    qualified    = max(qualified, ops_approved)
    total        = max(total, qualified)

Conversions (one decimal, None on a zero denominator):

    lead_to_qualified = qualified / total x 100
    qualified_to_ops  = min(100, ops_approved / qualified x 100)
    ops_to_won        = min(100, won / ops_approved x 100)
    overall_win_rate  = won / total x 100
"""

import asyncio
import logging
from datetime import date
from typing import List, Optional, Sequence, Union

from pacing_backend.core.clock import SystemClock, get_clock
from pacing_backend.core.config import Settings, get_settings
from pacing_backend.core.errors import DashboardError
from pacing_backend.core.resilience import RetryPolicy, with_retry
from pacing_backend.models import (
    ConversionPercentages,
    FunnelCounts,
    FunnelMetrics,
    FunnelMode,
)
from pacing_backend.services import repository
from pacing_backend.services.activity import get_activity_metrics
from pacing_backend.services.parsing import (
    month_key,
    month_start,
    next_month,
    normalize_month_param,
    round_half_up,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Pure helpers
# =============================================================================

def clamp_funnel_counts(counts: FunnelCounts) -> FunnelCounts:
    """
    Raise wider stages so total >= qualified >= ops_approved >= won.

    Example:
        >>> clamp_funnel_counts(FunnelCounts(total_leads=5, qualified_leads=2,
        ...                                  ops_approved_leads=1, won_deals=3))
        FunnelCounts(total_leads=5, qualified_leads=3, ops_approved_leads=3, won_deals=3)
    """
    won = counts.won_deals
    ops_approved = max(counts.ops_approved_leads, won)
    qualified = max(counts.qualified_leads, ops_approved)
    total = max(counts.total_leads, qualified)
    return FunnelCounts(
        total_leads=total,
        qualified_leads=qualified,
        ops_approved_leads=ops_approved,
        won_deals=won,
    )


def _percent(numerator: int, denominator: int, cap: Optional[float] = None) -> Optional[float]:
    if denominator <= 0:
        return None
    value = numerator / denominator * 100
    if cap is not None:
        value = min(cap, value)
    return round_half_up(value, 1)


def conversion_percentages(counts: FunnelCounts) -> ConversionPercentages:
    """Stage-to-stage conversion rates for a set of counts."""
    return ConversionPercentages(
        lead_to_qualified=_percent(counts.qualified_leads, counts.total_leads),
        qualified_to_ops=_percent(counts.ops_approved_leads, counts.qualified_leads, cap=100.0),
        ops_to_won=_percent(counts.won_deals, counts.ops_approved_leads, cap=100.0),
        overall_win_rate=_percent(counts.won_deals, counts.total_leads),
    )


# =============================================================================
# Aggregation
# =============================================================================

async def _month_counts(
    month: date,
    policy: RetryPolicy,
    clock: SystemClock,
    settings: Settings,
) -> tuple:
    """
    Counts for one month and whether they came from the activity fallback.

    Returns:
        (counts, used_fallback); counts is None when the month is skipped.
    """
    snapshot = await with_retry(
        lambda: repository.fetch_latest_funnel_snapshot(month, next_month(month)),
        policy,
        label=f"funnel snapshot {month_key(month)}",
    )
    if snapshot is not None:
        return FunnelCounts(
            total_leads=snapshot.total_leads,
            qualified_leads=snapshot.qualified_leads,
            ops_approved_leads=snapshot.ops_approved_leads,
            won_deals=snapshot.won_deals,
        ), False

    try:
        activity = await get_activity_metrics([month], clock=clock, settings=settings)
    except DashboardError as e:
        logger.warning(f"No funnel snapshot for {month_key(month)} and activity fallback failed, skipping: {e}")
        return None, False

    logger.info(f"No funnel snapshot for {month_key(month)}, using board activity")
    return FunnelCounts(
        total_leads=activity.new_leads,
        won_deals=activity.new_signed_deals,
    ), True


async def aggregate_funnel(
    months: Optional[Sequence[Union[str, date]]] = None,
    *,
    all_time: bool = False,
    clock: Optional[SystemClock] = None,
    settings: Optional[Settings] = None,
) -> FunnelMetrics:
    """
    Funnel counts and conversions for the selected months or all time.

    Args:
        months: Month strings or dates for per-month mode; defaults to the
            current month. Ignored when all_time is set.
        all_time: Sum every snapshot instead of per-month latest snapshots.

    Returns:
        FunnelMetrics with clamped counts.

    Raises:
        MalformedInputError: If a month string is invalid.
        TransientIOError: If a snapshot read still fails after retries.
    """
    clock = clock or get_clock()
    settings = settings or get_settings()
    policy = RetryPolicy.from_settings(settings)

    if all_time:
        raw = await with_retry(repository.fetch_funnel_totals, policy, label="funnel totals")
        counts = clamp_funnel_counts(raw)
        return FunnelMetrics(
            mode=FunnelMode.ALL_TIME,
            months=[],
            counts=counts,
            conversions=conversion_percentages(counts),
        )

    selected: List[date] = sorted({m for m in (normalize_month_param(v) for v in (months or [])) if m})
    if not selected:
        selected = [month_start(clock.today())]

    results = await asyncio.gather(
        *(_month_counts(month, policy, clock, settings) for month in selected)
    )

    total = FunnelCounts()
    fallback_months: List[str] = []
    for month, (month_counts, used_fallback) in zip(selected, results):
        if month_counts is None:
            continue
        total = total + month_counts
        if used_fallback:
            fallback_months.append(month_key(month))

    counts = clamp_funnel_counts(total)
    return FunnelMetrics(
        mode=FunnelMode.PER_MONTH,
        months=[month_key(m) for m in selected],
        counts=counts,
        conversions=conversion_percentages(counts),
        fallback_months=fallback_months,
    )
