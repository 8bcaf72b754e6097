"""
Tests for funnel aggregation and board activity reads.

Covers the monotonic clamp, conversion caps, per-month latest-snapshot
selection with the activity fallback, all-time totals, and the activity
daily and signed-deal listings.
"""

from datetime import date
from unittest.mock import AsyncMock, patch

import pytest

from pacing_backend.core.errors import MalformedInputError, PersistenceError
from pacing_backend.models import DailyFunnelSnapshot, FunnelCounts, FunnelMode
from pacing_backend.services.activity import (
    get_activity_daily,
    get_activity_metrics,
    get_signed_deal_companies,
)
from pacing_backend.services.funnel import (
    aggregate_funnel,
    clamp_funnel_counts,
    conversion_percentages,
)

LEADS = '7832231403'
CONTRACTS = '8280704003'


def snapshot(day: date, total: int, qualified: int, ops: int, won: int) -> DailyFunnelSnapshot:
    return DailyFunnelSnapshot(
        date=day,
        total_leads=total,
        qualified_leads=qualified,
        ops_approved_leads=ops,
        won_deals=won,
    )


# =============================================================================
# Clamp and conversions
# =============================================================================

class TestClamp:
    def test_won_lifts_every_wider_stage(self) -> None:
        counts = clamp_funnel_counts(FunnelCounts(total_leads=2, qualified_leads=1, ops_approved_leads=0, won_deals=4))

        assert counts == FunnelCounts(total_leads=4, qualified_leads=4, ops_approved_leads=4, won_deals=4)

    def test_ordered_counts_unchanged(self) -> None:
        counts = FunnelCounts(total_leads=10, qualified_leads=6, ops_approved_leads=3, won_deals=1)

        assert clamp_funnel_counts(counts) == counts

    def test_only_raises_never_lowers(self) -> None:
        counts = clamp_funnel_counts(FunnelCounts(total_leads=3, qualified_leads=5, ops_approved_leads=1, won_deals=0))

        assert counts.total_leads == 5
        assert counts.qualified_leads == 5
        assert counts.ops_approved_leads == 1
        assert counts.won_deals == 0


class TestConversions:
    def test_rates_to_one_decimal(self) -> None:
        rates = conversion_percentages(
            FunnelCounts(total_leads=30, qualified_leads=10, ops_approved_leads=5, won_deals=1)
        )

        assert rates.lead_to_qualified == 33.3
        assert rates.qualified_to_ops == 50.0
        assert rates.ops_to_won == 20.0
        assert rates.overall_win_rate == 3.3

    def test_zero_denominators_are_none(self) -> None:
        rates = conversion_percentages(FunnelCounts())

        assert rates.lead_to_qualified is None
        assert rates.qualified_to_ops is None
        assert rates.ops_to_won is None
        assert rates.overall_win_rate is None

    def test_stage_rates_capped_at_100(self) -> None:
        rates = conversion_percentages(
            FunnelCounts(total_leads=10, qualified_leads=2, ops_approved_leads=3, won_deals=5)
        )

        assert rates.qualified_to_ops == 100.0
        assert rates.ops_to_won == 100.0
        assert rates.overall_win_rate == 50.0


# =============================================================================
# aggregate_funnel
# =============================================================================

class TestAggregateFunnel:
    async def test_per_month_uses_latest_snapshot_per_month(self, settings, fixed_clock) -> None:
        snapshots = {
            date(2026, 1, 1): snapshot(date(2026, 1, 31), 40, 20, 10, 5),
            date(2026, 2, 1): snapshot(date(2026, 2, 10), 12, 6, 3, 1),
        }

        async def latest(start, end_exclusive):
            return snapshots.get(start)

        fetch = AsyncMock(side_effect=latest)
        with patch('pacing_backend.services.repository.fetch_latest_funnel_snapshot', new=fetch):
            metrics = await aggregate_funnel(['2026-02', '2026-01'], clock=fixed_clock, settings=settings)

        fetch.assert_any_await(date(2026, 1, 1), date(2026, 2, 1))
        fetch.assert_any_await(date(2026, 2, 1), date(2026, 3, 1))
        assert metrics.mode == FunnelMode.PER_MONTH
        assert metrics.months == ['2026-01', '2026-02']
        assert metrics.counts == FunnelCounts(total_leads=52, qualified_leads=26, ops_approved_leads=13, won_deals=6)
        assert metrics.fallback_months == []

    async def test_defaults_to_current_month(self, settings, fixed_clock) -> None:
        fetch = AsyncMock(return_value=snapshot(date(2026, 2, 10), 5, 4, 3, 2))
        with patch('pacing_backend.services.repository.fetch_latest_funnel_snapshot', new=fetch):
            metrics = await aggregate_funnel(clock=fixed_clock, settings=settings)

        assert metrics.months == ['2026-02']
        fetch.assert_awaited_once_with(date(2026, 2, 1), date(2026, 3, 1))

    async def test_month_without_snapshot_falls_back_to_activity(self, settings, fixed_clock) -> None:
        with patch('pacing_backend.services.repository.fetch_latest_funnel_snapshot', new=AsyncMock(return_value=None)), \
             patch('pacing_backend.services.repository.fetch_activity_counts',
                   new=AsyncMock(return_value={LEADS: 9, CONTRACTS: 2})) as counts:
            metrics = await aggregate_funnel(['2026-01'], clock=fixed_clock, settings=settings)

        counts.assert_awaited_once_with([LEADS, CONTRACTS], date(2026, 1, 1), date(2026, 1, 31))
        assert metrics.fallback_months == ['2026-01']
        assert metrics.counts == FunnelCounts(total_leads=9, qualified_leads=2, ops_approved_leads=2, won_deals=2)

    async def test_failed_fallback_skips_month(self, settings, fixed_clock) -> None:
        async def latest(start, end_exclusive):
            if start == date(2026, 2, 1):
                return snapshot(date(2026, 2, 10), 8, 4, 2, 1)
            return None

        with patch('pacing_backend.services.repository.fetch_latest_funnel_snapshot', new=AsyncMock(side_effect=latest)), \
             patch('pacing_backend.services.repository.fetch_activity_counts',
                   new=AsyncMock(side_effect=PersistenceError('relation missing'))):
            metrics = await aggregate_funnel(['2026-01', '2026-02'], clock=fixed_clock, settings=settings)

        assert metrics.months == ['2026-01', '2026-02']
        assert metrics.counts.total_leads == 8
        assert metrics.fallback_months == []

    async def test_all_time_sums_and_clamps(self, settings, fixed_clock) -> None:
        totals = FunnelCounts(total_leads=100, qualified_leads=30, ops_approved_leads=10, won_deals=12)
        with patch('pacing_backend.services.repository.fetch_funnel_totals', new=AsyncMock(return_value=totals)), \
             patch('pacing_backend.services.repository.fetch_latest_funnel_snapshot', new=AsyncMock()) as latest:
            metrics = await aggregate_funnel(['2026-01'], all_time=True, clock=fixed_clock, settings=settings)

        latest.assert_not_awaited()
        assert metrics.mode == FunnelMode.ALL_TIME
        assert metrics.months == []
        assert metrics.counts.ops_approved_leads == 12
        assert metrics.conversions.overall_win_rate == 12.0

    async def test_invalid_month_rejected(self, settings, fixed_clock) -> None:
        with pytest.raises(MalformedInputError):
            await aggregate_funnel(['Feb 2026'], clock=fixed_clock, settings=settings)


# =============================================================================
# Activity
# =============================================================================

class TestActivity:
    async def test_metrics_sum_each_selected_month(self, settings, fixed_clock) -> None:
        per_month = {
            date(2025, 12, 1): {LEADS: 14, CONTRACTS: 3},
            date(2026, 1, 1): {LEADS: 100, CONTRACTS: 50},
            date(2026, 2, 1): {LEADS: 6},
        }

        async def fetch(boards, start, end):
            return per_month[start]

        with patch('pacing_backend.services.repository.fetch_activity_counts',
                   new=AsyncMock(side_effect=fetch)) as counts:
            metrics = await get_activity_metrics(['2026-02', '2025-12'], clock=fixed_clock, settings=settings)

        assert [c.args for c in counts.await_args_list] == [
            ([LEADS, CONTRACTS], date(2025, 12, 1), date(2025, 12, 31)),
            ([LEADS, CONTRACTS], date(2026, 2, 1), date(2026, 2, 28)),
        ]
        # January sits between the selections but is not counted
        assert metrics.new_leads == 20
        assert metrics.new_signed_deals == 3

    async def test_metrics_default_to_current_month(self, settings, fixed_clock) -> None:
        with patch('pacing_backend.services.repository.fetch_activity_counts',
                   new=AsyncMock(return_value={LEADS: 4, CONTRACTS: 1})) as counts:
            metrics = await get_activity_metrics(clock=fixed_clock, settings=settings)

        counts.assert_awaited_once_with([LEADS, CONTRACTS], date(2026, 2, 1), date(2026, 2, 28))
        assert metrics.new_leads == 4

    async def test_daily_merges_boards_per_day(self, settings) -> None:
        rows = [
            (date(2026, 2, 2), LEADS, 4),
            (date(2026, 2, 2), CONTRACTS, 1),
            (date(2026, 2, 5), CONTRACTS, 2),
        ]
        with patch('pacing_backend.services.repository.fetch_activity_daily', new=AsyncMock(return_value=rows)):
            daily = await get_activity_daily(date(2026, 2, 1), date(2026, 2, 10), settings=settings)

        assert [(r.date, r.total_leads, r.won_deals) for r in daily] == [
            (date(2026, 2, 2), 4, 1),
            (date(2026, 2, 5), 0, 2),
        ]

    async def test_inverted_range_rejected(self, settings) -> None:
        with pytest.raises(MalformedInputError):
            await get_activity_daily(date(2026, 2, 10), date(2026, 2, 1), settings=settings)

    async def test_signed_deals_drop_blank_names(self, settings) -> None:
        rows = [(date(2026, 2, 3), '  Acme Media '), (date(2026, 2, 4), '   ')]
        with patch('pacing_backend.services.repository.fetch_signed_deal_companies',
                   new=AsyncMock(return_value=rows)) as fetch:
            deals = await get_signed_deal_companies(date(2026, 2, 1), date(2026, 2, 10), settings=settings)

        fetch.assert_awaited_once_with(CONTRACTS, date(2026, 2, 1), date(2026, 2, 10))
        assert [(d.created_date, d.company_name) for d in deals] == [(date(2026, 2, 3), 'Acme Media')]
