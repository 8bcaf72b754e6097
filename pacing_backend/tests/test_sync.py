"""
Tests for the sync orchestrator.

Flow functions are patched where sync.py imported them, so these tests check
dispatch and failure isolation without touching any source or the store.
"""

from datetime import date
from unittest.mock import AsyncMock, patch

import pytest

from pacing_backend.core.clock import FixedClock
from pacing_backend.core.errors import MissingConfigurationError, TransientIOError
from pacing_backend.models import (
    BillingSyncResult,
    BoardSyncResult,
    ClientBreakdownSyncResult,
    GoalImportResult,
    PartnerSyncResult,
    SyncFlow,
)
from pacing_backend.services.sync import run_flow, sync_all


def patch_flows(partner=None, billing=None, board=None, goals=None, breakdown=None):
    """Patch every flow entry point; each argument is a return value or an exception."""
    def mock(value):
        if isinstance(value, Exception):
            return AsyncMock(side_effect=value)
        return AsyncMock(return_value=value)

    return {
        'partner': patch('pacing_backend.services.sync.reconcile_partner_feed',
                         new=mock(partner or PartnerSyncResult(dates_synced=10, rows_upserted=40))),
        'billing': patch('pacing_backend.services.sync.reconcile_billing',
                         new=mock(billing or BillingSyncResult(months_updated=2))),
        'board': patch('pacing_backend.services.sync.reconcile_board',
                       new=mock(board or BoardSyncResult(funnel_rows=5, activity_rows=50))),
        'goals': patch('pacing_backend.services.sync.import_goals',
                       new=mock(goals or GoalImportResult(months_updated=12))),
        'breakdown': patch('pacing_backend.services.sync.reconcile_client_breakdown',
                           new=mock(breakdown or ClientBreakdownSyncResult(months_updated=1, rows_inserted=7))),
    }


class TestRunFlow:
    async def test_partner_feed_receives_month(self) -> None:
        patches = patch_flows()
        with patches['partner'] as partner:
            result = await run_flow(SyncFlow.PARTNER_FEED, '2026-01')

        partner.assert_awaited_once_with('2026-01', settings=None, clock=None)
        assert result.dates_synced == 10

    async def test_client_breakdown_month_list(self) -> None:
        patches = patch_flows()
        with patches['breakdown'] as breakdown:
            await run_flow(SyncFlow.CLIENT_BREAKDOWN, '2026-01')
            await run_flow(SyncFlow.CLIENT_BREAKDOWN)

        assert [c.args[0] for c in breakdown.await_args_list] == [['2026-01'], None]

    async def test_errors_propagate(self) -> None:
        patches = patch_flows(goals=MissingConfigurationError('Missing GOALS_SHEET_ID'))
        with patches['goals']:
            with pytest.raises(MissingConfigurationError):
                await run_flow(SyncFlow.GOALS)


class TestSyncAll:
    async def test_default_flows_all_succeed(self, fixed_clock) -> None:
        patches = patch_flows()
        with patches['partner'], patches['billing'], patches['board'], patches['goals'] as goals:
            summary = await sync_all(clock=fixed_clock)

        assert [o.flow for o in summary.outcomes] == [SyncFlow.PARTNER_FEED, SyncFlow.BILLING, SyncFlow.BOARD]
        assert summary.all_ok
        assert summary.outcomes[0].result == {'datesSynced': 10, 'rowsUpserted': 40}
        goals.assert_not_awaited()

    async def test_clock_and_settings_reach_every_flow(self, settings) -> None:
        clock = FixedClock.on(date(2026, 2, 11))
        patches = patch_flows()
        with patches['partner'] as partner, patches['billing'] as billing, patches['board'] as board, \
             patches['goals'] as goals:
            await sync_all(
                [SyncFlow.PARTNER_FEED, SyncFlow.BILLING, SyncFlow.BOARD, SyncFlow.GOALS],
                clock=clock,
                settings=settings,
            )

        partner.assert_awaited_once_with(None, settings=settings, clock=clock)
        board.assert_awaited_once_with(settings=settings, clock=clock)
        billing.assert_awaited_once_with(settings=settings)
        goals.assert_awaited_once_with(settings=settings)

    async def test_failure_is_isolated(self, fixed_clock) -> None:
        patches = patch_flows(partner=TransientIOError('partner feed unreachable'))
        with patches['partner'], patches['billing'] as billing, patches['board'] as board:
            summary = await sync_all(clock=fixed_clock)

        billing.assert_awaited_once()
        board.assert_awaited_once()
        partner, billing_outcome, board_outcome = summary.outcomes
        assert partner.ok is False
        assert partner.error == 'partner feed unreachable'
        assert partner.result is None
        assert billing_outcome.ok and board_outcome.ok
        assert not summary.all_ok
        assert summary.any_ok

    async def test_all_failures(self, fixed_clock) -> None:
        patches = patch_flows(billing=TransientIOError('down'), board=MissingConfigurationError('no token'))
        with patches['billing'], patches['board']:
            summary = await sync_all([SyncFlow.BILLING, SyncFlow.BOARD], clock=fixed_clock)

        assert not summary.any_ok
        assert [o.error for o in summary.outcomes] == ['down', 'no token']

    async def test_duplicates_run_once(self, fixed_clock) -> None:
        patches = patch_flows()
        with patches['goals'] as goals:
            summary = await sync_all([SyncFlow.GOALS, SyncFlow.GOALS], clock=fixed_clock)

        goals.assert_awaited_once()
        assert len(summary.outcomes) == 1

    async def test_error_without_message_uses_type_name(self, fixed_clock) -> None:
        patches = patch_flows(goals=TransientIOError())
        with patches['goals']:
            summary = await sync_all([SyncFlow.GOALS], clock=fixed_clock)

        assert summary.outcomes[0].error == 'TransientIOError'
