"""
Tests for board reconciliation.

Covers creation timestamp resolution from the creation-log column, the
created_at fallback, per-day counting in the configured timezone, and the
writes the reconcile flow issues.
"""

import json
from datetime import date, datetime, timezone
from unittest.mock import AsyncMock, patch
from zoneinfo import ZoneInfo

import pytest

from pacing_backend.core.clock import FixedClock
from pacing_backend.core.errors import MissingConfigurationError
from pacing_backend.services.board import (
    build_board_activity,
    column_text,
    extract_creation_timestamp,
    parse_timestamp,
    reconcile_board,
)

LOG = 'pulse_log'


def item(item_id, log_value=None, created_at=None, text=None, extra=()):
    columns = [{'id': LOG, 'value': log_value, 'text': text}]
    columns.extend(extra)
    return {'id': item_id, 'created_at': created_at, 'column_values': columns}


class TestParseTimestamp:
    @pytest.mark.parametrize('raw, expected', [
        ('2026-02-10T14:23:11Z', datetime(2026, 2, 10, 14, 23, 11, tzinfo=timezone.utc)),
        ('2026-02-10 14:23:11 UTC', datetime(2026, 2, 10, 14, 23, 11, tzinfo=timezone.utc)),
        ('2026-02-10T14:23:11+00:00', datetime(2026, 2, 10, 14, 23, 11, tzinfo=timezone.utc)),
        ('2026-02-10', datetime(2026, 2, 10)),
    ])
    def test_accepted_forms(self, raw, expected) -> None:
        assert parse_timestamp(raw) == expected

    @pytest.mark.parametrize('raw', [None, '', 'yesterday', 1739196191])
    def test_rejected(self, raw) -> None:
        assert parse_timestamp(raw) is None

    def test_bare_date_anchored_to_local_timezone(self) -> None:
        local = ZoneInfo('America/New_York')

        assert parse_timestamp('2026-02-10', local) == datetime(2026, 2, 10, tzinfo=local)
        assert parse_timestamp('2026-02-31', local) is None
        assert parse_timestamp('2026-02-10T14:00:00Z', local) == datetime(2026, 2, 10, 14, tzinfo=timezone.utc)


class TestExtractCreationTimestamp:
    def test_json_date_key(self) -> None:
        moment = extract_creation_timestamp(item('1', json.dumps({'date': '2026-02-10T14:00:00Z'})), LOG)

        assert moment == datetime(2026, 2, 10, 14, tzinfo=timezone.utc)

    def test_json_changed_at_key(self) -> None:
        moment = extract_creation_timestamp(item('1', json.dumps({'changed_at': '2026-02-09T08:00:00Z'})), LOG)

        assert moment.date() == date(2026, 2, 9)

    def test_json_string_value(self) -> None:
        moment = extract_creation_timestamp(item('1', json.dumps('2026-02-08T00:30:00Z')), LOG)

        assert moment.date() == date(2026, 2, 8)

    def test_text_field(self) -> None:
        moment = extract_creation_timestamp(item('1', text='2026-02-07 10:00:00 UTC'), LOG)

        assert moment.date() == date(2026, 2, 7)

    def test_falls_back_to_created_at(self) -> None:
        moment = extract_creation_timestamp(
            item('1', json.dumps({'other': 1}), created_at='2026-01-30T23:00:00Z'), LOG
        )

        assert moment == datetime(2026, 1, 30, 23, tzinfo=timezone.utc)

    def test_nothing_usable(self) -> None:
        assert extract_creation_timestamp({'id': '1'}, LOG) is None


class TestColumnText:
    def test_text_then_json_value(self) -> None:
        company = {'id': 'company', 'text': '', 'value': json.dumps('  Acme Media ')}

        assert column_text(item('1', extra=[company]), 'company') == 'Acme Media'

    def test_blank_is_none(self) -> None:
        company = {'id': 'company', 'text': '  ', 'value': None}

        assert column_text(item('1', extra=[company]), 'company') is None
        assert column_text(item('1'), 'missing') is None


class TestBuildBoardActivity:
    def test_counts_per_local_day(self) -> None:
        clock = FixedClock.on(date(2026, 2, 11), 'America/New_York')
        items = [
            item('1', json.dumps({'date': '2026-02-10T14:00:00Z'})),
            # 03:00 UTC is still the previous evening in New York
            item('2', json.dumps({'date': '2026-02-10T03:00:00Z'})),
            item('3', created_at='2026-02-10T18:00:00Z'),
        ]

        activity, per_day = build_board_activity(items, 'b1', LOG, clock)

        assert per_day == {date(2026, 2, 10): 2, date(2026, 2, 9): 1}
        assert [a.created_date for a in activity] == [date(2026, 2, 10), date(2026, 2, 9), date(2026, 2, 10)]
        assert all(a.board_id == 'b1' for a in activity)

    def test_date_only_values_stay_on_their_day(self) -> None:
        clock = FixedClock.on(date(2026, 2, 11), 'America/New_York')
        items = [
            item('1', json.dumps({'date': '2026-02-10'})),
            item('2', created_at='2026-02-09'),
        ]

        activity, per_day = build_board_activity(items, 'b1', LOG, clock)

        assert per_day == {date(2026, 2, 10): 1, date(2026, 2, 9): 1}
        assert activity[0].created_at == datetime(2026, 2, 10, tzinfo=clock.tz)

    def test_undated_items_land_on_today(self, fixed_clock) -> None:
        activity, per_day = build_board_activity([item('1')], 'b1', LOG, fixed_clock)

        assert per_day == {date(2026, 2, 11): 1}
        assert activity[0].created_at == fixed_clock.now()

    def test_items_without_id_counted_not_stored(self, fixed_clock) -> None:
        activity, per_day = build_board_activity(
            [item(None, created_at='2026-02-03T10:00:00Z')], 'b1', LOG, fixed_clock
        )

        assert activity == []
        assert per_day[date(2026, 2, 3)] == 1

    def test_company_name_read_when_requested(self, fixed_clock) -> None:
        company = {'id': 'company', 'text': 'Acme Media', 'value': None}
        source = [item('7', created_at='2026-02-03T10:00:00Z', extra=[company])]

        with_company, _ = build_board_activity(source, 'b2', LOG, fixed_clock, company_column='company')
        without, _ = build_board_activity(source, 'b1', LOG, fixed_clock)

        assert with_company[0].company_name == 'Acme Media'
        assert without[0].company_name is None


class TestReconcileBoard:
    async def test_writes_funnel_counts_and_activity(self, settings, fixed_clock, fake_monday) -> None:
        leads_log = settings.monday_leads_creation_column
        fake_monday.boards = {
            settings.monday_leads_board_id: [
                {'id': '1', 'column_values': [{'id': leads_log, 'value': json.dumps({'date': '2026-02-02T09:00:00Z'})}]},
                {'id': '2', 'created_at': '2026-02-02T11:00:00Z', 'column_values': []},
                {'id': '3', 'created_at': '2026-02-03T11:00:00Z', 'column_values': []},
            ],
            settings.monday_contracts_board_id: [
                {'id': '9', 'created_at': '2026-02-03T15:00:00Z', 'column_values': [
                    {'id': settings.monday_contracts_company_column, 'text': 'Acme', 'value': None},
                ]},
            ],
        }

        with patch('pacing_backend.services.repository.upsert_funnel_counts', new=AsyncMock(return_value=2)) as funnel, \
             patch('pacing_backend.services.repository.upsert_activity_items', new=AsyncMock(return_value=4)) as activity:
            result = await reconcile_board(settings=settings, client=fake_monday, clock=fixed_clock)

        assert sorted(fake_monday.fetched) == sorted([settings.monday_leads_board_id, settings.monday_contracts_board_id])
        funnel.assert_awaited_once_with({date(2026, 2, 2): (2, 0), date(2026, 2, 3): (1, 1)})

        items = activity.await_args.args[0]
        assert len(items) == 4
        assert [i.company_name for i in items if i.board_id == settings.monday_contracts_board_id] == ['Acme']
        assert result.funnel_rows == 2
        assert result.activity_rows == 4

    async def test_missing_token_raises_before_fetch(self, settings, fixed_clock, fake_monday) -> None:
        fake_monday.configured = False

        with pytest.raises(MissingConfigurationError):
            await reconcile_board(settings=settings, client=fake_monday, clock=fixed_clock)

        assert fake_monday.fetched == []
