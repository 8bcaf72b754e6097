"""
Tests for the yearly total overview and partner concentration.
"""

from datetime import date
from unittest.mock import AsyncMock, patch

import pytest

from pacing_backend.core.errors import MalformedInputError
from pacing_backend.models import ClientRevenueRow, MonthlyGoal, PartnerSide
from pacing_backend.services.financials import (
    OTHERS_LABEL,
    UNKNOWN_LABEL,
    build_side_concentration,
    get_partner_concentration,
    get_total_overview,
)

MONTH = date(2026, 1, 1)
BREAKDOWN = 'pacing_backend.services.repository.fetch_client_breakdown'


def revenue_row(name: str, amount: float, side: PartnerSide = PartnerSide.DEMAND) -> ClientRevenueRow:
    return ClientRevenueRow(month=MONTH, partner_name=name, side=side, revenue=amount)


class TestTotalOverview:
    async def test_twelve_months_zero_filled(self, settings) -> None:
        goals = [
            MonthlyGoal(month=date(2026, 3, 1), media_revenue=1000.0, saas_actual=200.0,
                        media_cost=400.0, tech_cost=30.0, bs_cost=5.0, revenue_goal=9999.0),
        ]
        with patch('pacing_backend.services.repository.fetch_monthly_goals',
                   new=AsyncMock(return_value=goals)) as fetch:
            overview = await get_total_overview(2026, settings=settings)

        fetch.assert_awaited_once_with(date(2026, 1, 1), date(2026, 12, 1))
        assert [m.month for m in overview] == [date(2026, m, 1) for m in range(1, 13)]
        march = overview[2]
        assert march.media_revenue == 1000.0
        assert march.saas_revenue == 200.0
        assert march.bs_cost == 5.0
        assert overview[0].media_revenue == 0.0

    async def test_defaults_to_configured_year(self, settings) -> None:
        settings.overview_year = 2025
        with patch('pacing_backend.services.repository.fetch_monthly_goals',
                   new=AsyncMock(return_value=[])) as fetch:
            overview = await get_total_overview(settings=settings)

        fetch.assert_awaited_once_with(date(2025, 1, 1), date(2025, 12, 1))
        assert overview[0].month == date(2025, 1, 1)


class TestSideConcentration:
    def test_top_partners_and_others(self) -> None:
        rows = [revenue_row(f'P{i}', float(i)) for i in range(1, 6)]

        side = build_side_concentration(rows, top_n=3)

        assert side.total == 15.0
        assert [p.name for p in side.partners] == ['P5', 'P4', 'P3', OTHERS_LABEL]
        assert side.partners[0].percent == 33.3
        assert side.partners[-1].revenue == 3.0
        assert side.partners[-1].percent == 20.0

    def test_no_others_when_remainder_is_zero(self) -> None:
        rows = [revenue_row('A', 10.0), revenue_row('B', 0.0)]

        side = build_side_concentration(rows, top_n=1)

        assert [p.name for p in side.partners] == ['A']

    def test_names_trimmed_and_merged(self) -> None:
        rows = [revenue_row(' Acme ', 5.0), revenue_row('Acme', 5.0), revenue_row('  ', 2.0)]

        side = build_side_concentration(rows, top_n=10)

        assert {p.name: p.revenue for p in side.partners} == {'Acme': 10.0, UNKNOWN_LABEL: 2.0}

    def test_empty_side(self) -> None:
        side = build_side_concentration([], top_n=10)

        assert side.total == 0.0
        assert side.partners == []


class TestPartnerConcentration:
    async def test_risk_when_single_partner_dominates(self, settings) -> None:
        rows = [
            revenue_row('Big', 80.0),
            revenue_row('Small', 20.0),
            revenue_row('Pub', 10.0, PartnerSide.SUPPLY),
        ]
        with patch(BREAKDOWN, new=AsyncMock(return_value=rows)):
            result = await get_partner_concentration('2026-01', settings=settings)

        assert result.month == MONTH
        assert result.concentration_risk is True
        assert result.demand.partners[0].percent == 80.0
        assert result.supply.total == 10.0

    async def test_others_bucket_never_triggers_risk(self, settings) -> None:
        settings.concentration_top_n = 2
        rows = [revenue_row(f'P{i}', 10.0) for i in range(10)]
        with patch(BREAKDOWN, new=AsyncMock(return_value=rows)):
            result = await get_partner_concentration(MONTH, settings=settings)

        assert result.demand.partners[-1].name == OTHERS_LABEL
        assert result.demand.partners[-1].percent == 80.0
        assert result.concentration_risk is False

    async def test_no_rows_returns_none(self, settings) -> None:
        with patch(BREAKDOWN, new=AsyncMock(return_value=[])):
            assert await get_partner_concentration('2026-01', settings=settings) is None

    async def test_month_required(self, settings) -> None:
        with pytest.raises(MalformedInputError):
            await get_partner_concentration('', settings=settings)
