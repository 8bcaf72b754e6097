"""
Tests for the month, amount and category parsers and calendar helpers.

Covers the spreadsheet label forms seen in the billing ledger, currency
cells with separators and accounting negatives, and the request-side
month parameter validation.
"""

from datetime import date

import pytest

from pacing_backend.core.errors import MalformedInputError
from pacing_backend.services.parsing import (
    days_in_month,
    iter_days,
    month_end,
    month_key,
    next_month,
    normalize_category,
    normalize_month_param,
    parse_amount,
    parse_currency_value,
    parse_month_key,
    prior_month,
    round_half_up,
)


class TestParseMonthKey:
    """Month labels from column A of the billing tabs."""

    @pytest.mark.parametrize('cell, expected', [
        ('Jan26', '2026-01-01'),
        ('Jan 26', '2026-01-01'),
        ('Jan 2026', '2026-01-01'),
        ('January 26', '2026-01-01'),
        ('january 2026', '2026-01-01'),
        ('  Feb26  ', '2026-02-01'),
        ('Sept-25', '2025-09-01'),
        ('DEC25', '2025-12-01'),
        ('1/26', '2026-01-01'),
        ('01/2026', '2026-01-01'),
        ('12/25', '2025-12-01'),
        ('2026-03', '2026-03-01'),
        ('2026-03-01', '2026-03-01'),
    ])
    def test_accepted_forms(self, cell: str, expected: str) -> None:
        assert parse_month_key(cell) == expected

    @pytest.mark.parametrize('cell', [
        None, '', '   ', 'Total', 'Month', '13/26', 'Foo26', '2026', 'Jan',
    ])
    def test_unrecognised_returns_none(self, cell) -> None:
        assert parse_month_key(cell) is None


class TestParseAmount:
    """Currency cells from column H."""

    def test_dollar_and_thousands_separators(self) -> None:
        assert parse_amount('$157,271.11') == 157271.11

    def test_cents_survive_parsing(self) -> None:
        assert parse_amount('$0.07') == 0.07
        assert parse_amount('1,000,000.99') == 1000000.99

    def test_accounting_negative(self) -> None:
        assert parse_amount('(1,234.50)') == -1234.5

    def test_leading_minus(self) -> None:
        assert parse_amount('-$25.00') == -25.0

    def test_empty_cell_is_zero(self) -> None:
        assert parse_amount('') == 0.0
        assert parse_amount('   ') == 0.0
        assert parse_amount(None) == 0.0

    def test_numbers_pass_through(self) -> None:
        assert parse_amount(42) == 42.0
        assert parse_amount(12.5) == 12.5

    @pytest.mark.parametrize('cell', ['n/a', '12abc', True, float('nan')])
    def test_unparseable_returns_none(self, cell) -> None:
        assert parse_amount(cell) is None

    def test_bare_symbol_counts_as_empty(self) -> None:
        assert parse_amount('$') == 0.0


class TestParseCurrencyValue:
    def test_strings_and_numbers(self) -> None:
        assert parse_currency_value('1,200.50') == 1200.5
        assert parse_currency_value(99) == 99.0

    def test_garbage_is_zero(self) -> None:
        assert parse_currency_value(None) == 0.0
        assert parse_currency_value('oops') == 0.0
        assert parse_currency_value({'value': 1}) == 0.0


class TestNormalizeCategory:
    def test_trims_collapses_and_casefolds(self) -> None:
        assert normalize_category('  Brand   Safety Vendor ') == 'brand safety vendor'
        assert normalize_category('SAAS') == 'saas'

    def test_none_is_empty(self) -> None:
        assert normalize_category(None) == ''


class TestRoundHalfUp:
    def test_half_rounds_up(self) -> None:
        assert round_half_up(12.5) == 13.0
        assert round_half_up(0.5) == 1.0

    def test_one_decimal(self) -> None:
        assert round_half_up(33.35, 1) == 33.4
        assert round_half_up(66.666, 1) == 66.7

    def test_negative_halves_round_up(self) -> None:
        assert round_half_up(-2.5) == -2.0
        assert round_half_up(-0.25, 1) == -0.2
        assert round_half_up(-2.6) == -3.0


class TestNormalizeMonthParam:
    def test_month_forms(self) -> None:
        assert normalize_month_param('2026-02') == date(2026, 2, 1)
        assert normalize_month_param('2026-02-01') == date(2026, 2, 1)
        assert normalize_month_param(date(2026, 2, 17)) == date(2026, 2, 1)

    def test_blank_is_none(self) -> None:
        assert normalize_month_param(None) is None
        assert normalize_month_param('  ') is None

    @pytest.mark.parametrize('value', ['Feb 2026', '2026-13', '2026/02', 'latest'])
    def test_invalid_raises(self, value: str) -> None:
        with pytest.raises(MalformedInputError):
            normalize_month_param(value)


class TestCalendarHelpers:
    def test_days_in_month_handles_leap_years(self) -> None:
        assert days_in_month(date(2026, 2, 1)) == 28
        assert days_in_month(date(2028, 2, 1)) == 29
        assert days_in_month(date(2026, 1, 15)) == 31

    def test_month_navigation_across_years(self) -> None:
        assert prior_month(date(2026, 1, 20)) == date(2025, 12, 1)
        assert next_month(date(2025, 12, 5)) == date(2026, 1, 1)
        assert month_end(date(2026, 4, 2)) == date(2026, 4, 30)

    def test_month_key(self) -> None:
        assert month_key(date(2026, 2, 11)) == '2026-02'

    def test_iter_days_inclusive(self) -> None:
        days = list(iter_days(date(2026, 2, 27), date(2026, 3, 1)))
        assert days == [date(2026, 2, 27), date(2026, 2, 28), date(2026, 3, 1)]
        assert list(iter_days(date(2026, 3, 2), date(2026, 3, 1))) == []
