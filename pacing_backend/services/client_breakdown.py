"""
Client Revenue Breakdown

Per-partner billed amounts from the billing spreadsheet, stored in
client_revenue_breakdown for the partner concentration view.

Columns (both tabs):
    A: month   B: business entity   C: category   D: partner name   H: amount

Demand rows are advertisers (revenue), supply rows are publishers (cost).
For each (month, side) with at least one row, amounts are summed per partner
and the stored rows for that (month, side) are replaced in one transaction.
A (month, side) with no rows in the sheet keeps whatever is stored.
"""

import asyncio
import logging
from datetime import date
from typing import Dict, List, Optional, Sequence, Set, Union

import pandas as pd

from pacing_backend.clients.sheets_client import SheetsClient
from pacing_backend.core.config import Settings, get_settings
from pacing_backend.core.errors import MissingConfigurationError
from pacing_backend.core.resilience import RetryPolicy, with_retry
from pacing_backend.models import ClientBreakdownSyncResult, ClientRevenueRow, PartnerSide
from pacing_backend.services import repository
from pacing_backend.services.parsing import normalize_month_param, parse_amount, parse_month_key

logger = logging.getLogger(__name__)

COL_MONTH = 0
COL_BUSINESS_ENTITY = 1
COL_CATEGORY = 2
COL_NAME = 3
COL_AMOUNT = 7

BREAKDOWN_COLUMNS = ['month', 'partner_name', 'revenue', 'business_entity', 'category']


def _cell(row: Sequence[str], index: int) -> str:
    return str(row[index]).strip() if index < len(row) else ''


def breakdown_frame(rows: List[List[str]], side: PartnerSide) -> pd.DataFrame:
    """
    Parse one tab into a frame aggregated per (month, partner_name).

    Rows without a partner name or a parseable month are ignored; rows with
    an unparseable amount are skipped with a warning. business_entity and
    category are taken from the partner's first row in the month.
    """
    records = []
    for row_number, row in enumerate(rows[1:], start=2):
        month = parse_month_key(_cell(row, COL_MONTH))
        name = _cell(row, COL_NAME)
        if month is None or not name:
            continue

        amount = parse_amount(_cell(row, COL_AMOUNT))
        if amount is None:
            logger.warning(f"Skipping {side.value} breakdown row {row_number}: amount {_cell(row, COL_AMOUNT)!r}")
            continue

        records.append({
            'month': month,
            'partner_name': name,
            'revenue': amount,
            'business_entity': _cell(row, COL_BUSINESS_ENTITY) or None,
            'category': _cell(row, COL_CATEGORY) or None,
        })

    df = pd.DataFrame(records, columns=BREAKDOWN_COLUMNS)
    if df.empty:
        return df

    return (
        df.groupby(['month', 'partner_name'], as_index=False, sort=True)
        .agg(
            revenue=('revenue', 'sum'),
            business_entity=('business_entity', 'first'),
            category=('category', 'first'),
        )
    )


def _optional_text(value) -> Optional[str]:
    return value if isinstance(value, str) and value else None


def frame_to_rows(df: pd.DataFrame, month: str, side: PartnerSide) -> List[ClientRevenueRow]:
    month_df = df[df['month'] == month]
    return [
        ClientRevenueRow(
            month=date.fromisoformat(month),
            partner_name=record['partner_name'],
            side=side,
            revenue=float(record['revenue']),
            business_entity=_optional_text(record['business_entity']),
            category=_optional_text(record['category']),
        )
        for record in month_df.to_dict('records')
    ]


async def reconcile_client_breakdown(
    months: Optional[Sequence[Union[str, date]]] = None,
    *,
    settings: Optional[Settings] = None,
    client: Optional[SheetsClient] = None,
) -> ClientBreakdownSyncResult:
    """
    Replace the stored client breakdown for the selected months.

    Args:
        months: Month strings or dates to refresh; every month present in
            the sheet when omitted.

    Returns:
        ClientBreakdownSyncResult with months touched and rows inserted.
    """
    settings = settings or get_settings()
    if not settings.billing_sheet_id:
        raise MissingConfigurationError("Missing BILLING_SHEET_ID for client breakdown")

    client = client or SheetsClient(settings)
    policy = RetryPolicy.from_settings(settings)
    sheet_id = settings.billing_sheet_id

    demand_rows, supply_rows = await asyncio.gather(
        with_retry(
            lambda: client.read_range(sheet_id, settings.billing_demand_range),
            policy,
            label=f"client breakdown {settings.billing_demand_range}",
        ),
        with_retry(
            lambda: client.read_range(sheet_id, settings.billing_supply_range),
            policy,
            label=f"client breakdown {settings.billing_supply_range}",
        ),
    )

    frames: Dict[PartnerSide, pd.DataFrame] = {
        PartnerSide.DEMAND: breakdown_frame(demand_rows, PartnerSide.DEMAND),
        PartnerSide.SUPPLY: breakdown_frame(supply_rows, PartnerSide.SUPPLY),
    }

    if months:
        wanted = sorted({m.isoformat() for m in (normalize_month_param(v) for v in months) if m})
    else:
        present: Set[str] = set()
        for df in frames.values():
            present.update(df['month'].unique())
        wanted = sorted(present)

    months_touched: Set[str] = set()
    inserted = 0
    for month in wanted:
        for side, df in frames.items():
            rows = frame_to_rows(df, month, side)
            if not rows:
                logger.warning(f"No {side.value} breakdown rows for {month}, keeping stored rows")
                continue
            inserted += await repository.replace_client_breakdown(date.fromisoformat(month), side, rows)
            months_touched.add(month)

    logger.info(f"Client breakdown: {inserted} row(s) across {len(months_touched)} month(s)")
    return ClientBreakdownSyncResult(months_updated=len(months_touched), rows_inserted=inserted)
