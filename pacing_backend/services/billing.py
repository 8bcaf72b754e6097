"""
Billing Ledger Reconciliation

Reads the demand and supply tabs of the billing spreadsheet and writes
monthly actuals into monthly_goals.

Sheet layout (both tabs, header in row 1):
    Column A: month label ("Jan26", "January 2026", "1/26", ...)
    Column C: category
    Column H: amount ("$157,271.11", "(25.00)", ...)

Category mapping (case and whitespace insensitive):

    | Tab    | Category            | Bucket        |
    |--------|---------------------|---------------|
    | Demand | Media               | media_revenue |
    | Demand | SaaS                | saas_actual   |
    | Supply | Media               | media_cost    |
    | Supply | Tech Provider       | tech_cost     |
    | Supply | Brand Safety Vendor | bs_cost       |

Rows with an unparseable month or amount, or an empty category, are skipped
and logged as malformed. Unknown categories are skipped at debug level.
Amounts are summed per month and bucket through a pandas pivot, and each
month is written with a partial upsert that touches only the five billing
columns.
"""

import asyncio
import logging
from datetime import date
from typing import Dict, List, Optional, Sequence, Tuple

import pandas as pd

from pacing_backend.clients.sheets_client import SheetsClient
from pacing_backend.core.config import Settings, get_settings
from pacing_backend.core.errors import MissingConfigurationError
from pacing_backend.core.resilience import RetryPolicy, with_retry
from pacing_backend.models import BillingBucket, BillingSyncResult, MonthlyBreakdown, PartnerSide
from pacing_backend.services import repository
from pacing_backend.services.parsing import normalize_category, parse_amount, parse_month_key

logger = logging.getLogger(__name__)

# =============================================================================
# CONSTANTS
# =============================================================================

COL_MONTH = 0     # A
COL_CATEGORY = 2  # C
COL_AMOUNT = 7    # H

CATEGORY_BUCKETS: Dict[PartnerSide, Dict[str, BillingBucket]] = {
    PartnerSide.DEMAND: {
        'media': BillingBucket.MEDIA_REVENUE,
        'saas': BillingBucket.SAAS_ACTUAL,
    },
    PartnerSide.SUPPLY: {
        'media': BillingBucket.MEDIA_COST,
        'tech provider': BillingBucket.TECH_COST,
        'brand safety vendor': BillingBucket.BS_COST,
    },
}

BUCKET_COLUMNS: List[str] = [bucket.value for bucket in BillingBucket]


def _cell(row: Sequence[str], index: int) -> str:
    return row[index] if index < len(row) else ''


# =============================================================================
# Row processing
# =============================================================================

def parse_billing_rows(rows: List[List[str]], side: PartnerSide) -> Tuple[List[dict], int]:
    """
    Turn one tab's grid into (month, bucket, amount) entries.

    Args:
        rows: Grid from SheetsClient.read_range, header row included.
        side: Which tab the grid came from.

    Returns:
        (entries, skipped): entries are dicts with month ("YYYY-MM-01"),
        bucket and amount; skipped counts malformed rows. Blank rows and
        unknown categories are not counted as malformed.
    """
    buckets = CATEGORY_BUCKETS[side]
    entries: List[dict] = []
    skipped = 0

    for row_number, row in enumerate(rows[1:], start=2):
        if not any(str(cell).strip() for cell in row):
            continue

        month_cell = _cell(row, COL_MONTH)
        category = normalize_category(_cell(row, COL_CATEGORY))
        amount_cell = _cell(row, COL_AMOUNT)

        month = parse_month_key(month_cell)
        amount = parse_amount(amount_cell)

        if month is None or amount is None or not category:
            logger.warning(
                f"Skipping malformed {side.value} billing row {row_number}: "
                f"month={month_cell!r} category={category!r} amount={amount_cell!r}"
            )
            skipped += 1
            continue

        bucket = buckets.get(category)
        if bucket is None:
            logger.debug(f"Ignoring {side.value} billing row {row_number} with category {category!r}")
            continue

        entries.append({'month': month, 'bucket': bucket.value, 'amount': amount})

    return entries, skipped


def process_billing_rows(
    demand_rows: List[List[str]],
    supply_rows: List[List[str]],
) -> Tuple[List[MonthlyBreakdown], int]:
    """
    Aggregate both tabs into one MonthlyBreakdown per month.

    Returns:
        (breakdowns sorted by month, total malformed rows skipped). Buckets
        with no rows in a month are 0.
    """
    demand_entries, demand_skipped = parse_billing_rows(demand_rows, PartnerSide.DEMAND)
    supply_entries, supply_skipped = parse_billing_rows(supply_rows, PartnerSide.SUPPLY)
    skipped = demand_skipped + supply_skipped

    df = pd.DataFrame(demand_entries + supply_entries, columns=['month', 'bucket', 'amount'])
    if df.empty:
        return [], skipped

    pivot = df.pivot_table(
        index='month',
        columns='bucket',
        values='amount',
        aggfunc='sum',
        fill_value=0.0,
    ).reindex(columns=BUCKET_COLUMNS, fill_value=0.0).sort_index()

    row_counts = df.groupby('month').size()

    breakdowns = []
    for month, values in pivot.iterrows():
        logger.info(f"Billing {month}: {int(row_counts[month])} row(s) processed")
        breakdowns.append(MonthlyBreakdown(
            month=date.fromisoformat(month),
            **{column: float(values[column]) for column in BUCKET_COLUMNS},
        ))

    return breakdowns, skipped


# =============================================================================
# Reconciliation
# =============================================================================

async def reconcile_billing(
    *,
    settings: Optional[Settings] = None,
    client: Optional[SheetsClient] = None,
) -> BillingSyncResult:
    """
    Sync monthly billing actuals from the billing spreadsheet.

    Both tabs are read concurrently. Goal columns on existing monthly_goals
    rows are never touched.

    Returns:
        BillingSyncResult with the number of months written and malformed
        rows skipped.

    Raises:
        MissingConfigurationError: If the sheet id or credentials are unset.
        TransientIOError / SourceResponseError: If a read fails after retries.
        PersistenceError: If the store rejects the upsert.
    """
    settings = settings or get_settings()
    if not settings.billing_sheet_id:
        raise MissingConfigurationError("Missing BILLING_SHEET_ID for billing reconciliation")

    client = client or SheetsClient(settings)
    policy = RetryPolicy.from_settings(settings)
    sheet_id = settings.billing_sheet_id

    demand_rows, supply_rows = await asyncio.gather(
        with_retry(
            lambda: client.read_range(sheet_id, settings.billing_demand_range),
            policy,
            label=f"billing {settings.billing_demand_range}",
        ),
        with_retry(
            lambda: client.read_range(sheet_id, settings.billing_supply_range),
            policy,
            label=f"billing {settings.billing_supply_range}",
        ),
    )
    logger.info(f"Billing: read {len(demand_rows)} demand and {len(supply_rows)} supply rows")

    breakdowns, skipped = process_billing_rows(demand_rows, supply_rows)
    months_updated = await repository.upsert_month_breakdowns(breakdowns)

    logger.info(f"Billing: updated {months_updated} month(s), skipped {skipped} malformed row(s)")
    return BillingSyncResult(months_updated=months_updated, rows_skipped=skipped)
