"""
Durable store access for the pacing dashboard.

Every read and write against PostgreSQL goes through this module. Functions
acquire a connection from the shared asyncpg pool, run parameterized SQL from
pacing_backend.sql and return pydantic models or plain numbers.

Error mapping:
- Connection-level failures (socket errors, dropped connections, command
  timeouts) become TransientIOError so the caller's retry wrapper can retry
  the read.
- Anything else the server rejects becomes PersistenceError carrying the
  server message. Writes are never retried by callers, so a failed write
  aborts the flow that issued it.

Batching:
Record upserts are split into chunks of at most `batch_size` rows. Each chunk
is one executemany inside its own transaction, and chunks are awaited in order.
"""

import asyncio
import logging
from contextlib import contextmanager
from datetime import date
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

import asyncpg

from pacing_backend.core.database import apply_schema, affected_rows, get_db_pool
from pacing_backend.core.errors import PersistenceError, TransientIOError
from pacing_backend.models import (
    ActivityItem,
    ClientRevenueRow,
    DailyFunnelSnapshot,
    DailyPartnerRecord,
    FunnelCounts,
    MonthlyBreakdown,
    MonthlyGoal,
    MonthlyTarget,
    PartnerSide,
)
from pacing_backend.sql import (
    ACTIVITY_COUNTS_QUERY,
    ACTIVITY_DAILY_QUERY,
    ACTIVITY_UPSERT_QUERY,
    BILLING_COLUMNS,
    CLIENT_BREAKDOWN_DELETE_QUERY,
    CLIENT_BREAKDOWN_INSERT_QUERY,
    CLIENT_BREAKDOWN_MONTH_QUERY,
    FUNNEL_COUNTS_UPSERT_QUERY,
    FUNNEL_TOTALS_QUERY,
    GOAL_COLUMNS,
    LATEST_SNAPSHOT_QUERY,
    MONTHLY_GOAL_QUERY,
    MONTHLY_GOALS_RANGE_QUERY,
    PARTNER_TOTALS_QUERY,
    PARTNER_UPSERT_QUERY,
    SIGNED_DEAL_COMPANIES_QUERY,
    get_monthly_goal_upsert_query,
    load_schema,
)

# Configure module logger
logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 2000

_CONNECTION_ERRORS = (
    OSError,
    asyncio.TimeoutError,
    asyncpg.exceptions.PostgresConnectionError,
    asyncpg.exceptions.InterfaceError,
)


# =============================================================================
# Error translation
# =============================================================================

@contextmanager
def _store_errors(action: str) -> Iterator[None]:
    """Translate asyncpg failures into the dashboard error taxonomy."""
    try:
        yield
    except _CONNECTION_ERRORS as e:
        raise TransientIOError(f"Store unavailable while {action}: {e}") from e
    except asyncpg.PostgresError as e:
        logger.error(f"Store rejected {action}: {e}")
        raise PersistenceError(f"Store rejected {action}: {e}") from e


def _chunks(rows: Sequence[tuple], size: int) -> Iterator[Sequence[tuple]]:
    size = max(1, size)
    for start in range(0, len(rows), size):
        yield rows[start:start + size]


async def _execute_chunked(query: str, rows: Sequence[tuple], batch_size: int, action: str) -> int:
    """executemany in sequential chunks; returns the number of rows sent."""
    if not rows:
        return 0

    pool = await get_db_pool()
    written = 0
    total_chunks = (len(rows) + max(1, batch_size) - 1) // max(1, batch_size)

    with _store_errors(action):
        async with pool.acquire() as conn:
            for index, chunk in enumerate(_chunks(rows, batch_size), start=1):
                async with conn.transaction():
                    await conn.executemany(query, chunk)
                written += len(chunk)
                logger.debug(f"{action}: chunk {index}/{total_chunks} ({len(chunk)} rows)")

    return written


async def ensure_schema() -> None:
    """Create any missing tables."""
    with _store_errors("applying schema"):
        await apply_schema(load_schema())


# =============================================================================
# Partner performance
# =============================================================================

async def fetch_partner_totals(start: date, end: date) -> Tuple[float, float]:
    """
    Sum revenue and cost over every partner record dated start..end inclusive.

    Returns:
        (revenue, cost); (0.0, 0.0) when no rows match.
    """
    pool = await get_db_pool()

    with _store_errors("reading partner totals"):
        async with pool.acquire() as conn:
            row = await conn.fetchrow(PARTNER_TOTALS_QUERY, start, end)

    if row is None:
        return 0.0, 0.0
    return float(row['revenue'] or 0), float(row['cost'] or 0)


async def upsert_partner_records(
    records: Sequence[DailyPartnerRecord],
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> int:
    """
    Upsert partner records keyed by (date, partner_name, side).

    Args:
        records: Records to write. Keys must be unique within the call.
        batch_size: Maximum rows per statement.

    Returns:
        Number of records written.

    Raises:
        PersistenceError: If the store rejects any chunk. Earlier chunks stay
            committed; re-running the flow rewrites them idempotently.
    """
    rows = [
        (r.date, r.partner_name, r.side.value, r.revenue, r.cost, r.impressions)
        for r in records
    ]
    written = await _execute_chunked(
        PARTNER_UPSERT_QUERY, rows, batch_size, "upserting daily_partner_performance"
    )
    logger.info(f"Upserted {written} rows to daily_partner_performance")
    return written


# =============================================================================
# Monthly goals
# =============================================================================

def _goal_from_record(row: asyncpg.Record) -> MonthlyGoal:
    return MonthlyGoal(**{key: row[key] for key in row.keys()})


async def fetch_monthly_goal(month: date) -> Optional[MonthlyGoal]:
    """Return the monthly_goals row for a month start, or None."""
    pool = await get_db_pool()

    with _store_errors("reading monthly_goals"):
        async with pool.acquire() as conn:
            row = await conn.fetchrow(MONTHLY_GOAL_QUERY, month)

    return _goal_from_record(row) if row is not None else None


async def fetch_monthly_goals(first_month: date, last_month: date) -> List[MonthlyGoal]:
    """Return monthly_goals rows for month starts first_month..last_month."""
    pool = await get_db_pool()

    with _store_errors("reading monthly_goals"):
        async with pool.acquire() as conn:
            rows = await conn.fetch(MONTHLY_GOALS_RANGE_QUERY, first_month, last_month)

    return [_goal_from_record(row) for row in rows]


async def upsert_month_breakdowns(breakdowns: Sequence[MonthlyBreakdown]) -> int:
    """
    Write billing actuals, one partial upsert per month.

    Only the five billing columns are set; goal columns on an existing row
    are left untouched.
    """
    query = get_monthly_goal_upsert_query(BILLING_COLUMNS)
    rows = [
        (b.month,) + tuple(getattr(b, column) for column in BILLING_COLUMNS)
        for b in breakdowns
    ]
    written = await _execute_chunked(query, rows, DEFAULT_BATCH_SIZE, "upserting billing actuals")
    logger.info(f"Upserted billing actuals for {written} month(s)")
    return written


async def upsert_monthly_targets(targets: Sequence[MonthlyTarget]) -> int:
    """
    Write goal values, one partial upsert per month.

    Only revenue_goal, saas_goal and profit_goal are set; billing actuals on
    an existing row are left untouched.
    """
    query = get_monthly_goal_upsert_query(GOAL_COLUMNS)
    rows = [
        (t.month,) + tuple(getattr(t, column) for column in GOAL_COLUMNS)
        for t in targets
    ]
    written = await _execute_chunked(query, rows, DEFAULT_BATCH_SIZE, "upserting monthly goals")
    logger.info(f"Upserted goals for {written} month(s)")
    return written


# =============================================================================
# Funnel snapshots
# =============================================================================

async def upsert_funnel_counts(day_counts: Dict[date, Tuple[int, int]]) -> int:
    """
    Write board-derived funnel counts per day.

    Args:
        day_counts: {day: (total_leads, won_deals)}

    Returns:
        Number of days written. qualified_leads and ops_approved_leads of an
        existing snapshot are preserved.
    """
    rows = [(day, leads, won) for day, (leads, won) in sorted(day_counts.items())]
    written = await _execute_chunked(
        FUNNEL_COUNTS_UPSERT_QUERY, rows, DEFAULT_BATCH_SIZE, "upserting daily_funnel_metrics"
    )
    logger.info(f"Upserted {written} rows to daily_funnel_metrics")
    return written


async def fetch_latest_funnel_snapshot(start: date, end_exclusive: date) -> Optional[DailyFunnelSnapshot]:
    """Most recent snapshot dated in [start, end_exclusive), or None."""
    pool = await get_db_pool()

    with _store_errors("reading daily_funnel_metrics"):
        async with pool.acquire() as conn:
            row = await conn.fetchrow(LATEST_SNAPSHOT_QUERY, start, end_exclusive)

    if row is None:
        return None
    return DailyFunnelSnapshot(
        date=row['date'],
        total_leads=int(row['total_leads']),
        qualified_leads=int(row['qualified_leads']),
        ops_approved_leads=int(row['ops_approved_leads']),
        won_deals=int(row['won_deals']),
    )


async def fetch_funnel_totals() -> FunnelCounts:
    """Sum of every snapshot row, company-wide."""
    pool = await get_db_pool()

    with _store_errors("reading daily_funnel_metrics"):
        async with pool.acquire() as conn:
            row = await conn.fetchrow(FUNNEL_TOTALS_QUERY)

    if row is None:
        return FunnelCounts()
    return FunnelCounts(
        total_leads=int(row['total_leads']),
        qualified_leads=int(row['qualified_leads']),
        ops_approved_leads=int(row['ops_approved_leads']),
        won_deals=int(row['won_deals']),
    )


# =============================================================================
# Board activity
# =============================================================================

async def upsert_activity_items(
    items: Sequence[ActivityItem],
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> int:
    """Upsert activity items keyed by (item_id, board_id)."""
    rows = [
        (i.item_id, i.board_id, i.created_at, i.created_date, i.company_name)
        for i in items
    ]
    written = await _execute_chunked(
        ACTIVITY_UPSERT_QUERY, rows, batch_size, "upserting board_item_activity"
    )
    logger.info(f"Upserted {written} rows to board_item_activity")
    return written


async def fetch_activity_counts(board_ids: Sequence[str], start: date, end: date) -> Dict[str, int]:
    """Items created start..end inclusive, keyed by board id (missing boards count 0)."""
    pool = await get_db_pool()

    with _store_errors("reading board_item_activity"):
        async with pool.acquire() as conn:
            rows = await conn.fetch(ACTIVITY_COUNTS_QUERY, list(board_ids), start, end)

    counts = {board_id: 0 for board_id in board_ids}
    for row in rows:
        counts[str(row['board_id'])] = int(row['item_count'])
    return counts


async def fetch_activity_daily(
    board_ids: Sequence[str], start: date, end: date
) -> List[Tuple[date, str, int]]:
    """(created_date, board_id, count) rows for start..end inclusive, oldest first."""
    pool = await get_db_pool()

    with _store_errors("reading board_item_activity"):
        async with pool.acquire() as conn:
            rows = await conn.fetch(ACTIVITY_DAILY_QUERY, list(board_ids), start, end)

    return [(row['created_date'], str(row['board_id']), int(row['item_count'])) for row in rows]


async def fetch_signed_deal_companies(board_id: str, start: date, end: date) -> List[Tuple[date, str]]:
    """(created_date, company_name) for contracts-board items with a company name."""
    pool = await get_db_pool()

    with _store_errors("reading board_item_activity"):
        async with pool.acquire() as conn:
            rows = await conn.fetch(SIGNED_DEAL_COMPANIES_QUERY, board_id, start, end)

    return [(row['created_date'], str(row['company_name'])) for row in rows]


# =============================================================================
# Client revenue breakdown
# =============================================================================

async def replace_client_breakdown(
    month: date,
    side: PartnerSide,
    rows: Sequence[ClientRevenueRow],
) -> int:
    """
    Replace every breakdown row for (month, side) with the given rows.

    The delete and the inserts run in one transaction, so readers never see
    a half-replaced month.
    """
    pool = await get_db_pool()
    values = [
        (month, r.partner_name, side.value, r.revenue, r.business_entity, r.category)
        for r in rows
    ]

    with _store_errors("replacing client_revenue_breakdown"):
        async with pool.acquire() as conn:
            async with conn.transaction():
                status = await conn.execute(CLIENT_BREAKDOWN_DELETE_QUERY, month, side.value)
                if values:
                    await conn.executemany(CLIENT_BREAKDOWN_INSERT_QUERY, values)

    logger.info(
        f"Replaced client_revenue_breakdown for {month} {side.value}: "
        f"deleted {affected_rows(status)}, inserted {len(values)}"
    )
    return len(values)


async def fetch_client_breakdown(month: date) -> List[ClientRevenueRow]:
    """Breakdown rows for a month, largest revenue first."""
    pool = await get_db_pool()

    with _store_errors("reading client_revenue_breakdown"):
        async with pool.acquire() as conn:
            rows = await conn.fetch(CLIENT_BREAKDOWN_MONTH_QUERY, month)

    return [
        ClientRevenueRow(
            month=month,
            partner_name=str(row['partner_name']),
            side=PartnerSide(str(row['side']).lower()),
            revenue=float(row['revenue'] or 0),
        )
        for row in rows
    ]
