"""
SQL query module for the pacing dashboard backend.

Provides parameterized SQL text for:
- Partner performance, monthly goals and client breakdowns (performance_queries)
- Funnel snapshots and board activity (funnel_queries)

and the DDL for every table in schema.sql.

Example usage:
    from pacing_backend.sql import PARTNER_TOTALS_QUERY, get_monthly_goal_upsert_query

    rows = await conn.fetchrow(PARTNER_TOTALS_QUERY, month_start, data_through)
    sql = get_monthly_goal_upsert_query(BILLING_COLUMNS)
"""

from pathlib import Path

# =============================================================================
# PERFORMANCE QUERIES - Partner records, monthly goals, client breakdown
# =============================================================================

from pacing_backend.sql.performance_queries import (
    BILLING_COLUMNS,
    GOAL_COLUMNS,
    MONTHLY_GOAL_COLUMNS,
    PARTNER_TOTALS_QUERY,
    PARTNER_UPSERT_QUERY,
    MONTHLY_GOAL_QUERY,
    MONTHLY_GOALS_RANGE_QUERY,
    get_monthly_goal_upsert_query,
    CLIENT_BREAKDOWN_DELETE_QUERY,
    CLIENT_BREAKDOWN_INSERT_QUERY,
    CLIENT_BREAKDOWN_MONTH_QUERY,
)

# =============================================================================
# FUNNEL QUERIES - Snapshots and board activity
# =============================================================================

from pacing_backend.sql.funnel_queries import (
    FUNNEL_COUNTS_UPSERT_QUERY,
    LATEST_SNAPSHOT_QUERY,
    FUNNEL_TOTALS_QUERY,
    ACTIVITY_UPSERT_QUERY,
    ACTIVITY_COUNTS_QUERY,
    ACTIVITY_DAILY_QUERY,
    SIGNED_DEAL_COMPANIES_QUERY,
)

SCHEMA_PATH = Path(__file__).with_name("schema.sql")


def load_schema() -> str:
    """Return the DDL creating every table the backend reads or writes."""
    return SCHEMA_PATH.read_text(encoding="utf-8")


__all__ = [
    'BILLING_COLUMNS',
    'GOAL_COLUMNS',
    'MONTHLY_GOAL_COLUMNS',
    'PARTNER_TOTALS_QUERY',
    'PARTNER_UPSERT_QUERY',
    'MONTHLY_GOAL_QUERY',
    'MONTHLY_GOALS_RANGE_QUERY',
    'get_monthly_goal_upsert_query',
    'CLIENT_BREAKDOWN_DELETE_QUERY',
    'CLIENT_BREAKDOWN_INSERT_QUERY',
    'CLIENT_BREAKDOWN_MONTH_QUERY',
    'FUNNEL_COUNTS_UPSERT_QUERY',
    'LATEST_SNAPSHOT_QUERY',
    'FUNNEL_TOTALS_QUERY',
    'ACTIVITY_UPSERT_QUERY',
    'ACTIVITY_COUNTS_QUERY',
    'ACTIVITY_DAILY_QUERY',
    'SIGNED_DEAL_COMPANIES_QUERY',
    'SCHEMA_PATH',
    'load_schema',
]
