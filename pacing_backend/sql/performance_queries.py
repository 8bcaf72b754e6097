"""
Parameterized SQL for partner performance, monthly goals and client breakdowns.

Every function returns query text with asyncpg $n placeholders; values are
always passed separately. Upserts name their conflict key explicitly and only
ever SET the columns their writer owns, so the billing flow and the goal
import can both write the same monthly_goals row without clobbering each
other.
"""

from typing import Sequence

# Columns of monthly_goals written by billing reconciliation
BILLING_COLUMNS = ("media_revenue", "saas_actual", "media_cost", "tech_cost", "bs_cost")

# Columns of monthly_goals written by goal import
GOAL_COLUMNS = ("revenue_goal", "saas_goal", "profit_goal")

MONTHLY_GOAL_COLUMNS = GOAL_COLUMNS + BILLING_COLUMNS


# =============================================================================
# daily_partner_performance
# =============================================================================

PARTNER_TOTALS_QUERY = """
    SELECT
        COALESCE(SUM(revenue), 0)::float8 AS revenue,
        COALESCE(SUM(cost), 0)::float8 AS cost,
        COUNT(*) AS row_count
    FROM daily_partner_performance
    WHERE date >= $1 AND date <= $2
"""

PARTNER_UPSERT_QUERY = """
    INSERT INTO daily_partner_performance (
        date, partner_name, side, revenue, cost, impressions, updated_at
    ) VALUES (
        $1, $2, $3, $4, $5, $6, NOW()
    )
    ON CONFLICT (date, partner_name, side)
    DO UPDATE SET
        revenue = EXCLUDED.revenue,
        cost = EXCLUDED.cost,
        impressions = EXCLUDED.impressions,
        updated_at = NOW()
"""


# =============================================================================
# monthly_goals
# =============================================================================

MONTHLY_GOAL_QUERY = f"""
    SELECT month, {", ".join(f"COALESCE({c}, 0)::float8 AS {c}" for c in MONTHLY_GOAL_COLUMNS)}
    FROM monthly_goals
    WHERE month = $1
"""

MONTHLY_GOALS_RANGE_QUERY = f"""
    SELECT month, {", ".join(f"COALESCE({c}, 0)::float8 AS {c}" for c in MONTHLY_GOAL_COLUMNS)}
    FROM monthly_goals
    WHERE month >= $1 AND month <= $2
    ORDER BY month ASC
"""


def get_monthly_goal_upsert_query(columns: Sequence[str]) -> str:
    """
    Build a partial upsert for monthly_goals touching only the given columns.

    A new month row is inserted with the given columns and database defaults
    for the rest; an existing row keeps every column not listed.

    Args:
        columns: Column names in the order their values will be passed after
            the month ($1). Must be monthly_goals value columns.

    Returns:
        str: INSERT ... ON CONFLICT (month) DO UPDATE query text.

    Raises:
        ValueError: If a column is not a monthly_goals value column or the
            list is empty.

    Example:
        >>> sql = get_monthly_goal_upsert_query(["revenue_goal", "saas_goal"])
        >>> # await conn.execute(sql, date(2026, 1, 1), 120000.0, 30000.0)
    """
    if not columns:
        raise ValueError("At least one column is required for a partial upsert")
    unknown = [c for c in columns if c not in MONTHLY_GOAL_COLUMNS]
    if unknown:
        raise ValueError(f"Not monthly_goals value columns: {', '.join(unknown)}")

    column_list = ", ".join(columns)
    placeholders = ", ".join(f"${i}" for i in range(2, len(columns) + 2))
    assignments = ",\n            ".join(f"{c} = EXCLUDED.{c}" for c in columns)

    return f"""
        INSERT INTO monthly_goals (month, {column_list}, updated_at)
        VALUES ($1, {placeholders}, NOW())
        ON CONFLICT (month)
        DO UPDATE SET
            {assignments},
            updated_at = NOW()
    """


# =============================================================================
# client_revenue_breakdown
# =============================================================================

CLIENT_BREAKDOWN_DELETE_QUERY = """
    DELETE FROM client_revenue_breakdown
    WHERE month = $1 AND side = $2
"""

CLIENT_BREAKDOWN_INSERT_QUERY = """
    INSERT INTO client_revenue_breakdown (
        month, partner_name, side, revenue, business_entity, category
    ) VALUES (
        $1, $2, $3, $4, $5, $6
    )
"""

CLIENT_BREAKDOWN_MONTH_QUERY = """
    SELECT partner_name, side, revenue::float8 AS revenue
    FROM client_revenue_breakdown
    WHERE month = $1
    ORDER BY revenue DESC
"""
