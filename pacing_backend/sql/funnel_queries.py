"""
Parameterized SQL for funnel snapshots and board activity.

daily_funnel_metrics holds one point-in-time snapshot per day; the board flow
only owns total_leads and won_deals, the two stages it can count, and leaves
qualified_leads and ops_approved_leads to whatever else maintains them.
"""

# =============================================================================
# daily_funnel_metrics
# =============================================================================

FUNNEL_COUNTS_UPSERT_QUERY = """
    INSERT INTO daily_funnel_metrics (
        date, total_leads, won_deals, updated_at
    ) VALUES (
        $1, $2, $3, NOW()
    )
    ON CONFLICT (date)
    DO UPDATE SET
        total_leads = EXCLUDED.total_leads,
        won_deals = EXCLUDED.won_deals,
        updated_at = NOW()
"""

# Latest snapshot dated within [$1, $2)
LATEST_SNAPSHOT_QUERY = """
    SELECT
        date,
        COALESCE(total_leads, 0) AS total_leads,
        COALESCE(qualified_leads, 0) AS qualified_leads,
        COALESCE(ops_approved_leads, 0) AS ops_approved_leads,
        COALESCE(won_deals, 0) AS won_deals
    FROM daily_funnel_metrics
    WHERE date >= $1 AND date < $2
    ORDER BY date DESC
    LIMIT 1
"""

FUNNEL_TOTALS_QUERY = """
    SELECT
        COALESCE(SUM(total_leads), 0)::bigint AS total_leads,
        COALESCE(SUM(qualified_leads), 0)::bigint AS qualified_leads,
        COALESCE(SUM(ops_approved_leads), 0)::bigint AS ops_approved_leads,
        COALESCE(SUM(won_deals), 0)::bigint AS won_deals
    FROM daily_funnel_metrics
"""


# =============================================================================
# board_item_activity
# =============================================================================

ACTIVITY_UPSERT_QUERY = """
    INSERT INTO board_item_activity (
        item_id, board_id, created_at, created_date, company_name, updated_at
    ) VALUES (
        $1, $2, $3, $4, $5, NOW()
    )
    ON CONFLICT (item_id, board_id)
    DO UPDATE SET
        created_at = EXCLUDED.created_at,
        created_date = EXCLUDED.created_date,
        company_name = EXCLUDED.company_name,
        updated_at = NOW()
"""

# Items per board created within [$2, $3]
ACTIVITY_COUNTS_QUERY = """
    SELECT board_id, COUNT(*) AS item_count
    FROM board_item_activity
    WHERE board_id = ANY($1::text[])
      AND created_date >= $2 AND created_date <= $3
    GROUP BY board_id
"""

ACTIVITY_DAILY_QUERY = """
    SELECT created_date, board_id, COUNT(*) AS item_count
    FROM board_item_activity
    WHERE board_id = ANY($1::text[])
      AND created_date >= $2 AND created_date <= $3
    GROUP BY created_date, board_id
    ORDER BY created_date ASC
"""

SIGNED_DEAL_COMPANIES_QUERY = """
    SELECT created_date, TRIM(company_name) AS company_name
    FROM board_item_activity
    WHERE board_id = $1
      AND created_date >= $2 AND created_date <= $3
      AND company_name IS NOT NULL
      AND TRIM(company_name) <> ''
    ORDER BY created_date ASC, company_name ASC
"""
