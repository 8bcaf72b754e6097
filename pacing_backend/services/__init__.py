"""
Services Module

Business logic for the pacing dashboard. Services are stateless functions;
store access goes through `repository`, source access through the adapters
in pacing_backend.clients, and every read is wrapped with the retry policy at
its call site.

Services:
- parsing: month/amount/category parsers and calendar helpers
- repository: PostgreSQL reads and upserts
- pacing: month-to-date pacing engine and multi-month financial pace
- funnel: sales funnel aggregation and conversions
- activity: board item creation counts
- partner_feed: partner feed reconciliation
- billing: billing ledger reconciliation
- board: lead and contract board reconciliation
- goals: yearly goal import
- client_breakdown: per-partner billing breakdown
- financials: yearly overview and partner concentration
- sync: orchestrator running flows with isolated failures

All services are consumed by the API layer (pacing_backend/api/).
"""

# =============================================================================
# Pacing
# =============================================================================

from pacing_backend.services.pacing import (
    MonthWindow,
    aggregate_sections,
    build_section,
    compare_pace,
    compute_pacing,
    get_financial_pace,
    resolve_month_window,
)

# =============================================================================
# Funnel and activity
# =============================================================================

from pacing_backend.services.funnel import (
    aggregate_funnel,
    clamp_funnel_counts,
    conversion_percentages,
)
from pacing_backend.services.activity import (
    get_activity_daily,
    get_activity_metrics,
    get_signed_deal_companies,
)

# =============================================================================
# Reconciliation flows
# =============================================================================

from pacing_backend.services.partner_feed import map_partner_items, reconcile_partner_feed
from pacing_backend.services.billing import process_billing_rows, reconcile_billing
from pacing_backend.services.board import extract_creation_timestamp, reconcile_board
from pacing_backend.services.goals import import_goals
from pacing_backend.services.client_breakdown import reconcile_client_breakdown
from pacing_backend.services.sync import run_flow, sync_all

# =============================================================================
# Financial overviews
# =============================================================================

from pacing_backend.services.financials import get_partner_concentration, get_total_overview


__all__ = [
    # Pacing
    'MonthWindow',
    'aggregate_sections',
    'build_section',
    'compare_pace',
    'compute_pacing',
    'get_financial_pace',
    'resolve_month_window',
    # Funnel and activity
    'aggregate_funnel',
    'clamp_funnel_counts',
    'conversion_percentages',
    'get_activity_daily',
    'get_activity_metrics',
    'get_signed_deal_companies',
    # Reconciliation flows
    'map_partner_items',
    'reconcile_partner_feed',
    'process_billing_rows',
    'reconcile_billing',
    'extract_creation_timestamp',
    'reconcile_board',
    'import_goals',
    'reconcile_client_breakdown',
    'run_flow',
    'sync_all',
    # Financial overviews
    'get_partner_concentration',
    'get_total_overview',
]
