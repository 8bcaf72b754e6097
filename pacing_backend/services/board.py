"""
Board Reconciliation

Reads every item of the leads and contracts boards, dates each item by its
creation timestamp and writes:

- daily_funnel_metrics: total_leads (leads board) and won_deals (contracts
  board) per calendar day. Only those two columns are updated on conflict,
  so qualified and ops-approved counts recorded elsewhere survive.
- board_item_activity: one row per item, keyed by (item_id, board_id), with
  the signed company name for contracts.

Creation timestamp resolution, first hit wins:
1. The board's creation-log column. Its value is JSON such as
   {"date": "2026-02-10T14:23:11Z"} or {"changed_at": "..."}, a JSON string,
   or a bare ISO timestamp in the text field.
2. The item's created_at.
3. The clock's now (logged, since the item then lands on today).

The calendar day is taken in the configured timezone. A date-only value is
already a calendar day there and is not shifted.
"""

import asyncio
import json
import logging
from collections import Counter
from datetime import date, datetime, tzinfo
from typing import Any, Dict, List, Optional, Tuple

from pacing_backend.clients.monday_client import MondayClient
from pacing_backend.core.clock import SystemClock, get_clock
from pacing_backend.core.config import Settings, get_settings
from pacing_backend.core.resilience import RetryPolicy
from pacing_backend.models import ActivityItem, BoardSyncResult
from pacing_backend.services import repository

logger = logging.getLogger(__name__)


# =============================================================================
# Column decoding
# =============================================================================

def _find_column(item: Dict[str, Any], column_id: str) -> Optional[Dict[str, Any]]:
    for column in item.get('column_values') or []:
        if isinstance(column, dict) and column.get('id') == column_id:
            return column
    return None


def column_text(item: Dict[str, Any], column_id: str) -> Optional[str]:
    """Trimmed text of a column (text first, then raw value); None when blank or absent."""
    column = _find_column(item, column_id)
    if column is None:
        return None
    for key in ('text', 'value'):
        raw = column.get(key)
        if raw is None:
            continue
        text = str(raw).strip()
        if key == 'value':
            # Text columns store their value as a JSON string
            try:
                decoded = json.loads(text)
            except ValueError:
                decoded = text
            text = decoded.strip() if isinstance(decoded, str) else ''
        if text:
            return text
    return None


def parse_timestamp(raw: Any, local_tz: Optional[tzinfo] = None) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp as the board API writes it.

    Accepts a trailing "Z" or " UTC". A bare date gives midnight, in local_tz
    when one is given. Returns None for anything else.
    """
    if not isinstance(raw, str):
        return None
    text = raw.strip()
    if not text:
        return None
    if len(text) == 10 and local_tz is not None:
        try:
            day = date.fromisoformat(text)
        except ValueError:
            return None
        return datetime(day.year, day.month, day.day, tzinfo=local_tz)
    if text.upper().endswith(' UTC'):
        text = text[:-4].strip() + '+00:00'
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def extract_creation_timestamp(
    item: Dict[str, Any],
    column_id: str,
    local_tz: Optional[tzinfo] = None,
) -> Optional[datetime]:
    """
    Creation timestamp of a board item, or None when nothing usable exists.

    local_tz anchors date-only values to that timezone's calendar day.

    Example:
        >>> item = {"column_values": [{"id": "pulse_log", "value": '{"date": "2026-02-10T14:00:00Z"}'}]}
        >>> extract_creation_timestamp(item, "pulse_log").isoformat()
        '2026-02-10T14:00:00+00:00'
    """
    column = _find_column(item, column_id)
    raw = None
    if column is not None:
        raw = column.get('value') or column.get('text')

    if raw:
        try:
            parsed = json.loads(raw)
        except (TypeError, ValueError):
            parsed = raw
        if isinstance(parsed, dict):
            candidate = parsed.get('date') or parsed.get('changed_at')
        elif isinstance(parsed, str):
            candidate = parsed
        else:
            candidate = None
        moment = parse_timestamp(candidate, local_tz)
        if moment is not None:
            return moment

    return parse_timestamp(item.get('created_at'), local_tz)


# =============================================================================
# Reconciliation
# =============================================================================

def build_board_activity(
    items: List[Dict[str, Any]],
    board_id: str,
    creation_column: str,
    clock: SystemClock,
    company_column: Optional[str] = None,
) -> Tuple[List[ActivityItem], Counter]:
    """
    Date every item of a board.

    Returns:
        (activity items, Counter of items per local calendar day). Items
        without an id are counted but not stored.
    """
    activity: List[ActivityItem] = []
    per_day: Counter = Counter()
    undated = 0

    for item in items:
        created_at = extract_creation_timestamp(item, creation_column, clock.tz)
        if created_at is None:
            undated += 1
            created_at = clock.now()
        created_date = clock.local_date(created_at)
        per_day[created_date] += 1

        item_id = str(item.get('id') or '').strip()
        if not item_id:
            logger.warning(f"Board {board_id} item without id, counted but not stored")
            continue

        activity.append(ActivityItem(
            item_id=item_id,
            board_id=board_id,
            created_at=created_at,
            created_date=created_date,
            company_name=column_text(item, company_column) if company_column else None,
        ))

    if undated:
        logger.warning(f"Board {board_id}: {undated} item(s) had no creation timestamp, dated today")
    return activity, per_day


async def reconcile_board(
    *,
    settings: Optional[Settings] = None,
    client: Optional[MondayClient] = None,
    clock: Optional[SystemClock] = None,
) -> BoardSyncResult:
    """
    Sync per-day lead and won-deal counts plus item activity from the boards.

    Returns:
        BoardSyncResult with the number of funnel days and activity items written.

    Raises:
        MissingConfigurationError: Before any fetch if the API token is unset.
        TransientIOError / SourceResponseError: If a page read fails after retries.
        PersistenceError: If the store rejects a write.
    """
    settings = settings or get_settings()
    clock = clock or get_clock()
    policy = RetryPolicy.from_settings(settings)

    leads_board = settings.monday_leads_board_id
    contracts_board = settings.monday_contracts_board_id

    owns_client = client is None
    client = client or MondayClient(settings)
    try:
        client.check_configuration()
        leads_items, contracts_items = await asyncio.gather(
            client.fetch_board_items(leads_board, policy),
            client.fetch_board_items(contracts_board, policy),
        )
    finally:
        if owns_client:
            await client.aclose()

    leads_activity, leads_per_day = build_board_activity(
        leads_items,
        leads_board,
        settings.monday_leads_creation_column,
        clock,
    )
    contracts_activity, won_per_day = build_board_activity(
        contracts_items,
        contracts_board,
        settings.monday_contracts_creation_column,
        clock,
        company_column=settings.monday_contracts_company_column,
    )

    day_counts: Dict[date, Tuple[int, int]] = {
        day: (leads_per_day.get(day, 0), won_per_day.get(day, 0))
        for day in set(leads_per_day) | set(won_per_day)
    }

    funnel_rows = await repository.upsert_funnel_counts(day_counts)
    activity_rows = await repository.upsert_activity_items(
        leads_activity + contracts_activity,
        batch_size=settings.upsert_batch_size,
    )

    logger.info(
        f"Boards: {len(leads_items)} lead(s), {len(contracts_items)} contract(s); "
        f"{funnel_rows} funnel day(s), {activity_rows} activity row(s)"
    )
    return BoardSyncResult(funnel_rows=funnel_rows, activity_rows=activity_rows)
