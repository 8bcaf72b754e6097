"""
Partner Feed Reconciliation

Pulls per-partner daily totals from the ad-operations partner feed and
upserts them into daily_partner_performance.

Flow:
1. Resolve the day range: month start through the earlier of month end and
   yesterday. Today is never fetched (its data is incomplete); a month that
   has not started yet yields an empty range.
2. Fetch demand and supply for every day concurrently, each request wrapped
   by the retry policy.
3. Map items to DailyPartnerRecord:
   - demand: revenue from totals.revenue, falling back to totals.netRevenue
     when the key is absent; cost 0
   - supply: cost from totals.cost, falling back to totals.netCost; revenue 0
   - name from partner.name, then name, then "Unknown Partner"
   Rows sharing (date, partner_name, side) within one response are summed.
4. Upsert in sequential chunks of upsert_batch_size.

Backfilling a closed month is the same call with an explicit month.
"""

import asyncio
import logging
from datetime import date
from typing import Any, Dict, List, Optional, Tuple, Union

from pacing_backend.clients.xdash_client import XDashClient
from pacing_backend.core.clock import SystemClock, get_clock
from pacing_backend.core.config import Settings, get_settings
from pacing_backend.core.resilience import RetryPolicy, with_retry
from pacing_backend.models import DailyPartnerRecord, PartnerSide, PartnerSyncResult
from pacing_backend.services import repository
from pacing_backend.services.parsing import (
    iter_days,
    month_end,
    month_start,
    normalize_month_param,
    parse_currency_value,
)

logger = logging.getLogger(__name__)

UNKNOWN_PARTNER = "Unknown Partner"

# Primary totals key, then fallback, per side
AMOUNT_KEYS: Dict[PartnerSide, Tuple[str, str]] = {
    PartnerSide.DEMAND: ("revenue", "netRevenue"),
    PartnerSide.SUPPLY: ("cost", "netCost"),
}


# =============================================================================
# Mapping
# =============================================================================

def _partner_name(item: Dict[str, Any]) -> str:
    partner = item.get("partner")
    name = partner.get("name") if isinstance(partner, dict) else None
    if name is None:
        name = item.get("name")
    name = str(name).strip() if name is not None else ""
    return name or UNKNOWN_PARTNER


def _amount(totals: Dict[str, Any], side: PartnerSide) -> float:
    primary, fallback = AMOUNT_KEYS[side]
    value = totals.get(primary)
    if value is None:
        value = totals.get(fallback)
    return parse_currency_value(value)


def map_partner_items(items: List[Dict[str, Any]], side: PartnerSide, day: date) -> List[DailyPartnerRecord]:
    """
    Convert raw partner items for one side and day into records.

    Args:
        items: Items from XDashClient.fetch_partners.
        side: Side the items were fetched for.
        day: Day the items describe.

    Returns:
        One record per distinct partner name, in first-seen order.

    Example:
        >>> items = [{"partner": {"name": "Acme"}, "totals": {"netRevenue": "1,200.50"}}]
        >>> map_partner_items(items, PartnerSide.DEMAND, date(2026, 2, 3))[0].revenue
        1200.5
    """
    merged: Dict[str, DailyPartnerRecord] = {}

    for item in items:
        totals = item.get("totals")
        if not isinstance(totals, dict):
            totals = {}

        name = _partner_name(item)
        amount = _amount(totals, side)
        impressions = max(0, int(parse_currency_value(totals.get("impressions"))))

        existing = merged.get(name)
        if existing is None:
            merged[name] = DailyPartnerRecord(
                date=day,
                partner_name=name,
                side=side,
                revenue=amount if side == PartnerSide.DEMAND else 0.0,
                cost=amount if side == PartnerSide.SUPPLY else 0.0,
                impressions=impressions,
            )
            continue

        logger.debug(f"Duplicate {side.value} partner '{name}' on {day}, summing")
        if side == PartnerSide.DEMAND:
            existing.revenue += amount
        else:
            existing.cost += amount
        existing.impressions += impressions

    return list(merged.values())


# =============================================================================
# Reconciliation
# =============================================================================

def resolve_sync_days(month: Optional[date], clock: SystemClock) -> List[date]:
    """Days to fetch for a month: start through min(month end, yesterday)."""
    today = clock.today()
    start = month_start(month or today)
    end = min(month_end(start), clock.yesterday())
    if end < start:
        return []
    return list(iter_days(start, end))


async def reconcile_partner_feed(
    month: Union[str, date, None] = None,
    *,
    settings: Optional[Settings] = None,
    client: Optional[XDashClient] = None,
    clock: Optional[SystemClock] = None,
) -> PartnerSyncResult:
    """
    Sync partner revenue and cost for a month.

    Args:
        month: "YYYY-MM", "YYYY-MM-01" or a date; defaults to the current month.
        settings: Source and batching configuration.
        client: Partner feed client; one is created and closed when omitted.
        clock: Source of "today".

    Returns:
        PartnerSyncResult with the number of days fetched and rows written.

    Raises:
        MissingConfigurationError: Before any fetch if credentials are unset.
        TransientIOError / SourceResponseError: If any day's fetch fails after
            retries; nothing is written in that case.
        PersistenceError: If the store rejects a chunk.
    """
    settings = settings or get_settings()
    clock = clock or get_clock()
    days = resolve_sync_days(normalize_month_param(month), clock)

    owns_client = client is None
    client = client or XDashClient(settings)
    try:
        client.check_configuration()
        if not days:
            logger.info("Partner feed: no completed days in range, nothing to sync")
            return PartnerSyncResult(dates_synced=0, rows_upserted=0)

        logger.info(f"Partner feed: fetching {len(days)} day(s) {days[0]}..{days[-1]}")
        policy = RetryPolicy.from_settings(settings)
        requests = [(day, side) for day in days for side in (PartnerSide.DEMAND, PartnerSide.SUPPLY)]

        responses = await asyncio.gather(*(
            with_retry(
                lambda d=day, s=side: client.fetch_partners(s, d),
                policy,
                label=f"partner feed {side.value} {day}",
            )
            for day, side in requests
        ))
    finally:
        if owns_client:
            await client.aclose()

    records: List[DailyPartnerRecord] = []
    for (day, side), items in zip(requests, responses):
        records.extend(map_partner_items(items, side, day))

    rows_upserted = await repository.upsert_partner_records(
        records, batch_size=settings.upsert_batch_size
    )
    logger.info(f"Partner feed: synced {len(days)} day(s), upserted {rows_upserted} rows")
    return PartnerSyncResult(dates_synced=len(days), rows_upserted=rows_upserted)
