"""
Sync Orchestrator

Runs reconciliation flows on demand (external cron or the sync endpoint).

Flows run concurrently and are isolated from each other: every flow's
outcome is captured separately, so a partner feed outage neither cancels nor
rolls back the billing or board sync running beside it. Each flow commits its
own writes; there is no cross-flow transaction.

Usage:
    summary = await sync_all()                       # partner feed, billing, board
    summary = await sync_all([SyncFlow.GOALS])       # one extra flow
    result = await run_flow(SyncFlow.PARTNER_FEED, month="2026-01")
"""

import asyncio
import logging
from datetime import date
from typing import Optional, Sequence, Union

from pydantic import BaseModel

from pacing_backend.core.clock import SystemClock, get_clock
from pacing_backend.core.config import Settings
from pacing_backend.models import DEFAULT_SYNC_FLOWS, FlowOutcome, SyncFlow, SyncSummary
from pacing_backend.services.billing import reconcile_billing
from pacing_backend.services.board import reconcile_board
from pacing_backend.services.client_breakdown import reconcile_client_breakdown
from pacing_backend.services.goals import import_goals
from pacing_backend.services.partner_feed import reconcile_partner_feed

logger = logging.getLogger(__name__)


async def run_flow(
    flow: SyncFlow,
    month: Union[str, date, None] = None,
    *,
    clock: Optional[SystemClock] = None,
    settings: Optional[Settings] = None,
) -> BaseModel:
    """
    Run one flow and return its result model; errors propagate.

    Args:
        flow: Flow to run.
        month: Month for flows that take one (partner feed, client
            breakdown); ignored by the others.
        clock: Source of "today" for the date-driven flows (partner feed,
            board).
        settings: Settings handed to every flow.
    """
    if flow == SyncFlow.PARTNER_FEED:
        return await reconcile_partner_feed(month, settings=settings, clock=clock)
    if flow == SyncFlow.BILLING:
        return await reconcile_billing(settings=settings)
    if flow == SyncFlow.BOARD:
        return await reconcile_board(settings=settings, clock=clock)
    if flow == SyncFlow.GOALS:
        return await import_goals(settings=settings)
    if flow == SyncFlow.CLIENT_BREAKDOWN:
        return await reconcile_client_breakdown([month] if month else None, settings=settings)
    raise ValueError(f"Unknown sync flow: {flow}")


async def sync_all(
    flows: Optional[Sequence[SyncFlow]] = None,
    *,
    clock: Optional[SystemClock] = None,
    settings: Optional[Settings] = None,
) -> SyncSummary:
    """
    Run several flows concurrently with isolated failures.

    Args:
        flows: Flows to run; partner feed, billing and board by default.
            Duplicates run once.
        clock: Clock passed to every flow and used for the summary times.

    Returns:
        SyncSummary with one FlowOutcome per flow, in request order.
    """
    clock = clock or get_clock()
    selected = list(dict.fromkeys(flows or DEFAULT_SYNC_FLOWS))
    started_at = clock.now()
    logger.info(f"Sync started: {', '.join(f.value for f in selected)}")

    results = await asyncio.gather(
        *(run_flow(flow, clock=clock, settings=settings) for flow in selected),
        return_exceptions=True,
    )

    outcomes = []
    for flow, result in zip(selected, results):
        if isinstance(result, BaseException):
            logger.error(f"Sync flow {flow.value} failed: {result}", exc_info=result)
            outcomes.append(FlowOutcome(flow=flow, ok=False, error=str(result) or type(result).__name__))
        else:
            outcomes.append(FlowOutcome(flow=flow, ok=True, result=result.model_dump(by_alias=True)))

    summary = SyncSummary(started_at=started_at, finished_at=clock.now(), outcomes=outcomes)
    failed = [o.flow.value for o in outcomes if not o.ok]
    if failed:
        logger.warning(f"Sync finished with failures: {', '.join(failed)}")
    else:
        logger.info("Sync finished, all flows succeeded")
    return summary
