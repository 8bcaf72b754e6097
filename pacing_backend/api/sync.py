"""
FastAPI router for on-demand reconciliation.

Endpoints (bearer CRON_SECRET when configured):
- POST /sync                run partner feed, billing and board concurrently
- POST /sync/{flow}?month=  run one flow

The multi-flow endpoint always returns the per-flow summary; its status code
tells the caller how it went:

    200  every flow succeeded
    207  some flows failed
    500  every flow failed

The single-flow endpoint returns the flow's result; failures go through the
application's exception handlers.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Query, status
from fastapi.responses import JSONResponse

from pacing_backend.core.dependencies import ClockDep, CronAuthDep, SettingsDep
from pacing_backend.models import SyncFlow, SyncSummary
from pacing_backend.services.sync import run_flow, sync_all

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[CronAuthDep])


def summary_status_code(summary: SyncSummary) -> int:
    if summary.all_ok:
        return status.HTTP_200_OK
    if summary.any_ok:
        return status.HTTP_207_MULTI_STATUS
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@router.post("", response_model=SyncSummary)
async def trigger_sync(
    clock: ClockDep,
    settings: SettingsDep,
    flows: Optional[List[SyncFlow]] = Query(
        default=None,
        description="Flows to run; partner_feed, billing and board by default",
    ),
) -> JSONResponse:
    """Run the selected flows with isolated failures."""
    summary = await sync_all(flows, clock=clock, settings=settings)
    return JSONResponse(
        status_code=summary_status_code(summary),
        content=summary.model_dump(mode="json", by_alias=True),
    )


@router.post("/{flow}")
async def trigger_flow(
    flow: SyncFlow,
    clock: ClockDep,
    settings: SettingsDep,
    month: Optional[str] = Query(
        default=None,
        description="YYYY-MM for the partner feed backfill or client breakdown",
    ),
) -> Dict[str, Any]:
    """Run a single flow and return its result."""
    logger.info(f"Sync requested for {flow.value}" + (f" ({month})" if month else ""))
    result = await run_flow(flow, month, clock=clock, settings=settings)
    return result.model_dump(mode="json", by_alias=True)
