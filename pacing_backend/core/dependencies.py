"""
FastAPI dependency injection module for the pacing dashboard backend.

Endpoint handlers receive settings, the clock and the sync authorization check
through these dependencies, so tests can swap any of them with
app.dependency_overrides instead of patching module globals.

Key Dependencies Provided:
- get_settings_dependency / SettingsDep: the cached Settings singleton
- get_clock_dependency / ClockDep: the process clock in the configured timezone
- verify_cron_secret / CronAuthDep: bearer check guarding the sync endpoints

Usage Examples:
    @router.get("/pacing/summary")
    async def pacing_summary(clock: ClockDep) -> PacingSummary:
        return await compute_pacing(clock=clock)

    @router.post("/sync", dependencies=[CronAuthDep])
    async def trigger_sync() -> SyncSummary:
        ...
"""

import logging
import secrets
from typing import Annotated, Optional

from fastapi import Depends, Header, HTTPException, status

from pacing_backend.core.clock import SystemClock, get_clock
from pacing_backend.core.config import Settings, get_settings

logger = logging.getLogger(__name__)


# =============================================================================
# Settings Dependency
# =============================================================================

def get_settings_dependency() -> Settings:
    """
    Return the Settings singleton instance.

    Thin wrapper around get_settings() so tests can override it:

        app.dependency_overrides[get_settings_dependency] = lambda: test_settings
    """
    return get_settings()


# =============================================================================
# Clock Dependency
# =============================================================================

def get_clock_dependency() -> SystemClock:
    """
    Return the process clock.

    Tests override it with a FixedClock to pin "today":

        app.dependency_overrides[get_clock_dependency] = lambda: FixedClock.on(date(2026, 2, 11))
    """
    return get_clock()


# =============================================================================
# Sync Authorization
# =============================================================================

async def verify_cron_secret(
    settings: Annotated[Settings, Depends(get_settings_dependency)],
    authorization: Annotated[Optional[str], Header()] = None,
) -> None:
    """
    Require `Authorization: Bearer <CRON_SECRET>` when a secret is configured.

    With no CRON_SECRET configured the sync endpoints are open, which is the
    local development setup.

    Raises:
        HTTPException: 401 when the header is missing or does not match.
    """
    expected = settings.cron_secret
    if not expected:
        return

    supplied = ''
    if authorization and authorization.lower().startswith('bearer '):
        supplied = authorization[7:].strip()

    if not secrets.compare_digest(supplied.encode(), expected.encode()):
        logger.warning("Rejected sync request with missing or invalid bearer token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )


# =============================================================================
# Type Aliases for Dependency Injection
# =============================================================================

SettingsDep = Annotated[Settings, Depends(get_settings_dependency)]

ClockDep = Annotated[SystemClock, Depends(get_clock_dependency)]

# Used in a route's dependencies=[...] list
CronAuthDep = Depends(verify_cron_secret)
