"""
Core infrastructure package for the pacing dashboard backend.

Provides:
- Configuration management via pydantic-settings
- Async PostgreSQL connectivity via asyncpg
- An injectable clock
- The error taxonomy and the retry/timeout wrapper
- FastAPI dependency injection utilities

Key components are re-exported for shorter imports:

    from pacing_backend.core import get_settings, get_db_pool, with_retry

Instead of:

    from pacing_backend.core.config import get_settings
    from pacing_backend.core.database import get_db_pool
    from pacing_backend.core.resilience import with_retry
"""

# =============================================================================
# Re-exports from pacing_backend.core.config
# =============================================================================
from pacing_backend.core.config import Settings, get_settings

# =============================================================================
# Re-exports from pacing_backend.core.database
# =============================================================================
from pacing_backend.core.database import init_db, close_db, get_db_pool

# =============================================================================
# Re-exports from pacing_backend.core.clock
# =============================================================================
from pacing_backend.core.clock import SystemClock, FixedClock, get_clock

# =============================================================================
# Re-exports from pacing_backend.core.errors
# =============================================================================
from pacing_backend.core.errors import (
    DashboardError,
    TransientIOError,
    OperationTimeoutError,
    SourceResponseError,
    MalformedInputError,
    MissingConfigurationError,
    PersistenceError,
)

# =============================================================================
# Re-exports from pacing_backend.core.resilience
# =============================================================================
from pacing_backend.core.resilience import RetryPolicy, with_retry, with_timeout

# =============================================================================
# Re-exports from pacing_backend.core.dependencies
# =============================================================================
from pacing_backend.core.dependencies import (
    get_settings_dependency,
    get_clock_dependency,
    verify_cron_secret,
    SettingsDep,
    ClockDep,
    CronAuthDep,
)

__all__ = [
    # Configuration management (from config.py)
    'Settings',
    'get_settings',
    # Database pool lifecycle (from database.py)
    'init_db',
    'close_db',
    'get_db_pool',
    # Clock (from clock.py)
    'SystemClock',
    'FixedClock',
    'get_clock',
    # Errors (from errors.py)
    'DashboardError',
    'TransientIOError',
    'OperationTimeoutError',
    'SourceResponseError',
    'MalformedInputError',
    'MissingConfigurationError',
    'PersistenceError',
    # Resilience (from resilience.py)
    'RetryPolicy',
    'with_retry',
    'with_timeout',
    # FastAPI dependency injection (from dependencies.py)
    'get_settings_dependency',
    'get_clock_dependency',
    'verify_cron_secret',
    'SettingsDep',
    'ClockDep',
    'CronAuthDep',
]
