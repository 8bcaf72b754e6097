"""
Goal Import

Reads the yearly goals spreadsheet (wide format) and writes the goal columns
of monthly_goals. Billing actuals on the same rows are left untouched.

Sheet layout:
    Columns B-M: January through December of the goal year
    Row 22: profit goal   -> profit_goal
    Row 28: media goal    -> revenue_goal
    Row 29: SaaS goal     -> saas_goal

Row numbers are 1-based as shown in the spreadsheet. Empty or unparseable
cells count as 0.
"""

import logging
from datetime import date
from typing import List, Optional

from pacing_backend.clients.sheets_client import SheetsClient
from pacing_backend.core.config import Settings, get_settings
from pacing_backend.core.errors import MalformedInputError, MissingConfigurationError
from pacing_backend.core.resilience import RetryPolicy, with_retry
from pacing_backend.models import GoalImportResult, MonthlyTarget
from pacing_backend.services import repository
from pacing_backend.services.parsing import parse_amount

logger = logging.getLogger(__name__)

# 0-based indexes into the grid
ROW_PROFIT_GOAL = 21
ROW_MEDIA_GOAL = 27
ROW_SAAS_GOAL = 28
MIN_ROWS = 30

COL_FIRST_MONTH = 1   # B = January
COL_LAST_MONTH = 12   # M = December


def _goal_value(rows: List[List[str]], row_index: int, col_index: int) -> float:
    row = rows[row_index] if row_index < len(rows) else []
    cell = row[col_index] if col_index < len(row) else ''
    value = parse_amount(cell)
    if value is None:
        logger.warning(f"Unparseable goal cell at row {row_index + 1}, column {col_index + 1}: {cell!r}")
        return 0.0
    return value


def parse_goal_rows(rows: List[List[str]], year: int) -> List[MonthlyTarget]:
    """
    Extract twelve MonthlyTarget values from the goal grid.

    Raises:
        MalformedInputError: If the grid has fewer than 30 rows.
    """
    if len(rows) < MIN_ROWS:
        raise MalformedInputError(
            f"Goal sheet has only {len(rows)} rows; at least {MIN_ROWS} are needed for the goal rows"
        )

    targets = []
    for col in range(COL_FIRST_MONTH, COL_LAST_MONTH + 1):
        targets.append(MonthlyTarget(
            month=date(year, col, 1),
            revenue_goal=_goal_value(rows, ROW_MEDIA_GOAL, col),
            saas_goal=_goal_value(rows, ROW_SAAS_GOAL, col),
            profit_goal=_goal_value(rows, ROW_PROFIT_GOAL, col),
        ))
    return targets


async def import_goals(
    year: Optional[int] = None,
    *,
    settings: Optional[Settings] = None,
    client: Optional[SheetsClient] = None,
) -> GoalImportResult:
    """
    Import the monthly goals of a year from the goals spreadsheet.

    Args:
        year: Goal year the sheet's columns describe; GOALS_YEAR by default.

    Returns:
        GoalImportResult with the number of months written (12).
    """
    settings = settings or get_settings()
    if not settings.goals_sheet_id:
        raise MissingConfigurationError("Missing GOALS_SHEET_ID for goal import")
    year = year or settings.goals_year

    client = client or SheetsClient(settings)
    rows = await with_retry(
        lambda: client.read_range(settings.goals_sheet_id, settings.goals_range),
        RetryPolicy.from_settings(settings),
        label=f"goals {settings.goals_range}",
    )

    targets = parse_goal_rows(rows, year)
    months_updated = await repository.upsert_monthly_targets(targets)

    for target in targets:
        logger.debug(
            f"Goal {target.month}: revenue {target.revenue_goal} saas {target.saas_goal} "
            f"profit {target.profit_goal}"
        )
    logger.info(f"Goals: imported {months_updated} month(s) for {year}")
    return GoalImportResult(months_updated=months_updated)
