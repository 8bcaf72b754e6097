"""
Shared query parameter helpers for the API routers.
"""

from typing import List, Optional


def split_months(values: Optional[List[str]]) -> List[str]:
    """
    Flatten month query values.

    Accepts both repeated parameters (?months=2026-01&months=2026-02) and
    comma-separated lists (?months=2026-01,2026-02). Blank entries are dropped.
    """
    months: List[str] = []
    for value in values or []:
        months.extend(part.strip() for part in value.split(',') if part.strip())
    return months
