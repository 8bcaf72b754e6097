"""
Source adapters for the three external systems the dashboard reconciles.

- XDashClient: ad-operations partner feed (httpx)
- SheetsClient: Google Sheets ranges (google-api-python-client)
- MondayClient: work-management board items (GraphQL over httpx)

Adapters only fetch; parsing and aggregation happen in pacing_backend.services.
"""

from pacing_backend.clients.xdash_client import (
    PARTNER_ARRAY_CANDIDATES,
    XDashClient,
    extract_partner_items,
)
from pacing_backend.clients.sheets_client import SheetsClient, load_credentials
from pacing_backend.clients.monday_client import MondayClient

__all__ = [
    'PARTNER_ARRAY_CANDIDATES',
    'XDashClient',
    'extract_partner_items',
    'SheetsClient',
    'load_credentials',
    'MondayClient',
]
