"""
Google Sheets reader.

Returns raw cell text as a 2D list; every parsing decision (months, amounts,
categories) belongs to the reconciliation flows.

Authentication uses a service account with the read-only spreadsheets scope,
loaded either from the JSON key file named by GOOGLE_APPLICATION_CREDENTIALS
or from GOOGLE_SHEETS_CLIENT_EMAIL + GOOGLE_SHEETS_PRIVATE_KEY (escaped "\\n"
sequences in the key are expanded).

The Google API client is synchronous, so each read runs in a worker thread
through asyncio.to_thread. A fresh service object is built per read because
the underlying httplib2 transport is not thread-safe.

Usage:
    client = SheetsClient(get_settings())
    rows = await client.read_range(settings.billing_sheet_id, "Demand!A:H")
"""

import asyncio
import logging
from typing import Any, List, Optional

from google.auth.exceptions import RefreshError, TransportError
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from pacing_backend.clients.http_errors import is_retryable_status
from pacing_backend.core.config import Settings
from pacing_backend.core.errors import (
    MissingConfigurationError,
    SourceResponseError,
    TransientIOError,
)

logger = logging.getLogger(__name__)

# Read-only access is all the reconciliation flows need
SHEETS_SCOPES = ['https://www.googleapis.com/auth/spreadsheets.readonly']

GOOGLE_TOKEN_URI = 'https://oauth2.googleapis.com/token'


def load_credentials(settings: Settings) -> service_account.Credentials:
    """
    Build service account credentials from settings.

    Raises:
        MissingConfigurationError: If neither a key file nor inline
            credentials are configured.
    """
    if settings.google_application_credentials:
        return service_account.Credentials.from_service_account_file(
            settings.google_application_credentials,
            scopes=SHEETS_SCOPES,
        )

    if settings.google_sheets_client_email and settings.google_sheets_private_key:
        info = {
            'type': 'service_account',
            'client_email': settings.google_sheets_client_email,
            'private_key': settings.google_sheets_private_key.replace('\\n', '\n'),
            'token_uri': GOOGLE_TOKEN_URI,
        }
        return service_account.Credentials.from_service_account_info(info, scopes=SHEETS_SCOPES)

    raise MissingConfigurationError(
        "Google Sheets credentials not configured. Set GOOGLE_APPLICATION_CREDENTIALS "
        "or GOOGLE_SHEETS_CLIENT_EMAIL and GOOGLE_SHEETS_PRIVATE_KEY."
    )


def _normalize_grid(values: Any) -> List[List[str]]:
    """Coerce the API's values array into a list of string rows."""
    if not isinstance(values, list):
        return []
    grid: List[List[str]] = []
    for row in values:
        if isinstance(row, list):
            grid.append(['' if cell is None else str(cell) for cell in row])
        else:
            grid.append([])
    return grid


class SheetsClient:
    """Async facade over the Sheets v4 values API."""

    SOURCE = "Google Sheets"

    def __init__(self, settings: Settings, credentials: Optional[service_account.Credentials] = None):
        self.settings = settings
        self._credentials = credentials

    def _get_credentials(self) -> service_account.Credentials:
        if self._credentials is None:
            self._credentials = load_credentials(self.settings)
        return self._credentials

    def _build_service(self):
        return build('sheets', 'v4', credentials=self._get_credentials(), cache_discovery=False)

    def _read_range_sync(self, sheet_id: str, cell_range: str) -> List[List[str]]:
        service = self._build_service()
        try:
            result = service.spreadsheets().values().get(
                spreadsheetId=sheet_id,
                range=cell_range,
            ).execute()
        except HttpError as e:
            status = e.resp.status if e.resp is not None else 0
            message = f"{self.SOURCE} error {status} reading {cell_range}: {e}"
            if is_retryable_status(int(status)):
                raise TransientIOError(message) from e
            raise SourceResponseError(message, status_code=int(status)) from e
        except RefreshError as e:
            raise SourceResponseError(f"{self.SOURCE} credentials rejected: {e}") from e
        except (TransportError, OSError) as e:
            raise TransientIOError(f"{self.SOURCE} request failed reading {cell_range}: {e}") from e
        finally:
            service.close()

        return _normalize_grid(result.get('values'))

    async def read_range(self, sheet_id: Optional[str], cell_range: str) -> List[List[str]]:
        """
        Read a range in A1 notation as rows of cell text.

        Args:
            sheet_id: Spreadsheet id from the sheet URL.
            cell_range: A1 range, e.g. "Demand!A:H".

        Returns:
            Rows of strings; trailing empty cells are omitted by the API, so
            rows may be shorter than the range width. Empty list for an empty
            range.

        Raises:
            MissingConfigurationError: If the sheet id or credentials are unset.
            TransientIOError: On network failure or a 429/5xx response.
            SourceResponseError: On any other API error.
        """
        if not sheet_id:
            raise MissingConfigurationError(f"No spreadsheet id configured for range {cell_range}")
        # Fail on missing credentials before dispatching to a thread
        self._get_credentials()

        rows = await asyncio.to_thread(self._read_range_sync, sheet_id, cell_range)
        logger.debug(f"Read {len(rows)} rows from {cell_range}")
        return rows
