"""
Monday.com API v2 board reader (GraphQL over httpx).

Board items are cursor-paginated: the first page is requested under the
board, later pages through the root-level next_items_page field. Items are
returned as raw dicts with their column_values; locating and decoding columns
is left to the board reconciliation flow.

Usage:
    async with MondayClient(settings) as client:
        items = await client.fetch_board_items("7832231403", policy)
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

import httpx

from pacing_backend.clients.http_errors import raise_for_source_status, transport_errors
from pacing_backend.core.config import Settings
from pacing_backend.core.errors import MissingConfigurationError, SourceResponseError
from pacing_backend.core.resilience import RetryPolicy, with_retry

logger = logging.getLogger(__name__)

_ITEM_FIELDS = """
            id
            name
            created_at
            column_values { id text value type }
"""

FIRST_PAGE_QUERY = f"""
    query GetBoardItemsFirst($boardId: ID!, $limit: Int!) {{
      boards(ids: [$boardId]) {{
        id
        items_page(limit: $limit) {{
          cursor
          items {{{_ITEM_FIELDS}          }}
        }}
      }}
    }}
"""

NEXT_PAGE_QUERY = f"""
    query GetBoardItemsNext($limit: Int!, $cursor: String!) {{
      next_items_page(limit: $limit, cursor: $cursor) {{
        cursor
        items {{{_ITEM_FIELDS}        }}
      }}
    }}
"""

# Upper bound on pages per board; more means the source is looping
MAX_PAGES = 10_000


class MondayClient:
    """Async GraphQL client for board items."""

    SOURCE = "Monday"

    def __init__(self, settings: Settings, http_client: Optional[httpx.AsyncClient] = None):
        self.api_url = settings.monday_api_url
        self.token = settings.monday_api_token or ""
        self.page_limit = settings.monday_page_limit
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=settings.request_timeout_seconds)

    def check_configuration(self) -> None:
        if not self.token:
            raise MissingConfigurationError("Missing MONDAY_API_TOKEN for the board reader")

    async def graphql(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        """
        Run a GraphQL query and return its `data` object.

        Raises:
            MissingConfigurationError: If no API token is configured.
            TransientIOError: On transport failure or a 429/5xx response.
            SourceResponseError: On other HTTP errors, GraphQL errors or a
                response without data.
        """
        self.check_configuration()
        headers = {
            "Content-Type": "application/json",
            "Authorization": self.token,
        }

        with transport_errors(self.SOURCE):
            response = await self._http.post(
                self.api_url,
                headers=headers,
                json={"query": query, "variables": variables},
            )
        raise_for_source_status(response, self.SOURCE)

        try:
            body = response.json()
        except ValueError as e:
            raise SourceResponseError(f"{self.SOURCE} API returned a non-JSON body") from e

        errors = body.get("errors") if isinstance(body, dict) else None
        if errors:
            messages = "; ".join(str(e.get("message", e)) if isinstance(e, dict) else str(e) for e in errors)
            raise SourceResponseError(f"{self.SOURCE} API GraphQL: {messages}")

        data = body.get("data") if isinstance(body, dict) else None
        if data is None:
            raise SourceResponseError(f"{self.SOURCE} API returned no data")
        return data

    async def fetch_items_page(
        self, board_id: str, cursor: Optional[str] = None
    ) -> Tuple[List[dict], Optional[str]]:
        """
        Fetch one page of board items.

        Args:
            board_id: Board to read.
            cursor: None for the first page, else the cursor of the previous page.

        Returns:
            (items, next_cursor); next_cursor is None on the last page.
        """
        if cursor is None:
            data = await self.graphql(FIRST_PAGE_QUERY, {"boardId": board_id, "limit": self.page_limit})
            boards = data.get("boards") or []
            page = boards[0].get("items_page") if boards and isinstance(boards[0], dict) else None
        else:
            data = await self.graphql(NEXT_PAGE_QUERY, {"limit": self.page_limit, "cursor": cursor})
            page = data.get("next_items_page")

        if not isinstance(page, dict):
            return [], None
        items = [item for item in (page.get("items") or []) if isinstance(item, dict)]
        return items, page.get("cursor") or None

    async def fetch_board_items(self, board_id: str, policy: Optional[RetryPolicy] = None) -> List[dict]:
        """
        Fetch every item of a board, following cursors to the last page.

        Each page request is retried independently under the given policy, so
        a transient failure on page 7 does not restart from page 1.
        """
        items: List[dict] = []
        cursor: Optional[str] = None
        pages = 0

        while True:
            page_items, cursor = await with_retry(
                lambda c=cursor: self.fetch_items_page(board_id, c),
                policy,
                label=f"{self.SOURCE} board {board_id} page {pages + 1}",
            )
            items.extend(page_items)
            pages += 1
            if cursor is None:
                break
            if pages >= MAX_PAGES:
                raise SourceResponseError(
                    f"{self.SOURCE} board {board_id} still paginating after {MAX_PAGES} pages"
                )

        logger.info(f"Fetched {len(items)} items from board {board_id} in {pages} page(s)")
        return items

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def __aenter__(self) -> "MondayClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
