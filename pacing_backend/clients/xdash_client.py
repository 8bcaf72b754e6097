"""
Ad-operations partner feed client (XDASH).

Fetches per-partner daily totals from the partner overview endpoints:

    POST {XDASH_API_BASE}/partners/demand/overview   -> revenue partners
    POST {XDASH_API_BASE}/partners/supply/overview   -> cost partners

Each request covers a single day:

    {"startDate": "2026-02-10", "endDate": "2026-02-10", "specificComparisonDate": null}

The session token is sent as an `auth-token` cookie together with the
`x-organization` header. The token expires periodically; a 401 surfaces as
SourceResponseError and is not retried.

The response shape is not stable: the partner array may be the body itself or
sit under one of several keys. extract_partner_items() resolves it through an
explicit ordered candidate list.
"""

import logging
from datetime import date
from typing import Any, Callable, List, Optional, Sequence, Tuple

import httpx

from pacing_backend.clients.http_errors import raise_for_source_status, transport_errors
from pacing_backend.core.config import Settings
from pacing_backend.core.errors import MissingConfigurationError, SourceResponseError
from pacing_backend.models import PartnerSide

logger = logging.getLogger(__name__)


# =============================================================================
# Response shape resolution
# =============================================================================

def _root(payload: Any) -> Any:
    return payload


def _path(*keys: str) -> Callable[[Any], Any]:
    def lookup(payload: Any) -> Any:
        current = payload
        for key in keys:
            if not isinstance(current, dict):
                return None
            current = current.get(key)
        return current
    return lookup


# Checked in order; the first location holding a non-empty list wins
PARTNER_ARRAY_CANDIDATES: Sequence[Tuple[str, Callable[[Any], Any]]] = (
    ("<root>", _root),
    ("partners", _path("partners")),
    ("selectedDates.partners", _path("selectedDates", "partners")),
    ("selectedDates.adServers", _path("selectedDates", "adServers")),
    ("data", _path("data")),
    ("rows", _path("rows")),
)


def extract_partner_items(payload: Any) -> List[dict]:
    """
    Locate the partner array inside a partner overview response.

    Args:
        payload: Decoded JSON body.

    Returns:
        The first non-empty list found among PARTNER_ARRAY_CANDIDATES, with
        non-dict entries dropped; an empty list when none is populated.

    Example:
        >>> extract_partner_items({"selectedDates": {"partners": [{"totals": {}}]}})
        [{'totals': {}}]
    """
    for name, lookup in PARTNER_ARRAY_CANDIDATES:
        candidate = lookup(payload)
        if isinstance(candidate, list) and candidate:
            items = [item for item in candidate if isinstance(item, dict)]
            logger.debug(f"Partner array resolved at '{name}' ({len(items)} items)")
            return items

    if isinstance(payload, dict):
        logger.warning(f"No partner array found; response keys: {sorted(payload.keys())}")
    return []


# =============================================================================
# Client
# =============================================================================

class XDashClient:
    """
    Async client for the partner overview endpoints.

    Pass an httpx.AsyncClient to share a connection pool or to mock the
    transport in tests; otherwise the client owns one and closes it in aclose().
    """

    SOURCE = "XDASH"

    def __init__(self, settings: Settings, http_client: Optional[httpx.AsyncClient] = None):
        self.base_url = settings.xdash_api_base.rstrip("/")
        self.auth_token = settings.xdash_auth_token or ""
        self.organization_id = settings.xdash_organization_id or ""
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=settings.request_timeout_seconds)

    def check_configuration(self) -> None:
        """
        Raises:
            MissingConfigurationError: If the token or organization is unset.
        """
        missing = [
            name for name, value in (
                ("XDASH_AUTH_TOKEN", self.auth_token),
                ("XDASH_ORGANIZATION_ID", self.organization_id),
            ) if not value
        ]
        if missing:
            raise MissingConfigurationError(f"Missing {', '.join(missing)} for the partner feed")

    def _headers(self) -> dict:
        return {
            "Content-Type": "application/json",
            "x-organization": self.organization_id,
            "Cookie": f"auth-token={self.auth_token}",
        }

    async def fetch_partners(self, side: PartnerSide, day: date) -> List[dict]:
        """
        Fetch one side's partner items for a single day.

        Returns:
            Raw partner items (dicts with `partner` and `totals`).

        Raises:
            MissingConfigurationError: Before any request when credentials are unset.
            TransientIOError: On transport failure or a 429/5xx response.
            SourceResponseError: On any other error response or a non-JSON body.
        """
        self.check_configuration()
        url = f"{self.base_url}/partners/{side.value}/overview"
        body = {
            "startDate": day.isoformat(),
            "endDate": day.isoformat(),
            "specificComparisonDate": None,
        }

        with transport_errors(f"{self.SOURCE} {side.value}"):
            response = await self._http.post(url, headers=self._headers(), json=body)
        raise_for_source_status(response, f"{self.SOURCE} {side.value}")

        try:
            payload = response.json()
        except ValueError as e:
            raise SourceResponseError(
                f"{self.SOURCE} {side.value} returned a non-JSON body for {day}",
                status_code=response.status_code,
            ) from e

        return extract_partner_items(payload)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def __aenter__(self) -> "XDashClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
