"""
HTTP failure classification shared by the httpx-based source clients.

- Transport failures (connect, read, pool timeouts, dropped connections) and
  429 / 5xx responses are TransientIOError: retrying may succeed.
- Any other non-2xx response is SourceResponseError: the source understood
  the request and refused it, so retrying the same request is pointless.
"""

from contextlib import contextmanager
from typing import Iterator

import httpx

from pacing_backend.core.errors import SourceResponseError, TransientIOError

# Keep error bodies short in logs and sync summaries
MAX_ERROR_BODY = 300


def is_retryable_status(status_code: int) -> bool:
    return status_code == 429 or status_code >= 500


def raise_for_source_status(response: httpx.Response, source: str) -> None:
    """Raise the matching dashboard error for a non-2xx response."""
    if response.is_success:
        return

    body = response.text[:MAX_ERROR_BODY]
    message = f"{source} API error {response.status_code}: {response.reason_phrase} {body}".strip()
    if is_retryable_status(response.status_code):
        raise TransientIOError(message)
    raise SourceResponseError(message, status_code=response.status_code)


@contextmanager
def transport_errors(source: str) -> Iterator[None]:
    """Turn httpx transport exceptions into TransientIOError."""
    try:
        yield
    except httpx.TransportError as e:
        raise TransientIOError(f"{source} request failed: {e!r}") from e
