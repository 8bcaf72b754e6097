"""
Error taxonomy shared by the source adapters, reconciliation flows and API.

- TransientIOError: network failure or timeout on a source read. Retried by
  the resilience wrapper and surfaced only after retries are exhausted.
- SourceResponseError: the source answered but refused the request (4xx,
  GraphQL errors). Not retried.
- MalformedInputError: a cell or parameter that cannot be parsed. Row-level
  occurrences are logged and skipped by the flows.
- MissingConfigurationError: credentials or identifiers absent for a source.
  Raised before any fetch is issued.
- PersistenceError: the store rejected a write. Aborts the flow that issued it.
"""

from typing import Optional


class DashboardError(Exception):
    """Base class for every error raised by the pacing backend."""


class TransientIOError(DashboardError):
    """A source read failed in a way that may succeed on retry."""


class OperationTimeoutError(TransientIOError):
    """A wrapped operation exceeded its per-call timeout."""

    def __init__(self, seconds: float):
        self.seconds = seconds
        super().__init__(f"Request timed out after {seconds:g}s")


class SourceResponseError(DashboardError):
    """A source returned a non-retryable error response."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class MalformedInputError(DashboardError, ValueError):
    """Input text could not be parsed into the expected shape."""


class MissingConfigurationError(DashboardError, ValueError):
    """Required credentials or identifiers for a source are not configured."""


class PersistenceError(DashboardError):
    """The durable store rejected a write."""
