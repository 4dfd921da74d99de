"""Application-level exception types.

Convention:
- ``InternalServerError``: for errors whose details must never reach clients
  (store shutdown, infrastructure failures, etc.). The global handler logs the
  full message at ERROR and returns a generic "Internal server error" (500).
- ``ValueError``: for validation errors that are safe to forward to clients
  (malformed history paths, bad input formats). The global ``ValueError``
  handler returns ``str(exc)`` as the 422 detail.
"""

from __future__ import annotations


class InternalServerError(Exception):
    """Raised for internal errors whose details must not be exposed to clients.

    The global exception handler in ``backend/main.py`` catches this, logs
    the full message server-side, and returns HTTP 500 with a generic
    ``"Internal server error"`` detail.
    """


class HistoryStoreUnavailableError(InternalServerError):
    """Raised when the history store is used after it has been closed."""
