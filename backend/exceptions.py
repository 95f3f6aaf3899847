"""Application-level exception types.

Convention:
- ``InternalServerError`` for errors whose details must never reach clients
  (misconfiguration, storage invariants broken, etc.). The global handler logs
  the full message at ERROR and returns a generic "Internal server error" (500).
- ``ValueError`` for *business logic* validation errors that are safe to
  forward to clients (``expires_at`` not after ``observed_at``, malformed
  timestamps, blank required fields). The global ``ValueError`` handler returns
  ``str(exc)`` as the 422 detail.
- ``MissingCredentialsError`` / ``InvalidCredentialsError`` are raised by the
  auth service before any storage access; mapped to 401 / 403.
- ``NotFoundError`` is a task or post id that does not exist in the caller's
  owner scope; mapped to 404.
"""

from __future__ import annotations


class InternalServerError(Exception):
    """Raised for internal errors whose details must not be exposed to clients.

    The global exception handler in ``backend/main.py`` catches this, logs
    the full message server-side, and returns HTTP 500 with a generic
    ``"Internal server error"`` detail.
    """


class AuthenticationError(Exception):
    """Base class for credential failures."""


class MissingCredentialsError(AuthenticationError):
    """A required credential header was not sent."""


class InvalidCredentialsError(AuthenticationError):
    """The shared server password did not match."""


class NotFoundError(LookupError):
    """Entity id unknown under the caller's owner token."""
