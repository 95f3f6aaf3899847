"""Shared-password authentication for client tokens.

There are no accounts: a client identifies itself with an opaque token that
scopes all of its data, and proves it may use the server with one shared
password. Both checks run before any storage access.
"""

from __future__ import annotations

import logging
import secrets

from backend.exceptions import (
    InternalServerError,
    InvalidCredentialsError,
    MissingCredentialsError,
)

logger = logging.getLogger(__name__)

CLIENT_TOKEN_HEADER = "X-Client-Token"
SERVER_PASSWORD_HEADER = "X-Server-Password"
MAX_CLIENT_TOKEN_LENGTH = 256


def normalize_client_token(token: str | None) -> str:
    """Strip the token and reject blank or oversized values."""
    value = (token or "").strip()
    if not value:
        raise MissingCredentialsError("Missing client token")
    if len(value) > MAX_CLIENT_TOKEN_LENGTH:
        raise InvalidCredentialsError("Client token too long")
    return value


def verify_server_password(password: str | None, server_password: str) -> None:
    if not server_password:
        raise InternalServerError("SERVER_PASSWORD is not configured")
    if not password:
        raise MissingCredentialsError("Missing server password")
    if not secrets.compare_digest(password.encode("utf-8"), server_password.encode("utf-8")):
        raise InvalidCredentialsError("Invalid server password")


def verify_credentials(
    client_token: str | None, password: str | None, server_password: str
) -> str:
    """Validate both headers and return the normalized owner token."""
    owner = normalize_client_token(client_token)
    verify_server_password(password, server_password)
    return owner
