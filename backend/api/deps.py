"""Shared API dependencies: settings, DB session, owner authentication."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from backend.config import Settings
from backend.exceptions import InvalidCredentialsError, MissingCredentialsError
from backend.services.auth_service import verify_credentials
from backend.services.rate_limit_service import InMemoryRateLimiter

logger = logging.getLogger(__name__)

_RATE_LIMIT_DETAIL = "Too many failed authentication attempts"


def get_settings(request: Request) -> Settings:
    """Get application settings from app state."""
    settings: Settings = request.app.state.settings
    return settings


async def get_session(request: Request) -> AsyncGenerator[AsyncSession]:
    """Get a database session."""
    session_factory = request.app.state.session_factory
    async with session_factory() as session:
        yield session


def get_client_ip(request: Request) -> str:
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",", maxsplit=1)[0].strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def _check_rate_limit(limiter: InMemoryRateLimiter, key: str, settings: Settings) -> None:
    """Raise 429 if the key is rate-limited."""
    limited, retry_after = limiter.is_limited(
        key, settings.auth_max_failures, settings.auth_rate_limit_window_seconds
    )
    if limited:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=_RATE_LIMIT_DETAIL,
            headers={"Retry-After": str(retry_after)},
        )


def require_owner(
    request: Request,
    settings: Annotated[Settings, Depends(get_settings)],
    x_client_token: Annotated[str | None, Header()] = None,
    x_server_password: Annotated[str | None, Header()] = None,
) -> str:
    """Authenticate the request and return its owner token.

    Missing headers map to 401, a wrong password to 403. Failures count
    against the caller's IP; once the limit is hit every attempt gets 429
    until the window slides past.
    """
    limiter: InMemoryRateLimiter = request.app.state.rate_limiter
    client_key = f"auth:{get_client_ip(request)}"
    _check_rate_limit(limiter, client_key, settings)

    try:
        owner = verify_credentials(x_client_token, x_server_password, settings.server_password)
    except MissingCredentialsError as exc:
        limiter.add_failure(client_key, settings.auth_rate_limit_window_seconds)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
            headers={"WWW-Authenticate": "X-Server-Password"},
        ) from exc
    except InvalidCredentialsError as exc:
        logger.warning("Rejected credentials from %s: %s", client_key, exc)
        limiter.add_failure(client_key, settings.auth_rate_limit_window_seconds)
        _check_rate_limit(limiter, client_key, settings)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc

    limiter.clear(client_key)
    return owner
