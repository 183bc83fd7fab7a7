"""FastAPI dependency injection functions."""

import hmac
from collections.abc import AsyncGenerator

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from agentboard.config import Settings, get_settings
from agentboard.db.engine import get_session
from agentboard.services.aggregator import Aggregator
from agentboard.services.relay_store import RelayCache


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session."""
    async for session in get_session():
        yield session


def get_app_settings(request: Request) -> Settings:
    """Return the settings the app was created with."""
    return getattr(request.app.state, "settings", None) or get_settings()


def get_aggregator(request: Request) -> Aggregator:
    """The aggregator created by ``create_app``."""
    return request.app.state.aggregator


def get_relay_cache(request: Request) -> RelayCache:
    return request.app.state.relay_cache


async def verify_relay_token(
    authorization: str = Header(default="", description="Bearer <relay_token>"),
    settings: Settings = Depends(get_app_settings),
) -> None:
    """Verify Bearer token auth for relay pushes.

    The token is compared in constant time against ``relay_auth_token``.
    """
    if not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )

    raw_token = authorization[7:].strip()
    if not raw_token or not hmac.compare_digest(
        raw_token.encode(), settings.relay_auth_token.encode()
    ):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )
