"""Relay endpoints: the monitor pushes snapshots, remote clients pull them."""

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from agentboard import __version__
from agentboard.dependencies import get_db, get_relay_cache, verify_relay_token
from agentboard.schemas.snapshot import DashboardState
from agentboard.services.relay_store import RelayCache, load_state, save_state

router = APIRouter(prefix="/api", tags=["relay"])


@router.post("/state", dependencies=[Depends(verify_relay_token)])
async def push_state(
    request: Request,
    db: AsyncSession = Depends(get_db),
    cache: RelayCache = Depends(get_relay_cache),
) -> dict:
    """Store a pushed snapshot. The body is kept as sent, without validation."""
    try:
        body = await request.json()
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid JSON",
        )
    if not isinstance(body, dict):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Snapshot must be a JSON object",
        )

    updated_at = await save_state(db, cache, body)
    return {"ok": True, "updatedAt": updated_at}


@router.get("/state")
async def pull_state(
    db: AsyncSession = Depends(get_db),
    cache: RelayCache = Depends(get_relay_cache),
) -> dict:
    """Latest snapshot plus ``_relay`` metadata; an empty snapshot before any push."""
    loaded = await load_state(db, cache)
    if loaded is None:
        return {
            **DashboardState().to_wire(),
            "_relay": {"updatedAt": None, "source": "empty"},
        }

    state, source = loaded
    return {**state, "_relay": {"updatedAt": cache.updated_at, "source": source}}


@router.get("/health")
async def relay_health(cache: RelayCache = Depends(get_relay_cache)) -> dict:
    return {
        "status": "ok",
        "version": __version__,
        "relay": True,
        "hasState": cache.has_state,
        "lastUpdated": cache.updated_at,
    }
