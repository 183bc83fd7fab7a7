"""Snapshot endpoints: pull, on-demand refresh, live push and conversations."""

import asyncio
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from agentboard.dependencies import get_aggregator
from agentboard.schemas.agent import ConversationResponse
from agentboard.schemas.snapshot import DashboardState
from agentboard.services.aggregator import Aggregator

logger = logging.getLogger(__name__)

router = APIRouter(tags=["state"])


@router.get("/state", response_model=DashboardState)
async def get_state(aggregator: Aggregator = Depends(get_aggregator)) -> DashboardState:
    """The most recently published snapshot."""
    return aggregator.store.current


@router.post("/refresh", response_model=DashboardState)
async def refresh(aggregator: Aggregator = Depends(get_aggregator)) -> DashboardState:
    """Run one aggregation cycle now and return its snapshot."""
    return await aggregator.run_cycle()


@router.get("/agents/{agent_id}/conversation", response_model=ConversationResponse)
async def get_conversation(
    agent_id: str,
    aggregator: Aggregator = Depends(get_aggregator),
) -> ConversationResponse:
    """Full conversation for an agent.

    Unknown agents and agents without history both return an empty turn list.
    """
    turns = await aggregator.conversation_history(agent_id)
    return ConversationResponse(agent_id=agent_id, turns=turns)


async def _forward(websocket: WebSocket, queue: asyncio.Queue[DashboardState]) -> None:
    while True:
        state = await queue.get()
        await websocket.send_json(state.to_wire())


async def _stop_sender(sender: asyncio.Task) -> None:
    """Cancel the push task and collect its outcome."""
    sender.cancel()
    try:
        await sender
    except asyncio.CancelledError:
        pass
    except Exception as exc:
        logger.debug("Live sender stopped: %s", exc)


@router.websocket("/live")
async def live(websocket: WebSocket) -> None:
    """Push the snapshot after every cycle, starting with the current one.

    Client messages are read and ignored; reading is what notices a
    disconnect while no cycle is publishing.
    """
    aggregator: Aggregator = websocket.app.state.aggregator
    await websocket.accept()
    queue = aggregator.store.subscribe()
    sender: asyncio.Task | None = None
    try:
        await websocket.send_json(aggregator.store.current.to_wire())
        sender = asyncio.create_task(_forward(websocket, queue))
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.debug("Live client disconnected")
    finally:
        if sender is not None:
            await _stop_sender(sender)
        aggregator.store.unsubscribe(queue)
