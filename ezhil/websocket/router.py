"""Live dashboard socket."""

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from ezhil.database import session_scope
from ezhil.services.feed import build_dashboard, build_summary
from ezhil.services.report_store import ReportStore
from ezhil.websocket.manager import manager
from ezhil.websocket.schemas import (
    ErrorMessage,
    FeedView,
    PingMessage,
    PongMessage,
    SubscribeMessage,
    client_message_adapter,
)

logger = logging.getLogger(__name__)

router = APIRouter()


async def _send_current(websocket: WebSocket, view: FeedView) -> None:
    """Send the latest snapshot for ``view`` to one client."""
    sequence = manager.next_sequence()
    async with session_scope() as db:
        store = ReportStore(db)
        snapshot = await (build_summary(store) if view == "summary" else build_dashboard(store))
    await manager.send_snapshot(websocket, view, snapshot, sequence=sequence)


async def _handle(websocket: WebSocket, raw_message: str) -> None:
    try:
        message = client_message_adapter.validate_json(raw_message)
    except ValidationError as e:
        first = e.errors()[0]
        await websocket.send_json(
            ErrorMessage(message=f"Invalid message: {first['msg']}").model_dump()
        )
        return

    if isinstance(message, PingMessage):
        await websocket.send_json(PongMessage().model_dump())
    elif isinstance(message, SubscribeMessage):
        await manager.update_subscription(websocket, message.view)
        await _send_current(websocket, message.view)


@router.websocket("/ws/dashboard")
async def websocket_dashboard(websocket: WebSocket):
    """
    Push dashboard or summary snapshots whenever the report feed changes.

    A client starts on the dashboard view and gets its snapshot right away.

    Client -> Server:
        {"type": "subscribe", "view": "summary"}
        {"type": "ping"}

    Server -> Client:
        {"type": "dashboard_update", "view": "dashboard", "sequence": 7, "data": {...}, "timestamp": "..."}
        {"type": "pong"}
        {"type": "error", "message": "..."}
    """
    await manager.connect(websocket)

    try:
        await _send_current(websocket, "dashboard")
        while True:
            await _handle(websocket, await websocket.receive_text())
    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.exception(f"WebSocket error: {e}")
    finally:
        await manager.disconnect(websocket)
