"""WebSocket module for live dashboard updates."""

from ezhil.websocket.manager import ConnectionManager
from ezhil.websocket.router import router as websocket_router

__all__ = ["ConnectionManager", "websocket_router"]
