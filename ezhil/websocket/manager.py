"""WebSocket connection manager for pushing live dashboard snapshots."""

import asyncio
import itertools
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime

from fastapi import WebSocket
from pydantic import BaseModel

from ezhil.websocket.schemas import DashboardUpdateMessage, FeedView

logger = logging.getLogger(__name__)


@dataclass
class ClientSubscription:
    """Tracks which snapshot a client wants."""

    websocket: WebSocket
    view: FeedView = "dashboard"
    connected_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    last_sequence: int = 0

    def accepts(self, sequence: int) -> bool:
        """Claim ``sequence`` for this client unless something newer was already sent."""
        if sequence <= self.last_sequence:
            return False
        self.last_sequence = sequence
        return True


class ConnectionManager:
    """
    Manages WebSocket connections and publishes feed snapshots.

    Every snapshot carries a sequence number reserved with ``next_sequence``
    before its data is read. A client is never sent a snapshot older than
    one it already has, so the last write wins even when builds overlap.
    Designed for single-instance deployment.
    """

    def __init__(self):
        self._connections: dict[WebSocket, ClientSubscription] = {}
        self._lock = asyncio.Lock()
        self._sequence = itertools.count(1)

    @property
    def connection_count(self) -> int:
        """Number of active connections."""
        return len(self._connections)

    def next_sequence(self) -> int:
        """Reserve a sequence number; call before reading the data to send."""
        return next(self._sequence)

    async def connect(self, websocket: WebSocket) -> None:
        """Accept a new WebSocket connection."""
        await websocket.accept()
        async with self._lock:
            self._connections[websocket] = ClientSubscription(websocket=websocket)
        logger.info(f"WebSocket connected. Total connections: {self.connection_count}")

    async def disconnect(self, websocket: WebSocket) -> None:
        """Remove a disconnected WebSocket."""
        async with self._lock:
            if websocket in self._connections:
                del self._connections[websocket]
        logger.info(f"WebSocket disconnected. Total connections: {self.connection_count}")

    async def update_subscription(self, websocket: WebSocket, view: FeedView) -> None:
        """Switch the snapshot a client receives."""
        async with self._lock:
            if websocket in self._connections:
                self._connections[websocket].view = view
                logger.debug(f"Updated subscription: view={view}")

    async def send_snapshot(
        self,
        websocket: WebSocket,
        view: FeedView,
        snapshot: BaseModel,
        sequence: int | None = None,
    ) -> bool:
        """
        Send one snapshot to one client.

        Returns False when the client already has a newer snapshot.
        """
        if sequence is None:
            sequence = self.next_sequence()

        subscription = self._connections.get(websocket)
        if subscription is not None and not subscription.accepts(sequence):
            logger.debug(f"Dropped stale snapshot #{sequence} ({view})")
            return False

        message = DashboardUpdateMessage(
            view=view,
            sequence=sequence,
            data=snapshot,
            timestamp=datetime.now(UTC),
        )
        await self._send_safe(websocket, message)
        return True

    async def publish(
        self,
        snapshots: dict[str, BaseModel],
        sequence: int | None = None,
    ) -> None:
        """
        Push fresh snapshots to every subscriber.

        ``snapshots`` maps a view name to its snapshot; clients subscribed to
        a view missing from the mapping get nothing. ``sequence`` should be
        reserved before the snapshots were built; clients that already hold
        a newer one are skipped.
        """
        if not snapshots:
            return

        async with self._lock:
            if not self._connections:
                return

            if sequence is None:
                sequence = self.next_sequence()
            timestamp = datetime.now(UTC)

            tasks = []
            for websocket, subscription in list(self._connections.items()):
                snapshot = snapshots.get(subscription.view)
                if snapshot is None or not subscription.accepts(sequence):
                    continue
                message = DashboardUpdateMessage(
                    view=subscription.view,
                    sequence=sequence,
                    data=snapshot,
                    timestamp=timestamp,
                )
                tasks.append(self._send_safe(websocket, message))

            if tasks:
                await asyncio.gather(*tasks, return_exceptions=True)
                logger.info(f"Published snapshot #{sequence} to {len(tasks)} subscribers")

    async def _send_safe(self, websocket: WebSocket, message: DashboardUpdateMessage) -> None:
        """Send message to websocket, handling errors gracefully."""
        try:
            await websocket.send_json(message.model_dump(mode="json"))
        except Exception as e:
            logger.warning(f"Failed to send to websocket: {e}")
            # Schedule disconnect (don't do it here to avoid deadlock)
            asyncio.create_task(self.disconnect(websocket))


# Global singleton instance
manager = ConnectionManager()
