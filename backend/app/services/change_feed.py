"""Change feed - tells connected devices that a table changed.

Messages name the table and the action only. Devices re-fetch the affected
collection rather than patching from the payload.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from fastapi import BackgroundTasks, WebSocket, status

logger = logging.getLogger(__name__)

FEED_TABLES = ("seats", "orders", "order_items", "menu_items", "hotels")


def hotel_channel(hotel_id: str) -> str:
    return f"hotel-{hotel_id}"


class ChangeFeed:
    """Manages WebSocket connections, one channel per hotel."""

    MAX_CONNECTIONS_PER_CHANNEL = 200
    MAX_MESSAGE_SIZE = 4096

    def __init__(self):
        self.active_connections: Dict[str, List[WebSocket]] = {}
        self.connection_metadata: Dict[int, Dict[str, Any]] = {}

    async def connect(self, websocket: WebSocket, hotel_id: str, profile_id: Optional[str] = None) -> bool:
        """Accept a connection onto the hotel's channel.

        Returns False (and closes the socket) if the channel is full.
        """
        channel = hotel_channel(hotel_id)
        if len(self.active_connections.get(channel, [])) >= self.MAX_CONNECTIONS_PER_CHANNEL:
            logger.warning(f"WebSocket connection rejected: channel '{channel}' at capacity")
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            return False

        await websocket.accept()
        self.active_connections.setdefault(channel, []).append(websocket)
        self.connection_metadata[id(websocket)] = {
            "connected_at": datetime.now(timezone.utc),
            "profile_id": profile_id,
            "channel": channel,
        }
        logger.debug(f"WebSocket connected to channel '{channel}', profile_id={profile_id}")
        return True

    def disconnect(self, websocket: WebSocket, hotel_id: str) -> None:
        channel = hotel_channel(hotel_id)
        connections = self.active_connections.get(channel, [])
        if websocket in connections:
            connections.remove(websocket)
        self.connection_metadata.pop(id(websocket), None)
        logger.debug(f"WebSocket disconnected from channel '{channel}'")

    async def drop_profile(self, hotel_id: str, profile_id: str) -> int:
        """Close every socket opened by a staff account, e.g. after it was deleted."""
        dropped = 0
        for connection in list(self.active_connections.get(hotel_channel(hotel_id), [])):
            meta = self.connection_metadata.get(id(connection), {})
            if meta.get("profile_id") != profile_id:
                continue
            self.disconnect(connection, hotel_id)
            try:
                await connection.close(code=status.WS_1008_POLICY_VIOLATION)
            except Exception as e:
                logger.debug(f"WebSocket close failed: {e}")
            dropped += 1
        if dropped:
            logger.info(f"Dropped {dropped} feed connection(s) of profile {profile_id}")
        return dropped

    async def broadcast(self, hotel_id: str, message: Dict[str, Any]) -> None:
        channel = hotel_channel(hotel_id)
        disconnected = []
        for connection in list(self.active_connections.get(channel, [])):
            try:
                await connection.send_json(message)
            except Exception as e:
                logger.debug(f"WebSocket send failed: {e}")
                disconnected.append(connection)

        for conn in disconnected:
            self.disconnect(conn, hotel_id)

    async def publish(self, hotel_id: str, tables: Iterable[str], action: str = "update") -> None:
        """Announce a change to each of ``tables`` on the hotel's channel."""
        for table in dict.fromkeys(tables):
            if table not in FEED_TABLES:
                logger.debug(f"Ignoring change on unpublished table '{table}'")
                continue
            await self.broadcast(hotel_id, {
                "event": "change",
                "table": table,
                "action": action,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            })

    def get_connection_count(self, hotel_id: Optional[str] = None) -> int:
        if hotel_id:
            return len(self.active_connections.get(hotel_channel(hotel_id), []))
        return sum(len(conns) for conns in self.active_connections.values())


change_feed = ChangeFeed()


def notify(background_tasks: BackgroundTasks, hotel_id: str, tables: Iterable[str], action: str = "update") -> None:
    """Schedule a change broadcast to run after the response is sent."""
    background_tasks.add_task(change_feed.publish, hotel_id, list(tables), action)
