import asyncio
import logging
from typing import Dict, Set
from fastapi import WebSocket

logger = logging.getLogger("notifications.utils")


class ConnectionManager:
    """Simple in-memory WebSocket connection manager grouped by topics."""
    def __init__(self) -> None:
        self._topic_to_connections: Dict[str, Set[WebSocket]] = {}
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket, topic: str) -> None:
        await websocket.accept()
        async with self._lock:
            self._topic_to_connections.setdefault(topic, set()).add(websocket)
        logger.info(f"Subscriber joined topic {topic}")

    async def disconnect(self, websocket: WebSocket, topic: str) -> None:
        async with self._lock:
            conns = self._topic_to_connections.get(topic)
            if conns and websocket in conns:
                conns.remove(websocket)
                if not conns:
                    self._topic_to_connections.pop(topic, None)
        logger.info(f"Subscriber left topic {topic}")

    def subscriber_count(self, topic: str) -> int:
        return len(self._topic_to_connections.get(topic, ()))

    async def broadcast(self, topic: str, message: dict) -> int:
        """Send to every subscriber of topic; returns how many received it."""
        # Copy to avoid size change during iteration
        connections = list(self._topic_to_connections.get(topic, set()))
        delivered = 0
        for ws in connections:
            try:
                await ws.send_json(message)
                delivered += 1
            except Exception as e:
                logger.warning(f"Dropping broken subscriber on {topic}: {e}")
                await self.disconnect(ws, topic)
        return delivered


manager = ConnectionManager()

def topic_for_table(table: str) -> str:
    return f"table:{table}"

def topic_broadcast_all() -> str:
    return "broadcast:all"
