"""
WebSocket connection manager for the signaling channel

ARCHITECTURE NOTE: Non-blocking send design
- Each connection has a connection id, a dedicated send queue and a sender task
- Sends are non-blocking - messages are queued per-client, in order
- A slow or dead client never blocks the relay or the transcode pipeline
- Full queues and unknown ids result in dropped messages (logged) rather than errors
"""
from fastapi import WebSocket, WebSocketDisconnect
from typing import Dict, Optional
import asyncio
import json
import logging
import secrets
from datetime import datetime, timezone

from constants import SignalEvents, WebSocketConfig

logger = logging.getLogger(__name__)


class ConnectionManager:
    """
    Manages signaling WebSocket connections and delivers events to one connection at a time.

    Every frame on the wire is a JSON object:
        {"event": "<name>", "data": <payload>, "timestamp": "<iso8601>"}
    """

    def __init__(self, queue_size: int = WebSocketConfig.SEND_QUEUE_SIZE):
        self.queue_size = queue_size
        self.connections: Dict[str, WebSocket] = {}
        self.send_queues: Dict[str, asyncio.Queue] = {}
        self.sender_tasks: Dict[str, asyncio.Task] = {}

    @staticmethod
    def new_connection_id() -> str:
        return secrets.token_urlsafe(12)

    async def connect(self, websocket: WebSocket, conn_id: Optional[str] = None) -> str:
        """
        Accept a WebSocket connection and start its sender task

        Args:
            websocket: FastAPI WebSocket connection
            conn_id: Optional connection identifier (generated if omitted)

        Returns:
            The connection id used to address this client
        """
        await websocket.accept()
        conn_id = conn_id or self.new_connection_id()
        self.connections[conn_id] = websocket

        self.send_queues[conn_id] = asyncio.Queue(maxsize=self.queue_size)
        self.sender_tasks[conn_id] = asyncio.create_task(self._sender_loop(conn_id))

        client = f"{websocket.client.host}:{websocket.client.port}" if websocket.client else "unknown"
        logger.info(f"✅ Signaling client connected ({conn_id}) from {client}. Total connections: {len(self.connections)}")
        return conn_id

    def disconnect(self, conn_id: str):
        """Unregister a connection and cancel its sender task"""
        task = self.sender_tasks.pop(conn_id, None)
        if task:
            task.cancel()

        self.connections.pop(conn_id, None)
        self.send_queues.pop(conn_id, None)

        logger.info(f"🔌 Signaling client disconnected ({conn_id}). Total connections: {len(self.connections)}")

    async def _sender_loop(self, conn_id: str):
        """
        Dedicated sender task for each connection.
        Pulls messages from its queue and sends them without blocking other connections.
        """
        queue = self.send_queues[conn_id]
        websocket = self.connections[conn_id]

        try:
            while True:
                message = await queue.get()
                try:
                    await websocket.send_text(message)
                except Exception as e:
                    logger.warning(f"Failed to send to {conn_id}: {e}")
                    # Connection is dead: stop accepting events for it, the receive loop closes it
                    if self.send_queues.get(conn_id) is queue:
                        self.send_queues.pop(conn_id, None)
                    break
        except asyncio.CancelledError:
            pass

    async def send_event(self, conn_id: Optional[str], event: str, data=None) -> bool:
        """
        Queue one event for one connection.

        Returns:
            True if the event was queued, False if it was dropped
        """
        queue = self.send_queues.get(conn_id) if conn_id else None
        if queue is None:
            logger.warning(f"Cannot send '{event}' to disconnected client {conn_id}")
            return False

        message = json.dumps({
            "event": event,
            "data": data if data is not None else {},
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })
        try:
            queue.put_nowait(message)
        except asyncio.QueueFull:
            logger.warning(f"Send queue full for {conn_id}, dropping event '{event}'")
            return False
        logger.debug(f"Queued '{event}' for {conn_id}")
        return True

    async def close_all(self):
        """Cancel every sender task (shutdown)."""
        for conn_id in list(self.connections):
            self.disconnect(conn_id)


async def websocket_endpoint(websocket: WebSocket, manager: ConnectionManager, relay):
    """
    Signaling endpoint handler

    Accepts the connection, feeds every inbound frame to the signal relay in
    arrival order, and reports the disconnect to the relay exactly once.
    """
    conn_id = await manager.connect(websocket)

    try:
        while True:
            data = await websocket.receive_text()

            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                logger.warning(f"Invalid JSON from {conn_id}: {data[:200]}")
                await manager.send_event(conn_id, SignalEvents.ERROR, {"message": "invalid JSON frame"})
                continue

            await relay.handle_message(conn_id, message)

    except WebSocketDisconnect:
        logger.debug(f"Signaling client {conn_id} disconnected normally")
    except Exception as e:
        logger.error(f"WebSocket error on {conn_id}: {type(e).__name__}: {e}")
    finally:
        manager.disconnect(conn_id)
        await relay.on_disconnect(conn_id)
