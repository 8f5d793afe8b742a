# Real-time Broadcaster - fire-and-forget fan-out to WebSocket clients
import asyncio
from typing import Any, Dict, Set

from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder

from smartchair import config
from smartchair import logger


class Broadcaster:
    """
    Tracks connected WebSocket clients and pushes events to all of them
    
    Each message is JSON: {"event": <name>, "data": <payload>}.
    emit() never waits for delivery; a client that fails or times out is dropped.
    """

    def __init__(self, send_timeout: float = None):
        self.send_timeout = config.WS_SEND_TIMEOUT_SECONDS if send_timeout is None else send_timeout
        self._clients: Set[WebSocket] = set()
        self._pending: Set[asyncio.Task] = set()

    @property
    def client_count(self) -> int:
        return len(self._clients)

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self._clients.add(websocket)
        logger.log_ws("Client Connected", {"clients": self.client_count})

    def disconnect(self, websocket: WebSocket) -> None:
        if websocket in self._clients:
            self._clients.discard(websocket)
            logger.log_ws("Client Disconnected", {"clients": self.client_count})

    def emit(self, event: str, payload: Dict[str, Any]) -> None:
        """Schedule delivery of one event to every connected client"""
        message = {"event": event, "data": jsonable_encoder(payload)}

        for websocket in list(self._clients):
            task = asyncio.create_task(self._send(websocket, message))
            # Keep a reference until the task finishes
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    async def _send(self, websocket: WebSocket, message: Dict[str, Any]) -> None:
        try:
            await asyncio.wait_for(websocket.send_json(message), timeout=self.send_timeout)
        except Exception as e:
            logger.log_warning("Dropping WebSocket Client", {
                "event": message["event"],
                "reason": str(e) or type(e).__name__
            })
            self.disconnect(websocket)
            await self._close(websocket)

    async def _close(self, websocket: WebSocket) -> None:
        # A dropped client is always closed so it can reconnect
        try:
            await asyncio.wait_for(websocket.close(), timeout=self.send_timeout)
        except Exception as e:
            logger.log_ws("Close Failed", {"reason": str(e) or type(e).__name__})
