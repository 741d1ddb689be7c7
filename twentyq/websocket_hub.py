from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any
from uuid import uuid4

from fastapi import WebSocket
from fastapi.websockets import WebSocketState

from twentyq.engine import Delivery

logger = logging.getLogger(__name__)


class ConnectionHub:
    """In-process registry of open game sockets keyed by connection id.

    Contract:
      - `connect(websocket)` accepts the socket and hands back a fresh connection id.
      - `is_reachable(connection_id)` is the predicate the engine consults before addressing a peer.
      - `send` / `deliver` are best-effort: a failed send is logged and skipped.

    Payloads should be JSON-serializable dicts.
    """

    def __init__(self) -> None:
        self._connections: dict[str, WebSocket] = {}

    def __len__(self) -> int:
        return len(self._connections)

    async def connect(self, websocket: WebSocket) -> str:
        await websocket.accept()
        connection_id = uuid4().hex
        self._connections[connection_id] = websocket
        return connection_id

    def disconnect(self, connection_id: str) -> None:
        self._connections.pop(connection_id, None)

    def is_reachable(self, connection_id: str) -> bool:
        ws = self._connections.get(connection_id)
        if ws is None:
            return False
        return ws.client_state == WebSocketState.CONNECTED and ws.application_state == WebSocketState.CONNECTED

    async def send(self, connection_id: str, payload: dict[str, Any]) -> bool:
        ws = self._connections.get(connection_id)
        if ws is None:
            return False
        try:
            await ws.send_json(payload)
        except Exception:
            # Reachability follows the socket state; the close event removes the entry.
            logger.debug("send to %s failed", connection_id, exc_info=True)
            return False
        return True

    async def deliver(self, deliveries: Iterable[Delivery]) -> None:
        for d in deliveries:
            if not self.is_reachable(d.connection_id):
                logger.debug("skipping unreachable connection %s", d.connection_id)
                continue
            await self.send(d.connection_id, d.message)


hub = ConnectionHub()
