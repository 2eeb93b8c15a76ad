# trashtalk/transport/ws_manager.py
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Iterable, List

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class WSManager:
    """
    In-memory connection registry.
    - cid -> websocket
    Transport-only: no Redis, no game rules.
    """
    def __init__(self) -> None:
        self._conns: Dict[str, WebSocket] = {}
        self._lock = asyncio.Lock()

    async def add(self, cid: str, ws: WebSocket) -> None:
        async with self._lock:
            self._conns[cid] = ws

    async def remove(self, cid: str) -> None:
        async with self._lock:
            self._conns.pop(cid, None)

    async def send(self, cid: str, event: dict) -> bool:
        async with self._lock:
            ws = self._conns.get(cid)
        if ws is None:
            return False
        try:
            await ws.send_json(event)
        except Exception as e:
            # dead socket; ws.py cleans up on disconnect
            logger.warning("Send to %s failed: %s", cid, e)
            return False
        return True

    async def send_many(self, cids: Iterable[str], event: dict) -> None:
        for cid in cids:
            await self.send(cid, event)

    async def deliver(self, deliveries: List[Any]) -> None:
        """Fan out `Delivery` items; each event is serialized once."""
        for d in deliveries:
            await self.send_many(d.conn_ids, d.event.model_dump())

