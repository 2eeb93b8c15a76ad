# trashtalk/transport/ws.py
from __future__ import annotations

import ipaddress
import json
import logging
import uuid
from urllib.parse import urlparse

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from trashtalk.domain.lifecycle.handlers import handle_disconnect
from trashtalk.transport.dispatcher import dispatch_message
from trashtalk.transport.protocols import OutError, OutHello

logger = logging.getLogger(__name__)

router = APIRouter()


def _is_private_ip(host: str) -> bool:
    """Return True if host is a private IP (192.168.x.x, 10.x.x.x, 172.16-31.x.x)."""
    try:
        ip = ipaddress.ip_address(host)
        return ip.is_private
    except ValueError:
        return False


async def _check_origin_or_close(websocket: WebSocket) -> bool:
    settings = websocket.app.state.settings
    allowed = {o.strip() for o in settings.WS_ALLOWED_ORIGINS.split(",") if o.strip()}

    origin = websocket.headers.get("origin")
    if origin is None or origin in allowed:
        return True
    if settings.WS_ALLOW_LAN_ORIGINS:
        o = urlparse(origin)
        if _is_private_ip(o.hostname or "") and o.port == 5173:
            return True
    logger.info("Rejected websocket from origin %s", origin)
    await websocket.close(code=1008)
    return False


async def _drop_connection(app, cid: str) -> None:
    ctx = app.state.sessions.close(cid)
    app.state.ratelimiter.forget(cid)
    await app.state.wsman.remove(cid)
    if ctx is None or not ctx.room_code:
        return

    async with app.state.repo.lock(ctx.room_code):
        deliveries = await handle_disconnect(app=app, ctx=ctx)
    await app.state.wsman.deliver(deliveries)


@router.websocket("/ws")
async def ws_game(websocket: WebSocket):
    if not await _check_origin_or_close(websocket):
        return

    await websocket.accept()

    app = websocket.app
    cid = uuid.uuid4().hex[:12]
    wsman = app.state.wsman
    ctx = app.state.sessions.open(cid)
    await wsman.add(cid, websocket)
    await websocket.send_json(OutHello(cid=cid).model_dump())

    try:
        while True:
            text = await websocket.receive_text()
            try:
                raw = json.loads(text)
            except ValueError:
                await websocket.send_json(OutError(code="BAD_MESSAGE", message="Invalid JSON").model_dump())
                continue

            to_sender, deliveries = await dispatch_message(app=app, ctx=ctx, raw=raw)

            # unicast
            for e in to_sender:
                await websocket.send_json(e)

            # fan-out, after the room lock is released
            await wsman.deliver(deliveries)

    except WebSocketDisconnect:
        pass
    finally:
        await _drop_connection(app, cid)
