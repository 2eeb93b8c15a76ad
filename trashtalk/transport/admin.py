from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request

from trashtalk.domain.common.validation import normalize_room_code
from trashtalk.domain.lifecycle.handlers import teardown_room

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/rooms")
async def list_rooms(request: Request):
    """
    List all active rooms (debug/admin).
    """
    repo = request.app.state.repo

    rooms = []
    for code, room in sorted(repo.list_all()):
        connected = [p for p in room.players if not p.disconnected]
        rooms.append(
            {
                "room_code": code,
                "display_mode": room.display_mode,
                "state": room.state,
                "round_no": room.round_no,
                "total_rounds": room.total_rounds,
                "players": len(room.players),
                "connected": len(connected),
                "last_activity": room.last_activity,
                "created_at": room.created_at,
            }
        )

    return {"rooms": rooms}


@router.post("/rooms/{room_code}/close")
async def close_room(room_code: str, request: Request):
    """
    Force close a room (debug/admin). Notifies every connection in it.
    """
    app = request.app
    repo = app.state.repo
    code = normalize_room_code(room_code)

    if not repo.exists(code):
        raise HTTPException(status_code=404, detail="Room not found")

    async with repo.lock(code):
        room = repo.get(code)
        if room is None:
            raise HTTPException(status_code=404, detail="Room not found")
        deliveries = teardown_room(app, room, "Closed by admin")
    await app.state.wsman.deliver(deliveries)

    return {"ok": True, "room_code": code}
