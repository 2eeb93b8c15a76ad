from __future__ import annotations

import re
from typing import Any, Optional

from trashtalk.store.models import PlayerStore, RoomStore
from trashtalk.store.sessions import ConnContext

MAX_NAME_LEN = 12
_ROOM_CODE_RE = re.compile(r"^[A-Z0-9]{4,8}$", re.IGNORECASE)


def sanitize_name(name: Any) -> str:
    """Trim, cap at 12 chars, strip angle brackets. '' means invalid."""
    if not isinstance(name, str):
        return ""
    return name.strip()[:MAX_NAME_LEN].replace("<", "").replace(">", "")


def normalize_room_code(code: Any) -> str:
    if not isinstance(code, str):
        return ""
    return code.strip().upper()


def is_valid_room_code(code: Any) -> bool:
    return isinstance(code, str) and bool(_ROOM_CODE_RE.match(code))


def name_taken(room: RoomStore, name: str) -> bool:
    lowered = name.lower()
    return any(p.name.lower() == lowered for p in room.players)


def current_judge(room: RoomStore) -> Optional[PlayerStore]:
    if not room.players or room.judge_index < 0 or room.judge_index >= len(room.players):
        return None
    return room.players[room.judge_index]


def is_host(ctx: ConnContext, room: RoomStore) -> bool:
    """Host of the room, by player identity when the host also plays."""
    if room.host_pid is not None:
        return ctx.pid == room.host_pid
    return ctx.is_host and ctx.cid == room.host_conn_id


def is_judge(ctx: ConnContext, room: RoomStore) -> bool:
    judge = current_judge(room)
    return judge is not None and ctx.pid == judge.pid


def is_player(ctx: ConnContext, room: RoomStore) -> bool:
    return room.find_player(ctx.pid) is not None


def can_reveal(ctx: ConnContext, room: RoomStore) -> bool:
    """Judge reveals on their phone in per_player mode; the TV host does otherwise."""
    if room.display_mode == "per_player":
        return is_judge(ctx, room)
    return is_host(ctx, room)
