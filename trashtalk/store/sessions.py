from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional


@dataclass
class ConnContext:
    """What the gateway knows about one transport connection."""
    cid: str
    room_code: Optional[str] = None
    pid: Optional[str] = None
    is_host: bool = False
    session_token: Optional[str] = None

    def attach(self, room_code: str, *, pid: Optional[str] = None, is_host: bool = False,
               session_token: Optional[str] = None) -> None:
        self.room_code = room_code
        self.pid = pid
        self.is_host = is_host
        self.session_token = session_token

    def detach(self) -> None:
        self.room_code = None
        self.pid = None
        self.is_host = False
        self.session_token = None


class SessionRegistry:
    """
    In-memory connection table.
    - cid -> ConnContext
    Transport-only bookkeeping: no game rules.
    """

    def __init__(self) -> None:
        self._ctx: Dict[str, ConnContext] = {}

    def open(self, cid: str) -> ConnContext:
        return self._ctx.setdefault(cid, ConnContext(cid=cid))

    def get(self, cid: str) -> Optional[ConnContext]:
        return self._ctx.get(cid)

    def close(self, cid: str) -> Optional[ConnContext]:
        return self._ctx.pop(cid, None)

    def in_room(self, room_code: str) -> List[ConnContext]:
        return [c for c in self._ctx.values() if c.room_code == room_code]

    def detach_room(self, room_code: str) -> None:
        for c in self.in_room(room_code):
            c.detach()
