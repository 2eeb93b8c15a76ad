from __future__ import annotations

from dataclasses import dataclass

ROOMS_INDEX = "rooms:index"  # SET room_code


@dataclass(frozen=True)
class RK:
    """
    Redis Key builder for room-scoped snapshot keys.
    """
    room_code: str

    def snapshot(self) -> str:
        return f"room:{self.room_code}:snapshot"  # STRING room JSON

    @staticmethod
    def index() -> str:
        return ROOMS_INDEX
