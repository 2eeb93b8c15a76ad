from __future__ import annotations

import logging
from typing import Dict, Iterable

from pydantic import ValidationError
from redis.asyncio import Redis

from trashtalk.store.models import RoomStore
from trashtalk.store.redis_keys import RK

logger = logging.getLogger(__name__)

# Runtime-only fields: the reveal permutation is recomputed on load and
# connection ids are meaningless to a new process.
SNAPSHOT_EXCLUDE = {
    "shuffled_submissions": True,
    "host_conn_id": True,
    "players": {"__all__": {"conn_id"}},
}


class RedisSnapshotRepo:
    def __init__(self, r: Redis, room_ttl_sec: int = 7200):
        self.r = r
        self.room_ttl_sec = room_ttl_sec

    def _dec(self, x):
        """Decode redis bytes -> str; pass through str/None safely."""
        if x is None:
            return None
        if isinstance(x, bytes):
            return x.decode("utf-8")
        return x

    @staticmethod
    def dump_room(room: RoomStore) -> str:
        return room.model_dump_json(exclude=SNAPSHOT_EXCLUDE)

    async def save_rooms(self, rooms: Iterable[RoomStore]) -> int:
        """
        Write every room and prune snapshot keys for rooms that no longer exist.
        Returns the number of rooms written.
        """
        rooms = list(rooms)
        live = {room.code for room in rooms}
        known = {self._dec(c) for c in await self.r.smembers(RK.index())}
        stale = known - live

        pipe = self.r.pipeline()
        for room in rooms:
            pipe.set(RK(room.code).snapshot(), self.dump_room(room), ex=self.room_ttl_sec)
            pipe.sadd(RK.index(), room.code)
        for code in stale:
            pipe.delete(RK(code).snapshot())
            pipe.srem(RK.index(), code)
        await pipe.execute()
        return len(rooms)

    async def load_rooms(self) -> Dict[str, RoomStore]:
        out: Dict[str, RoomStore] = {}
        codes = sorted(self._dec(c) for c in await self.r.smembers(RK.index()))
        for code in codes:
            raw = await self.r.get(RK(code).snapshot())
            if raw is None:
                # key expired; the index is cleaned on the next save
                continue
            try:
                out[code] = RoomStore.model_validate_json(self._dec(raw))
            except ValidationError as e:
                logger.warning("Skipping unreadable snapshot for room %s: %s", code, e)
                continue
        return out
