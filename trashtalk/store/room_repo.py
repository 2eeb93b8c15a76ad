from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from redis.exceptions import RedisError

from trashtalk.store.models import RevealItem, RoomStore, PlayerStore
from trashtalk.store.snapshot_repo import RedisSnapshotRepo
from trashtalk.util.shuffle import fisher_yates
from trashtalk.util.timeutil import now_ts

logger = logging.getLogger(__name__)

# Hooks run while the room lock is held and return opaque outgoing
# deliveries, which are handed to `deliver` once the lock is released.
RoomExpiredHook = Callable[[RoomStore], List[Any]]
GraceExpiredHook = Callable[[RoomStore, str], List[Any]]
DeliverFn = Callable[[List[Any]], Awaitable[None]]


@dataclass
class PendingRemoval:
    room_code: str
    pid: str
    task: asyncio.Task


class RoomRepo:
    """
    Authoritative in-memory room table.
    - room_code -> RoomStore
    - session_token -> pending removal timer for disconnected players
    Owns the background schedules (idle sweep, snapshots) and the grace timers.
    """

    def __init__(
        self,
        *,
        snapshots: Optional[RedisSnapshotRepo] = None,
        expiration_sec: int = 7200,
        grace_sec: float = 60,
        on_room_expired: Optional[RoomExpiredHook] = None,
        on_grace_expired: Optional[GraceExpiredHook] = None,
        deliver: Optional[DeliverFn] = None,
        clock: Callable[[], int] = now_ts,
    ) -> None:
        self._rooms: Dict[str, RoomStore] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._pending: Dict[str, PendingRemoval] = {}
        self._tasks: Dict[str, asyncio.Task] = {}
        self.snapshots = snapshots
        self.expiration_sec = expiration_sec
        self.grace_sec = grace_sec
        self.on_room_expired = on_room_expired
        self.on_grace_expired = on_grace_expired
        self.deliver = deliver
        self.clock = clock

    # ----------------------------
    # CRUD
    # ----------------------------
    def get(self, room_code: Optional[str]) -> Optional[RoomStore]:
        if not room_code:
            return None
        return self._rooms.get(room_code)

    def exists(self, room_code: str) -> bool:
        return room_code in self._rooms

    def create(self, room_code: str, room: RoomStore) -> RoomStore:
        room.code = room_code
        room.last_activity = self.clock()
        self._rooms[room_code] = room
        return room

    def update(self, room_code: str, **fields: Any) -> Optional[RoomStore]:
        room = self._rooms.get(room_code)
        if room is None:
            return None
        for k, v in fields.items():
            setattr(room, k, v)
        return room

    def delete(self, room_code: str) -> Optional[RoomStore]:
        room = self._rooms.pop(room_code, None)
        self._locks.pop(room_code, None)
        for token, entry in list(self._pending.items()):
            if entry.room_code == room_code:
                entry.task.cancel()
                self._pending.pop(token, None)
        return room

    def list_all(self) -> List[Tuple[str, RoomStore]]:
        return list(self._rooms.items())

    def touch(self, room_code: str) -> None:
        room = self._rooms.get(room_code)
        if room is not None:
            room.last_activity = self.clock()

    def lock(self, room_code: str) -> asyncio.Lock:
        return self._locks.setdefault(room_code, asyncio.Lock())

    async def _deliver(self, deliveries: List[Any]) -> None:
        if deliveries and self.deliver is not None:
            await self.deliver(deliveries)

    # ----------------------------
    # Idle expiration
    # ----------------------------
    def _is_expired(self, room: RoomStore, now: int) -> bool:
        # Nobody left who could ever act on it again.
        if not room.players and room.host_conn_id is None:
            return True
        return now - room.last_activity >= self.expiration_sec

    async def sweep_expired(self, now: Optional[int] = None) -> List[str]:
        now = self.clock() if now is None else now
        removed: List[str] = []
        for code, room in self.list_all():
            if not self._is_expired(room, now):
                continue
            deliveries: List[Any] = []
            async with self.lock(code):
                room = self._rooms.get(code)
                if room is None or not self._is_expired(room, now):
                    continue
                if self.on_room_expired is not None:
                    deliveries = self.on_room_expired(room)
                self.delete(code)
            removed.append(code)
            logger.info("Room %s expired after %ss of inactivity", code, self.expiration_sec)
            await self._deliver(deliveries)
        return removed

    # ----------------------------
    # Disconnect grace period
    # ----------------------------
    def mark_disconnected(self, room_code: str, pid: str, session_token: str) -> bool:
        room = self._rooms.get(room_code)
        player = room.find_player(pid) if room else None
        if player is None:
            return False

        player.conn_id = None
        player.disconnected = True
        player.disconnected_at = self.clock()
        self._schedule_grace(session_token, room_code, pid)
        return True

    def _schedule_grace(self, session_token: str, room_code: str, pid: str) -> None:
        previous = self._pending.pop(session_token, None)
        if previous is not None:
            previous.task.cancel()
        task = asyncio.create_task(self._grace_timer(session_token))
        self._pending[session_token] = PendingRemoval(room_code=room_code, pid=pid, task=task)

    async def _grace_timer(self, session_token: str) -> None:
        await asyncio.sleep(self.grace_sec)
        await self.expire_grace(session_token)

    def pending_room_for(self, session_token: str) -> Optional[str]:
        entry = self._pending.get(session_token)
        return entry.room_code if entry else None

    def has_pending(self, session_token: str) -> bool:
        return session_token in self._pending

    async def expire_grace(self, session_token: str) -> bool:
        """
        Drop the disconnected player behind `session_token`.
        Returns False if the token is no longer pending.
        """
        entry = self._pending.pop(session_token, None)
        if entry is None:
            return False
        if entry.task is not asyncio.current_task():
            entry.task.cancel()

        deliveries: List[Any] = []
        async with self.lock(entry.room_code):
            room = self._rooms.get(entry.room_code)
            player = room.find_player(entry.pid) if room else None
            if room is None or player is None or not player.disconnected:
                return False
            if self.on_grace_expired is not None:
                deliveries = self.on_grace_expired(room, entry.pid)
            else:
                room.drop_player(entry.pid)
            logger.info("%s timed out from %s", player.name, entry.room_code)
        await self._deliver(deliveries)
        return True

    def reconnect(self, new_conn_id: str, session_token: str) -> Optional[Tuple[RoomStore, PlayerStore]]:
        entry = self._pending.get(session_token)
        if entry is None:
            return None

        room = self._rooms.get(entry.room_code)
        player = room.player_by_token(session_token) if room else None
        if room is None or player is None:
            self._pending.pop(session_token, None)
            entry.task.cancel()
            return None

        entry.task.cancel()
        self._pending.pop(session_token, None)

        # Submissions are keyed by pid, so they follow the player as-is.
        player.conn_id = new_conn_id
        player.disconnected = False
        player.disconnected_at = None
        if room.host_pid is not None and room.host_pid == player.pid:
            room.host_conn_id = new_conn_id

        room.last_activity = self.clock()
        return room, player

    # ----------------------------
    # Snapshots
    # ----------------------------
    async def persist(self) -> bool:
        if self.snapshots is None:
            return False
        try:
            n = await self.snapshots.save_rooms(list(self._rooms.values()))
        except (RedisError, OSError) as e:
            logger.warning("Failed to save room snapshot, retrying next cycle: %s", e)
            return False
        logger.debug("Saved %d rooms to snapshot", n)
        return True

    async def load(self) -> int:
        if self.snapshots is None:
            return 0
        try:
            rooms = await self.snapshots.load_rooms()
        except (RedisError, OSError) as e:
            logger.warning("Failed to load room snapshot: %s", e)
            return 0

        now = self.clock()
        loaded = 0
        for code, room in rooms.items():
            if code in self._rooms or self._is_expired(room, now):
                continue
            if room.display_mode == "shared":
                # The TV has no session token, so nobody could host this room again.
                logger.info("Skipping shared-display room %s from snapshot", code)
                continue
            self._rehydrate(room, now)
            self._rooms[code] = room
            loaded += 1

        if loaded:
            logger.info("Loaded %d rooms from snapshot", loaded)
        return loaded

    def _rehydrate(self, room: RoomStore, now: int) -> None:
        room.host_conn_id = None
        for p in room.players:
            p.conn_id = None
            p.disconnected = True
            p.disconnected_at = now
            if p.session_token:
                self._schedule_grace(p.session_token, room.code, p.pid)

        if room.state == "reveal":
            items = [RevealItem(pid=pid, cards=cards) for pid, cards in room.submissions.items()]
            room.shuffled_submissions = fisher_yates(items)
            room.reveal_cursor = 0

    # ----------------------------
    # Background schedules
    # ----------------------------
    def schedule_every(self, name: str, interval_sec: float, fn: Callable[[], Awaitable[Any]]) -> None:
        old = self._tasks.pop(name, None)
        if old is not None:
            old.cancel()
        self._tasks[name] = asyncio.create_task(self._every(name, interval_sec, fn))

    async def _every(self, name: str, interval_sec: float, fn: Callable[[], Awaitable[Any]]) -> None:
        while True:
            await asyncio.sleep(interval_sec)
            try:
                await fn()
            except Exception:
                logger.exception("Background task %s failed", name)

    def start(self, *, persist_interval_sec: float, cleanup_interval_sec: float) -> None:
        if self.snapshots is not None:
            self.schedule_every("persist", persist_interval_sec, self.persist)
        self.schedule_every("sweep", cleanup_interval_sec, self.sweep_expired)

    async def shutdown(self) -> None:
        for task in self._tasks.values():
            task.cancel()
        self._tasks.clear()
        for entry in self._pending.values():
            entry.task.cancel()
        await self.persist()
