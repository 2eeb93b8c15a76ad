from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional

from pydantic import BaseModel

from trashtalk.store.models import PlayerStore, RoomStore


@dataclass(frozen=True)
class Delivery:
    """One event for a set of connections; connection ids are resolved here, at the send boundary."""
    conn_ids: tuple
    event: BaseModel


def _ids(*conn_ids: Optional[str]) -> tuple:
    seen: list[str] = []
    for c in conn_ids:
        if c and c not in seen:
            seen.append(c)
    return tuple(seen)


def to_host(room: RoomStore, event: BaseModel) -> List[Delivery]:
    ids = _ids(room.host_conn_id)
    return [Delivery(ids, event)] if ids else []


def to_player(player: Optional[PlayerStore], event: BaseModel) -> List[Delivery]:
    if player is None or not player.conn_id:
        return []
    return [Delivery((player.conn_id,), event)]


def to_each_player(room: RoomStore, build: Callable[[PlayerStore], Optional[BaseModel]]) -> List[Delivery]:
    """Personalized unicast per connected player."""
    out: List[Delivery] = []
    for p in room.players:
        event = build(p)
        if event is not None:
            out.extend(to_player(p, event))
    return out


def to_audience(room: RoomStore, event: BaseModel, exclude_conn_id: Optional[str] = None) -> List[Delivery]:
    """The room's main view: the TV in shared mode, every phone in per_player mode."""
    if room.display_mode == "per_player":
        ids = _ids(*(p.conn_id for p in room.players))
    else:
        ids = _ids(room.host_conn_id)
    if exclude_conn_id:
        ids = tuple(c for c in ids if c != exclude_conn_id)
    return [Delivery(ids, event)] if ids else []


def to_everyone(room: RoomStore, event: BaseModel, extra_conn_ids: Iterable[str] = ()) -> List[Delivery]:
    ids = _ids(room.host_conn_id, *(p.conn_id for p in room.players), *extra_conn_ids)
    return [Delivery(ids, event)] if ids else []
