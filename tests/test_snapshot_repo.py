import json

import pytest

from trashtalk.store.models import PlayerStore, RevealItem, RoomStore
from trashtalk.store.redis_keys import RK
from trashtalk.store.snapshot_repo import RedisSnapshotRepo


class FakePipeline:
    def __init__(self, r):
        self.r = r
        self.ops = []

    def set(self, key, value, ex=None):
        self.ops.append(("set", key, value, ex))
        return self

    def sadd(self, key, member):
        self.ops.append(("sadd", key, member))
        return self

    def srem(self, key, member):
        self.ops.append(("srem", key, member))
        return self

    def delete(self, key):
        self.ops.append(("delete", key))
        return self

    async def execute(self):
        for op in self.ops:
            name, args = op[0], op[1:]
            await getattr(self.r, name)(*args)
        self.ops = []


class FakeRedis:
    """Only what the snapshot repo touches; values are stored as bytes like a real client."""

    def __init__(self):
        self.kv = {}
        self.ttl = {}
        self.sets = {}

    def pipeline(self):
        return FakePipeline(self)

    async def set(self, key, value, ex=None):
        self.kv[key] = value.encode("utf-8") if isinstance(value, str) else value
        self.ttl[key] = ex

    async def get(self, key):
        return self.kv.get(key)

    async def delete(self, key):
        self.kv.pop(key, None)

    async def sadd(self, key, member):
        self.sets.setdefault(key, set()).add(member.encode("utf-8"))

    async def srem(self, key, member):
        self.sets.get(key, set()).discard(member.encode("utf-8"))

    async def smembers(self, key):
        return set(self.sets.get(key, set()))


def _room(code):
    room = RoomStore(
        code=code,
        host_conn_id="host-conn",
        state="reveal",
        total_rounds=10,
        created_at=1,
        last_activity=2,
        submissions={"p1": ["card"]},
        shuffled_submissions=[RevealItem(pid="p1", cards=["card"])],
        reveal_cursor=1,
    )
    room.players.append(
        PlayerStore(pid="p1", conn_id="conn-1", name="Ann", avatar="x", score=3,
                    hand=["h1"], session_token="tok", joined_at=1)
    )
    return room


def test_snapshot_excludes_runtime_fields():
    data = json.loads(RedisSnapshotRepo.dump_room(_room("ABCD")))
    assert "shuffled_submissions" not in data
    assert "host_conn_id" not in data
    assert "conn_id" not in data["players"][0]
    assert data["players"][0]["session_token"] == "tok"
    assert data["submissions"] == {"p1": ["card"]}


@pytest.mark.asyncio
async def test_save_and_load_rooms():
    r = FakeRedis()
    repo = RedisSnapshotRepo(r, room_ttl_sec=7200)

    assert await repo.save_rooms([_room("ABCD"), _room("WXYZ")]) == 2
    assert r.ttl[RK("ABCD").snapshot()] == 7200
    assert r.sets[RK.index()] == {b"ABCD", b"WXYZ"}

    rooms = await repo.load_rooms()
    assert sorted(rooms) == ["ABCD", "WXYZ"]
    loaded = rooms["ABCD"]
    assert loaded.players[0].hand == ["h1"]
    assert loaded.players[0].score == 3
    assert loaded.players[0].conn_id is None
    assert loaded.host_conn_id is None
    assert loaded.shuffled_submissions == []


@pytest.mark.asyncio
async def test_save_prunes_rooms_gone_from_memory():
    r = FakeRedis()
    repo = RedisSnapshotRepo(r)
    await repo.save_rooms([_room("ABCD"), _room("WXYZ")])
    await repo.save_rooms([_room("WXYZ")])

    assert RK("ABCD").snapshot() not in r.kv
    assert r.sets[RK.index()] == {b"WXYZ"}


@pytest.mark.asyncio
async def test_load_skips_missing_and_corrupt_snapshots():
    r = FakeRedis()
    repo = RedisSnapshotRepo(r)
    await repo.save_rooms([_room("GOOD")])
    await r.sadd(RK.index(), "LOST")
    await r.sadd(RK.index(), "BAD1")
    await r.set(RK("BAD1").snapshot(), "{not json")

    rooms = await repo.load_rooms()
    assert list(rooms) == ["GOOD"]



def test_redis_keys():
    assert RK("ABCD").snapshot() == "room:ABCD:snapshot"
    assert RK.index() == "rooms:index"
