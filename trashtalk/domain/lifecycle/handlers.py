# trashtalk/domain/lifecycle/handlers.py
from __future__ import annotations

import logging
import random
import secrets
import string
import uuid
from typing import List, Tuple

from trashtalk.domain.common.fanout import Delivery, to_audience, to_everyone
from trashtalk.domain.common.validation import (
    current_judge,
    is_host,
    is_valid_room_code,
    name_taken,
    normalize_room_code,
    sanitize_name,
)
from trashtalk.domain.game import engine, views
from trashtalk.domain.game.decks import build_decks
from trashtalk.store.models import PlayerStore, RoomStore
from trashtalk.store.sessions import ConnContext
from trashtalk.transport.protocols import (
    InCreateGame,
    InJoinGame,
    InLeaveGame,
    InRejoinGame,
    OutError,
    OutGameCreated,
    OutGameEnded,
    OutgoingEvent,
    OutJoinedSuccess,
    OutPlayerDisconnected,
    OutPlayerRejoined,
    OutRejoinFailed,
    OutRejoinSuccess,
)
from trashtalk.util.timeutil import now_ts

logger = logging.getLogger(__name__)

# Returns: (to_sender, deliveries)
Result = Tuple[List[OutgoingEvent], List[Delivery]]

AVATARS = [
    "🍺", "🎉", "💀", "🔥", "😈", "🤡", "👻", "🍕", "🌮", "🎯",
    "💩", "🦄", "🐸", "🌶️", "🎪", "🚀", "👽", "🤠", "🧠", "🦖",
]


def _gen_room_code(words: List[str], n: int = 4) -> str:
    usable = [w.upper() for w in words if is_valid_room_code(w)]
    if usable and random.random() > 0.5:
        return random.choice(usable)
    alphabet = string.ascii_uppercase + string.digits
    return "".join(random.choice(alphabet) for _ in range(n))


def _new_player(name: str, conn_id: str) -> PlayerStore:
    return PlayerStore(
        pid=uuid.uuid4().hex[:10],
        conn_id=conn_id,
        name=name,
        avatar=random.choice(AVATARS),
        session_token=secrets.token_urlsafe(16),
        joined_at=now_ts(),
    )


def _already_seated(app, ctx: ConnContext) -> bool:
    return ctx.room_code is not None and app.state.repo.exists(ctx.room_code)


# -------------------------
# Teardown / timer hooks
# -------------------------

def teardown_room(app, room: RoomStore, reason: str) -> List[Delivery]:
    """
    End the room for everyone. Deliveries are resolved before the room is dropped.
    """
    deliveries = to_everyone(room, OutGameEnded(reason=reason))
    app.state.repo.delete(room.code)
    app.state.sessions.detach_room(room.code)
    logger.info("Game %s ended - %s", room.code, reason)
    return deliveries


def room_expired_hook(app):
    def _hook(room: RoomStore) -> List[Delivery]:
        deliveries = to_everyone(room, OutGameEnded(reason="Game expired due to inactivity"))
        app.state.sessions.detach_room(room.code)
        return deliveries
    return _hook


def grace_expired_hook(app):
    def _hook(room: RoomStore, pid: str) -> List[Delivery]:
        dep = engine.remove_player(room, pid)
        if dep is None:
            return []
        return views.departure(room, dep)
    return _hook


# -------------------------
# Handlers
# -------------------------

async def handle_create_game(*, app, ctx: ConnContext, msg: InCreateGame) -> Result:
    repo = app.state.repo
    content = app.state.content

    if _already_seated(app, ctx):
        return [OutError(code="ALREADY_IN_ROOM", message="Leave your current game first")], []

    host_name = ""
    if msg.display_mode == "per_player":
        host_name = sanitize_name(msg.host_name)
        if not host_name:
            return [OutError(code="INVALID_NAME", message="Enter a valid name!")], []

    selected_packs = list(msg.packs or content.rules.default_packs)
    decks = build_decks(selected_packs, content.packs)
    if not decks.prompts or not decks.responses:
        return [OutError(code="NO_CARDS", message="Pick at least one pack with cards!")], []

    code = _gen_room_code(content.rules.room_code_words)
    while repo.exists(code):
        code = _gen_room_code(content.rules.room_code_words)

    ts = now_ts()
    room = RoomStore(
        code=code,
        display_mode=msg.display_mode,
        host_conn_id=ctx.cid,
        total_rounds=content.schedule.total_rounds,
        decks=decks,
        original_prompts=list(decks.prompts),
        original_responses=list(decks.responses),
        selected_packs=selected_packs,
        created_at=ts,
        last_activity=ts,
    )

    host = None
    if msg.display_mode == "per_player":
        host = _new_player(host_name, ctx.cid)
        room.players.append(host)
        room.host_pid = host.pid

    repo.create(code, room)
    ctx.attach(
        code,
        pid=host.pid if host else None,
        is_host=True,
        session_token=host.session_token if host else None,
    )

    logger.info("Game created: %s | Packs: %s | Mode: %s", code, ", ".join(selected_packs), msg.display_mode)
    return [
        OutGameCreated(
            room_code=code,
            display_mode=msg.display_mode,
            host_name=host.name if host else None,
            host_avatar=host.avatar if host else None,
            pid=host.pid if host else None,
            packs=content.pack_icons(selected_packs),
            selected_packs=selected_packs,
            session_token=host.session_token if host else None,
        )
    ], []


async def handle_join_game(*, app, ctx: ConnContext, msg: InJoinGame) -> Result:
    repo = app.state.repo
    content = app.state.content

    name = sanitize_name(msg.player_name)
    if not name:
        return [OutError(code="INVALID_NAME", message="Enter a valid name!")], []

    code = normalize_room_code(msg.room_code)
    if not is_valid_room_code(code):
        return [OutError(code="INVALID_ROOM_CODE", message="Invalid room code!")], []

    if _already_seated(app, ctx):
        return [OutError(code="ALREADY_IN_ROOM", message="Leave your current game first")], []

    room = repo.get(code)
    if room is None:
        return [OutError(code="ROOM_NOT_FOUND", message="Room not found! Check the code.")], []
    if room.state != "lobby":
        return [OutError(code="GAME_IN_PROGRESS", message="Game already in progress!")], []
    if len(room.players) >= content.rules.max_players:
        return [OutError(code="ROOM_FULL", message="Room is full!")], []
    if name_taken(room, name):
        return [OutError(code="NAME_TAKEN", message="Name already taken!")], []

    player = _new_player(name, ctx.cid)
    room.players.append(player)
    repo.touch(code)
    ctx.attach(code, pid=player.pid, session_token=player.session_token)

    logger.info("%s joined %s (%d players)", name, code, len(room.players))
    joined = OutJoinedSuccess(
        room_code=code,
        pid=player.pid,
        player_name=name,
        avatar=player.avatar,
        packs=content.pack_icons(room.selected_packs),
        session_token=player.session_token,
    )
    return [joined], views.player_joined(room, player)


async def handle_leave_game(*, app, ctx: ConnContext, msg: InLeaveGame) -> Result:
    room = app.state.repo.get(ctx.room_code)
    if room is None:
        ctx.detach()
        return [], []

    if is_host(ctx, room):
        return [], teardown_room(app, room, "Host left the game")

    deliveries: List[Delivery] = []
    if ctx.pid:
        dep = engine.remove_player(room, ctx.pid)
        if dep is not None:
            logger.info("%s left %s", dep.player.name, room.code)
            app.state.repo.touch(room.code)
            deliveries = views.departure(room, dep)
    ctx.detach()
    return [], deliveries


async def handle_rejoin_game(*, app, ctx: ConnContext, msg: InRejoinGame) -> Result:
    repo = app.state.repo
    content = app.state.content

    token = msg.session_token.strip()
    if not token:
        return [OutRejoinFailed(reason="No session token")], []
    if _already_seated(app, ctx):
        return [OutError(code="ALREADY_IN_ROOM", message="Leave your current game first")], []

    result = repo.reconnect(ctx.cid, token)
    if result is None:
        return [OutRejoinFailed(reason="Session expired or game ended")], []

    room, player = result
    ctx.attach(room.code, pid=player.pid, is_host=room.host_pid == player.pid, session_token=token)

    judge = current_judge(room)
    snapshot = OutRejoinSuccess(
        room_code=room.code,
        pid=player.pid,
        player_name=player.name,
        avatar=player.avatar,
        packs=content.pack_icons(room.selected_packs),
        display_mode=room.display_mode,
        is_host=is_host(ctx, room),
        game_state=room.state,
        current_round=room.round_no,
        max_rounds=room.total_rounds,
        prompt=room.current_prompt,
        hand=list(player.hand),
        is_judge=judge is not None and judge.pid == player.pid,
        has_submitted=player.pid in room.submissions,
        cards_needed=room.round_config.cards_needed if room.round_config else 1,
        score=player.score,
    )
    if room.state == "reveal":
        shown = room.shuffled_submissions[: room.reveal_cursor]
        snapshot.revealed_cards = [list(item.cards) for item in shown]
        snapshot.submission_count = len(room.shuffled_submissions)

    logger.info("%s rejoined %s", player.name, room.code)
    return [snapshot], to_audience(room, OutPlayerRejoined(player_name=player.name), exclude_conn_id=ctx.cid)


async def handle_disconnect(*, app, ctx: ConnContext) -> List[Delivery]:
    """
    Called by transport when a connection drops.
    Host loss ends the room; players with a token get a grace period.
    """
    repo = app.state.repo
    room = repo.get(ctx.room_code)
    if room is None:
        return []

    if is_host(ctx, room):
        return teardown_room(app, room, "Host disconnected")

    player = room.find_player(ctx.pid)
    if player is None or player.conn_id != ctx.cid:
        return []

    if ctx.session_token and repo.mark_disconnected(room.code, player.pid, ctx.session_token):
        logger.info("%s disconnected from %s, can rejoin within %ss", player.name, room.code, repo.grace_sec)
        return to_audience(room, OutPlayerDisconnected(player_name=player.name))

    dep = engine.remove_player(room, player.pid)
    return views.departure(room, dep) if dep else []
