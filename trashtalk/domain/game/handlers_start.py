from __future__ import annotations

import logging
from typing import List, Tuple

from trashtalk.domain.common.fanout import Delivery, to_audience
from trashtalk.domain.common.validation import is_host
from trashtalk.domain.game import engine, views
from trashtalk.store.sessions import ConnContext
from trashtalk.transport.protocols import (
    InNextRound,
    InPlayAgain,
    InStartGame,
    OutError,
    OutGameStarting,
    OutgoingEvent,
)

logger = logging.getLogger(__name__)

Result = Tuple[List[OutgoingEvent], List[Delivery]]


async def handle_start_game(*, app, ctx: ConnContext, msg: InStartGame) -> Result:
    repo = app.state.repo
    content = app.state.content

    room = repo.get(ctx.room_code)
    if room is None or not is_host(ctx, room) or room.state != "lobby":
        return [], []

    need = content.rules.min_players
    if len(room.players) < need:
        return [OutError(code="NOT_ENOUGH_PLAYERS", message=f"Need at least {need} players!")], []

    if not engine.start_round(room, content):
        return [], []
    repo.touch(room.code)

    logger.info("Game started in %s with %d players", room.code, len(room.players))
    deliveries: List[Delivery] = []
    if room.display_mode == "per_player":
        deliveries += to_audience(room, OutGameStarting())
    deliveries += views.round_started(room)
    return [], deliveries


async def handle_next_round(*, app, ctx: ConnContext, msg: InNextRound) -> Result:
    repo = app.state.repo

    room = repo.get(ctx.room_code)
    if room is None or not is_host(ctx, room):
        return [], []

    outcome = engine.next_round(room, app.state.content)
    if outcome is None:
        return [], []
    repo.touch(room.code)

    if outcome == "ended":
        return [], views.game_over(room)
    return [], views.round_started(room)


async def handle_play_again(*, app, ctx: ConnContext, msg: InPlayAgain) -> Result:
    repo = app.state.repo

    room = repo.get(ctx.room_code)
    if room is None or not is_host(ctx, room):
        return [], []

    if not engine.play_again(room, app.state.content):
        return [], []
    repo.touch(room.code)

    logger.info("Room %s back in lobby for another game", room.code)
    return [], views.back_to_lobby(room)
