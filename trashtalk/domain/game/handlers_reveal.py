from __future__ import annotations

from typing import List, Tuple

from trashtalk.domain.common.fanout import Delivery
from trashtalk.domain.common.validation import can_reveal, is_judge
from trashtalk.domain.game import engine, views
from trashtalk.store.sessions import ConnContext
from trashtalk.transport.protocols import InPickWinner, InRevealNext, OutgoingEvent

Result = Tuple[List[OutgoingEvent], List[Delivery]]


async def handle_reveal_next(*, app, ctx: ConnContext, msg: InRevealNext) -> Result:
    repo = app.state.repo

    room = repo.get(ctx.room_code)
    if room is None or not can_reveal(ctx, room):
        return [], []

    revealed = engine.reveal_next(room)
    if revealed is None:
        return [], []
    repo.touch(room.code)
    return [], views.card_revealed(room, revealed)


async def handle_pick_winner(*, app, ctx: ConnContext, msg: InPickWinner) -> Result:
    repo = app.state.repo

    room = repo.get(ctx.room_code)
    if room is None or not is_judge(ctx, room):
        return [], []

    win = engine.pick_winner(
        room,
        ctx.pid,
        msg.index,
        require_full_reveal=app.state.settings.PICK_REQUIRES_FULL_REVEAL,
    )
    if win is None:
        return [], []
    repo.touch(room.code)
    return [], views.round_won(room, win)
