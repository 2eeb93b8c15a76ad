from __future__ import annotations

from typing import List, Tuple

from trashtalk.domain.common.fanout import Delivery
from trashtalk.domain.common.validation import is_player
from trashtalk.domain.game import engine, views
from trashtalk.store.sessions import ConnContext
from trashtalk.transport.protocols import InSubmitCards, OutCardSubmitted, OutgoingEvent

Result = Tuple[List[OutgoingEvent], List[Delivery]]


async def handle_submit_cards(*, app, ctx: ConnContext, msg: InSubmitCards) -> Result:
    repo = app.state.repo

    room = repo.get(ctx.room_code)
    if room is None or not is_player(ctx, room):
        return [], []

    played = engine.submit_cards(room, ctx.pid, msg.indices)
    if played is None:
        return [], []
    repo.touch(room.code)

    player = room.find_player(ctx.pid)
    ack = OutCardSubmitted(cards=played, hand=list(player.hand))
    deliveries = views.player_submitted(room, player, engine.submitted_count(room))

    # Last submission flips straight into reveal
    if engine.all_submitted(room):
        engine.start_reveal(room)
        deliveries += views.reveal_started(room)

    return [ack], deliveries
