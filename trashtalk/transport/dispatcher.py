# trashtalk/transport/dispatcher.py
from __future__ import annotations

from contextlib import AsyncExitStack
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from trashtalk.domain.common.fanout import Delivery
from trashtalk.domain.common.validation import normalize_room_code
from trashtalk.domain.game.handlers import (
    handle_next_round,
    handle_pick_winner,
    handle_play_again,
    handle_reveal_next,
    handle_start_game,
    handle_submit_cards,
)
from trashtalk.domain.lifecycle.handlers import (
    handle_create_game,
    handle_join_game,
    handle_leave_game,
    handle_rejoin_game,
)
from trashtalk.store.sessions import ConnContext
from trashtalk.transport.protocols import (
    InCreateGame,
    InJoinGame,
    InLeaveGame,
    InNextRound,
    InPickWinner,
    InPlayAgain,
    InRejoinGame,
    InRevealNext,
    InStartGame,
    InSubmitCards,
    IncomingMessage,
    OutError,
    OutgoingEvent,
    parse_incoming,
)

DispatchResult = Tuple[List[Dict[str, Any]], List[Delivery]]
# (to_sender_events as JSON dicts, deliveries to send once the room lock is released)

_HANDLERS = {
    InCreateGame: handle_create_game,
    InJoinGame: handle_join_game,
    InLeaveGame: handle_leave_game,
    InRejoinGame: handle_rejoin_game,
    InStartGame: handle_start_game,
    InSubmitCards: handle_submit_cards,
    InRevealNext: handle_reveal_next,
    InPickWinner: handle_pick_winner,
    InNextRound: handle_next_round,
    InPlayAgain: handle_play_again,
}


def _room_for(app, ctx: ConnContext, msg: IncomingMessage) -> Optional[str]:
    """Room whose lock the intent must hold, if any."""
    if isinstance(msg, InJoinGame):
        code = normalize_room_code(msg.room_code)
        return code if app.state.repo.exists(code) else None
    if isinstance(msg, InRejoinGame):
        return app.state.repo.pending_room_for(msg.session_token.strip())
    return ctx.room_code


async def dispatch_message(*, app, ctx: ConnContext, raw: Any) -> DispatchResult:
    """
    Transport layer calls this.
    - Rate-limits per connection
    - Parses + validates raw JSON
    - Routes to the domain handler under the room's lock
    - Returns (to_sender, deliveries)

    NOTE: This file contains NO Redis key usage and NO game rules.
    """
    if app.state.ratelimiter.is_limited(ctx.cid):
        err = OutError(code="RATE_LIMITED", message="Slow down! Too many requests.").model_dump()
        return [err], []

    try:
        msg = parse_incoming(raw)
    except (ValidationError, ValueError) as e:
        err = OutError(code="BAD_MESSAGE", message=str(e)).model_dump()
        return [err], []

    handler = _HANDLERS[type(msg)]
    room_code = _room_for(app, ctx, msg)

    async with AsyncExitStack() as stack:
        if room_code:
            await stack.enter_async_context(app.state.repo.lock(room_code))
        to_sender, deliveries = await handler(app=app, ctx=ctx, msg=msg)

    return _dump(to_sender), deliveries


def _dump(events: List[OutgoingEvent]) -> List[Dict[str, Any]]:
    """
    Convert pydantic events -> JSON dicts.
    """
    return [e.model_dump() for e in events]
