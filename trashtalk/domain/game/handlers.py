# trashtalk/domain/game/handlers.py
from __future__ import annotations

from trashtalk.domain.game.handlers_start import (
    handle_next_round,
    handle_play_again,
    handle_start_game,
)
from trashtalk.domain.game.handlers_submit import handle_submit_cards
from trashtalk.domain.game.handlers_reveal import handle_pick_winner, handle_reveal_next

__all__ = [
    "handle_start_game",
    "handle_submit_cards",
    "handle_reveal_next",
    "handle_pick_winner",
    "handle_next_round",
    "handle_play_again",
]
