from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import List, Optional, Sequence

from trashtalk.content.loader import GameContent
from trashtalk.domain.common.fsm import can_transition_to
from trashtalk.domain.common.types import RoomState
from trashtalk.domain.common.validation import current_judge
from trashtalk.domain.game.decks import build_decks, deal_up_to, draw_prompt
from trashtalk.store.models import PlayerStore, RevealItem, RoomStore
from trashtalk.util.shuffle import fisher_yates

logger = logging.getLogger(__name__)

MIN_ACTIVE_PLAYERS = 2


class IllegalTransition(RuntimeError):
    pass


@dataclass
class Revealed:
    cards: List[str]
    index: int
    is_last: bool


@dataclass
class RoundWin:
    winner_pid: str
    winner: Optional[PlayerStore]  # None if they left mid-reveal
    cards: List[str]
    points: int


@dataclass
class Departure:
    player: PlayerStore
    was_judge: bool
    reveal_started: bool = False
    game_ended: bool = False


def _move(room: RoomStore, target: RoomState) -> None:
    if not can_transition_to(room.state, target):
        raise IllegalTransition(f"{room.code}: {room.state} -> {target}")
    room.state = target


# ----------------------------
# Playing
# ----------------------------
def start_round(room: RoomStore, content: GameContent, rng: Optional[random.Random] = None) -> bool:
    """
    Enter Playing: rotate the judge, draw a prompt, top up every hand.
    """
    if room.state not in ("lobby", "winner") or len(room.players) < MIN_ACTIVE_PLAYERS:
        return False

    _move(room, "playing")
    room.round_no += 1
    room.submissions = {}
    room.shuffled_submissions = []
    room.reveal_cursor = 0

    cfg = content.schedule.round_config(room.round_no)
    room.round_config = cfg

    # Slot-based rotation: whoever holds the slot now is the judge.
    room.judge_index = (room.judge_index + 1) % len(room.players)
    judge = room.players[room.judge_index]

    room.current_prompt = draw_prompt(room, cfg.cards_needed, rng)

    target = content.rules.target_hand_size(cfg.cards_needed)
    for p in room.players:
        deal_up_to(room, p, target, rng)

    logger.info(
        "Round %d in %s (%d cards, %d pts) | Judge: %s",
        room.round_no, room.code, cfg.cards_needed, cfg.points, judge.name,
    )
    return True


def submit_cards(room: RoomStore, pid: Optional[str], indices: Sequence[int]) -> Optional[List[str]]:
    """
    Play cards from a hand. Returns the played cards, or None when the
    submission is rejected (no state change in that case).
    """
    if room.state != "playing" or room.round_config is None:
        return None

    player = room.find_player(pid)
    judge = current_judge(room)
    if player is None or judge is None or judge.pid == player.pid:
        return None
    if player.pid in room.submissions:
        return None

    wanted = room.round_config.cards_needed
    picked = list(indices)
    if len(picked) != wanted or len(set(picked)) != wanted:
        return None
    if any(isinstance(i, bool) or not isinstance(i, int) or i < 0 or i >= len(player.hand) for i in picked):
        return None

    played = [player.hand[i] for i in picked]
    for i in sorted(picked, reverse=True):
        player.hand.pop(i)
    room.submissions[player.pid] = played
    return played


def all_submitted(room: RoomStore) -> bool:
    if not room.players:
        return False
    return all(
        p.pid in room.submissions
        for i, p in enumerate(room.players)
        if i != room.judge_index
    )


def submitted_count(room: RoomStore) -> int:
    return sum(1 for p in room.players if p.pid in room.submissions)


# ----------------------------
# Reveal
# ----------------------------
def start_reveal(room: RoomStore, rng: Optional[random.Random] = None) -> None:
    _move(room, "reveal")
    room.reveal_cursor = 0
    items = [RevealItem(pid=p.pid, cards=list(room.submissions[p.pid]))
             for p in room.players if p.pid in room.submissions]
    room.shuffled_submissions = fisher_yates(items, rng)


def reveal_next(room: RoomStore) -> Optional[Revealed]:
    if room.state != "reveal":
        return None
    total = len(room.shuffled_submissions)
    if room.reveal_cursor >= total:
        return None

    idx = room.reveal_cursor
    item = room.shuffled_submissions[idx]
    room.reveal_cursor += 1
    return Revealed(cards=list(item.cards), index=idx, is_last=idx == total - 1)


def pick_winner(
    room: RoomStore,
    pid: Optional[str],
    index: int,
    *,
    require_full_reveal: bool = True,
) -> Optional[RoundWin]:
    """
    `index` is a position in reveal order, never in submission order.
    """
    if room.state != "reveal" or room.round_config is None:
        return None
    judge = current_judge(room)
    if judge is None or judge.pid != pid:
        return None
    if isinstance(index, bool) or not isinstance(index, int):
        return None
    if index < 0 or index >= len(room.shuffled_submissions):
        return None
    if require_full_reveal and room.reveal_cursor < len(room.shuffled_submissions):
        return None

    item = room.shuffled_submissions[index]
    if item.pid == judge.pid:
        return None
    winner = room.find_player(item.pid)
    points = room.round_config.points
    if winner is not None:
        winner.score += points

    _move(room, "winner")
    logger.info(
        "%s won round %d in %s (+%d pts)",
        winner.name if winner else "A departed player", room.round_no, room.code, points,
    )
    return RoundWin(winner_pid=item.pid, winner=winner, cards=list(item.cards), points=points)


# ----------------------------
# Round end / game end
# ----------------------------
def next_round(room: RoomStore, content: GameContent, rng: Optional[random.Random] = None) -> Optional[RoomState]:
    """
    From RoundWinner: start the next round, or end the game after the last one.
    Returns the new state, or None if the room is not between rounds.
    """
    if room.state != "winner":
        return None
    if room.round_no >= room.total_rounds or len(room.players) < MIN_ACTIVE_PLAYERS:
        end_game(room)
        return "ended"
    start_round(room, content, rng)
    return "playing"


def leaderboard(room: RoomStore) -> List[PlayerStore]:
    # sorted() is stable: ties keep join order
    return sorted(room.players, key=lambda p: -p.score)


def end_game(room: RoomStore) -> List[PlayerStore]:
    _move(room, "ended")
    board = leaderboard(room)
    if board:
        logger.info("Game %s ended | Winner: %s with %d pts", room.code, board[0].name, board[0].score)
    return board


def play_again(room: RoomStore, content: GameContent, rng: Optional[random.Random] = None) -> bool:
    """Back to Lobby with fresh decks; players and session tokens are kept."""
    if room.state != "ended":
        return False

    decks = build_decks(room.selected_packs, content.packs, rng)
    _move(room, "lobby")
    room.round_no = 0
    room.judge_index = -1
    room.decks = decks
    room.original_prompts = list(decks.prompts)
    room.original_responses = list(decks.responses)
    room.round_config = None
    room.current_prompt = None
    room.submissions = {}
    room.shuffled_submissions = []
    room.reveal_cursor = 0
    for p in room.players:
        p.score = 0
        p.hand = []
    return True


# ----------------------------
# Departures
# ----------------------------
def remove_player(room: RoomStore, pid: str, rng: Optional[random.Random] = None) -> Optional[Departure]:
    """
    Take a player out mid-game and keep the round progressing:
    - the judge slot passes on and the new judge's own submission is withdrawn;
      in Reveal the remaining cards are reshuffled and revealed again from the start
    - Reveal starts if everyone left has already submitted
    - fewer than two players ends the game
    """
    judge_before = current_judge(room)
    dropped = room.drop_player(pid)
    if dropped is None:
        return None
    _, player = dropped
    was_judge = judge_before is not None and judge_before.pid == pid
    out = Departure(player=player, was_judge=was_judge)

    if room.state not in ("playing", "reveal") or not room.players:
        return out

    if len(room.players) < MIN_ACTIVE_PLAYERS:
        end_game(room)
        out.game_ended = True
        return out

    if room.state == "playing":
        if was_judge:
            new_judge = current_judge(room)
            withdrawn = room.submissions.pop(new_judge.pid, None) if new_judge else None
            if withdrawn:
                new_judge.hand.extend(withdrawn)
        if all_submitted(room):
            start_reveal(room, rng)
            out.reveal_started = True
    elif was_judge:
        _withdraw_from_reveal(room, rng)
        if not room.shuffled_submissions:
            end_game(room)
            out.game_ended = True
        else:
            out.reveal_started = True
    return out


def _withdraw_from_reveal(room: RoomStore, rng: Optional[random.Random] = None) -> None:
    """
    The inherited judge takes their cards back and the reveal restarts
    from the first card, so reveal positions stay in step with the clients.
    """
    new_judge = current_judge(room)
    if new_judge is None:
        return
    withdrawn = room.submissions.pop(new_judge.pid, None)
    if withdrawn:
        new_judge.hand.extend(withdrawn)
    items = [i for i in room.shuffled_submissions if i.pid != new_judge.pid]
    room.shuffled_submissions = fisher_yates(items, rng)
    room.reveal_cursor = 0
