from __future__ import annotations

from typing import List, Optional

from trashtalk.domain.common.fanout import (
    Delivery,
    to_audience,
    to_each_player,
    to_host,
    to_player,
)
from trashtalk.domain.common.validation import current_judge
from trashtalk.domain.game.engine import Departure, Revealed, RoundWin, leaderboard
from trashtalk.store.models import PlayerStore, RoomStore
from trashtalk.transport.protocols import (
    OutBackToLobby,
    OutCardRevealed,
    OutGameOver,
    OutJudgeReveal,
    OutPlayerJoined,
    OutPlayerLeft,
    OutPlayerSubmitted,
    OutResetToLobby,
    OutRoundStartPerPlayer,
    OutRoundStartShared,
    OutRoundWinner,
    OutStartRevealPerPlayer,
    OutStartRevealShared,
    OutWatchReveal,
    OutYourTurn,
    PlayerSummary,
    ScoreLine,
)


def _summaries(room: RoomStore) -> List[PlayerSummary]:
    return [PlayerSummary(name=p.name, avatar=p.avatar) for p in room.players]


def _scores(players: List[PlayerStore]) -> List[ScoreLine]:
    return [ScoreLine(name=p.name, avatar=p.avatar, score=p.score) for p in players]


def _is_judge(room: RoomStore, player: PlayerStore) -> bool:
    judge = current_judge(room)
    return judge is not None and judge.pid == player.pid


# ----------------------------
# Lobby
# ----------------------------
def player_joined(room: RoomStore, player: PlayerStore) -> List[Delivery]:
    ev = OutPlayerJoined(
        player_name=player.name,
        avatar=player.avatar,
        player_count=len(room.players),
        players=_summaries(room) if room.display_mode == "per_player" else None,
    )
    return to_audience(room, ev)


def player_left(room: RoomStore, name: str) -> List[Delivery]:
    return to_audience(room, OutPlayerLeft(player_name=name, player_count=len(room.players)))


def back_to_lobby(room: RoomStore) -> List[Delivery]:
    players = _summaries(room)
    if room.display_mode == "per_player":
        return to_each_player(
            room, lambda p: OutBackToLobby(players=players, is_host=p.pid == room.host_pid)
        )
    return to_each_player(room, lambda p: OutResetToLobby()) + to_host(
        room, OutBackToLobby(players=players, is_host=True)
    )


# ----------------------------
# Playing
# ----------------------------
def _round_fields(room: RoomStore) -> dict:
    judge = current_judge(room)
    cfg = room.round_config
    return dict(
        round=room.round_no,
        max_rounds=room.total_rounds,
        prompt=room.current_prompt or "",
        judge_name=judge.name if judge else "",
        judge_avatar=judge.avatar if judge else "",
        cards_needed=cfg.cards_needed if cfg else 1,
        point_value=cfg.points if cfg else 1,
        round_label=cfg.label if cfg else "",
    )


def round_started(room: RoomStore) -> List[Delivery]:
    fields = _round_fields(room)

    if room.display_mode == "per_player":
        def build(p: PlayerStore) -> OutRoundStartPerPlayer:
            judge = _is_judge(room, p)
            return OutRoundStartPerPlayer(
                **fields,
                is_judge=judge,
                hand=[] if judge else list(p.hand),
                player_count=len(room.players),
            )
        return to_each_player(room, build)

    def build_private(p: PlayerStore) -> OutYourTurn:
        judge = _is_judge(room, p)
        return OutYourTurn(**fields, is_judge=judge, hand=[] if judge else list(p.hand))

    return to_host(room, OutRoundStartShared(**fields)) + to_each_player(room, build_private)


def player_submitted(room: RoomStore, player: PlayerStore, submitted: int) -> List[Delivery]:
    ev = OutPlayerSubmitted(
        player_name=player.name,
        player_avatar=player.avatar,
        submitted_count=submitted,
        total_players=max(len(room.players) - 1, 0),
    )
    return to_audience(room, ev)


# ----------------------------
# Reveal
# ----------------------------
def reveal_started(room: RoomStore) -> List[Delivery]:
    cfg = room.round_config
    fields = dict(
        prompt=room.current_prompt or "",
        submission_count=len(room.shuffled_submissions),
        cards_needed=cfg.cards_needed if cfg else 1,
        point_value=cfg.points if cfg else 1,
    )

    if room.display_mode == "per_player":
        return to_each_player(
            room, lambda p: OutStartRevealPerPlayer(**fields, is_judge=_is_judge(room, p))
        )

    def build(p: PlayerStore):
        if _is_judge(room, p):
            return OutJudgeReveal(prompt=fields["prompt"])
        return OutWatchReveal()

    return to_host(room, OutStartRevealShared(**fields)) + to_each_player(room, build)


def card_revealed(room: RoomStore, revealed: Revealed) -> List[Delivery]:
    fields = dict(cards=revealed.cards, index=revealed.index, is_last=revealed.is_last)

    if room.display_mode == "per_player":
        return to_each_player(room, lambda p: OutCardRevealed(**fields, is_judge=_is_judge(room, p)))

    return to_host(room, OutCardRevealed(**fields)) + to_player(
        current_judge(room), OutCardRevealed(**fields, is_judge=True)
    )


# ----------------------------
# Winner / game over
# ----------------------------
def round_won(room: RoomStore, win: RoundWin) -> List[Delivery]:
    fields = dict(
        winner_name=win.winner.name if win.winner else "Unknown",
        winner_avatar=win.winner.avatar if win.winner else "❓",
        winning_cards=win.cards,
        prompt=room.current_prompt or "",
        points_won=win.points,
        scores=_scores(room.players),
    )

    def build(p: PlayerStore) -> OutRoundWinner:
        return OutRoundWinner(**fields, is_you=p.pid == win.winner_pid, is_host=p.pid == room.host_pid)

    if room.display_mode == "per_player":
        return to_each_player(room, build)
    return to_host(room, OutRoundWinner(**fields, is_host=True)) + to_each_player(room, build)


def game_over(room: RoomStore, board: Optional[List[PlayerStore]] = None) -> List[Delivery]:
    board = leaderboard(room) if board is None else board
    lines = _scores(board)
    top = lines[0] if lines else None

    def build(p: PlayerStore) -> OutGameOver:
        return OutGameOver(leaderboard=lines, winner=top, is_host=p.pid == room.host_pid)

    if room.display_mode == "per_player":
        return to_each_player(room, build)
    return to_host(room, OutGameOver(leaderboard=lines, winner=top, is_host=True)) + to_each_player(room, build)


def departure(room: RoomStore, dep: Departure) -> List[Delivery]:
    out = player_left(room, dep.player.name)
    if dep.game_ended:
        out += game_over(room)
    elif dep.reveal_started:
        out += reveal_started(room)
    return out
