from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, Field, field_validator

from trashtalk.domain.common.types import DisplayMode, RoomState


# =========================
# Incoming (Client -> Server)
# =========================

class InBase(BaseModel):
    type: str


# ---- Lifecycle ----

class InCreateGame(InBase):
    type: Literal["create_game"] = "create_game"
    display_mode: DisplayMode = "shared"
    packs: Optional[List[str]] = None
    host_name: Optional[str] = Field(default=None, max_length=64)


class InJoinGame(InBase):
    type: Literal["join_game"] = "join_game"
    room_code: str = Field(max_length=16)
    player_name: str = Field(max_length=64)


class InLeaveGame(InBase):
    type: Literal["leave_game"] = "leave_game"


class InRejoinGame(InBase):
    type: Literal["rejoin_game"] = "rejoin_game"
    session_token: str = Field(default="", max_length=128)


# ---- Round flow ----

class InStartGame(InBase):
    type: Literal["start_game"] = "start_game"


class InSubmitCards(InBase):
    type: Literal["submit_cards"] = "submit_cards"
    # Positions in the sender's hand; a bare int is accepted for 1-card rounds.
    indices: List[int] = Field(max_length=3)

    @field_validator("indices", mode="before")
    @classmethod
    def _wrap_single(cls, v: Any) -> Any:
        if isinstance(v, int) and not isinstance(v, bool):
            return [v]
        return v


class InRevealNext(InBase):
    type: Literal["reveal_next"] = "reveal_next"


class InPickWinner(InBase):
    type: Literal["pick_winner"] = "pick_winner"
    # Position in reveal order
    index: int


class InNextRound(InBase):
    type: Literal["next_round"] = "next_round"


class InPlayAgain(InBase):
    type: Literal["play_again"] = "play_again"


IncomingMessage = Union[
    InCreateGame,
    InJoinGame,
    InLeaveGame,
    InRejoinGame,
    InStartGame,
    InSubmitCards,
    InRevealNext,
    InPickWinner,
    InNextRound,
    InPlayAgain,
]


# =========================
# Outgoing (Server -> Client)
# =========================

class OutBase(BaseModel):
    type: str


class PlayerSummary(BaseModel):
    name: str
    avatar: str


class ScoreLine(BaseModel):
    name: str
    avatar: str
    score: int


class OutHello(OutBase):
    type: Literal["hello"] = "hello"
    cid: str


class OutError(OutBase):
    type: Literal["error"] = "error"
    code: str
    message: str


# ---- Lifecycle ----

class OutGameCreated(OutBase):
    type: Literal["game_created"] = "game_created"
    room_code: str
    display_mode: DisplayMode
    host_name: Optional[str] = None
    host_avatar: Optional[str] = None
    pid: Optional[str] = None
    packs: str
    selected_packs: List[str]
    session_token: Optional[str] = None


class OutJoinedSuccess(OutBase):
    type: Literal["joined_success"] = "joined_success"
    room_code: str
    pid: str
    player_name: str
    avatar: str
    packs: str
    session_token: str


class OutPlayerJoined(OutBase):
    type: Literal["player_joined"] = "player_joined"
    player_name: str
    avatar: str
    player_count: int
    # per_player mode: everyone renders the lobby list
    players: Optional[List[PlayerSummary]] = None


class OutPlayerLeft(OutBase):
    type: Literal["player_left"] = "player_left"
    player_name: str
    player_count: int


class OutPlayerDisconnected(OutBase):
    type: Literal["player_disconnected"] = "player_disconnected"
    player_name: str


class OutPlayerRejoined(OutBase):
    type: Literal["player_rejoined"] = "player_rejoined"
    player_name: str


class OutRejoinSuccess(OutBase):
    type: Literal["rejoin_success"] = "rejoin_success"
    room_code: str
    pid: str
    player_name: str
    avatar: str
    packs: str
    display_mode: DisplayMode
    is_host: bool
    game_state: RoomState
    current_round: int
    max_rounds: int
    prompt: Optional[str] = None
    hand: List[str]
    is_judge: bool
    has_submitted: bool
    cards_needed: int
    score: int
    # Reveal only: cards already shown, in reveal order
    revealed_cards: List[List[str]] = Field(default_factory=list)
    submission_count: int = 0


class OutRejoinFailed(OutBase):
    type: Literal["rejoin_failed"] = "rejoin_failed"
    reason: str


class OutGameEnded(OutBase):
    type: Literal["game_ended"] = "game_ended"
    reason: str


# ---- Round flow ----

class RoundData(OutBase):
    round: int
    max_rounds: int
    prompt: str
    judge_name: str
    judge_avatar: str
    cards_needed: int
    point_value: int
    round_label: str = ""


class OutRoundStartShared(RoundData):
    """TV view: shared data only, no hands."""
    type: Literal["round_start"] = "round_start"
    display_mode: Literal["shared"] = "shared"


class OutYourTurn(RoundData):
    """Private to one player in shared mode."""
    type: Literal["your_turn"] = "your_turn"
    is_judge: bool
    hand: List[str]


class OutRoundStartPerPlayer(RoundData):
    type: Literal["round_start"] = "round_start"
    display_mode: Literal["per_player"] = "per_player"
    is_judge: bool
    hand: List[str]
    player_count: int


class OutGameStarting(OutBase):
    type: Literal["game_starting"] = "game_starting"


class OutCardSubmitted(OutBase):
    type: Literal["card_submitted"] = "card_submitted"
    cards: List[str]
    hand: List[str]


class OutPlayerSubmitted(OutBase):
    type: Literal["player_submitted"] = "player_submitted"
    player_name: str
    player_avatar: str
    submitted_count: int
    total_players: int


class OutStartRevealShared(OutBase):
    type: Literal["start_reveal"] = "start_reveal"
    display_mode: Literal["shared"] = "shared"
    prompt: str
    submission_count: int
    cards_needed: int
    point_value: int


class OutStartRevealPerPlayer(OutBase):
    type: Literal["start_reveal"] = "start_reveal"
    display_mode: Literal["per_player"] = "per_player"
    prompt: str
    submission_count: int
    cards_needed: int
    point_value: int
    is_judge: bool


class OutJudgeReveal(OutBase):
    type: Literal["judge_reveal"] = "judge_reveal"
    prompt: str


class OutWatchReveal(OutBase):
    type: Literal["watch_reveal"] = "watch_reveal"


class OutCardRevealed(OutBase):
    type: Literal["card_revealed"] = "card_revealed"
    cards: List[str]
    index: int
    is_last: bool
    is_judge: bool = False


class OutRoundWinner(OutBase):
    type: Literal["round_winner"] = "round_winner"
    winner_name: str
    winner_avatar: str
    winning_cards: List[str]
    prompt: str
    points_won: int
    scores: List[ScoreLine]
    is_you: bool = False
    is_host: bool = False


class OutGameOver(OutBase):
    type: Literal["game_over"] = "game_over"
    leaderboard: List[ScoreLine]
    winner: Optional[ScoreLine] = None
    is_host: bool = False


class OutBackToLobby(OutBase):
    type: Literal["back_to_lobby"] = "back_to_lobby"
    players: List[PlayerSummary]
    is_host: bool = False


class OutResetToLobby(OutBase):
    type: Literal["reset_to_lobby"] = "reset_to_lobby"


OutgoingEvent = Union[
    OutHello,
    OutError,
    OutGameCreated,
    OutJoinedSuccess,
    OutPlayerJoined,
    OutPlayerLeft,
    OutPlayerDisconnected,
    OutPlayerRejoined,
    OutRejoinSuccess,
    OutRejoinFailed,
    OutGameEnded,
    OutRoundStartShared,
    OutYourTurn,
    OutRoundStartPerPlayer,
    OutGameStarting,
    OutCardSubmitted,
    OutPlayerSubmitted,
    OutStartRevealShared,
    OutStartRevealPerPlayer,
    OutJudgeReveal,
    OutWatchReveal,
    OutCardRevealed,
    OutRoundWinner,
    OutGameOver,
    OutBackToLobby,
    OutResetToLobby,
]


# =========================
# Parser helpers
# =========================

_INCOMING_BY_TYPE = {
    "create_game": InCreateGame,
    "join_game": InJoinGame,
    "leave_game": InLeaveGame,
    "rejoin_game": InRejoinGame,
    "start_game": InStartGame,
    "submit_cards": InSubmitCards,
    "reveal_next": InRevealNext,
    "pick_winner": InPickWinner,
    "next_round": InNextRound,
    "play_again": InPlayAgain,
}


def parse_incoming(payload: Dict[str, Any]) -> IncomingMessage:
    """
    Convert raw dict -> validated message model.
    Raises ValidationError (a ValueError) if invalid.
    """
    if not isinstance(payload, dict):
        raise ValueError("Message must be a JSON object")

    t = payload.get("type")
    if not isinstance(t, str):
        raise ValueError("Missing/invalid type")

    cls = _INCOMING_BY_TYPE.get(t)
    if cls is None:
        raise ValueError(f"Unknown message type: {t}")

    return cls.model_validate(payload)
