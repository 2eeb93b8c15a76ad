from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

from trashtalk.content.models import RoundConfig
from trashtalk.domain.common.types import DisplayMode, RoomState


class PlayerStore(BaseModel):
    pid: str                            # stable identity, survives reconnects
    conn_id: Optional[str] = None       # None while disconnected
    name: str
    avatar: str
    score: int = 0
    hand: List[str] = Field(default_factory=list)
    session_token: Optional[str] = None
    disconnected: bool = False
    disconnected_at: Optional[int] = None
    joined_at: int


class Decks(BaseModel):
    prompts: List[str] = Field(default_factory=list)
    prompts_2: List[str] = Field(default_factory=list)
    prompts_3: List[str] = Field(default_factory=list)
    responses: List[str] = Field(default_factory=list)


class RevealItem(BaseModel):
    pid: str
    cards: List[str]


class RoomStore(BaseModel):
    code: str
    display_mode: DisplayMode = "shared"
    host_conn_id: Optional[str] = None
    host_pid: Optional[str] = None      # per_player mode: the host also plays
    state: RoomState = "lobby"
    players: List[PlayerStore] = Field(default_factory=list)
    judge_index: int = -1
    round_no: int = 0
    total_rounds: int
    round_config: Optional[RoundConfig] = None
    current_prompt: Optional[str] = None
    decks: Decks = Field(default_factory=Decks)
    original_prompts: List[str] = Field(default_factory=list)
    original_responses: List[str] = Field(default_factory=list)
    submissions: Dict[str, List[str]] = Field(default_factory=dict)
    shuffled_submissions: List[RevealItem] = Field(default_factory=list)
    reveal_cursor: int = 0
    selected_packs: List[str] = Field(default_factory=list)
    created_at: int
    last_activity: int

    def find_player(self, pid: Optional[str]) -> Optional[PlayerStore]:
        if pid is None:
            return None
        for p in self.players:
            if p.pid == pid:
                return p
        return None

    def player_by_token(self, token: str) -> Optional[PlayerStore]:
        for p in self.players:
            if p.session_token == token:
                return p
        return None

    def drop_player(self, pid: str) -> Optional[Tuple[int, PlayerStore]]:
        """
        Remove a player and their pending submission.
        Keeps judge_index pointing at the same judge when someone before them
        leaves; when the judge leaves, the slot passes to whoever now occupies it.
        Returns (old_index, player) or None.
        """
        for idx, p in enumerate(self.players):
            if p.pid == pid:
                break
        else:
            return None

        self.players.pop(idx)
        self.submissions.pop(pid, None)

        if not self.players:
            self.judge_index = -1
        elif idx < self.judge_index:
            self.judge_index -= 1
        elif self.judge_index >= len(self.players):
            self.judge_index = 0
        return idx, p
