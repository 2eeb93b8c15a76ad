from __future__ import annotations

from typing import Dict, List

from pydantic import BaseModel, Field


class CardPack(BaseModel):
    name: str
    icon: str = "📦"
    description: str = ""
    prompts: List[str] = Field(default_factory=list)
    prompts_2: List[str] = Field(default_factory=list)
    prompts_3: List[str] = Field(default_factory=list)
    responses: List[str] = Field(default_factory=list)

    def card_count(self) -> int:
        return len(self.prompts) + len(self.responses)


class GameRules(BaseModel):
    hand_size: int = Field(default=7, ge=1)
    extra_cards_per_combo: int = Field(default=1, ge=0)
    min_players: int = Field(default=3, ge=2)
    max_players: int = Field(default=10, ge=2)
    default_packs: List[str] = Field(default_factory=lambda: ["base"])
    room_code_words: List[str] = Field(default_factory=list)

    def target_hand_size(self, cards_needed: int) -> int:
        return self.hand_size + cards_needed * self.extra_cards_per_combo


class RoundConfig(BaseModel):
    """Resolved once per round from the schedule."""
    cards_needed: int = 1
    points: int = 1
    label: str = ""


class RoundPhase(BaseModel):
    rounds: List[int]
    cards_needed: int = Field(default=1, ge=1, le=3)
    points: int = Field(default=1, ge=0)
    label: str = ""


class RoundSchedule(BaseModel):
    total_rounds: int = Field(default=10, ge=1)
    phases: List[RoundPhase] = Field(default_factory=list)

    def round_config(self, round_no: int) -> RoundConfig:
        for phase in self.phases:
            if round_no in phase.rounds:
                return RoundConfig(cards_needed=phase.cards_needed, points=phase.points, label=phase.label)
        return RoundConfig()


class CardsFile(BaseModel):
    packs: Dict[str, CardPack]
