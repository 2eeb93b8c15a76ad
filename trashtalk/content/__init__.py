from __future__ import annotations

from .loader import ContentError, GameContent, load_content
from .models import CardPack, GameRules, RoundConfig, RoundPhase, RoundSchedule

__all__ = [
    "CardPack",
    "ContentError",
    "GameContent",
    "GameRules",
    "RoundConfig",
    "RoundPhase",
    "RoundSchedule",
    "load_content",
]
