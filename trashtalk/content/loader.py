from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from pydantic import ValidationError

from trashtalk.content.models import CardPack, CardsFile, GameRules, RoundSchedule

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_DIR = Path(__file__).parent / "data"


class ContentError(RuntimeError):
    """Card packs, rules or round schedule could not be loaded."""


@dataclass(frozen=True)
class GameContent:
    packs: Dict[str, CardPack]
    rules: GameRules
    schedule: RoundSchedule

    def pack_icons(self, pack_ids) -> str:
        return " ".join(self.packs[p].icon if p in self.packs else "📦" for p in pack_ids)


def _read_json(path: Path) -> dict:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise ContentError(f"Failed to read {path.name}: {e}") from e


def load_content(content_dir: Optional[str] = None) -> GameContent:
    base = Path(content_dir) if content_dir else DEFAULT_CONTENT_DIR
    try:
        cards = CardsFile.model_validate(_read_json(base / "cards.json"))
        rules = GameRules.model_validate(_read_json(base / "rules.json"))
        schedule = RoundSchedule.model_validate(_read_json(base / "rounds.json"))
    except ValidationError as e:
        raise ContentError(f"Invalid game content in {base}: {e}") from e

    unknown = [p for p in rules.default_packs if p not in cards.packs]
    if unknown:
        raise ContentError(f"default_packs refers to unknown packs: {', '.join(unknown)}")

    logger.info("Loaded %d packs from %s: %s", len(cards.packs), base, ", ".join(cards.packs))
    return GameContent(packs=cards.packs, rules=rules, schedule=schedule)
