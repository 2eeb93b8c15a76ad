from __future__ import annotations

import logging
import random
from typing import Iterable, Mapping, Optional

from trashtalk.content.models import CardPack
from trashtalk.store.models import Decks, PlayerStore, RoomStore
from trashtalk.util.shuffle import fisher_yates

logger = logging.getLogger(__name__)

BLANK = "______"
BLANK_JOINER = " + "


def build_decks(
    selected_packs: Iterable[str],
    packs: Mapping[str, CardPack],
    rng: Optional[random.Random] = None,
) -> Decks:
    """
    Concatenate the selected packs and shuffle each list independently.
    Unknown pack ids are skipped.
    """
    prompts: list[str] = []
    prompts_2: list[str] = []
    prompts_3: list[str] = []
    responses: list[str] = []

    for pack_id in selected_packs:
        pack = packs.get(pack_id)
        if pack is None:
            continue
        prompts.extend(pack.prompts)
        prompts_2.extend(pack.prompts_2)
        prompts_3.extend(pack.prompts_3)
        responses.extend(pack.responses)

    return Decks(
        prompts=fisher_yates(prompts, rng),
        prompts_2=fisher_yates(prompts_2, rng),
        prompts_3=fisher_yates(prompts_3, rng),
        responses=fisher_yates(responses, rng),
    )


def expand_blanks(prompt: str, cards_needed: int) -> str:
    if cards_needed <= 1:
        return prompt
    return prompt.replace(BLANK, BLANK_JOINER.join([BLANK] * cards_needed), 1)


def draw_prompt(room: RoomStore, cards_needed: int, rng: Optional[random.Random] = None) -> str:
    decks = room.decks
    if cards_needed == 3 and decks.prompts_3:
        return decks.prompts_3.pop()
    if cards_needed == 2 and decks.prompts_2:
        return decks.prompts_2.pop()

    if not decks.prompts:
        decks.prompts = fisher_yates(room.original_prompts, rng)
    if not decks.prompts:
        logger.warning("Room %s has no prompts to draw", room.code)
        return expand_blanks(BLANK, cards_needed)
    return expand_blanks(decks.prompts.pop(), cards_needed)


def deal_up_to(
    room: RoomStore,
    player: PlayerStore,
    target_hand_size: int,
    rng: Optional[random.Random] = None,
) -> int:
    """
    Top up a hand from the response deck, reshuffling the room's original
    responses whenever the deck runs dry. Returns the number of cards dealt.
    """
    dealt = 0
    while len(player.hand) < target_hand_size:
        if not room.decks.responses:
            if not room.original_responses:
                logger.warning("Room %s has no responses to deal", room.code)
                break
            room.decks.responses = fisher_yates(room.original_responses, rng)
        player.hand.append(room.decks.responses.pop())
        dealt += 1
    return dealt
