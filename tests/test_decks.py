import random

from trashtalk.content.models import CardPack
from trashtalk.domain.game.decks import BLANK, build_decks, deal_up_to, draw_prompt, expand_blanks
from trashtalk.store.models import Decks, PlayerStore, RoomStore


PACKS = {
    "a": CardPack(
        name="A",
        prompts=["a1 ______", "a2 ______"],
        prompts_2=["a-two ______ ______"],
        responses=["ra1", "ra2", "ra3"],
    ),
    "b": CardPack(name="B", prompts=["b1 ______"], prompts_3=["b-three"], responses=["rb1", "rb2"]),
}


def _room(responses, prompts=("p ______",)):
    decks = Decks(prompts=list(prompts), responses=list(responses))
    return RoomStore(
        code="ABCD",
        total_rounds=10,
        decks=decks,
        original_prompts=list(prompts),
        original_responses=list(responses),
        created_at=0,
        last_activity=0,
    )


def _player(pid):
    return PlayerStore(pid=pid, conn_id=f"c-{pid}", name=pid.upper(), avatar="x", joined_at=0)


def test_build_decks_concatenates_selected_packs():
    decks = build_decks(["a", "b"], PACKS, random.Random(1))
    assert sorted(decks.prompts) == ["a1 ______", "a2 ______", "b1 ______"]
    assert decks.prompts_2 == ["a-two ______ ______"]
    assert decks.prompts_3 == ["b-three"]
    assert sorted(decks.responses) == ["ra1", "ra2", "ra3", "rb1", "rb2"]


def test_build_decks_skips_unknown_packs():
    decks = build_decks(["nope", "b"], PACKS, random.Random(1))
    assert decks.prompts == ["b1 ______"]
    assert decks.prompts_2 == []
    assert sorted(decks.responses) == ["rb1", "rb2"]


def test_build_decks_does_not_mutate_packs():
    build_decks(["a"], PACKS, random.Random(3))
    assert PACKS["a"].responses == ["ra1", "ra2", "ra3"]


def test_expand_blanks():
    assert expand_blanks("x ______ y", 1) == "x ______ y"
    assert expand_blanks("x ______ y", 2) == f"x {BLANK} + {BLANK} y"
    assert expand_blanks("x ______ y ______", 3) == f"x {BLANK} + {BLANK} + {BLANK} y ______"


def test_draw_prompt_prefers_combo_lists():
    room = _room(["r"], prompts=["single ______"])
    room.decks.prompts_2 = ["double"]
    room.decks.prompts_3 = ["triple"]

    assert draw_prompt(room, 3) == "triple"
    assert draw_prompt(room, 2) == "double"
    # combo lists exhausted: fall back to an expanded single prompt
    assert draw_prompt(room, 2) == f"single {BLANK} + {BLANK}"


def test_draw_prompt_reshuffles_when_empty():
    room = _room(["r"], prompts=["only ______"])
    assert draw_prompt(room, 1) == "only ______"
    assert room.decks.prompts == []
    assert draw_prompt(room, 1) == "only ______"


def test_deal_up_to_stops_at_target():
    room = _room([f"r{i}" for i in range(20)])
    p = _player("p1")
    assert deal_up_to(room, p, 7) == 7
    assert len(p.hand) == 7
    assert deal_up_to(room, p, 7) == 0
    assert len(room.decks.responses) == 13


def test_deal_reshuffles_small_deck():
    originals = ["r1", "r2", "r3", "r4", "r5"]
    room = _room(originals)
    players = [_player(f"p{i}") for i in range(4)]
    rng = random.Random(7)

    for _ in range(2):
        for p in players:
            deal_up_to(room, p, 7, rng)

    for p in players:
        assert len(p.hand) == 7
        assert set(p.hand) <= set(originals)
    # 28 cards dealt from a 5-card deck
    assert room.original_responses == originals


def test_deal_with_no_responses_at_all():
    room = _room([])
    p = _player("p1")
    assert deal_up_to(room, p, 7) == 0
    assert p.hand == []
