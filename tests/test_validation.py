from trashtalk.domain.common.fsm import can_transition_to
from trashtalk.domain.common.validation import (
    can_reveal,
    current_judge,
    is_host,
    is_judge,
    is_valid_room_code,
    name_taken,
    normalize_room_code,
    sanitize_name,
)
from trashtalk.store.models import PlayerStore, RoomStore
from trashtalk.store.sessions import ConnContext


def _room(mode="shared"):
    room = RoomStore(code="ABCD", display_mode=mode, host_conn_id="tv", total_rounds=10,
                     created_at=0, last_activity=0)
    for pid in ("a", "b"):
        room.players.append(PlayerStore(pid=pid, conn_id=f"c-{pid}", name=pid.upper(), avatar="x", joined_at=0))
    return room


def test_sanitize_name():
    assert sanitize_name("  Ann  ") == "Ann"
    assert sanitize_name("<b>Bob</b>") == "bBob/b"
    assert sanitize_name("A" * 20) == "A" * 12
    assert sanitize_name("   ") == ""
    assert sanitize_name(None) == ""


def test_room_code_format():
    assert normalize_room_code(" abcd ") == "ABCD"
    assert is_valid_room_code("ABCD")
    assert is_valid_room_code("YIKES")
    assert not is_valid_room_code("AB")
    assert not is_valid_room_code("ABCD-1")
    assert not is_valid_room_code("ABCDEFGHI")


def test_name_taken_ignores_case():
    room = _room()
    assert name_taken(room, "a") is True
    assert name_taken(room, "C") is False


def test_roles():
    room = _room()
    room.judge_index = 1
    assert current_judge(room).pid == "b"

    tv = ConnContext(cid="tv", room_code="ABCD", is_host=True)
    judge = ConnContext(cid="c-b", room_code="ABCD", pid="b")
    assert is_host(tv, room) and not is_host(judge, room)
    assert is_judge(judge, room) and not is_judge(tv, room)
    # the TV drives the reveal in shared mode
    assert can_reveal(tv, room) and not can_reveal(judge, room)


def test_roles_per_player():
    room = _room("per_player")
    room.host_pid = "a"
    room.host_conn_id = "c-a"
    room.judge_index = 1

    host = ConnContext(cid="c-a", room_code="ABCD", pid="a", is_host=True)
    judge = ConnContext(cid="c-b", room_code="ABCD", pid="b")
    assert is_host(host, room)
    assert can_reveal(judge, room) and not can_reveal(host, room)


def test_judge_out_of_range():
    room = _room()
    assert current_judge(room) is None
    room.judge_index = 5
    assert current_judge(room) is None


def test_fsm_transitions():
    assert can_transition_to("lobby", "playing")
    assert can_transition_to("winner", "playing")
    assert can_transition_to("ended", "lobby")
    assert not can_transition_to("lobby", "reveal")
    assert not can_transition_to("ended", "playing")
