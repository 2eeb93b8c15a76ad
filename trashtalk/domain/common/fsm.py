from __future__ import annotations

from trashtalk.domain.common.types import RoomState


def can_transition_to(current: RoomState, target: RoomState) -> bool:
    """
    Validate room state transitions.
    """
    transitions: dict[RoomState, list[RoomState]] = {
        "lobby": ["playing"],
        "playing": ["reveal", "ended"],
        "reveal": ["winner", "ended"],
        "winner": ["playing", "ended"],
        "ended": ["lobby"],
    }
    return target in transitions.get(current, [])
