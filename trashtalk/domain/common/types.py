from __future__ import annotations

from typing import Literal

DisplayMode = Literal["shared", "per_player"]
RoomState = Literal["lobby", "playing", "reveal", "winner", "ended"]
