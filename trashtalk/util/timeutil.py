from __future__ import annotations

import time


def now_ts() -> int:
    """Wall-clock seconds, used for activity and disconnect timestamps."""
    return int(time.time())
