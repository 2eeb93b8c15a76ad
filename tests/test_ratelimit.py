from trashtalk.transport.ratelimit import RateLimiter


class Clock:
    def __init__(self):
        self.t = 100.0

    def __call__(self):
        return self.t


def test_limits_within_window():
    clock = Clock()
    rl = RateLimiter(window_ms=1000, max_requests=3, clock=clock)
    assert [rl.is_limited("c1") for _ in range(4)] == [False, False, False, True]
    # other connections are independent
    assert rl.is_limited("c2") is False


def test_window_slides():
    clock = Clock()
    rl = RateLimiter(window_ms=1000, max_requests=2, clock=clock)
    rl.is_limited("c1")
    clock.t += 0.6
    rl.is_limited("c1")
    assert rl.is_limited("c1") is True

    clock.t += 0.5  # first hit left the window
    assert rl.is_limited("c1") is False
    assert rl.is_limited("c1") is True


def test_purge_stale_entries():
    clock = Clock()
    rl = RateLimiter(window_ms=1000, max_requests=5, clock=clock)
    rl.is_limited("old")
    clock.t += 120
    rl.is_limited("fresh")

    assert rl.purge_stale(60) == 1
    assert len(rl) == 1

    rl.forget("fresh")
    assert len(rl) == 0
