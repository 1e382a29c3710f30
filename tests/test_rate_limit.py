from librarium.security.rate_limit import SlidingWindowLimiter, limits_for

CONFIGURED = (
    ("auth.login", 3, 60),
    ("default", 5, 30),
)


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_window_blocks_then_recovers():
    clock = FakeClock()
    limiter = SlidingWindowLimiter(clock=clock)

    assert [limiter.hit("ip:auth.login", limit=3, window_sec=60) for _ in range(4)] == [True, True, True, False]

    clock.now += 59
    assert limiter.hit("ip:auth.login", limit=3, window_sec=60) is False

    clock.now += 1
    assert limiter.hit("ip:auth.login", limit=3, window_sec=60) is True


def test_keys_are_independent():
    limiter = SlidingWindowLimiter(clock=FakeClock())
    assert limiter.hit("a", limit=1, window_sec=60) is True
    assert limiter.hit("a", limit=1, window_sec=60) is False
    assert limiter.hit("b", limit=1, window_sec=60) is True

    limiter.reset()
    assert limiter.hit("a", limit=1, window_sec=60) is True


def test_limits_for_endpoint_and_default():
    assert limits_for("auth.login", CONFIGURED) == (3, 60)
    assert limits_for("auth.register", CONFIGURED) == (5, 30)
    assert limits_for("auth.login", ()) == (20, 60)


def test_auth_endpoints_rate_limited_outside_testing(app, client):
    from librarium.security.rate_limit import limiter

    app.config["TESTING"] = False
    app.config["AUTH_RATE_LIMITS"] = (("auth.login", 2, 60),)
    limiter.reset()
    try:
        codes = [
            client.post("/auth/login", json={"email": "x@y.z", "password": "whatever1"}).status_code
            for _ in range(3)
        ]
    finally:
        limiter.reset()
        app.config["TESTING"] = True

    assert codes == [401, 401, 429]
