from gymdesk.middleware import SlidingWindowRateLimiter


class FakeClock:
    def __init__(self, now: float = 1_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_allows_up_to_the_limit():
    clock = FakeClock()
    limiter = SlidingWindowRateLimiter(60, 3, clock=clock)

    results = [limiter.check("1.2.3.4") for _ in range(4)]

    assert [r.success for r in results] == [True, True, True, False]
    assert [r.remaining for r in results] == [2, 1, 0, 0]
    assert results[-1].retry_after == 60
    assert results[-1].headers()["Retry-After"] == "60"


def test_window_slides():
    clock = FakeClock()
    limiter = SlidingWindowRateLimiter(60, 2, clock=clock)
    limiter.check("ip")
    clock.now += 30
    limiter.check("ip")

    assert not limiter.check("ip").success
    clock.now += 31
    assert limiter.check("ip").success


def test_identifiers_are_independent():
    limiter = SlidingWindowRateLimiter(60, 1, clock=FakeClock())
    assert limiter.check("a").success
    assert limiter.check("b").success
    assert not limiter.check("a").success


def test_reset_and_cleanup():
    clock = FakeClock()
    limiter = SlidingWindowRateLimiter(60, 1, clock=clock)
    limiter.check("a")
    limiter.reset("a")
    assert limiter.check("a").success

    limiter.check("b")
    clock.now += 10 * 60
    limiter.check("c")
    assert limiter.tracked_keys == 1


def test_login_is_rate_limited(client):
    payload = {"email": "nobody@gymdesk.mx", "password": "wrong-password"}
    codes = [client.post("/api/v1/auth/login", json=payload).status_code for _ in range(6)]

    assert codes == [401] * 5 + [429]


def test_rate_limited_response_carries_headers(client):
    for _ in range(5):
        client.post("/api/v1/auth/login", json={"email": "x@gymdesk.mx", "password": "p"})
    response = client.post("/api/v1/auth/login", json={"email": "x@gymdesk.mx", "password": "p"})

    assert response.status_code == 429
    assert response.json()["success"] is False
    assert response.headers["x-ratelimit-limit"] == "5"
    assert int(response.headers["retry-after"]) > 0


def test_limits_are_per_client_address(client):
    payload = {"email": "x@gymdesk.mx", "password": "p"}
    for _ in range(5):
        client.post("/api/v1/auth/login", json=payload, headers={"x-forwarded-for": "10.0.0.1"})

    other = client.post("/api/v1/auth/login", json=payload, headers={"x-forwarded-for": "10.0.0.2, 10.0.0.1"})
    assert other.status_code == 401
