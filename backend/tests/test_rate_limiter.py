import pytest
from fastapi import HTTPException
from starlette.requests import Request

from temple_donations.utils.rate_limiter import RateLimiter


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def _request(ip="10.0.0.1"):
    return Request({"type": "http", "method": "POST", "path": "/", "headers": [], "client": (ip, 1234)})


def test_blocks_after_limit_until_window_ends():
    clock = FakeClock()
    limiter = RateLimiter(requests=2, window=60, clock=clock)

    assert limiter.hit("a") == 0
    assert limiter.hit("a") == 0
    clock.now += 15
    assert limiter.hit("a") == 45
    assert limiter.hit("b") == 0

    clock.now += 45
    assert limiter.hit("a") == 0


def test_dependency_raises_429():
    limiter = RateLimiter(requests=1, window=60, clock=FakeClock())
    assert limiter(_request())

    with pytest.raises(HTTPException) as exc_info:
        limiter(_request())
    assert exc_info.value.status_code == 429
    assert exc_info.value.headers == {"Retry-After": "60"}

    assert limiter(_request("10.0.0.2"))


def test_initiate_is_rate_limited(app, client):
    app.state.initiate_limiter.requests = 0
    response = client.post("/api/payments/initiate", json={
        "name": "Radha", "email": "radha@example.com", "phone": "9876543210", "amount": "100",
    })
    assert response.status_code == 429
