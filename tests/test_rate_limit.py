from collections import deque
from types import SimpleNamespace

from nimbus_admin.api.middleware.rate_limit import LoginRateLimitMiddleware


def _limiter():
    return LoginRateLimitMiddleware(None, path="/api/auth/login", window=60, max_requests=2)


def test_drained_clients_are_forgotten():
    limiter = _limiter()
    limiter.store = {"10.0.0.1": deque([100.0, 130.0]), "10.0.0.2": deque([150.0])}

    limiter._evict(now=195.0)

    assert "10.0.0.1" not in limiter.store
    assert list(limiter.store["10.0.0.2"]) == [150.0]


def test_window_slides(monkeypatch, test_settings, fake_engine):
    from fastapi.testclient import TestClient

    from nimbus_admin.api.app import create_app
    from nimbus_admin.api.middleware import rate_limit

    clock = [1000.0]
    monkeypatch.setattr(rate_limit, "time", SimpleNamespace(time=lambda: clock[0]))
    limited = test_settings.model_copy(update={"ENABLE_RATE_LIMIT": True, "RATE_LIMIT_MAX_REQUESTS": 1})
    with TestClient(create_app(limited)) as c:
        bad = {"username": "admin", "password": "x"}
        assert c.post("/api/auth/login", json=bad).status_code == 401
        assert c.post("/api/auth/login", json=bad).status_code == 429
        clock[0] += limited.RATE_LIMIT_WINDOW + 1
        assert c.post("/api/auth/login", json=bad).status_code == 401
