from types import SimpleNamespace

from app.security import (
    CSRF_COOKIE_NAME,
    GOOGLE_CSRF_COOKIE_NAME,
    RateLimiter,
    client_key,
    issue_csrf_token,
    validate_csrf,
    validate_google_csrf,
)
from tests.fakes import FakeClock


def _request(cookies=None, host="10.0.0.1"):
    return SimpleNamespace(cookies=cookies or {}, client=SimpleNamespace(host=host))


def test_csrf_matches_cookie_and_form():
    req = _request({CSRF_COOKIE_NAME: "abc"})
    assert validate_csrf(req, "abc")
    assert not validate_csrf(req, "xyz")
    assert not validate_csrf(req, None)
    assert not validate_csrf(_request(), "abc")


def test_google_csrf_uses_its_own_cookie():
    req = _request({GOOGLE_CSRF_COOKIE_NAME: "g-123", CSRF_COOKIE_NAME: "abc"})
    assert validate_google_csrf(req, "g-123")
    assert not validate_google_csrf(req, "abc")


def test_issue_csrf_token_reuses_existing():
    assert issue_csrf_token("keep-me") == "keep-me"
    assert issue_csrf_token(None) != issue_csrf_token(None)


def test_rate_limiter_blocks_after_limit_and_recovers():
    clock = FakeClock(0)
    limiter = RateLimiter(clock=lambda: clock() / 1000)

    assert limiter.hit("login:ip", limit=2, window_seconds=60) == (True, 1)
    assert limiter.hit("login:ip", limit=2, window_seconds=60) == (True, 0)
    assert limiter.hit("login:ip", limit=2, window_seconds=60) == (False, 0)
    assert limiter.hit("signup:ip", limit=2, window_seconds=60)[0] is True

    clock.advance(61_000)
    assert limiter.hit("login:ip", limit=2, window_seconds=60)[0] is True


def test_client_key_uses_remote_host():
    assert client_key(_request(host="1.2.3.4"), "login") == "login:1.2.3.4"
    assert client_key(SimpleNamespace(client=None), "login") == "login:unknown"
