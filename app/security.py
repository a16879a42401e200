"""
CSRF double-submit tokens and in-memory rate limits for the auth forms.
"""
from __future__ import annotations

import hmac
import secrets
import threading
import time
from typing import Callable, Dict, List, Tuple

CSRF_COOKIE_NAME = "csrf_token"
GOOGLE_CSRF_COOKIE_NAME = "g_csrf_token"


def issue_csrf_token(existing: str | None = None) -> str:
    """Return a CSRF token (re-use existing if provided, else create a new one)."""
    return existing or secrets.token_urlsafe(16)


def attach_csrf_cookie(response, token: str, secure: bool = False) -> None:
    """Readable (non-HTTPOnly) cookie holding the token the form must echo back."""
    response.set_cookie(
        key=CSRF_COOKIE_NAME,
        value=token,
        httponly=False,
        samesite="lax",
        secure=secure,
    )


def _same(cookie_token: str, form_token: str) -> bool:
    if not cookie_token or not form_token:
        return False
    return hmac.compare_digest(cookie_token, form_token)


def validate_csrf(request, form_token: str | None) -> bool:
    return _same(request.cookies.get(CSRF_COOKIE_NAME) or "", form_token or "")


def validate_google_csrf(request, form_token: str | None) -> bool:
    """Google Sign-In posts `g_csrf_token` both as a cookie and as a form field."""
    return _same(request.cookies.get(GOOGLE_CSRF_COOKIE_NAME) or "", form_token or "")


class RateLimiter:
    """Sliding-window limiter keyed by arbitrary strings (ip, device, email)."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._history: Dict[str, List[float]] = {}
        self._lock = threading.Lock()

    def hit(self, key: str, limit: int, window_seconds: int) -> Tuple[bool, int]:
        """Record an attempt; returns (allowed, remaining_after)."""
        now = self._clock()
        with self._lock:
            recent = [t for t in self._history.get(key, []) if t > now - window_seconds]
            if len(recent) >= limit:
                self._history[key] = recent
                return False, 0
            recent.append(now)
            self._history[key] = recent
            return True, max(0, limit - len(recent))

    def reset(self) -> None:
        with self._lock:
            self._history.clear()


limiter = RateLimiter()


def allow_request(key: str, limit: int = 5, window_seconds: int = 60) -> bool:
    allowed, _ = limiter.hit(key, limit, window_seconds)
    return allowed


def client_key(request, prefix: str) -> str:
    ip = request.client.host if request is not None and request.client else "unknown"
    return f"{prefix}:{ip}"


__all__ = [
    "CSRF_COOKIE_NAME",
    "issue_csrf_token",
    "attach_csrf_cookie",
    "validate_csrf",
    "validate_google_csrf",
    "RateLimiter",
    "limiter",
    "allow_request",
    "client_key",
]
