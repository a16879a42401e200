"""
Device cookie and per-device session lookup.

Every browser/webview gets a long-lived `device_id` cookie. The id selects a
SessionService whose persisted storage is that device's namespace in the
local SQLite file, so a restart of the front end restores each device's
session (and re-arms its auto-logout) on first use.
"""
from __future__ import annotations

import logging
import re
import secrets
import threading
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from fastapi import Request
from fastapi.responses import Response

from core.api import ApiClient
from core.auth import AuthService
from core.config import Settings, get_settings
from core.scheduler import Scheduler, system_now_ms
from core.session import SessionService, SessionState
from core.storage import DeviceStorage, SqliteStorage

log = logging.getLogger("hustlefy.device")

DEVICE_COOKIE_NAME = "device_id"
DEVICE_COOKIE_MAX_AGE = 400 * 24 * 60 * 60  # browsers cap cookie lifetime at 400 days
_DEVICE_ID_RE = re.compile(r"^[A-Za-z0-9_-]{16,64}$")


class SessionRegistry:
    """
    Restored SessionService per device id.

    Only signed-in sessions are kept in memory. A signed-out device gets a
    fresh service on each lookup (restored from its storage), which is
    adopted when it signs in and dropped again on logout or expiry.
    """

    def __init__(
        self,
        settings: Settings,
        storage_factory: Optional[Callable[[str], DeviceStorage]] = None,
        now_ms: Callable[[], int] = system_now_ms,
        scheduler: Optional[Scheduler] = None,
    ):
        self.settings = settings
        self._storage_factory = storage_factory or (
            lambda device_id: SqliteStorage(settings.storage_path, device_id)
        )
        self._now_ms = now_ms
        self._scheduler = scheduler
        self._sessions: Dict[str, SessionService] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def get(self, device_id: str) -> SessionService:
        with self._lock:
            cached = self._sessions.get(device_id)
        if cached is not None:
            return cached

        session = SessionService(
            storage=self._storage_factory(device_id),
            ttl_ms=self.settings.token_ttl_ms,
            now_ms=self._now_ms,
            scheduler=self._scheduler,
        )
        session.restore_session()
        if session.state.is_authenticated:
            self._adopt(device_id, session)
        session.subscribe(lambda state: self._on_state(device_id, session, state))
        return session

    def _on_state(self, device_id: str, session: SessionService, state: SessionState) -> None:
        if state.is_auth_loading:
            return
        if state.is_authenticated:
            self._adopt(device_id, session)
        else:
            self._forget(device_id, session)

    def _adopt(self, device_id: str, session: SessionService) -> None:
        with self._lock:
            previous = self._sessions.get(device_id)
            self._sessions[device_id] = session
        if previous is not None and previous is not session:
            previous.close()

    def _forget(self, device_id: str, session: SessionService) -> None:
        with self._lock:
            if self._sessions.get(device_id) is session:
                del self._sessions[device_id]

    def close_all(self) -> None:
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        for session in sessions:
            session.close()


_registry: Optional[SessionRegistry] = None
_registry_lock = threading.Lock()


def get_registry() -> SessionRegistry:
    global _registry
    with _registry_lock:
        if _registry is None:
            _registry = SessionRegistry(get_settings())
        return _registry


def set_registry(registry: Optional[SessionRegistry]) -> None:
    """Swap the process-wide registry (tests, embedding)."""
    global _registry
    with _registry_lock:
        if _registry is not None and _registry is not registry:
            _registry.close_all()
        _registry = registry


@dataclass
class Device:
    device_id: str
    session: SessionService
    is_new: bool = False


def new_device_id() -> str:
    return secrets.token_urlsafe(24)


def get_device(request: Request) -> Device:
    """
    Resolve the requesting device and its session.
    A missing or malformed cookie gets a fresh id; the middleware in app.api
    then sets the cookie on the response.
    """
    cached = getattr(request.state, "device", None)
    if cached is not None:
        return cached

    device_id = request.cookies.get(DEVICE_COOKIE_NAME) or ""
    is_new = not _DEVICE_ID_RE.match(device_id)
    if is_new:
        device_id = new_device_id()

    device = Device(device_id=device_id, session=get_registry().get(device_id), is_new=is_new)
    request.state.device = device
    return device


def set_device_cookie(response: Response, device_id: str) -> None:
    response.set_cookie(
        key=DEVICE_COOKIE_NAME,
        value=device_id,
        httponly=True,
        max_age=DEVICE_COOKIE_MAX_AGE,
        samesite="lax",
        secure=get_registry().settings.cookie_secure,
    )


def get_api(device: Device) -> ApiClient:
    settings = get_registry().settings
    return ApiClient(
        settings.api_base_url,
        token_provider=lambda: device.session.token,
        timeout=settings.request_timeout,
    )


def get_auth(device: Device) -> AuthService:
    return AuthService(device.session, get_api(device))


__all__ = [
    "DEVICE_COOKIE_NAME",
    "SessionRegistry",
    "Device",
    "get_registry",
    "set_registry",
    "get_device",
    "set_device_cookie",
    "get_api",
    "get_auth",
]
