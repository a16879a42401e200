"""
Per-device session store with token expiry and automatic logout.

State lives in memory as an immutable `SessionState` snapshot and is mirrored
to device storage under three keys (token, tokenExpiry, user). Anything that
cannot be read back cleanly from storage is treated as "no session": the
service logs out instead of raising.
"""
from __future__ import annotations

import json
import logging
import math
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import ValidationError

from core.models import User
from core.scheduler import Scheduler, TimerHandle, TimerScheduler, system_now_ms
from core.storage import TOKEN_EXPIRY_KEY, TOKEN_KEY, USER_KEY, DeviceStorage

log = logging.getLogger("hustlefy.session")


@dataclass(frozen=True)
class SessionState:
    is_authenticated: bool = False
    user: Optional[User] = None
    is_auth_loading: bool = True


SIGNED_OUT = SessionState(is_authenticated=False, user=None, is_auth_loading=False)

Listener = Callable[[SessionState], None]


class SessionService:
    def __init__(
        self,
        storage: DeviceStorage,
        ttl_ms: int,
        now_ms: Callable[[], int] = system_now_ms,
        scheduler: Optional[Scheduler] = None,
    ):
        self._storage = storage
        self._ttl_ms = ttl_ms
        self._now_ms = now_ms
        self._scheduler = scheduler or TimerScheduler()
        self._lock = threading.RLock()
        self._state = SessionState()
        self._listeners: List[Listener] = []
        self._timer: Optional[TimerHandle] = None
        # Bumped on every (re)schedule so a late-firing replaced timer is ignored.
        self._timer_generation = 0

    # -------- observation --------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def user(self) -> Optional[User]:
        return self._state.user

    @property
    def token(self) -> Optional[str]:
        """Bearer token as persisted on the device."""
        return self._storage.get_item(TOKEN_KEY)

    @property
    def pending_logout(self) -> bool:
        return self._timer is not None

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register `listener` for state changes; returns an unsubscribe callable."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _set_state(self, new_state: SessionState) -> None:
        if new_state == self._state:
            return
        self._state = new_state
        for listener in list(self._listeners):
            try:
                listener(new_state)
            except Exception:
                log.exception("Session listener failed")

    # -------- lifecycle --------

    def restore_session(self) -> SessionState:
        """Rebuild the session from device storage; always ends not loading."""
        with self._lock:
            self._set_state(SessionState(
                is_authenticated=self._state.is_authenticated,
                user=self._state.user,
                is_auth_loading=True,
            ))

            token = self._storage.get_item(TOKEN_KEY)
            expiry_raw = self._storage.get_item(TOKEN_EXPIRY_KEY)
            user_raw = self._storage.get_item(USER_KEY)

            if not (token and expiry_raw and user_raw):
                log.info("No stored session found")
                self._clear(reason="missing")
                return self._state

            expiry = _parse_expiry(expiry_raw)
            if expiry is None or self._now_ms() >= expiry:
                log.info("Stored session expired or unreadable; signing out")
                self._clear(reason="expired")
                return self._state

            try:
                user = User.model_validate(json.loads(user_raw))
            except (ValueError, ValidationError):
                log.warning("Stored user record is corrupt; signing out")
                self._clear(reason="corrupt")
                return self._state

            self._set_state(SessionState(is_authenticated=True, user=user, is_auth_loading=False))
            log.info("Session restored for user %s", user.id or user.email)
            self._schedule_auto_logout(expiry)
            return self._state

    def login(self, user: User, token: str) -> None:
        with self._lock:
            expiry = self._now_ms() + self._ttl_ms
            self._storage.set_item(TOKEN_KEY, token)
            self._storage.set_item(TOKEN_EXPIRY_KEY, str(expiry))
            self._storage.set_item(USER_KEY, json.dumps(user.to_storage()))
            self._set_state(SessionState(is_authenticated=True, user=user, is_auth_loading=False))
            log.info("Signed in user %s", user.id or user.email)
            self._schedule_auto_logout(expiry)

    def logout(self) -> None:
        with self._lock:
            self._clear(reason="logout")

    def update_user(self, patch: Union[Dict[str, Any], User]) -> None:
        """Merge `patch` into the current user and re-persist it; the token is untouched."""
        with self._lock:
            current = self._state.user
            if current is None:
                log.warning("update_user called without a signed-in user; ignored")
                return
            try:
                updated = patch if isinstance(patch, User) else current.merged(patch)
            except ValidationError:
                log.warning("Rejected invalid user patch with keys %s", sorted(patch))
                return
            self._storage.set_item(USER_KEY, json.dumps(updated.to_storage()))
            self._set_state(SessionState(
                is_authenticated=self._state.is_authenticated,
                user=updated,
                is_auth_loading=self._state.is_auth_loading,
            ))

    def close(self) -> None:
        """Teardown: drop the pending timer without touching the session."""
        with self._lock:
            self._cancel_timer()
            self._listeners.clear()

    # -------- internals --------

    def _clear(self, reason: str) -> None:
        had_session = self._state.is_authenticated
        self._cancel_timer()
        for key in (TOKEN_KEY, TOKEN_EXPIRY_KEY, USER_KEY):
            if self._storage.get_item(key) is not None:
                self._storage.remove_item(key)
        self._set_state(SIGNED_OUT)
        if had_session:
            log.info("Signed out (%s)", reason)

    def _cancel_timer(self) -> None:
        self._timer_generation += 1
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _schedule_auto_logout(self, expiry_ms: int) -> None:
        self._cancel_timer()
        delay = expiry_ms - self._now_ms()
        if delay <= 0:
            self._clear(reason="expired")
            return
        generation = self._timer_generation
        self._timer = self._scheduler.call_later(delay, lambda: self._on_expiry(generation))
        log.debug("Auto-logout scheduled in %d ms", delay)

    def _on_expiry(self, generation: int) -> None:
        with self._lock:
            if generation != self._timer_generation:
                return
            self._timer = None
            self._clear(reason="expired")


def _parse_expiry(raw: str) -> Optional[int]:
    try:
        return int(raw)
    except ValueError:
        pass
    try:
        value = float(raw)
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return int(value)


__all__ = ["SessionState", "SIGNED_OUT", "SessionService"]
