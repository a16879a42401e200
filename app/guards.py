"""
Route guards: pure decisions from the current session state.

Every guard checks the loading flag first so no redirect is issued while a
device's session is still being restored.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi.responses import RedirectResponse, Response

from app.layout import render_loading_page
from core.models import Role
from core.onboarding import ONBOARDING_PATH, is_onboarding_complete, landing_path
from core.session import SessionState

LOGIN_PATH = "/login"
HOME_PATH = "/"


@dataclass(frozen=True)
class GuardDecision:
    action: str  # "render" | "redirect" | "loading"
    location: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return self.action == "render"


RENDER = GuardDecision("render")
LOADING = GuardDecision("loading")


def redirect_to(location: str) -> GuardDecision:
    return GuardDecision("redirect", location)


def protected(state: SessionState, role: Optional[Role] = None) -> GuardDecision:
    if state.is_auth_loading:
        return LOADING
    if not state.is_authenticated or state.user is None:
        return redirect_to(LOGIN_PATH)
    if role is not None and state.user.role != role:
        return redirect_to(HOME_PATH)
    return RENDER


def protected_dashboard(state: SessionState) -> GuardDecision:
    if state.is_auth_loading:
        return LOADING
    if state.user is None:
        return redirect_to(LOGIN_PATH)
    if not is_onboarding_complete(state.user):
        return redirect_to(ONBOARDING_PATH)
    return RENDER


def public_only(state: SessionState) -> GuardDecision:
    if state.is_auth_loading:
        return LOADING
    if state.is_authenticated and state.user is not None:
        return redirect_to(landing_path(state.user))
    return RENDER


def enforce(decision: GuardDecision) -> Optional[Response]:
    """Response to send instead of the screen, or None when the screen may render."""
    if decision.action == "redirect":
        return RedirectResponse(url=decision.location or HOME_PATH, status_code=303)
    if decision.action == "loading":
        return render_loading_page()
    return None


__all__ = [
    "GuardDecision",
    "RENDER",
    "LOADING",
    "protected",
    "protected_dashboard",
    "public_only",
    "enforce",
]
