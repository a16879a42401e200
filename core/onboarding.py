"""
Onboarding completeness: the gate between signup and the dashboards.
"""
from __future__ import annotations

from typing import Optional

from core.models import Role, User

PROVIDER_DASHBOARD = "/provider/dashboard"
SEEKER_DASHBOARD = "/seeker/dashboard"
ONBOARDING_PATH = "/onboarding"


def is_onboarding_complete(user: Optional[User]) -> bool:
    if user is None:
        return False

    base = bool(user.name) and bool(user.phone) and bool(user.email)
    if user.role == Role.provider:
        return base
    return base and bool(user.bio) and len(user.work_categories) > 0


def dashboard_path(user: Optional[User]) -> str:
    if user is not None and user.role == Role.provider:
        return PROVIDER_DASHBOARD
    return SEEKER_DASHBOARD


def landing_path(user: Optional[User]) -> str:
    """Where a freshly signed-in user goes: onboarding until the profile is complete."""
    if not is_onboarding_complete(user):
        return ONBOARDING_PATH
    return dashboard_path(user)
