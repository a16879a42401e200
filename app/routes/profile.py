import logging
from typing import List

from fastapi import APIRouter, Form, Request
from fastapi.responses import HTMLResponse

from app.device import get_auth, get_device, get_registry
from app.forms import ProfileForm, render_profile_fields
from app.guards import enforce, protected
from app.layout import esc, render_alert, render_page
from app.security import CSRF_COOKIE_NAME, attach_csrf_cookie, issue_csrf_token, validate_csrf
from core.errors import AuthError, HustlefyError
from core.models import Role

log = logging.getLogger("hustlefy.routes.profile")

router = APIRouter()

FETCH_PROFILE_FAILED = "Failed to fetch profile info."
PROFILE_SAVED = "Profile updated successfully!"


def _profile_body(form: ProfileForm, csrf_token: str, email: str, errors=None, error: str = "", success: str = "") -> str:
    return f"""
    <div class="card form-card">
      {render_alert(success, "success")}
      {render_alert(error)}
      <form method="post" action="/profile">
        {render_profile_fields(form, errors or {}, role_editable=False, email=email)}
        <input type="hidden" name="csrf_token" value="{esc(csrf_token)}" />
        <button type="submit">Save changes</button>
      </form>
    </div>
    """


@router.get("/profile", response_class=HTMLResponse)
def profile_page(request: Request):
    device = get_device(request)
    state = device.session.state
    blocked = enforce(protected(state))
    if blocked:
        return blocked

    user = state.user
    error = ""
    try:
        user = get_auth(device).refresh_profile()
    except HustlefyError as exc:
        log.warning("Profile refresh failed: %s", exc)
        error = exc.message or FETCH_PROFILE_FAILED

    csrf_token = issue_csrf_token(request.cookies.get(CSRF_COOKIE_NAME))
    body = _profile_body(ProfileForm.from_user(user), csrf_token, user.email, error=error)
    resp = render_page("Your profile", body, user=user)
    attach_csrf_cookie(resp, csrf_token, secure=get_registry().settings.cookie_secure)
    return resp


@router.post("/profile", response_class=HTMLResponse)
def profile_save(
    request: Request,
    name: str = Form("", max_length=100),
    phone: str = Form("", max_length=30),
    location: str = Form("", max_length=100),
    bio: str = Form("", max_length=2000),
    work_categories: List[str] = Form([]),
    csrf_token: str = Form(""),
):
    device = get_device(request)
    state = device.session.state
    blocked = enforce(protected(state))
    if blocked:
        return blocked
    if not validate_csrf(request, csrf_token):
        return HTMLResponse("Invalid or missing CSRF token.", status_code=403)

    user = state.user
    # The account type is fixed once chosen; unset counts as seeker here.
    form = ProfileForm(
        name=name,
        phone=phone,
        location=location,
        bio=bio,
        role=user.role or Role.seeker,
        work_categories=work_categories,
    )
    errors = form.validate()
    if errors:
        body = _profile_body(form, csrf_token, user.email, errors=errors)
        return render_page("Your profile", body, user=user, status_code=400)

    try:
        updated = get_auth(device).update_profile(form.to_update())
    except AuthError as exc:
        body = _profile_body(form, csrf_token, user.email, error=exc.message)
        return render_page("Your profile", body, user=user, status_code=400)

    body = _profile_body(ProfileForm.from_user(updated), csrf_token, updated.email, success=PROFILE_SAVED)
    return render_page("Your profile", body, user=updated)
