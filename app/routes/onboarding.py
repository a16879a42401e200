from typing import List

from fastapi import APIRouter, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from app.device import get_auth, get_device, get_registry
from app.forms import ProfileForm, parse_role, render_profile_fields
from app.guards import enforce, protected
from app.layout import esc, render_alert, render_page
from app.security import CSRF_COOKIE_NAME, attach_csrf_cookie, issue_csrf_token, validate_csrf
from core.errors import AuthError
from core.onboarding import landing_path

router = APIRouter()


def _onboarding_body(form: ProfileForm, csrf_token: str, email: str, errors=None, error: str = "") -> str:
    return f"""
    <div class="card form-card">
      <p class="muted">A few details and you are ready to go.</p>
      {render_alert(error)}
      <form method="post" action="/onboarding">
        {render_profile_fields(form, errors or {}, role_editable=True, email=email)}
        <input type="hidden" name="csrf_token" value="{esc(csrf_token)}" />
        <button type="submit">Complete profile</button>
      </form>
    </div>
    """


@router.get("/onboarding", response_class=HTMLResponse)
def onboarding_form(request: Request):
    device = get_device(request)
    state = device.session.state
    blocked = enforce(protected(state))
    if blocked:
        return blocked

    csrf_token = issue_csrf_token(request.cookies.get(CSRF_COOKIE_NAME))
    body = _onboarding_body(ProfileForm.from_user(state.user), csrf_token, state.user.email)
    resp = render_page("Complete your profile", body, user=state.user)
    attach_csrf_cookie(resp, csrf_token, secure=get_registry().settings.cookie_secure)
    return resp


@router.post("/onboarding", response_class=HTMLResponse)
def onboarding_submit(
    request: Request,
    name: str = Form("", max_length=100),
    phone: str = Form("", max_length=30),
    location: str = Form("", max_length=100),
    bio: str = Form("", max_length=2000),
    role: str = Form(""),
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

    form = ProfileForm(
        name=name,
        phone=phone,
        location=location,
        bio=bio,
        role=parse_role(role),
        work_categories=work_categories,
    )
    errors = form.validate()
    if errors:
        body = _onboarding_body(form, csrf_token, state.user.email, errors=errors)
        return render_page("Complete your profile", body, user=state.user, status_code=400)

    try:
        user = get_auth(device).update_profile(form.to_update())
    except AuthError as exc:
        body = _onboarding_body(form, csrf_token, state.user.email, error=exc.message)
        return render_page("Complete your profile", body, user=state.user, status_code=400)

    return RedirectResponse(url=landing_path(user), status_code=303)
