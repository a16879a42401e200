import logging
import threading
import time
from dataclasses import dataclass
from typing import Dict, Optional

from fastapi import APIRouter, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from app.device import get_auth, get_device, get_registry
from app.guards import enforce, public_only
from app.layout import esc, field_error, render_alert, render_options, render_page
from app.security import (
    CSRF_COOKIE_NAME,
    allow_request,
    attach_csrf_cookie,
    client_key,
    issue_csrf_token,
    validate_csrf,
    validate_google_csrf,
)
from core.errors import AuthError
from core.models import RegisterRequest, Role
from core.onboarding import ONBOARDING_PATH, landing_path
from core.validation import validate_login, validate_name, validate_otp, validate_signup

log = logging.getLogger("hustlefy.routes.auth")

router = APIRouter()

PENDING_SIGNUP_TTL_SECONDS = 10 * 60
TOO_MANY_ATTEMPTS = "Too many attempts. Please try again later."


@dataclass
class PendingSignup:
    email: str
    password: str
    expires_at: float


class PendingSignups:
    """Email/password held between "send OTP" and "verify OTP", per device, in memory only."""

    def __init__(self, ttl_seconds: int = PENDING_SIGNUP_TTL_SECONDS):
        self._ttl = ttl_seconds
        self._items: Dict[str, PendingSignup] = {}
        self._lock = threading.Lock()

    def put(self, device_id: str, email: str, password: str) -> None:
        with self._lock:
            self._items[device_id] = PendingSignup(email, password, time.monotonic() + self._ttl)

    def get(self, device_id: str) -> Optional[PendingSignup]:
        with self._lock:
            pending = self._items.get(device_id)
            if pending and pending.expires_at <= time.monotonic():
                self._items.pop(device_id, None)
                return None
            return pending

    def discard(self, device_id: str) -> None:
        with self._lock:
            self._items.pop(device_id, None)


pending_signups = PendingSignups()


def _csrf(request: Request) -> str:
    return issue_csrf_token(request.cookies.get(CSRF_COOKIE_NAME))


def _with_csrf(response, token: str):
    attach_csrf_cookie(response, token, secure=get_registry().settings.cookie_secure)
    return response


def _google_button(request: Request) -> str:
    client_id = get_registry().settings.google_client_id
    if not client_id:
        return ""
    login_uri = str(request.url_for("google_login"))
    return f"""
    <div class="card form-card">
      <script src="https://accounts.google.com/gsi/client" async defer></script>
      <div id="g_id_onload"
           data-client_id="{esc(client_id)}"
           data-ux_mode="redirect"
           data-login_uri="{esc(login_uri)}"></div>
      <div class="g_id_signin" data-type="standard" data-text="continue_with"></div>
    </div>
    """


def _redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url=url, status_code=303)


# -------- login --------

def _login_body(request: Request, csrf_token: str, email: str = "", errors=None, error: str = "") -> str:
    errors = errors or {}
    return f"""
    {_google_button(request)}
    <div class="card form-card">
      <p class="muted">Welcome back. Sign in to find work or manage your tasks.</p>
      {render_alert(error)}
      <form method="post" action="/login">
        <label>Email</label>
        <input type="email" name="email" required maxlength="100" value="{esc(email)}" />
        {field_error(errors, "email")}

        <label>Password</label>
        <input type="password" name="password" required maxlength="100" />
        {field_error(errors, "password")}

        <input type="hidden" name="csrf_token" value="{esc(csrf_token)}" />
        <button type="submit">Login</button>
      </form>
      <p class="muted" style="margin-top:0.75rem;">New here? <a href="/signup">Create an account</a></p>
    </div>
    """


@router.get("/login", response_class=HTMLResponse)
def login_form(request: Request):
    device = get_device(request)
    blocked = enforce(public_only(device.session.state))
    if blocked:
        return blocked

    csrf_token = _csrf(request)
    return _with_csrf(render_page("Login", _login_body(request, csrf_token)), csrf_token)


@router.post("/login", response_class=HTMLResponse)
def login(
    request: Request,
    email: str = Form("", max_length=100),
    password: str = Form("", max_length=100),
    csrf_token: str = Form(""),
):
    device = get_device(request)
    blocked = enforce(public_only(device.session.state))
    if blocked:
        return blocked

    if not allow_request(client_key(request, "login"), limit=10, window_seconds=300):
        return HTMLResponse(TOO_MANY_ATTEMPTS, status_code=429)
    if not validate_csrf(request, csrf_token):
        return HTMLResponse("Invalid or missing CSRF token.", status_code=403)

    errors = validate_login(email, password)
    if errors:
        return render_page("Login", _login_body(request, csrf_token, email, errors=errors), status_code=400)

    try:
        user = get_auth(device).login_with_credentials(email, password)
    except AuthError as exc:
        return render_page("Login", _login_body(request, csrf_token, email, error=exc.message), status_code=400)

    return _redirect(landing_path(user))


# -------- google --------

@router.post("/auth/google", name="google_login")
def google_login(
    request: Request,
    credential: str = Form(""),
    g_csrf_token: str = Form(""),
    csrf_token: str = Form(""),
):
    device = get_device(request)
    if not (validate_google_csrf(request, g_csrf_token) or validate_csrf(request, csrf_token)):
        return HTMLResponse("Invalid or missing CSRF token.", status_code=403)
    if not allow_request(client_key(request, "google"), limit=10, window_seconds=300):
        return HTMLResponse(TOO_MANY_ATTEMPTS, status_code=429)

    if not credential:
        token = _csrf(request)
        body = _login_body(request, token, error="Google sign-in failed")
        return _with_csrf(render_page("Login", body, status_code=400), token)

    try:
        result = get_auth(device).login_with_google(credential)
    except AuthError as exc:
        token = _csrf(request)
        return _with_csrf(render_page("Login", _login_body(request, token, error=exc.message), status_code=400), token)

    if result.is_new_user:
        return _redirect(ONBOARDING_PATH)
    return _redirect(landing_path(result.user))


# -------- signup --------

def _signup_body(
    request: Request,
    csrf_token: str,
    email: str = "",
    name: str = "",
    role: str = "",
    errors=None,
    error: str = "",
) -> str:
    errors = errors or {}
    direct_fields = ""
    if not get_registry().settings.signup_requires_otp:
        direct_fields = f"""
        <label>Full name</label>
        <input type="text" name="name" maxlength="50" value="{esc(name)}" />
        {field_error(errors, "name")}

        <label>I want to</label>
        <select name="role">
          {render_options([r.value for r in Role], role, "Choose…")}
        </select>
        {field_error(errors, "role")}
        """
    return f"""
    {_google_button(request)}
    <div class="card form-card">
      <p class="muted">Create your Hustlefy account.</p>
      {render_alert(error)}
      <form method="post" action="/signup">
        {direct_fields}
        <label>Email</label>
        <input type="email" name="email" required maxlength="100" value="{esc(email)}" />
        {field_error(errors, "email")}

        <label>Password</label>
        <input type="password" name="password" required maxlength="100" />
        {field_error(errors, "password")}

        <label>Confirm password</label>
        <input type="password" name="confirm_password" required maxlength="100" />
        {field_error(errors, "confirm_password")}

        <input type="hidden" name="csrf_token" value="{esc(csrf_token)}" />
        <button type="submit">Sign up</button>
      </form>
      <p class="muted" style="margin-top:0.75rem;">Already registered? <a href="/login">Log in</a></p>
    </div>
    """


def _otp_body(csrf_token: str, email: str, errors=None, error: str = "", notice: str = "") -> str:
    errors = errors or {}
    return f"""
    <div class="card form-card">
      <p class="muted">We sent a 6-digit code to <strong>{esc(email)}</strong>.</p>
      {render_alert(notice, "success")}
      {render_alert(error)}
      <form method="post" action="/signup/verify">
        <label>Verification code</label>
        <input type="text" name="otp" inputmode="numeric" maxlength="6" autocomplete="one-time-code" />
        {field_error(errors, "otp")}
        <input type="hidden" name="csrf_token" value="{esc(csrf_token)}" />
        <button type="submit">Verify</button>
      </form>
      <form method="post" action="/signup/resend" class="inline-form">
        <input type="hidden" name="csrf_token" value="{esc(csrf_token)}" />
        <button type="submit" class="secondary">Resend code</button>
      </form>
      <p class="muted"><a href="/signup">Use a different email</a></p>
    </div>
    """


@router.get("/signup", response_class=HTMLResponse)
def signup_form(request: Request, role: str = ""):
    device = get_device(request)
    blocked = enforce(public_only(device.session.state))
    if blocked:
        return blocked

    csrf_token = _csrf(request)
    role = role if role in (Role.provider.value, Role.seeker.value) else ""
    return _with_csrf(render_page("Sign up", _signup_body(request, csrf_token, role=role)), csrf_token)


@router.post("/signup", response_class=HTMLResponse)
def signup(
    request: Request,
    email: str = Form("", max_length=100),
    password: str = Form("", max_length=100),
    confirm_password: str = Form("", max_length=100),
    name: str = Form("", max_length=50),
    role: str = Form(""),
    csrf_token: str = Form(""),
):
    device = get_device(request)
    blocked = enforce(public_only(device.session.state))
    if blocked:
        return blocked

    if not allow_request(client_key(request, "signup"), limit=5, window_seconds=600):
        return HTMLResponse(TOO_MANY_ATTEMPTS, status_code=429)
    if not validate_csrf(request, csrf_token):
        return HTMLResponse("Invalid or missing CSRF token.", status_code=403)

    settings = get_registry().settings
    errors = validate_signup(email, password, confirm_password)
    if not settings.signup_requires_otp:
        name_error = validate_name(name)
        if name_error:
            errors["name"] = name_error
        if role not in (Role.provider.value, Role.seeker.value):
            errors["role"] = "Please choose how you want to use Hustlefy"

    def again(errors=None, error: str = ""):
        body = _signup_body(request, csrf_token, email=email, name=name, role=role, errors=errors, error=error)
        return render_page("Sign up", body, status_code=400)

    if errors:
        return again(errors=errors)

    auth = get_auth(device)
    if not settings.signup_requires_otp:
        try:
            user = auth.register(
                RegisterRequest(name=name.strip(), email=email.strip(), password=password, role=Role(role))
            )
        except AuthError as exc:
            return again(error=exc.message)
        return _redirect(landing_path(user))

    try:
        auth.send_otp(email, password)
    except AuthError as exc:
        return again(error=exc.message)

    pending_signups.put(device.device_id, email.strip(), password)
    log.info("Signup OTP requested")
    return render_page("Verify your email", _otp_body(csrf_token, email.strip()))


@router.post("/signup/verify", response_class=HTMLResponse)
def signup_verify(
    request: Request,
    otp: str = Form("", max_length=10),
    csrf_token: str = Form(""),
):
    device = get_device(request)
    blocked = enforce(public_only(device.session.state))
    if blocked:
        return blocked

    if not allow_request(client_key(request, "otp"), limit=10, window_seconds=600):
        return HTMLResponse(TOO_MANY_ATTEMPTS, status_code=429)
    if not validate_csrf(request, csrf_token):
        return HTMLResponse("Invalid or missing CSRF token.", status_code=403)

    pending = pending_signups.get(device.device_id)
    if pending is None:
        return _redirect("/signup")

    errors = validate_otp(otp)
    if errors:
        return render_page("Verify your email", _otp_body(csrf_token, pending.email, errors=errors), status_code=400)

    try:
        get_auth(device).verify_otp(pending.email, otp.strip(), pending.password)
    except AuthError as exc:
        return render_page("Verify your email", _otp_body(csrf_token, pending.email, error=exc.message), status_code=400)

    pending_signups.discard(device.device_id)
    return _redirect(ONBOARDING_PATH)


@router.post("/signup/resend", response_class=HTMLResponse)
def signup_resend(request: Request, csrf_token: str = Form("")):
    device = get_device(request)
    blocked = enforce(public_only(device.session.state))
    if blocked:
        return blocked

    if not allow_request(client_key(request, "otp-resend"), limit=3, window_seconds=600):
        return HTMLResponse(TOO_MANY_ATTEMPTS, status_code=429)
    if not validate_csrf(request, csrf_token):
        return HTMLResponse("Invalid or missing CSRF token.", status_code=403)

    pending = pending_signups.get(device.device_id)
    if pending is None:
        return _redirect("/signup")

    try:
        get_auth(device).send_otp(pending.email, pending.password)
    except AuthError as exc:
        return render_page("Verify your email", _otp_body(csrf_token, pending.email, error=exc.message), status_code=400)
    return render_page("Verify your email", _otp_body(csrf_token, pending.email, notice="A new code is on its way."))


# -------- logout --------

@router.get("/logout")
def logout(request: Request):
    device = get_device(request)
    get_auth(device).logout()
    pending_signups.discard(device.device_id)
    return _redirect("/")
