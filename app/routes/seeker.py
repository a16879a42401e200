import logging

from fastapi import APIRouter, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from app.device import get_api, get_device, get_registry
from app.guards import enforce, protected, protected_dashboard
from app.layout import (
    esc,
    field_error,
    render_alert,
    render_filter_form,
    render_job_card,
    render_page,
)
from app.security import CSRF_COOKIE_NAME, attach_csrf_cookie, issue_csrf_token, validate_csrf
from core.categories import category_emoji
from core.errors import HustlefyError, user_message
from core.jobs import JobFilters, application_counts, available_categories, filter_jobs, relevant_jobs
from core.models import Application, ApplyRequest, Job, Role
from core.onboarding import SEEKER_DASHBOARD, dashboard_path
from core.validation import validate_application_message

log = logging.getLogger("hustlefy.routes.seeker")

router = APIRouter()

LOAD_JOBS_FAILED = "Failed to load jobs. Please try again."
APPLY_FAILED = "Failed to submit application. Please try again."
JOB_NOT_FOUND = "Job not found"


def _application_row(application: Application) -> str:
    job = application.job
    title = application.job_title or "Job"
    where = f" · 📍 {esc(job.location)}" if job and job.location else ""
    applied = f" · applied {esc(application.created_at[:10])}" if application.created_at else ""
    return f"""
    <div class="job">
      <strong>{esc(title)}</strong>
      <span class="badge {esc(application.status.value)}">{esc(application.status.value)}</span>
      <div class="meta">{esc(job.category) if job else ""}{where}{applied}</div>
    </div>
    """


@router.get("/seeker/dashboard", response_class=HTMLResponse)
def seeker_dashboard(request: Request):
    device = get_device(request)
    state = device.session.state
    blocked = enforce(protected_dashboard(state))
    if blocked:
        return blocked
    user = state.user
    if user.role == Role.provider:
        return RedirectResponse(url=dashboard_path(user), status_code=303)

    api = get_api(device)
    error = ""
    jobs = []
    try:
        jobs = relevant_jobs(api.get_jobs(), user)
    except HustlefyError as exc:
        log.warning("Seeker job list unavailable: %s", exc)
        error = LOAD_JOBS_FAILED

    applications = []
    try:
        applications = api.get_my_applications()
    except HustlefyError as exc:
        log.warning("Could not load applications: %s", exc)

    filters = JobFilters.from_params(request.query_params)
    shown = filter_jobs(jobs, filters)
    counts = application_counts(applications)

    interests = " ".join(
        f'<span class="badge">{category_emoji(c)} {esc(c)}</span>' for c in user.work_categories
    )
    if shown:
        cards = "".join(render_job_card(job, f"/apply/{job.id}") for job in shown)
    elif not error:
        cards = '<p class="muted">No jobs match your profile and filters right now.</p>'
    else:
        cards = ""

    recent = "".join(_application_row(a) for a in applications[:10]) or (
        '<p class="muted">You have not applied to any jobs yet.</p>'
    )

    body = f"""
    <p class="muted">Welcome back, {esc(user.name)}</p>
    <div class="stats">
      <div class="card stat"><div class="label">Applications</div><div class="value">{counts["total"]}</div></div>
      <div class="card stat"><div class="label">Pending</div><div class="value">{counts["pending"]}</div></div>
      <div class="card stat"><div class="label">Accepted</div><div class="value">{counts["accepted"]}</div></div>
      <div class="card stat"><div class="label">Rejected</div><div class="value">{counts["rejected"]}</div></div>
    </div>
    <div class="card">
      <p class="muted">Your interests: {interests or "none yet"}
        {f"· near {esc(user.location)}" if user.location else ""}</p>
    </div>
    {render_filter_form(SEEKER_DASHBOARD, filters, available_categories(jobs))}
    {render_alert(error)}
    <h3>Jobs for you ({len(shown)})</h3>
    {cards}
    <h3>Your applications</h3>
    <div class="card">{recent}</div>
    """
    return render_page("Seeker dashboard", body, user=user)


def _apply_body(job: Job, csrf_token: str, message: str = "", errors=None, error: str = "") -> str:
    errors = errors or {}
    provider = f'<p class="muted">Posted by {esc(job.provider_name)}</p>' if job.provider_name else ""
    return f"""
    <p><a href="{SEEKER_DASHBOARD}">← Back to dashboard</a></p>
    <p class="muted">Review the job details and submit your application.</p>
    {provider}
    {render_job_card(job)}
    <div class="card form-card">
      {render_alert(error)}
      <form method="post" action="/apply/{esc(job.id)}">
        <label>Message to the provider (optional)</label>
        <textarea name="message" rows="4" maxlength="500">{esc(message)}</textarea>
        {field_error(errors, "message")}
        <input type="hidden" name="csrf_token" value="{esc(csrf_token)}" />
        <button type="submit">Submit application</button>
      </form>
    </div>
    """


def _job_not_found(user) -> HTMLResponse:
    body = f"""
    <div class="card">
      <p class="muted">{JOB_NOT_FOUND}</p>
      <a href="{SEEKER_DASHBOARD}">Back to dashboard</a>
    </div>
    """
    return render_page("Apply for job", body, user=user, status_code=404)


@router.get("/apply/{job_id}", response_class=HTMLResponse)
def apply_form(request: Request, job_id: str):
    device = get_device(request)
    state = device.session.state
    blocked = enforce(protected(state, Role.seeker))
    if blocked:
        return blocked

    try:
        job = get_api(device).get_job(job_id)
    except HustlefyError as exc:
        log.info("Job %s could not be loaded: %s", job_id, exc)
        return _job_not_found(state.user)

    csrf_token = issue_csrf_token(request.cookies.get(CSRF_COOKIE_NAME))
    resp = render_page("Apply for job", _apply_body(job, csrf_token), user=state.user)
    attach_csrf_cookie(resp, csrf_token, secure=get_registry().settings.cookie_secure)
    return resp


@router.post("/apply/{job_id}", response_class=HTMLResponse)
def apply(
    request: Request,
    job_id: str,
    message: str = Form("", max_length=2000),
    csrf_token: str = Form(""),
):
    device = get_device(request)
    state = device.session.state
    blocked = enforce(protected(state, Role.seeker))
    if blocked:
        return blocked
    if not validate_csrf(request, csrf_token):
        return HTMLResponse("Invalid or missing CSRF token.", status_code=403)

    api = get_api(device)
    errors = validate_application_message(message)
    error = ""
    if not errors:
        try:
            api.apply_for_job(job_id, ApplyRequest(message=message.strip() or None))
        except HustlefyError as exc:
            error = user_message(exc, APPLY_FAILED)
        else:
            log.info("Application submitted for job %s", job_id)
            return RedirectResponse(url=SEEKER_DASHBOARD, status_code=303)

    try:
        job = api.get_job(job_id)
    except HustlefyError:
        return _job_not_found(state.user)
    body = _apply_body(job, csrf_token, message=message, errors=errors, error=error)
    return render_page("Apply for job", body, user=state.user, status_code=400)
