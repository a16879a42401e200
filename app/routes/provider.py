import logging
from typing import Dict, List

from fastapi import APIRouter, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from app.device import get_api, get_device, get_registry
from app.guards import enforce, protected, protected_dashboard
from app.layout import (
    esc,
    field_error,
    format_money,
    render_alert,
    render_job_card,
    render_options,
    render_page,
)
from app.security import CSRF_COOKIE_NAME, attach_csrf_cookie, issue_csrf_token, validate_csrf
from core.categories import WORK_CATEGORIES
from core.errors import HustlefyError, user_message
from core.jobs import active_jobs, pending_applicants
from core.models import Application, ApplicationStatus, JobCreate, Role
from core.onboarding import PROVIDER_DASHBOARD, dashboard_path
from core.validation import DURATION_UNITS, format_duration, parse_int, validate_job_post

log = logging.getLogger("hustlefy.routes.provider")

router = APIRouter(prefix="/provider")

CREATE_JOB_FAILED = "Failed to create job. Please try again."
ACTION_FAILED = {
    "accept": "Failed to accept applicant. Please try again.",
    "reject": "Failed to reject applicant. Please try again.",
    "delete": "Failed to delete job. Please try again.",
}


def _redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url=url, status_code=303)


def _applicant_html(applicant: Application, csrf_token: str) -> str:
    categories = ", ".join(applicant.seeker_categories) or "—"
    actions = ""
    if applicant.status == ApplicationStatus.pending:
        base = f"/provider/jobs/{esc(applicant.job_id)}/applicants/{esc(applicant.id)}"
        actions = f"""
        <form method="post" action="{base}/accept" class="inline-form">
          <input type="hidden" name="csrf_token" value="{esc(csrf_token)}" />
          <button type="submit">Accept</button>
        </form>
        <form method="post" action="{base}/reject" class="inline-form">
          <input type="hidden" name="csrf_token" value="{esc(csrf_token)}" />
          <button type="submit" class="danger">Reject</button>
        </form>
        """
    return f"""
    <div class="job">
      <strong>{esc(applicant.seeker_name or "Applicant")}</strong>
      <span class="badge {esc(applicant.status.value)}">{esc(applicant.status.value)}</span>
      <div class="meta">Categories: {esc(categories)}</div>
      <p>{esc(applicant.message)}</p>
      {actions}
    </div>
    """


@router.get("/dashboard", response_class=HTMLResponse)
def provider_dashboard(request: Request, failed: str = ""):
    device = get_device(request)
    state = device.session.state
    blocked = enforce(protected_dashboard(state))
    if blocked:
        return blocked
    user = state.user
    if user.role != Role.provider:
        return _redirect(dashboard_path(user))

    api = get_api(device)
    error = ACTION_FAILED.get(failed, "")
    jobs = []
    applicants_by_job: Dict[str, List[Application]] = {}
    try:
        jobs = api.get_my_jobs()
    except HustlefyError as exc:
        log.warning("Could not load provider jobs: %s", exc)
        error = exc.message

    for job in jobs:
        try:
            applicants_by_job[job.id] = api.get_job_applicants(job.id)
        except HustlefyError as exc:
            # One failing job does not hide the rest of the dashboard.
            log.warning("Could not load applicants for job %s: %s", job.id, exc)
            applicants_by_job[job.id] = []

    all_applicants = [a for group in applicants_by_job.values() for a in group]
    csrf_token = issue_csrf_token(request.cookies.get(CSRF_COOKIE_NAME))

    job_sections = []
    for job in jobs:
        applicants = applicants_by_job.get(job.id, [])
        applicant_html = "".join(_applicant_html(a, csrf_token) for a in applicants) or (
            '<p class="muted">No applicants yet.</p>'
        )
        job_sections.append(f"""
        <div class="card">
          {render_job_card(job)}
          <p class="meta">Status: {esc(job.status)} · {job.people_accepted}/{job.people_needed} accepted</p>
          <form method="post" action="/provider/jobs/{esc(job.id)}/delete" class="inline-form"
                onsubmit="return confirm('Delete this job?');">
            <input type="hidden" name="csrf_token" value="{esc(csrf_token)}" />
            <button type="submit" class="secondary">Delete job</button>
          </form>
          <h4>Applicants ({len(applicants)})</h4>
          {applicant_html}
        </div>
        """)

    if not job_sections and not error:
        job_sections.append(
            '<div class="card"><p class="muted">You have not posted any jobs yet.</p></div>'
        )

    body = f"""
    <p class="muted">Welcome back, {esc(user.name)}</p>
    <a href="/provider/post-job"><button type="button">➕ Post new job</button></a>
    {render_alert(error)}
    <div class="stats" style="margin-top:1rem;">
      <div class="card stat"><div class="label">Active jobs</div><div class="value">{len(active_jobs(jobs))}</div></div>
      <div class="card stat"><div class="label">Pending applicants</div><div class="value">{len(pending_applicants(all_applicants))}</div></div>
      <div class="card stat"><div class="label">Total jobs</div><div class="value">{len(jobs)}</div></div>
    </div>
    {"".join(job_sections)}
    """
    resp = render_page("Provider dashboard", body, user=user)
    attach_csrf_cookie(resp, csrf_token, secure=get_registry().settings.cookie_secure)
    return resp


def _post_job_body(csrf_token: str, values: Dict[str, str], errors=None, error: str = "") -> str:
    errors = errors or {}
    unit_options = "".join(
        f'<option value="{unit}"{" selected" if values.get("duration_unit") == unit else ""}>{plural}</option>'
        for unit, (_, plural) in DURATION_UNITS.items()
    )
    return f"""
    <div class="card form-card">
      <p><a href="{PROVIDER_DASHBOARD}">← Back to dashboard</a></p>
      {render_alert(error)}
      <form method="post" action="/provider/post-job">
        <label>Job title</label>
        <input type="text" name="title" maxlength="50" value="{esc(values.get("title"))}" />
        {field_error(errors, "title")}

        <label>Description</label>
        <textarea name="description" rows="4" maxlength="500">{esc(values.get("description"))}</textarea>
        {field_error(errors, "description")}

        <label>Location</label>
        <input type="text" name="location" maxlength="100" value="{esc(values.get("location"))}" />
        {field_error(errors, "location")}

        <label>Category</label>
        <select name="category">{render_options(WORK_CATEGORIES, values.get("category"), "Select a category")}</select>
        {field_error(errors, "category")}

        <label>People needed</label>
        <input type="number" name="people_needed" min="1" max="50" value="{esc(values.get("people_needed"))}" />
        {field_error(errors, "people_needed")}

        <label>Duration</label>
        <input type="number" name="duration_number" min="1" max="999" value="{esc(values.get("duration_number"))}" />
        {field_error(errors, "duration_number")}
        <select name="duration_unit"><option value="">Select unit</option>{unit_options}</select>
        {field_error(errors, "duration_unit")}

        <label>Payment (₹)</label>
        <input type="number" name="payment" min="0" step="any" value="{esc(values.get("payment"))}" />
        {field_error(errors, "payment")}

        <input type="hidden" name="csrf_token" value="{esc(csrf_token)}" />
        <button type="submit">Post job</button>
      </form>
    </div>
    """


@router.get("/post-job", response_class=HTMLResponse)
def post_job_form(request: Request):
    device = get_device(request)
    state = device.session.state
    blocked = enforce(protected(state, Role.provider))
    if blocked:
        return blocked

    csrf_token = issue_csrf_token(request.cookies.get(CSRF_COOKIE_NAME))
    resp = render_page("Post a new job", _post_job_body(csrf_token, {"people_needed": "1"}), user=state.user)
    attach_csrf_cookie(resp, csrf_token, secure=get_registry().settings.cookie_secure)
    return resp


@router.post("/post-job", response_class=HTMLResponse)
def post_job(
    request: Request,
    title: str = Form("", max_length=200),
    description: str = Form("", max_length=2000),
    location: str = Form("", max_length=200),
    category: str = Form(""),
    people_needed: str = Form(""),
    duration_number: str = Form(""),
    duration_unit: str = Form(""),
    payment: str = Form(""),
    csrf_token: str = Form(""),
):
    device = get_device(request)
    state = device.session.state
    blocked = enforce(protected(state, Role.provider))
    if blocked:
        return blocked
    if not validate_csrf(request, csrf_token):
        return HTMLResponse("Invalid or missing CSRF token.", status_code=403)

    values = {
        "title": title,
        "description": description,
        "location": location,
        "category": category,
        "people_needed": people_needed,
        "duration_number": duration_number,
        "duration_unit": duration_unit,
        "payment": payment,
    }
    errors = validate_job_post(**values)
    if errors:
        body = _post_job_body(csrf_token, values, errors=errors, error="Please fix the validation errors below.")
        return render_page("Post a new job", body, user=state.user, status_code=400)

    job = JobCreate(
        title=title.strip(),
        description=description.strip(),
        location=location.strip(),
        category=category,
        people_needed=parse_int(people_needed),
        duration=format_duration(parse_int(duration_number), duration_unit),
        payment=float(payment),
    )
    try:
        created = get_api(device).create_job(job)
    except HustlefyError as exc:
        body = _post_job_body(csrf_token, values, error=user_message(exc, CREATE_JOB_FAILED))
        return render_page("Post a new job", body, user=state.user, status_code=400)

    log.info("Job posted (%s) for %s", created.id if created else "?", format_money(job.payment))
    return _redirect(PROVIDER_DASHBOARD)


def _applicant_action(request: Request, csrf_token: str, job_id: str, application_id: str, action: str):
    device = get_device(request)
    blocked = enforce(protected(device.session.state, Role.provider))
    if blocked:
        return blocked
    if not validate_csrf(request, csrf_token):
        return HTMLResponse("Invalid or missing CSRF token.", status_code=403)

    api = get_api(device)
    try:
        if action == "accept":
            api.accept_applicant(job_id, application_id)
        else:
            api.reject_applicant(job_id, application_id)
    except HustlefyError as exc:
        log.warning("Could not %s applicant %s: %s", action, application_id, exc)
        return _redirect(f"{PROVIDER_DASHBOARD}?failed={action}")
    return _redirect(PROVIDER_DASHBOARD)


@router.post("/jobs/{job_id}/applicants/{application_id}/accept")
def accept_applicant(request: Request, job_id: str, application_id: str, csrf_token: str = Form("")):
    return _applicant_action(request, csrf_token, job_id, application_id, "accept")


@router.post("/jobs/{job_id}/applicants/{application_id}/reject")
def reject_applicant(request: Request, job_id: str, application_id: str, csrf_token: str = Form("")):
    return _applicant_action(request, csrf_token, job_id, application_id, "reject")


@router.post("/jobs/{job_id}/delete")
def delete_job(request: Request, job_id: str, csrf_token: str = Form("")):
    device = get_device(request)
    blocked = enforce(protected(device.session.state, Role.provider))
    if blocked:
        return blocked
    if not validate_csrf(request, csrf_token):
        return HTMLResponse("Invalid or missing CSRF token.", status_code=403)

    try:
        get_api(device).delete_job(job_id)
    except HustlefyError as exc:
        log.warning("Could not delete job %s: %s", job_id, exc)
        return _redirect(f"{PROVIDER_DASHBOARD}?failed=delete")
    log.info("Job %s deleted", job_id)
    return _redirect(PROVIDER_DASHBOARD)
