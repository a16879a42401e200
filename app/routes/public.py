import logging

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse

from app.device import get_api, get_device
from app.guards import LOADING, enforce
from app.layout import esc, render_alert, render_filter_form, render_job_card, render_page
from core.errors import HustlefyError
from core.jobs import JobFilters, available_categories, filter_jobs
from core.models import Role
from core.onboarding import dashboard_path

log = logging.getLogger("hustlefy.routes.public")

router = APIRouter()

LOAD_JOBS_FAILED = "Failed to load jobs. Please try again."


@router.get("/", response_class=HTMLResponse)
def home(request: Request):
    device = get_device(request)
    state = device.session.state
    if state.is_auth_loading:
        return enforce(LOADING)
    user = state.user if state.is_authenticated else None

    filters = JobFilters.from_params(request.query_params)
    error = ""
    jobs = []
    try:
        jobs = get_api(device).get_jobs()
    except HustlefyError as exc:
        log.warning("Home job list unavailable: %s", exc)
        error = LOAD_JOBS_FAILED

    shown = filter_jobs(jobs, filters)

    # Visitors and seekers get an apply button; providers only browse.
    can_apply = user is None or user.role == Role.seeker
    if user is None:
        hero_cta = """
          <a href="/signup?role=seeker"><button type="button">Find work</button></a>
          <a href="/signup?role=provider"><button type="button" class="secondary">Post a task</button></a>
        """
    else:
        hero_cta = f'<a href="{dashboard_path(user)}"><button type="button">Go to dashboard</button></a>'

    if shown:
        cards = "".join(render_job_card(job, f"/apply/{job.id}" if can_apply else None) for job in shown)
    elif error:
        cards = ""
    elif filters.is_empty():
        cards = '<p class="muted">No jobs have been posted yet.</p>'
    else:
        cards = '<p class="muted">No jobs match your filters.</p>'

    body = f"""
    <div class="card">
      <p>Quick, local jobs. Earn on your schedule or get a hand when you need one.</p>
      {hero_cta}
    </div>
    {render_filter_form("/", filters, available_categories(jobs))}
    {render_alert(error)}
    <p class="muted">{len(shown)} job{"" if len(shown) == 1 else "s"} found</p>
    {cards}
    """
    if user is not None and user.role == Role.provider:
        body += f'<p class="muted">Signed in as a provider ({esc(user.email)}). Only job seekers can apply to jobs.</p>'
    return render_page("Available jobs", body, user=user)
