"""
Shared HTML layout and small rendering helpers.
"""
from __future__ import annotations

import html
from typing import Dict, Iterable, Optional

from fastapi.responses import HTMLResponse

from core.categories import category_emoji
from core.jobs import DURATION_BUCKETS, OTHER, PAY_RANGES, JobFilters
from core.models import Job, Role, User


def esc(value) -> str:
    return html.escape("" if value is None else str(value), quote=True)


def format_money(amount: float) -> str:
    return f"₹{int(amount)}" if float(amount).is_integer() else f"₹{amount:.2f}"


def render_page(title: str, body: str, user: Optional[User] = None, status_code: int = 200) -> HTMLResponse:
    """
    Shared layout: warm background, nav bar that follows the signed-in role.
    """
    if user:
        role_links = ""
        if user.role == Role.provider:
            role_links = """
              <a href="/provider/dashboard">📋 Dashboard</a>
              <a href="/provider/post-job">➕ Post a task</a>
            """
        elif user.role == Role.seeker:
            role_links = '<a href="/seeker/dashboard">🔎 Dashboard</a>'
        auth_links = f"""
          {role_links}
          <a href="/profile">👤 Profile</a>
          <a href="/logout">Logout</a>
        """
        signed_in_text = f"Signed in as <strong>{esc(user.name or user.email)}</strong>"
    else:
        auth_links = """
          <a href="/login">Login</a>
          <a href="/signup" class="cta">Sign up</a>
        """
        signed_in_text = "Not signed in"

    page = f"""
    <!DOCTYPE html>
    <html>
      <head>
        <meta charset="utf-8" />
        <meta name="viewport" content="width=device-width, initial-scale=1" />
        <title>{esc(title)} – Hustlefy</title>
        <style>
          * {{
            box-sizing: border-box;
          }}
          body {{
            font-family: system-ui, -apple-system, BlinkMacSystemFont, "Segoe UI", sans-serif;
            margin: 0;
            background: #fff7ed;
            color: #1f2937;
          }}
          .page {{
            max-width: 1040px;
            margin: 0 auto;
            padding: 1.25rem 1rem 3rem;
          }}
          header {{
            display: flex;
            flex-wrap: wrap;
            justify-content: space-between;
            align-items: center;
            gap: 0.75rem;
            padding: 0.75rem 1rem;
            background: #ffffff;
            border-radius: 0.75rem;
            box-shadow: 0 4px 14px rgba(249, 115, 22, 0.12);
          }}
          header h1 {{
            font-size: 1.3rem;
            margin: 0;
            color: #ea580c;
          }}
          nav {{
            display: flex;
            flex-wrap: wrap;
            gap: 0.5rem;
          }}
          nav a {{
            text-decoration: none;
            color: #374151;
            padding: 6px 10px;
            border-radius: 8px;
          }}
          nav a:hover {{
            background: #ffedd5;
          }}
          nav a.cta {{
            background: #f97316;
            color: #ffffff;
          }}
          .signed-in {{
            font-size: 0.8rem;
            color: #6b7280;
          }}
          main {{
            margin-top: 1.25rem;
          }}
          .card {{
            background: #ffffff;
            border-radius: 0.75rem;
            padding: 1rem 1.25rem;
            margin-bottom: 1rem;
            box-shadow: 0 6px 20px rgba(15, 23, 42, 0.06);
          }}
          .form-card {{
            max-width: 640px;
            margin: 0 auto 1rem;
          }}
          label {{
            display: block;
            margin-top: 0.9rem;
            font-size: 0.92rem;
            font-weight: 500;
          }}
          input:not([type="checkbox"]):not([type="radio"]), select, textarea {{
            width: 100%;
            padding: 0.55rem;
            margin-top: 0.25rem;
            border-radius: 0.5rem;
            border: 1px solid #e5e7eb;
            background: #ffffff;
            font: inherit;
          }}
          button {{
            margin-top: 1.2rem;
            padding: 0.65rem 1.3rem;
            border-radius: 0.5rem;
            border: none;
            background: #ea580c;
            color: #ffffff;
            font-weight: 600;
            cursor: pointer;
          }}
          button.secondary {{
            background: #e5e7eb;
            color: #111827;
          }}
          button.danger {{
            background: #ef4444;
          }}
          .inline-form {{
            display: inline;
          }}
          .inline-form button {{
            margin-top: 0.25rem;
            padding: 0.35rem 0.8rem;
          }}
          .filters {{
            display: grid;
            grid-template-columns: repeat(auto-fit, minmax(150px, 1fr));
            gap: 0.6rem;
            align-items: end;
          }}
          .job {{
            border: 1px solid #fed7aa;
            border-radius: 0.75rem;
            padding: 0.9rem 1rem;
            margin-top: 0.75rem;
            background: #ffffff;
          }}
          .job h3 {{
            margin: 0 0 0.35rem;
          }}
          .pay {{
            font-weight: 700;
            color: #15803d;
          }}
          .badge {{
            display: inline-block;
            padding: 0.1rem 0.55rem;
            border-radius: 999px;
            background: #ffedd5;
            color: #9a3412;
            font-size: 0.8rem;
            margin-right: 0.3rem;
          }}
          .badge.accepted {{ background: #dcfce7; color: #166534; }}
          .badge.rejected {{ background: #fee2e2; color: #991b1b; }}
          .badge.pending {{ background: #fef9c3; color: #854d0e; }}
          .meta {{
            color: #6b7280;
            font-size: 0.88rem;
          }}
          .error {{
            color: #dc2626;
            font-size: 0.85rem;
          }}
          .alert {{
            padding: 0.7rem 0.9rem;
            border-radius: 0.5rem;
            margin-bottom: 0.75rem;
          }}
          .alert.error {{ background: #fef2f2; border: 1px solid #fecaca; }}
          .alert.success {{ background: #f0fdf4; border: 1px solid #bbf7d0; color: #166534; }}
          .alert.info {{ background: #fffbeb; border: 1px solid #fde68a; color: #92400e; }}
          .stats {{
            display: grid;
            grid-template-columns: repeat(auto-fit, minmax(150px, 1fr));
            gap: 0.75rem;
            margin-bottom: 1rem;
          }}
          .stat .label {{
            font-size: 0.8rem;
            color: #6b7280;
          }}
          .stat .value {{
            font-size: 1.5rem;
            font-weight: 700;
          }}
          .muted {{
            color: #6b7280;
            font-size: 0.88rem;
          }}
          footer {{
            margin-top: 2.5rem;
            text-align: center;
            font-size: 0.85rem;
            color: #6b7280;
          }}
        </style>
      </head>
      <body>
        <div class="page">
          <header>
            <div>
              <h1>Hustlefy</h1>
              <div class="signed-in">{signed_in_text}</div>
            </div>
            <nav>
              <a href="/">🏠 Home</a>
              {auth_links}
            </nav>
          </header>
          <main>
            <h2>{esc(title)}</h2>
            {body}
          </main>
          <footer>(c) 2025 Hustlefy. Quick, local jobs on your schedule.</footer>
        </div>
      </body>
    </html>
    """
    return HTMLResponse(content=page, status_code=status_code)


def render_loading_page() -> HTMLResponse:
    """Placeholder shown while a device session is still being restored."""
    body = """
    <meta http-equiv="refresh" content="1" />
    <div class="card"><p class="muted">Loading…</p></div>
    """
    return render_page("Loading", body, user=None)


def render_alert(message: Optional[str], kind: str = "error") -> str:
    if not message:
        return ""
    return f'<div class="alert {kind}">{esc(message)}</div>'


def field_error(errors: Dict[str, str], field: str) -> str:
    message = errors.get(field)
    return f'<div class="error">{esc(message)}</div>' if message else ""


def render_options(values: Iterable[str], selected: Optional[str], placeholder: Optional[str] = None) -> str:
    options = []
    if placeholder is not None:
        options.append(f'<option value="">{esc(placeholder)}</option>')
    for value in values:
        mark = " selected" if value == selected else ""
        options.append(f'<option value="{esc(value)}"{mark}>{esc(value)}</option>')
    return "".join(options)


def render_job_card(job: Job, apply_href: Optional[str] = None) -> str:
    people = job.people_needed
    spots_left = max(0, job.people_needed - job.people_accepted)
    apply_html = f'<a href="{esc(apply_href)}"><button type="button">Apply</button></a>' if apply_href else ""
    category_html = (
        f'<span class="badge">{category_emoji(job.category)} {esc(job.category)}</span>' if job.category else ""
    )
    return f"""
    <div class="job">
      <h3>{esc(job.title)}</h3>
      <div><span class="pay">{format_money(job.payment)}</span> {category_html}</div>
      <div class="meta">
        ⏱ {esc(job.duration)} · 📍 {esc(job.location)} · 👥 {people} {"person" if people == 1 else "people"}
        ({spots_left} spot{"" if spots_left == 1 else "s"} left)
      </div>
      <p>{esc(job.description)}</p>
      {apply_html}
    </div>
    """


def render_filter_form(action: str, filters: JobFilters, categories: Iterable[str]) -> str:
    """Search box plus category / location / pay / duration selects (GET form)."""
    return f"""
    <form method="get" action="{esc(action)}" class="card filters">
      <label>Search
        <input type="text" name="search" maxlength="100" value="{esc(filters.search_term or "")}"
               placeholder="Title, description or location" />
      </label>
      <label>Category
        <select name="category">{render_options(categories, filters.category, "All categories")}</select>
      </label>
      <label>Location
        <input type="text" name="location" maxlength="100" value="{esc(filters.location or "")}" />
      </label>
      <label>Pay
        <select name="pay_range">{render_options(PAY_RANGES, filters.pay_range, "Any pay")}</select>
      </label>
      <label>Duration
        <select name="duration">{render_options(DURATION_BUCKETS + [OTHER], filters.duration, "Any duration")}</select>
      </label>
      <div>
        <button type="submit">Filter</button>
        <a href="{esc(action)}" class="muted">Clear</a>
      </div>
    </form>
    """
