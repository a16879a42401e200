"""
Profile form shared by the onboarding and profile screens.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from app.layout import esc, field_error
from core.categories import WORK_CATEGORIES, category_emoji
from core.models import ProfileUpdate, Role, User
from core.validation import normalize_phone, strip_html, validate_profile


@dataclass
class ProfileForm:
    name: str = ""
    phone: str = ""
    location: str = ""
    bio: str = ""
    role: Optional[Role] = None
    work_categories: List[str] = field(default_factory=list)

    @classmethod
    def from_user(cls, user: Optional[User]) -> "ProfileForm":
        if user is None:
            return cls()
        return cls(
            name=user.name,
            phone=user.phone or "",
            location=user.location,
            bio=user.bio,
            role=user.role,
            work_categories=list(user.work_categories),
        )

    def validate(self) -> Dict[str, str]:
        return validate_profile(self.name, self.phone, self.role, self.work_categories, self.bio)

    def to_update(self) -> ProfileUpdate:
        is_seeker = self.role == Role.seeker
        return ProfileUpdate(
            name=self.name.strip(),
            phone=normalize_phone(self.phone) or self.phone.strip(),
            role=self.role,
            location=self.location.strip(),
            work_categories=self.work_categories if is_seeker else [],
            bio=strip_html(self.bio.strip()) if is_seeker else "",
        )


def parse_role(raw: str) -> Optional[Role]:
    try:
        return Role(raw)
    except ValueError:
        return None


def render_profile_fields(form: ProfileForm, errors: Dict[str, str], role_editable: bool, email: str = "") -> str:
    if role_editable:
        choices = []
        for role, label in ((Role.seeker, "Find work (job seeker)"), (Role.provider, "Post tasks (job provider)")):
            checked = " checked" if form.role == role else ""
            choices.append(
                f'<label><input type="radio" name="role" value="{role.value}"{checked} /> {label}</label>'
            )
        role_html = f"""
        <label>How will you use Hustlefy?</label>
        {"".join(choices)}
        {field_error(errors, "role")}
        """
    else:
        role_value = form.role.value if form.role else ""
        role_label = "Job provider" if form.role == Role.provider else "Job seeker"
        role_html = f"""
        <input type="hidden" name="role" value="{esc(role_value)}" />
        <p class="muted">Account type: <span class="badge">{role_label}</span></p>
        """

    email_html = ""
    if email:
        email_html = f"""
        <label>Email</label>
        <input type="email" value="{esc(email)}" disabled />
        """

    boxes = []
    for category in WORK_CATEGORIES:
        checked = " checked" if category in form.work_categories else ""
        boxes.append(
            f'<label><input type="checkbox" name="work_categories" value="{esc(category)}"{checked} /> '
            f"{category_emoji(category)} {esc(category)}</label>"
        )

    seeker_html = f"""
    <fieldset>
      <legend>Seekers only</legend>
      <label>Work categories</label>
      {"".join(boxes)}
      {field_error(errors, "work_categories")}

      <label>About you</label>
      <textarea name="bio" rows="4" maxlength="300">{esc(form.bio)}</textarea>
      {field_error(errors, "bio")}
    </fieldset>
    """
    if not role_editable and form.role == Role.provider:
        seeker_html = ""

    return f"""
    {role_html}
    {email_html}
    <label>Full name</label>
    <input type="text" name="name" maxlength="50" value="{esc(form.name)}" />
    {field_error(errors, "name")}

    <label>Phone number</label>
    <input type="tel" name="phone" maxlength="20" value="{esc(form.phone)}" placeholder="+91 98765 43210" />
    {field_error(errors, "phone")}

    <label>Location</label>
    <input type="text" name="location" maxlength="100" value="{esc(form.location)}" />

    {seeker_html}
    """
