"""
Client-side form validation.

Each validator returns a dict of field -> message; an empty dict means the
form may be submitted. Nothing that fails here is ever sent to the backend.
"""
from __future__ import annotations

import math
import re
from typing import Dict, Iterable, Optional

import phonenumbers
from email_validator import EmailNotValidError, validate_email
from phonenumbers import NumberParseException, PhoneNumberFormat

from core.categories import WORK_CATEGORIES
from core.models import Role

Errors = Dict[str, str]

MIN_PASSWORD_LENGTH = 6
OTP_LENGTH = 6
NAME_MAX = 50
BIO_MIN = 20
BIO_MAX = 300
TITLE_MIN, TITLE_MAX = 5, 50
DESCRIPTION_MIN, DESCRIPTION_MAX = 20, 500
PEOPLE_MIN, PEOPLE_MAX = 1, 50
DURATION_MAX = 999
APPLY_MESSAGE_MAX = 500

DURATION_UNITS = {
    "hours": ("Hour", "Hours"),
    "days": ("Day", "Days"),
    "weeks": ("Week", "Weeks"),
    "months": ("Month", "Months"),
}

_NAME_RE = re.compile(r"^[a-zA-Z\s'-]+$")
_TAG_RE = re.compile(r"<[^>]*>")


def strip_html(value: str) -> str:
    return _TAG_RE.sub("", value or "")


def is_valid_email(email: str) -> bool:
    email = (email or "").strip()
    if not email:
        return False
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def normalize_phone(phone: str, default_region: Optional[str] = "IN") -> Optional[str]:
    """E.164 form of `phone`, or None when it is not a valid number."""
    try:
        parsed = phonenumbers.parse((phone or "").strip(), default_region)
    except NumberParseException:
        return None
    if not phonenumbers.is_valid_number(parsed):
        return None
    return phonenumbers.format_number(parsed, PhoneNumberFormat.E164)


def parse_int(raw: str) -> Optional[int]:
    """Leading integer of `raw` ("5 people" -> 5), like the browser's parseInt."""
    match = re.match(r"^\s*(-?\d+)", str(raw or ""))
    return int(match.group(1)) if match else None


# -------- auth forms --------

def validate_login(email: str, password: str) -> Errors:
    errors: Errors = {}
    if not (email or "").strip():
        errors["email"] = "Please enter your email address"
    elif not is_valid_email(email):
        errors["email"] = "Please enter a valid email address"
    if len(password or "") < MIN_PASSWORD_LENGTH:
        errors["password"] = f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
    return errors


def validate_signup(email: str, password: str, confirm_password: str) -> Errors:
    errors = validate_login(email, password)
    if password != confirm_password:
        errors["confirm_password"] = "Passwords do not match"
    return errors


def validate_otp(otp: str) -> Errors:
    otp = (otp or "").strip()
    if len(otp) != OTP_LENGTH or not otp.isdigit():
        return {"otp": f"Please enter a valid {OTP_LENGTH}-digit OTP"}
    return {}


# -------- profile / onboarding --------

def validate_name(name: str) -> Optional[str]:
    trimmed = (name or "").strip()
    if not trimmed:
        return "Name is required"
    if len(trimmed) > NAME_MAX:
        return f"Name must be {NAME_MAX} characters or less"
    if not _NAME_RE.match(trimmed):
        return "Name can only contain letters, spaces, hyphens, and apostrophes"
    return None


def validate_phone(phone: str) -> Optional[str]:
    if not (phone or "").strip():
        return "Phone number is required"
    if normalize_phone(phone) is None:
        return "Please enter a valid phone number"
    return None


def validate_work_categories(categories: Iterable[str], role: Optional[Role]) -> Optional[str]:
    if role != Role.seeker:
        return None
    categories = list(categories)
    if not categories:
        return "At least one work category is required"
    if any(c not in WORK_CATEGORIES for c in categories):
        return "Invalid categories selected"
    return None


def validate_bio(bio: str, role: Optional[Role]) -> Optional[str]:
    if role != Role.seeker:
        return None
    stripped = strip_html((bio or "").strip())
    if not stripped:
        return "Bio is required"
    if len(stripped) > BIO_MAX:
        return f"Bio must be {BIO_MAX} characters or less"
    if len(stripped) < BIO_MIN:
        return f"Bio must be at least {BIO_MIN} characters"
    return None


def validate_profile(
    name: str,
    phone: str,
    role: Optional[Role],
    work_categories: Iterable[str] = (),
    bio: str = "",
) -> Errors:
    checks = {
        "name": validate_name(name),
        "phone": validate_phone(phone),
        "work_categories": validate_work_categories(work_categories, role),
        "bio": validate_bio(bio, role),
    }
    if role is None:
        checks["role"] = "Please choose how you want to use Hustlefy"
    return {field: message for field, message in checks.items() if message}


# -------- job posting --------

def format_duration(number: int, unit: str) -> str:
    labels = DURATION_UNITS.get(unit)
    if not labels:
        return ""
    singular, plural = labels
    return f"{number} {singular if number == 1 else plural}"


def validate_job_post(
    title: str,
    description: str,
    location: str,
    category: str,
    people_needed: str,
    duration_number: str,
    duration_unit: str,
    payment: str,
) -> Errors:
    errors: Errors = {}

    title = (title or "").strip()
    if not title:
        errors["title"] = "Title is required"
    elif len(title) < TITLE_MIN:
        errors["title"] = f"Title must be at least {TITLE_MIN} characters"
    elif len(title) > TITLE_MAX:
        errors["title"] = f"Title must not exceed {TITLE_MAX} characters"

    description = (description or "").strip()
    if not description:
        errors["description"] = "Description is required"
    elif len(description) < DESCRIPTION_MIN:
        errors["description"] = f"Description must be at least {DESCRIPTION_MIN} characters"
    elif len(description) > DESCRIPTION_MAX:
        errors["description"] = f"Description must not exceed {DESCRIPTION_MAX} characters"

    if not (location or "").strip():
        errors["location"] = "Location is required"

    if not category:
        errors["category"] = "Category is required"
    elif category not in WORK_CATEGORIES:
        errors["category"] = "Please select a valid category"

    if str(people_needed or "").strip() == "":
        errors["people_needed"] = "People needed is required"
    else:
        people = parse_int(people_needed)
        if people is None:
            errors["people_needed"] = "People needed must be a number"
        elif people < PEOPLE_MIN:
            errors["people_needed"] = "At least 1 person is required"
        elif people > PEOPLE_MAX:
            errors["people_needed"] = f"Cannot exceed {PEOPLE_MAX} people"

    if str(duration_number or "").strip() == "":
        errors["duration_number"] = "Duration is required"
    else:
        amount = parse_int(duration_number)
        if amount is None:
            errors["duration_number"] = "Duration must be a number"
        elif amount <= 0:
            errors["duration_number"] = "Duration must be greater than 0"
        elif amount > DURATION_MAX:
            errors["duration_number"] = f"Duration cannot exceed {DURATION_MAX}"

    if not duration_unit:
        errors["duration_unit"] = "Duration unit is required"
    elif duration_unit not in DURATION_UNITS:
        errors["duration_unit"] = "Please select a valid duration unit"

    try:
        amount_paid = float(str(payment).strip())
    except ValueError:
        errors["payment"] = "Payment must be a valid number"
    else:
        if not math.isfinite(amount_paid):
            errors["payment"] = "Payment must be a valid number"
        elif amount_paid < 0:
            errors["payment"] = "Payment cannot be negative"

    return errors


def validate_application_message(message: str) -> Errors:
    if len((message or "").strip()) > APPLY_MESSAGE_MAX:
        return {"message": f"Message must not exceed {APPLY_MESSAGE_MAX} characters"}
    return {}


__all__ = [
    "DURATION_UNITS",
    "strip_html",
    "is_valid_email",
    "normalize_phone",
    "validate_login",
    "validate_signup",
    "validate_otp",
    "validate_name",
    "validate_phone",
    "validate_work_categories",
    "validate_bio",
    "validate_profile",
    "format_duration",
    "parse_int",
    "validate_job_post",
    "validate_application_message",
]
