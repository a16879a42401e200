"""
Typed records exchanged with the Hustlefy backend.

The backend speaks camelCase JSON with Mongo-style `_id` keys and sometimes
nests the referenced document (a job's provider, an application's job or
seeker) instead of sending a bare id. These models accept both forms and
expose snake_case attributes to the rest of the code.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


# ============================================================
# ENUMS
# ============================================================

class Role(str, Enum):
    provider = "provider"
    seeker = "seeker"


class ApplicationStatus(str, Enum):
    pending = "pending"
    accepted = "accepted"
    rejected = "rejected"
    fulfilled = "fulfilled"


def _id_field() -> Any:
    return Field(default="", validation_alias=AliasChoices("_id", "id"), serialization_alias="id")


class _Record(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    @field_validator("id", mode="before", check_fields=False)
    @classmethod
    def _stringify_id(cls, value: Any) -> Any:
        if value is None:
            return ""
        return str(value) if not isinstance(value, str) else value


# ============================================================
# RESPONSE RECORDS
# ============================================================

class User(_Record):
    id: str = _id_field()
    name: str = ""
    email: str = ""
    phone: Optional[str] = None
    profile_picture: Optional[str] = None
    location: str = ""
    work_categories: List[str] = Field(default_factory=list)
    bio: str = ""
    # Absent until the account picks a side during onboarding.
    role: Optional[Role] = None

    @field_validator("name", "email", "location", "bio", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("work_categories", mode="before")
    @classmethod
    def _none_to_list(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("role", mode="before")
    @classmethod
    def _blank_role(cls, value: Any) -> Any:
        return None if value in ("", None) else value

    def to_storage(self) -> Dict[str, Any]:
        """JSON-ready dict in the backend's own key style."""
        return self.model_dump(mode="json", by_alias=True)

    def merged(self, patch: Dict[str, Any]) -> "User":
        """Return a copy with `patch` applied; keys may be camelCase or snake_case."""
        data = self.model_dump()
        for key, value in patch.items():
            data[_USER_FIELD_BY_KEY.get(key, key)] = value
        return User.model_validate(data)


_USER_FIELD_BY_KEY: Dict[str, str] = {"_id": "id"}
for _name, _field in User.model_fields.items():
    _USER_FIELD_BY_KEY[_name] = _name
    if _field.alias:
        _USER_FIELD_BY_KEY[_field.alias] = _name


class Job(_Record):
    id: str = _id_field()
    title: str = ""
    description: str = ""
    location: str = ""
    category: str = ""
    people_needed: int = 1
    people_accepted: int = 0
    duration: str = ""
    payment: float = 0
    provider_id: Optional[str] = None
    provider_name: str = ""
    status: str = "open"
    created_at: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _flatten_provider(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        provider = data.get("providerId", data.get("provider_id"))
        if isinstance(provider, dict):
            data = dict(data)
            data.pop("provider_id", None)
            data["providerId"] = str(provider.get("_id") or provider.get("id") or "")
            if not data.get("providerName") and not data.get("provider_name"):
                data["providerName"] = provider.get("name") or ""
        return data

    @field_validator("title", "description", "location", "category", "duration", "provider_name", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class Application(_Record):
    id: str = _id_field()
    job_id: str = ""
    job: Optional[Job] = None
    seeker_id: str = ""
    seeker: Optional[User] = None
    seeker_name: str = ""
    seeker_bio: str = ""
    seeker_categories: List[str] = Field(default_factory=list)
    message: str = ""
    status: ApplicationStatus = ApplicationStatus.pending
    created_at: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _flatten_refs(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        job = data.pop("jobId", data.pop("job_id", None))
        if isinstance(job, dict):
            data["job"] = job
            data["jobId"] = str(job.get("_id") or job.get("id") or "")
        elif job is not None:
            data["jobId"] = str(job)
        seeker = data.pop("seekerId", data.pop("seeker_id", None))
        if isinstance(seeker, dict):
            data["seeker"] = seeker
            data["seekerId"] = str(seeker.get("_id") or seeker.get("id") or "")
            if not data.get("seekerName"):
                data["seekerName"] = seeker.get("name") or ""
        elif seeker is not None:
            data["seekerId"] = str(seeker)
        return data

    @field_validator("message", "seeker_name", "seeker_bio", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @property
    def job_title(self) -> str:
        return self.job.title if self.job else ""


class GoogleLoginResult(BaseModel):
    user: User
    token: str
    is_new_user: bool = False


# ============================================================
# REQUEST BODIES
# ============================================================

class _Payload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class LoginRequest(_Payload):
    email: str
    password: str


class RegisterRequest(_Payload):
    name: str
    email: str
    password: str
    role: Role
    phone: Optional[str] = None


class GoogleLoginRequest(_Payload):
    credential: str


class SendOtpRequest(_Payload):
    email: str
    password: str


class VerifyOtpRequest(_Payload):
    email: str
    otp: str
    password: str


class ProfileUpdate(_Payload):
    name: str
    phone: str
    role: Optional[Role] = None
    location: str = ""
    work_categories: List[str] = Field(default_factory=list)
    bio: str = ""


class JobCreate(_Payload):
    title: str
    description: str
    location: str
    category: str
    people_needed: int
    duration: str
    payment: float


class ApplyRequest(_Payload):
    message: Optional[str] = None


__all__ = [
    "Role",
    "ApplicationStatus",
    "User",
    "Job",
    "Application",
    "GoogleLoginResult",
    "LoginRequest",
    "RegisterRequest",
    "GoogleLoginRequest",
    "SendOtpRequest",
    "VerifyOtpRequest",
    "ProfileUpdate",
    "JobCreate",
    "ApplyRequest",
]
