"""
HTTP client for the Hustlefy backend REST API.

All calls are one-shot: no retries, no queueing. Transport failures raise
`NetworkError`; non-2xx answers raise `ApiError` carrying the backend's
`message` when it sent one.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

import requests
from pydantic import BaseModel, ValidationError

from core.errors import ApiError, NetworkError
from core.models import (
    Application,
    ApplyRequest,
    GoogleLoginRequest,
    Job,
    JobCreate,
    LoginRequest,
    ProfileUpdate,
    RegisterRequest,
    SendOtpRequest,
    User,
    VerifyOtpRequest,
)

log = logging.getLogger("hustlefy.api")

UNEXPECTED_RESPONSE_MESSAGE = "Unexpected response from server"

M = TypeVar("M", bound=BaseModel)


def _parse_one(model: Type[M], raw: Any) -> M:
    try:
        return model.model_validate(raw)
    except ValidationError as exc:
        log.warning("Could not parse %s from backend: %s", model.__name__, exc.errors()[:3])
        # status 0: the request succeeded but the body did not match
        raise ApiError(0, UNEXPECTED_RESPONSE_MESSAGE) from exc


def _parse_many(model: Type[M], raw: Any) -> List[M]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ApiError(0, UNEXPECTED_RESPONSE_MESSAGE)
    return [_parse_one(model, item) for item in raw]


class ApiClient:
    def __init__(
        self,
        base_url: str,
        token_provider: Callable[[], Optional[str]] = lambda: None,
        timeout: float = 15.0,
        http: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._token_provider = token_provider
        self._http = http or requests.Session()

    # -------- plumbing --------

    def _headers(self, auth: bool) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if auth:
            token = self._token_provider()
            if token:
                headers["Authorization"] = f"Bearer {token}"
        return headers

    def request(
        self,
        method: str,
        path: str,
        body: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, str]] = None,
        auth: bool = True,
    ) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            response = self._http.request(
                method,
                url,
                json=body,
                params=params or None,
                headers=self._headers(auth),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            log.warning("%s %s failed: %s", method, path, exc.__class__.__name__)
            raise NetworkError() from exc

        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {"data": payload}

        if not response.ok:
            message = payload.get("message")
            log.info("%s %s -> %s", method, path, response.status_code)
            raise ApiError(
                response.status_code,
                message if isinstance(message, str) and message else None,
                payload,
            )

        log.debug("%s %s -> %s", method, path, response.status_code)
        return payload

    # -------- auth --------

    def register(self, data: RegisterRequest) -> Dict[str, Any]:
        return self.request("POST", "/auth/register", body=data.to_payload(), auth=False)

    def login(self, credentials: LoginRequest) -> Dict[str, Any]:
        return self.request("POST", "/auth/login", body=credentials.to_payload(), auth=False)

    def login_with_google(self, data: GoogleLoginRequest) -> Dict[str, Any]:
        return self.request("POST", "/auth/google", body=data.to_payload(), auth=False)

    def send_otp(self, data: SendOtpRequest) -> Dict[str, Any]:
        return self.request("POST", "/auth/send-otp", body=data.to_payload(), auth=False)

    def verify_otp(self, data: VerifyOtpRequest) -> Dict[str, Any]:
        return self.request("POST", "/auth/verify-otp", body=data.to_payload(), auth=False)

    def get_me(self) -> User:
        payload = self.request("GET", "/auth/me")
        return _parse_one(User, payload.get("data", payload.get("user")))

    # -------- profile --------

    def get_profile(self) -> User:
        payload = self.request("GET", "/profile")
        return _parse_one(User, payload.get("data"))

    def update_profile(self, update: ProfileUpdate) -> Dict[str, Any]:
        return self.request("PUT", "/profile", body=update.to_payload())

    # -------- jobs --------

    def get_jobs(
        self,
        category: Optional[str] = None,
        location: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List[Job]:
        params = {}
        if category:
            params["category"] = category
        if location:
            params["location"] = location
        if search:
            params["search"] = search
        payload = self.request("GET", "/jobs", params=params, auth=False)
        return _parse_many(Job, payload.get("data"))

    def get_job(self, job_id: str) -> Job:
        payload = self.request("GET", f"/jobs/{job_id}", auth=False)
        return _parse_one(Job, payload.get("data"))

    def create_job(self, job: JobCreate) -> Optional[Job]:
        payload = self.request("POST", "/jobs", body=job.to_payload())
        data = payload.get("data")
        return _parse_one(Job, data) if isinstance(data, dict) else None

    def get_my_jobs(self) -> List[Job]:
        payload = self.request("GET", "/jobs/my/jobs")
        return _parse_many(Job, payload.get("data"))

    def delete_job(self, job_id: str) -> None:
        self.request("DELETE", f"/jobs/{job_id}")

    # -------- applications --------

    def apply_for_job(self, job_id: str, application: ApplyRequest) -> Dict[str, Any]:
        return self.request("POST", f"/jobs/{job_id}/apply", body=application.to_payload())

    def get_job_applicants(self, job_id: str) -> List[Application]:
        payload = self.request("GET", f"/jobs/{job_id}/applicants")
        return _parse_many(Application, payload.get("data"))

    def accept_applicant(self, job_id: str, application_id: str) -> Dict[str, Any]:
        return self.request("POST", f"/jobs/{job_id}/accept/{application_id}")

    def reject_applicant(self, job_id: str, application_id: str) -> Dict[str, Any]:
        return self.request("POST", f"/jobs/{job_id}/reject/{application_id}")

    def get_my_applications(self) -> List[Application]:
        payload = self.request("GET", "/jobs/my/applications")
        return _parse_many(Application, payload.get("data"))


__all__ = ["ApiClient", "UNEXPECTED_RESPONSE_MESSAGE"]
