"""
Auth operations: each is one backend call that, on success, replaces the
session contents and the persisted credential.

Failures raise `AuthError` and leave the session exactly as it was.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

from pydantic import ValidationError

from core.api import ApiClient
from core.errors import ApiError, AuthError, HustlefyError, user_message
from core.models import (
    GoogleLoginRequest,
    GoogleLoginResult,
    LoginRequest,
    ProfileUpdate,
    RegisterRequest,
    SendOtpRequest,
    User,
    VerifyOtpRequest,
)
from core.session import SessionService

log = logging.getLogger("hustlefy.auth")

LOGIN_FAILED = "Login failed"
GOOGLE_FAILED = "Google sign-in failed"
REGISTER_FAILED = "Registration failed"
SEND_OTP_FAILED = "Failed to send OTP. Please try again."
VERIFY_OTP_FAILED = "Invalid OTP. Please try again."
PROFILE_UPDATE_FAILED = "Profile update failed"


def _auth_error(exc: HustlefyError, fallback: str) -> AuthError:
    return AuthError(user_message(exc, fallback))


def _extract_credentials(container: Any) -> Tuple[Optional[User], Optional[str]]:
    if not isinstance(container, dict):
        return None, None
    raw_user = container.get("user")
    token = container.get("token")
    if not isinstance(raw_user, dict) or not isinstance(token, str) or not token:
        return None, None
    try:
        return User.model_validate(raw_user), token
    except ValidationError:
        log.warning("Backend returned an unreadable user record")
        return None, None


def _message(payload: Dict[str, Any], fallback: str) -> str:
    message = payload.get("message")
    return message if isinstance(message, str) and message else fallback


class AuthService:
    def __init__(self, session: SessionService, api: ApiClient):
        self._session = session
        self._api = api

    def login_with_credentials(self, email: str, password: str) -> User:
        try:
            payload = self._api.login(LoginRequest(email=email.strip(), password=password))
        except HustlefyError as exc:
            raise _auth_error(exc, LOGIN_FAILED) from exc

        user, token = _extract_credentials(payload.get("data"))
        if user is None or token is None:
            raise AuthError(_message(payload, LOGIN_FAILED))

        self._session.login(user, token)
        log.info("Credential login succeeded for user %s", user.id)
        return user

    def login_with_google(self, credential: str) -> GoogleLoginResult:
        try:
            payload = self._api.login_with_google(GoogleLoginRequest(credential=credential))
        except HustlefyError as exc:
            raise _auth_error(exc, GOOGLE_FAILED) from exc

        user, token = _extract_credentials(payload)
        if user is None or token is None:
            raise AuthError(_message(payload, GOOGLE_FAILED))

        self._session.login(user, token)
        is_new_user = bool(payload.get("isNewUser"))
        log.info("Google login succeeded for user %s (new=%s)", user.id, is_new_user)
        return GoogleLoginResult(user=user, token=token, is_new_user=is_new_user)

    def register(self, request: RegisterRequest) -> User:
        try:
            payload = self._api.register(request)
        except HustlefyError as exc:
            raise _auth_error(exc, REGISTER_FAILED) from exc

        # Some backend versions wrap the credentials in `data`, others do not.
        user, token = _extract_credentials(payload.get("data"))
        if user is None:
            user, token = _extract_credentials(payload)
        if user is None or token is None:
            raise AuthError(_message(payload, REGISTER_FAILED))

        self._session.login(user, token)
        log.info("Registered user %s as %s", user.id, request.role.value)
        return user

    def send_otp(self, email: str, password: str) -> None:
        try:
            self._api.send_otp(SendOtpRequest(email=email.strip(), password=password))
        except HustlefyError as exc:
            raise _auth_error(exc, SEND_OTP_FAILED) from exc

    def verify_otp(self, email: str, otp: str, password: str) -> User:
        try:
            payload = self._api.verify_otp(VerifyOtpRequest(email=email.strip(), otp=otp, password=password))
        except HustlefyError as exc:
            raise _auth_error(exc, VERIFY_OTP_FAILED) from exc

        user, token = _extract_credentials(payload)
        if user is None:
            user, token = _extract_credentials(payload.get("data"))
        if user is None or token is None:
            raise AuthError(_message(payload, VERIFY_OTP_FAILED))

        self._session.login(user, token)
        log.info("Signup verified for user %s", user.id)
        return user

    def update_profile(self, update: ProfileUpdate) -> User:
        """PUT the profile; a token in the answer replaces the stored one with a fresh expiry."""
        try:
            payload = self._api.update_profile(update)
        except HustlefyError as exc:
            raise _auth_error(exc, PROFILE_UPDATE_FAILED) from exc

        raw_user = payload.get("data")
        if not isinstance(raw_user, dict):
            raise AuthError(_message(payload, PROFILE_UPDATE_FAILED))
        try:
            user = User.model_validate(raw_user)
        except ValidationError as exc:
            raise AuthError(PROFILE_UPDATE_FAILED) from exc

        token = payload.get("token")
        if isinstance(token, str) and token:
            self._session.login(user, token)
        else:
            self._session.update_user(user)
        log.info("Profile updated for user %s", user.id)
        return user

    def refresh_profile(self) -> User:
        """Pull the server copy of the profile into the session; `/auth/me` when there is no profile record."""
        try:
            user = self._api.get_profile()
        except ApiError as exc:
            if exc.status_code != 404:
                raise
            log.info("No profile record; reading the account from /auth/me")
            user = self._api.get_me()
        self._session.update_user(user)
        return user

    def logout(self) -> None:
        self._session.logout()


__all__ = [
    "AuthService",
    "LOGIN_FAILED",
    "GOOGLE_FAILED",
    "REGISTER_FAILED",
    "SEND_OTP_FAILED",
    "VERIFY_OTP_FAILED",
    "PROFILE_UPDATE_FAILED",
]
