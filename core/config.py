"""
Environment-driven settings for the Hustlefy front end.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

# Load `.env` for local/dev runs (override=True so updates take effect after restart).
load_dotenv(override=True)

log = logging.getLogger("hustlefy.config")

DEFAULT_API_BASE_URL = "http://localhost:5000/api"
DEFAULT_TOKEN_TTL_MS = 24 * 60 * 60 * 1000  # 24 hours
DEFAULT_STORAGE_PATH = "hustlefy_device.db"
DEFAULT_REQUEST_TIMEOUT = 15.0


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _token_ttl_ms() -> int:
    raw = os.getenv("TOKEN_TTL_MS") or os.getenv("VITE_TOKEN_TTL_MS")
    if not raw:
        return DEFAULT_TOKEN_TTL_MS
    try:
        value = int(float(raw))
    except ValueError:
        log.warning("Ignoring non-numeric TOKEN_TTL_MS=%r", raw)
        return DEFAULT_TOKEN_TTL_MS
    if value <= 0:
        log.warning("Ignoring non-positive TOKEN_TTL_MS=%r", raw)
        return DEFAULT_TOKEN_TTL_MS
    return value


def _request_timeout() -> float:
    raw = os.getenv("HUSTLEFY_REQUEST_TIMEOUT")
    if not raw:
        return DEFAULT_REQUEST_TIMEOUT
    try:
        return float(raw)
    except ValueError:
        return DEFAULT_REQUEST_TIMEOUT


@dataclass(frozen=True)
class Settings:
    api_base_url: str = DEFAULT_API_BASE_URL
    google_client_id: str = ""
    token_ttl_ms: int = DEFAULT_TOKEN_TTL_MS
    storage_path: str = DEFAULT_STORAGE_PATH
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    signup_requires_otp: bool = True
    cookie_secure: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            api_base_url=(os.getenv("HUSTLEFY_API_URL") or os.getenv("VITE_API_URL") or DEFAULT_API_BASE_URL).rstrip("/"),
            google_client_id=os.getenv("GOOGLE_CLIENT_ID", ""),
            token_ttl_ms=_token_ttl_ms(),
            storage_path=os.getenv("HUSTLEFY_STORAGE_PATH", DEFAULT_STORAGE_PATH),
            request_timeout=_request_timeout(),
            signup_requires_otp=_env_flag("SIGNUP_REQUIRE_OTP", True),
            cookie_secure=(
                _env_flag("COOKIE_SECURE", False)
                or os.getenv("PUBLIC_BASE_URL", "").lower().startswith("https://")
            ),
        )


@lru_cache()
def get_settings() -> Settings:
    return Settings.from_env()


__all__ = [
    "DEFAULT_API_BASE_URL",
    "DEFAULT_TOKEN_TTL_MS",
    "Settings",
    "get_settings",
]
