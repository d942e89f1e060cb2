"""
Settings for the login flow, read from environment variables.

The entry point calls load_dotenv() before importing this package, so values
from a local .env file are visible here. Numeric values that fail to parse
fall back to their defaults.
"""

import os
from dataclasses import dataclass
from typing import Optional

_TRUTHY = {"1", "true", "yes", "on"}


def _env(key: str, default: str) -> str:
    value = os.getenv(key)
    if value is None or not value.strip():
        return default
    return value.strip()


def _env_float(key: str, default: float) -> float:
    try:
        return float(_env(key, str(default)))
    except ValueError:
        return default


def _env_int(key: str, default: int) -> int:
    try:
        return int(_env(key, str(default)))
    except ValueError:
        return default


def _env_flag(*keys: str) -> bool:
    return any((os.getenv(key) or "").strip().lower() in _TRUTHY for key in keys)


@dataclass(frozen=True)
class AuthSettings:
    """Where the backend lives, which routes the flow owns, and its timings."""

    api_base_url: str = "http://localhost:8081"
    redirect_uri: str = "http://localhost:3000/oauth/callback"
    authorization_path: str = "/oauth2/authorization/github"
    default_redirect: str = "/dashboard"
    login_path: str = "/login"
    callback_path: str = "/oauth/callback"
    provider_name: str = "GitHub"
    redirect_delay: float = 1.0
    # 0 disables the timeout: a hung backend call then keeps loading=True
    request_timeout: float = 20.0
    focus_debounce: float = 2.0
    verify_state: bool = False
    debug: bool = False
    session_secret: str = "change-me"
    session_max_age: int = 14 * 24 * 3600

    @property
    def authorization_url(self) -> str:
        return self.api_base_url.rstrip("/") + self.authorization_path

    @property
    def timeout(self) -> Optional[float]:
        """Timeout handed to httpx; None when disabled."""
        return self.request_timeout if self.request_timeout > 0 else None

    @classmethod
    def from_env(cls) -> "AuthSettings":
        """Build settings from FLOW_* variables (plus SESSION_* and DEBUG)."""
        defaults = cls()
        return cls(
            api_base_url=_env("FLOW_API_BASE_URL", defaults.api_base_url),
            redirect_uri=_env("FLOW_REDIRECT_URI", defaults.redirect_uri),
            authorization_path=_env("FLOW_AUTHORIZATION_PATH", defaults.authorization_path),
            default_redirect=_env("FLOW_DEFAULT_REDIRECT", defaults.default_redirect),
            login_path=_env("FLOW_LOGIN_PATH", defaults.login_path),
            callback_path=_env("FLOW_CALLBACK_PATH", defaults.callback_path),
            provider_name=_env("FLOW_PROVIDER_NAME", defaults.provider_name),
            redirect_delay=_env_float("FLOW_REDIRECT_DELAY_SECONDS", defaults.redirect_delay),
            request_timeout=_env_float("FLOW_REQUEST_TIMEOUT_SECONDS", defaults.request_timeout),
            focus_debounce=_env_float("FLOW_FOCUS_DEBOUNCE_SECONDS", defaults.focus_debounce),
            verify_state=_env_flag("FLOW_VERIFY_STATE"),
            debug=_env_flag("FLOW_DEBUG", "DEBUG"),
            session_secret=_env("SESSION_SECRET", defaults.session_secret),
            session_max_age=_env_int("SESSION_MAX_AGE_SECONDS", defaults.session_max_age),
        )
