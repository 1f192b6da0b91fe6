"""
Client configuration.

Values come from the environment (optionally seeded from a .env file):
- SHOPGO_API_URL: backend origin, the versioned base path is appended
- SHOPGO_STATE_DIR: directory for persisted client state ("" disables it)
- SHOPGO_HTTP_TIMEOUT: per-request timeout in seconds
- SHOPGO_REFRESH_TIMEOUT: upper bound for a credential refresh in seconds
- SHOPGO_LOGIN_PATH: login entry point handed to the redirect callback
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

API_VERSION_PATH = "/api/v1"
DEFAULT_API_URL = "http://localhost:8080"
DEFAULT_STATE_DIR = "~/.shopgo"
DEFAULT_HTTP_TIMEOUT = 10.0
DEFAULT_REFRESH_TIMEOUT = 15.0
DEFAULT_LOGIN_PATH = "/login"


@dataclass(frozen=True)
class ClientConfig:
    """Resolved client settings."""
    api_url: str = DEFAULT_API_URL
    state_dir: Optional[Path] = None
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    refresh_timeout: Optional[float] = DEFAULT_REFRESH_TIMEOUT
    login_path: str = DEFAULT_LOGIN_PATH

    @property
    def base_url(self) -> str:
        """API origin with the versioned base path."""
        return self.api_url.rstrip("/") + API_VERSION_PATH


def _float_env(name: str, default: Optional[float]) -> Optional[float]:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")
    # 0 disables the bound
    return value if value > 0 else None


def load_config(env_file: Optional[str] = None) -> ClientConfig:
    """
    Build ClientConfig from the environment.

    Args:
        env_file: Optional .env file loaded first (existing variables win)

    Returns:
        ClientConfig
    """
    if env_file:
        load_dotenv(env_file, override=False)

    state_dir_raw = os.environ.get("SHOPGO_STATE_DIR", DEFAULT_STATE_DIR)
    state_dir = Path(state_dir_raw).expanduser() if state_dir_raw.strip() else None

    http_timeout = _float_env("SHOPGO_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT) or DEFAULT_HTTP_TIMEOUT

    return ClientConfig(
        api_url=os.environ.get("SHOPGO_API_URL", DEFAULT_API_URL) or DEFAULT_API_URL,
        state_dir=state_dir,
        http_timeout=http_timeout,
        refresh_timeout=_float_env("SHOPGO_REFRESH_TIMEOUT", DEFAULT_REFRESH_TIMEOUT),
        login_path=os.environ.get("SHOPGO_LOGIN_PATH", DEFAULT_LOGIN_PATH) or DEFAULT_LOGIN_PATH,
    )
