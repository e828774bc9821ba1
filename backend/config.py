# backend/config.py
import os
from dataclasses import dataclass
from typing import Mapping, Optional
from urllib.parse import urlparse

from dotenv import load_dotenv


class ConfigError(ValueError):
    pass


def _opt(env: Mapping[str, str], key: str) -> Optional[str]:
    # Empty strings in .env mean "unset"
    value = (env.get(key) or "").strip()
    return value or None


def _url(env: Mapping[str, str], key: str, default: Optional[str] = None) -> Optional[str]:
    value = _opt(env, key) or default
    if value is None:
        return None
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ConfigError(f"{key} must be an http(s) URL, got {value!r}")
    return value.rstrip("/")


def _number(env: Mapping[str, str], key: str, default: float, minimum: float = 0) -> float:
    raw = _opt(env, key)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigError(f"{key} must be a number, got {raw!r}") from None
    if value < minimum:
        raise ConfigError(f"{key} must be >= {minimum}, got {raw!r}")
    return value


@dataclass(frozen=True)
class Settings:
    port: int = 3000
    db_url: str = "sqlite:///data/app.db"
    timezone: str = "America/Los_Angeles"

    bland_api_key: Optional[str] = None
    bland_base_url: str = "https://api.bland.ai"
    bland_webhook_secret: Optional[str] = None
    bland_inbound_number: Optional[str] = None
    bland_model: str = "base"
    bland_voice: str = "Paige"

    public_base_url: Optional[str] = None
    tools_shared_secret: Optional[str] = None

    sheets_apps_script_url: Optional[str] = None
    sheets_apps_script_token: Optional[str] = None

    queue_item_timeout: Optional[float] = 120.0   # seconds; None = no per-item timeout
    http_timeout: float = 30.0

    log_level: str = "INFO"
    log_format: str = "text"

    @property
    def analyzer_enabled(self) -> bool:
        return bool(self.bland_api_key)

    @property
    def sheets_enabled(self) -> bool:
        return bool(self.sheets_apps_script_url and self.sheets_apps_script_token)

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None, load_dotenv_file: bool = True) -> "Settings":
        """
        Build settings from the process environment (after loading `.env`),
        or from an explicit mapping.
        """
        if env is None:
            if load_dotenv_file:
                load_dotenv()
            env = os.environ

        port = _number(env, "PORT", 3000, minimum=1)
        if port != int(port) or port > 65535:
            raise ConfigError(f"PORT must be an integer in 1..65535, got {env.get('PORT')!r}")

        item_timeout = _number(env, "QUEUE_ITEM_TIMEOUT_SECONDS", 120.0)

        return cls(
            port=int(port),
            db_url=_opt(env, "DB_URL") or cls.db_url,
            timezone=_opt(env, "TIMEZONE") or cls.timezone,
            bland_api_key=_opt(env, "BLAND_API_KEY"),
            bland_base_url=_url(env, "BLAND_BASE_URL", cls.bland_base_url),
            bland_webhook_secret=_opt(env, "BLAND_WEBHOOK_SECRET"),
            bland_inbound_number=_opt(env, "BLAND_INBOUND_NUMBER"),
            bland_model=_opt(env, "BLAND_MODEL") or cls.bland_model,
            bland_voice=_opt(env, "BLAND_VOICE") or cls.bland_voice,
            public_base_url=_url(env, "PUBLIC_BASE_URL"),
            tools_shared_secret=_opt(env, "TOOLS_SHARED_SECRET"),
            sheets_apps_script_url=_url(env, "SHEETS_APPS_SCRIPT_URL"),
            sheets_apps_script_token=_opt(env, "SHEETS_APPS_SCRIPT_TOKEN"),
            queue_item_timeout=item_timeout or None,
            http_timeout=_number(env, "HTTP_TIMEOUT_SECONDS", 30.0, minimum=0.1),
            log_level=(_opt(env, "LOG_LEVEL") or cls.log_level).upper(),
            log_format=(_opt(env, "LOG_FORMAT") or cls.log_format).lower(),
        )
