from __future__ import annotations

from dataclasses import dataclass
import os
from typing import Any
from urllib.parse import urlsplit

import yaml


LOG_LEVELS = {"debug", "info", "warning", "error", "critical"}


@dataclass
class TelegramConfig:
    token: str
    api_base_url: str


@dataclass
class FIBAPIConfig:
    client_id: str


@dataclass
class Settings:
    state_file: str
    request_timeout_seconds: float
    client_timeout_seconds: float
    user_agent: str
    mailto_redirect_url: str
    log_level: str


@dataclass
class JobsConfig:
    push_new_notices: bool
    interval_seconds: int
    clock_skew_seconds: int


@dataclass
class Config:
    telegram: TelegramConfig
    fib_api: FIBAPIConfig
    settings: Settings
    jobs: JobsConfig


def _expand_env(value: Any) -> Any:
    if isinstance(value, str):
        return os.path.expandvars(value)
    if isinstance(value, list):
        return [_expand_env(item) for item in value]
    if isinstance(value, dict):
        return {key: _expand_env(val) for key, val in value.items()}
    return value


def _require_dict(value: Any, name: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"{name} must be a mapping")
    return value


def load_config(path: str) -> Config:
    with open(path, "r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}

    data = _expand_env(raw)
    if not isinstance(data, dict):
        raise ValueError("Config root must be a mapping")

    telegram_raw = _require_dict(data.get("telegram"), "telegram")
    token = _unresolved_to_empty(telegram_raw.get("token"))
    if not token:
        raise ValueError("telegram.token is required")
    telegram = TelegramConfig(
        token=token,
        api_base_url=_require_url(
            telegram_raw.get("api_base_url", "https://api.telegram.org"), "telegram.api_base_url"
        ),
    )

    fib_raw = _require_dict(data.get("fib_api"), "fib_api")
    fib_api = FIBAPIConfig(client_id=_unresolved_to_empty(fib_raw.get("client_id")))

    settings = _load_settings(_require_dict(data.get("settings"), "settings"))
    jobs = _load_jobs(_require_dict(data.get("jobs"), "jobs"))

    return Config(telegram=telegram, fib_api=fib_api, settings=settings, jobs=jobs)


def _load_settings(raw: dict[str, Any]) -> Settings:
    request_timeout = float(raw.get("request_timeout_seconds", 10))
    client_timeout = float(raw.get("client_timeout_seconds", 20))
    if request_timeout <= 0 or client_timeout <= 0:
        raise ValueError("settings timeouts must be positive")

    log_level = str(raw.get("log_level", "info")).lower()
    if log_level not in LOG_LEVELS:
        raise ValueError(f"settings.log_level must be one of {sorted(LOG_LEVELS)}")

    mailto_redirect_url = raw.get("mailto_redirect_url")
    if not mailto_redirect_url:
        raise ValueError("settings.mailto_redirect_url is required")

    return Settings(
        state_file=str(raw.get("state_file", "./subscribers.json")),
        request_timeout_seconds=request_timeout,
        client_timeout_seconds=client_timeout,
        user_agent=str(raw.get("user_agent", "noticebot/0.1")),
        mailto_redirect_url=mailto_redirect_base(
            _require_url(mailto_redirect_url, "settings.mailto_redirect_url")
        ),
        log_level=log_level,
    )


def _load_jobs(raw: dict[str, Any]) -> JobsConfig:
    interval = int(raw.get("interval_seconds", 60))
    if interval < 1:
        raise ValueError("jobs.interval_seconds must be >= 1")
    skew = int(raw.get("clock_skew_seconds", 5))
    if not 0 <= skew < 60:
        raise ValueError("jobs.clock_skew_seconds must be between 0 and 59")
    return JobsConfig(
        push_new_notices=bool(raw.get("push_new_notices", True)),
        interval_seconds=interval,
        clock_skew_seconds=skew,
    )


def mailto_redirect_base(url: str) -> str:
    """Return ``url`` ready to have an encoded query string appended."""
    if urlsplit(url).query:
        return url + "&"
    return url + "?"


def _require_url(value: Any, name: str) -> str:
    if not value or not isinstance(value, str):
        raise ValueError(f"{name} must be a URL")
    if not (value.startswith("http://") or value.startswith("https://")):
        raise ValueError(f"{name} must be an http(s) URL")
    return value


def _unresolved_to_empty(value: Any) -> str:
    if not value or not isinstance(value, str):
        return ""
    if "${" in value:
        return ""
    return value
