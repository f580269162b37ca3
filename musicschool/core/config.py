from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]
NotificationLocale = Literal["en", "de"]


def _getenv(name: str, default: str) -> str:
    return os.environ.get(name, default).strip()


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    database_url: str | None
    redis_url: str | None
    contract_lock_timeout_seconds: float = 5.0
    notification_locale: NotificationLocale = "en"
    auth_public_key_file: str | None = None

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()
    log_json_raw = _getenv("LOG_JSON", "false").lower()
    port_raw = _getenv("PORT", "8000")
    lock_timeout_raw = _getenv("CONTRACT_LOCK_TIMEOUT_SECONDS", "5")
    locale_raw = _getenv("NOTIFICATION_LOCALE", "en").lower()

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    if log_json_raw not in ("true", "false", "1", "0"):
        raise ValueError(f"LOG_JSON must be true|false (got {log_json_raw!r})")

    try:
        port = int(port_raw)
    except ValueError:
        raise ValueError(f"PORT must be an integer (got {port_raw!r})") from None

    try:
        lock_timeout = float(lock_timeout_raw)
    except ValueError:
        raise ValueError(
            "CONTRACT_LOCK_TIMEOUT_SECONDS must be a number "
            f"(got {lock_timeout_raw!r})"
        ) from None
    if lock_timeout <= 0:
        raise ValueError(
            f"CONTRACT_LOCK_TIMEOUT_SECONDS must be positive (got {lock_timeout})"
        )

    if locale_raw not in ("en", "de"):
        raise ValueError(f"NOTIFICATION_LOCALE must be en|de (got {locale_raw!r})")

    database_url = _getenv("DATABASE_URL", "") or None
    redis_url = _getenv("REDIS_URL", "") or None
    auth_public_key_file = _getenv("AUTH_PUBLIC_KEY_FILE", "") or None

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=log_json_raw in ("true", "1"),
        port=port,
        database_url=database_url,
        redis_url=redis_url,
        contract_lock_timeout_seconds=lock_timeout,
        notification_locale=locale_raw,
        auth_public_key_file=auth_public_key_file,
    )


SETTINGS = load_settings()
