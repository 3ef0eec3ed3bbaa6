from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]

DEFAULT_PROGRESS_PREDICATE = "urn:lms:vocabulary:progress"

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")


def _getenv(name: str, default: str) -> str:
    # Centralize env access so it’s easy to extend later (type casting, required vars)
    return os.environ.get(name, default).strip()


def _getenv_bool(name: str, default: bool) -> bool:
    raw = _getenv(name, "true" if default else "false").lower()
    if raw in _TRUE_VALUES:
        return True
    if raw in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean (got {raw!r})")


def _getenv_int(name: str, default: int) -> int:
    raw = _getenv(name, str(default))
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer (got {raw!r})") from None


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    database_url: str | None
    redis_url: str | None
    progress_predicate: str = DEFAULT_PROGRESS_PREDICATE
    # Administrators are not tracked unless this is switched on.
    save_progress_for_admins: bool = False
    # When on, administrators are treated as plain learners: no dashboards.
    admin_as_user: bool = False
    dashboard_cache_ttl: int = 300
    curriculum_path: str | None = None
    learners_path: str | None = None
    # PEM of the token issuer's ES256 public key.  Required in prod; dev and
    # test fall back to an ephemeral key pair (see app.services.token_service).
    jwt_public_key: str | None = None

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

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    port = _getenv_int("PORT", 8000)
    log_json = _getenv_bool("LOG_JSON", False)

    database_url = _getenv("DATABASE_URL", "") or None
    redis_url = _getenv("REDIS_URL", "") or None

    progress_predicate = _getenv("PROGRESS_PREDICATE", DEFAULT_PROGRESS_PREDICATE)
    if not progress_predicate:
        raise ValueError("PROGRESS_PREDICATE must be non-empty")

    dashboard_cache_ttl = _getenv_int("DASHBOARD_CACHE_TTL", 300)
    if dashboard_cache_ttl < 0:
        raise ValueError(
            f"DASHBOARD_CACHE_TTL must be >= 0 (got {dashboard_cache_ttl!r})"
        )

    # Env vars cannot hold newlines everywhere; accept "\n"-escaped PEM too.
    jwt_public_key = _getenv("JWT_PUBLIC_KEY", "").replace("\\n", "\n").strip() or None
    if app_env_raw == "prod" and jwt_public_key is None:
        raise ValueError("JWT_PUBLIC_KEY is required when APP_ENV=prod")

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=log_json,
        port=port,
        database_url=database_url,
        redis_url=redis_url,
        progress_predicate=progress_predicate,
        save_progress_for_admins=_getenv_bool("SAVE_PROGRESS_FOR_ADMINS", False),
        admin_as_user=_getenv_bool("ADMIN_AS_USER", False),
        dashboard_cache_ttl=dashboard_cache_ttl,
        curriculum_path=_getenv("CURRICULUM_PATH", "") or None,
        learners_path=_getenv("LEARNERS_PATH", "") or None,
        jwt_public_key=jwt_public_key,
    )


# Optional: module-level singleton so imports are cheap
SETTINGS = load_settings()
