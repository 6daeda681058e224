"""Runtime configuration defaults for the gateway, persistence and logging."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

DB_PATH = "data/tablepos.db"
LOG_PATH = "/tmp/tablepos-debug.log"
LOG_LEVEL = "INFO"
API_TIMEOUT_SECONDS = 10.0
RELEASE_TABLE_ON_CLOSE = True

_ENV_PREFIX = "TABLEPOS_"
_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    """Resolved runtime settings."""

    api_base_url: str = ""
    api_token: str = ""
    api_timeout: float = API_TIMEOUT_SECONDS
    db_path: str = DB_PATH
    log_path: str = LOG_PATH
    log_level: str = LOG_LEVEL
    release_table_on_close: bool = RELEASE_TABLE_ON_CLOSE

    @property
    def uses_local_gateway(self) -> bool:
        return not self.api_base_url


def _env(environ: Mapping[str, str], name: str) -> str:
    return environ.get(_ENV_PREFIX + name, "").strip()


def _parse_bool(raw: str, default: bool) -> bool:
    lowered = raw.lower()
    if lowered in _TRUTHY:
        return True
    if lowered in _FALSY:
        return False
    return default


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """
    Build settings from defaults and TABLEPOS_* environment overrides.

    Recognised variables: TABLEPOS_API_BASE_URL, TABLEPOS_API_TOKEN,
    TABLEPOS_API_TIMEOUT, TABLEPOS_DB_PATH, TABLEPOS_LOG_PATH,
    TABLEPOS_LOG_LEVEL, TABLEPOS_RELEASE_TABLE_ON_CLOSE.
    """
    if environ is None:
        environ = os.environ

    timeout_raw = _env(environ, "API_TIMEOUT")
    try:
        timeout = float(timeout_raw) if timeout_raw else API_TIMEOUT_SECONDS
    except ValueError:
        raise ValueError(f"{_ENV_PREFIX}API_TIMEOUT must be a number, got {timeout_raw!r}") from None
    if timeout <= 0:
        raise ValueError(f"{_ENV_PREFIX}API_TIMEOUT must be positive, got {timeout_raw!r}")

    return Settings(
        api_base_url=_env(environ, "API_BASE_URL").rstrip("/"),
        api_token=_env(environ, "API_TOKEN"),
        api_timeout=timeout,
        db_path=_env(environ, "DB_PATH") or DB_PATH,
        log_path=_env(environ, "LOG_PATH") or LOG_PATH,
        log_level=(_env(environ, "LOG_LEVEL") or LOG_LEVEL).upper(),
        release_table_on_close=_parse_bool(_env(environ, "RELEASE_TABLE_ON_CLOSE"), RELEASE_TABLE_ON_CLOSE),
    )
