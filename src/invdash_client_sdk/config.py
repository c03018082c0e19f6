from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Iterable

from dotenv import load_dotenv


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class ClientConfig:
    env_name: str
    api_base_url: str
    connect_timeout_seconds: float = 5.0
    read_timeout_seconds: float = 15.0
    retries: int = 2
    retry_backoff_seconds: float = 0.3
    max_connections: int = 10
    verify_ssl: bool = True
    search_debounce_ms: int = 350
    search_limit: int = 10
    snapshot_limit: int = 500

    @property
    def normalized_env(self) -> str:
        return self.env_name.lower().strip()


def _require(values: dict[str, str | None], required: Iterable[str]) -> None:
    missing = [key for key in required if not values.get(key)]
    if missing:
        raise ConfigError(f"Missing required config values: {', '.join(missing)}")


def _coerce_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _read_float(name: str, default: str) -> float:
    raw = os.getenv(name, default)
    try:
        return float(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid {name}: expected a number, got {raw!r}") from exc


def _read_int(name: str, default: str) -> int:
    raw = os.getenv(name, default)
    try:
        return int(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid {name}: expected an integer, got {raw!r}") from exc


def _validate(condition: bool, message: str) -> None:
    if not condition:
        raise ConfigError(message)


def load_config(env_file: str | None = None) -> ClientConfig:
    """Build a ClientConfig from INVDASH_* environment variables.

    An optional ``.env`` file is loaded first; values already present in the
    environment win. The base URL may be set per environment profile
    (``INVDASH_API_BASE_URL_STAGING``) or globally (``INVDASH_API_BASE_URL``).
    """
    load_dotenv(env_file)

    env_name = (os.getenv("INVDASH_ENV") or "dev").strip()
    env_key = env_name.upper()

    api_base_url = (
        (os.getenv(f"INVDASH_API_BASE_URL_{env_key}") or "").strip()
        or (os.getenv("INVDASH_API_BASE_URL") or "").strip()
    )
    _require({"INVDASH_API_BASE_URL": api_base_url}, ["INVDASH_API_BASE_URL"])

    timeout_seconds = _read_float("INVDASH_TIMEOUT_SECONDS", "10")
    _validate(
        timeout_seconds > 0,
        f"Invalid INVDASH_TIMEOUT_SECONDS: expected > 0, got {timeout_seconds}",
    )

    connect_timeout_seconds = _read_float(
        "INVDASH_CONNECT_TIMEOUT_SECONDS", str(min(timeout_seconds, 5.0))
    )
    _validate(
        connect_timeout_seconds > 0,
        f"Invalid INVDASH_CONNECT_TIMEOUT_SECONDS: expected > 0, got {connect_timeout_seconds}",
    )

    read_timeout_seconds = _read_float(
        "INVDASH_READ_TIMEOUT_SECONDS",
        str(max(timeout_seconds, connect_timeout_seconds)),
    )
    _validate(
        read_timeout_seconds > 0,
        f"Invalid INVDASH_READ_TIMEOUT_SECONDS: expected > 0, got {read_timeout_seconds}",
    )

    retries = _read_int("INVDASH_RETRIES", "2")
    _validate(retries >= 0, f"Invalid INVDASH_RETRIES: expected >= 0, got {retries}")

    retry_backoff_seconds = _read_float("INVDASH_RETRY_BACKOFF_SECONDS", "0.3")
    _validate(
        retry_backoff_seconds >= 0,
        f"Invalid INVDASH_RETRY_BACKOFF_SECONDS: expected >= 0, got {retry_backoff_seconds}",
    )

    max_connections = _read_int("INVDASH_MAX_CONNECTIONS", "10")
    _validate(
        max_connections >= 1,
        f"Invalid INVDASH_MAX_CONNECTIONS: expected >= 1, got {max_connections}",
    )

    search_debounce_ms = _read_int("INVDASH_SEARCH_DEBOUNCE_MS", "350")
    _validate(
        0 <= search_debounce_ms <= 5000,
        f"Invalid INVDASH_SEARCH_DEBOUNCE_MS: expected 0..5000, got {search_debounce_ms}",
    )

    search_limit = _read_int("INVDASH_SEARCH_LIMIT", "10")
    _validate(search_limit >= 1, f"Invalid INVDASH_SEARCH_LIMIT: expected >= 1, got {search_limit}")

    snapshot_limit = _read_int("INVDASH_SNAPSHOT_LIMIT", "500")
    _validate(
        snapshot_limit >= 1,
        f"Invalid INVDASH_SNAPSHOT_LIMIT: expected >= 1, got {snapshot_limit}",
    )

    return ClientConfig(
        env_name=env_name,
        api_base_url=api_base_url.rstrip("/"),
        connect_timeout_seconds=connect_timeout_seconds,
        read_timeout_seconds=read_timeout_seconds,
        retries=retries,
        retry_backoff_seconds=retry_backoff_seconds,
        max_connections=max_connections,
        verify_ssl=_coerce_bool(os.getenv("INVDASH_VERIFY_SSL"), True),
        search_debounce_ms=search_debounce_ms,
        search_limit=search_limit,
        snapshot_limit=snapshot_limit,
    )
