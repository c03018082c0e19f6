from __future__ import annotations

import sys
from pathlib import Path

import pytest

BASE_DIR = Path(__file__).resolve().parents[1]
SRC_DIR = BASE_DIR / "src"

sys.path.insert(0, str(SRC_DIR))

BASE_URL = "https://api.example.com"

_INVDASH_VARS = (
    "INVDASH_ENV",
    "INVDASH_API_BASE_URL",
    "INVDASH_API_BASE_URL_DEV",
    "INVDASH_TIMEOUT_SECONDS",
    "INVDASH_CONNECT_TIMEOUT_SECONDS",
    "INVDASH_READ_TIMEOUT_SECONDS",
    "INVDASH_RETRIES",
    "INVDASH_RETRY_BACKOFF_SECONDS",
    "INVDASH_MAX_CONNECTIONS",
    "INVDASH_VERIFY_SSL",
    "INVDASH_SEARCH_DEBOUNCE_MS",
    "INVDASH_SEARCH_LIMIT",
    "INVDASH_SNAPSHOT_LIMIT",
    "INVDASH_TELEMETRY_ENABLED",
)


@pytest.fixture(autouse=True)
def invdash_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in _INVDASH_VARS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("INVDASH_API_BASE_URL", BASE_URL)
    monkeypatch.setenv("INVDASH_RETRY_BACKOFF_SECONDS", "0")
