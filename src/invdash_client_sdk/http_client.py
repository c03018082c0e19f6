from __future__ import annotations

import json
import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any
from urllib.parse import urljoin

import requests
from requests.adapters import HTTPAdapter

from .config import ClientConfig
from .error_mapper import map_error
from .exceptions import ApiError, TransportError
from .logging_utils import get_logger
from .tracing import TRACE_HEADER, TraceContext

JsonPayload = dict[str, Any] | list[Any] | None

logger = get_logger(__name__)

_CACHE_KEY_HEADERS = {"Authorization", "Cookie"}


def _error_type_from_status(status_code: int) -> str:
    if status_code in {401, 403}:
        return "auth"
    if status_code in {400, 404, 422}:
        return "validation"
    if status_code == 409:
        return "conflict"
    if status_code <= 0:
        return "network"
    return "internal"


@dataclass(frozen=True)
class NormalizedError:
    code: str
    message: str
    trace_id: str | None
    type: str


@dataclass
class LastOperation:
    module: str
    operation: str
    duration_ms: int
    result: str
    trace_id: str | None


@dataclass
class HttpClient:
    """JSON-over-HTTP transport shared by every resource client.

    GET requests are retried on transport errors and 5xx answers and served
    from a short-lived cache; mutations go out exactly once and invalidate
    cached reads of the paths they touch. A ``context_key`` ties a request to
    an owner (for example an open dialog): once the owner calls
    :meth:`switch_context`, responses for the old version are discarded with
    a ``REQUEST_CANCELLED`` error instead of being handed back.
    """

    config: ClientConfig
    trace: TraceContext | None = None
    session: requests.Session | None = None
    cache_ttl_seconds: float = 3.0
    enable_get_cache: bool = True
    _cache: dict[str, tuple[float, JsonPayload]] | None = None
    _context_versions: dict[str, int] | None = None
    last_operation: LastOperation | None = None

    def __post_init__(self) -> None:
        if self.session is None:
            self.session = requests.Session()
            adapter = HTTPAdapter(
                pool_connections=self.config.max_connections,
                pool_maxsize=self.config.max_connections,
            )
            self.session.mount("http://", adapter)
            self.session.mount("https://", adapter)
        if self._cache is None:
            self._cache = {}
        if self._context_versions is None:
            self._context_versions = {}

    def _build_url(self, path: str) -> str:
        base = self.config.api_base_url.rstrip("/") + "/"
        return urljoin(base, path.lstrip("/"))

    def request(
        self,
        method: str,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        json_body: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        module: str = "unknown",
        operation: str = "unknown",
        use_get_cache: bool = True,
        context_key: str | None = None,
        context_version: int | None = None,
        invalidate_paths: list[str] | None = None,
    ) -> JsonPayload:
        if self.session is None:
            raise RuntimeError("HTTP session not initialized")
        trace_context = self.trace or TraceContext()
        request_headers = {"Accept": "application/json"}
        if headers:
            request_headers.update(headers)
        request_headers[TRACE_HEADER] = trace_context.ensure()

        normalized_method = method.upper()
        url = self._build_url(path)
        attempts = self.config.retries + 1 if normalized_method in {"GET", "HEAD"} else 1
        should_use_get_cache = self.enable_get_cache and use_get_cache and normalized_method == "GET"
        cache_key = self._cache_key(normalized_method, url, request_headers, params)

        if should_use_get_cache and cache_key:
            cached = self._read_cache(cache_key)
            if cached is not None:
                self.last_operation = LastOperation(module, operation, 0, "success(cache)", trace_context.trace_id)
                return cached

        if context_key and context_version is None:
            context_version = self.get_context_version(context_key)
        if context_key and not self._context_is_current(context_key, context_version):
            raise self._cancelled("Request cancelled before dispatch", trace_context)

        started = time.monotonic()
        response: requests.Response | None = None
        for attempt in range(attempts):
            try:
                response = self.session.request(
                    method=normalized_method,
                    url=url,
                    headers=request_headers,
                    json=json_body,
                    params=params,
                    timeout=(self.config.connect_timeout_seconds, self.config.read_timeout_seconds),
                    verify=self.config.verify_ssl,
                )
            except requests.RequestException as exc:
                if attempt >= attempts - 1:
                    self._record_operation(module, operation, started, "error", trace_context.trace_id)
                    logger.warning("%s %s failed after %d attempt(s): %s", normalized_method, path, attempt + 1, exc)
                    raise TransportError(
                        code="TRANSPORT_ERROR",
                        message=str(exc),
                        details={"type": type(exc).__name__},
                        trace_id=trace_context.trace_id,
                        status_code=0,
                        raw_payload=None,
                    ) from exc
            else:
                if response.status_code < 500 or attempt >= attempts - 1:
                    break
            logger.info("retrying %s %s (attempt %d of %d)", normalized_method, path, attempt + 2, attempts)
            time.sleep(self.config.retry_backoff_seconds * (2**attempt))

        if response is None:
            raise RuntimeError(f"HTTP request to {path} finished without a response")

        if context_key and not self._context_is_current(context_key, context_version):
            logger.debug("discarding late response for %s %s", normalized_method, path)
            raise self._cancelled("Request cancelled due to context switch", trace_context)

        trace_context.update_from_headers(response.headers)
        if response.ok:
            parsed: JsonPayload = response.json() if response.content else None
            if should_use_get_cache and cache_key:
                self._write_cache(cache_key, parsed)
            if normalized_method != "GET":
                self._invalidate_cache(invalidate_paths or [])
            self._record_operation(module, operation, started, "success", trace_context.trace_id)
            return parsed

        try:
            payload = response.json()
        except (json.JSONDecodeError, ValueError):
            payload = {"error": response.text or response.reason}
        if isinstance(payload, dict):
            trace_context.update_from_payload(payload)
        self._record_operation(module, operation, started, "error", trace_context.trace_id)
        logger.info("%s %s answered %d", normalized_method, path, response.status_code)
        raise map_error(response.status_code, payload if isinstance(payload, dict) else {}, trace_context.trace_id)

    def normalize_error(self, error: Exception) -> NormalizedError:
        if isinstance(error, TransportError):
            return NormalizedError(code=error.code, message=error.message, trace_id=error.trace_id, type="network")
        if isinstance(error, ApiError):
            return NormalizedError(
                code=error.code,
                message=error.message,
                trace_id=error.trace_id,
                type=_error_type_from_status(error.status_code),
            )
        return NormalizedError(code="UNKNOWN_ERROR", message=str(error), trace_id=None, type="internal")

    def switch_context(self, context_key: str) -> int:
        new_version = self.get_context_version(context_key) + 1
        if self._context_versions is None:
            self._context_versions = {}
        self._context_versions[context_key] = new_version
        return new_version

    def get_context_version(self, context_key: str) -> int:
        if self._context_versions is None:
            self._context_versions = {}
        return self._context_versions.get(context_key, 0)

    def clear_cache(self) -> None:
        if self._cache is not None:
            self._cache.clear()

    def _cancelled(self, message: str, trace_context: TraceContext) -> TransportError:
        return TransportError(
            code="REQUEST_CANCELLED",
            message=message,
            details={"type": "context_switched"},
            trace_id=trace_context.trace_id,
            status_code=0,
            raw_payload=None,
        )

    def _record_operation(self, module: str, operation: str, started: float, result: str, trace_id: str | None) -> None:
        self.last_operation = LastOperation(
            module=module,
            operation=operation,
            duration_ms=int((time.monotonic() - started) * 1000),
            result=result,
            trace_id=trace_id,
        )

    def _context_is_current(self, context_key: str, context_version: int | None) -> bool:
        if context_version is None:
            return True
        return self.get_context_version(context_key) == context_version

    def _cache_key(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        params: dict[str, Any] | None,
    ) -> str | None:
        if method != "GET":
            return None
        safe_headers = {key: value for key, value in headers.items() if key in _CACHE_KEY_HEADERS}
        return json.dumps({"url": url, "headers": safe_headers, "params": params or {}}, sort_keys=True, default=str)

    def _read_cache(self, key: str) -> JsonPayload:
        if self._cache is None:
            return None
        record = self._cache.get(key)
        if not record:
            return None
        expires_at, payload = record
        if time.monotonic() >= expires_at:
            self._cache.pop(key, None)
            return None
        return payload

    def _write_cache(self, key: str, payload: JsonPayload) -> None:
        if self._cache is None:
            self._cache = {}
        self._cache[key] = (time.monotonic() + self.cache_ttl_seconds, payload)

    def _invalidate_cache(self, paths: list[str]) -> None:
        if not self._cache or not paths:
            return
        doomed = [key for key in self._cache if any(path in key for path in paths)]
        for key in doomed:
            self._cache.pop(key, None)
