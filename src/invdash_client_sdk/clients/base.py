from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..exceptions import ResponseShapeError
from ..http_client import HttpClient

M = TypeVar("M", bound=BaseModel)


@dataclass
class BaseClient:
    http: HttpClient
    access_token: str | None = None
    session_cookie: str | None = None
    context_key: str | None = None

    def _auth_headers(self) -> dict[str, str]:
        headers: dict[str, str] = {}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        if self.session_cookie:
            headers["Cookie"] = self.session_cookie
        return headers

    def _request(self, method: str, path: str, **kwargs: Any):
        headers = kwargs.pop("headers", None) or {}
        merged = {**self._auth_headers(), **headers}
        if self.context_key and "context_key" not in kwargs:
            kwargs["context_key"] = self.context_key
        return self.http.request(method, path, headers=merged, **kwargs)

    def _parse(self, model_type: type[M], payload: Any, what: str) -> M:
        if not isinstance(payload, dict):
            raise ResponseShapeError(
                code="INVALID_RESPONSE",
                message=f"Expected {what} response to be a JSON object",
                details={"received": type(payload).__name__},
                trace_id=self._trace_id(),
                status_code=200,
                raw_payload=payload,
            )
        try:
            return model_type.model_validate(payload)
        except PydanticValidationError as exc:
            raise ResponseShapeError(
                code="INVALID_RESPONSE",
                message=f"Unexpected {what} response shape",
                details=exc.errors(include_url=False),
                trace_id=self._trace_id(),
                status_code=200,
                raw_payload=payload,
            ) from exc

    def _trace_id(self) -> str | None:
        return self.http.trace.trace_id if self.http.trace else None
