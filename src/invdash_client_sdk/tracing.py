from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Mapping

TRACE_HEADER = "X-Request-ID"
TRACE_HEADER_ALIASES = (TRACE_HEADER, "X-Request-Id", "x-request-id", "X-Trace-ID")


def new_trace_id() -> str:
    return uuid.uuid4().hex


@dataclass
class TraceContext:
    trace_id: str | None = None

    def ensure(self) -> str:
        if not self.trace_id:
            self.trace_id = new_trace_id()
        return self.trace_id

    def rotate(self) -> str:
        self.trace_id = new_trace_id()
        return self.trace_id

    def update_from_headers(self, headers: Mapping[str, str]) -> None:
        for key in TRACE_HEADER_ALIASES:
            trace_id = headers.get(key)
            if trace_id:
                self.trace_id = trace_id
                return

    def update_from_payload(self, payload: Mapping[str, object]) -> None:
        for key in ("trace_id", "requestId"):
            trace_id = payload.get(key)
            if isinstance(trace_id, str) and trace_id:
                self.trace_id = trace_id
                return
