from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from ...services.reconciliation_service import ReconciliationServiceError


@dataclass(frozen=True)
class PresentedError:
    category: str
    title: str
    user_message: str
    safe_to_retry: bool
    code: str
    details: dict[str, Any]


class ErrorPresenter:
    """Turns service failures into notice payloads with a consistent title and retry hint."""

    _CATEGORY_TITLES = {
        "validation": "Check the highlighted fields",
        "permission_denied": "Not allowed",
        "conflict": "Action not available",
        "not_found": "Not found",
        "transport": "Connection problem",
        "server": "Server error",
        "unexpected_response": "Unexpected response",
        "unknown": "Something went wrong",
    }
    _CATEGORY_MESSAGES = {
        "validation": "Please review the highlighted fields and try again.",
        "permission_denied": "You do not have permission to perform this action.",
        "conflict": "This action cannot be completed in the current state.",
        "not_found": "The requested record was not found.",
        "transport": "Temporary connectivity issue. Please retry.",
        "server": "Service error. Try again shortly or contact support.",
        "unexpected_response": "The server sent a response this screen does not understand.",
        "unknown": "Unexpected error. Please try again.",
    }

    def present(self, error: ReconciliationServiceError, *, action: str, allow_retry: bool = False) -> PresentedError:
        category = error.category if error.category in self._CATEGORY_TITLES else "unknown"
        code = (error.code or "UNKNOWN").upper()
        user_message = error.message.strip() if error.message and error.message.strip() else self._CATEGORY_MESSAGES[category]
        return PresentedError(
            category=category,
            title=self._CATEGORY_TITLES[category],
            user_message=user_message,
            safe_to_retry=allow_retry and category in {"transport", "server"},
            code=code,
            details={
                "code": code,
                "trace_id": error.trace_id,
                "action": action,
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "raw_details": error.details,
            },
        )
