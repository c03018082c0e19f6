from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from .models_inventory import SnapshotQuery
from .models_reconciliation import (
    ApproveRequest,
    ReconciliationCreateRequest,
    ReconciliationStatus,
    RejectRequest,
)

M = TypeVar("M", bound=BaseModel)

_ALLOWED_ACTIONS: dict[ReconciliationStatus, set[str]] = {
    ReconciliationStatus.DRAFT: {"UPDATE", "SUBMIT", "DELETE"},
    ReconciliationStatus.PENDING: {"APPROVE", "REJECT"},
    ReconciliationStatus.REJECTED: {"DELETE"},
    ReconciliationStatus.APPROVED: set(),
}


@dataclass(frozen=True)
class ValidationIssue:
    row_index: int | None
    field: str
    reason: str

    @property
    def key(self) -> str:
        if self.row_index is None:
            return self.field
        return f"items.{self.row_index}.{self.field}"


class ClientValidationError(ValueError):
    def __init__(self, issues: list[ValidationIssue]) -> None:
        self.issues = issues
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if not self.issues:
            return "Validation failed"
        issue = self.issues[0]
        location = f"row {issue.row_index}" if issue.row_index is not None else "payload"
        return f"{location} {issue.field}: {issue.reason}"

    def field_errors(self) -> dict[str, str]:
        errors: dict[str, str] = {}
        for issue in self.issues:
            errors.setdefault(issue.key, issue.reason)
        return errors


def parse_count(value: Any) -> int:
    """Parse an operator-entered stock count. Raises ValueError on anything but a whole number >= 0."""
    if isinstance(value, bool):
        raise ValueError("count must be a whole number")
    if isinstance(value, int):
        number = value
    elif isinstance(value, float) and value.is_integer():
        number = int(value)
    elif isinstance(value, str) and value.strip().lstrip("+-").isdigit():
        number = int(value.strip())
    else:
        raise ValueError("count must be a whole number")
    if number < 0:
        raise ValueError("count cannot be negative")
    return number


def validate_snapshot_query(query: SnapshotQuery | Mapping[str, Any]) -> SnapshotQuery:
    candidate = _coerce(query, SnapshotQuery)
    if not candidate.category_ids:
        raise ClientValidationError(
            [ValidationIssue(row_index=None, field="categoryIds", reason="Select at least one category to load")]
        )
    unique_ids = sorted(set(candidate.category_ids))
    return candidate.model_copy(update={"category_ids": unique_ids})


def validate_create_payload(payload: ReconciliationCreateRequest | Mapping[str, Any]) -> ReconciliationCreateRequest:
    if isinstance(payload, Mapping):
        payload = {key: value.strip() if isinstance(value, str) else value for key, value in payload.items()}
    candidate = _coerce(payload, ReconciliationCreateRequest)

    issues: list[ValidationIssue] = []
    if not candidate.title.strip():
        issues.append(ValidationIssue(row_index=None, field="title", reason="Title is required"))
    seen: dict[int, int] = {}
    for idx, item in enumerate(candidate.items):
        if item.product_id in seen:
            issues.append(
                ValidationIssue(
                    row_index=idx,
                    field="productId",
                    reason=f"product {item.product_id} already listed in row {seen[item.product_id]}",
                )
            )
        else:
            seen[item.product_id] = idx
    if issues:
        raise ClientValidationError(issues)
    return candidate.model_copy(update={"title": candidate.title.strip()})


def validate_approve_payload(payload: ApproveRequest | Mapping[str, Any] | None = None) -> ApproveRequest:
    return _coerce(payload or {}, ApproveRequest)


def validate_reject_payload(payload: RejectRequest | Mapping[str, Any]) -> RejectRequest:
    if isinstance(payload, Mapping) and not str(payload.get("reason") or "").strip():
        raise ClientValidationError([ValidationIssue(row_index=None, field="reason", reason="A rejection reason is required")])
    return _coerce(payload, RejectRequest)


def validate_status_transition(current_status: ReconciliationStatus | str | None, action: str) -> str:
    desired = action.upper()
    raw = current_status.value if isinstance(current_status, ReconciliationStatus) else (current_status or "").upper()
    try:
        status = ReconciliationStatus(raw)
    except ValueError:
        raise ClientValidationError(
            [ValidationIssue(row_index=None, field="status", reason=f"unknown status '{current_status}'")]
        ) from None
    if desired not in _ALLOWED_ACTIONS[status]:
        raise ClientValidationError(
            [ValidationIssue(row_index=None, field="action", reason=f"action {desired} is not allowed from {status.value}")]
        )
    return desired


def issues_from_validation_error(exc: PydanticValidationError, *, row_index: int | None = None) -> list[ValidationIssue]:
    """Translate a pydantic error; ``row_index`` pins item-level errors to their row."""
    issues = [_issue_from_error(error) for error in exc.errors()]
    if row_index is None:
        return issues
    return [
        ValidationIssue(row_index=row_index, field=to_camel(issue.field) if "_" in issue.field else issue.field, reason=issue.reason)
        for issue in issues
    ]


def _coerce(value: M | Mapping[str, Any], model_type: type[M]) -> M:
    if isinstance(value, model_type):
        return value
    try:
        return model_type.model_validate(value)
    except PydanticValidationError as exc:
        raise ClientValidationError([_issue_from_error(error) for error in exc.errors()]) from exc


def _issue_from_error(error: Mapping[str, Any]) -> ValidationIssue:
    loc = tuple(error.get("loc") or ("payload",))
    row_index: int | None = None
    if len(loc) >= 3 and loc[0] == "items" and isinstance(loc[1], int):
        row_index = loc[1]
        field = ".".join(str(part) for part in loc[2:])
    else:
        field = ".".join(str(part) for part in loc)
    return ValidationIssue(row_index=row_index, field=field, reason=str(error.get("msg") or "Invalid value"))
