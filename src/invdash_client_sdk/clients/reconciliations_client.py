from __future__ import annotations

import uuid
from dataclasses import dataclass, fields
from typing import Any, Mapping

from ..exceptions import (
    ApiError,
    ForbiddenError,
    ReconciliationActionForbiddenError,
    ReconciliationStateError,
    ValidationError,
)
from ..models import wire_params
from ..models_reconciliation import (
    ApproveRequest,
    Reconciliation,
    ReconciliationCreateRequest,
    ReconciliationEnvelope,
    ReconciliationListResponse,
    ReconciliationQuery,
    ReconciliationStatus,
    ReconciliationUpdateRequest,
    RejectRequest,
)
from ..reconciliation_validation import (
    validate_approve_payload,
    validate_create_payload,
    validate_reject_payload,
    validate_status_transition,
)
from .base import BaseClient

RECONCILIATIONS_PATH = "/api/stock-reconciliations"


@dataclass
class ReconciliationsClient(BaseClient):
    def list_reconciliations(self, filters: ReconciliationQuery | None = None) -> ReconciliationListResponse:
        payload = self._request(
            "GET",
            RECONCILIATIONS_PATH,
            params=wire_params(filters or ReconciliationQuery()),
            module="reconciliations",
            operation="list",
        )
        return self._parse(ReconciliationListResponse, payload, "reconciliation list")

    def get_reconciliation(self, reconciliation_id: int) -> Reconciliation:
        payload = self._request(
            "GET",
            f"{RECONCILIATIONS_PATH}/{reconciliation_id}",
            module="reconciliations",
            operation="get",
        )
        return self._parse(ReconciliationEnvelope, payload, "reconciliation").data

    def create_reconciliation(
        self,
        payload: ReconciliationCreateRequest | Mapping[str, Any],
        idempotency_key: str | None = None,
    ) -> Reconciliation:
        request = validate_create_payload(payload)
        try:
            data = self._request(
                "POST",
                RECONCILIATIONS_PATH,
                json_body=request.to_wire(),
                headers={"Idempotency-Key": idempotency_key or str(uuid.uuid4())},
                module="reconciliations",
                operation="create",
                invalidate_paths=[RECONCILIATIONS_PATH],
            )
        except ApiError as exc:
            _raise_reconciliation_error(exc)
        return self._parse(ReconciliationEnvelope, data, "reconciliation create").data

    def update_reconciliation(
        self,
        reconciliation_id: int,
        payload: ReconciliationUpdateRequest | Mapping[str, Any],
        *,
        current_status: ReconciliationStatus | str | None = None,
    ) -> Reconciliation:
        if current_status is not None:
            validate_status_transition(current_status, "UPDATE")
        request = payload if isinstance(payload, ReconciliationUpdateRequest) else ReconciliationUpdateRequest.model_validate(payload)
        return self._mutate("PUT", reconciliation_id, "", request.to_wire(), "update")

    def submit_reconciliation(
        self,
        reconciliation_id: int,
        *,
        current_status: ReconciliationStatus | str | None = None,
    ) -> Reconciliation | None:
        if current_status is not None:
            validate_status_transition(current_status, "SUBMIT")
        return self._mutate("POST", reconciliation_id, "/submit", None, "submit", allow_empty=True)

    def approve_reconciliation(
        self,
        reconciliation_id: int,
        payload: ApproveRequest | Mapping[str, Any] | None = None,
        *,
        current_status: ReconciliationStatus | str | None = None,
    ) -> Reconciliation | None:
        if current_status is not None:
            validate_status_transition(current_status, "APPROVE")
        request = validate_approve_payload(payload)
        return self._mutate("POST", reconciliation_id, "/approve", request.to_wire(), "approve", allow_empty=True)

    def reject_reconciliation(
        self,
        reconciliation_id: int,
        payload: RejectRequest | Mapping[str, Any],
        *,
        current_status: ReconciliationStatus | str | None = None,
    ) -> Reconciliation | None:
        if current_status is not None:
            validate_status_transition(current_status, "REJECT")
        request = validate_reject_payload(payload)
        return self._mutate("POST", reconciliation_id, "/reject", request.to_wire(), "reject", allow_empty=True)

    def delete_reconciliation(
        self,
        reconciliation_id: int,
        *,
        current_status: ReconciliationStatus | str | None = None,
    ) -> None:
        if current_status is not None:
            validate_status_transition(current_status, "DELETE")
        self._mutate("DELETE", reconciliation_id, "", None, "delete", allow_empty=True)

    def _mutate(
        self,
        method: str,
        reconciliation_id: int,
        suffix: str,
        body: dict[str, Any] | None,
        operation: str,
        *,
        allow_empty: bool = False,
    ) -> Reconciliation | None:
        try:
            data = self._request(
                method,
                f"{RECONCILIATIONS_PATH}/{reconciliation_id}{suffix}",
                json_body=body,
                module="reconciliations",
                operation=operation,
                invalidate_paths=[RECONCILIATIONS_PATH],
            )
        except ApiError as exc:
            _raise_reconciliation_error(exc)
        # submit/approve/reject/delete only signal success; a body is optional.
        if allow_empty and (data is None or (isinstance(data, dict) and "data" not in data)):
            return None
        return self._parse(ReconciliationEnvelope, data, f"reconciliation {operation}").data


def _raise_reconciliation_error(exc: ApiError) -> None:
    message = _detail_message(exc)
    if isinstance(exc, ForbiddenError):
        raise _rewrap(ReconciliationActionForbiddenError, exc) from exc
    if isinstance(exc, ValidationError) and message and ("status" in message or "draft" in message or "pending" in message):
        raise _rewrap(ReconciliationStateError, exc) from exc
    raise exc


def _detail_message(exc: ApiError) -> str | None:
    if isinstance(exc.details, dict):
        message = exc.details.get("message")
        if isinstance(message, str):
            return message.lower()
    if exc.message:
        return exc.message.lower()
    return None


def _rewrap(error_type: type[ApiError], exc: ApiError) -> ApiError:
    return error_type(**{item.name: getattr(exc, item.name) for item in fields(exc)})
