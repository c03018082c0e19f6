from __future__ import annotations

import uuid
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, Mapping

from invdash_client_sdk import ApiSession, to_user_facing_error
from invdash_client_sdk.exceptions import (
    ApiError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    RateLimitError,
    ReconciliationStateError,
    ResponseShapeError,
    ServerError,
    TransportError,
    UnauthorizedError,
    ValidationError,
)
from invdash_client_sdk.models_catalog import CategoryNode, Product, ProductSearchQuery
from invdash_client_sdk.models_inventory import SnapshotQuery, SnapshotResponse
from invdash_client_sdk.models_reconciliation import (
    ApproveRequest,
    Reconciliation,
    ReconciliationCreateRequest,
    ReconciliationListResponse,
    ReconciliationQuery,
    ReconciliationStatus,
)
from invdash_client_sdk.reconciliation_validation import ClientValidationError

DIALOG_CONTEXT_KEY = "stock_reconciliation_dialog"


@dataclass(frozen=True)
class ReconciliationServiceError(RuntimeError):
    message: str
    details: Any = None
    trace_id: str | None = None
    category: str = "unknown"
    code: str | None = None
    field_errors: dict[str, str] | None = None

    def __str__(self) -> str:
        return self.message

    @property
    def cancelled(self) -> bool:
        return self.code == "REQUEST_CANCELLED"


class ReconciliationService:
    """Screen-facing facade over the catalog, inventory and reconciliation clients.

    Every failure leaves this class as a :class:`ReconciliationServiceError`.
    Requests issued through it are tied to ``context_key``; :meth:`cancel_pending`
    makes responses that are still in flight come back as cancelled.
    """

    def __init__(self, session: ApiSession, *, context_key: str = DIALOG_CONTEXT_KEY) -> None:
        self.session = session
        self.context_key = context_key

    def category_tree(self) -> list[CategoryNode]:
        try:
            return self.session.catalog_client(self.context_key).get_category_tree()
        except Exception as exc:
            raise self._normalize_error(exc) from exc

    def search_products(self, term: str, *, limit: int | None = None) -> list[Product]:
        query = ProductSearchQuery(search=term, limit=limit or self.session.config.search_limit)
        try:
            return self.session.catalog_client(self.context_key).search_products(query)
        except Exception as exc:
            raise self._normalize_error(exc) from exc

    def load_snapshot(self, category_ids: Iterable[int], *, limit: int | None = None) -> SnapshotResponse:
        query = SnapshotQuery(
            category_ids=list(category_ids),
            limit=limit or self.session.config.snapshot_limit,
        )
        try:
            return self.session.inventory_client(self.context_key).get_snapshot(query)
        except Exception as exc:
            raise self._normalize_error(exc) from exc

    def create(
        self,
        payload: ReconciliationCreateRequest | Mapping[str, Any],
        *,
        idempotency_key: str | None = None,
    ) -> Reconciliation:
        try:
            return self.session.reconciliations_client(self.context_key).create_reconciliation(
                payload,
                idempotency_key=idempotency_key or str(uuid.uuid4()),
            )
        except Exception as exc:
            raise self._normalize_error(exc) from exc

    def submit(self, reconciliation_id: int, *, current_status: ReconciliationStatus | str | None = None) -> Reconciliation | None:
        try:
            return self.session.reconciliations_client(self.context_key).submit_reconciliation(
                reconciliation_id, current_status=current_status
            )
        except Exception as exc:
            raise self._normalize_error(exc) from exc

    def list(self, query: ReconciliationQuery | Mapping[str, Any] | None = None) -> ReconciliationListResponse:
        try:
            filters = query if isinstance(query, ReconciliationQuery) or query is None else ReconciliationQuery.model_validate(query)
            return self.session.reconciliations_client(self.context_key).list_reconciliations(filters)
        except Exception as exc:
            raise self._normalize_error(exc) from exc

    def get(self, reconciliation_id: int) -> Reconciliation:
        try:
            return self.session.reconciliations_client(self.context_key).get_reconciliation(reconciliation_id)
        except Exception as exc:
            raise self._normalize_error(exc) from exc

    def approve(
        self,
        reconciliation_id: int,
        notes: str | None = None,
        *,
        current_status: ReconciliationStatus | str | None = None,
    ) -> Reconciliation | None:
        try:
            return self.session.reconciliations_client(self.context_key).approve_reconciliation(
                reconciliation_id, ApproveRequest(notes=notes), current_status=current_status
            )
        except Exception as exc:
            raise self._normalize_error(exc) from exc

    def reject(
        self,
        reconciliation_id: int,
        reason: str,
        *,
        current_status: ReconciliationStatus | str | None = None,
    ) -> Reconciliation | None:
        try:
            return self.session.reconciliations_client(self.context_key).reject_reconciliation(
                reconciliation_id, {"reason": reason}, current_status=current_status
            )
        except Exception as exc:
            raise self._normalize_error(exc) from exc

    def delete(self, reconciliation_id: int, *, current_status: ReconciliationStatus | str | None = None) -> None:
        try:
            self.session.reconciliations_client(self.context_key).delete_reconciliation(reconciliation_id, current_status=current_status)
        except Exception as exc:
            raise self._normalize_error(exc) from exc

    def cancel_pending(self) -> int:
        return self.session.switch_context(self.context_key)

    @staticmethod
    def _normalize_error(exc: Exception) -> ReconciliationServiceError:
        if isinstance(exc, ReconciliationServiceError):
            return exc
        if isinstance(exc, ApiError):
            user_facing = to_user_facing_error(exc)
            return ReconciliationServiceError(
                message=user_facing.message,
                details=exc.details,
                trace_id=user_facing.trace_id,
                category=_category_for(exc),
                code=exc.code,
            )
        if isinstance(exc, ClientValidationError):
            return ReconciliationServiceError(
                message=str(exc),
                details="CLIENT_VALIDATION",
                category="validation",
                code="CLIENT_VALIDATION",
                field_errors=exc.field_errors(),
            )
        return ReconciliationServiceError(message=str(exc) or "Unexpected reconciliation error")


def _category_for(exc: ApiError) -> str:
    if isinstance(exc, TransportError):
        return "cancelled" if exc.code == "REQUEST_CANCELLED" else "transport"
    if isinstance(exc, ResponseShapeError):
        return "unexpected_response"
    if isinstance(exc, (ReconciliationStateError, ConflictError)):
        return "conflict"
    if isinstance(exc, (UnauthorizedError, ForbiddenError)):
        return "permission_denied"
    if isinstance(exc, NotFoundError):
        return "not_found"
    if isinstance(exc, ValidationError):
        return "validation"
    if isinstance(exc, (ServerError, RateLimitError)):
        return "server"
    return "unknown"
