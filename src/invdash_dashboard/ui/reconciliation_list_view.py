from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from invdash_client_sdk.formatting import format_currency, format_date, format_signed
from invdash_client_sdk.logging_utils import get_logger, log_action
from invdash_client_sdk.models import CurrentUser
from invdash_client_sdk.models_reconciliation import (
    ListPagination,
    Reconciliation,
    ReconciliationQuery,
    ReconciliationStatus,
)
from invdash_client_sdk.reconciliation_items import DISCREPANCY_TEXT_COLORS, discrepancy_tone
from invdash_client_sdk.reconciliation_state import (
    ReconciliationActionAvailability,
    reconciliation_action_availability,
    status_badge,
)
from invdash_client_sdk.telemetry import TelemetryLogger, build_event

from ..services.reconciliation_service import ReconciliationService, ReconciliationServiceError
from .shared.error_presenter import ErrorPresenter
from .shared.notification_center import NotificationCenter
from .shared.view_state import resolve_state

logger = get_logger(__name__)

SORTABLE_COLUMNS = ("createdAt", "updatedAt", "title", "status")


def reconciliation_totals(reconciliation: Reconciliation) -> tuple[int, Decimal]:
    """Sum discrepancy and estimated impact over the stored item values."""
    discrepancy = 0
    impact = Decimal("0")
    for item in reconciliation.items:
        discrepancy += item.discrepancy if item.discrepancy is not None else item.physical_count - item.system_count
        impact += item.estimated_impact or Decimal("0")
    return discrepancy, impact


@dataclass
class ReconciliationListView:
    service: ReconciliationService
    user: CurrentUser | None
    notifications: NotificationCenter = field(default_factory=NotificationCenter)
    telemetry: TelemetryLogger = field(default_factory=lambda: TelemetryLogger(app_name="invdash_dashboard", enabled=False))
    query: ReconciliationQuery = field(default_factory=ReconciliationQuery)
    records: list[Reconciliation] = field(default_factory=list)
    pagination: ListPagination = field(default_factory=ListPagination)
    is_loading: bool = False
    is_mutating: bool = False
    loaded: bool = False
    error_message: str | None = None
    trace_id: str | None = None

    def can_view(self) -> bool:
        return self.user is not None

    def load(self) -> bool:
        if not self.can_view():
            self.records = []
            return False
        self.is_loading = True
        self.error_message = None
        try:
            response = self.service.list(self.query)
        except ReconciliationServiceError as exc:
            self.error_message = exc.message
            self.trace_id = exc.trace_id
            self.telemetry.emit(
                build_event(
                    category="api_call_result",
                    name="api_call_result",
                    module="reconciliation",
                    action="reconciliation_list.load",
                    success=False,
                    trace_id=exc.trace_id,
                    error_code="read_failed",
                )
            )
            return False
        finally:
            self.is_loading = False
        self.records = list(response.data)
        self.pagination = response.pagination
        self.loaded = True
        return True

    def refresh(self) -> bool:
        return self.load()

    # -- query -----------------------------------------------------------

    def apply_filters(self, *, search: str | None = None, status: ReconciliationStatus | str | None = None) -> bool:
        term = (search or "").strip() or None
        try:
            resolved_status = ReconciliationStatus(status.upper()) if isinstance(status, str) and status else status or None
        except ValueError:
            self.notifications.push(
                level="warning",
                title="Unknown status filter",
                message=f"'{status}' is not a reconciliation status; the filter was not applied.",
                details={"allowed": [item.value for item in ReconciliationStatus]},
            )
            return False
        self.query = self.query.model_copy(update={"search": term, "status": resolved_status, "page": 1})
        return self.load()

    def set_sort(self, sort_by: str, sort_order: str | None = None) -> bool:
        if sort_by not in SORTABLE_COLUMNS:
            raise ValueError(f"Unsupported sort column: {sort_by}")
        if sort_order is None:
            # Clicking the active column flips the direction.
            sort_order = "asc" if self.query.sort_by == sort_by and self.query.sort_order == "desc" else "desc"
        self.query = ReconciliationQuery.model_validate(
            {**self.query.model_dump(), "sort_by": sort_by, "sort_order": sort_order, "page": 1}
        )
        return self.load()

    def go_to_page(self, page: int) -> bool:
        upper = max(self.pagination.total_pages, 1)
        self.query = self.query.model_copy(update={"page": min(max(page, 1), upper)})
        return self.load()

    def next_page(self) -> bool:
        if not self.pagination.has_next:
            return False
        return self.go_to_page(self.query.page + 1)

    def previous_page(self) -> bool:
        if not self.pagination.has_prev:
            return False
        return self.go_to_page(self.query.page - 1)

    # -- row actions -----------------------------------------------------

    def submit(self, reconciliation_id: int) -> dict[str, Any]:
        return self._mutate(
            reconciliation_id,
            "submit",
            "Stock reconciliation submitted for approval",
            lambda status: self.service.submit(reconciliation_id, current_status=status),
        )

    def approve(self, reconciliation_id: int, notes: str | None = None) -> dict[str, Any]:
        return self._mutate(
            reconciliation_id,
            "approve",
            "Stock reconciliation approved",
            lambda status: self.service.approve(reconciliation_id, notes, current_status=status),
        )

    def reject(self, reconciliation_id: int, reason: str) -> dict[str, Any]:
        if not (reason or "").strip():
            return {"ok": False, "error": "A rejection reason is required", "field_errors": {"reason": "A rejection reason is required"}}
        return self._mutate(
            reconciliation_id,
            "reject",
            "Stock reconciliation rejected",
            lambda status: self.service.reject(reconciliation_id, reason.strip(), current_status=status),
        )

    def delete(self, reconciliation_id: int, *, confirmed: bool) -> dict[str, Any]:
        if not confirmed:
            return {"ok": False, "error": "Delete confirmation is required"}
        return self._mutate(
            reconciliation_id,
            "delete",
            "Stock reconciliation deleted",
            lambda status: self.service.delete(reconciliation_id, current_status=status),
        )

    def _mutate(
        self,
        reconciliation_id: int,
        action: str,
        success_title: str,
        call: Callable[[ReconciliationStatus | None], Any],
    ) -> dict[str, Any]:
        record = self._find(reconciliation_id)
        if record is None:
            return {"ok": False, "error": f"Reconciliation {reconciliation_id} is not on this page"}
        availability = self._availability(record)
        if not getattr(availability, f"can_{action}"):
            return {"ok": False, "error": f"You cannot {action} this reconciliation in its current state"}
        if self.is_mutating:
            return {"ok": False, "error": "Reconciliation action already in progress"}
        self.is_mutating = True
        try:
            call(record.status)
        except ReconciliationServiceError as exc:
            presented = ErrorPresenter().present(exc, action=f"reconciliation.{action}")
            self.notifications.push(
                level="error",
                title=f"Failed to {action} stock reconciliation",
                message=presented.user_message,
                details={"trace_id": exc.trace_id, "category": presented.category},
            )
            log_action(logger, "reconciliation", action, exc.trace_id, "error", reconciliation_id=reconciliation_id)
            return {"ok": False, "error": presented.user_message, "trace_id": exc.trace_id, "category": presented.category}
        finally:
            self.is_mutating = False
        self.notifications.push(
            level="success",
            title=success_title,
            message=f"Reconciliation #{reconciliation_id}",
            details={"reconciliation_id": reconciliation_id},
        )
        log_action(logger, "reconciliation", action, None, "success", reconciliation_id=reconciliation_id)
        self.load()
        return {"ok": True, "reconciliation_id": reconciliation_id}

    def _find(self, reconciliation_id: int) -> Reconciliation | None:
        return next((record for record in self.records if record.id == reconciliation_id), None)

    def _availability(self, record: Reconciliation) -> ReconciliationActionAvailability:
        is_owner = bool(self.user and record.created_by and record.created_by.id == self.user.id)
        return reconciliation_action_availability(
            record.status,
            is_admin=bool(self.user and self.user.is_admin),
            is_owner=is_owner,
        )

    # -- rendering -------------------------------------------------------

    def _render_row(self, record: Reconciliation) -> dict[str, Any]:
        discrepancy, impact = reconciliation_totals(record)
        availability = self._availability(record)
        creator = record.created_by
        creator_name = " ".join(part for part in (creator.first_name, creator.last_name) if part) if creator else ""
        return {
            "id": record.id,
            "title": record.title or f"Reconciliation #{record.id}",
            "status": record.status.value if record.status else None,
            "badge": status_badge(record.status),
            "item_count": len(record.items),
            "total_discrepancy": discrepancy,
            "total_discrepancy_label": format_signed(discrepancy),
            "total_impact": impact,
            "total_impact_label": format_currency(impact),
            "impact_class": DISCREPANCY_TEXT_COLORS[discrepancy_tone(impact)],
            "created_by": creator_name or "-",
            "created_at": format_date(record.created_at),
            "submitted_at": format_date(record.submitted_at),
            "approved_at": format_date(record.approved_at),
            "actions": {
                "edit": availability.can_edit,
                "submit": availability.can_submit,
                "approve": availability.can_approve,
                "reject": availability.can_reject,
                "delete": availability.can_delete,
            },
        }

    def render(self) -> dict[str, Any]:
        state = resolve_state(
            can_view=self.can_view(),
            is_loading=self.is_loading,
            error=self.error_message,
            has_data=bool(self.records),
            trace_id=self.trace_id,
            empty_message="No stock reconciliations found",
        )
        return {
            "can_view": self.can_view(),
            "loading": self.is_loading,
            "error": self.error_message,
            "trace_id": self.trace_id,
            "filters": {
                "search": self.query.search,
                "status": self.query.status.value if self.query.status else None,
                "sort_by": self.query.sort_by,
                "sort_order": self.query.sort_order,
            },
            "pagination": {
                "page": self.pagination.page,
                "limit": self.pagination.limit,
                "total": self.pagination.total,
                "total_pages": self.pagination.total_pages,
                "has_next": self.pagination.has_next,
                "has_prev": self.pagination.has_prev,
            },
            "rows": [self._render_row(record) for record in self.records],
            "view_state": state.render(),
            "notifications": self.notifications.render(),
            "guards": {"disable_while_mutating": self.is_mutating, "delete_requires_confirmation": True},
        }
