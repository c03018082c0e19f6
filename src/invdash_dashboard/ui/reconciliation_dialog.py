from __future__ import annotations

import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from invdash_client_sdk.category_resolver import resolve_category_ids
from invdash_client_sdk.formatting import default_reconciliation_title, format_currency
from invdash_client_sdk.logging_utils import get_logger, log_action
from invdash_client_sdk.models_catalog import CategoryNode, Product
from invdash_client_sdk.models_inventory import SnapshotItem
from invdash_client_sdk.models_reconciliation import (
    DESCRIPTION_MAX_LENGTH,
    NOTES_MAX_LENGTH,
    TITLE_MAX_LENGTH,
    DiscrepancyReason,
    ReconciliationCreateRequest,
    ReconciliationItemPayload,
)
from invdash_client_sdk.reconciliation_items import (
    CostBook,
    ReconciliationLineItem,
    ReconciliationTotals,
    build_item_payloads,
    summarize,
)
from invdash_client_sdk.reconciliation_state import SubmissionPhase, can_transition
from invdash_client_sdk.reconciliation_validation import issues_from_validation_error, parse_count
from invdash_client_sdk.search_scheduler import SearchScheduler
from invdash_client_sdk.telemetry import TelemetryLogger, build_event

from ..services.reconciliation_service import ReconciliationService, ReconciliationServiceError
from .components.reconciliation_items_table import ReconciliationItemsTable
from .components.reconciliation_summary_bar import ReconciliationSummaryBar
from .shared.error_presenter import ErrorPresenter
from .shared.notification_center import NotificationCenter

logger = get_logger(__name__)

MODULE = "reconciliation"
_FORM_FIELDS = ("title", "description", "notes", "items")
_UNSET: Any = object()
_DRAFT_LOCKED = "This reconciliation is already saved as a draft. Retry submitting it for approval."


@dataclass
class ReconciliationDialog:
    """Controller behind the "Create Stock Reconciliation" dialog.

    Holds every piece of draft state while the dialog is open and drops all of
    it on close. Rows come from two places: products picked from the debounced
    search (appended) and an explicit category snapshot load (replaces the
    rows). Saving posts the draft; submitting for approval posts it and then
    requests the status transition.

    Each open/close bumps ``_open_token``; a service call that returns after the
    token moved on belongs to a closed dialog and its result is dropped.
    """

    service: ReconciliationService
    notifications: NotificationCenter = field(default_factory=NotificationCenter)
    telemetry: TelemetryLogger = field(default_factory=lambda: TelemetryLogger(app_name="invdash_dashboard", enabled=False))
    on_success: Callable[[int, bool], None] | None = None
    clock: Callable[[], float] | None = None
    is_open: bool = False
    title: str = ""
    description: str = ""
    notes: str = ""
    items: list[ReconciliationLineItem] = field(default_factory=list)
    costs: CostBook = field(default_factory=CostBook)
    category_tree: list[CategoryNode] | None = None
    selected_category_ids: set[int] = field(default_factory=set)
    field_errors: dict[str, str] = field(default_factory=dict)
    phase: SubmissionPhase = SubmissionPhase.IDLE
    created_id: int | None = None
    is_submitting: bool = False
    is_loading_snapshot: bool = False
    is_loading_categories: bool = False
    error_message: str | None = None
    trace_id: str | None = None
    _row_errors: dict[int, dict[str, str]] = field(default_factory=dict, init=False)
    _open_token: int = field(default=0, init=False)

    def __post_init__(self) -> None:
        self.scheduler: SearchScheduler[Product] = SearchScheduler(
            self._fetch_products,
            delay_ms=self.service.session.config.search_debounce_ms,
            now=self.clock,
        )

    # -- lifecycle -------------------------------------------------------

    def open(self, today: date | None = None) -> dict[str, Any]:
        if self.is_open:
            return self.render()
        self._reset()
        self._open_token += 1
        self.is_open = True
        self.title = default_reconciliation_title(today)
        self._load_categories()
        return self.render()

    def close(self) -> None:
        self.service.cancel_pending()
        self.scheduler.reset()
        self._reset()
        self._open_token += 1
        self.is_open = False

    def _reset(self) -> None:
        self.title = ""
        self.description = ""
        self.notes = ""
        self.items = []
        self.costs.clear()
        self.category_tree = None
        self.selected_category_ids = set()
        self.field_errors = {}
        self._row_errors = {}
        self.phase = SubmissionPhase.IDLE
        self.created_id = None
        self.is_submitting = False
        self.is_loading_snapshot = False
        self.is_loading_categories = False
        self.error_message = None
        self.trace_id = None

    def _load_categories(self) -> None:
        token = self._open_token
        self.is_loading_categories = True
        try:
            tree = self.service.category_tree()
        except ReconciliationServiceError as exc:
            if token == self._open_token and not exc.cancelled:
                self._notify_read_error(exc, title="Could not load categories", action="reconciliation.load_categories")
            return
        finally:
            if token == self._open_token:
                self.is_loading_categories = False
        if token == self._open_token:
            self.category_tree = tree

    # -- form fields -----------------------------------------------------

    @property
    def rows_locked(self) -> bool:
        """True once the draft exists server-side; later edits would never reach it."""
        return self.created_id is not None

    def _locked(self) -> dict[str, Any]:
        return {"ok": False, "error": _DRAFT_LOCKED, "reconciliation_id": self.created_id, "locked": True}

    def set_details(self, *, title: Any = _UNSET, description: Any = _UNSET, notes: Any = _UNSET) -> dict[str, Any]:
        if self.rows_locked:
            return self._locked()
        if title is not _UNSET:
            self.title = title or ""
            self.field_errors.pop("title", None)
        if description is not _UNSET:
            self.description = description or ""
            self.field_errors.pop("description", None)
        if notes is not _UNSET:
            self.notes = notes or ""
            self.field_errors.pop("notes", None)
        return {"ok": True, "field_errors": self.all_field_errors()}

    # -- product search --------------------------------------------------

    def set_search_term(self, term: str) -> dict[str, Any]:
        self.scheduler.submit(term)
        return self._render_search()

    def poll_search(self) -> bool:
        """Advance the debounce timer; True when new results arrived."""
        return self._drive_search(self.scheduler.poll)

    def flush_search(self) -> bool:
        return self._drive_search(self.scheduler.flush)

    def _drive_search(self, runner: Callable[[], bool]) -> bool:
        if not self.is_open:
            return False
        token = self._open_token
        try:
            fresh = runner()
        except ReconciliationServiceError as exc:
            if token == self._open_token and not exc.cancelled:
                self._notify_read_error(exc, title="Product search failed", action="reconciliation.search")
            return False
        if not fresh or token != self._open_token:
            return False
        self.costs.remember(self.scheduler.results)
        return True

    def _fetch_products(self, term: str) -> list[Product]:
        return self.service.search_products(term)

    @property
    def search_results(self) -> list[Product]:
        return list(self.scheduler.results)

    def add_product(self, product: Product | int) -> dict[str, Any]:
        if self.rows_locked:
            return self._locked()
        if isinstance(product, int):
            match = next((candidate for candidate in self.scheduler.results if candidate.id == product), None)
            if match is None:
                return {"ok": False, "error": f"Product {product} is not in the current search results"}
            product = match
        if any(item.product_id == product.id for item in self.items):
            self.notifications.push(
                level="warning",
                title="Product already added to reconciliation",
                message=f"{product.name} ({product.sku}) is already in the list.",
                details={"product_id": product.id},
            )
            return {"ok": False, "error": "Product already added to reconciliation", "duplicate": True}
        self.items.append(ReconciliationLineItem.from_product(product))
        self.costs.remember([product])
        self.field_errors.pop("items", None)
        return {"ok": True, "items": self._render_items()}

    # -- category snapshot -----------------------------------------------

    @property
    def categories_enabled(self) -> bool:
        return self.category_tree is not None

    def toggle_category(self, category_id: int) -> dict[str, Any]:
        if not self.categories_enabled:
            return {"ok": False, "error": "Categories have not loaded yet"}
        if category_id in self.selected_category_ids:
            self.selected_category_ids.discard(category_id)
        else:
            self.selected_category_ids.add(category_id)
        self.field_errors.pop("categoryIds", None)
        return {"ok": True, "selected": sorted(self.selected_category_ids)}

    def set_selected_categories(self, category_ids: Iterable[int]) -> dict[str, Any]:
        if not self.categories_enabled:
            return {"ok": False, "error": "Categories have not loaded yet"}
        self.selected_category_ids = set(category_ids)
        self.field_errors.pop("categoryIds", None)
        return {"ok": True, "selected": sorted(self.selected_category_ids)}

    def resolved_category_ids(self) -> frozenset[int]:
        return resolve_category_ids(self.selected_category_ids, self.category_tree)

    def load_snapshot(self) -> dict[str, Any]:
        if not self.is_open:
            return {"ok": False, "error": "Dialog is closed"}
        if self.rows_locked:
            return self._locked()
        if self.is_loading_snapshot or self.is_submitting:
            return {"ok": False, "error": "Another operation is in progress"}
        if not self.categories_enabled:
            return {"ok": False, "error": "Categories have not loaded yet"}
        resolved = self.resolved_category_ids()
        if not resolved:
            self.field_errors["categoryIds"] = "Select at least one category to load"
            return {"ok": False, "error": self.field_errors["categoryIds"], "field_errors": self.all_field_errors()}

        token = self._open_token
        started = time.monotonic()
        self.is_loading_snapshot = True
        try:
            response = self.service.load_snapshot(sorted(resolved))
        except ReconciliationServiceError as exc:
            if token != self._open_token or exc.cancelled:
                return {"ok": False, "cancelled": True}
            self._notify_read_error(exc, title="Failed to load inventory snapshot", action="reconciliation.load_snapshot")
            self._record("load_snapshot", started, success=False, error_code=exc.code, category_count=len(resolved))
            return {"ok": False, "error": exc.message, "trace_id": exc.trace_id}
        finally:
            self.is_loading_snapshot = False
        if token != self._open_token:
            return {"ok": False, "cancelled": True}

        kept: dict[int, SnapshotItem] = {}
        duplicates: list[int] = []
        for snapshot_item in response.data:
            if snapshot_item.id in kept:
                duplicates.append(snapshot_item.id)
                continue
            kept[snapshot_item.id] = snapshot_item
        self.items = [ReconciliationLineItem.from_snapshot(item) for item in kept.values()]
        self._row_errors = {}
        if duplicates:
            logger.warning("snapshot listed products more than once: %s", sorted(set(duplicates)))
            self.notifications.push(
                level="warning",
                title="Duplicate products skipped",
                message=f"{len(duplicates)} repeated snapshot rows were dropped; each product is counted once.",
                details={"product_ids": sorted(set(duplicates))},
            )
        self.costs.remember(kept.values())
        self.field_errors.pop("categoryIds", None)
        if self.items:
            self.field_errors.pop("items", None)
        else:
            self.notifications.push(
                level="info",
                title="No products found",
                message="The selected categories have no active products.",
                details={"category_ids": sorted(resolved)},
            )
        if response.truncated:
            self.notifications.push(
                level="warning",
                title="Snapshot truncated",
                message=f"Only the first {len(self.items)} products were loaded. Narrow the category selection.",
                details={"next_cursor": response.pagination.next_cursor},
            )
        self._record("load_snapshot", started, success=True, category_count=len(resolved), item_count=len(self.items))
        return {"ok": True, "count": len(self.items), "items": self._render_items()}

    # -- row editing -----------------------------------------------------

    def remove_item(self, index: int) -> dict[str, Any]:
        if self.rows_locked:
            return self._locked()
        if index < 0 or index >= len(self.items):
            return {"ok": False, "error": "item index is out of range"}
        removed = self.items.pop(index)
        self._row_errors.pop(removed.product_id, None)
        return {"ok": True, "items": self._render_items()}

    def update_item(
        self,
        index: int,
        *,
        physical_count: Any = _UNSET,
        discrepancy_reason: Any = _UNSET,
        notes: Any = _UNSET,
    ) -> dict[str, Any]:
        if self.rows_locked:
            return self._locked()
        if index < 0 or index >= len(self.items):
            return {"ok": False, "error": "item index is out of range"}
        item = self.items[index]
        errors = self._row_errors.setdefault(item.product_id, {})
        if physical_count is not _UNSET:
            try:
                item.physical_count = parse_count(physical_count)
                errors.pop("physicalCount", None)
            except ValueError as exc:
                errors["physicalCount"] = f"Physical {exc}"
        if discrepancy_reason is not _UNSET:
            if discrepancy_reason in (None, ""):
                item.discrepancy_reason = None
                errors.pop("discrepancyReason", None)
            else:
                try:
                    item.discrepancy_reason = DiscrepancyReason(str(getattr(discrepancy_reason, "value", discrepancy_reason)).upper())
                    errors.pop("discrepancyReason", None)
                except ValueError:
                    errors["discrepancyReason"] = "Choose a reason from the list"
        if notes is not _UNSET:
            item.notes = notes or None
        if not errors:
            self._row_errors.pop(item.product_id, None)
        return {
            "ok": not errors,
            "field_errors": self.all_field_errors(),
            "summary": ReconciliationSummaryBar(self.summary()).render(),
        }

    def summary(self) -> ReconciliationTotals:
        return summarize(self.items, self.costs)

    def all_field_errors(self) -> dict[str, str]:
        merged = dict(self.field_errors)
        for index, item in enumerate(self.items):
            for name, message in self._row_errors.get(item.product_id, {}).items():
                merged[f"items.{index}.{name}"] = message
        return merged

    # -- persistence -----------------------------------------------------

    def save_draft(self) -> dict[str, Any]:
        return self._persist(submit=False)

    def submit_for_approval(self) -> dict[str, Any]:
        return self._persist(submit=True)

    def _persist(self, *, submit: bool) -> dict[str, Any]:
        if not self.is_open:
            return {"ok": False, "error": "Dialog is closed"}
        if self.is_submitting:
            return {"ok": False, "error": "Reconciliation save already in progress"}
        if self.created_id is not None and not submit:
            return {
                "ok": False,
                "error": _DRAFT_LOCKED,
                "reconciliation_id": self.created_id,
                "partial": True,
            }

        token = self._open_token
        self.is_submitting = True
        try:
            if self.created_id is not None:
                return self._submit_created(token)
            request = self._build_request()
            if request is None:
                return {
                    "ok": False,
                    "error": "Please fix the highlighted fields",
                    "field_errors": self.all_field_errors(),
                }
            return self._create(request, token, submit=submit)
        finally:
            self.is_submitting = False

    def _build_request(self) -> ReconciliationCreateRequest | None:
        for name in _FORM_FIELDS:
            self.field_errors.pop(name, None)
        title = self.title.strip()
        description = self.description.strip()
        notes = self.notes.strip()
        if not title:
            self.field_errors["title"] = "Title is required"
        elif len(title) > TITLE_MAX_LENGTH:
            self.field_errors["title"] = f"Title must be at most {TITLE_MAX_LENGTH} characters"
        if len(description) > DESCRIPTION_MAX_LENGTH:
            self.field_errors["description"] = f"Description must be at most {DESCRIPTION_MAX_LENGTH} characters"
        if len(notes) > NOTES_MAX_LENGTH:
            self.field_errors["notes"] = f"Notes must be at most {NOTES_MAX_LENGTH} characters"
        if not self.items:
            self.field_errors["items"] = "Add at least one product"
        if any(name in self.field_errors for name in _FORM_FIELDS) or self._row_errors:
            return None
        payloads: list[ReconciliationItemPayload] = []
        for index, item in enumerate(self.items):
            try:
                payloads.extend(build_item_payloads([item], self.costs))
            except PydanticValidationError as exc:
                errors = self._row_errors.setdefault(item.product_id, {})
                for issue in issues_from_validation_error(exc, row_index=index):
                    errors.setdefault(issue.field, issue.reason)
        if self._row_errors:
            return None
        try:
            return ReconciliationCreateRequest(
                title=title,
                description=description or None,
                notes=notes or None,
                items=payloads,
            )
        except PydanticValidationError as exc:
            for issue in issues_from_validation_error(exc):
                self.field_errors.setdefault(issue.key, issue.reason)
            return None

    def _create(self, request: ReconciliationCreateRequest, token: int, *, submit: bool) -> dict[str, Any]:
        started = time.monotonic()
        self._advance(SubmissionPhase.CREATING)
        try:
            created = self.service.create(request)
        except ReconciliationServiceError as exc:
            return self._fail(exc, token, started, action="create", partial=False)
        if token != self._open_token:
            return {"ok": False, "cancelled": True}
        self.created_id = created.id
        if not submit:
            self._advance(SubmissionPhase.DRAFT_SAVED)
            return self._succeed(created.id, started, submitted=False)
        return self._submit_created(token, started)

    def _submit_created(self, token: int, started: float | None = None) -> dict[str, Any]:
        started = started if started is not None else time.monotonic()
        reconciliation_id = self.created_id
        self._advance(SubmissionPhase.SUBMITTING)
        try:
            self.service.submit(reconciliation_id)
        except ReconciliationServiceError as exc:
            return self._fail(exc, token, started, action="submit", partial=True)
        if token != self._open_token:
            return {"ok": False, "cancelled": True}
        self._advance(SubmissionPhase.SUBMITTED)
        return self._succeed(reconciliation_id, started, submitted=True)

    def _succeed(self, reconciliation_id: int, started: float, *, submitted: bool) -> dict[str, Any]:
        headline = "Stock reconciliation submitted for approval" if submitted else "Stock reconciliation saved as draft"
        item_count = len(self.items)
        self.notifications.push(
            level="success",
            title=headline,
            message=f"Reconciliation #{reconciliation_id} with {item_count} products.",
            details={"reconciliation_id": reconciliation_id},
        )
        self._record(
            "submit" if submitted else "save_draft",
            started,
            success=True,
            reconciliation_id=reconciliation_id,
            item_count=item_count,
        )
        callback = self.on_success
        self.close()
        if callback is not None:
            callback(reconciliation_id, submitted)
        return {"ok": True, "reconciliation_id": reconciliation_id, "submitted": submitted}

    def _fail(
        self,
        exc: ReconciliationServiceError,
        token: int,
        started: float,
        *,
        action: str,
        partial: bool,
    ) -> dict[str, Any]:
        if token != self._open_token or exc.cancelled:
            return {"ok": False, "cancelled": True}
        self._advance(SubmissionPhase.SUBMISSION_ERROR)
        presented = ErrorPresenter().present(exc, action=f"reconciliation.{action}")
        if exc.field_errors:
            self.field_errors.update(exc.field_errors)
        if partial:
            title = "Saved as draft, but submission failed"
            message = (
                f"Reconciliation #{self.created_id} was saved as a draft but could not be submitted "
                f"for approval: {presented.user_message}"
            )
        else:
            title = "Failed to create stock reconciliation"
            message = presented.user_message
        self.error_message = message
        self.trace_id = exc.trace_id
        self.notifications.push(
            level="error",
            title=title,
            message=message,
            details={
                "trace_id": exc.trace_id,
                "category": presented.category,
                "code": presented.code,
                "reconciliation_id": self.created_id,
            },
        )
        self._record(
            action,
            started,
            success=False,
            error_code=exc.code,
            outcome="partial" if partial else "error",
            reconciliation_id=self.created_id,
        )
        return {
            "ok": False,
            "error": message,
            "trace_id": exc.trace_id,
            "category": presented.category,
            "partial": partial,
            "reconciliation_id": self.created_id,
            "not_applied": not partial,
        }

    def _advance(self, target: SubmissionPhase) -> None:
        if not can_transition(self.phase, target):
            raise RuntimeError(f"Illegal submission transition {self.phase.value} -> {target.value}")
        self.phase = target

    # -- notices, telemetry ----------------------------------------------

    def _notify_read_error(self, exc: ReconciliationServiceError, *, title: str, action: str) -> None:
        presented = ErrorPresenter().present(exc, action=action, allow_retry=True)
        self.error_message = presented.user_message
        self.trace_id = exc.trace_id
        self.notifications.push(
            level="error",
            title=title,
            message=presented.user_message,
            details={"trace_id": exc.trace_id, "category": presented.category, "retry": presented.safe_to_retry},
        )

    def _record(
        self,
        action: str,
        started: float,
        *,
        success: bool,
        error_code: str | None = None,
        outcome: str | None = None,
        **context: Any,
    ) -> None:
        trace_id = self.trace_id if not success else self._current_trace_id()
        self.telemetry.emit(
            build_event(
                category=MODULE,
                name=f"reconciliation_{action}",
                module=MODULE,
                action=f"reconciliation.{action}",
                trace_id=trace_id,
                duration_ms=int((time.monotonic() - started) * 1000),
                success=success,
                error_code=error_code,
                context=context or None,
            )
        )
        log_action(logger, MODULE, action, trace_id, outcome or ("success" if success else "error"), **context)

    def _current_trace_id(self) -> str | None:
        trace = self.service.session.trace
        return trace.trace_id if trace else None

    # -- rendering -------------------------------------------------------

    def _render_items(self) -> dict[str, Any]:
        return ReconciliationItemsTable(self.items, self.costs, self.all_field_errors()).render()

    def _render_search(self) -> dict[str, Any]:
        added = {item.product_id for item in self.items}
        return {
            "term": self.scheduler.term,
            "pending": self.scheduler.is_pending,
            "results": [
                {
                    "id": product.id,
                    "name": product.name,
                    "sku": product.sku,
                    "stock": product.stock,
                    "cost": format_currency(product.cost),
                    "already_added": product.id in added,
                }
                for product in self.scheduler.results
            ],
        }

    def _render_category_nodes(self, nodes: list[CategoryNode]) -> list[dict[str, Any]]:
        return [
            {
                "id": node.id,
                "name": node.name,
                "selected": node.id in self.selected_category_ids,
                "children": self._render_category_nodes(node.children),
            }
            for node in nodes
        ]

    def render(self) -> dict[str, Any]:
        busy = self.is_submitting or self.is_loading_snapshot
        return {
            "is_open": self.is_open,
            "title": self.title,
            "description": self.description,
            "notes": self.notes,
            "phase": self.phase.value,
            "reconciliation_id": self.created_id,
            "partial_failure": self.phase == SubmissionPhase.SUBMISSION_ERROR and self.created_id is not None,
            "items": self._render_items(),
            "summary": ReconciliationSummaryBar(self.summary()).render(),
            "search": self._render_search(),
            "categories": {
                "enabled": self.categories_enabled,
                "loading": self.is_loading_categories,
                "tree": self._render_category_nodes(self.category_tree or []),
                "selected": sorted(self.selected_category_ids),
                "resolved": sorted(self.resolved_category_ids()),
            },
            "field_errors": self.all_field_errors(),
            "error": self.error_message,
            "trace_id": self.trace_id,
            "notifications": self.notifications.render(),
            "actions": {
                "can_edit_items": not busy and not self.rows_locked,
                "can_load_snapshot": self.categories_enabled
                and bool(self.selected_category_ids)
                and not busy
                and not self.rows_locked,
                "can_save_draft": not busy and self.created_id is None,
                "can_submit": not busy,
            },
            "guards": {
                "disable_while_submitting": self.is_submitting,
                "double_submit_protection": True,
                "loading_snapshot": self.is_loading_snapshot,
            },
        }
