from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from types import SimpleNamespace
from typing import Any

from invdash_client_sdk.config import ClientConfig
from invdash_client_sdk.models_catalog import CategoryNode, Product
from invdash_client_sdk.models_inventory import SnapshotItem, SnapshotPagination, SnapshotResponse
from invdash_client_sdk.models_reconciliation import (
    DiscrepancyReason,
    Reconciliation,
    ReconciliationCreateRequest,
    ReconciliationStatus,
)
from invdash_client_sdk.reconciliation_items import ReconciliationLineItem
from invdash_client_sdk.reconciliation_state import SubmissionPhase
from invdash_client_sdk.tracing import TraceContext
from invdash_dashboard.services.reconciliation_service import ReconciliationServiceError
from invdash_dashboard.ui.reconciliation_dialog import ReconciliationDialog
from invdash_dashboard.ui.shared.notification_center import NotificationCenter


def _tree() -> list[CategoryNode]:
    return [
        CategoryNode.model_validate(
            {"id": 1, "name": "Groceries", "children": [{"id": 2, "name": "Grains", "parentId": 1}]}
        ),
        CategoryNode(id=5, name="Cleaning"),
    ]


def _snapshot_item(item_id: int, system_count: int, cost: str) -> SnapshotItem:
    return SnapshotItem(id=item_id, name=f"Item {item_id}", sku=f"SKU-{item_id}", system_count=system_count, cost=cost)


@dataclass
class FakeReconciliationService:
    tree: list[CategoryNode] | None = field(default_factory=_tree)
    products: list[Product] = field(default_factory=list)
    snapshot: SnapshotResponse = field(default_factory=lambda: SnapshotResponse(data=[]))
    fail_tree: ReconciliationServiceError | None = None
    fail_search: ReconciliationServiceError | None = None
    fail_snapshot: ReconciliationServiceError | None = None
    fail_create: ReconciliationServiceError | None = None
    fail_submit: list[ReconciliationServiceError] = field(default_factory=list)
    search_calls: list[str] = field(default_factory=list)
    snapshot_calls: list[list[int]] = field(default_factory=list)
    create_calls: list[ReconciliationCreateRequest] = field(default_factory=list)
    submit_calls: list[int] = field(default_factory=list)
    cancel_count: int = 0
    on_snapshot: Any = None

    def __post_init__(self) -> None:
        self.session = SimpleNamespace(
            config=ClientConfig(env_name="test", api_base_url="https://api.example.com", search_debounce_ms=300),
            trace=TraceContext("trace-fixed"),
        )

    def category_tree(self) -> list[CategoryNode]:
        if self.fail_tree:
            raise self.fail_tree
        return self.tree or []

    def search_products(self, term: str) -> list[Product]:
        self.search_calls.append(term)
        if self.fail_search:
            raise self.fail_search
        return [product for product in self.products if term.lower() in product.name.lower()]

    def load_snapshot(self, category_ids: list[int]) -> SnapshotResponse:
        self.snapshot_calls.append(list(category_ids))
        if self.on_snapshot:
            self.on_snapshot()
        if self.fail_snapshot:
            raise self.fail_snapshot
        return self.snapshot

    def create(self, request: ReconciliationCreateRequest) -> Reconciliation:
        self.create_calls.append(request)
        if self.fail_create:
            raise self.fail_create
        return Reconciliation(id=77, status=ReconciliationStatus.DRAFT)

    def submit(self, reconciliation_id: int) -> None:
        self.submit_calls.append(reconciliation_id)
        if self.fail_submit:
            raise self.fail_submit.pop(0)
        return None

    def cancel_pending(self) -> int:
        self.cancel_count += 1
        return self.cancel_count


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def _dialog(service: FakeReconciliationService | None = None, **kwargs: Any) -> tuple[ReconciliationDialog, FakeReconciliationService]:
    service = service or FakeReconciliationService()
    dialog = ReconciliationDialog(service=service, **kwargs)
    dialog.open(today=date(2025, 1, 5))
    return dialog, service


def _server_error(message: str = "Internal server error") -> ReconciliationServiceError:
    return ReconciliationServiceError(message=message, trace_id="trace-err", category="server", code="SERVER_ERROR")


def test_open_prefills_title_and_enables_categories() -> None:
    dialog, _ = _dialog()

    view = dialog.render()

    assert view["is_open"] is True
    assert view["title"] == "Stock Count - January 05, 2025"
    assert view["categories"]["enabled"] is True
    assert [node["id"] for node in view["categories"]["tree"]] == [1, 5]
    assert view["items"]["count"] == 0


def test_category_selection_is_disabled_when_tree_fails() -> None:
    service = FakeReconciliationService(fail_tree=_server_error("Failed to fetch categories"))
    dialog, _ = _dialog(service)

    result = dialog.toggle_category(1)

    assert result["ok"] is False
    assert dialog.categories_enabled is False
    assert dialog.notifications.latest("error")["title"] == "Could not load categories"
    assert dialog.load_snapshot()["ok"] is False
    assert service.snapshot_calls == []


def test_adding_a_present_product_warns_and_keeps_items() -> None:
    dialog, _ = _dialog()
    product = Product(id=3, name="Rice", sku="RICE", stock=4, cost="10")
    assert dialog.add_product(product)["ok"] is True

    result = dialog.add_product(product)

    assert result["duplicate"] is True
    assert len(dialog.items) == 1
    assert dialog.notifications.latest("warning")["title"] == "Product already added to reconciliation"


def test_manual_add_starts_with_physical_equal_to_stock() -> None:
    dialog, _ = _dialog()

    dialog.add_product(Product(id=3, name="Rice", sku="RICE", stock=4, cost="10"))

    item = dialog.items[0]
    assert item.system_count == item.physical_count == 4
    assert dialog.summary().total_discrepancy == 0


def test_snapshot_without_selection_issues_no_request() -> None:
    dialog, service = _dialog()

    result = dialog.load_snapshot()

    assert result["ok"] is False
    assert result["field_errors"]["categoryIds"] == "Select at least one category to load"
    assert service.snapshot_calls == []


def test_selection_change_never_loads_snapshot() -> None:
    dialog, service = _dialog()

    dialog.toggle_category(1)
    dialog.set_selected_categories([1, 5])
    dialog.toggle_category(5)

    assert dialog.selected_category_ids == {1}
    assert service.snapshot_calls == []


def test_snapshot_replaces_items_with_resolved_categories() -> None:
    service = FakeReconciliationService(
        snapshot=SnapshotResponse(data=[_snapshot_item(10, 6, "1.00"), _snapshot_item(11, 0, "2.00")])
    )
    dialog, _ = _dialog(service)
    dialog.add_product(Product(id=3, name="Rice", sku="RICE", stock=4))
    dialog.toggle_category(1)

    result = dialog.load_snapshot()

    assert result["ok"] is True
    assert service.snapshot_calls == [[1, 2]]
    assert [item.product_id for item in dialog.items] == [10, 11]
    assert all(item.physical_count == item.system_count for item in dialog.items)


def test_empty_snapshot_shows_info_notice() -> None:
    dialog, _ = _dialog()
    dialog.toggle_category(5)

    result = dialog.load_snapshot()

    assert result["ok"] is True
    assert dialog.items == []
    assert dialog.notifications.latest()["level"] == "info"


def test_truncated_snapshot_warns() -> None:
    service = FakeReconciliationService(
        snapshot=SnapshotResponse(data=[_snapshot_item(10, 6, "1.00")], pagination=SnapshotPagination(limit=1, next_cursor=10))
    )
    dialog, _ = _dialog(service)
    dialog.toggle_category(5)

    dialog.load_snapshot()

    assert dialog.notifications.latest("warning")["title"] == "Snapshot truncated"


def test_snapshot_failure_keeps_existing_rows() -> None:
    service = FakeReconciliationService(fail_snapshot=_server_error("Failed to fetch inventory snapshot"))
    dialog, _ = _dialog(service)
    dialog.add_product(Product(id=3, name="Rice", sku="RICE", stock=4))
    dialog.toggle_category(1)

    result = dialog.load_snapshot()

    assert result["ok"] is False
    assert [item.product_id for item in dialog.items] == [3]
    notice = dialog.notifications.latest("error")
    assert notice["message"] == "Failed to fetch inventory snapshot"
    assert notice["details"]["trace_id"] == "trace-err"


def test_cancelled_snapshot_is_silent() -> None:
    cancelled = ReconciliationServiceError(message="cancelled", category="cancelled", code="REQUEST_CANCELLED")
    service = FakeReconciliationService(fail_snapshot=cancelled)
    dialog, _ = _dialog(service)
    dialog.toggle_category(1)

    result = dialog.load_snapshot()

    assert result == {"ok": False, "cancelled": True}
    assert dialog.notifications.messages == []


def test_snapshot_arriving_after_close_is_ignored() -> None:
    service = FakeReconciliationService(snapshot=SnapshotResponse(data=[_snapshot_item(10, 6, "1.00")]))
    dialog, _ = _dialog(service)
    service.on_snapshot = dialog.close
    dialog.toggle_category(1)

    result = dialog.load_snapshot()

    assert result["cancelled"] is True
    assert dialog.is_open is False
    assert dialog.items == []
    assert service.cancel_count == 1


def test_totals_follow_physical_count_edits() -> None:
    service = FakeReconciliationService(
        snapshot=SnapshotResponse(data=[_snapshot_item(10, 6, "2.50"), _snapshot_item(11, 3, "1.00")])
    )
    dialog, _ = _dialog(service)
    dialog.toggle_category(1)
    dialog.load_snapshot()

    dialog.update_item(0, physical_count="8")
    dialog.update_item(1, physical_count=0)

    totals = dialog.summary()
    assert totals.total_discrepancy == -1
    assert totals.total_impact == Decimal("2.00")
    summary = dialog.render()["summary"]
    assert summary["total_discrepancy_label"] == "-1"
    assert summary["total_impact_label"] == "₦2.00"


def test_malformed_physical_count_is_a_field_error_and_blocks_save() -> None:
    dialog, service = _dialog()
    dialog.add_product(Product(id=3, name="Rice", sku="RICE", stock=4))

    result = dialog.update_item(0, physical_count="four")

    assert result["ok"] is False
    assert result["field_errors"]["items.0.physicalCount"] == "Physical count must be a whole number"
    assert dialog.items[0].physical_count == 4
    assert dialog.save_draft()["ok"] is False
    assert service.create_calls == []

    dialog.update_item(0, physical_count=5)
    assert "items.0.physicalCount" not in dialog.all_field_errors()


def test_reason_must_come_from_the_fixed_list() -> None:
    dialog, _ = _dialog()
    dialog.add_product(Product(id=3, name="Rice", sku="RICE", stock=4))

    assert dialog.update_item(0, discrepancy_reason="damage")["ok"] is True
    assert dialog.items[0].discrepancy_reason == DiscrepancyReason.DAMAGE
    assert dialog.update_item(0, discrepancy_reason="lost in space")["ok"] is False
    assert dialog.update_item(0, discrepancy_reason="")["ok"] is True
    assert dialog.items[0].discrepancy_reason is None


def test_removing_a_row_moves_its_errors_with_it() -> None:
    dialog, _ = _dialog()
    dialog.add_product(Product(id=3, name="Rice", sku="RICE", stock=4))
    dialog.add_product(Product(id=4, name="Beans", sku="BEANS", stock=2))
    dialog.update_item(1, physical_count="x")

    dialog.remove_item(0)

    assert list(dialog.all_field_errors()) == ["items.0.physicalCount"]
    dialog.remove_item(0)
    assert dialog.all_field_errors() == {}


def test_save_draft_with_empty_title_issues_no_request() -> None:
    dialog, service = _dialog()
    dialog.add_product(Product(id=3, name="Rice", sku="RICE", stock=4))
    dialog.set_details(title="   ")

    result = dialog.save_draft()

    assert result["ok"] is False
    assert result["field_errors"]["title"] == "Title is required"
    assert service.create_calls == []
    assert dialog.phase == SubmissionPhase.IDLE


def test_save_draft_requires_an_item() -> None:
    dialog, service = _dialog()

    result = dialog.save_draft()

    assert result["field_errors"] == {"items": "Add at least one product"}
    assert service.create_calls == []


def test_category_snapshot_count_and_save_draft_end_to_end() -> None:
    service = FakeReconciliationService(
        snapshot=SnapshotResponse(
            data=[_snapshot_item(10, 10, "2.50"), _snapshot_item(11, 0, "1.00"), _snapshot_item(12, 5, "4.00")]
        )
    )
    refreshed: list[tuple[int, bool]] = []
    dialog, _ = _dialog(service, on_success=lambda rid, submitted: refreshed.append((rid, submitted)))
    dialog.toggle_category(1)
    dialog.load_snapshot()
    for index, physical in enumerate((12, 0, 3)):
        dialog.update_item(index, physical_count=physical)

    assert dialog.summary().total_discrepancy == 0
    result = dialog.save_draft()

    assert result == {"ok": True, "reconciliation_id": 77, "submitted": False}
    request = service.create_calls[0]
    assert request.title == "Stock Count - January 05, 2025"
    assert [(i.product_id, i.system_count, i.physical_count) for i in request.items] == [
        (10, 10, 12),
        (11, 0, 0),
        (12, 5, 3),
    ]
    assert [i.estimated_impact for i in request.items] == [5.0, 0.0, -8.0]
    assert service.submit_calls == []
    assert refreshed == [(77, False)]
    assert dialog.is_open is False
    assert dialog.items == []
    assert dialog.notifications.latest("success")["title"] == "Stock reconciliation saved as draft"


def test_submit_for_approval_chains_the_transition() -> None:
    dialog, service = _dialog()
    dialog.add_product(Product(id=3, name="Rice", sku="RICE", stock=4))

    result = dialog.submit_for_approval()

    assert result["submitted"] is True
    assert service.submit_calls == [77]
    assert dialog.notifications.latest("success")["title"] == "Stock reconciliation submitted for approval"


def test_create_failure_keeps_everything() -> None:
    service = FakeReconciliationService(fail_create=_server_error("Failed to create stock reconciliation"))
    dialog, _ = _dialog(service)
    dialog.add_product(Product(id=3, name="Rice", sku="RICE", stock=4))

    result = dialog.save_draft()

    assert result["ok"] is False
    assert result["not_applied"] is True
    assert dialog.phase == SubmissionPhase.SUBMISSION_ERROR
    assert dialog.is_open is True
    assert len(dialog.items) == 1
    assert dialog.created_id is None
    assert dialog.notifications.latest("error")["message"] == "Failed to create stock reconciliation"

    service.fail_create = None
    assert dialog.save_draft()["ok"] is True


def test_submit_failure_after_create_is_a_partial_failure() -> None:
    service = FakeReconciliationService(fail_submit=[_server_error("Submission failed")])
    refreshed: list[tuple[int, bool]] = []
    dialog, _ = _dialog(service, on_success=lambda rid, submitted: refreshed.append((rid, submitted)))
    dialog.add_product(Product(id=3, name="Rice", sku="RICE", stock=4))

    result = dialog.submit_for_approval()

    assert result["ok"] is False
    assert result["partial"] is True
    assert result["reconciliation_id"] == 77
    assert dialog.phase == SubmissionPhase.SUBMISSION_ERROR
    assert dialog.render()["partial_failure"] is True
    assert dialog.is_open is True
    assert refreshed == []
    assert "saved as a draft" in dialog.notifications.latest("error")["message"]

    assert dialog.save_draft()["ok"] is False
    assert len(service.create_calls) == 1

    retried = dialog.submit_for_approval()

    assert retried["ok"] is True
    assert len(service.create_calls) == 1
    assert service.submit_calls == [77, 77]
    assert refreshed == [(77, True)]


def test_double_submit_is_refused() -> None:
    dialog, service = _dialog()
    dialog.add_product(Product(id=3, name="Rice", sku="RICE", stock=4))
    dialog.is_submitting = True

    result = dialog.submit_for_approval()

    assert result["error"] == "Reconciliation save already in progress"
    assert service.create_calls == []


def test_debounced_search_feeds_costs_into_impact() -> None:
    clock = FakeClock()
    service = FakeReconciliationService(products=[Product(id=3, name="Rice 5kg", sku="RICE", stock=4, cost="12.50")])
    dialog, _ = _dialog(service, clock=clock)

    dialog.set_search_term("ri")
    dialog.set_search_term("rice")
    assert dialog.poll_search() is False
    clock.now = 1.0
    assert dialog.poll_search() is True

    assert service.search_calls == ["rice"]
    assert dialog.render()["search"]["results"][0]["cost"] == "₦12.50"
    assert dialog.add_product(3)["ok"] is True
    dialog.update_item(0, physical_count=2)
    assert dialog.summary().total_impact == Decimal("-25.00")


def test_search_failure_raises_a_notice() -> None:
    clock = FakeClock()
    service = FakeReconciliationService(fail_search=_server_error("Failed to fetch products"))
    dialog, _ = _dialog(service, clock=clock)

    dialog.set_search_term("rice")
    clock.now = 1.0

    assert dialog.poll_search() is False
    assert dialog.notifications.latest("error")["title"] == "Product search failed"


def test_close_resets_all_state() -> None:
    dialog, service = _dialog()
    dialog.add_product(Product(id=3, name="Rice", sku="RICE", stock=4))
    dialog.toggle_category(1)
    dialog.set_search_term("rice")
    dialog.set_details(description="aisle 3")

    dialog.close()

    assert service.cancel_count == 1
    assert dialog.is_open is False
    assert dialog.items == []
    assert dialog.selected_category_ids == set()
    assert dialog.category_tree is None
    assert dialog.description == ""
    assert dialog.scheduler.term == ""
    assert dialog.scheduler.is_pending is False

    dialog.open(today=date(2025, 2, 1))
    assert dialog.title == "Stock Count - February 01, 2025"
    assert dialog.items == []


def test_notices_outlive_the_dialog() -> None:
    shared = NotificationCenter()
    dialog, _ = _dialog(notifications=shared)
    dialog.add_product(Product(id=3, name="Rice", sku="RICE", stock=4))

    dialog.save_draft()

    assert shared.latest("success") is not None
    assert dialog.is_open is False


def test_rows_are_locked_once_the_draft_exists() -> None:
    service = FakeReconciliationService(
        fail_submit=[_server_error("Submission failed")],
        snapshot=SnapshotResponse(data=[_snapshot_item(10, 6, "1.00")]),
    )
    dialog, _ = _dialog(service)
    dialog.add_product(Product(id=3, name="Rice", sku="RICE", stock=4))
    dialog.toggle_category(1)
    dialog.submit_for_approval()

    edit = dialog.update_item(0, physical_count=9)

    assert edit["ok"] is False
    assert edit["locked"] is True
    assert dialog.items[0].physical_count == 4
    assert dialog.add_product(Product(id=4, name="Beans", sku="BEANS", stock=2))["locked"] is True
    assert dialog.remove_item(0)["locked"] is True
    assert dialog.load_snapshot()["locked"] is True
    assert dialog.set_details(title="Renamed")["locked"] is True
    assert service.snapshot_calls == []
    actions = dialog.render()["actions"]
    assert actions["can_edit_items"] is False
    assert actions["can_load_snapshot"] is False
    assert actions["can_submit"] is True

    assert dialog.submit_for_approval()["ok"] is True
    assert [item.physical_count for item in service.create_calls[0].items] == [4]


def test_row_rejected_by_the_payload_schema_becomes_a_field_error() -> None:
    dialog, service = _dialog()
    dialog.items.append(
        ReconciliationLineItem(product_id=3, product_name="Rice", product_sku="RICE", system_count=-2, physical_count=0)
    )

    result = dialog.save_draft()

    assert result["ok"] is False
    assert "items.0.systemCount" in result["field_errors"]
    assert service.create_calls == []
    assert dialog.phase == SubmissionPhase.IDLE

    dialog.remove_item(0)
    dialog.add_product(Product(id=4, name="Beans", sku="BEANS", stock=2))
    assert dialog.save_draft()["ok"] is True


def test_repeated_snapshot_rows_keep_the_first_occurrence() -> None:
    service = FakeReconciliationService(
        snapshot=SnapshotResponse(
            data=[_snapshot_item(10, 6, "1.00"), _snapshot_item(11, 2, "3.00"), _snapshot_item(10, 9, "5.00")]
        )
    )
    dialog, _ = _dialog(service)
    dialog.toggle_category(1)

    result = dialog.load_snapshot()

    assert result["count"] == 2
    assert [(item.product_id, item.system_count) for item in dialog.items] == [(10, 6), (11, 2)]
    assert dialog.costs.cost_of(10) == Decimal("1.00")
    notice = dialog.notifications.latest("warning")
    assert notice["title"] == "Duplicate products skipped"
    assert notice["details"]["product_ids"] == [10]
