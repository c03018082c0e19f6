from __future__ import annotations

from decimal import Decimal

from invdash_client_sdk.models_catalog import Product
from invdash_client_sdk.models_inventory import SnapshotItem
from invdash_client_sdk.models_reconciliation import DiscrepancyReason
from invdash_client_sdk.reconciliation_items import (
    CostBook,
    ReconciliationLineItem,
    build_item_payloads,
    discrepancy_tone,
    line_impact,
    summarize,
)


def _snapshot(item_id: int, system_count: int, cost: str | None) -> SnapshotItem:
    return SnapshotItem(id=item_id, name=f"Item {item_id}", sku=f"SKU-{item_id}", system_count=system_count, cost=cost)


def test_discrepancy_is_physical_minus_system() -> None:
    item = ReconciliationLineItem(1, "A", "SKU-A", system_count=10, physical_count=7)
    assert item.discrepancy == -3
    item.physical_count = 15
    assert item.discrepancy == 5


def test_rows_start_with_physical_equal_to_system() -> None:
    from_product = ReconciliationLineItem.from_product(Product(id=1, name="A", sku="SKU-A", stock=8))
    from_snapshot = ReconciliationLineItem.from_snapshot(_snapshot(2, 4, "1.00"))
    assert from_product.physical_count == from_product.system_count == 8
    assert from_snapshot.physical_count == from_snapshot.system_count == 4


def test_cost_book_last_source_wins_and_defaults_to_zero() -> None:
    costs = CostBook()
    costs.remember([Product(id=1, name="A", sku="A", stock=0, cost="2.00")])
    costs.remember([_snapshot(1, 0, "3.50"), _snapshot(2, 0, None)])
    assert costs.cost_of(1) == Decimal("3.50")
    assert costs.cost_of(2) == Decimal("0")
    assert costs.cost_of(99) == Decimal("0")


def test_totals_follow_row_values() -> None:
    costs = CostBook()
    costs.remember([_snapshot(1, 10, "2.50"), _snapshot(2, 0, "1.00"), _snapshot(3, 5, "4.00")])
    items = [ReconciliationLineItem.from_snapshot(_snapshot(i, s, None)) for i, s in ((1, 10), (2, 0), (3, 5))]
    for item, physical in zip(items, (12, 0, 3)):
        item.physical_count = physical

    totals = summarize(items, costs)

    assert totals.total_products == 3
    assert totals.total_discrepancy == 0
    assert totals.total_impact == Decimal("-3.00")
    assert totals.overage_units == 2
    assert totals.shortage_units == 2
    assert line_impact(items[0], costs) == Decimal("5.00")


def test_payloads_carry_computed_impact() -> None:
    costs = CostBook({1: Decimal("2.50")})
    item = ReconciliationLineItem(1, "A", "SKU-A", 10, 8, DiscrepancyReason.DAMAGE, notes="  torn bags ")
    blank = ReconciliationLineItem(2, "B", "SKU-B", 1, 1, notes="   ")

    payloads = build_item_payloads([item, blank], costs)

    assert payloads[0].estimated_impact == -5.0
    assert payloads[0].notes == "torn bags"
    assert payloads[0].discrepancy_reason == DiscrepancyReason.DAMAGE
    assert payloads[1].estimated_impact == 0.0
    assert payloads[1].notes is None


def test_discrepancy_tone() -> None:
    assert discrepancy_tone(0) == "match"
    assert discrepancy_tone(2) == "overage"
    assert discrepancy_tone(Decimal("-0.5")) == "shortage"
