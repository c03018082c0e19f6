from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from decimal import Decimal

from .models_catalog import Product
from .models_inventory import SnapshotItem
from .models_reconciliation import DiscrepancyReason, ReconciliationItemPayload

ZERO = Decimal("0")


@dataclass
class ReconciliationLineItem:
    product_id: int
    product_name: str
    product_sku: str
    system_count: int
    physical_count: int
    discrepancy_reason: DiscrepancyReason | None = None
    notes: str | None = None

    @property
    def discrepancy(self) -> int:
        return self.physical_count - self.system_count

    @classmethod
    def from_product(cls, product: Product) -> ReconciliationLineItem:
        return cls(
            product_id=product.id,
            product_name=product.name,
            product_sku=product.sku,
            system_count=product.stock,
            physical_count=product.stock,
        )

    @classmethod
    def from_snapshot(cls, item: SnapshotItem) -> ReconciliationLineItem:
        # Seed the physical count from the system count; nothing has been counted yet.
        return cls(
            product_id=item.id,
            product_name=item.name,
            product_sku=item.sku,
            system_count=item.system_count,
            physical_count=item.system_count,
        )


@dataclass
class CostBook:
    """Unit costs by product id, overwritten by whichever source reported last."""

    costs: dict[int, Decimal] = field(default_factory=dict)

    def remember(self, sources: Iterable[Product | SnapshotItem]) -> None:
        for source in sources:
            if source.cost is not None:
                self.costs[source.id] = Decimal(source.cost)

    def cost_of(self, product_id: int) -> Decimal:
        return self.costs.get(product_id, ZERO)

    def clear(self) -> None:
        self.costs.clear()


@dataclass(frozen=True)
class ReconciliationTotals:
    total_products: int
    total_discrepancy: int
    total_impact: Decimal
    overage_units: int
    shortage_units: int


def line_impact(item: ReconciliationLineItem, costs: CostBook) -> Decimal:
    return Decimal(item.discrepancy) * costs.cost_of(item.product_id)


def summarize(items: Sequence[ReconciliationLineItem], costs: CostBook) -> ReconciliationTotals:
    discrepancies = [item.discrepancy for item in items]
    return ReconciliationTotals(
        total_products=len(items),
        total_discrepancy=sum(discrepancies),
        total_impact=sum((line_impact(item, costs) for item in items), ZERO),
        overage_units=sum(value for value in discrepancies if value > 0),
        shortage_units=-sum(value for value in discrepancies if value < 0),
    )


def build_item_payloads(items: Sequence[ReconciliationLineItem], costs: CostBook) -> list[ReconciliationItemPayload]:
    return [
        ReconciliationItemPayload(
            product_id=item.product_id,
            system_count=item.system_count,
            physical_count=item.physical_count,
            discrepancy_reason=item.discrepancy_reason,
            estimated_impact=float(line_impact(item, costs)),
            notes=(item.notes or "").strip() or None,
        )
        for item in items
    ]


def discrepancy_tone(value: int | Decimal) -> str:
    """Classify a discrepancy (or impact) as match, overage or shortage."""
    if value == 0:
        return "match"
    return "overage" if value > 0 else "shortage"


DISCREPANCY_BADGE_VARIANTS = {
    "match": "secondary",
    "overage": "default",
    "shortage": "destructive",
}

DISCREPANCY_TEXT_COLORS = {
    "match": "text-green-600",
    "overage": "text-blue-600",
    "shortage": "text-red-600",
}
