from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from invdash_client_sdk.formatting import format_currency, format_signed
from invdash_client_sdk.models_reconciliation import DISCREPANCY_REASON_LABELS
from invdash_client_sdk.reconciliation_items import (
    DISCREPANCY_BADGE_VARIANTS,
    DISCREPANCY_TEXT_COLORS,
    CostBook,
    ReconciliationLineItem,
    discrepancy_tone,
    line_impact,
)

REASON_OPTIONS: list[dict[str, str]] = [
    {"value": reason.value, "label": label} for reason, label in DISCREPANCY_REASON_LABELS.items()
]


@dataclass
class ReconciliationItemsTable:
    items: list[ReconciliationLineItem]
    costs: CostBook
    field_errors: dict[str, str] = field(default_factory=dict)

    def columns(self) -> list[str]:
        return ["product", "systemCount", "physicalCount", "discrepancy", "reason", "impact", "notes"]

    def render(self) -> dict[str, Any]:
        rows = []
        for index, item in enumerate(self.items):
            impact = line_impact(item, self.costs)
            tone = discrepancy_tone(item.discrepancy)
            rows.append(
                {
                    "index": index,
                    "product_id": item.product_id,
                    "product_name": item.product_name,
                    "product_sku": item.product_sku,
                    "system_count": item.system_count,
                    "physical_count": item.physical_count,
                    "discrepancy": item.discrepancy,
                    "discrepancy_label": format_signed(item.discrepancy),
                    "tone": tone,
                    "badge_variant": DISCREPANCY_BADGE_VARIANTS[tone],
                    "unit_cost": format_currency(self.costs.cost_of(item.product_id)),
                    "impact": impact,
                    "impact_label": format_currency(impact),
                    "impact_class": DISCREPANCY_TEXT_COLORS[discrepancy_tone(impact)],
                    "discrepancy_reason": item.discrepancy_reason.value if item.discrepancy_reason else None,
                    "notes": item.notes or "",
                    "errors": {
                        key.rsplit(".", 1)[-1]: message
                        for key, message in self.field_errors.items()
                        if key.startswith(f"items.{index}.")
                    },
                }
            )
        return {
            "columns": self.columns(),
            "rows": rows,
            "count": len(rows),
            "reason_options": REASON_OPTIONS,
            "empty_message": None if rows else "Search for products or load a category snapshot to start counting.",
        }
