from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from invdash_client_sdk.formatting import format_currency, format_signed
from invdash_client_sdk.reconciliation_items import (
    DISCREPANCY_TEXT_COLORS,
    ReconciliationTotals,
    discrepancy_tone,
)


@dataclass
class ReconciliationSummaryBar:
    totals: ReconciliationTotals

    def render(self) -> dict[str, Any]:
        discrepancy_tone_value = discrepancy_tone(self.totals.total_discrepancy)
        impact_tone = discrepancy_tone(self.totals.total_impact)
        return {
            "total_products": self.totals.total_products,
            "total_discrepancy": self.totals.total_discrepancy,
            "total_discrepancy_label": format_signed(self.totals.total_discrepancy),
            "discrepancy_class": DISCREPANCY_TEXT_COLORS[discrepancy_tone_value],
            "total_impact": self.totals.total_impact,
            "total_impact_label": format_currency(self.totals.total_impact),
            "impact_class": DISCREPANCY_TEXT_COLORS[impact_tone],
            "overage_units": self.totals.overage_units,
            "shortage_units": self.totals.shortage_units,
        }
