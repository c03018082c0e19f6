from .reconciliation_items_table import ReconciliationItemsTable
from .reconciliation_summary_bar import ReconciliationSummaryBar

__all__ = ["ReconciliationItemsTable", "ReconciliationSummaryBar"]
