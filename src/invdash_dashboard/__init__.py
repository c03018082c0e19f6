from .services.reconciliation_service import ReconciliationService, ReconciliationServiceError
from .ui.reconciliation_dialog import ReconciliationDialog
from .ui.reconciliation_list_view import ReconciliationListView

__all__ = [
    "ReconciliationDialog",
    "ReconciliationListView",
    "ReconciliationService",
    "ReconciliationServiceError",
]
