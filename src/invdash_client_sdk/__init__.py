from .category_resolver import CategoryIndex, resolve_category_ids
from .config import ClientConfig, ConfigError, load_config
from .exceptions import (
    ApiError,
    ForbiddenError,
    NotFoundError,
    ReconciliationActionForbiddenError,
    ReconciliationStateError,
    ResponseShapeError,
    TransportError,
    UnauthorizedError,
    ValidationError,
)
from .formatting import default_reconciliation_title, format_currency, format_date, format_signed
from .http_client import HttpClient
from .models import CurrentUser
from .models_catalog import CategoryNode, Product, ProductSearchQuery
from .models_inventory import SnapshotItem, SnapshotQuery, SnapshotResponse, SnapshotStatus
from .models_reconciliation import (
    DISCREPANCY_REASON_LABELS,
    DiscrepancyReason,
    Reconciliation,
    ReconciliationCreateRequest,
    ReconciliationItemPayload,
    ReconciliationListResponse,
    ReconciliationQuery,
    ReconciliationStatus,
)
from .reconciliation_items import (
    CostBook,
    ReconciliationLineItem,
    ReconciliationTotals,
    build_item_payloads,
    discrepancy_tone,
    line_impact,
    summarize,
)
from .reconciliation_state import (
    SubmissionPhase,
    reconciliation_action_availability,
    status_badge,
)
from .reconciliation_validation import ClientValidationError, ValidationIssue, parse_count
from .search_scheduler import SearchScheduler
from .session import ApiSession
from .tracing import TraceContext
from .ui_errors import UserFacingError, to_user_facing_error

__version__ = "0.4.0"

__all__ = [
    "ApiError",
    "ApiSession",
    "CategoryIndex",
    "CategoryNode",
    "ClientConfig",
    "ClientValidationError",
    "ConfigError",
    "CostBook",
    "CurrentUser",
    "DISCREPANCY_REASON_LABELS",
    "DiscrepancyReason",
    "ForbiddenError",
    "HttpClient",
    "NotFoundError",
    "Product",
    "ProductSearchQuery",
    "Reconciliation",
    "ReconciliationActionForbiddenError",
    "ReconciliationCreateRequest",
    "ReconciliationItemPayload",
    "ReconciliationLineItem",
    "ReconciliationListResponse",
    "ReconciliationQuery",
    "ReconciliationStateError",
    "ReconciliationStatus",
    "ReconciliationTotals",
    "ResponseShapeError",
    "SearchScheduler",
    "SnapshotItem",
    "SnapshotQuery",
    "SnapshotResponse",
    "SnapshotStatus",
    "SubmissionPhase",
    "TraceContext",
    "TransportError",
    "UnauthorizedError",
    "UserFacingError",
    "ValidationError",
    "ValidationIssue",
    "build_item_payloads",
    "default_reconciliation_title",
    "discrepancy_tone",
    "format_currency",
    "format_date",
    "format_signed",
    "line_impact",
    "load_config",
    "parse_count",
    "reconciliation_action_availability",
    "resolve_category_ids",
    "status_badge",
    "summarize",
    "to_user_facing_error",
]
