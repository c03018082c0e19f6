from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum

from pydantic import Field

from .models import WireModel

TITLE_MAX_LENGTH = 255
DESCRIPTION_MAX_LENGTH = 255
NOTES_MAX_LENGTH = 1000


class ReconciliationStatus(str, Enum):
    DRAFT = "DRAFT"
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class DiscrepancyReason(str, Enum):
    COUNTING_ERROR = "COUNTING_ERROR"
    DAMAGE = "DAMAGE"
    THEFT = "THEFT"
    EXPIRED = "EXPIRED"
    SUPPLIER_ERROR = "SUPPLIER_ERROR"
    SYSTEM_ERROR = "SYSTEM_ERROR"
    TRANSFER = "TRANSFER"
    OTHER = "OTHER"


DISCREPANCY_REASON_LABELS: dict[DiscrepancyReason, str] = {
    DiscrepancyReason.COUNTING_ERROR: "Counting error",
    DiscrepancyReason.DAMAGE: "Damaged items",
    DiscrepancyReason.THEFT: "Theft / shrinkage",
    DiscrepancyReason.EXPIRED: "Expired items",
    DiscrepancyReason.SUPPLIER_ERROR: "Supplier delivery error",
    DiscrepancyReason.SYSTEM_ERROR: "System recording error",
    DiscrepancyReason.TRANSFER: "Unrecorded transfer",
    DiscrepancyReason.OTHER: "Other",
}


class ReconciliationItemPayload(WireModel):
    product_id: int = Field(gt=0)
    system_count: int = Field(ge=0)
    physical_count: int = Field(ge=0)
    discrepancy_reason: DiscrepancyReason | None = None
    estimated_impact: float = 0.0
    notes: str | None = None


class ReconciliationCreateRequest(WireModel):
    title: str = Field(min_length=1, max_length=TITLE_MAX_LENGTH)
    description: str | None = Field(default=None, max_length=DESCRIPTION_MAX_LENGTH)
    notes: str | None = Field(default=None, max_length=NOTES_MAX_LENGTH)
    items: list[ReconciliationItemPayload] = Field(min_length=1)


class ReconciliationUpdateRequest(WireModel):
    title: str | None = Field(default=None, min_length=1, max_length=TITLE_MAX_LENGTH)
    description: str | None = Field(default=None, max_length=DESCRIPTION_MAX_LENGTH)
    notes: str | None = Field(default=None, max_length=NOTES_MAX_LENGTH)
    items: list[ReconciliationItemPayload] | None = None


class ApproveRequest(WireModel):
    notes: str | None = Field(default=None, max_length=NOTES_MAX_LENGTH)


class RejectRequest(WireModel):
    reason: str = Field(min_length=1, max_length=NOTES_MAX_LENGTH)


class ReconciliationUser(WireModel):
    id: int
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None


class ReconciliationProductRef(WireModel):
    id: int
    name: str | None = None
    sku: str | None = None
    stock: int | None = None


class ReconciliationItem(WireModel):
    id: int | None = None
    product_id: int | None = None
    system_count: int
    physical_count: int
    discrepancy: int | None = None
    discrepancy_reason: str | None = None
    estimated_impact: Decimal | None = None
    notes: str | None = None
    verified: bool | None = None
    product: ReconciliationProductRef | None = None

    @property
    def resolved_product_id(self) -> int | None:
        if self.product_id is not None:
            return self.product_id
        return self.product.id if self.product else None


class Reconciliation(WireModel):
    id: int
    title: str | None = None
    description: str | None = None
    status: ReconciliationStatus | None = None
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    submitted_at: datetime | None = None
    approved_at: datetime | None = None
    created_by: ReconciliationUser | None = None
    approved_by: ReconciliationUser | None = None
    items: list[ReconciliationItem] = Field(default_factory=list)


class ReconciliationEnvelope(WireModel):
    data: Reconciliation
    message: str | None = None


class ReconciliationQuery(WireModel):
    search: str | None = None
    status: ReconciliationStatus | None = None
    created_by: int | None = None
    start_date: str | None = None
    end_date: str | None = None
    sort_by: str = "createdAt"
    sort_order: str = Field(default="desc", pattern="^(asc|desc)$")
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)


class ListPagination(WireModel):
    page: int = 1
    limit: int = 10
    total: int = 0
    total_pages: int = 0
    has_next: bool = False
    has_prev: bool = False


class ReconciliationListResponse(WireModel):
    data: list[Reconciliation]
    pagination: ListPagination = Field(default_factory=ListPagination)
