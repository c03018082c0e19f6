from __future__ import annotations

from decimal import Decimal
from enum import Enum

from pydantic import Field

from .models import WireModel


class SnapshotStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    ALL = "ALL"


class SnapshotQuery(WireModel):
    category_ids: list[int] = Field(default_factory=list)
    status: SnapshotStatus = SnapshotStatus.ACTIVE
    include_zero: bool = True
    limit: int = Field(default=500, ge=1)
    cursor: int | None = None


class SnapshotCategory(WireModel):
    id: int
    name: str


class SnapshotItem(WireModel):
    id: int
    name: str
    sku: str
    system_count: int = Field(ge=0)
    physical_count: int | None = None
    cost: Decimal | None = None
    min_stock: int | None = None
    category: SnapshotCategory | None = None


class SnapshotPagination(WireModel):
    limit: int | None = None
    next_cursor: int | None = None


class SnapshotResponse(WireModel):
    data: list[SnapshotItem]
    pagination: SnapshotPagination = Field(default_factory=SnapshotPagination)

    @property
    def truncated(self) -> bool:
        return self.pagination.next_cursor is not None
