from __future__ import annotations

from decimal import Decimal

from pydantic import Field

from .models import WireModel


class ProductSearchQuery(WireModel):
    search: str
    limit: int = Field(default=10, ge=1)
    status: str | None = "active"


class Product(WireModel):
    id: int
    name: str
    sku: str
    stock: int = Field(ge=0)
    cost: Decimal | None = None


class ProductSearchResponse(WireModel):
    data: list[Product]


class CategoryTreeQuery(WireModel):
    hierarchical: bool = True
    is_active: bool | None = True


class CategoryNode(WireModel):
    id: int
    name: str
    parent_id: int | None = None
    is_active: bool | None = None
    children: list[CategoryNode] = Field(default_factory=list)


CategoryNode.model_rebuild()


class CategoryTreeResponse(WireModel):
    data: list[CategoryNode]
