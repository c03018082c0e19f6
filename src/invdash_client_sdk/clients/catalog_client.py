from __future__ import annotations

from dataclasses import dataclass

from ..models import wire_params
from ..models_catalog import (
    CategoryNode,
    CategoryTreeQuery,
    CategoryTreeResponse,
    Product,
    ProductSearchQuery,
    ProductSearchResponse,
)
from .base import BaseClient


@dataclass
class CatalogClient(BaseClient):
    def search_products(self, query: ProductSearchQuery | str, *, limit: int = 10) -> list[Product]:
        search_query = query if isinstance(query, ProductSearchQuery) else ProductSearchQuery(search=query, limit=limit)
        payload = self._request(
            "GET",
            "/api/products",
            params=wire_params(search_query),
            module="catalog",
            operation="search_products",
        )
        return self._parse(ProductSearchResponse, payload, "product search").data

    def get_category_tree(self, query: CategoryTreeQuery | None = None) -> list[CategoryNode]:
        payload = self._request(
            "GET",
            "/api/categories",
            params=wire_params(query or CategoryTreeQuery()),
            module="catalog",
            operation="get_category_tree",
        )
        return self._parse(CategoryTreeResponse, payload, "category tree").data
