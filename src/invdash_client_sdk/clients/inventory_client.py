from __future__ import annotations

from dataclasses import dataclass

from ..models import wire_params
from ..models_inventory import SnapshotQuery, SnapshotResponse
from ..reconciliation_validation import validate_snapshot_query
from .base import BaseClient


@dataclass
class InventoryClient(BaseClient):
    def get_snapshot(self, query: SnapshotQuery) -> SnapshotResponse:
        normalized = validate_snapshot_query(query)
        payload = self._request(
            "GET",
            "/api/inventory/snapshot",
            params=wire_params(normalized),
            module="inventory",
            operation="get_snapshot",
            use_get_cache=False,
        )
        return self._parse(SnapshotResponse, payload, "inventory snapshot")
