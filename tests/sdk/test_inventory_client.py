from __future__ import annotations

import pytest
import responses
from responses import matchers

from invdash_client_sdk import load_config
from invdash_client_sdk.clients.inventory_client import InventoryClient
from invdash_client_sdk.exceptions import ResponseShapeError
from invdash_client_sdk.http_client import HttpClient
from invdash_client_sdk.models_inventory import SnapshotQuery
from invdash_client_sdk.reconciliation_validation import ClientValidationError
from invdash_client_sdk.tracing import TraceContext


def _client(base_url: str) -> HttpClient:
    cfg = load_config()
    object.__setattr__(cfg, "api_base_url", base_url)
    return HttpClient(cfg, trace=TraceContext())


def _snapshot_item(item_id: int, system_count: int, cost: str | None = "10.00") -> dict:
    return {
        "id": item_id,
        "name": f"Item {item_id}",
        "sku": f"SKU-{item_id}",
        "systemCount": system_count,
        "physicalCount": None,
        "cost": cost,
        "minStock": 2,
        "category": {"id": 3, "name": "Grains"},
    }


@responses.activate
def test_snapshot_sends_fixed_flags_and_deduplicated_ids() -> None:
    client = InventoryClient(http=_client("https://api.example.com"))
    responses.add(
        responses.GET,
        "https://api.example.com/api/inventory/snapshot",
        match=[
            matchers.query_param_matcher(
                {"categoryIds": "3,7", "status": "ACTIVE", "includeZero": "true", "limit": "500"}
            )
        ],
        json={"data": [_snapshot_item(1, 10), _snapshot_item(2, 0)], "pagination": {"limit": 500, "nextCursor": None}},
        status=200,
    )

    snapshot = client.get_snapshot(SnapshotQuery(category_ids=[7, 3, 7]))

    assert [item.system_count for item in snapshot.data] == [10, 0]
    assert snapshot.data[0].category is not None
    assert snapshot.truncated is False


@responses.activate
def test_snapshot_reports_truncation() -> None:
    client = InventoryClient(http=_client("https://api.example.com"))
    responses.add(
        responses.GET,
        "https://api.example.com/api/inventory/snapshot",
        json={"data": [_snapshot_item(1, 4)], "pagination": {"limit": 1, "nextCursor": 1}},
        status=200,
    )

    snapshot = client.get_snapshot(SnapshotQuery(category_ids=[3], limit=1))

    assert snapshot.truncated is True
    assert snapshot.pagination.next_cursor == 1


@responses.activate
def test_snapshot_without_categories_issues_no_request() -> None:
    client = InventoryClient(http=_client("https://api.example.com"))

    with pytest.raises(ClientValidationError) as exc:
        client.get_snapshot(SnapshotQuery(category_ids=[]))

    assert exc.value.field_errors() == {"categoryIds": "Select at least one category to load"}
    assert len(responses.calls) == 0


@responses.activate
def test_snapshot_is_never_served_from_cache() -> None:
    client = InventoryClient(http=_client("https://api.example.com"))
    responses.add(
        responses.GET,
        "https://api.example.com/api/inventory/snapshot",
        json={"data": [_snapshot_item(1, 4)]},
        status=200,
    )

    client.get_snapshot(SnapshotQuery(category_ids=[3]))
    client.get_snapshot(SnapshotQuery(category_ids=[3]))

    assert len(responses.calls) == 2


@responses.activate
def test_snapshot_with_negative_system_count_is_rejected() -> None:
    client = InventoryClient(http=_client("https://api.example.com"))
    responses.add(
        responses.GET,
        "https://api.example.com/api/inventory/snapshot",
        json={"data": [_snapshot_item(1, -2)]},
        status=200,
    )

    with pytest.raises(ResponseShapeError):
        client.get_snapshot(SnapshotQuery(category_ids=[3]))
