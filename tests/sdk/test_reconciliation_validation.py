from __future__ import annotations

import pytest

from invdash_client_sdk.models_reconciliation import ReconciliationStatus
from invdash_client_sdk.reconciliation_validation import (
    ClientValidationError,
    ValidationIssue,
    parse_count,
    validate_create_payload,
    validate_reject_payload,
    validate_snapshot_query,
    validate_status_transition,
)


@pytest.mark.parametrize(("raw", "expected"), [(12, 12), ("7", 7), (" 3 ", 3), (4.0, 4), (0, 0)])
def test_parse_count_accepts_whole_numbers(raw, expected) -> None:
    assert parse_count(raw) == expected


@pytest.mark.parametrize("raw", ["abc", "", "2.5", 2.5, -1, "-4", True, None])
def test_parse_count_rejects_malformed_input(raw) -> None:
    with pytest.raises(ValueError):
        parse_count(raw)


def test_duplicate_product_rows_are_reported_per_row() -> None:
    payload = {
        "title": "Count",
        "items": [
            {"productId": 1, "systemCount": 1, "physicalCount": 1},
            {"productId": 1, "systemCount": 1, "physicalCount": 2},
        ],
    }

    with pytest.raises(ClientValidationError) as exc:
        validate_create_payload(payload)

    assert list(exc.value.field_errors()) == ["items.1.productId"]


def test_blank_title_is_a_title_issue() -> None:
    with pytest.raises(ClientValidationError) as exc:
        validate_create_payload({"title": "   ", "items": [{"productId": 1, "systemCount": 0, "physicalCount": 0}]})

    assert "title" in exc.value.field_errors()


def test_negative_physical_count_is_located_on_the_row() -> None:
    with pytest.raises(ClientValidationError) as exc:
        validate_create_payload({"title": "Count", "items": [{"productId": 1, "systemCount": 0, "physicalCount": -1}]})

    issue = exc.value.issues[0]
    assert issue.row_index == 0
    assert issue.key.startswith("items.0.")


def test_snapshot_query_requires_categories_and_sorts_ids() -> None:
    with pytest.raises(ClientValidationError):
        validate_snapshot_query({"categoryIds": []})

    query = validate_snapshot_query({"categoryIds": [9, 2, 9]})
    assert query.category_ids == [2, 9]


def test_reject_payload_requires_reason() -> None:
    with pytest.raises(ClientValidationError):
        validate_reject_payload({"reason": ""})
    assert validate_reject_payload({"reason": "Recount"}).reason == "Recount"


@pytest.mark.parametrize(
    ("status", "action", "allowed"),
    [
        (ReconciliationStatus.DRAFT, "submit", True),
        (ReconciliationStatus.DRAFT, "UPDATE", True),
        (ReconciliationStatus.DRAFT, "APPROVE", False),
        (ReconciliationStatus.PENDING, "APPROVE", True),
        (ReconciliationStatus.PENDING, "REJECT", True),
        (ReconciliationStatus.PENDING, "DELETE", False),
        (ReconciliationStatus.REJECTED, "DELETE", True),
        (ReconciliationStatus.APPROVED, "DELETE", False),
    ],
)
def test_status_transitions(status: ReconciliationStatus, action: str, allowed: bool) -> None:
    if allowed:
        assert validate_status_transition(status, action) == action.upper()
    else:
        with pytest.raises(ClientValidationError):
            validate_status_transition(status, action)


def test_unknown_status_is_rejected() -> None:
    with pytest.raises(ClientValidationError) as exc:
        validate_status_transition("ARCHIVED", "DELETE")
    assert exc.value.issues[0].field == "status"


def test_issue_key_without_row() -> None:
    assert ValidationIssue(row_index=None, field="title", reason="x").key == "title"
    assert ValidationIssue(row_index=2, field="physicalCount", reason="x").key == "items.2.physicalCount"
