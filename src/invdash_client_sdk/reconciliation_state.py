from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .models_reconciliation import ReconciliationStatus


class SubmissionPhase(str, Enum):
    IDLE = "idle"
    CREATING = "creating"
    SUBMITTING = "submitting"
    DRAFT_SAVED = "draft_saved"
    SUBMITTED = "submitted"
    SUBMISSION_ERROR = "submission_error"


_PHASE_TRANSITIONS: dict[SubmissionPhase, set[SubmissionPhase]] = {
    SubmissionPhase.IDLE: {SubmissionPhase.CREATING},
    SubmissionPhase.CREATING: {
        SubmissionPhase.SUBMITTING,
        SubmissionPhase.DRAFT_SAVED,
        SubmissionPhase.SUBMISSION_ERROR,
    },
    SubmissionPhase.SUBMITTING: {SubmissionPhase.SUBMITTED, SubmissionPhase.SUBMISSION_ERROR},
    SubmissionPhase.DRAFT_SAVED: {SubmissionPhase.IDLE},
    SubmissionPhase.SUBMITTED: {SubmissionPhase.IDLE},
    # An operator retry starts over; a partial failure retries only the status transition.
    SubmissionPhase.SUBMISSION_ERROR: {SubmissionPhase.IDLE, SubmissionPhase.CREATING, SubmissionPhase.SUBMITTING},
}


def can_transition(current: SubmissionPhase, target: SubmissionPhase) -> bool:
    return target in _PHASE_TRANSITIONS[current]


@dataclass(frozen=True)
class ReconciliationActionAvailability:
    can_edit: bool
    can_submit: bool
    can_approve: bool
    can_reject: bool
    can_delete: bool


def reconciliation_action_availability(
    status: ReconciliationStatus | str | None,
    *,
    is_admin: bool,
    is_owner: bool,
) -> ReconciliationActionAvailability:
    value = status.value if isinstance(status, ReconciliationStatus) else (status or "").upper()
    may_manage = is_admin or is_owner
    return ReconciliationActionAvailability(
        can_edit=value == "DRAFT" and may_manage,
        can_submit=value == "DRAFT" and may_manage,
        can_approve=value == "PENDING" and is_admin,
        can_reject=value == "PENDING" and is_admin,
        can_delete=value in {"DRAFT", "REJECTED"} and may_manage,
    )


STATUS_BADGES: dict[ReconciliationStatus, tuple[str, str]] = {
    ReconciliationStatus.DRAFT: ("secondary", "Draft"),
    ReconciliationStatus.PENDING: ("warning", "Pending"),
    ReconciliationStatus.APPROVED: ("success", "Approved"),
    ReconciliationStatus.REJECTED: ("destructive", "Rejected"),
}


def status_badge(status: ReconciliationStatus | str | None) -> dict[str, str]:
    try:
        resolved = status if isinstance(status, ReconciliationStatus) else ReconciliationStatus((status or "").upper())
    except ValueError:
        return {"variant": "outline", "label": str(status or "Unknown").title()}
    variant, label = STATUS_BADGES[resolved]
    return {"variant": variant, "label": label}
