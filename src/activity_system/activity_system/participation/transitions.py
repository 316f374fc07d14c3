from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Dict, Optional, Tuple

from ..activities.model import Registration
from ..core.enums import ApprovalStatus, Decision
from ..core.exceptions import InvalidStateError

# Every (current, decision) pair is listed; nothing is forbidden except
# touching a removed entry.
REGISTRATION_TRANSITIONS: Dict[Tuple[ApprovalStatus, Decision], ApprovalStatus] = {
    (ApprovalStatus.PENDING, Decision.APPROVE): ApprovalStatus.APPROVED,
    (ApprovalStatus.PENDING, Decision.REJECT): ApprovalStatus.REJECTED,
    (ApprovalStatus.PENDING, Decision.RESET): ApprovalStatus.PENDING,
    (ApprovalStatus.APPROVED, Decision.APPROVE): ApprovalStatus.APPROVED,
    (ApprovalStatus.APPROVED, Decision.REJECT): ApprovalStatus.REJECTED,
    (ApprovalStatus.APPROVED, Decision.RESET): ApprovalStatus.PENDING,
    (ApprovalStatus.REJECTED, Decision.APPROVE): ApprovalStatus.APPROVED,
    (ApprovalStatus.REJECTED, Decision.REJECT): ApprovalStatus.REJECTED,
    (ApprovalStatus.REJECTED, Decision.RESET): ApprovalStatus.PENDING,
}


def next_status(current: ApprovalStatus, decision: Decision) -> ApprovalStatus:
    try:
        return REGISTRATION_TRANSITIONS[(current, decision)]
    except KeyError:
        raise InvalidStateError(f"A {current.value} registration cannot be changed")


def apply_decision(
    registration: Registration,
    decision: Decision,
    *,
    officer_id: int,
    at: datetime,
    reason: Optional[str] = None,
) -> Registration:
    """Return the registration after ``decision``; approval and rejection audits are exclusive."""
    status = next_status(registration.status, decision)

    if status == ApprovalStatus.APPROVED:
        return replace(
            registration,
            status=status,
            approved_by=officer_id,
            approved_at=at,
            rejected_by=None,
            rejected_at=None,
            rejection_reason=None,
        )
    if status == ApprovalStatus.REJECTED:
        return replace(
            registration,
            status=status,
            approved_by=None,
            approved_at=None,
            rejected_by=officer_id,
            rejected_at=at,
            rejection_reason=reason,
        )
    return replace(
        registration,
        status=status,
        approved_by=None,
        approved_at=None,
        rejected_by=None,
        rejected_at=None,
        rejection_reason=None,
    )


def mark_removed(registration: Registration, *, officer_id: int, at: datetime, reason: Optional[str] = None) -> Registration:
    if registration.status == ApprovalStatus.REMOVED:
        raise InvalidStateError("Registration was already removed")
    return replace(
        registration,
        status=ApprovalStatus.REMOVED,
        day_slots=(),
        approved_by=None,
        approved_at=None,
        rejected_by=None,
        rejected_at=None,
        rejection_reason=None,
        removed_by=officer_id,
        removed_at=at,
        removal_reason=reason,
    )
