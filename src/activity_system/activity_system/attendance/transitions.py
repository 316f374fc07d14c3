from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Dict, Optional, Tuple

from ..core.enums import AttendanceStatus, Decision
from ..core.exceptions import ValidationError
from ..users.model import User
from .model import AttendanceRecord

# Any state may be revised to any other; re-applying a decision is allowed.
VERIFICATION_TRANSITIONS: Dict[Tuple[AttendanceStatus, Decision], AttendanceStatus] = {
    (AttendanceStatus.PENDING, Decision.APPROVE): AttendanceStatus.APPROVED,
    (AttendanceStatus.PENDING, Decision.REJECT): AttendanceStatus.REJECTED,
    (AttendanceStatus.APPROVED, Decision.APPROVE): AttendanceStatus.APPROVED,
    (AttendanceStatus.APPROVED, Decision.REJECT): AttendanceStatus.REJECTED,
    (AttendanceStatus.REJECTED, Decision.APPROVE): AttendanceStatus.APPROVED,
    (AttendanceStatus.REJECTED, Decision.REJECT): AttendanceStatus.REJECTED,
}


def next_status(current: AttendanceStatus, decision: Decision) -> AttendanceStatus:
    try:
        return VERIFICATION_TRANSITIONS[(current, decision)]
    except KeyError:
        raise ValidationError(f"Unsupported verification decision: {decision.value}")


def apply_verification(
    record: AttendanceRecord,
    decision: Decision,
    *,
    verifier: User,
    at: datetime,
    note: Optional[str] = None,
) -> AttendanceRecord:
    status = next_status(record.status, decision)
    stamped = replace(
        record,
        status=status,
        verified_by=verifier.user_id,
        verified_by_name=verifier.name,
        verified_by_email=verifier.email,
        verified_at=at,
    )
    if status == AttendanceStatus.APPROVED:
        return replace(stamped, verification_note=note, cancel_reason=None)
    # Rejection notes are written to both fields for readers keyed on either.
    return replace(stamped, verification_note=note, cancel_reason=note)
