from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from ..core.enums import AttendanceStatus, CheckInType, SlotName
from ..core.exceptions import ValidationError

_DAY_LABEL = re.compile(r"^Day\s+(\d+)\s*-\s*(\w+)$", re.IGNORECASE)


@dataclass(frozen=True)
class Location:
    lat: float
    lng: float
    address: Optional[str] = None


@dataclass(frozen=True)
class AttendanceRecord:
    """Thực thể miền (domain): Một lần điểm danh (bắt đầu hoặc kết thúc buổi).

    ``verification_note`` and ``cancel_reason`` may both be filled for audit;
    only the one matching ``status`` is authoritative.
    """

    record_id: int
    ledger_id: int
    time_slot: str
    check_in_type: CheckInType
    check_in_time: datetime
    location: Location
    status: AttendanceStatus = AttendanceStatus.PENDING
    photo_url: Optional[str] = None
    verified_by: Optional[int] = None
    verified_by_name: Optional[str] = None
    verified_by_email: Optional[str] = None
    verified_at: Optional[datetime] = None
    verification_note: Optional[str] = None
    cancel_reason: Optional[str] = None
    late_reason: Optional[str] = None

    @property
    def authoritative_note(self) -> Optional[str]:
        if self.status == AttendanceStatus.REJECTED:
            return self.cancel_reason
        if self.status == AttendanceStatus.APPROVED:
            return self.verification_note
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.record_id,
            "timeSlot": self.time_slot,
            "checkInType": self.check_in_type.value,
            "checkInTime": self.check_in_time.isoformat(),
            "location": {"lat": self.location.lat, "lng": self.location.lng, "address": self.location.address},
            "photoUrl": self.photo_url,
            "status": self.status.value,
            "verifiedBy": self.verified_by,
            "verifiedByName": self.verified_by_name,
            "verifiedByEmail": self.verified_by_email,
            "verifiedAt": self.verified_at.isoformat() if self.verified_at else None,
            "verificationNote": self.verification_note,
            "cancelReason": self.cancel_reason,
            "lateReason": self.late_reason,
        }


@dataclass(frozen=True)
class AttendanceLedger:
    """All check-in/out entries of one user for one activity."""

    ledger_id: int
    activity_id: int
    user_id: int
    student_name: str
    student_email: str
    student_id: Optional[str] = None
    entries: Tuple[AttendanceRecord, ...] = ()

    def record(self, record_id: int) -> Optional[AttendanceRecord]:
        for r in self.entries:
            if r.record_id == record_id:
                return r
        return None

    def has_entry(self, time_slot: str, check_in_type: CheckInType) -> bool:
        return any(r.time_slot == time_slot and r.check_in_type == check_in_type for r in self.entries)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.ledger_id,
            "activityId": self.activity_id,
            "userId": self.user_id,
            "studentName": self.student_name,
            "studentEmail": self.student_email,
            "studentId": self.student_id,
            "attendances": [r.to_dict() for r in self.entries],
        }


@dataclass(frozen=True)
class LedgerOwner:
    """Snapshot written once, when the ledger is first created."""

    activity_id: int
    user_id: int
    student_name: str
    student_email: str
    student_id: Optional[str] = None


@dataclass(frozen=True)
class NewAttendanceRecord:
    time_slot: str
    check_in_type: CheckInType
    check_in_time: datetime
    location: Location
    photo_url: Optional[str] = None
    late_reason: Optional[str] = None


def parse_slot_label(label: str) -> Tuple[Optional[int], SlotName]:
    """Inverse of the attendance label: ``Day 2 - Morning`` -> (2, MORNING)."""
    text = (label or "").strip()
    m = _DAY_LABEL.match(text)
    try:
        if m:
            return int(m.group(1)), SlotName.parse(m.group(2))
        return None, SlotName.parse(text)
    except ValueError:
        raise ValidationError(f"Unrecognised time slot label: {label!r}")
