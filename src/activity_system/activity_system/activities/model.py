from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Optional, Sequence, Tuple, Union

from ..common.datetime_utils import parse_hhmm
from ..core.constants import DAY_SLOT_LABEL_FORMAT
from ..core.exceptions import ValidationError
from ..core.enums import (
    LIVE_APPROVAL_STATUSES,
    ActivityKind,
    ActivityStatus,
    ApprovalStatus,
    SlotName,
)


@dataclass(frozen=True)
class TimeSlot:
    """Một buổi (Sáng/Chiều/Tối) với giờ bắt đầu/kết thúc dạng HH:MM."""

    name: SlotName
    start_time: str
    end_time: str
    active: bool = True

    def window(self) -> Tuple[int, int]:
        """Minutes since midnight; raises ValidationError on malformed times."""
        return parse_hhmm(self.start_time), parse_hhmm(self.end_time)


@dataclass(frozen=True)
class ScheduleDay:
    day_number: int
    date: date
    note: Optional[str] = None


@dataclass(frozen=True)
class SingleDay:
    date: date

    kind = ActivityKind.SINGLE_DAY

    def resolve_date(self, day_number: Optional[int] = None) -> Optional[date]:
        return self.date

    def has_day(self, day_number: Optional[int]) -> bool:
        return day_number in (None, 1)


@dataclass(frozen=True)
class MultiDay:
    start_date: date
    end_date: date
    schedule: Tuple[ScheduleDay, ...]

    kind = ActivityKind.MULTI_DAY

    def resolve_date(self, day_number: Optional[int] = None) -> Optional[date]:
        if day_number is None:
            return None
        for day in self.schedule:
            if day.day_number == day_number:
                return day.date
        return None

    def has_day(self, day_number: Optional[int]) -> bool:
        return any(d.day_number == day_number for d in self.schedule)


ActivityShape = Union[SingleDay, MultiDay]


@dataclass(frozen=True)
class DaySlot:
    """(day-number, slot) pair a participant opted into."""

    day_number: int
    slot: SlotName

    @staticmethod
    def expand(
        day_number: Optional[int],
        slots: Sequence[Union[str, SlotName]],
        *,
        default_day: Optional[int] = None,
    ) -> Tuple["DaySlot", ...]:
        """Pair every slot with one day; single-day activities pass ``default_day=1``."""
        day = default_day if day_number is None else int(day_number)
        if day is None:
            raise ValidationError("Pick a day for the selected time slots")
        try:
            return tuple(DaySlot(day_number=day, slot=SlotName.parse(s)) for s in slots)
        except ValueError as e:
            raise ValidationError(str(e))


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def slot_label(kind: ActivityKind, day_number: Optional[int], slot: SlotName) -> str:
    """Attendance label: ``Morning`` for single-day, ``Day 2 - Morning`` for multi-day."""
    if kind == ActivityKind.MULTI_DAY:
        return DAY_SLOT_LABEL_FORMAT.format(day=int(day_number or 0), slot=slot.label)
    return slot.label


@dataclass(frozen=True)
class Registration:
    """Thực thể miền (domain): Đăng ký tham gia hoạt động."""

    registration_id: int
    activity_id: int
    user_id: int
    name: str
    email: str
    status: ApprovalStatus
    registered_at: datetime
    day_slots: Tuple[DaySlot, ...] = ()
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    rejected_by: Optional[int] = None
    rejected_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    removed_by: Optional[int] = None
    removed_at: Optional[datetime] = None
    removal_reason: Optional[str] = None

    @property
    def is_live(self) -> bool:
        return self.status in LIVE_APPROVAL_STATUSES

    def covers(self, day_number: Optional[int], slot: SlotName, *, kind: ActivityKind) -> bool:
        # An empty selection books the whole day, single-day activities only.
        if not self.day_slots:
            return kind == ActivityKind.SINGLE_DAY
        for ds in self.day_slots:
            if ds.slot != slot:
                continue
            if day_number is None or ds.day_number == day_number:
                return True
        return False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.registration_id,
            "userId": self.user_id,
            "name": self.name,
            "email": self.email,
            "approvalStatus": self.status.value,
            "registeredAt": _iso(self.registered_at),
            "registeredDaySlots": [{"day": ds.day_number, "slot": ds.slot.value} for ds in self.day_slots],
            "approvedBy": self.approved_by,
            "approvedAt": _iso(self.approved_at),
            "rejectedBy": self.rejected_by,
            "rejectedAt": _iso(self.rejected_at),
            "rejectionReason": self.rejection_reason,
            "removedBy": self.removed_by,
            "removedAt": _iso(self.removed_at),
            "removalReason": self.removal_reason,
        }


@dataclass(frozen=True)
class Activity:
    activity_id: int
    name: str
    shape: ActivityShape
    time_slots: Tuple[TimeSlot, ...]
    status: ActivityStatus
    max_participants: Optional[int] = None
    responsible_person_id: Optional[int] = None
    participants: Tuple[Registration, ...] = ()
    version: int = 0

    @property
    def kind(self) -> ActivityKind:
        return self.shape.kind

    def slot(self, name: SlotName) -> Optional[TimeSlot]:
        """Active slot definition for ``name`` (None if missing or inactive)."""
        for ts in self.time_slots:
            if ts.name == name and ts.active:
                return ts
        return None

    def active_slots(self) -> Tuple[TimeSlot, ...]:
        return tuple(ts for ts in self.time_slots if ts.active)

    def resolve_date(self, day_number: Optional[int] = None) -> Optional[date]:
        return self.shape.resolve_date(day_number)

    def last_day(self) -> date:
        if isinstance(self.shape, MultiDay):
            return self.shape.end_date
        return self.shape.date

    def live_registration_for(self, user_id: int) -> Optional[Registration]:
        for p in self.participants:
            if p.user_id == user_id and p.is_live:
                return p
        return None

    def latest_entry_for(self, user_id: int) -> Optional[Registration]:
        """Most recent non-removed entry (re-registration keeps older ones for audit)."""
        entries = [p for p in self.participants if p.user_id == user_id and p.status != ApprovalStatus.REMOVED]
        if not entries:
            return None
        return max(entries, key=lambda p: (p.registered_at, p.registration_id))

    def live_count(self) -> int:
        return sum(1 for p in self.participants if p.is_live)

    def is_full(self) -> bool:
        if not self.max_participants:
            return False
        return self.live_count() >= self.max_participants

    def to_dict(self) -> Dict[str, Any]:
        shape = self.shape
        data: Dict[str, Any] = {
            "id": self.activity_id,
            "name": self.name,
            "type": self.kind.value,
            "status": self.status.value,
            "maxParticipants": self.max_participants,
            "responsiblePerson": self.responsible_person_id,
            "timeSlots": [
                {"name": ts.name.value, "startTime": ts.start_time, "endTime": ts.end_time, "isActive": ts.active}
                for ts in self.time_slots
            ],
            "participantCount": self.live_count(),
            "participants": [p.to_dict() for p in self.participants],
        }
        if isinstance(shape, MultiDay):
            data["startDate"] = shape.start_date.isoformat()
            data["endDate"] = shape.end_date.isoformat()
            data["schedule"] = [
                {"day": d.day_number, "date": d.date.isoformat(), "note": d.note} for d in shape.schedule
            ]
        else:
            data["date"] = shape.date.isoformat()
        return data


@dataclass(frozen=True)
class NewActivity:
    """Input for creating an activity (validated by the catalog service)."""

    name: str
    shape: ActivityShape
    time_slots: Tuple[TimeSlot, ...]
    status: ActivityStatus = ActivityStatus.DRAFT
    max_participants: Optional[int] = None
    responsible_person_id: Optional[int] = None
    created_by: Optional[int] = None


@dataclass(frozen=True)
class NewRegistration:
    activity_id: int
    user_id: int
    name: str
    email: str
    registered_at: datetime
    day_slots: Tuple[DaySlot, ...] = field(default_factory=tuple)
