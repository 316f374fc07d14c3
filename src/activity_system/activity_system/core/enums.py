from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Vai trò người dùng dùng cho phân quyền."""

    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN = "ADMIN"
    CLUB_LEADER = "CLUB_LEADER"
    CLUB_DEPUTY = "CLUB_DEPUTY"
    CLUB_MEMBER = "CLUB_MEMBER"
    OFFICER = "OFFICER"
    CLUB_STUDENT = "CLUB_STUDENT"
    STUDENT = "STUDENT"


OFFICER_ROLES = frozenset(
    {
        Role.SUPER_ADMIN,
        Role.ADMIN,
        Role.CLUB_LEADER,
        Role.CLUB_DEPUTY,
        Role.CLUB_MEMBER,
        Role.OFFICER,
    }
)


class ActivityKind(str, Enum):
    SINGLE_DAY = "single_day"
    MULTI_DAY = "multiple_days"


class ActivityStatus(str, Enum):
    """Vòng đời hoạt động."""

    DRAFT = "draft"
    PUBLISHED = "published"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    POSTPONED = "postponed"


OPEN_FOR_REGISTRATION = frozenset({ActivityStatus.PUBLISHED, ActivityStatus.ONGOING})


class SlotName(str, Enum):
    """Named time windows; the same three names are reused on every day."""

    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"

    @property
    def label(self) -> str:
        return self.value.capitalize()

    @classmethod
    def parse(cls, value: "str | SlotName") -> "SlotName":
        if isinstance(value, SlotName):
            return value
        v = (value or "").strip().lower()
        for member in cls:
            if member.value == v:
                return member
        raise ValueError(f"Unknown slot name: {value!r}")


class ApprovalStatus(str, Enum):
    """Trạng thái duyệt người tham gia."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    REMOVED = "removed"


LIVE_APPROVAL_STATUSES = frozenset({ApprovalStatus.PENDING, ApprovalStatus.APPROVED})


class AttendanceStatus(str, Enum):
    """Trạng thái xác nhận điểm danh."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class CheckInType(str, Enum):
    START = "start"
    END = "end"


class Decision(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"
    RESET = "reset"


class NotificationKind(str, Enum):
    REGISTRATION_CREATED = "registration_created"
    ACTIVITY_PUBLISHED = "activity_published"
    REGISTRATION_APPROVED = "registration_approved"
    REGISTRATION_REJECTED = "registration_rejected"
