from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..core.enums import ActivityStatus
from .model import Activity, DaySlot, NewActivity, NewRegistration, Registration


class ActivityRepository(Protocol):
    """Giao diện repository cho Activity (kèm danh sách người tham gia).

    An Activity and its participants form one consistency unit: writes that
    change the participant list are guarded by ``expected_version``.
    """

    def get_by_id(self, activity_id: int) -> Optional[Activity]:
        raise NotImplementedError

    def create(self, activity: NewActivity) -> int:
        raise NotImplementedError

    def set_status(self, *, activity_id: int, status: ActivityStatus) -> bool:
        raise NotImplementedError

    def list_with_live_registration(self, *, user_id: int, exclude_activity_id: Optional[int] = None) -> Sequence[Activity]:
        """Activities where ``user_id`` holds a pending or approved registration."""

        raise NotImplementedError

    def add_participant(self, *, registration: NewRegistration, expected_version: int) -> int:
        """Append a pending registration; raises ConcurrencyError if the version moved.

        Returns registration_id.
        """

        raise NotImplementedError

    def delete_participant(self, *, activity_id: int, registration_id: int, expected_version: int) -> bool:
        raise NotImplementedError

    def update_participant(self, registration: Registration) -> bool:
        """Persist status and audit fields of one registration entry."""

        raise NotImplementedError

    def replace_day_slots(
        self,
        *,
        activity_id: int,
        registration_id: int,
        day_slots: Sequence[DaySlot],
        expected_version: int,
    ) -> bool:
        raise NotImplementedError
