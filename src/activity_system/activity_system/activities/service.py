from __future__ import annotations

import logging
from datetime import date
from typing import Optional, Sequence

from ..common.validators import require_max_length, require_non_empty
from ..core.constants import MAX_NAME_LENGTH
from ..core.enums import ActivityKind, ActivityStatus, NotificationKind
from ..core.exceptions import NotFoundError, ValidationError
from ..membership.gateway import MembershipGateway
from ..notifications.model import NotificationEvent
from ..notifications.notifier import Notifier, notify_safely
from .model import Activity, ActivityShape, MultiDay, NewActivity, ScheduleDay, SingleDay, TimeSlot
from .repository import ActivityRepository

logger = logging.getLogger(__name__)


class ActivityCatalogService:
    def __init__(
        self,
        activities: ActivityRepository,
        *,
        membership: Optional[MembershipGateway] = None,
        notifier: Optional[Notifier] = None,
    ):
        self._activities = activities
        self._membership = membership
        self._notifier = notifier

    def get_activity(self, activity_id: int) -> Activity:
        activity = self._activities.get_by_id(int(activity_id))
        if not activity:
            raise NotFoundError("Activity not found")
        return activity

    def create_activity(
        self,
        *,
        name: str,
        kind: ActivityKind,
        time_slots: Sequence[TimeSlot],
        activity_date: Optional[date] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        schedule: Sequence[ScheduleDay] = (),
        status: ActivityStatus = ActivityStatus.DRAFT,
        max_participants: Optional[int] = None,
        responsible_person_id: Optional[int] = None,
        created_by: Optional[int] = None,
    ) -> Activity:
        name = require_max_length(require_non_empty(name, "Activity name"), "Activity name", MAX_NAME_LENGTH)
        shape = self._build_shape(kind, activity_date, start_date, end_date, schedule)
        slots = self._validate_slots(time_slots)

        if max_participants is not None and int(max_participants) < 1:
            raise ValidationError("max_participants must be at least 1")

        activity_id = self._activities.create(
            NewActivity(
                name=name,
                shape=shape,
                time_slots=slots,
                status=status,
                max_participants=int(max_participants) if max_participants is not None else None,
                responsible_person_id=responsible_person_id,
                created_by=created_by,
            )
        )
        logger.info("Activity %s created (%s, %s)", activity_id, shape.kind.value, status.value)
        return self.get_activity(activity_id)

    def change_status(self, *, activity_id: int, status: ActivityStatus, changed_by: Optional[int] = None) -> Activity:
        activity = self.get_activity(activity_id)
        if activity.status == status:
            return activity
        if not self._activities.set_status(activity_id=activity.activity_id, status=status):
            raise NotFoundError("Activity not found")
        logger.info("Activity %s: %s -> %s", activity.activity_id, activity.status.value, status.value)

        if status == ActivityStatus.PUBLISHED and self._membership is not None:
            recipients = tuple(uid for uid in self._membership.list_active_member_ids() if uid != changed_by)
            notify_safely(
                self._notifier,
                NotificationEvent(
                    kind=NotificationKind.ACTIVITY_PUBLISHED,
                    recipient_ids=recipients,
                    title="New activity",
                    message=f'"{activity.name}" is open for registration.',
                    activity_id=activity.activity_id,
                    created_by=changed_by,
                ),
            )
        return self.get_activity(activity.activity_id)

    @staticmethod
    def _build_shape(
        kind: ActivityKind,
        activity_date: Optional[date],
        start_date: Optional[date],
        end_date: Optional[date],
        schedule: Sequence[ScheduleDay],
    ) -> ActivityShape:
        if kind == ActivityKind.SINGLE_DAY:
            if activity_date is None:
                raise ValidationError("Single-day activity needs a date")
            if schedule or start_date or end_date:
                raise ValidationError("Single-day activity cannot carry a schedule")
            return SingleDay(date=activity_date)

        if activity_date is not None:
            raise ValidationError("Multi-day activity cannot carry a single date")
        if start_date is None or end_date is None:
            raise ValidationError("Multi-day activity needs start and end dates")
        if start_date > end_date:
            raise ValidationError("Start date must not be after end date")
        if not schedule:
            raise ValidationError("Multi-day activity needs at least one schedule day")

        seen = set()
        for day in schedule:
            if day.day_number < 1:
                raise ValidationError("Day numbers start at 1")
            if day.day_number in seen:
                raise ValidationError(f"Duplicate day number: {day.day_number}")
            seen.add(day.day_number)
            if not start_date <= day.date <= end_date:
                raise ValidationError(f"Day {day.day_number} falls outside {start_date}..{end_date}")

        ordered = tuple(sorted(schedule, key=lambda d: d.day_number))
        return MultiDay(start_date=start_date, end_date=end_date, schedule=ordered)

    @staticmethod
    def _validate_slots(time_slots: Sequence[TimeSlot]) -> tuple:
        names = set()
        for ts in time_slots:
            if ts.name in names:
                raise ValidationError(f"Duplicate time slot: {ts.name.label}")
            names.add(ts.name)
            start, end = ts.window()
            if start >= end:
                raise ValidationError(f"{ts.name.label}: start time must be before end time")
        if not any(ts.active for ts in time_slots):
            raise ValidationError("At least one active time slot is required")
        return tuple(time_slots)
