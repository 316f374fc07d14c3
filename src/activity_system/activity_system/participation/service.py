from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional, Sequence, Tuple

from ..activities.model import Activity, DaySlot, MultiDay, NewRegistration, Registration, SingleDay
from ..activities.repository import ActivityRepository
from ..common.datetime_utils import normalize_day, now_local
from ..common.validators import optional_note
from ..conflicts.detector import ConflictDetector
from ..core.constants import ADMISSION_RETRIES
from ..core.enums import (
    OPEN_FOR_REGISTRATION,
    ActivityStatus,
    ApprovalStatus,
    Decision,
    NotificationKind,
    SlotName,
)
from ..core.exceptions import (
    AlreadyRegisteredError,
    ConcurrencyError,
    InvalidStateError,
    NotFoundError,
    ScheduleConflictError,
    ValidationError,
)
from ..membership.gateway import MembershipGateway
from ..notifications.model import NotificationEvent
from ..notifications.notifier import Notifier, notify_safely
from ..users.repository import UserRepository
from .transitions import apply_decision, mark_removed

logger = logging.getLogger(__name__)


class ParticipationService:
    """Admission, withdrawal and officer decisions on activity registrations.

    Every write that changes an activity's participant list goes through the
    repository's version check; a lost race re-runs the whole admission check.
    """

    def __init__(
        self,
        activities: ActivityRepository,
        detector: ConflictDetector,
        users: UserRepository,
        membership: MembershipGateway,
        notifier: Optional[Notifier] = None,
        *,
        clock: Callable[[], datetime] = now_local,
        retries: int = ADMISSION_RETRIES,
    ):
        self._activities = activities
        self._detector = detector
        self._users = users
        self._membership = membership
        self._notifier = notifier
        self._clock = clock
        self._retries = max(1, int(retries))

    # -------- Self-service --------
    def register(
        self,
        *,
        activity_id: int,
        user_id: int,
        day_number: Optional[int] = None,
        slots: Sequence[str | SlotName] = (),
        day_slots: Sequence[DaySlot] = (),
    ) -> Registration:
        for attempt in range(1, self._retries + 1):
            activity = self._get_activity(activity_id)
            self._ensure_open(activity)

            user = self._users.get_by_id(int(user_id))
            if not user:
                raise NotFoundError("User not found")
            if not self._membership.is_eligible_to_register(user.user_id):
                logger.info("User %s is not eligible to register (activity %s)", user.user_id, activity.activity_id)
                raise InvalidStateError("Only active members can register for activities")

            if activity.live_registration_for(user.user_id) is not None:
                raise AlreadyRegisteredError("You are already registered for this activity")

            # Bare slot names default to day 1 only where there is no other day.
            default_day = 1 if isinstance(activity.shape, SingleDay) else None
            requested = tuple(day_slots) + (DaySlot.expand(day_number, slots, default_day=default_day) if slots else ())
            chosen = self._validate_day_slots(activity, requested)
            self._ensure_no_conflicts(activity, user.user_id, chosen)

            if activity.is_full():
                logger.info("Activity %s is full (%s)", activity.activity_id, activity.max_participants)
                raise InvalidStateError("Activity is full")

            try:
                registration_id = self._activities.add_participant(
                    registration=NewRegistration(
                        activity_id=activity.activity_id,
                        user_id=user.user_id,
                        name=user.name,
                        email=user.email,
                        registered_at=self._clock(),
                        day_slots=chosen,
                    ),
                    expected_version=activity.version,
                )
            except ConcurrencyError:
                logger.info("Admission race on activity %s (attempt %d/%d)", activity.activity_id, attempt, self._retries)
                continue

            logger.info("User %s registered for activity %s (%d day-slots)", user.user_id, activity.activity_id, len(chosen))
            if activity.responsible_person_id and activity.responsible_person_id != user.user_id:
                notify_safely(
                    self._notifier,
                    NotificationEvent(
                        kind=NotificationKind.REGISTRATION_CREATED,
                        recipient_ids=(int(activity.responsible_person_id),),
                        title="New registration",
                        message=f'{user.name} registered for "{activity.name}".',
                        activity_id=activity.activity_id,
                        created_by=user.user_id,
                    ),
                )
            return self._registration(activity.activity_id, registration_id)

        logger.warning("Giving up admission on activity %s after %d attempts", activity_id, self._retries)
        raise ConcurrencyError("Activity is busy, please try again")

    def withdraw(self, *, activity_id: int, user_id: int) -> Registration:
        for attempt in range(1, self._retries + 1):
            activity = self._get_activity(activity_id)
            if activity.status == ActivityStatus.COMPLETED:
                raise InvalidStateError("Cannot withdraw from a completed activity")
            registration = activity.live_registration_for(int(user_id))
            if registration is None:
                raise NotFoundError("You are not registered for this activity")

            try:
                self._activities.delete_participant(
                    activity_id=activity.activity_id,
                    registration_id=registration.registration_id,
                    expected_version=activity.version,
                )
            except ConcurrencyError:
                logger.info("Withdraw race on activity %s (attempt %d/%d)", activity.activity_id, attempt, self._retries)
                continue

            logger.info("User %s withdrew from activity %s", user_id, activity.activity_id)
            return registration

        logger.warning("Giving up withdrawal on activity %s after %d attempts", activity_id, self._retries)
        raise ConcurrencyError("Activity is busy, please try again")

    def update_day_slots(self, *, activity_id: int, user_id: int, day_slots: Sequence[DaySlot]) -> Registration:
        for attempt in range(1, self._retries + 1):
            activity = self._get_activity(activity_id)
            if not isinstance(activity.shape, MultiDay):
                raise ValidationError("Day-slots can only be changed on multi-day activities")
            if activity.status not in OPEN_FOR_REGISTRATION:
                raise InvalidStateError(f"Activity is {activity.status.value}")
            registration = activity.live_registration_for(int(user_id))
            if registration is None:
                raise NotFoundError("You are not registered for this activity")

            chosen = self._validate_day_slots(activity, day_slots, allow_empty=True)
            if chosen:
                self._ensure_no_conflicts(activity, int(user_id), chosen)

            try:
                self._activities.replace_day_slots(
                    activity_id=activity.activity_id,
                    registration_id=registration.registration_id,
                    day_slots=chosen,
                    expected_version=activity.version,
                )
            except ConcurrencyError:
                logger.info("Day-slot update race on activity %s (attempt %d/%d)", activity.activity_id, attempt, self._retries)
                continue

            logger.info("User %s now holds %d day-slots on activity %s", user_id, len(chosen), activity.activity_id)
            return self._registration(activity.activity_id, registration.registration_id)

        raise ConcurrencyError("Activity is busy, please try again")

    # -------- Officer actions --------
    def decide(
        self,
        *,
        activity_id: int,
        user_id: int,
        decision: Decision,
        officer_id: int,
        reason: Optional[str] = None,
    ) -> Registration:
        activity = self._get_activity(activity_id)
        entry = activity.latest_entry_for(int(user_id))
        if entry is None:
            raise NotFoundError("Participant not found")

        updated = apply_decision(
            entry,
            decision,
            officer_id=int(officer_id),
            at=self._clock(),
            reason=optional_note(reason, "Rejection reason"),
        )
        if not self._activities.update_participant(updated):
            raise NotFoundError("Participant not found")
        logger.info(
            "Registration %s on activity %s: %s -> %s by %s",
            entry.registration_id,
            activity.activity_id,
            entry.status.value,
            updated.status.value,
            officer_id,
        )

        if updated.status in (ApprovalStatus.APPROVED, ApprovalStatus.REJECTED) and updated.status != entry.status:
            approved = updated.status == ApprovalStatus.APPROVED
            message = f'Your registration for "{activity.name}" was {"approved" if approved else "rejected"}.'
            if not approved and updated.rejection_reason:
                message += f" Reason: {updated.rejection_reason}"
            notify_safely(
                self._notifier,
                NotificationEvent(
                    kind=NotificationKind.REGISTRATION_APPROVED if approved else NotificationKind.REGISTRATION_REJECTED,
                    recipient_ids=(updated.user_id,),
                    title="Registration update",
                    message=message,
                    activity_id=activity.activity_id,
                    created_by=int(officer_id),
                ),
            )
        return updated

    def remove(self, *, activity_id: int, user_id: int, officer_id: int, reason: Optional[str] = None) -> Registration:
        activity = self._get_activity(activity_id)
        entry = activity.latest_entry_for(int(user_id))
        if entry is None:
            raise NotFoundError("Participant not found")

        updated = mark_removed(
            entry,
            officer_id=int(officer_id),
            at=self._clock(),
            reason=optional_note(reason, "Removal reason"),
        )
        if not self._activities.update_participant(updated):
            raise NotFoundError("Participant not found")
        logger.info("Registration %s on activity %s removed by %s", entry.registration_id, activity.activity_id, officer_id)
        return updated

    # -------- Helpers --------
    def _get_activity(self, activity_id: int) -> Activity:
        activity = self._activities.get_by_id(int(activity_id))
        if not activity:
            raise NotFoundError("Activity not found")
        return activity

    def _registration(self, activity_id: int, registration_id: int) -> Registration:
        activity = self._get_activity(activity_id)
        for p in activity.participants:
            if p.registration_id == registration_id:
                return p
        raise NotFoundError("Registration not found")

    def _ensure_open(self, activity: Activity) -> None:
        if activity.status not in OPEN_FOR_REGISTRATION:
            logger.info("Activity %s rejected a registration: status %s", activity.activity_id, activity.status.value)
            raise InvalidStateError(f"Activity is {activity.status.value}, registration is closed")
        if activity.status == ActivityStatus.PUBLISHED and normalize_day(activity.last_day()) < normalize_day(self._clock()):
            logger.info("Activity %s rejected a registration: date passed", activity.activity_id)
            raise InvalidStateError("Activity date has already passed")

    def _validate_day_slots(
        self,
        activity: Activity,
        requested: Sequence[DaySlot],
        *,
        allow_empty: bool = False,
    ) -> Tuple[DaySlot, ...]:
        chosen: list[DaySlot] = []
        for ds in requested:
            if not activity.shape.has_day(ds.day_number):
                raise ValidationError(f"Day {ds.day_number} is not part of this activity")
            if activity.slot(ds.slot) is None:
                raise ValidationError(f"{ds.slot.label} is not an active time slot of this activity")
            if ds not in chosen:
                chosen.append(ds)

        if isinstance(activity.shape, MultiDay) and not chosen and not allow_empty:
            raise ValidationError("Pick at least one day and time slot")
        return tuple(chosen)

    def _ensure_no_conflicts(self, activity: Activity, user_id: int, chosen: Sequence[DaySlot]) -> None:
        to_check = chosen
        if not to_check and isinstance(activity.shape, SingleDay):
            # No explicit slots on a single-day activity books every active slot.
            to_check = tuple(DaySlot(day_number=1, slot=ts.name) for ts in activity.active_slots())

        report = self._detector.check_many(activity, user_id=user_id, day_slots=to_check)
        if report.has_overlap:
            raise ScheduleConflictError(report)
