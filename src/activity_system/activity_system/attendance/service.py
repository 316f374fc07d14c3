from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional, Union

from ..activities.model import Activity, MultiDay, slot_label
from ..activities.repository import ActivityRepository
from ..common.datetime_utils import hhmm_to_time, now_local
from ..common.validators import optional_http_url, optional_note, require_coordinates
from ..core.enums import ApprovalStatus, CheckInType, Decision, SlotName
from ..core.exceptions import InvalidStateError, NotFoundError, ValidationError
from ..users.repository import UserRepository
from .factory import CheckInTimingFactory
from .model import AttendanceLedger, AttendanceRecord, LedgerOwner, Location, NewAttendanceRecord, parse_slot_label
from .repository import AttendanceRepository
from .transitions import apply_verification

logger = logging.getLogger(__name__)


class AttendanceService:
    def __init__(
        self,
        attendance: AttendanceRepository,
        activities: ActivityRepository,
        users: UserRepository,
        *,
        strategy_factory: CheckInTimingFactory | None = None,
        clock: Callable[[], datetime] = now_local,
    ):
        self._attendance = attendance
        self._activities = activities
        self._users = users
        self._factory = strategy_factory or CheckInTimingFactory()
        self._clock = clock

    def check_in(
        self,
        *,
        activity_id: int,
        user_id: int,
        slot: Union[str, SlotName],
        check_in_type: CheckInType,
        location: Location,
        day_number: Optional[int] = None,
        photo_url: Optional[str] = None,
        late_reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> AttendanceRecord:
        now = now or self._clock()
        activity = self._get_activity(activity_id)
        try:
            slot_name = SlotName.parse(slot)
        except ValueError as e:
            raise ValidationError(str(e))

        if isinstance(activity.shape, MultiDay):
            if day_number is None or not activity.shape.has_day(int(day_number)):
                raise ValidationError("Pick a valid day of this activity")
            day_number = int(day_number)
        else:
            if not activity.shape.has_day(day_number):
                raise ValidationError("Single-day activities have no day number")
            day_number = None

        slot_def = activity.slot(slot_name)
        if slot_def is None:
            raise ValidationError(f"{slot_name.label} is not an active time slot of this activity")

        registration = activity.live_registration_for(int(user_id))
        if registration is None or registration.status != ApprovalStatus.APPROVED:
            raise InvalidStateError("Your registration for this activity is not approved")
        if not registration.covers(day_number, slot_name, kind=activity.kind):
            raise InvalidStateError(f"You did not register for {slot_label(activity.kind, day_number, slot_name)}")

        require_coordinates(location.lat, location.lng)
        location = Location(lat=float(location.lat), lng=float(location.lng), address=optional_note(location.address, "Address"))
        photo_url = optional_http_url(photo_url)

        day = activity.resolve_date(day_number)
        if day is None:
            raise ValidationError("Activity day has no calendar date")
        target = slot_def.start_time if check_in_type == CheckInType.START else slot_def.end_time
        delay = self._factory.delay_minutes(now=now, day=day, target=hhmm_to_time(target))
        timing = self._factory.for_delay(delay).decide(
            delay_minutes=delay,
            late_reason=optional_note(late_reason, "Late reason"),
        )

        user = self._users.get_by_id(int(user_id))
        if not user:
            raise NotFoundError("User not found")

        label = slot_label(activity.kind, day_number, slot_name)
        ledger = self._attendance.get_or_create_ledger(
            LedgerOwner(
                activity_id=activity.activity_id,
                user_id=user.user_id,
                student_name=user.name,
                student_email=user.email,
                student_id=user.student_id,
            )
        )
        if ledger.has_entry(label, check_in_type):
            raise ValidationError(f"Already checked {check_in_type.value} for {label}")

        record_id = self._attendance.append_record(
            ledger_id=ledger.ledger_id,
            record=NewAttendanceRecord(
                time_slot=label,
                check_in_type=check_in_type,
                check_in_time=now,
                location=location,
                photo_url=photo_url,
                late_reason=timing.late_reason,
            ),
        )
        logger.info(
            "User %s checked %s for %s on activity %s%s",
            user.user_id,
            check_in_type.value,
            label,
            activity.activity_id,
            " (late)" if timing.is_late else "",
        )
        return self._record(record_id)

    def verify(
        self,
        *,
        record_id: int,
        decision: Decision,
        verifier_id: int,
        note: Optional[str] = None,
    ) -> AttendanceRecord:
        ledger = self._attendance.find_ledger_by_record(int(record_id))
        record = ledger.record(int(record_id)) if ledger else None
        if ledger is None or record is None:
            raise NotFoundError("Attendance record not found")

        verifier = self._users.get_by_id(int(verifier_id))
        if not verifier:
            raise NotFoundError("Verifier not found")

        if decision == Decision.APPROVE:
            self._ensure_registered_for(ledger, record)

        updated = apply_verification(
            record,
            decision,
            verifier=verifier,
            at=self._clock(),
            note=optional_note(note, "Verification note"),
        )
        if record.verified_by is not None and record.verified_by != verifier.user_id:
            logger.info(
                "Record %s: verification by %s (%s) overwritten by %s",
                record.record_id,
                record.verified_by,
                record.status.value,
                verifier.user_id,
            )
        if not self._attendance.update_verification(updated):
            raise NotFoundError("Attendance record not found")

        logger.info("Record %s: %s -> %s by %s", record.record_id, record.status.value, updated.status.value, verifier.user_id)
        return updated

    def get_ledger(self, *, activity_id: int, user_id: int) -> AttendanceLedger:
        ledger = self._attendance.get_ledger(activity_id=int(activity_id), user_id=int(user_id))
        if not ledger:
            raise NotFoundError("No attendance recorded yet")
        return ledger

    def _get_activity(self, activity_id: int) -> Activity:
        activity = self._activities.get_by_id(int(activity_id))
        if not activity:
            raise NotFoundError("Activity not found")
        return activity

    def _record(self, record_id: int) -> AttendanceRecord:
        ledger = self._attendance.find_ledger_by_record(record_id)
        record = ledger.record(record_id) if ledger else None
        if record is None:
            raise NotFoundError("Attendance record not found")
        return record

    def _ensure_registered_for(self, ledger: AttendanceLedger, record: AttendanceRecord) -> None:
        """Approval needs an approved registration covering the record's slot."""
        activity = self._get_activity(ledger.activity_id)
        day_number, slot_name = parse_slot_label(record.time_slot)
        registration = activity.live_registration_for(ledger.user_id)
        if registration is None or registration.status != ApprovalStatus.APPROVED:
            raise InvalidStateError("Participant's registration is not approved")
        if not registration.covers(day_number, slot_name, kind=activity.kind):
            raise InvalidStateError(f"Participant is not registered for {record.time_slot}")
