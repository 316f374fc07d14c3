from datetime import date, datetime

import pytest

from inmemory import InMemoryActivities, InMemoryAttendance, InMemoryUsers, multi_day, registration, single_day

from src.activity_system.activity_system.attendance.model import Location
from src.activity_system.activity_system.attendance.service import AttendanceService
from src.activity_system.activity_system.core.enums import ApprovalStatus, AttendanceStatus, CheckInType, SlotName
from src.activity_system.activity_system.core.exceptions import InvalidStateError, NotFoundError, ValidationError

USER = 7
MARCH_10 = date(2025, 3, 10)
HERE = Location(lat=10.77, lng=106.70, address="Main hall")


def _service(*activities):
    attendance = InMemoryAttendance()
    users = InMemoryUsers()
    users.add(USER, name="Lan Nguyen")
    service = AttendanceService(attendance, InMemoryActivities(activities), users)
    return service, attendance


def _approved_single_day(**kwargs):
    return single_day(1, MARCH_10, participants=[registration(50, 1, USER, **kwargs)])


def test_on_time_check_in_creates_pending_record_and_ledger_snapshot():
    service, attendance = _service(_approved_single_day())

    record = service.check_in(
        activity_id=1,
        user_id=USER,
        slot="morning",
        check_in_type=CheckInType.START,
        location=HERE,
        photo_url="https://cdn.example.com/p/1.jpg",
        now=datetime(2025, 3, 10, 8, 5),
    )

    assert record.status == AttendanceStatus.PENDING
    assert record.time_slot == "Morning"
    assert record.late_reason is None
    assert record.photo_url == "https://cdn.example.com/p/1.jpg"
    ledger = attendance.get_ledger(activity_id=1, user_id=USER)
    assert ledger.student_name == "Lan Nguyen"
    assert ledger.student_id == "S00007"
    assert [r.record_id for r in ledger.entries] == [record.record_id]


def test_start_and_end_land_in_one_ledger():
    service, attendance = _service(_approved_single_day())

    service.check_in(
        activity_id=1, user_id=USER, slot="morning", check_in_type=CheckInType.START,
        location=HERE, now=datetime(2025, 3, 10, 8, 0),
    )
    service.check_in(
        activity_id=1, user_id=USER, slot="morning", check_in_type=CheckInType.END,
        location=HERE, now=datetime(2025, 3, 10, 11, 2),
    )

    assert len(attendance.ledgers) == 1
    ledger = service.get_ledger(activity_id=1, user_id=USER)
    assert [r.check_in_type for r in ledger.entries] == [CheckInType.START, CheckInType.END]


def test_second_start_for_same_slot_is_rejected():
    service, _ = _service(_approved_single_day())
    kwargs = dict(activity_id=1, user_id=USER, slot="morning", check_in_type=CheckInType.START, location=HERE)

    service.check_in(now=datetime(2025, 3, 10, 8, 0), **kwargs)
    with pytest.raises(ValidationError, match="Already checked"):
        service.check_in(now=datetime(2025, 3, 10, 8, 1), **kwargs)


def test_late_check_in_needs_a_reason():
    service, _ = _service(_approved_single_day())
    kwargs = dict(activity_id=1, user_id=USER, slot="morning", check_in_type=CheckInType.START, location=HERE)

    with pytest.raises(ValidationError):
        service.check_in(now=datetime(2025, 3, 10, 8, 20), **kwargs)

    record = service.check_in(now=datetime(2025, 3, 10, 8, 20), late_reason="  traffic ", **kwargs)
    assert record.late_reason == "traffic"


@pytest.mark.parametrize("now", [datetime(2025, 3, 10, 7, 30), datetime(2025, 3, 10, 9, 0), datetime(2025, 3, 11, 8, 0)])
def test_check_in_outside_window_is_rejected(now):
    service, attendance = _service(_approved_single_day())

    with pytest.raises(ValidationError):
        service.check_in(activity_id=1, user_id=USER, slot="morning", check_in_type=CheckInType.START, location=HERE, now=now)
    assert attendance.ledgers == {}


def test_multi_day_record_uses_day_label():
    activity = multi_day(2, [MARCH_10, date(2025, 3, 11)], participants=[registration(50, 2, USER, day_slots=[(2, SlotName.AFTERNOON)])])
    service, _ = _service(activity)

    record = service.check_in(
        activity_id=2,
        user_id=USER,
        slot=SlotName.AFTERNOON,
        day_number=2,
        check_in_type=CheckInType.START,
        location=HERE,
        now=datetime(2025, 3, 11, 13, 0),
    )

    assert record.time_slot == "Day 2 - Afternoon"


def test_multi_day_slot_not_registered_is_refused():
    activity = multi_day(2, [MARCH_10, date(2025, 3, 11)], participants=[registration(50, 2, USER, day_slots=[(2, SlotName.AFTERNOON)])])
    service, _ = _service(activity)

    with pytest.raises(InvalidStateError):
        service.check_in(
            activity_id=2, user_id=USER, slot="afternoon", day_number=1, check_in_type=CheckInType.START,
            location=HERE, now=datetime(2025, 3, 10, 13, 0),
        )


def test_multi_day_registration_without_day_slots_cannot_check_in():
    activity = multi_day(2, [MARCH_10, date(2025, 3, 11)], participants=[registration(50, 2, USER, day_slots=[])])
    service, attendance = _service(activity)

    with pytest.raises(InvalidStateError):
        service.check_in(
            activity_id=2, user_id=USER, slot="evening", day_number=2, check_in_type=CheckInType.START,
            location=HERE, now=datetime(2025, 3, 11, 18, 0),
        )
    assert attendance.ledgers == {}


def test_multi_day_requires_a_day():
    activity = multi_day(2, [MARCH_10], participants=[registration(50, 2, USER, day_slots=[(1, SlotName.MORNING)])])
    service, _ = _service(activity)

    with pytest.raises(ValidationError):
        service.check_in(
            activity_id=2, user_id=USER, slot="morning", check_in_type=CheckInType.START,
            location=HERE, now=datetime(2025, 3, 10, 8, 0),
        )


@pytest.mark.parametrize("status", [ApprovalStatus.PENDING, ApprovalStatus.REJECTED])
def test_unapproved_registration_cannot_check_in(status):
    service, _ = _service(_approved_single_day(status=status))

    with pytest.raises(InvalidStateError):
        service.check_in(
            activity_id=1, user_id=USER, slot="morning", check_in_type=CheckInType.START,
            location=HERE, now=datetime(2025, 3, 10, 8, 0),
        )


@pytest.mark.parametrize(
    "location,photo_url",
    [
        (Location(lat=91, lng=0), None),
        (Location(lat=0, lng=-181), None),
        (Location(lat=None, lng=None), None),
        (HERE, "ftp://example.com/p.jpg"),
    ],
)
def test_location_and_photo_are_validated(location, photo_url):
    service, _ = _service(_approved_single_day())

    with pytest.raises(ValidationError):
        service.check_in(
            activity_id=1, user_id=USER, slot="morning", check_in_type=CheckInType.START,
            location=location, photo_url=photo_url, now=datetime(2025, 3, 10, 8, 0),
        )


def test_unknown_slot_name_is_a_validation_error():
    service, _ = _service(_approved_single_day())

    with pytest.raises(ValidationError):
        service.check_in(
            activity_id=1, user_id=USER, slot="noon", check_in_type=CheckInType.START,
            location=HERE, now=datetime(2025, 3, 10, 8, 0),
        )


def test_get_ledger_without_check_ins_is_not_found():
    service, _ = _service(_approved_single_day())

    with pytest.raises(NotFoundError):
        service.get_ledger(activity_id=1, user_id=USER)
