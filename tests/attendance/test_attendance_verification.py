from datetime import date, datetime

import pytest

from inmemory import InMemoryActivities, InMemoryAttendance, InMemoryUsers, registration, single_day, multi_day

from src.activity_system.activity_system.attendance.model import AttendanceRecord, LedgerOwner, Location, parse_slot_label
from src.activity_system.activity_system.attendance.service import AttendanceService
from src.activity_system.activity_system.attendance.transitions import VERIFICATION_TRANSITIONS, next_status
from src.activity_system.activity_system.core.enums import (
    ApprovalStatus,
    AttendanceStatus,
    CheckInType,
    Decision,
    Role,
    SlotName,
)
from src.activity_system.activity_system.core.exceptions import InvalidStateError, NotFoundError, ValidationError

USER = 7
OFFICER = 900
OTHER_OFFICER = 901
VERIFIED_AT = datetime(2025, 3, 10, 12, 0)


def _service(activity, *, time_slot="Morning", status=AttendanceStatus.PENDING):
    attendance = InMemoryAttendance()
    ledger = attendance.get_or_create_ledger(
        LedgerOwner(activity_id=activity.activity_id, user_id=USER, student_name="User 7", student_email="user7@example.com")
    )
    attendance.add_record(
        ledger.ledger_id,
        AttendanceRecord(
            record_id=1,
            ledger_id=ledger.ledger_id,
            time_slot=time_slot,
            check_in_type=CheckInType.START,
            check_in_time=datetime(2025, 3, 10, 8, 2),
            location=Location(lat=10.0, lng=106.0),
            status=status,
        ),
    )
    users = InMemoryUsers()
    users.add(USER)
    users.add(OFFICER, role=Role.CLUB_LEADER, name="Officer Minh")
    users.add(OTHER_OFFICER, role=Role.ADMIN, name="Admin Hoa")
    service = AttendanceService(attendance, InMemoryActivities([activity]), users, clock=lambda: VERIFIED_AT)
    return service, attendance


def _activity(status=ApprovalStatus.APPROVED, day_slots=()):
    return single_day(1, date(2025, 3, 10), participants=[registration(50, 1, USER, status=status, day_slots=day_slots)])


def test_reject_then_approve_corrects_the_decision():
    service, attendance = _service(_activity())

    rejected = service.verify(record_id=1, decision=Decision.REJECT, verifier_id=OFFICER, note="no photo")
    assert rejected.status == AttendanceStatus.REJECTED
    assert rejected.cancel_reason == "no photo"
    assert rejected.verification_note == "no photo"
    assert rejected.authoritative_note == "no photo"

    approved = service.verify(record_id=1, decision=Decision.APPROVE, verifier_id=OFFICER, note="resubmitted")
    assert approved.status == AttendanceStatus.APPROVED
    assert approved.cancel_reason is None
    assert approved.verification_note == "resubmitted"
    assert attendance.find_ledger_by_record(1).record(1) == approved


def test_verification_stamps_verifier_snapshot():
    service, _ = _service(_activity())

    record = service.verify(record_id=1, decision=Decision.APPROVE, verifier_id=OFFICER)

    assert record.verified_by == OFFICER
    assert record.verified_by_name == "Officer Minh"
    assert record.verified_by_email == "user900@example.com"
    assert record.verified_at == VERIFIED_AT


def test_approving_twice_keeps_latest_note():
    service, attendance = _service(_activity())

    service.verify(record_id=1, decision=Decision.APPROVE, verifier_id=OFFICER, note="first")
    record = service.verify(record_id=1, decision=Decision.APPROVE, verifier_id=OFFICER, note="second")

    assert record.status == AttendanceStatus.APPROVED
    assert record.verification_note == "second"
    ledger = attendance.find_ledger_by_record(1)
    assert len(ledger.entries) == 1


def test_overwriting_another_verifier_is_logged(caplog):
    service, _ = _service(_activity())
    service.verify(record_id=1, decision=Decision.APPROVE, verifier_id=OFFICER)

    with caplog.at_level("INFO"):
        record = service.verify(record_id=1, decision=Decision.REJECT, verifier_id=OTHER_OFFICER, note="wrong person")

    assert record.verified_by == OTHER_OFFICER
    assert "overwritten" in caplog.text


@pytest.mark.parametrize("status", [ApprovalStatus.PENDING, ApprovalStatus.REJECTED])
def test_approval_requires_an_approved_registration(status):
    service, _ = _service(_activity(status=status))

    with pytest.raises(InvalidStateError):
        service.verify(record_id=1, decision=Decision.APPROVE, verifier_id=OFFICER)


def test_rejection_does_not_need_an_approved_registration():
    service, _ = _service(_activity(status=ApprovalStatus.REJECTED))

    record = service.verify(record_id=1, decision=Decision.REJECT, verifier_id=OFFICER, note="not registered")

    assert record.status == AttendanceStatus.REJECTED


def test_approval_requires_registration_for_that_slot():
    activity = multi_day(
        1,
        [date(2025, 3, 10), date(2025, 3, 11)],
        participants=[registration(50, 1, USER, day_slots=[(1, SlotName.MORNING)])],
    )
    service, _ = _service(activity, time_slot="Day 2 - Morning")

    with pytest.raises(InvalidStateError):
        service.verify(record_id=1, decision=Decision.APPROVE, verifier_id=OFFICER)


def test_approval_refused_when_multi_day_selection_is_empty():
    activity = multi_day(1, [date(2025, 3, 10), date(2025, 3, 11)], participants=[registration(50, 1, USER, day_slots=[])])
    service, _ = _service(activity, time_slot="Day 2 - Evening")

    with pytest.raises(InvalidStateError):
        service.verify(record_id=1, decision=Decision.APPROVE, verifier_id=OFFICER)


def test_whole_day_single_day_registration_allows_approval():
    service, _ = _service(_activity(day_slots=()), time_slot="Evening")

    record = service.verify(record_id=1, decision=Decision.APPROVE, verifier_id=OFFICER)

    assert record.status == AttendanceStatus.APPROVED


def test_unknown_record_is_not_found():
    service, _ = _service(_activity())

    with pytest.raises(NotFoundError):
        service.verify(record_id=99, decision=Decision.APPROVE, verifier_id=OFFICER)


def test_reset_is_not_a_verification_decision():
    service, _ = _service(_activity())

    with pytest.raises(ValidationError):
        service.verify(record_id=1, decision=Decision.RESET, verifier_id=OFFICER)


@pytest.mark.parametrize(
    "current,decision,expected",
    [
        (AttendanceStatus.PENDING, Decision.APPROVE, AttendanceStatus.APPROVED),
        (AttendanceStatus.PENDING, Decision.REJECT, AttendanceStatus.REJECTED),
        (AttendanceStatus.APPROVED, Decision.APPROVE, AttendanceStatus.APPROVED),
        (AttendanceStatus.APPROVED, Decision.REJECT, AttendanceStatus.REJECTED),
        (AttendanceStatus.REJECTED, Decision.APPROVE, AttendanceStatus.APPROVED),
        (AttendanceStatus.REJECTED, Decision.REJECT, AttendanceStatus.REJECTED),
    ],
)
def test_verification_table(current, decision, expected):
    assert next_status(current, decision) == expected
    assert VERIFICATION_TRANSITIONS[(current, decision)] == expected


@pytest.mark.parametrize(
    "label,expected",
    [
        ("Morning", (None, SlotName.MORNING)),
        ("Day 3 - Evening", (3, SlotName.EVENING)),
        ("day 12 -afternoon", (12, SlotName.AFTERNOON)),
    ],
)
def test_parse_slot_label(label, expected):
    assert parse_slot_label(label) == expected


def test_parse_slot_label_rejects_garbage():
    with pytest.raises(ValidationError):
        parse_slot_label("Day two - Morning")
