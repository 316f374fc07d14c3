from datetime import date, datetime

import pytest

from inmemory import InMemoryActivities, multi_day, registration, single_day

from src.activity_system.activity_system.activities.model import DaySlot, TimeSlot
from src.activity_system.activity_system.conflicts.detector import ConflictDetector
from src.activity_system.activity_system.core.enums import ActivityStatus, ApprovalStatus, SlotName
from src.activity_system.activity_system.core.exceptions import NotFoundError, ScheduleConflictError

USER = 7
MARCH_10 = date(2025, 3, 10)


def _detector(*activities):
    return ConflictDetector(InMemoryActivities(activities))


def test_multi_day_candidate_hits_single_day_registration_on_same_date():
    a = single_day(1, MARCH_10, name="Blood drive", participants=[registration(11, 1, USER, day_slots=[(1, SlotName.MORNING)])])
    b = multi_day(2, [date(2025, 3, 8), date(2025, 3, 9), MARCH_10], name="Camp")

    report = _detector(a, b).check_overlap(USER, 2, 3, SlotName.MORNING)

    assert report.has_overlap is True
    assert len(report.overlaps) == 1
    hit = report.overlaps[0]
    assert hit.activity_id == 1
    assert hit.activity_name == "Blood drive"
    assert hit.date == MARCH_10
    assert hit.start_time == "08:00" and hit.end_time == "11:00"


def test_different_slot_on_same_day_is_not_an_overlap():
    a = single_day(1, MARCH_10, participants=[registration(11, 1, USER, day_slots=[(1, SlotName.MORNING)])])
    c = single_day(3, MARCH_10)

    report = _detector(a, c).check_overlap(USER, 3, None, SlotName.AFTERNOON)

    assert report.has_overlap is False
    assert report.overlaps == ()


def test_single_day_registration_without_day_slots_covers_every_slot():
    a = single_day(1, MARCH_10, participants=[registration(11, 1, USER, day_slots=[])])
    c = single_day(3, MARCH_10)

    report = _detector(a, c).check_overlap(USER, 3, None, SlotName.EVENING)

    assert report.has_overlap is True


def test_dates_with_time_of_day_compare_as_calendar_days():
    a = single_day(1, datetime(2025, 3, 10, 17, 30), participants=[registration(11, 1, USER)])
    b = multi_day(2, [datetime(2025, 3, 9, 0, 0), datetime(2025, 3, 10, 7, 0)])

    report = _detector(a, b).check_overlap(USER, 2, 2, SlotName.MORNING)

    assert report.has_overlap is True


def test_overlap_is_symmetric_between_single_and_multi_day():
    a = multi_day(1, [date(2025, 3, 9), MARCH_10], participants=[registration(11, 1, USER, day_slots=[(2, SlotName.MORNING)])])
    b = single_day(2, MARCH_10, participants=[registration(21, 2, USER, day_slots=[(1, SlotName.MORNING)])])
    detector = _detector(a, b)

    from_a = detector.check_overlap(USER, 1, 2, SlotName.MORNING)
    from_b = detector.check_overlap(USER, 2, None, SlotName.MORNING)

    assert from_a.has_overlap is True
    assert from_b.has_overlap is True
    assert from_a.overlaps[0].activity_id == 2
    assert from_b.overlaps[0].activity_id == 1
    assert from_b.overlaps[0].day_number == 2


@pytest.mark.parametrize("status", [ApprovalStatus.REJECTED, ApprovalStatus.REMOVED])
def test_dead_registrations_never_conflict(status):
    a = single_day(1, MARCH_10, participants=[registration(11, 1, USER, status=status)])
    b = multi_day(2, [MARCH_10], participants=[registration(21, 2, USER, status=status, day_slots=[(1, SlotName.MORNING)])])
    c = single_day(3, MARCH_10)

    report = _detector(a, b, c).check_overlap(USER, 3, None, SlotName.MORNING)

    assert report.has_overlap is False


def test_pending_registration_counts_as_live():
    a = single_day(1, MARCH_10, participants=[registration(11, 1, USER, status=ApprovalStatus.PENDING)])
    c = single_day(3, MARCH_10)

    assert _detector(a, c).check_overlap(USER, 3, None, SlotName.MORNING).has_overlap is True


def test_other_users_registrations_are_ignored():
    a = single_day(1, MARCH_10, participants=[registration(11, 1, USER + 1)])
    c = single_day(3, MARCH_10)

    assert _detector(a, c).check_overlap(USER, 3, None, SlotName.MORNING).has_overlap is False


def test_activities_no_longer_running_are_skipped():
    a = single_day(1, MARCH_10, status=ActivityStatus.CANCELLED, participants=[registration(11, 1, USER)])
    c = single_day(3, MARCH_10)

    assert _detector(a, c).check_overlap(USER, 3, None, SlotName.MORNING).has_overlap is False


def test_single_day_windows_are_compared_in_minutes():
    early = (TimeSlot(name=SlotName.MORNING, start_time="07:00", end_time="09:00"),)
    late = (TimeSlot(name=SlotName.MORNING, start_time="09:00", end_time="11:00"),)
    a = single_day(1, MARCH_10, slots=early, participants=[registration(11, 1, USER)])
    c = single_day(3, MARCH_10, slots=late)

    # Touching ends do not overlap.
    assert _detector(a, c).check_overlap(USER, 3, None, SlotName.MORNING).has_overlap is False


def test_malformed_slot_times_fall_back_to_overlap():
    broken = (TimeSlot(name=SlotName.MORNING, start_time="8am", end_time="9am"),)
    late = (TimeSlot(name=SlotName.MORNING, start_time="10:00", end_time="11:00"),)
    a = single_day(1, MARCH_10, slots=broken, participants=[registration(11, 1, USER)])
    c = single_day(3, MARCH_10, slots=late)

    assert _detector(a, c).check_overlap(USER, 3, None, SlotName.MORNING).has_overlap is True


def test_explicitly_booked_slot_without_definition_falls_back_to_overlap():
    only_afternoon = (TimeSlot(name=SlotName.AFTERNOON, start_time="13:00", end_time="16:00"),)
    a = single_day(
        1, MARCH_10, slots=only_afternoon, participants=[registration(11, 1, USER, day_slots=[(1, SlotName.MORNING)])]
    )
    c = single_day(3, MARCH_10)

    report = _detector(a, c).check_overlap(USER, 3, None, SlotName.MORNING)

    assert report.has_overlap is True
    assert report.overlaps[0].start_time is None


def test_whole_day_booking_ignores_slots_the_activity_does_not_run():
    only_afternoon = (TimeSlot(name=SlotName.AFTERNOON, start_time="13:00", end_time="16:00"),)
    a = single_day(1, MARCH_10, slots=only_afternoon, participants=[registration(11, 1, USER)])
    c = single_day(3, MARCH_10)
    detector = _detector(a, c)

    assert detector.check_overlap(USER, 3, None, SlotName.MORNING).has_overlap is False
    assert detector.check_overlap(USER, 3, None, SlotName.AFTERNOON).has_overlap is True


def test_unresolvable_candidate_day_yields_no_hits():
    a = single_day(1, MARCH_10, participants=[registration(11, 1, USER)])
    b = multi_day(2, [MARCH_10])

    report = _detector(a, b).check_overlap(USER, 2, 9, SlotName.MORNING)

    assert report.has_overlap is False


def test_multi_day_scan_reports_first_conflicting_day_only():
    a = multi_day(
        1,
        [MARCH_10, MARCH_10],
        participants=[registration(11, 1, USER, day_slots=[(1, SlotName.MORNING), (2, SlotName.MORNING)])],
    )
    c = single_day(3, MARCH_10)

    report = _detector(a, c).check_overlap(USER, 3, None, SlotName.MORNING)

    assert len(report.overlaps) == 1
    assert report.overlaps[0].day_number == 1


def test_multi_day_against_multi_day_needs_only_same_slot_and_date():
    a = multi_day(1, [MARCH_10], participants=[registration(11, 1, USER, day_slots=[(1, SlotName.EVENING)])])
    b = multi_day(2, [date(2025, 3, 9), MARCH_10])

    detector = _detector(a, b)

    assert detector.check_overlap(USER, 2, 2, SlotName.EVENING).has_overlap is True
    assert detector.check_overlap(USER, 2, 2, SlotName.MORNING).has_overlap is False
    assert detector.check_overlap(USER, 2, 1, SlotName.EVENING).has_overlap is False


def test_check_many_deduplicates_hits():
    a = single_day(1, MARCH_10, participants=[registration(11, 1, USER)])
    b = multi_day(2, [MARCH_10])
    detector = _detector(a, b)

    report = detector.check_many(
        b,
        user_id=USER,
        day_slots=[DaySlot(1, SlotName.MORNING), DaySlot(1, SlotName.MORNING), DaySlot(1, SlotName.AFTERNOON)],
    )

    assert [(h.activity_id, h.slot) for h in report.overlaps] == [(1, SlotName.MORNING), (1, SlotName.AFTERNOON)]


def test_report_serialises_and_explains_itself():
    a = single_day(1, MARCH_10, name="Blood drive", participants=[registration(11, 1, USER)])
    c = single_day(3, MARCH_10)

    report = _detector(a, c).check_overlap(USER, 3, None, SlotName.MORNING)
    payload = report.to_dict()

    assert payload["hasOverlap"] is True
    assert payload["overlaps"][0]["activityName"] == "Blood drive"
    assert payload["overlaps"][0]["date"] == "2025-03-10"
    assert "Blood drive" in str(ScheduleConflictError(report))


def test_unknown_activity_raises_not_found():
    with pytest.raises(NotFoundError):
        _detector().check_overlap(USER, 404, None, SlotName.MORNING)
