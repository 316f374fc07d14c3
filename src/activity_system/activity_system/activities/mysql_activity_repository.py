from __future__ import annotations

import logging
from collections import defaultdict
from typing import Optional, Sequence

from ..core.enums import ActivityKind, ActivityStatus, ApprovalStatus, SlotName
from ..core.exceptions import ConcurrencyError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, exists, fetchall, fetchone, in_clause
from .model import (
    Activity,
    DaySlot,
    MultiDay,
    NewActivity,
    NewRegistration,
    Registration,
    ScheduleDay,
    SingleDay,
    TimeSlot,
)
from .repository import ActivityRepository

logger = logging.getLogger(__name__)


class MySQLActivityRepository(ActivityRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    # -------- Reads --------
    def get_by_id(self, activity_id: int) -> Optional[Activity]:
        with db_cursor(self._conn_factory) as (_, cur):
            activities = self._load(cur, [int(activity_id)])
            return activities[0] if activities else None

    def list_with_live_registration(self, *, user_id: int, exclude_activity_id: Optional[int] = None) -> Sequence[Activity]:
        clauses = ["user_id=%s", f"approval_status IN ({in_clause(['p', 'a'])})"]
        params: list[object] = [int(user_id), ApprovalStatus.PENDING.value, ApprovalStatus.APPROVED.value]
        if exclude_activity_id is not None:
            clauses.append("activity_id<>%s")
            params.append(int(exclude_activity_id))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT DISTINCT activity_id FROM activity_participants WHERE {' AND '.join(clauses)}",
                tuple(params),
            )
            ids = [int(r["activity_id"]) for r in fetchall(cur)]
            if not ids:
                return []
            return self._load(cur, ids)

    def _load(self, cur, activity_ids: Sequence[int]) -> list[Activity]:
        placeholders = in_clause(activity_ids)
        ids = tuple(activity_ids)

        cur.execute(
            f"""
            SELECT activity_id, name, kind, activity_date, start_date, end_date,
                   status, max_participants, responsible_person_id, version
            FROM activities
            WHERE activity_id IN ({placeholders})
            """,
            ids,
        )
        rows = fetchall(cur)
        if not rows:
            return []

        cur.execute(
            f"""
            SELECT activity_id, day_number, day_date, note
            FROM activity_schedule_days
            WHERE activity_id IN ({placeholders})
            ORDER BY day_number ASC
            """,
            ids,
        )
        schedule: dict[int, list[ScheduleDay]] = defaultdict(list)
        for r in fetchall(cur):
            schedule[int(r["activity_id"])].append(
                ScheduleDay(day_number=int(r["day_number"]), date=r["day_date"], note=r.get("note"))
            )

        cur.execute(
            f"""
            SELECT activity_id, name, start_time, end_time, is_active
            FROM activity_time_slots
            WHERE activity_id IN ({placeholders})
            """,
            ids,
        )
        slots: dict[int, list[TimeSlot]] = defaultdict(list)
        for r in fetchall(cur):
            slots[int(r["activity_id"])].append(
                TimeSlot(
                    name=SlotName(r["name"]),
                    start_time=str(r["start_time"]),
                    end_time=str(r["end_time"]),
                    active=bool(r["is_active"]),
                )
            )

        participants = self._load_participants(cur, ids)

        out: list[Activity] = []
        for r in rows:
            aid = int(r["activity_id"])
            if ActivityKind(r["kind"]) == ActivityKind.MULTI_DAY:
                shape = MultiDay(start_date=r["start_date"], end_date=r["end_date"], schedule=tuple(schedule[aid]))
            else:
                shape = SingleDay(date=r["activity_date"])
            out.append(
                Activity(
                    activity_id=aid,
                    name=r["name"],
                    shape=shape,
                    time_slots=tuple(slots[aid]),
                    status=ActivityStatus(r["status"]),
                    max_participants=r.get("max_participants"),
                    responsible_person_id=r.get("responsible_person_id"),
                    participants=tuple(participants[aid]),
                    version=int(r["version"]),
                )
            )
        return out

    def _load_participants(self, cur, ids: tuple) -> dict[int, list[Registration]]:
        placeholders = in_clause(ids)
        cur.execute(
            f"""
            SELECT ds.registration_id, ds.day_number, ds.slot_name
            FROM participant_day_slots ds
            JOIN activity_participants p ON p.registration_id = ds.registration_id
            WHERE p.activity_id IN ({placeholders})
            ORDER BY ds.day_number ASC
            """,
            ids,
        )
        day_slots: dict[int, list[DaySlot]] = defaultdict(list)
        for r in fetchall(cur):
            day_slots[int(r["registration_id"])].append(
                DaySlot(day_number=int(r["day_number"]), slot=SlotName(r["slot_name"]))
            )

        cur.execute(
            f"""
            SELECT registration_id, activity_id, user_id, name, email, approval_status, registered_at,
                   approved_by, approved_at, rejected_by, rejected_at, rejection_reason,
                   removed_by, removed_at, removal_reason
            FROM activity_participants
            WHERE activity_id IN ({placeholders})
            ORDER BY registration_id ASC
            """,
            ids,
        )
        out: dict[int, list[Registration]] = defaultdict(list)
        for r in fetchall(cur):
            rid = int(r["registration_id"])
            out[int(r["activity_id"])].append(
                Registration(
                    registration_id=rid,
                    activity_id=int(r["activity_id"]),
                    user_id=int(r["user_id"]),
                    name=r["name"],
                    email=r["email"],
                    status=ApprovalStatus(r["approval_status"]),
                    registered_at=r["registered_at"],
                    day_slots=tuple(day_slots[rid]),
                    approved_by=r.get("approved_by"),
                    approved_at=r.get("approved_at"),
                    rejected_by=r.get("rejected_by"),
                    rejected_at=r.get("rejected_at"),
                    rejection_reason=r.get("rejection_reason"),
                    removed_by=r.get("removed_by"),
                    removed_at=r.get("removed_at"),
                    removal_reason=r.get("removal_reason"),
                )
            )
        return out

    # -------- Writes --------
    def create(self, activity: NewActivity) -> int:
        shape = activity.shape
        activity_date = shape.date if isinstance(shape, SingleDay) else None
        start_date = shape.start_date if isinstance(shape, MultiDay) else None
        end_date = shape.end_date if isinstance(shape, MultiDay) else None

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO activities(
                    name, kind, activity_date, start_date, end_date,
                    status, max_participants, responsible_person_id, created_by
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    activity.name,
                    shape.kind.value,
                    activity_date,
                    start_date,
                    end_date,
                    activity.status.value,
                    activity.max_participants,
                    activity.responsible_person_id,
                    activity.created_by,
                ),
            )
            activity_id = int(cur.lastrowid)

            if isinstance(shape, MultiDay):
                cur.executemany(
                    "INSERT INTO activity_schedule_days(activity_id, day_number, day_date, note) VALUES(%s,%s,%s,%s)",
                    [(activity_id, d.day_number, d.date, d.note) for d in shape.schedule],
                )
            cur.executemany(
                """
                INSERT INTO activity_time_slots(activity_id, name, start_time, end_time, is_active)
                VALUES(%s,%s,%s,%s,%s)
                """,
                [(activity_id, ts.name.value, ts.start_time, ts.end_time, int(ts.active)) for ts in activity.time_slots],
            )
            return activity_id

    def set_status(self, *, activity_id: int, status: ActivityStatus) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE activities SET status=%s, version=version+1 WHERE activity_id=%s",
                (status.value, int(activity_id)),
            )
            return cur.rowcount > 0

    def _bump_version(self, cur, activity_id: int, expected_version: int) -> None:
        cur.execute(
            "UPDATE activities SET version=version+1 WHERE activity_id=%s AND version=%s",
            (int(activity_id), int(expected_version)),
        )
        if cur.rowcount != 1:
            logger.info("Version check lost on activity %s (expected %s)", activity_id, expected_version)
            raise ConcurrencyError("Activity was modified concurrently, please retry")

    def _insert_day_slots(self, cur, registration_id: int, day_slots: Sequence[DaySlot]) -> None:
        if not day_slots:
            return
        cur.executemany(
            "INSERT INTO participant_day_slots(registration_id, day_number, slot_name) VALUES(%s,%s,%s)",
            [(int(registration_id), ds.day_number, ds.slot.value) for ds in day_slots],
        )

    def add_participant(self, *, registration: NewRegistration, expected_version: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            self._bump_version(cur, registration.activity_id, expected_version)
            cur.execute(
                """
                INSERT INTO activity_participants(activity_id, user_id, name, email, approval_status, registered_at)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(registration.activity_id),
                    int(registration.user_id),
                    registration.name,
                    registration.email,
                    ApprovalStatus.PENDING.value,
                    registration.registered_at,
                ),
            )
            registration_id = int(cur.lastrowid)
            self._insert_day_slots(cur, registration_id, registration.day_slots)
            return registration_id

    def delete_participant(self, *, activity_id: int, registration_id: int, expected_version: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            self._bump_version(cur, activity_id, expected_version)
            cur.execute(
                "DELETE FROM activity_participants WHERE registration_id=%s AND activity_id=%s",
                (int(registration_id), int(activity_id)),
            )
            return cur.rowcount > 0

    def update_participant(self, registration: Registration) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE activity_participants
                SET approval_status=%s,
                    approved_by=%s, approved_at=%s,
                    rejected_by=%s, rejected_at=%s, rejection_reason=%s,
                    removed_by=%s, removed_at=%s, removal_reason=%s
                WHERE registration_id=%s AND activity_id=%s
                """,
                (
                    registration.status.value,
                    registration.approved_by,
                    registration.approved_at,
                    registration.rejected_by,
                    registration.rejected_at,
                    registration.rejection_reason,
                    registration.removed_by,
                    registration.removed_at,
                    registration.removal_reason,
                    int(registration.registration_id),
                    int(registration.activity_id),
                ),
            )
            if cur.rowcount == 0 and not exists(
                cur,
                "SELECT registration_id FROM activity_participants WHERE registration_id=%s AND activity_id=%s",
                (int(registration.registration_id), int(registration.activity_id)),
            ):
                return False
            if registration.status == ApprovalStatus.REMOVED:
                cur.execute(
                    "DELETE FROM participant_day_slots WHERE registration_id=%s",
                    (int(registration.registration_id),),
                )
            return True

    def replace_day_slots(
        self,
        *,
        activity_id: int,
        registration_id: int,
        day_slots: Sequence[DaySlot],
        expected_version: int,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            self._bump_version(cur, activity_id, expected_version)
            cur.execute(
                "SELECT registration_id FROM activity_participants WHERE registration_id=%s AND activity_id=%s",
                (int(registration_id), int(activity_id)),
            )
            if not fetchone(cur):
                return False
            cur.execute("DELETE FROM participant_day_slots WHERE registration_id=%s", (int(registration_id),))
            self._insert_day_slots(cur, registration_id, day_slots)
            return True
