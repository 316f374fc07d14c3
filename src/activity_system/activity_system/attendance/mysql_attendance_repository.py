from __future__ import annotations

from typing import Any, Dict, Optional

import mysql.connector

from ..core.enums import AttendanceStatus, CheckInType
from ..core.exceptions import NotFoundError, ValidationError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, exists, fetchall, fetchone
from .model import AttendanceLedger, AttendanceRecord, LedgerOwner, Location, NewAttendanceRecord
from .repository import AttendanceRepository

_RECORD_COLUMNS = """
    record_id, ledger_id, time_slot, check_in_type, check_in_time,
    location_lat, location_lng, location_address, photo_url, status,
    verified_by, verified_by_name, verified_by_email, verified_at,
    verification_note, cancel_reason, late_reason
"""


def _to_record(r: Dict[str, Any]) -> AttendanceRecord:
    return AttendanceRecord(
        record_id=int(r["record_id"]),
        ledger_id=int(r["ledger_id"]),
        time_slot=r["time_slot"],
        check_in_type=CheckInType(r["check_in_type"]),
        check_in_time=r["check_in_time"],
        location=Location(lat=float(r["location_lat"]), lng=float(r["location_lng"]), address=r.get("location_address")),
        status=AttendanceStatus(r["status"]),
        photo_url=r.get("photo_url"),
        verified_by=r.get("verified_by"),
        verified_by_name=r.get("verified_by_name"),
        verified_by_email=r.get("verified_by_email"),
        verified_at=r.get("verified_at"),
        verification_note=r.get("verification_note"),
        cancel_reason=r.get("cancel_reason"),
        late_reason=r.get("late_reason"),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _load_ledger(self, cur, where: str, params: tuple) -> Optional[AttendanceLedger]:
        cur.execute(
            f"""
            SELECT ledger_id, activity_id, user_id, student_name, student_email, student_id
            FROM attendance_ledgers
            WHERE {where}
            """,
            params,
        )
        row = fetchone(cur)
        if not row:
            return None

        cur.execute(
            f"SELECT {_RECORD_COLUMNS} FROM attendance_records WHERE ledger_id=%s ORDER BY check_in_time ASC, record_id ASC",
            (int(row["ledger_id"]),),
        )
        return AttendanceLedger(
            ledger_id=int(row["ledger_id"]),
            activity_id=int(row["activity_id"]),
            user_id=int(row["user_id"]),
            student_name=row["student_name"],
            student_email=row["student_email"],
            student_id=row.get("student_id"),
            entries=tuple(_to_record(r) for r in fetchall(cur)),
        )

    def get_ledger(self, *, activity_id: int, user_id: int) -> Optional[AttendanceLedger]:
        with db_cursor(self._conn_factory) as (_, cur):
            return self._load_ledger(cur, "activity_id=%s AND user_id=%s", (int(activity_id), int(user_id)))

    def get_or_create_ledger(self, owner: LedgerOwner) -> AttendanceLedger:
        with db_cursor(self._conn_factory) as (_, cur):
            # Unique (activity_id, user_id): a second writer keeps the first snapshot.
            cur.execute(
                """
                INSERT INTO attendance_ledgers(activity_id, user_id, student_name, student_email, student_id)
                VALUES(%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE ledger_id=ledger_id
                """,
                (int(owner.activity_id), int(owner.user_id), owner.student_name, owner.student_email, owner.student_id),
            )
            ledger = self._load_ledger(cur, "activity_id=%s AND user_id=%s", (int(owner.activity_id), int(owner.user_id)))
            if ledger is None:
                raise NotFoundError(f"No ledger for activity {owner.activity_id}, user {owner.user_id}")
            return ledger

    def append_record(self, *, ledger_id: int, record: NewAttendanceRecord) -> int:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO attendance_records(
                        ledger_id, time_slot, check_in_type, check_in_time,
                        location_lat, location_lng, location_address, photo_url, status, late_reason
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        int(ledger_id),
                        record.time_slot,
                        record.check_in_type.value,
                        record.check_in_time,
                        float(record.location.lat),
                        float(record.location.lng),
                        record.location.address,
                        record.photo_url,
                        AttendanceStatus.PENDING.value,
                        record.late_reason,
                    ),
                )
                return int(cur.lastrowid)
        except mysql.connector.IntegrityError:
            raise ValidationError(f"Already checked {record.check_in_type.value} for {record.time_slot}")

    def find_ledger_by_record(self, record_id: int) -> Optional[AttendanceLedger]:
        with db_cursor(self._conn_factory) as (_, cur):
            return self._load_ledger(
                cur,
                "ledger_id=(SELECT ledger_id FROM attendance_records WHERE record_id=%s)",
                (int(record_id),),
            )

    def update_verification(self, record: AttendanceRecord) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_records
                SET status=%s, verified_by=%s, verified_by_name=%s, verified_by_email=%s,
                    verified_at=%s, verification_note=%s, cancel_reason=%s
                WHERE record_id=%s
                """,
                (
                    record.status.value,
                    record.verified_by,
                    record.verified_by_name,
                    record.verified_by_email,
                    record.verified_at,
                    record.verification_note,
                    record.cancel_reason,
                    int(record.record_id),
                ),
            )
            return cur.rowcount > 0 or exists(
                cur, "SELECT record_id FROM attendance_records WHERE record_id=%s", (int(record.record_id),)
            )
