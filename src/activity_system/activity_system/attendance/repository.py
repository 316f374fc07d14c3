from __future__ import annotations

from typing import Optional, Protocol

from .model import AttendanceLedger, AttendanceRecord, LedgerOwner, NewAttendanceRecord


class AttendanceRepository(Protocol):
    """Giao diện repository cho sổ điểm danh (một sổ cho mỗi cặp user/activity)."""

    def get_ledger(self, *, activity_id: int, user_id: int) -> Optional[AttendanceLedger]:
        raise NotImplementedError

    def get_or_create_ledger(self, owner: LedgerOwner) -> AttendanceLedger:
        """Concurrent first check-ins must converge on the same ledger."""

        raise NotImplementedError

    def append_record(self, *, ledger_id: int, record: NewAttendanceRecord) -> int:
        raise NotImplementedError

    def find_ledger_by_record(self, record_id: int) -> Optional[AttendanceLedger]:
        raise NotImplementedError

    def update_verification(self, record: AttendanceRecord) -> bool:
        raise NotImplementedError
