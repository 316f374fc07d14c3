from __future__ import annotations

from typing import Protocol, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone

ACTIVE_MEMBERSHIP = "ACTIVE"


class MembershipGateway(Protocol):
    """The one membership fact this core needs: may the user register?"""

    def is_eligible_to_register(self, user_id: int) -> bool:
        raise NotImplementedError

    def list_active_member_ids(self) -> Sequence[int]:
        raise NotImplementedError


class MySQLMembershipGateway(MembershipGateway):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def is_eligible_to_register(self, user_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT membership_id FROM memberships WHERE user_id=%s AND status=%s LIMIT 1",
                (int(user_id), ACTIVE_MEMBERSHIP),
            )
            return fetchone(cur) is not None

    def list_active_member_ids(self) -> Sequence[int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT DISTINCT user_id FROM memberships WHERE status=%s", (ACTIVE_MEMBERSHIP,))
            return [int(r["user_id"]) for r in fetchall(cur)]
