from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from .activities.mysql_activity_repository import MySQLActivityRepository
from .activities.repository import ActivityRepository
from .activities.service import ActivityCatalogService
from .attendance.factory import CheckInTimingFactory
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceService
from .common.datetime_utils import now_local
from .conflicts.detector import ConflictDetector
from .core.constants import DEFAULT_CHECKIN_GRACE_MINUTES, DEFAULT_CHECKIN_LATE_MINUTES
from .database.connection import DBConfig, DatabaseConnection
from .membership.gateway import MembershipGateway, MySQLMembershipGateway
from .notifications.notifier import MySQLNotifier, Notifier
from .participation.service import ParticipationService
from .users.mysql_user_repository import MySQLUserRepository
from .users.repository import UserRepository


@dataclass(frozen=True)
class Container:
    activities_repo: ActivityRepository
    attendance_repo: AttendanceRepository
    users_repo: UserRepository
    membership: MembershipGateway
    notifier: Notifier

    conflict_detector: ConflictDetector
    activity_catalog_service: ActivityCatalogService
    participation_service: ParticipationService
    attendance_service: AttendanceService


def wire_container(
    *,
    activities_repo: ActivityRepository,
    attendance_repo: AttendanceRepository,
    users_repo: UserRepository,
    membership: MembershipGateway,
    notifier: Notifier,
    grace_minutes: int = DEFAULT_CHECKIN_GRACE_MINUTES,
    late_minutes: int = DEFAULT_CHECKIN_LATE_MINUTES,
    clock: Callable[[], datetime] = now_local,
) -> Container:
    """Build services on top of any repository implementations (MySQL or in-memory)."""

    conflict_detector = ConflictDetector(activities_repo)
    activity_catalog_service = ActivityCatalogService(activities_repo, membership=membership, notifier=notifier)
    participation_service = ParticipationService(
        activities_repo,
        conflict_detector,
        users_repo,
        membership,
        notifier,
        clock=clock,
    )
    attendance_service = AttendanceService(
        attendance_repo,
        activities_repo,
        users_repo,
        strategy_factory=CheckInTimingFactory(grace_minutes=int(grace_minutes), late_minutes=int(late_minutes)),
        clock=clock,
    )

    return Container(
        activities_repo=activities_repo,
        attendance_repo=attendance_repo,
        users_repo=users_repo,
        membership=membership,
        notifier=notifier,
        conflict_detector=conflict_detector,
        activity_catalog_service=activity_catalog_service,
        participation_service=participation_service,
        attendance_service=attendance_service,
    )


def build_container(
    *,
    db_config: dict,
    grace_minutes: int = DEFAULT_CHECKIN_GRACE_MINUTES,
    late_minutes: int = DEFAULT_CHECKIN_LATE_MINUTES,
) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_settings(db_config))

    return wire_container(
        activities_repo=MySQLActivityRepository(conn),
        attendance_repo=MySQLAttendanceRepository(conn),
        users_repo=MySQLUserRepository(conn),
        membership=MySQLMembershipGateway(conn),
        notifier=MySQLNotifier(conn),
        grace_minutes=grace_minutes,
        late_minutes=late_minutes,
    )
