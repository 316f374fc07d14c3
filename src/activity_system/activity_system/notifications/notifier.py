from __future__ import annotations

import logging
from typing import Optional, Protocol

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor
from .model import NotificationEvent

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    """Fire-and-forget delivery; callers never let a failure undo their work."""

    def send(self, event: NotificationEvent) -> None:
        raise NotImplementedError


class MySQLNotifier(Notifier):
    """Stores one in-app notification row per recipient."""

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def send(self, event: NotificationEvent) -> None:
        if not event.recipient_ids:
            return
        with db_cursor(self._conn_factory) as (_, cur):
            cur.executemany(
                """
                INSERT INTO notifications(user_id, kind, title, message, related_activity_id, created_by)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                [
                    (int(uid), event.kind.value, event.title, event.message, event.activity_id, event.created_by)
                    for uid in event.recipient_ids
                ],
            )


def notify_safely(notifier: Optional[Notifier], event: NotificationEvent) -> None:
    if notifier is None or not event.recipient_ids:
        return
    try:
        notifier.send(event)
    except Exception:
        logger.exception("Notification %s for activity %s failed", event.kind.value, event.activity_id)
