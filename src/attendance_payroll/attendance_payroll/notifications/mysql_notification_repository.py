from __future__ import annotations

from typing import Sequence

from ..core.enums import NotificationSeverity
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall
from .model import Notification
from .repository import NotificationStore


class MySQLNotificationStore(NotificationStore):
    """In-app notifications: one row per recipient."""

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def send(self, notification: Notification) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            for recipient_id in notification.recipient_ids:
                cur.execute(
                    """
                    INSERT INTO notifications(recipient_id, severity, title, message, related_module, related_entity_id)
                    VALUES(%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        int(recipient_id),
                        notification.severity.value,
                        notification.title,
                        notification.message,
                        notification.related_module,
                        notification.related_entity_id,
                    ),
                )

    def list_for_recipient(self, recipient_id: int, *, limit: int = 50) -> Sequence[Notification]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT recipient_id, severity, title, message, related_module, related_entity_id, created_at
                FROM notifications
                WHERE recipient_id=%s
                ORDER BY created_at DESC
                LIMIT %s
                """,
                (int(recipient_id), int(limit)),
            )
            return [
                Notification(
                    recipient_ids=(int(r["recipient_id"]),),
                    severity=NotificationSeverity(r["severity"]),
                    title=r["title"],
                    message=r["message"],
                    related_module=r.get("related_module") or "",
                    related_entity_id=r.get("related_entity_id"),
                    created_at=r.get("created_at"),
                )
                for r in fetchall(cur)
            ]
