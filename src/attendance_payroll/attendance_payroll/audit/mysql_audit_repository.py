from __future__ import annotations

from typing import Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, from_json, to_json
from .model import AuditEvent
from .repository import AuditRepository


class MySQLAuditRepository(AuditRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def record(self, event: AuditEvent) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO audit_events(entity_type, entity_id, action, actor_id, details, occurred_at)
                VALUES(%s,%s,%s,%s,%s,COALESCE(%s, CURRENT_TIMESTAMP))
                """,
                (
                    event.entity_type,
                    int(event.entity_id),
                    event.action,
                    event.actor_id,
                    to_json(event.details),
                    event.occurred_at,
                ),
            )

    def list_for(self, entity_type: str, entity_id: int) -> Sequence[AuditEvent]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT entity_type, entity_id, action, actor_id, details, occurred_at
                FROM audit_events
                WHERE entity_type=%s AND entity_id=%s
                ORDER BY occurred_at, event_id
                """,
                (entity_type, int(entity_id)),
            )
            return [
                AuditEvent(
                    entity_type=r["entity_type"],
                    entity_id=int(r["entity_id"]),
                    action=r["action"],
                    actor_id=r.get("actor_id"),
                    details=from_json(r.get("details"), {}),
                    occurred_at=r.get("occurred_at"),
                )
                for r in fetchall(cur)
            ]
