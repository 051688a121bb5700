from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from ..core.enums import AssignmentScope, HolidayType, PunchPolicy
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, normalize_mysql_time
from .model import Holiday, ShiftAssignment, ShiftDefinition
from .repository import ShiftRepository


class MySQLShiftRepository(ShiftRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, shift_id: int) -> Optional[ShiftDefinition]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT shift_id, name, start_time, end_time, grace_in_minutes, grace_out_minutes,
                       requires_approval_for_overtime, punch_policy, active
                FROM shifts
                WHERE shift_id=%s
                """,
                (int(shift_id),),
            )
            r = fetchone(cur)
            if not r:
                return None
            return ShiftDefinition(
                shift_id=int(r["shift_id"]),
                name=r["name"],
                start_time=normalize_mysql_time(r["start_time"]),
                end_time=normalize_mysql_time(r["end_time"]),
                grace_in_minutes=int(r.get("grace_in_minutes") or 0),
                grace_out_minutes=int(r.get("grace_out_minutes") or 0),
                requires_approval_for_overtime=bool(r.get("requires_approval_for_overtime")),
                punch_policy=PunchPolicy(r.get("punch_policy") or PunchPolicy.MULTIPLE.value),
                active=bool(r.get("active", True)),
            )

    def list_assignments(
        self,
        *,
        employee_id: int,
        department_id: Optional[int],
        position_id: Optional[int],
        on_date: date,
    ) -> Sequence[ShiftAssignment]:
        targets = ["(scope=%s AND target_id=%s)"]
        params: list[object] = [AssignmentScope.EMPLOYEE.value, int(employee_id)]
        if department_id is not None:
            targets.append("(scope=%s AND target_id=%s)")
            params.extend([AssignmentScope.DEPARTMENT.value, int(department_id)])
        if position_id is not None:
            targets.append("(scope=%s AND target_id=%s)")
            params.extend([AssignmentScope.POSITION.value, int(position_id)])
        params.extend([on_date, on_date])

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT assignment_id, shift_id, scope, target_id, start_date, end_date, active
                FROM shift_assignments
                WHERE ({" OR ".join(targets)})
                  AND active=1
                  AND start_date <= %s
                  AND (end_date IS NULL OR end_date >= %s)
                ORDER BY start_date DESC
                """,
                tuple(params),
            )
            return [
                ShiftAssignment(
                    assignment_id=int(r["assignment_id"]),
                    shift_id=int(r["shift_id"]),
                    scope=AssignmentScope(r["scope"]),
                    target_id=int(r["target_id"]),
                    start_date=r["start_date"],
                    end_date=r.get("end_date"),
                    active=bool(r.get("active", True)),
                )
                for r in fetchall(cur)
            ]

    def list_holidays(self, *, on_date: date) -> Sequence[Holiday]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT holiday_id, holiday_type, start_date, end_date, name, active
                FROM holidays
                WHERE active=1
                  AND start_date <= %s
                  AND (end_date IS NULL OR end_date >= %s)
                """,
                (on_date, on_date),
            )
            return [
                Holiday(
                    holiday_id=int(r["holiday_id"]),
                    holiday_type=HolidayType(r["holiday_type"]),
                    start_date=r["start_date"],
                    end_date=r.get("end_date"),
                    name=r.get("name") or "",
                    active=bool(r.get("active", True)),
                )
                for r in fetchall(cur)
            ]
