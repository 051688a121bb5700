from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import EmployeeStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Employee
from .repository import EmployeeRepository

_COLUMNS = "employee_id, full_name, role, department_id, position_id, bank_name, status, hire_date"


def _to_employee(r: dict) -> Employee:
    return Employee(
        employee_id=int(r["employee_id"]),
        full_name=r["full_name"],
        role=r.get("role"),
        department_id=r.get("department_id"),
        position_id=r.get("position_id"),
        bank_name=r.get("bank_name"),
        status=EmployeeStatus(r.get("status") or EmployeeStatus.ACTIVE.value),
        hire_date=r.get("hire_date"),
    )


class MySQLEmployeeRepository(EmployeeRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, employee_id: int) -> Optional[Employee]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM employees
                WHERE employee_id=%s
                """,
                (int(employee_id),),
            )
            row = fetchone(cur)
            return _to_employee(row) if row else None

    def list_active(self, *, employee_ids: Optional[Sequence[int]] = None) -> Sequence[Employee]:
        clauses = ["status=%s"]
        params: list[object] = [EmployeeStatus.ACTIVE.value]
        if employee_ids:
            placeholders = ",".join(["%s"] * len(employee_ids))
            clauses.append(f"employee_id IN ({placeholders})")
            params.extend(int(x) for x in employee_ids)

        where = " AND ".join(clauses)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM employees
                WHERE {where}
                ORDER BY employee_id
                """,
                tuple(params),
            )
            return [_to_employee(r) for r in fetchall(cur)]
