from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

import mysql.connector

from ..core.exceptions import ConcurrencyError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, from_json, to_json
from .model import AttendanceRecord, ImportMarker, Punch
from .repository import AttendanceRepository, ImportStateRepository

_COLUMNS = """
    record_id, employee_id, work_date, punches, total_work_minutes, has_missed_punch,
    finalised_for_payroll, lateness_deduction_minutes, version
"""


def _to_record(r: dict) -> AttendanceRecord:
    return AttendanceRecord(
        record_id=int(r["record_id"]),
        employee_id=int(r["employee_id"]),
        work_date=r["work_date"],
        punches=tuple(Punch.from_dict(p) for p in from_json(r.get("punches"), [])),
        total_work_minutes=int(r.get("total_work_minutes") or 0),
        has_missed_punch=bool(r.get("has_missed_punch")),
        finalised_for_payroll=bool(r.get("finalised_for_payroll")),
        lateness_deduction_minutes=int(r.get("lateness_deduction_minutes") or 0),
        version=int(r.get("version") or 0),
    )


def _filters(
    employee_id: int,
    start: Optional[date],
    end: Optional[date],
    has_missed_punch: Optional[bool],
    finalised_for_payroll: Optional[bool],
) -> tuple[str, list[object]]:
    clauses = ["employee_id=%s"]
    params: list[object] = [int(employee_id)]
    if start is not None:
        clauses.append("work_date >= %s")
        params.append(start)
    if end is not None:
        clauses.append("work_date <= %s")
        params.append(end)
    if has_missed_punch is not None:
        clauses.append("has_missed_punch=%s")
        params.append(1 if has_missed_punch else 0)
    if finalised_for_payroll is not None:
        clauses.append("finalised_for_payroll=%s")
        params.append(1 if finalised_for_payroll else 0)
    return " AND ".join(clauses), params


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, record_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM attendance_records WHERE record_id=%s", (int(record_id),))
            r = fetchone(cur)
            return _to_record(r) if r else None

    def get_for_employee_and_date(self, employee_id: int, work_date: date) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE employee_id=%s AND work_date=%s
                """,
                (int(employee_id), work_date),
            )
            r = fetchone(cur)
            return _to_record(r) if r else None

    def create(self, record: AttendanceRecord) -> AttendanceRecord:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO attendance_records(
                        employee_id, work_date, punches, total_work_minutes, has_missed_punch,
                        finalised_for_payroll, lateness_deduction_minutes, version
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        record.employee_id,
                        record.work_date,
                        to_json([p.to_dict() for p in record.punches]),
                        record.total_work_minutes,
                        1 if record.has_missed_punch else 0,
                        1 if record.finalised_for_payroll else 0,
                        record.lateness_deduction_minutes,
                        1,
                    ),
                )
                record_id = int(cur.lastrowid)
        except mysql.connector.IntegrityError as e:
            # uq_attendance_employee_day: another punch created the day first.
            raise ConcurrencyError("Attendance record was created concurrently") from e
        return AttendanceRecord(
            record_id=record_id,
            employee_id=record.employee_id,
            work_date=record.work_date,
            punches=record.punches,
            total_work_minutes=record.total_work_minutes,
            has_missed_punch=record.has_missed_punch,
            finalised_for_payroll=record.finalised_for_payroll,
            lateness_deduction_minutes=record.lateness_deduction_minutes,
            version=1,
        )

    def update(self, record: AttendanceRecord, *, expected_version: int) -> AttendanceRecord:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_records
                SET punches=%s, total_work_minutes=%s, has_missed_punch=%s,
                    lateness_deduction_minutes=%s, version=version+1
                WHERE record_id=%s AND version=%s
                """,
                (
                    to_json([p.to_dict() for p in record.punches]),
                    record.total_work_minutes,
                    1 if record.has_missed_punch else 0,
                    record.lateness_deduction_minutes,
                    int(record.record_id),
                    int(expected_version),
                ),
            )
            if cur.rowcount <= 0:
                raise ConcurrencyError("Attendance record was modified concurrently")
        stored = self.get_by_id(int(record.record_id))
        if not stored:
            raise ConcurrencyError("Attendance record disappeared during update")
        return stored

    def list_for_employee(
        self,
        employee_id: int,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
        has_missed_punch: Optional[bool] = None,
        finalised_for_payroll: Optional[bool] = None,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> Sequence[AttendanceRecord]:
        where, params = _filters(employee_id, start, end, has_missed_punch, finalised_for_payroll)
        paging = ""
        if limit is not None:
            paging = "LIMIT %s OFFSET %s"
            params.extend([int(limit), int(offset)])

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE {where}
                ORDER BY work_date DESC
                {paging}
                """,
                tuple(params),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def count_for_employee(
        self,
        employee_id: int,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
        has_missed_punch: Optional[bool] = None,
        finalised_for_payroll: Optional[bool] = None,
    ) -> int:
        where, params = _filters(employee_id, start, end, has_missed_punch, finalised_for_payroll)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS total FROM attendance_records WHERE {where}", tuple(params))
            r = fetchone(cur)
            return int(r["total"]) if r else 0


class MySQLImportStateRepository(ImportStateRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_marker(self, content_hash: str) -> Optional[ImportMarker]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT content_hash, source, rows_done, imported_rows, skipped_rows, completed
                FROM import_markers WHERE content_hash=%s
                """,
                (content_hash,),
            )
            r = fetchone(cur)
        if not r:
            return None
        return ImportMarker(
            content_hash=r["content_hash"],
            source=r["source"],
            rows_done=int(r["rows_done"] or 0),
            imported=int(r["imported_rows"] or 0),
            skipped=int(r["skipped_rows"] or 0),
            completed=bool(r["completed"]),
        )

    def save_marker(self, marker: ImportMarker) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO import_markers(content_hash, source, rows_done, imported_rows, skipped_rows, completed)
                VALUES(%s,%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    source=VALUES(source),
                    rows_done=VALUES(rows_done),
                    imported_rows=VALUES(imported_rows),
                    skipped_rows=VALUES(skipped_rows),
                    completed=VALUES(completed)
                """,
                (
                    marker.content_hash,
                    marker.source,
                    int(marker.rows_done),
                    int(marker.imported),
                    int(marker.skipped),
                    1 if marker.completed else 0,
                ),
            )
