from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

from ..core.enums import CorrectionStatus, CorrectionType
from ..core.exceptions import NotFoundError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, from_json, to_json
from .model import ApprovalEntry, CorrectionRequest, PermissionDurationConfig
from .repository import CorrectionRepository, PermissionConfigRepository

_COLUMNS = """
    correction_id, employee_id, attendance_record_id, duration_minutes, correction_type, reason,
    line_manager_id, status, approval_flow, applied_to_payroll, applies_from_date, leave_type_id,
    rejection_reason, created_at, escalated_at, escalation_reason, payroll_cutoff_at, payroll_processed_at
"""


def _to_request(r: dict) -> CorrectionRequest:
    return CorrectionRequest(
        correction_id=int(r["correction_id"]),
        employee_id=int(r["employee_id"]),
        attendance_record_id=int(r["attendance_record_id"]),
        duration_minutes=int(r["duration_minutes"]),
        correction_type=CorrectionType(r["correction_type"]),
        reason=r.get("reason") or "",
        line_manager_id=r.get("line_manager_id"),
        status=CorrectionStatus(r["status"]),
        approval_flow=tuple(ApprovalEntry.from_dict(e) for e in from_json(r.get("approval_flow"), [])),
        applied_to_payroll=bool(r.get("applied_to_payroll")),
        applies_from_date=r.get("applies_from_date"),
        leave_type_id=r.get("leave_type_id"),
        rejection_reason=r.get("rejection_reason"),
        created_at=r.get("created_at"),
        escalated_at=r.get("escalated_at"),
        escalation_reason=r.get("escalation_reason"),
        payroll_cutoff_at=r.get("payroll_cutoff_at"),
        payroll_processed_at=r.get("payroll_processed_at"),
    )


class MySQLCorrectionRepository(CorrectionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _select(self, where: str, params: tuple, order: str = "created_at DESC") -> list[CorrectionRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM correction_requests
                WHERE {where}
                ORDER BY {order}
                """,
                params,
            )
            return [_to_request(r) for r in fetchall(cur)]

    def create(self, request: CorrectionRequest) -> CorrectionRequest:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO correction_requests(
                    employee_id, attendance_record_id, duration_minutes, correction_type, reason,
                    line_manager_id, status, approval_flow, applied_to_payroll, applies_from_date,
                    leave_type_id, created_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    request.employee_id,
                    request.attendance_record_id,
                    request.duration_minutes,
                    request.correction_type.value,
                    request.reason,
                    request.line_manager_id,
                    request.status.value,
                    to_json([e.to_dict() for e in request.approval_flow]),
                    1 if request.applied_to_payroll else 0,
                    request.applies_from_date,
                    request.leave_type_id,
                    request.created_at,
                ),
            )
            correction_id = int(cur.lastrowid)
        created = self.get_by_id(correction_id)
        if not created:
            raise RuntimeError(f"Correction {correction_id} missing after insert")
        return created

    def get_by_id(self, correction_id: int) -> Optional[CorrectionRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM correction_requests WHERE correction_id=%s", (int(correction_id),))
            r = fetchone(cur)
            return _to_request(r) if r else None

    def apply_decision(
        self,
        correction_id: int,
        *,
        status: CorrectionStatus,
        approval_flow: Sequence[ApprovalEntry],
        applied_to_payroll: bool,
        rejection_reason: Optional[str],
        finalise_record_id: Optional[int] = None,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE correction_requests
                SET status=%s, approval_flow=%s, applied_to_payroll=%s, rejection_reason=%s
                WHERE correction_id=%s AND status=%s
                """,
                (
                    status.value,
                    to_json([e.to_dict() for e in approval_flow]),
                    1 if applied_to_payroll else 0,
                    rejection_reason,
                    int(correction_id),
                    CorrectionStatus.SUBMITTED.value,
                ),
            )
            if cur.rowcount == 0:
                return False
            if finalise_record_id is not None:
                cur.execute(
                    """
                    UPDATE attendance_records
                    SET finalised_for_payroll=1, version=version+1
                    WHERE record_id=%s
                    """,
                    (int(finalise_record_id),),
                )
                if cur.rowcount == 0:
                    raise NotFoundError(f"Attendance record {finalise_record_id} not found")
            return True

    def list_by_status(self, status: CorrectionStatus) -> Sequence[CorrectionRequest]:
        return self._select("status=%s", (status.value,), order="created_at ASC")

    def list_pending_for_manager(self, manager_id: int) -> Sequence[CorrectionRequest]:
        return self._select(
            "line_manager_id=%s AND status=%s",
            (int(manager_id), CorrectionStatus.SUBMITTED.value),
        )

    def list_for_employee(
        self,
        employee_id: int,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Sequence[CorrectionRequest]:
        clauses = ["employee_id=%s"]
        params: list[object] = [int(employee_id)]
        if start is not None:
            clauses.append("DATE(created_at) >= %s")
            params.append(start)
        if end is not None:
            clauses.append("DATE(created_at) <= %s")
            params.append(end)
        return self._select(" AND ".join(clauses), tuple(params))

    def list_approved_for_payroll(self) -> Sequence[CorrectionRequest]:
        return self._select(
            "status=%s AND applied_to_payroll=1 AND payroll_processed_at IS NULL",
            (CorrectionStatus.APPROVED.value,),
            order="created_at ASC",
        )

    def mark_processed(self, correction_id: int, *, processed_at: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE correction_requests
                SET payroll_processed_at=%s
                WHERE correction_id=%s AND payroll_processed_at IS NULL
                """,
                (processed_at, int(correction_id)),
            )
            return cur.rowcount > 0

    def set_escalation(
        self,
        correction_id: int,
        *,
        escalated_at: datetime,
        reason: str,
        only_if_unescalated: bool = True,
    ) -> bool:
        guard = " AND escalated_at IS NULL" if only_if_unescalated else ""
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                UPDATE correction_requests
                SET escalated_at=%s, escalation_reason=%s
                WHERE correction_id=%s AND status=%s{guard}
                """,
                (escalated_at, reason, int(correction_id), CorrectionStatus.SUBMITTED.value),
            )
            return cur.rowcount > 0

    def set_payroll_cutoff(self, *, created_from: datetime, created_to: datetime, cutoff: datetime) -> Sequence[int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT correction_id
                FROM correction_requests
                WHERE status=%s AND created_at >= %s AND created_at < %s
                """,
                (CorrectionStatus.SUBMITTED.value, created_from, created_to),
            )
            ids = [int(r["correction_id"]) for r in fetchall(cur)]
            if ids:
                placeholders = ",".join(["%s"] * len(ids))
                cur.execute(
                    f"""
                    UPDATE correction_requests
                    SET payroll_cutoff_at=%s
                    WHERE correction_id IN ({placeholders}) AND status=%s
                    """,
                    (cutoff, *ids, CorrectionStatus.SUBMITTED.value),
                )
            return ids


class MySQLPermissionConfigRepository(PermissionConfigRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_for_leave_type(self, leave_type_id: Optional[int]) -> Optional[PermissionDurationConfig]:
        where = "leave_type_id IS NULL" if leave_type_id is None else "leave_type_id=%s"
        params = () if leave_type_id is None else (int(leave_type_id),)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT leave_type_id, max_consecutive_days, min_notice_days, requires_manager_approval,
                       affects_payroll, max_requests_per_month
                FROM permission_duration_configs
                WHERE {where}
                ORDER BY config_id DESC
                LIMIT 1
                """,
                params,
            )
            r = fetchone(cur)
            if not r:
                return None
            return PermissionDurationConfig(
                leave_type_id=r.get("leave_type_id"),
                max_consecutive_days=r.get("max_consecutive_days"),
                min_notice_days=int(r.get("min_notice_days") or 0),
                requires_manager_approval=bool(r.get("requires_manager_approval", True)),
                affects_payroll=bool(r.get("affects_payroll", True)),
                max_requests_per_month=int(r.get("max_requests_per_month") or 12),
            )
