from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date, datetime, time, timedelta
from typing import Optional

from ..common.datetime_utils import month_range, now_local, round_to_interval
from ..common.locks import KeyedLock
from ..core.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from ..core.enums import PunchPolicy, PunchType
from ..core.exceptions import ConcurrencyError, ConflictError, NotFoundError, ValidationError
from ..employees.repository import EmployeeRepository
from ..shifts.validator import ShiftValidator
from .lateness import NOT_LATE, LatenessResult, apply_deduction, calculate_lateness
from .model import (
    AttendanceRecord,
    AttendanceSummary,
    PayrollAttendance,
    Punch,
    PunchCommand,
    RecordPage,
)
from .policies.factory import PunchPolicyFactory
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PunchResult:
    record: AttendanceRecord
    lateness: LatenessResult
    policy: PunchPolicy


class AttendanceService:
    """Punch reconciliation: validate, round, append and recompute a day's record."""

    def __init__(
        self,
        attendance: AttendanceRepository,
        employees: EmployeeRepository,
        validator: ShiftValidator,
        *,
        policy_factory: PunchPolicyFactory | None = None,
        default_policy: PunchPolicy = PunchPolicy.MULTIPLE,
        locks: KeyedLock | None = None,
        max_retries: int = 3,
    ):
        self._attendance = attendance
        self._employees = employees
        self._validator = validator
        self._policies = policy_factory or PunchPolicyFactory()
        self._default_policy = default_policy
        self._locks = locks or KeyedLock()
        self._max_retries = max(1, int(max_retries))

    def record_punch(self, cmd: PunchCommand, *, check_holidays: bool = True) -> PunchResult:
        employee = self._employees.get_by_id(cmd.employee_id)
        if not employee:
            raise NotFoundError(f"Employee {cmd.employee_id} not found")

        at = cmd.timestamp or now_local()
        at = round_to_interval(at, cmd.rounding_mode, cmd.interval_minutes)

        window = self._validator.validate(employee, cmd.punch_type, at, check_holidays=check_holidays)

        policy = cmd.policy or (window.shift.punch_policy if window else self._default_policy)
        lateness = self._lateness(cmd, at)
        work_date = window.start.date() if window else at.date()
        punch = Punch(
            punch_type=cmd.punch_type,
            timestamp=at,
            location=cmd.location,
            terminal_id=cmd.terminal_id,
            device_id=cmd.device_id,
        )

        with self._locks.hold((cmd.employee_id, work_date)):
            record = self._write_with_retry(cmd.employee_id, work_date, punch, policy, lateness)

        logger.info(
            "punch recorded employee=%s date=%s type=%s total=%s missed=%s",
            cmd.employee_id,
            work_date,
            cmd.punch_type.value,
            record.total_work_minutes,
            record.has_missed_punch,
        )
        return PunchResult(record=record, lateness=lateness, policy=policy)

    def _lateness(self, cmd: PunchCommand, at: datetime) -> LatenessResult:
        if cmd.punch_type != PunchType.IN or cmd.expected_check_in is None or cmd.grace_period_minutes is None:
            return NOT_LATE
        expected = cmd.expected_check_in
        if isinstance(expected, time):
            expected = datetime.combine(at.date(), expected)
        return calculate_lateness(
            at,
            expected,
            grace_minutes=int(cmd.grace_period_minutes),
            threshold_minutes=int(cmd.lateness_threshold_minutes or 0),
            automatic_deduction_minutes=int(cmd.automatic_deduction_minutes or 0),
        )

    def _write_with_retry(
        self,
        employee_id: int,
        work_date: date,
        punch: Punch,
        policy: PunchPolicy,
        lateness: LatenessResult,
    ) -> AttendanceRecord:
        attempt = 0
        while True:
            attempt += 1
            existing = self._attendance.get_for_employee_and_date(employee_id, work_date)
            updated = self._reconcile(existing, employee_id, work_date, punch, policy, lateness)
            try:
                if existing is None:
                    return self._attendance.create(updated)
                return self._attendance.update(updated, expected_version=existing.version)
            except ConcurrencyError:
                if attempt >= self._max_retries:
                    raise
                logger.warning(
                    "attendance write conflict employee=%s date=%s attempt=%s", employee_id, work_date, attempt
                )

    def _reconcile(
        self,
        existing: Optional[AttendanceRecord],
        employee_id: int,
        work_date: date,
        punch: Punch,
        policy: PunchPolicy,
        lateness: LatenessResult,
    ) -> AttendanceRecord:
        if existing is not None and existing.finalised_for_payroll:
            raise ConflictError("Attendance record is finalised for payroll")

        previous = existing.punches if existing else ()
        punches = sorted((*previous, punch), key=lambda p: p.timestamp)
        outcome = self._policies.for_policy(policy).reconcile(punches)

        carried = 0
        if existing is not None:
            carried = existing.lateness_deduction_minutes or existing.pending_penalty_minutes
        deduction = lateness.deducted_minutes if lateness.deducted_minutes > 0 else carried

        base = existing or AttendanceRecord(record_id=None, employee_id=employee_id, work_date=work_date)
        return replace(
            base,
            punches=outcome.punches,
            total_work_minutes=apply_deduction(outcome.total_minutes, deduction, new_record=existing is None),
            has_missed_punch=outcome.has_missed_punch,
            lateness_deduction_minutes=deduction,
        )

    def list_records(
        self,
        employee_id: int,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
        has_missed_punch: Optional[bool] = None,
        finalised_for_payroll: Optional[bool] = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> RecordPage:
        if start and end and end < start:
            raise ValidationError("end must be on or after start")
        page = max(1, int(page))
        limit = min(MAX_PAGE_SIZE, max(1, int(limit)))
        filters = dict(
            start=start,
            end=end,
            has_missed_punch=has_missed_punch,
            finalised_for_payroll=finalised_for_payroll,
        )
        items = self._attendance.list_for_employee(employee_id, offset=(page - 1) * limit, limit=limit, **filters)
        total = self._attendance.count_for_employee(employee_id, **filters)
        return RecordPage(items=list(items), total=total, page=page, limit=limit)

    def attendance_summary(self, employee_id: int, *, start: date, end: date) -> AttendanceSummary:
        records = self._attendance.list_for_employee(employee_id, start=start, end=end)
        worked = [r.worked_minutes for r in records]
        days_present = sum(1 for m in worked if m > 0)
        total = sum(worked)
        return AttendanceSummary(
            employee_id=employee_id,
            start=start,
            end=end,
            days_present=days_present,
            total_work_minutes=total,
            average_work_minutes=round(total / days_present, 2) if days_present else 0.0,
        )

    def payroll_attendance(self, employee_id: int, period: date) -> PayrollAttendance:
        """Aggregate the finalised records of the period's calendar month."""
        start, end = month_range(period)
        records = self._attendance.list_for_employee(
            employee_id,
            start=start.date(),
            end=(end - timedelta(days=1)).date(),
            finalised_for_payroll=True,
        )
        return PayrollAttendance(
            employee_id=employee_id,
            year=period.year,
            month=period.month,
            total_worked_minutes=sum(r.worked_minutes for r in records),
            days_present=len(records),
            days_with_missed_punch=sum(1 for r in records if r.has_missed_punch),
        )
