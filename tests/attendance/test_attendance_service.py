from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, time
from typing import Optional

import pytest

from src.attendance_payroll.attendance_payroll.attendance.model import AttendanceRecord, PunchCommand
from src.attendance_payroll.attendance_payroll.attendance.service import AttendanceService
from src.attendance_payroll.attendance_payroll.core.enums import PunchPolicy, PunchType, RoundingMode
from src.attendance_payroll.attendance_payroll.core.exceptions import ConcurrencyError, ConflictError, NotFoundError
from src.attendance_payroll.attendance_payroll.employees.model import Employee
from src.attendance_payroll.attendance_payroll.shifts.validator import ShiftValidator


class InMemoryEmployees:
    def __init__(self, *employees: Employee):
        self._by_id = {e.employee_id: e for e in employees}

    def get_by_id(self, employee_id: int) -> Optional[Employee]:
        return self._by_id.get(employee_id)

    def list_active(self, *, employee_ids=None):
        return list(self._by_id.values())


class NoShifts:
    def get_by_id(self, shift_id):
        return None

    def list_assignments(self, **kwargs):
        return []

    def list_holidays(self, **kwargs):
        return []


class InMemoryAttendance:
    def __init__(self):
        self.records: dict[int, AttendanceRecord] = {}
        self._id = 0

    def get_by_id(self, record_id: int) -> Optional[AttendanceRecord]:
        return self.records.get(record_id)

    def get_for_employee_and_date(self, employee_id: int, work_date: date) -> Optional[AttendanceRecord]:
        for r in self.records.values():
            if r.employee_id == employee_id and r.work_date == work_date:
                return r
        return None

    def create(self, record: AttendanceRecord) -> AttendanceRecord:
        if self.get_for_employee_and_date(record.employee_id, record.work_date):
            raise ConcurrencyError("exists")
        self._id += 1
        saved = replace(record, record_id=self._id, version=1)
        self.records[self._id] = saved
        return saved

    def update(self, record: AttendanceRecord, *, expected_version: int) -> AttendanceRecord:
        current = self.records[record.record_id]
        if current.version != expected_version:
            raise ConcurrencyError("stale")
        saved = replace(record, version=expected_version + 1)
        self.records[record.record_id] = saved
        return saved

    def set_finalised(self, record_id: int, *, finalised: bool) -> bool:
        self.records[record_id] = replace(self.records[record_id], finalised_for_payroll=finalised)
        return True

    def _filter(self, employee_id, start, end, has_missed_punch, finalised_for_payroll):
        items = [r for r in self.records.values() if r.employee_id == employee_id]
        if start:
            items = [r for r in items if r.work_date >= start]
        if end:
            items = [r for r in items if r.work_date <= end]
        if has_missed_punch is not None:
            items = [r for r in items if r.has_missed_punch == has_missed_punch]
        if finalised_for_payroll is not None:
            items = [r for r in items if r.finalised_for_payroll == finalised_for_payroll]
        return sorted(items, key=lambda r: r.work_date, reverse=True)

    def list_for_employee(
        self, employee_id, *, start=None, end=None, has_missed_punch=None, finalised_for_payroll=None, offset=0, limit=None
    ):
        items = self._filter(employee_id, start, end, has_missed_punch, finalised_for_payroll)[offset:]
        return items[:limit] if limit else items

    def count_for_employee(self, employee_id, *, start=None, end=None, has_missed_punch=None, finalised_for_payroll=None):
        return len(self._filter(employee_id, start, end, has_missed_punch, finalised_for_payroll))


class FlakyAttendance(InMemoryAttendance):
    """Fails the first update with a version conflict."""

    def __init__(self):
        super().__init__()
        self.update_calls = 0

    def update(self, record, *, expected_version):
        self.update_calls += 1
        if self.update_calls == 1:
            raise ConcurrencyError("stale")
        return super().update(record, expected_version=expected_version)


def _employee() -> Employee:
    return Employee(employee_id=1, full_name="An Nguyen", role="Engineer", department_id=None, position_id=None, bank_name="VCB")


def _service(repo=None) -> tuple[AttendanceService, InMemoryAttendance]:
    repo = repo or InMemoryAttendance()
    service = AttendanceService(repo, InMemoryEmployees(_employee()), ShiftValidator(NoShifts()))
    return service, repo


def _punch(kind: str, at: datetime, **kwargs) -> PunchCommand:
    return PunchCommand(employee_id=1, punch_type=PunchType(kind), timestamp=at, **kwargs)


def test_in_then_out_pairs_into_total():
    service, _ = _service()

    first = service.record_punch(_punch("IN", datetime(2025, 3, 3, 8, 0)))
    assert first.record.has_missed_punch is True
    assert first.record.total_work_minutes == 0

    second = service.record_punch(_punch("OUT", datetime(2025, 3, 3, 12, 0)))
    assert second.record.record_id == first.record.record_id
    assert second.record.total_work_minutes == 240
    assert second.record.has_missed_punch is False
    assert len(second.record.punches) == 2


def test_out_of_order_punches_are_sorted():
    service, _ = _service()

    lone_out = service.record_punch(_punch("OUT", datetime(2025, 3, 3, 12, 0)))
    assert lone_out.record.has_missed_punch is True
    assert lone_out.record.total_work_minutes == 0

    result = service.record_punch(_punch("IN", datetime(2025, 3, 3, 8, 0)))

    assert result.record.has_missed_punch is False
    assert [p.punch_type for p in result.record.punches] == [PunchType.IN, PunchType.OUT]
    assert result.record.total_work_minutes == 240


def test_unknown_employee_is_not_found():
    service, repo = _service()

    with pytest.raises(NotFoundError):
        service.record_punch(PunchCommand(employee_id=99, punch_type=PunchType.IN, timestamp=datetime(2025, 3, 3, 8, 0)))
    assert repo.records == {}


def test_timestamp_is_rounded_before_storing():
    service, _ = _service()

    result = service.record_punch(
        _punch("IN", datetime(2025, 3, 3, 8, 7), rounding_mode=RoundingMode.CEIL, interval_minutes=15)
    )

    assert result.record.punches[0].timestamp == datetime(2025, 3, 3, 8, 15)


def test_lateness_deduction_is_pending_then_applied():
    service, _ = _service()
    late_in = _punch(
        "IN",
        datetime(2025, 3, 3, 9, 20),
        expected_check_in=time(9, 0),
        grace_period_minutes=5,
        lateness_threshold_minutes=15,
        automatic_deduction_minutes=30,
    )

    first = service.record_punch(late_in)
    assert first.lateness.is_late is True
    assert first.record.total_work_minutes == -30
    assert first.record.pending_penalty_minutes == 30

    second = service.record_punch(_punch("OUT", datetime(2025, 3, 3, 12, 20)))
    assert second.record.total_work_minutes == 180 - 30
    assert second.record.lateness_deduction_minutes == 30


def test_unpaired_punch_after_late_in_floors_total_at_zero():
    service, _ = _service()
    late_in = _punch(
        "IN",
        datetime(2025, 3, 3, 9, 20),
        expected_check_in=time(9, 0),
        grace_period_minutes=5,
        lateness_threshold_minutes=15,
        automatic_deduction_minutes=30,
    )
    assert service.record_punch(late_in).record.total_work_minutes == -30

    second_in = service.record_punch(_punch("IN", datetime(2025, 3, 3, 10, 0)))
    assert second_in.record.total_work_minutes == 0
    assert second_in.record.has_missed_punch is True
    assert second_in.record.lateness_deduction_minutes == 30

    out = service.record_punch(_punch("OUT", datetime(2025, 3, 3, 14, 0)))
    assert out.record.total_work_minutes == 240 - 30


def test_command_policy_overrides_default():
    service, _ = _service()

    service.record_punch(_punch("IN", datetime(2025, 3, 3, 8, 1), policy=PunchPolicy.FIRST_LAST))
    service.record_punch(_punch("OUT", datetime(2025, 3, 3, 12, 0), policy=PunchPolicy.FIRST_LAST))
    service.record_punch(_punch("IN", datetime(2025, 3, 3, 13, 0), policy=PunchPolicy.FIRST_LAST))
    result = service.record_punch(_punch("OUT", datetime(2025, 3, 3, 17, 30), policy=PunchPolicy.FIRST_LAST))

    assert result.policy == PunchPolicy.FIRST_LAST
    assert result.record.total_work_minutes == 569
    assert len(result.record.punches) == 2


def test_finalised_record_rejects_punches():
    service, repo = _service()
    created = service.record_punch(_punch("IN", datetime(2025, 3, 3, 8, 0))).record
    repo.set_finalised(created.record_id, finalised=True)

    with pytest.raises(ConflictError):
        service.record_punch(_punch("OUT", datetime(2025, 3, 3, 12, 0)))


def test_version_conflict_is_retried():
    service, repo = _service(FlakyAttendance())
    service.record_punch(_punch("IN", datetime(2025, 3, 3, 8, 0)))

    result = service.record_punch(_punch("OUT", datetime(2025, 3, 3, 12, 0)))

    assert repo.update_calls == 2
    assert result.record.total_work_minutes == 240


def test_list_records_clamps_page_size():
    service, _ = _service()
    service.record_punch(_punch("IN", datetime(2025, 3, 3, 8, 0)))
    service.record_punch(_punch("IN", datetime(2025, 3, 4, 8, 0)))

    page = service.list_records(1, page=0, limit=500)

    assert page.page == 1
    assert page.limit == 100
    assert page.total == 2
    assert page.pages == 1


def test_summary_counts_days_with_work():
    service, _ = _service()
    service.record_punch(_punch("IN", datetime(2025, 3, 3, 8, 0)))
    service.record_punch(_punch("OUT", datetime(2025, 3, 3, 16, 0)))
    service.record_punch(_punch("IN", datetime(2025, 3, 4, 8, 0)))
    service.record_punch(_punch("OUT", datetime(2025, 3, 4, 12, 0)))
    service.record_punch(_punch("IN", datetime(2025, 3, 5, 8, 0)))

    summary = service.attendance_summary(1, start=date(2025, 3, 1), end=date(2025, 3, 31))

    assert summary.days_present == 2
    assert summary.total_work_minutes == 720
    assert summary.average_work_minutes == 360.0


def test_payroll_attendance_reads_only_finalised_records_of_the_month():
    service, repo = _service()
    march = service.record_punch(_punch("IN", datetime(2025, 3, 3, 8, 0)))
    service.record_punch(_punch("OUT", datetime(2025, 3, 3, 16, 0)))
    service.record_punch(_punch("IN", datetime(2025, 3, 4, 8, 0)))
    service.record_punch(_punch("OUT", datetime(2025, 3, 4, 12, 0)))
    april = service.record_punch(_punch("IN", datetime(2025, 4, 1, 8, 0)))
    repo.set_finalised(march.record.record_id, finalised=True)
    repo.set_finalised(april.record.record_id, finalised=True)

    agg = service.payroll_attendance(1, date(2025, 3, 15))

    assert agg.days_present == 1
    assert agg.total_worked_minutes == 480
    assert agg.total_worked_hours == 8.0
    assert agg.requires_review is False
