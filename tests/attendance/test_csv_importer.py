from __future__ import annotations

from typing import Optional

import pytest

from src.attendance_payroll.attendance_payroll.attendance.importer import CSV_COLUMNS, CsvPunchImporter, command_from_fields
from src.attendance_payroll.attendance_payroll.attendance.model import ImportMarker
from src.attendance_payroll.attendance_payroll.attendance.service import AttendanceService
from src.attendance_payroll.attendance_payroll.core.enums import PunchPolicy, PunchType, RoundingMode
from src.attendance_payroll.attendance_payroll.employees.model import Employee
from src.attendance_payroll.attendance_payroll.shifts.validator import ShiftValidator

from test_attendance_service import InMemoryAttendance, InMemoryEmployees, NoShifts

HEADER = ",".join(CSV_COLUMNS)


class InMemoryImportState:
    def __init__(self):
        self.markers: dict[str, ImportMarker] = {}

    def get_marker(self, content_hash: str) -> Optional[ImportMarker]:
        return self.markers.get(content_hash)

    def save_marker(self, marker: ImportMarker) -> None:
        self.markers[marker.content_hash] = marker


class OutageAttendance(InMemoryAttendance):
    """Raises a storage error on the given create() call, once."""

    def __init__(self, fail_on_create: int):
        super().__init__()
        self._fail_on_create = fail_on_create
        self.create_calls = 0

    def create(self, record):
        self.create_calls += 1
        if self.create_calls == self._fail_on_create:
            raise RuntimeError("MySQL server has gone away")
        return super().create(record)


def _importer(attendance=None):
    employee = Employee(employee_id=1, full_name="An Nguyen", role=None, department_id=None, position_id=None, bank_name=None)
    attendance = attendance or InMemoryAttendance()
    service = AttendanceService(attendance, InMemoryEmployees(employee), ShiftValidator(NoShifts()))
    state = InMemoryImportState()
    return CsvPunchImporter(service, state), attendance, state


def test_command_from_fields_parses_optional_columns():
    cmd = command_from_fields(
        {
            "employeeId": "1",
            "type": "IN",
            "time": "2025-03-03T08:07:00Z",
            "policy": "FIRST_LAST",
            "roundMode": "floor",
            "intervalMinutes": "15",
            "terminalId": "T-1",
        }
    )

    assert cmd.punch_type == PunchType.IN
    assert cmd.policy == PunchPolicy.FIRST_LAST
    assert cmd.rounding_mode == RoundingMode.FLOOR
    assert cmd.interval_minutes == 15
    assert cmd.timestamp.hour == 8
    assert cmd.terminal_id == "T-1"
    assert cmd.location is None


def test_import_counts_imported_and_skipped_rows():
    importer, attendance, _ = _importer()
    text = "\n".join(
        [
            HEADER,
            "1,IN,2025-03-03T08:00:00,,,,,,,,,,",
            "1,OUT,2025-03-03T12:00:00,,,,,,,,,,",
            ",IN,2025-03-03T08:00:00,,,,,,,,,,",
            "1,SIDEWAYS,2025-03-03T08:00:00,,,,,,,,,,",
            "99,IN,2025-03-03T08:00:00,,,,,,,,,,",
        ]
    )

    result = importer.import_text(text, source="march.csv")

    assert result.imported == 2
    assert result.skipped == 3
    assert len(result.errors) == 2
    record = attendance.get_for_employee_and_date(1, attendance.records[1].work_date)
    assert record.total_work_minutes == 240


def test_same_content_is_imported_once():
    importer, attendance, state = _importer()
    text = HEADER + "\n1,IN,2025-03-03T08:00:00,,,,,,,,,,\n"

    first = importer.import_text(text)
    second = importer.import_text(text)

    assert first.imported == 1
    assert second.already_imported is True
    assert second.imported == 0
    assert len(state.markers) == 1
    assert len(attendance.records[1].punches) == 1
    assert next(iter(state.markers.values())).completed is True


def test_interrupted_import_resumes_without_duplicating_rows():
    attendance = OutageAttendance(fail_on_create=2)
    importer, _, state = _importer(attendance)
    text = "\n".join(
        [
            HEADER,
            "1,IN,2025-03-03T08:00:00,,,,,,,,,,",
            "1,OUT,2025-03-03T12:00:00,,,,,,,,,,",
            "1,IN,2025-03-04T08:00:00,,,,,,,,,,",
            "1,OUT,2025-03-04T12:00:00,,,,,,,,,,",
        ]
    )

    with pytest.raises(RuntimeError):
        importer.import_text(text, source="march.csv")

    marker = next(iter(state.markers.values()))
    assert marker.completed is False
    assert marker.rows_done == 2
    assert marker.imported == 2

    result = importer.import_text(text, source="march.csv")

    assert result.already_imported is False
    assert result.imported == 4
    assert result.skipped == 0
    assert [len(r.punches) for r in attendance.records.values()] == [2, 2]
    assert [r.total_work_minutes for r in attendance.records.values()] == [240, 240]
    assert next(iter(state.markers.values())).completed is True
