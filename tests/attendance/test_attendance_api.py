from __future__ import annotations

from types import SimpleNamespace

import pytest
from flask import Flask

from src.attendance_payroll.attendance_payroll.attendance.controller import register
from src.attendance_payroll.attendance_payroll.attendance.importer import CsvPunchImporter
from src.attendance_payroll.attendance_payroll.attendance.service import AttendanceService
from src.attendance_payroll.attendance_payroll.common.http import register_error_handlers
from src.attendance_payroll.attendance_payroll.employees.model import Employee
from src.attendance_payroll.attendance_payroll.shifts.validator import ShiftValidator

from test_attendance_service import InMemoryAttendance, InMemoryEmployees, NoShifts
from test_csv_importer import InMemoryImportState


@pytest.fixture()
def client():
    employee = Employee(employee_id=1, full_name="An Nguyen", role=None, department_id=None, position_id=None, bank_name=None)
    service = AttendanceService(InMemoryAttendance(), InMemoryEmployees(employee), ShiftValidator(NoShifts()))
    container = SimpleNamespace(
        attendance_service=service,
        punch_importer=CsvPunchImporter(service, InMemoryImportState()),
    )
    app = Flask(__name__)
    app.config["TESTING"] = True
    register_error_handlers(app)
    register(app, container)
    return app.test_client()


def test_record_punch_returns_record(client):
    client.post("/api/attendance/punches", json={"employeeId": 1, "type": "IN", "time": "2025-03-03T08:00:00"})
    resp = client.post("/api/attendance/punches", json={"employeeId": 1, "type": "OUT", "time": "2025-03-03T12:00:00"})

    assert resp.status_code == 201
    body = resp.get_json()
    assert body["success"] is True
    assert body["record"]["totalWorkMinutes"] == 240
    assert body["record"]["hasMissedPunch"] is False


def test_missing_fields_is_bad_request(client):
    resp = client.post("/api/attendance/punches", json={"type": "IN"})

    assert resp.status_code == 400
    assert resp.get_json() == {"success": False, "message": "employeeId and type are required"}


def test_unknown_employee_is_not_found(client):
    resp = client.post("/api/attendance/punches", json={"employeeId": 9, "type": "IN"})

    assert resp.status_code == 404
    assert resp.get_json()["success"] is False


def test_list_records_with_filters(client):
    client.post("/api/attendance/punches", json={"employeeId": 1, "type": "IN", "time": "2025-03-03T08:00:00"})

    resp = client.get("/api/attendance/1?start=2025-03-01&end=2025-03-31&has_missed_punch=true")

    assert resp.status_code == 200
    assert resp.get_json()["total"] == 1


def test_bad_date_filter_is_bad_request(client):
    resp = client.get("/api/attendance/1?start=03/01/2025")

    assert resp.status_code == 400


def test_import_from_request_body(client):
    text = "employeeId,type,time\n1,IN,2025-03-03T08:00:00\n1,OUT,2025-03-03T17:00:00\n"

    resp = client.post("/api/attendance/import", data=text, content_type="text/csv")

    body = resp.get_json()
    assert resp.status_code == 200
    assert body["imported"] == 2
    assert body["alreadyImported"] is False
