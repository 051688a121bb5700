from __future__ import annotations

from flask import Flask, current_app, jsonify, request

from ..common.http import json_body, query_bool, query_date
from ..common.validators import optional_int
from ..core.exceptions import ValidationError
from ..container import Container
from .importer import command_from_fields


def register(app: Flask, container: Container) -> None:
    @app.route("/api/attendance/punches", methods=["POST"], endpoint="attendance_record_punch")
    def record_punch():
        body = json_body()
        if not str(body.get("employeeId") or "").strip() or not str(body.get("type") or "").strip():
            raise ValidationError("employeeId and type are required")

        result = container.attendance_service.record_punch(command_from_fields(body))
        lateness = result.lateness
        return jsonify({
            "success": True,
            "message": "Punch recorded",
            "record": result.record.to_dict(),
            "policy": result.policy.value,
            "lateness": {
                "isLate": lateness.is_late,
                "minutesLate": lateness.minutes_late,
                "gracePeriodApplied": lateness.grace_applied,
                "deductedMinutes": lateness.deducted_minutes,
            },
        }), 201

    @app.route("/api/attendance/<int:employee_id>", methods=["GET"], endpoint="attendance_records")
    def list_records(employee_id: int):
        page = container.attendance_service.list_records(
            employee_id,
            start=query_date("start"),
            end=query_date("end"),
            has_missed_punch=query_bool("has_missed_punch"),
            finalised_for_payroll=query_bool("finalised"),
            page=optional_int(request.args.get("page"), "page") or 1,
            limit=optional_int(request.args.get("limit"), "limit") or 20,
        )
        return jsonify({
            "success": True,
            "items": [r.to_dict() for r in page.items],
            "total": page.total,
            "page": page.page,
            "limit": page.limit,
            "pages": page.pages,
        }), 200

    @app.route("/api/attendance/<int:employee_id>/summary", methods=["GET"], endpoint="attendance_summary")
    def summary(employee_id: int):
        start = query_date("start")
        end = query_date("end")
        if not start or not end:
            raise ValidationError("start and end are required")
        s = container.attendance_service.attendance_summary(employee_id, start=start, end=end)
        return jsonify({
            "success": True,
            "employeeId": s.employee_id,
            "start": s.start.isoformat(),
            "end": s.end.isoformat(),
            "daysPresent": s.days_present,
            "totalWorkMinutes": s.total_work_minutes,
            "averageWorkMinutes": s.average_work_minutes,
        }), 200

    @app.route("/api/attendance/import", methods=["POST"], endpoint="attendance_import")
    def import_csv():
        upload = request.files.get("file")
        if upload is not None:
            text = upload.read().decode("utf-8-sig")
            result = container.punch_importer.import_text(text, source=upload.filename or "upload")
        elif request.get_data(cache=True):
            result = container.punch_importer.import_text(request.get_data(as_text=True), source="request-body")
        else:
            path = current_app.config.get("IMPORT_CSV_PATH")
            if not path:
                raise ValidationError("No CSV content given and IMPORT_CSV_PATH is not configured")
            result = container.punch_importer.import_file(path)

        if result.already_imported:
            message = "CSV content was already imported"
        else:
            message = f"Imported {result.imported} punches, skipped {result.skipped} rows"
        return jsonify({
            "success": True,
            "message": message,
            "imported": result.imported,
            "skipped": result.skipped,
            "alreadyImported": result.already_imported,
            "errors": result.errors,
        }), 200
