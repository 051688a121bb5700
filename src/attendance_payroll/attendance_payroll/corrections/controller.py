from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.datetime_utils import parse_iso_datetime
from ..common.http import body_date, json_body, query_date
from ..common.validators import optional_int, parse_enum, require_non_empty, require_positive_int
from ..container import Container
from ..core.enums import ApprovalRole, CorrectionStatus, CorrectionType, Decision
from ..core.exceptions import ValidationError
from .model import CorrectionDecision, CorrectionSubmission


def _optional_bool(value) -> bool | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes"}


def _items(requests) -> dict:
    return {"success": True, "items": [r.to_dict() for r in requests], "count": len(requests)}


def register(app: Flask, container: Container) -> None:
    @app.route("/api/corrections", methods=["POST"], endpoint="corrections_submit")
    def submit():
        body = json_body()
        correction_type = body.get("correctionType")
        submission = CorrectionSubmission(
            employee_id=require_positive_int(body.get("employeeId"), "employeeId"),
            attendance_record_id=require_positive_int(body.get("attendanceRecordRef"), "attendanceRecordRef"),
            duration_minutes=require_positive_int(body.get("durationMinutes"), "durationMinutes"),
            reason=require_non_empty(body.get("reason"), "reason"),
            line_manager_id=optional_int(body.get("lineManagerId"), "lineManagerId"),
            correction_type=parse_enum(CorrectionType, correction_type, "correctionType") if correction_type else None,
            applies_from_date=body_date(body, "appliesFromDate"),
            leave_type_id=optional_int(body.get("leaveTypeId"), "leaveTypeId"),
        )
        created = container.correction_service.submit(submission)
        return jsonify({"success": True, "message": "Correction submitted", "correction": created.to_dict()}), 201

    @app.route("/api/corrections/<int:correction_id>/decision", methods=["POST"], endpoint="corrections_decide")
    def decide(correction_id: int):
        body = json_body()
        role = body.get("approverRole")
        decision = CorrectionDecision(
            correction_id=correction_id,
            approver_id=require_positive_int(body.get("approverId"), "approverId"),
            decision=parse_enum(Decision, body.get("decision"), "decision"),
            approver_role=parse_enum(ApprovalRole, role, "approverRole") if role else None,
            rejection_reason=body.get("rejectionReason"),
            apply_to_payroll=_optional_bool(body.get("applyToPayroll")),
        )
        updated = container.correction_service.decide(decision)
        return jsonify({
            "success": True,
            "message": f"Correction {updated.status.value.lower()}",
            "correction": updated.to_dict(),
        }), 200

    @app.route("/api/corrections/<int:correction_id>", methods=["GET"], endpoint="corrections_get")
    def get(correction_id: int):
        return jsonify({"success": True, "correction": container.correction_service.get(correction_id).to_dict()}), 200

    @app.route("/api/corrections/pending/<int:manager_id>", methods=["GET"], endpoint="corrections_pending")
    def pending(manager_id: int):
        return jsonify(_items(container.correction_service.pending_for_manager(manager_id))), 200

    @app.route("/api/corrections", methods=["GET"], endpoint="corrections_by_status")
    def by_status():
        status = parse_enum(CorrectionStatus, request.args.get("status") or CorrectionStatus.SUBMITTED.value, "status")
        return jsonify(_items(container.correction_service.by_status(status))), 200

    @app.route("/api/corrections/employee/<int:employee_id>", methods=["GET"], endpoint="corrections_history")
    def history(employee_id: int):
        requests = container.correction_service.history(employee_id, start=query_date("start"), end=query_date("end"))
        return jsonify(_items(requests)), 200

    @app.route("/api/corrections/approved-for-payroll", methods=["GET"], endpoint="corrections_approved_for_payroll")
    def approved_for_payroll():
        return jsonify(_items(container.correction_service.approved_for_payroll())), 200

    @app.route(
        "/api/corrections/<int:correction_id>/processed",
        methods=["POST"],
        endpoint="corrections_mark_processed",
    )
    def mark_processed(correction_id: int):
        updated = container.correction_service.mark_processed_by_payroll(correction_id)
        return jsonify({"success": True, "message": "Correction marked as processed", "correction": updated.to_dict()}), 200

    @app.route("/api/corrections/escalations/run", methods=["POST"], endpoint="corrections_run_escalations")
    def run_escalations():
        report = container.escalation_service.run_escalation_pass()
        return jsonify({
            "success": True,
            "message": f"Escalated {report.escalated} corrections",
            "escalated": report.escalated,
            "failed": report.failed,
        }), 200

    @app.route("/api/corrections/escalations", methods=["GET"], endpoint="corrections_escalation_candidates")
    def escalation_candidates():
        candidates = container.escalation_service.requests_needing_escalation()
        stats = container.escalation_service.stats()
        return jsonify({
            "success": True,
            "items": [
                {
                    "correctionId": c.correction_id,
                    "employeeId": c.employee_id,
                    "submittedAt": c.submitted_at.isoformat(),
                    "hoursPending": c.hours_pending,
                    "reason": c.reason,
                }
                for c in candidates
            ],
            "stats": {
                "total": stats.total,
                "pending": stats.pending,
                "escalated": stats.escalated,
                "needsEscalation": stats.needs_escalation,
            },
        }), 200

    @app.route(
        "/api/corrections/<int:correction_id>/escalate",
        methods=["POST"],
        endpoint="corrections_escalate",
    )
    def escalate(correction_id: int):
        body = json_body()
        updated = container.escalation_service.escalate_manually(
            correction_id,
            body.get("reason") or "",
            actor_id=optional_int(body.get("actorId"), "actorId"),
        )
        return jsonify({"success": True, "message": "Correction escalated", "correction": updated.to_dict()}), 200

    @app.route("/api/corrections/payroll-cutoff", methods=["POST"], endpoint="corrections_payroll_cutoff")
    def payroll_cutoff():
        body = json_body()
        cutoff_raw = str(body.get("cutoff") or "").strip()
        if not cutoff_raw:
            raise ValidationError("cutoff is required")
        result = container.escalation_service.set_payroll_cutoff(
            require_positive_int(body.get("year"), "year"),
            require_positive_int(body.get("month"), "month"),
            parse_iso_datetime(cutoff_raw),
        )
        return jsonify({
            "success": True,
            "message": f"Payroll cutoff set on {result.stamped} corrections",
            "stamped": result.stamped,
            "escalated": result.escalated,
        }), 200
