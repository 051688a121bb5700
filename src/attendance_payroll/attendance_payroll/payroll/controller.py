from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.http import body_date, json_body, query_bool
from ..common.validators import optional_int, require_non_empty, require_positive_int
from ..container import Container
from ..core.exceptions import NotFoundError, ValidationError


def register(app: Flask, container: Container) -> None:
    runs = container.payroll_run_service

    @app.route("/api/payroll/drafts", methods=["POST"], endpoint="payroll_generate_draft")
    def generate_draft():
        body = json_body()
        employee_ids = body.get("employeeIds") or None
        if employee_ids is not None:
            if not isinstance(employee_ids, list):
                raise ValidationError("employeeIds must be a list")
            employee_ids = [require_positive_int(x, "employeeIds") for x in employee_ids]

        result = runs.generate_draft(
            body_date(body, "payrollPeriod", required=True),
            require_non_empty(body.get("entity"), "entity"),
            employee_ids,
        )
        payload = result.to_dict()
        if result.run is None:
            return jsonify({"success": False, **payload}), 200
        return jsonify({"success": True, "message": "Payroll draft generated", **payload}), 201

    @app.route("/api/payroll/runs", methods=["GET"], endpoint="payroll_runs")
    def list_runs():
        items = [r.to_dict() for r in runs.list_runs()]
        return jsonify({"success": True, "items": items, "count": len(items)}), 200

    @app.route("/api/payroll/runs/<run_id>", methods=["GET"], endpoint="payroll_run")
    def get_run(run_id: str):
        return jsonify({"success": True, "run": runs.get_run(run_id).to_dict()}), 200

    @app.route("/api/payroll/runs/<run_id>/employees", methods=["GET"], endpoint="payroll_run_employees")
    def run_employees(run_id: str):
        rows = runs.run_employees(run_id, only_exceptions=bool(query_bool("exceptions_only")))
        return jsonify({"success": True, "items": [r.to_dict() for r in rows], "count": len(rows)}), 200

    @app.route("/api/payroll/runs/<run_id>/exceptions", methods=["GET"], endpoint="payroll_run_exceptions")
    def run_exceptions(run_id: str):
        employee_id = optional_int(request.args.get("employee_id"), "employee_id")
        items = [e.to_dict() for e in runs.list_exceptions(run_id, employee_id=employee_id)]
        return jsonify({"success": True, "items": items, "count": len(items)}), 200

    @app.route(
        "/api/payroll/runs/<run_id>/exceptions/<int:employee_id>/clear",
        methods=["POST"],
        endpoint="payroll_clear_exceptions",
    )
    def clear_exceptions(run_id: str, employee_id: int):
        run = runs.clear_exceptions(run_id, employee_id)
        return jsonify({"success": True, "message": "Exceptions cleared", "run": run.to_dict()}), 200

    @app.route("/api/payroll/runs/<run_id>/<phase>", methods=["POST"], endpoint="payroll_run_phase")
    def run_phase(run_id: str, phase: str):
        body = json_body()
        if phase == "publish":
            run = runs.publish(run_id)
        elif phase == "manager-approval":
            run = runs.approve_by_manager(run_id, require_positive_int(body.get("managerId"), "managerId"))
        elif phase == "finance-approval":
            run = runs.approve_by_finance(run_id, require_positive_int(body.get("financeId"), "financeId"))
        elif phase == "reject":
            run = runs.reject(run_id, body.get("reason") or "")
        elif phase == "freeze":
            run = runs.freeze(run_id)
        elif phase == "unfreeze":
            run = runs.unfreeze(run_id, body.get("reason") or "")
        else:
            raise NotFoundError(f"Unknown payroll phase: {phase}")
        return jsonify({"success": True, "message": f"Payroll run {run.status.value.lower()}", "run": run.to_dict()}), 200

    @app.route(
        "/api/payroll/employees/<int:employee_id>/salary",
        methods=["GET"],
        endpoint="payroll_employee_salary",
    )
    def employee_salary(employee_id: int):
        period = body_date(dict(request.args), "period", required=True)
        breakdown = container.payroll_calculation_service.calculate_employee_salary(employee_id, period)
        return jsonify({"success": True, "salary": breakdown.to_dict()}), 200
