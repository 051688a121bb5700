from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Callable, Optional, Sequence

from ..common.datetime_utils import now_local
from ..common.money import round_money
from ..common.validators import require_non_empty
from ..core.constants import EXCEPTION_SEPARATOR, RUN_ID_PREFIX
from ..core.enums import PaymentStatus, PayrollRunStatus
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..employees.repository import EmployeeRepository
from .exception_detector import PayrollExceptionDetector, build_exception
from .model import DraftResult, EmployeePayrollDetails, PayrollException, PayrollRun, PayslipWarning
from .repository import PayrollRunRepository, PayslipWriter
from .service import PayrollCalculationService

logger = logging.getLogger(__name__)

NO_EMPLOYEES = "No employees found for payroll generation"

S = PayrollRunStatus


class PayrollRunService:
    """Drives a payroll draft and the run's later approval phases."""

    def __init__(
        self,
        employees: EmployeeRepository,
        calculation: PayrollCalculationService,
        runs: PayrollRunRepository,
        payslips: PayslipWriter,
        *,
        detector: Optional[PayrollExceptionDetector] = None,
        clock: Callable = now_local,
    ):
        self._employees = employees
        self._calculation = calculation
        self._runs = runs
        self._payslips = payslips
        self._detector = detector or PayrollExceptionDetector()
        self._clock = clock

    def _new_run_id(self, payroll_period: date) -> str:
        millis = int(self._clock().timestamp() * 1000)
        return f"{RUN_ID_PREFIX}-{payroll_period.year}-{str(millis)[-6:]}"

    def generate_draft(
        self,
        payroll_period: date,
        entity: str,
        employee_ids: Optional[Sequence[int]] = None,
    ) -> DraftResult:
        entity = require_non_empty(entity, "entity")
        employees = list(self._employees.list_active(employee_ids=employee_ids or None))
        if employee_ids:
            wanted = {int(x) for x in employee_ids}
            employees = [e for e in employees if e.employee_id in wanted]
        if not employees:
            logger.info("payroll draft not generated for %s: no employees", payroll_period)
            return DraftResult(run=None, message=NO_EMPLOYEES)

        run = self._runs.create_run(
            PayrollRun(
                run_id=self._new_run_id(payroll_period),
                payroll_period=payroll_period,
                entity=entity,
                status=S.DRAFT,
                employees=len(employees),
                payment_status=PaymentStatus.PENDING,
                created_at=self._clock(),
            )
        )

        exception_count = 0
        total_net = Decimal("0")
        rows: list[EmployeePayrollDetails] = []
        warnings: list[PayslipWarning] = []

        for employee in employees:
            breakdown = self._calculation.calculate_employee_salary(employee.employee_id, payroll_period)
            hr_event = self._calculation.hr_event(employee.employee_id, payroll_period)
            flags = self._detector.detect(breakdown)

            exception_count += len(flags)
            total_net += breakdown.net_pay

            row = self._runs.save_details(
                EmployeePayrollDetails(
                    details_id=None,
                    payroll_run_id=run.run_id,
                    employee_id=employee.employee_id,
                    base_salary=breakdown.base_salary,
                    allowances=breakdown.allowances,
                    deductions=breakdown.deductions,
                    bonus=breakdown.bonus,
                    benefit=breakdown.benefit,
                    gross_salary=breakdown.gross_salary,
                    net_salary=breakdown.net_salary,
                    net_pay=breakdown.net_pay,
                    bank_status=breakdown.bank_status,
                    exceptions=EXCEPTION_SEPARATOR.join(f.message for f in flags),
                    hr_event=hr_event,
                )
            )
            rows.append(row)

            try:
                self._payslips.create_payslip(run, row)
            except Exception as e:
                # The run stays valid without the payslip; the gap is reported to the caller.
                warnings.append(PayslipWarning(employee_id=employee.employee_id, message=str(e) or type(e).__name__))
                logger.warning("payslip creation failed run=%s employee=%s", run.run_id, employee.employee_id, exc_info=True)

        status = S.UNDER_REVIEW if exception_count else S.DRAFT
        total_net = round_money(total_net)
        self._runs.save_totals(
            run.run_id,
            status=status,
            employees=len(employees),
            exceptions=exception_count,
            total_net_pay=total_net,
        )
        final = self._runs.get_run(run.run_id) or run
        logger.info(
            "payroll draft generated run=%s employees=%s exceptions=%s total_net=%s status=%s",
            run.run_id,
            len(employees),
            exception_count,
            total_net,
            status.value,
        )
        return DraftResult(run=final, rows=rows, warnings=warnings)

    # Queries

    def list_runs(self) -> Sequence[PayrollRun]:
        return self._runs.list_runs()

    def get_run(self, run_id: str) -> PayrollRun:
        run = self._runs.get_run(run_id)
        if not run:
            raise NotFoundError(f"Payroll run {run_id} not found")
        return run

    def run_employees(self, run_id: str, *, only_exceptions: bool = False) -> Sequence[EmployeePayrollDetails]:
        self.get_run(run_id)
        return self._runs.list_details(run_id, only_exceptions=only_exceptions)

    def list_exceptions(self, run_id: str, *, employee_id: Optional[int] = None) -> list[PayrollException]:
        out = []
        for row in self.run_employees(run_id, only_exceptions=True):
            if employee_id is not None and row.employee_id != int(employee_id):
                continue
            for message in row.exceptions.split(EXCEPTION_SEPARATOR):
                if message.strip():
                    out.append(build_exception(row.employee_id, message.strip()))
        return out

    def clear_exceptions(self, run_id: str, employee_id: int) -> PayrollRun:
        run = self.get_run(run_id)
        if run.status not in (S.DRAFT, S.UNDER_REVIEW):
            raise ConflictError(f"Exceptions cannot be cleared on a {run.status.value} run")
        if not self._runs.set_details_exceptions(run_id, int(employee_id), ""):
            raise NotFoundError(f"Employee {employee_id} is not part of payroll run {run_id}")

        remaining = len(self.list_exceptions(run_id))
        self._runs.save_totals(
            run_id,
            status=run.status,
            employees=run.employees,
            exceptions=remaining,
            total_net_pay=run.total_net_pay,
        )
        return self.get_run(run_id)

    # Approval phases

    def _move(
        self,
        run_id: str,
        *,
        action: str,
        from_statuses: Sequence[PayrollRunStatus],
        to_status: PayrollRunStatus,
        payment_status: Optional[PaymentStatus] = None,
        **fields,
    ) -> PayrollRun:
        run = self.get_run(run_id)
        if run.status not in from_statuses:
            allowed = ", ".join(s.value for s in from_statuses)
            raise ConflictError(f"Cannot {action} a payroll run in {run.status.value} status (expected {allowed})")
        ok = self._runs.transition(
            run_id,
            from_statuses=from_statuses,
            to_status=to_status,
            payment_status=payment_status,
            **fields,
        )
        if not ok:
            raise ConflictError(f"Payroll run {run_id} changed status concurrently")
        logger.info("payroll run %s: %s -> %s", run_id, run.status.value, to_status.value)
        return self.get_run(run_id)

    def publish(self, run_id: str) -> PayrollRun:
        return self._move(run_id, action="publish", from_statuses=(S.DRAFT, S.UNDER_REVIEW), to_status=S.PUBLISHED)

    def approve_by_manager(self, run_id: str, manager_id: int) -> PayrollRun:
        return self._move(
            run_id,
            action="approve",
            from_statuses=(S.PUBLISHED, S.UNDER_REVIEW),
            to_status=S.PENDING_FINANCE_APPROVAL,
            manager_id=int(manager_id),
            manager_approved_at=self._clock(),
        )

    def approve_by_finance(self, run_id: str, finance_id: int) -> PayrollRun:
        return self._move(
            run_id,
            action="finance-approve",
            from_statuses=(S.PENDING_FINANCE_APPROVAL,),
            to_status=S.APPROVED,
            payment_status=PaymentStatus.PAID,
            finance_id=int(finance_id),
            finance_approved_at=self._clock(),
        )

    def reject(self, run_id: str, reason: str) -> PayrollRun:
        reason = require_non_empty(reason, "reason")
        return self._move(
            run_id,
            action="reject",
            from_statuses=(S.UNDER_REVIEW, S.PUBLISHED, S.PENDING_FINANCE_APPROVAL),
            to_status=S.REJECTED,
            payment_status=PaymentStatus.PENDING,
            rejection_reason=reason,
        )

    def freeze(self, run_id: str) -> PayrollRun:
        run = self.get_run(run_id)
        if run.payment_status != PaymentStatus.PAID:
            raise ConflictError("Only paid payroll runs can be frozen")
        return self._move(run_id, action="freeze", from_statuses=(S.APPROVED,), to_status=S.FROZEN)

    def unfreeze(self, run_id: str, reason: str) -> PayrollRun:
        if not (reason or "").strip():
            raise ValidationError("An unfreeze reason is required")
        return self._move(
            run_id,
            action="unfreeze",
            from_statuses=(S.FROZEN,),
            to_status=S.UNFROZEN,
            unfreeze_reason=reason.strip(),
        )
