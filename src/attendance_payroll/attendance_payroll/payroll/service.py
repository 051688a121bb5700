from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Optional

from ..attendance.service import AttendanceService
from ..common.datetime_utils import month_range
from ..common.money import percent, round_money
from ..core.constants import DEFAULT_PAY_GRADE_SALARY, DEFAULT_TAX_RATE, MISSING_HOURS_PENALTY_REASON
from ..core.enums import BankStatus, ConfigStatus, HREvent
from ..core.exceptions import NotFoundError
from ..employees.model import Employee
from ..employees.repository import EmployeeRepository
from .calculator.base import PayrollCalculator, SalaryInputs
from .calculator.standard_calculator import StandardPayrollCalculator
from .model import PayGrade, Penalty, SalaryBreakdown
from .repository import CompensationRepository, PayrollConfigRepository

logger = logging.getLogger(__name__)


def _total(items) -> Decimal:
    return sum((Decimal(i.amount) for i in items), Decimal("0"))


class PayrollCalculationService:
    """Computes one employee's salary breakdown for a payroll period.

    Only reads: the attendance aggregate is live, everything else comes from
    configuration and compensation lookups. Persisting the missing-hours
    penalty is a separate, explicit call.
    """

    def __init__(
        self,
        employees: EmployeeRepository,
        config: PayrollConfigRepository,
        compensation: CompensationRepository,
        attendance: AttendanceService,
        *,
        calculator: Optional[PayrollCalculator] = None,
        default_salary: Decimal = DEFAULT_PAY_GRADE_SALARY,
        default_tax_rate: Decimal = DEFAULT_TAX_RATE,
    ):
        self._employees = employees
        self._config = config
        self._compensation = compensation
        self._attendance = attendance
        self._calculator = calculator or StandardPayrollCalculator()
        self._default_salary = Decimal(default_salary)
        self._default_tax_rate = Decimal(default_tax_rate)

    def _employee(self, employee_id: int) -> Employee:
        employee = self._employees.get_by_id(int(employee_id))
        if not employee:
            raise NotFoundError(f"Employee {employee_id} not found")
        return employee

    def _pay_grade(self, employee: Employee) -> tuple[PayGrade, bool]:
        grade = self._config.get_pay_grade_by_name(employee.role) if employee.role else None
        if grade:
            return grade, True
        fallback = PayGrade(
            grade_id=0,
            name="default",
            base_salary=self._default_salary,
            gross_salary=self._default_salary,
        )
        return fallback, False

    def _tax_rate(self) -> Decimal:
        rule = self._config.get_active_tax_rule()
        return percent(rule.rate) if rule else self._default_tax_rate

    def calculate_employee_salary(self, employee_id: int, payroll_period: date) -> SalaryBreakdown:
        employee = self._employee(employee_id)
        grade, grade_found = self._pay_grade(employee)
        start, end = month_range(payroll_period)

        allowances = _total(self._config.list_active_allowances())
        bonuses = _total(self._compensation.list_signing_bonuses(employee.employee_id, created_from=start, created_to=end))
        benefits = _total(
            self._compensation.list_termination_benefits(employee.employee_id, created_from=start, created_to=end)
        )
        gross = round_money(grade.base_salary + allowances + bonuses + benefits)
        refunds = _total(self._compensation.list_refunds(employee.employee_id))
        other_penalties = _total(
            p
            for p in self._compensation.list_penalties(employee.employee_id, created_from=start, created_to=end)
            if p.reason != MISSING_HOURS_PENALTY_REASON
        )
        attendance = self._attendance.payroll_attendance(employee.employee_id, payroll_period)

        tax_rate = self._tax_rate()
        figures = self._calculator.compute(
            SalaryInputs(
                base_salary=grade.base_salary,
                grade_gross_salary=grade.gross_salary,
                allowances=allowances,
                bonuses=bonuses,
                benefits=benefits,
                tax_rate=tax_rate,
                insurance_bracket=self._config.find_insurance_bracket(gross),
                refunds=refunds,
                other_penalties=other_penalties,
                days_present=attendance.days_present,
                worked_minutes=attendance.total_worked_minutes,
            )
        )

        return SalaryBreakdown(
            employee_id=employee.employee_id,
            payroll_period=payroll_period,
            pay_grade_found=grade_found,
            base_salary=round_money(grade.base_salary),
            allowances=round_money(allowances),
            bonus=round_money(bonuses),
            benefit=round_money(benefits),
            gross_salary=figures.gross_salary,
            tax_rate=tax_rate,
            tax=figures.tax,
            employee_insurance=figures.employee_insurance,
            employer_insurance=figures.employer_insurance,
            missing_hours_penalty=figures.missing_hours_penalty,
            other_penalties=round_money(other_penalties),
            total_penalties=figures.total_penalties,
            total_refunds=round_money(refunds),
            net_salary=figures.net_salary,
            net_pay=figures.net_pay,
            bank_status=BankStatus.VALID if employee.has_bank_details else BankStatus.MISSING,
            attendance=attendance,
        )

    def save_missing_hours_penalty(self, employee_id: int, payroll_period: date) -> Optional[Penalty]:
        """Persist the period's missing-hours penalty as an approved penalty record."""
        breakdown = self.calculate_employee_salary(employee_id, payroll_period)
        if breakdown.missing_hours_penalty <= 0:
            return None
        saved = self._compensation.add_penalty(
            Penalty(
                penalty_id=None,
                employee_id=breakdown.employee_id,
                reason=MISSING_HOURS_PENALTY_REASON,
                amount=breakdown.missing_hours_penalty,
                status=ConfigStatus.APPROVED,
            )
        )
        logger.info(
            "missing hours penalty saved employee=%s period=%s amount=%s",
            breakdown.employee_id,
            payroll_period,
            breakdown.missing_hours_penalty,
        )
        return saved

    def hr_event(self, employee_id: int, payroll_period: date) -> HREvent:
        start, end = month_range(payroll_period)
        benefits = self._compensation.list_termination_benefits(int(employee_id), created_from=start, created_to=end)
        if benefits:
            if any("resign" in (b.kind or "").lower() for b in benefits):
                return HREvent.RESIGNED
            return HREvent.TERMINATED
        if self._compensation.list_signing_bonuses(int(employee_id), created_from=start, created_to=end):
            return HREvent.NEW_HIRE
        return HREvent.NORMAL
