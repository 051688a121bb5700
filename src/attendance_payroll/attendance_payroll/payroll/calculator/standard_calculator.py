from __future__ import annotations

from decimal import Decimal

from ...common.money import percent, round_money
from ...core.constants import (
    DAYS_PER_PAYROLL_MONTH,
    DEFAULT_INSURANCE_RATE,
    EXPECTED_DAILY_MINUTES,
    HOURS_PER_PAYROLL_DAY,
)
from .base import PayrollCalculator, SalaryFigures, SalaryInputs


class StandardPayrollCalculator(PayrollCalculator):
    """Standard rule.

    gross = base + allowances + bonuses + benefits
    net salary = gross - tax - employee insurance
    net pay = net salary - penalties + refunds

    Every component is rounded half up to cents before it is combined, so the
    two identities above hold exactly.
    """

    def __init__(self, *, default_insurance_rate: Decimal = DEFAULT_INSURANCE_RATE):
        self._default_insurance_rate = default_insurance_rate

    def missing_hours_penalty(self, inputs: SalaryInputs) -> Decimal:
        expected = EXPECTED_DAILY_MINUTES * max(0, inputs.days_present)
        missing_minutes = max(0, expected - max(0, inputs.worked_minutes))
        hourly_rate = inputs.grade_gross_salary / DAYS_PER_PAYROLL_MONTH / HOURS_PER_PAYROLL_DAY
        return round_money(Decimal(missing_minutes) / Decimal(60) * hourly_rate)

    def compute(self, inputs: SalaryInputs) -> SalaryFigures:
        gross = round_money(inputs.base_salary + inputs.allowances + inputs.bonuses + inputs.benefits)
        tax = round_money(inputs.tax_rate * inputs.base_salary)

        bracket = inputs.insurance_bracket
        if bracket is not None:
            employee_insurance = round_money(percent(bracket.employee_rate) * gross)
            employer_insurance = round_money(percent(bracket.employer_rate) * gross)
        else:
            employee_insurance = round_money(self._default_insurance_rate * gross)
            employer_insurance = Decimal("0.00")

        missing = self.missing_hours_penalty(inputs)
        total_penalties = round_money(inputs.other_penalties) + missing
        net_salary = gross - tax - employee_insurance
        net_pay = net_salary - total_penalties + round_money(inputs.refunds)

        return SalaryFigures(
            gross_salary=gross,
            tax=tax,
            employee_insurance=employee_insurance,
            employer_insurance=employer_insurance,
            missing_hours_penalty=missing,
            total_penalties=total_penalties,
            net_salary=net_salary,
            net_pay=net_pay,
        )
