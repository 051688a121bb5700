from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from ..model import InsuranceBracket


@dataclass(frozen=True)
class SalaryInputs:
    """Everything the salary math needs, already looked up."""

    base_salary: Decimal
    grade_gross_salary: Decimal
    allowances: Decimal
    bonuses: Decimal
    benefits: Decimal
    tax_rate: Decimal
    insurance_bracket: Optional[InsuranceBracket]
    refunds: Decimal
    other_penalties: Decimal
    days_present: int
    worked_minutes: int


@dataclass(frozen=True)
class SalaryFigures:
    gross_salary: Decimal
    tax: Decimal
    employee_insurance: Decimal
    employer_insurance: Decimal
    missing_hours_penalty: Decimal
    total_penalties: Decimal
    net_salary: Decimal
    net_pay: Decimal


class PayrollCalculator(ABC):
    """Calculator interface (Strategy Pattern for payroll)."""

    @abstractmethod
    def compute(self, inputs: SalaryInputs) -> SalaryFigures:
        raise NotImplementedError
