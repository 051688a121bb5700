from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from ..attendance.model import PayrollAttendance
from ..core.enums import BankStatus, ConfigStatus, HREvent, PaymentStatus, PayrollRunStatus


def _money(value: Decimal) -> float:
    return float(value)


# Configuration lookups (read-only for this package)


@dataclass(frozen=True)
class PayGrade:
    grade_id: int
    name: str
    base_salary: Decimal
    gross_salary: Decimal
    status: ConfigStatus = ConfigStatus.APPROVED


@dataclass(frozen=True)
class Allowance:
    allowance_id: int
    name: str
    amount: Decimal
    status: ConfigStatus = ConfigStatus.APPROVED


@dataclass(frozen=True)
class TaxRule:
    rule_id: int
    name: str
    rate: Decimal
    status: ConfigStatus = ConfigStatus.APPROVED
    approved_at: Optional[datetime] = None


@dataclass(frozen=True)
class InsuranceBracket:
    bracket_id: int
    name: str
    min_salary: Decimal
    max_salary: Decimal
    employee_rate: Decimal
    employer_rate: Decimal
    status: ConfigStatus = ConfigStatus.APPROVED
    approved_at: Optional[datetime] = None

    def contains(self, amount: Decimal) -> bool:
        return self.min_salary <= amount <= self.max_salary


# Per-employee compensation items


@dataclass(frozen=True)
class SigningBonus:
    bonus_id: int
    employee_id: int
    amount: Decimal
    status: ConfigStatus
    created_at: datetime


@dataclass(frozen=True)
class TerminationBenefit:
    benefit_id: int
    employee_id: int
    amount: Decimal
    kind: str
    status: ConfigStatus
    created_at: datetime


@dataclass(frozen=True)
class Refund:
    refund_id: int
    employee_id: int
    amount: Decimal
    description: str
    status: ConfigStatus
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class Penalty:
    penalty_id: Optional[int]
    employee_id: int
    reason: str
    amount: Decimal
    status: ConfigStatus
    created_at: Optional[datetime] = None


# Computation results


@dataclass(frozen=True)
class SalaryBreakdown:
    """One employee's computed figures for a payroll period (2-decimal Decimals)."""

    employee_id: int
    payroll_period: date
    pay_grade_found: bool
    base_salary: Decimal
    allowances: Decimal
    bonus: Decimal
    benefit: Decimal
    gross_salary: Decimal
    tax_rate: Decimal
    tax: Decimal
    employee_insurance: Decimal
    employer_insurance: Decimal
    missing_hours_penalty: Decimal
    other_penalties: Decimal
    total_penalties: Decimal
    total_refunds: Decimal
    net_salary: Decimal
    net_pay: Decimal
    bank_status: BankStatus
    attendance: Optional[PayrollAttendance] = None

    @property
    def deductions(self) -> Decimal:
        return self.tax + self.employee_insurance + self.total_penalties

    def to_dict(self) -> dict:
        return {
            "employeeId": self.employee_id,
            "payrollPeriod": self.payroll_period.isoformat(),
            "payGradeFound": self.pay_grade_found,
            "baseSalary": _money(self.base_salary),
            "allowances": _money(self.allowances),
            "bonus": _money(self.bonus),
            "benefit": _money(self.benefit),
            "grossSalary": _money(self.gross_salary),
            "tax": _money(self.tax),
            "employeeInsurance": _money(self.employee_insurance),
            "employerInsurance": _money(self.employer_insurance),
            "missingHoursPenalty": _money(self.missing_hours_penalty),
            "totalPenalties": _money(self.total_penalties),
            "totalRefunds": _money(self.total_refunds),
            "deductions": _money(self.deductions),
            "netSalary": _money(self.net_salary),
            "netPay": _money(self.net_pay),
            "bankStatus": self.bank_status.value,
        }


@dataclass(frozen=True)
class PayrollException:
    employee_id: int
    message: str
    exception_type: str
    severity: str

    def to_dict(self) -> dict:
        return {
            "employeeId": self.employee_id,
            "message": self.message,
            "type": self.exception_type,
            "severity": self.severity,
        }


@dataclass(frozen=True)
class EmployeePayrollDetails:
    """One row per employee per run."""

    details_id: Optional[int]
    payroll_run_id: str
    employee_id: int
    base_salary: Decimal
    allowances: Decimal
    deductions: Decimal
    bonus: Decimal
    benefit: Decimal
    gross_salary: Decimal
    net_salary: Decimal
    net_pay: Decimal
    bank_status: BankStatus
    exceptions: str = ""
    hr_event: HREvent = HREvent.NORMAL

    @property
    def has_exceptions(self) -> bool:
        return bool(self.exceptions)

    def to_dict(self) -> dict:
        return {
            "id": self.details_id,
            "payrollRunId": self.payroll_run_id,
            "employeeId": self.employee_id,
            "baseSalary": _money(self.base_salary),
            "allowances": _money(self.allowances),
            "deductions": _money(self.deductions),
            "bonus": _money(self.bonus),
            "benefit": _money(self.benefit),
            "grossSalary": _money(self.gross_salary),
            "netSalary": _money(self.net_salary),
            "netPay": _money(self.net_pay),
            "bankStatus": self.bank_status.value,
            "exceptions": self.exceptions,
            "hrEvent": self.hr_event.value,
        }


@dataclass(frozen=True)
class PayrollRun:
    run_id: str
    payroll_period: date
    entity: str
    status: PayrollRunStatus = PayrollRunStatus.DRAFT
    employees: int = 0
    exceptions: int = 0
    total_net_pay: Decimal = Decimal("0")
    payment_status: PaymentStatus = PaymentStatus.PENDING
    created_at: Optional[datetime] = None
    manager_id: Optional[int] = None
    manager_approved_at: Optional[datetime] = None
    finance_id: Optional[int] = None
    finance_approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    unfreeze_reason: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "runId": self.run_id,
            "payrollPeriod": self.payroll_period.isoformat(),
            "entity": self.entity,
            "status": self.status.value,
            "employees": self.employees,
            "exceptions": self.exceptions,
            "totalNetPay": _money(self.total_net_pay),
            "paymentStatus": self.payment_status.value,
            "managerId": self.manager_id,
            "financeId": self.finance_id,
            "rejectionReason": self.rejection_reason,
            "unfreezeReason": self.unfreeze_reason,
        }


@dataclass(frozen=True)
class PayslipWarning:
    employee_id: int
    message: str


@dataclass(frozen=True)
class DraftResult:
    run: Optional[PayrollRun]
    rows: list[EmployeePayrollDetails] = field(default_factory=list)
    warnings: list[PayslipWarning] = field(default_factory=list)
    message: Optional[str] = None

    def to_dict(self) -> dict:
        if self.run is None:
            return {"runId": None, "employeeCount": 0, "message": self.message}
        return {
            "runId": self.run.run_id,
            "employeeCount": self.run.employees,
            "exceptionCount": self.run.exceptions,
            "totalNetPay": _money(self.run.total_net_pay),
            "status": self.run.status.value,
            "warnings": [{"employeeId": w.employee_id, "message": w.message} for w in self.warnings],
        }
