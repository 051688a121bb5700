from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional, Protocol, Sequence

from ..core.enums import PaymentStatus, PayrollRunStatus
from .model import (
    Allowance,
    EmployeePayrollDetails,
    InsuranceBracket,
    PayGrade,
    PayrollRun,
    Penalty,
    Refund,
    SigningBonus,
    TaxRule,
    TerminationBenefit,
)


class PayrollConfigRepository(Protocol):
    """Read-only configuration lookups (APPROVED entities only)."""

    def get_pay_grade_by_name(self, name: str) -> Optional[PayGrade]:
        raise NotImplementedError

    def list_active_allowances(self) -> Sequence[Allowance]:
        raise NotImplementedError

    def get_active_tax_rule(self) -> Optional[TaxRule]:
        """Most recently approved tax rule."""

        raise NotImplementedError

    def find_insurance_bracket(self, amount: Decimal) -> Optional[InsuranceBracket]:
        """Most recently approved bracket whose [min, max] contains amount."""

        raise NotImplementedError


class CompensationRepository(Protocol):
    """Per-employee bonuses, benefits, refunds and penalties."""

    def list_signing_bonuses(
        self, employee_id: int, *, created_from: datetime, created_to: datetime
    ) -> Sequence[SigningBonus]:
        """Approved bonuses created in [created_from, created_to)."""

        raise NotImplementedError

    def list_termination_benefits(
        self, employee_id: int, *, created_from: datetime, created_to: datetime
    ) -> Sequence[TerminationBenefit]:
        raise NotImplementedError

    def list_refunds(self, employee_id: int) -> Sequence[Refund]:
        """Approved refunds, not scoped by period."""

        raise NotImplementedError

    def list_penalties(
        self, employee_id: int, *, created_from: datetime, created_to: datetime
    ) -> Sequence[Penalty]:
        raise NotImplementedError

    def add_penalty(self, penalty: Penalty) -> Penalty:
        raise NotImplementedError


class PayrollRunRepository(Protocol):
    def create_run(self, run: PayrollRun) -> PayrollRun:
        raise NotImplementedError

    def get_run(self, run_id: str) -> Optional[PayrollRun]:
        raise NotImplementedError

    def list_runs(self) -> Sequence[PayrollRun]:
        raise NotImplementedError

    def save_totals(
        self,
        run_id: str,
        *,
        status: PayrollRunStatus,
        employees: int,
        exceptions: int,
        total_net_pay: Decimal,
    ) -> None:
        raise NotImplementedError

    def transition(
        self,
        run_id: str,
        *,
        from_statuses: Sequence[PayrollRunStatus],
        to_status: PayrollRunStatus,
        payment_status: Optional[PaymentStatus] = None,
        **fields,
    ) -> bool:
        """Move a run to to_status only if its current status is one of from_statuses."""

        raise NotImplementedError

    def save_details(self, details: EmployeePayrollDetails) -> EmployeePayrollDetails:
        raise NotImplementedError

    def list_details(self, run_id: str, *, only_exceptions: bool = False) -> Sequence[EmployeePayrollDetails]:
        raise NotImplementedError

    def set_details_exceptions(self, run_id: str, employee_id: int, exceptions: str) -> bool:
        raise NotImplementedError


class PayslipWriter(Protocol):
    """Downstream payslip hand-off; rendering is outside this package."""

    def create_payslip(self, run: PayrollRun, details: EmployeePayrollDetails) -> None:
        raise NotImplementedError
