from datetime import date
from decimal import Decimal

from src.attendance_payroll.attendance_payroll.core.enums import BankStatus
from src.attendance_payroll.attendance_payroll.payroll.exception_detector import (
    EXCEEDS_GROSS,
    EXCEEDS_NET_SALARY,
    MISSING_BANK,
    MISSING_PAY_GRADE,
    NEGATIVE_NET_PAY,
    PayrollExceptionDetector,
    build_exception,
)
from src.attendance_payroll.attendance_payroll.payroll.model import SalaryBreakdown


def _breakdown(*, net_pay: str, gross: str = "5000", net_salary: str = "4000", bank=BankStatus.VALID, grade=True):
    zero = Decimal("0")
    return SalaryBreakdown(
        employee_id=1,
        payroll_period=date(2025, 3, 1),
        pay_grade_found=grade,
        base_salary=Decimal(gross),
        allowances=zero,
        bonus=zero,
        benefit=zero,
        gross_salary=Decimal(gross),
        tax_rate=Decimal("0.10"),
        tax=zero,
        employee_insurance=zero,
        employer_insurance=zero,
        missing_hours_penalty=zero,
        other_penalties=zero,
        total_penalties=zero,
        total_refunds=zero,
        net_salary=Decimal(net_salary),
        net_pay=Decimal(net_pay),
        bank_status=bank,
    )


def _messages(breakdown):
    return [e.message for e in PayrollExceptionDetector().detect(breakdown)]


def test_clean_row_has_no_exceptions():
    assert _messages(_breakdown(net_pay="3900")) == []


def test_negative_net_pay_is_flagged():
    assert NEGATIVE_NET_PAY in _messages(_breakdown(net_pay="-10"))


def test_net_pay_above_gross_is_flagged():
    messages = _messages(_breakdown(net_pay="6000"))

    assert EXCEEDS_GROSS in messages
    assert EXCEEDS_NET_SALARY in messages


def test_missing_bank_and_grade_are_flagged():
    messages = _messages(_breakdown(net_pay="3900", bank=BankStatus.MISSING, grade=False))

    assert messages == [MISSING_BANK, MISSING_PAY_GRADE]


def test_exception_type_and_severity():
    bank = build_exception(1, MISSING_BANK)
    grade = build_exception(1, MISSING_PAY_GRADE)
    spike = build_exception(1, EXCEEDS_GROSS)

    assert (bank.exception_type, bank.severity) == ("missing-bank", "high")
    assert (grade.exception_type, grade.severity) == ("calculation-error", "medium")
    assert (spike.exception_type, spike.severity) == ("salary-spike", "high")
