from __future__ import annotations

from ..core.enums import BankStatus
from .model import PayrollException, SalaryBreakdown

MISSING_BANK = "Missing bank details"
MISSING_PAY_GRADE = "Missing pay grade"
NEGATIVE_NET_PAY = "Net pay is negative"
EXCEEDS_GROSS = "Net pay exceeds gross salary"
EXCEEDS_NET_SALARY = "Net pay exceeds net salary"

_HIGH = ("missing bank", "negative", "exceeds gross")
_MEDIUM = ("pay grade", "exceeds net salary", "new hire", "offboarding")


def exception_severity(message: str) -> str:
    text = (message or "").lower()
    if any(k in text for k in _HIGH):
        return "high"
    if any(k in text for k in _MEDIUM):
        return "medium"
    return "low"


def exception_type(message: str) -> str:
    text = (message or "").lower()
    if "bank" in text:
        return "missing-bank"
    if "negative" in text:
        return "negative-pay"
    if "exceeds" in text:
        return "salary-spike"
    return "calculation-error"


def build_exception(employee_id: int, message: str) -> PayrollException:
    return PayrollException(
        employee_id=employee_id,
        message=message,
        exception_type=exception_type(message),
        severity=exception_severity(message),
    )


class PayrollExceptionDetector:
    """Flags computed rows that need a human look before approval."""

    def detect(self, breakdown: SalaryBreakdown) -> list[PayrollException]:
        messages = []
        if breakdown.bank_status == BankStatus.MISSING:
            messages.append(MISSING_BANK)
        if not breakdown.pay_grade_found:
            messages.append(MISSING_PAY_GRADE)
        if breakdown.net_pay < 0:
            messages.append(NEGATIVE_NET_PAY)
        if breakdown.net_pay > breakdown.gross_salary:
            messages.append(EXCEEDS_GROSS)
        if breakdown.net_pay > breakdown.net_salary:
            messages.append(EXCEEDS_NET_SALARY)
        return [build_exception(breakdown.employee_id, m) for m in messages]
