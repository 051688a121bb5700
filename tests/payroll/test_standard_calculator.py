from decimal import Decimal

from src.attendance_payroll.attendance_payroll.payroll.calculator.base import SalaryInputs
from src.attendance_payroll.attendance_payroll.payroll.calculator.standard_calculator import StandardPayrollCalculator
from src.attendance_payroll.attendance_payroll.payroll.model import InsuranceBracket


def _inputs(**overrides) -> SalaryInputs:
    data = dict(
        base_salary=Decimal("6000"),
        grade_gross_salary=Decimal("6000"),
        allowances=Decimal("500"),
        bonuses=Decimal("0"),
        benefits=Decimal("0"),
        tax_rate=Decimal("0.10"),
        insurance_bracket=None,
        refunds=Decimal("50"),
        other_penalties=Decimal("100"),
        days_present=0,
        worked_minutes=0,
    )
    data.update(overrides)
    return SalaryInputs(**data)


def test_standard_calculator_identities_with_default_insurance():
    figures = StandardPayrollCalculator().compute(_inputs())

    assert figures.gross_salary == Decimal("6500.00")
    assert figures.tax == Decimal("600.00")
    assert figures.employee_insurance == Decimal("325.00")
    assert figures.net_salary == Decimal("5575.00")
    assert figures.net_pay == Decimal("5525.00")
    assert figures.net_salary == figures.gross_salary - figures.tax - figures.employee_insurance
    assert figures.net_pay == figures.net_salary - figures.total_penalties + Decimal("50.00")


def test_standard_calculator_uses_bracket_rates():
    bracket = InsuranceBracket(
        bracket_id=1,
        name="Band A",
        min_salary=Decimal("0"),
        max_salary=Decimal("10000"),
        employee_rate=Decimal("8"),
        employer_rate=Decimal("17.5"),
    )

    figures = StandardPayrollCalculator().compute(_inputs(insurance_bracket=bracket))

    assert figures.employee_insurance == Decimal("520.00")
    assert figures.employer_insurance == Decimal("1137.50")


def test_missing_hours_penalty_uses_hourly_rate():
    calc = StandardPayrollCalculator()
    inputs = _inputs(days_present=2, worked_minutes=600, other_penalties=Decimal("0"), refunds=Decimal("0"))

    figures = calc.compute(inputs)

    # 960 expected minutes, 600 worked: 6 hours at 6000 / 30 / 8 = 25 per hour.
    assert figures.missing_hours_penalty == Decimal("150.00")
    assert figures.total_penalties == Decimal("150.00")
    assert figures.net_pay == figures.net_salary - Decimal("150.00")


def test_no_penalty_when_hours_are_met():
    figures = StandardPayrollCalculator().compute(_inputs(days_present=1, worked_minutes=500))

    assert figures.missing_hours_penalty == Decimal("0.00")


def test_rounding_is_half_up_to_cents():
    figures = StandardPayrollCalculator().compute(
        _inputs(base_salary=Decimal("1000.005"), allowances=Decimal("0"), tax_rate=Decimal("0.1"))
    )

    assert figures.gross_salary == Decimal("1000.01")
    assert figures.tax == Decimal("100.00")
