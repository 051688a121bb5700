"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

from decimal import Decimal

EXPECTED_DAILY_MINUTES = 8 * 60
DAYS_PER_PAYROLL_MONTH = 30
HOURS_PER_PAYROLL_DAY = 8

DEFAULT_MAX_CORRECTION_MINUTES = 480
DEFAULT_ESCALATION_HOURS = 24
DEFAULT_CUTOFF_ADVANCE_HOURS = 48

DEFAULT_PAY_GRADE_SALARY = Decimal("6000")
DEFAULT_TAX_RATE = Decimal("0.10")
DEFAULT_INSURANCE_RATE = Decimal("0.05")
MONEY_SCALE = 2

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

RUN_ID_PREFIX = "PR"
EXCEPTION_SEPARATOR = "; "

MISSING_HOURS_PENALTY_REASON = "missing hours"
