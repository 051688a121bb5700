from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from ..common.datetime_utils import minutes_between


@dataclass(frozen=True)
class LatenessResult:
    minutes_late: int
    is_late: bool
    grace_applied: bool
    deducted_minutes: int


NOT_LATE = LatenessResult(minutes_late=0, is_late=False, grace_applied=False, deducted_minutes=0)


def calculate_lateness(
    actual: datetime,
    expected: datetime,
    *,
    grace_minutes: int,
    threshold_minutes: int = 0,
    automatic_deduction_minutes: int = 0,
) -> LatenessResult:
    """Minutes late against the expected check-in, and what to deduct for it.

    A check-in within the grace period is not late. A late check-in only
    incurs the automatic deduction once it is also past the threshold.
    """
    minutes_late = max(0, minutes_between(expected, actual))
    is_late = minutes_late > grace_minutes
    deducted = automatic_deduction_minutes if is_late and minutes_late > threshold_minutes else 0
    return LatenessResult(
        minutes_late=minutes_late,
        is_late=is_late,
        grace_applied=minutes_late <= grace_minutes,
        deducted_minutes=max(0, int(deducted)),
    )


def apply_deduction(computed_minutes: int, deduction_minutes: int, *, new_record: bool = False) -> int:
    """Subtract a lateness deduction from a day's total, floored at zero.

    A record created by a late punch with no paired work holds the deduction
    as a negative total; every later recompute floors at zero.
    """
    if deduction_minutes <= 0:
        return computed_minutes
    if new_record and computed_minutes <= 0:
        return -deduction_minutes
    return max(0, computed_minutes - deduction_minutes)
