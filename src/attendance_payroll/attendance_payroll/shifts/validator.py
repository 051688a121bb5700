from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional, Sequence

from ..core.enums import AssignmentScope, HolidayType, PunchType
from ..core.exceptions import ValidationError
from ..employees.model import Employee
from .model import Holiday, ShiftAssignment, ShiftDefinition
from .repository import ShiftRepository

WEEKDAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

_SCOPE_RANK = {
    AssignmentScope.EMPLOYEE: 0,
    AssignmentScope.POSITION: 1,
    AssignmentScope.DEPARTMENT: 2,
}


@dataclass(frozen=True)
class ShiftWindow:
    """The shift a punch was checked against, as absolute instants."""

    shift: ShiftDefinition
    start: datetime
    end: datetime


def pick_assignment(assignments: Sequence[ShiftAssignment], day: date) -> Optional[ShiftAssignment]:
    """Most specific covering assignment (employee > position > department); latest start wins ties."""
    covering = [a for a in assignments if a.covers(day)]
    if not covering:
        return None
    covering.sort(key=lambda a: (_SCOPE_RANK[a.scope], -a.start_date.toordinal()))
    return covering[0]


def shift_window(shift: ShiftDefinition, day: date) -> ShiftWindow:
    """Place the shift on `day`; an overnight shift ends on the following day."""
    start = datetime.combine(day, shift.start_time)
    end = datetime.combine(day, shift.end_time)
    if shift.is_overnight:
        end += timedelta(days=1)
    return ShiftWindow(shift=shift, start=start, end=end)


def is_blocking_holiday(holiday: Holiday, at: datetime) -> bool:
    if holiday.holiday_type in (HolidayType.NATIONAL, HolidayType.ORGANIZATIONAL):
        return True
    if holiday.holiday_type == HolidayType.WEEKLY_REST:
        # Only the holiday name ties it to a weekday, e.g. "Sunday rest".
        return WEEKDAY_NAMES[at.weekday()].lower() in (holiday.name or "").lower()
    return False


class ShiftValidator:
    """Decides whether a punch is permitted under the employee's shift and holidays.

    Pure decision: nothing is written. Rejections raise ValidationError with the
    reason string shown to the caller.
    """

    def __init__(self, shifts: ShiftRepository):
        self._shifts = shifts

    def resolve_shift(self, employee: Employee, day: date) -> Optional[ShiftDefinition]:
        assignments = self._shifts.list_assignments(
            employee_id=employee.employee_id,
            department_id=employee.department_id,
            position_id=employee.position_id,
            on_date=day,
        )
        assignment = pick_assignment(assignments, day)
        if not assignment:
            return None
        shift = self._shifts.get_by_id(assignment.shift_id)
        if not shift or not shift.active:
            return None
        return shift

    def current_window(self, employee: Employee, at: datetime) -> Optional[ShiftWindow]:
        """The shift window a punch at `at` is checked against.

        A punch no later than the end (plus clock-out grace) of an overnight
        shift assigned on the previous day belongs to that shift. Otherwise
        the shift assigned on the punch's own calendar day applies.
        """
        previous_day = at.date() - timedelta(days=1)
        previous = self.resolve_shift(employee, previous_day)
        if previous and previous.is_overnight:
            window = shift_window(previous, previous_day)
            if at <= window.end + timedelta(minutes=previous.grace_out_minutes):
                return window

        shift = self.resolve_shift(employee, at.date())
        if not shift:
            return None
        return shift_window(shift, at.date())

    def validate(
        self,
        employee: Employee,
        punch_type: PunchType,
        at: datetime,
        *,
        check_holidays: bool = True,
    ) -> Optional[ShiftWindow]:
        window = self.current_window(employee, at)
        if not window:
            return None
        shift = window.shift
        if not shift.requires_approval_for_overtime:
            return window

        if punch_type == PunchType.IN:
            if at < window.start - timedelta(minutes=shift.grace_in_minutes):
                raise ValidationError("Early clock-in requires pre-approval")
            if check_holidays:
                holidays = self._shifts.list_holidays(on_date=at.date())
                if any(is_blocking_holiday(h, at) for h in holidays):
                    raise ValidationError("Punch on holiday requires pre-approval")
        else:
            if at < window.end:
                raise ValidationError("Early clock-out requires pre-approval")
            if at > window.end + timedelta(minutes=shift.grace_out_minutes):
                raise ValidationError("Overtime requires pre-approval")

        return window
