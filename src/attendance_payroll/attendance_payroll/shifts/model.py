from __future__ import annotations

from dataclasses import dataclass
from datetime import date, time
from typing import Optional

from ..core.enums import AssignmentScope, HolidayType, PunchPolicy


@dataclass(frozen=True)
class ShiftDefinition:
    """Domain entity: shift template referenced by assignments."""

    shift_id: int
    name: str
    start_time: time
    end_time: time
    grace_in_minutes: int = 0
    grace_out_minutes: int = 0
    requires_approval_for_overtime: bool = False
    punch_policy: PunchPolicy = PunchPolicy.MULTIPLE
    active: bool = True

    @property
    def is_overnight(self) -> bool:
        return self.end_time < self.start_time


@dataclass(frozen=True)
class ShiftAssignment:
    assignment_id: int
    shift_id: int
    scope: AssignmentScope
    target_id: int
    start_date: date
    end_date: Optional[date] = None
    active: bool = True

    def covers(self, day: date) -> bool:
        if not self.active or day < self.start_date:
            return False
        return self.end_date is None or day <= self.end_date


@dataclass(frozen=True)
class Holiday:
    holiday_id: int
    holiday_type: HolidayType
    start_date: date
    end_date: Optional[date] = None
    name: str = ""
    active: bool = True

    def covers(self, day: date) -> bool:
        if not self.active or day < self.start_date:
            return False
        return self.end_date is None or day <= self.end_date
