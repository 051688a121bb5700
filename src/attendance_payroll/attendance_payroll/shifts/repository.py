from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import Holiday, ShiftAssignment, ShiftDefinition


class ShiftRepository(Protocol):
    def get_by_id(self, shift_id: int) -> Optional[ShiftDefinition]:
        raise NotImplementedError

    def list_assignments(
        self,
        *,
        employee_id: int,
        department_id: Optional[int],
        position_id: Optional[int],
        on_date: date,
    ) -> Sequence[ShiftAssignment]:
        """Active assignments covering on_date for the employee, its department or its position."""

        raise NotImplementedError

    def list_holidays(self, *, on_date: date) -> Sequence[Holiday]:
        """Active holidays whose [start_date, end_date] range contains on_date."""

        raise NotImplementedError
