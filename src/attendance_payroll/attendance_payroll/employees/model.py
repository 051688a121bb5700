from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from ..core.enums import EmployeeStatus


@dataclass(frozen=True)
class Employee:
    """Domain entity: employee profile as seen by attendance and payroll.

    Note: Plain data object (no DB access code).
    """

    employee_id: int
    full_name: str
    role: Optional[str]
    department_id: Optional[int]
    position_id: Optional[int]
    bank_name: Optional[str]
    status: EmployeeStatus = EmployeeStatus.ACTIVE
    hire_date: Optional[date] = None

    @property
    def has_bank_details(self) -> bool:
        return bool(self.bank_name and self.bank_name.strip())
