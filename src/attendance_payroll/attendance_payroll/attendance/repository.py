from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import AttendanceRecord, ImportMarker


class AttendanceRepository(Protocol):
    def get_by_id(self, record_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def get_for_employee_and_date(self, employee_id: int, work_date: date) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def create(self, record: AttendanceRecord) -> AttendanceRecord:
        """Insert the day's first record; ConcurrencyError if one already exists."""

        raise NotImplementedError

    def update(self, record: AttendanceRecord, *, expected_version: int) -> AttendanceRecord:
        """Write punches/totals if the stored version still matches; ConcurrencyError otherwise."""

        raise NotImplementedError

    def list_for_employee(
        self,
        employee_id: int,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
        has_missed_punch: Optional[bool] = None,
        finalised_for_payroll: Optional[bool] = None,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def count_for_employee(
        self,
        employee_id: int,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
        has_missed_punch: Optional[bool] = None,
        finalised_for_payroll: Optional[bool] = None,
    ) -> int:
        raise NotImplementedError


class ImportStateRepository(Protocol):
    """Durable progress markers of bulk imports, keyed by content hash."""

    def get_marker(self, content_hash: str) -> Optional[ImportMarker]:
        raise NotImplementedError

    def save_marker(self, marker: ImportMarker) -> None:
        raise NotImplementedError
