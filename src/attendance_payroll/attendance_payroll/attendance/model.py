from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Optional, Sequence

from ..core.enums import PunchPolicy, PunchType, RoundingMode


@dataclass(frozen=True)
class Punch:
    """A single clock event. Immutable once recorded."""

    punch_type: PunchType
    timestamp: datetime
    location: Optional[str] = None
    terminal_id: Optional[str] = None
    device_id: Optional[str] = None

    def to_dict(self) -> dict:
        data = {"type": self.punch_type.value, "time": self.timestamp.isoformat()}
        if self.location:
            data["location"] = self.location
        if self.terminal_id:
            data["terminalId"] = self.terminal_id
        if self.device_id:
            data["deviceId"] = self.device_id
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Punch":
        return cls(
            punch_type=PunchType(data["type"]),
            timestamp=datetime.fromisoformat(str(data["time"])),
            location=data.get("location"),
            terminal_id=data.get("terminalId"),
            device_id=data.get("deviceId"),
        )


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one employee's attendance for one calendar day.

    total_work_minutes is signed: while no work has been paired yet, a pending
    lateness deduction is carried as a negative total.
    """

    record_id: Optional[int]
    employee_id: int
    work_date: date
    punches: tuple[Punch, ...] = ()
    total_work_minutes: int = 0
    has_missed_punch: bool = False
    finalised_for_payroll: bool = False
    lateness_deduction_minutes: int = 0
    version: int = 0

    def to_dict(self) -> dict:
        return {
            "id": self.record_id,
            "employeeId": self.employee_id,
            "date": self.work_date.isoformat(),
            "punches": [p.to_dict() for p in self.punches],
            "totalWorkMinutes": self.total_work_minutes,
            "hasMissedPunch": self.has_missed_punch,
            "finalisedForPayroll": self.finalised_for_payroll,
            "latenessDeductionMinutes": self.lateness_deduction_minutes,
        }

    @property
    def pending_penalty_minutes(self) -> int:
        return -self.total_work_minutes if self.total_work_minutes < 0 else 0

    @property
    def worked_minutes(self) -> int:
        return max(0, self.total_work_minutes)


@dataclass(frozen=True)
class PunchCommand:
    """Input of a punch recording; optional fields fall back to shift or service defaults."""

    employee_id: int
    punch_type: PunchType
    timestamp: Optional[datetime] = None
    rounding_mode: Optional[RoundingMode] = None
    interval_minutes: Optional[int] = None
    expected_check_in: Optional[time | datetime] = None
    grace_period_minutes: Optional[int] = None
    lateness_threshold_minutes: Optional[int] = None
    automatic_deduction_minutes: Optional[int] = None
    policy: Optional[PunchPolicy] = None
    location: Optional[str] = None
    terminal_id: Optional[str] = None
    device_id: Optional[str] = None


@dataclass(frozen=True)
class AttendanceSummary:
    employee_id: int
    start: date
    end: date
    days_present: int
    total_work_minutes: int
    average_work_minutes: float


@dataclass(frozen=True)
class PayrollAttendance:
    """Monthly aggregate of finalised records, read by the payroll pipeline."""

    employee_id: int
    year: int
    month: int
    total_worked_minutes: int
    days_present: int
    days_with_missed_punch: int = 0

    @property
    def total_worked_hours(self) -> float:
        return round(self.total_worked_minutes / 60, 2)

    @property
    def requires_review(self) -> bool:
        return self.days_with_missed_punch > 0


@dataclass(frozen=True)
class RecordPage:
    items: Sequence[AttendanceRecord] = field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = 20

    @property
    def pages(self) -> int:
        return (self.total + self.limit - 1) // self.limit if self.limit else 0


@dataclass(frozen=True)
class ImportMarker:
    """Progress of one bulk import, keyed by the SHA-256 of its content.

    rows_done counts data rows already handled (imported or skipped); an
    interrupted import resumes after them.
    """

    content_hash: str
    source: str
    rows_done: int = 0
    imported: int = 0
    skipped: int = 0
    completed: bool = False
