from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.constants import DEFAULT_MAX_CORRECTION_MINUTES
from ..core.enums import ApprovalRole, CorrectionStatus, CorrectionType, Decision


@dataclass(frozen=True)
class ApprovalEntry:
    """One step of a correction's decision log."""

    role: ApprovalRole
    status: CorrectionStatus
    decided_by: int
    decided_at: datetime
    note: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "role": self.role.value,
            "status": self.status.value,
            "decidedBy": self.decided_by,
            "decidedAt": self.decided_at.isoformat(),
            "note": self.note,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ApprovalEntry":
        return cls(
            role=ApprovalRole(data["role"]),
            status=CorrectionStatus(data["status"]),
            decided_by=int(data["decidedBy"]),
            decided_at=datetime.fromisoformat(str(data["decidedAt"])),
            note=data.get("note"),
        )


@dataclass(frozen=True)
class CorrectionRequest:
    """Domain entity: an employee's request to adjust one day's attendance.

    Lifecycle is SUBMITTED -> APPROVED | REJECTED. Escalation and payroll
    cutoff are annotations and never change the status.
    """

    correction_id: Optional[int]
    employee_id: int
    attendance_record_id: int
    duration_minutes: int
    correction_type: CorrectionType
    reason: str
    line_manager_id: Optional[int]
    status: CorrectionStatus = CorrectionStatus.SUBMITTED
    approval_flow: tuple[ApprovalEntry, ...] = ()
    applied_to_payroll: bool = False
    applies_from_date: Optional[date] = None
    leave_type_id: Optional[int] = None
    rejection_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    escalated_at: Optional[datetime] = None
    escalation_reason: Optional[str] = None
    payroll_cutoff_at: Optional[datetime] = None
    payroll_processed_at: Optional[datetime] = None

    @property
    def is_escalated(self) -> bool:
        return self.escalated_at is not None

    def to_dict(self) -> dict:
        return {
            "id": self.correction_id,
            "employeeId": self.employee_id,
            "attendanceRecordId": self.attendance_record_id,
            "durationMinutes": self.duration_minutes,
            "correctionType": self.correction_type.value,
            "reason": self.reason,
            "lineManagerId": self.line_manager_id,
            "status": self.status.value,
            "approvalFlow": [e.to_dict() for e in self.approval_flow],
            "appliedToPayroll": self.applied_to_payroll,
            "appliesFromDate": self.applies_from_date.isoformat() if self.applies_from_date else None,
            "rejectionReason": self.rejection_reason,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "escalatedAt": self.escalated_at.isoformat() if self.escalated_at else None,
            "escalationReason": self.escalation_reason,
            "payrollCutoffAt": self.payroll_cutoff_at.isoformat() if self.payroll_cutoff_at else None,
            "payrollProcessedAt": self.payroll_processed_at.isoformat() if self.payroll_processed_at else None,
        }


@dataclass(frozen=True)
class PermissionDurationConfig:
    leave_type_id: Optional[int]
    max_consecutive_days: Optional[int] = None
    min_notice_days: int = 0
    requires_manager_approval: bool = True
    affects_payroll: bool = True
    max_requests_per_month: int = 12

    @property
    def max_duration_minutes(self) -> int:
        if not self.max_consecutive_days:
            return DEFAULT_MAX_CORRECTION_MINUTES
        return int(self.max_consecutive_days) * 24 * 60


@dataclass(frozen=True)
class CorrectionSubmission:
    employee_id: int
    attendance_record_id: int
    duration_minutes: int
    reason: str
    line_manager_id: Optional[int]
    correction_type: Optional[CorrectionType] = None
    applies_from_date: Optional[date] = None
    leave_type_id: Optional[int] = None


@dataclass(frozen=True)
class CorrectionDecision:
    correction_id: int
    approver_id: int
    decision: Decision
    approver_role: Optional[ApprovalRole] = None
    rejection_reason: Optional[str] = None
    apply_to_payroll: Optional[bool] = None
