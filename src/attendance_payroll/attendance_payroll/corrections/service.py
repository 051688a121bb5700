from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from typing import Callable, Optional, Sequence

from ..attendance.repository import AttendanceRepository
from ..audit.model import AuditEvent
from ..audit.repository import AuditRepository
from ..audit.service import record_audit
from ..common.datetime_utils import now_local
from ..core.constants import DEFAULT_MAX_CORRECTION_MINUTES
from ..core.enums import ApprovalRole, CorrectionStatus, CorrectionType, Decision
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from .model import (
    ApprovalEntry,
    CorrectionDecision,
    CorrectionRequest,
    CorrectionSubmission,
    PermissionDurationConfig,
)
from .repository import CorrectionRepository, PermissionConfigRepository

logger = logging.getLogger(__name__)

AUDIT_ENTITY = "correction_request"


def _format_hours(minutes: int) -> str:
    hours = minutes / 60
    return str(int(hours)) if hours == int(hours) else f"{hours:.2f}".rstrip("0")


class CorrectionWorkflowService:
    """Submission and review of attendance correction requests."""

    def __init__(
        self,
        corrections: CorrectionRepository,
        attendance: AttendanceRepository,
        permission_configs: PermissionConfigRepository,
        audit: AuditRepository,
        *,
        default_max_minutes: int = DEFAULT_MAX_CORRECTION_MINUTES,
        clock: Callable = now_local,
    ):
        self._corrections = corrections
        self._attendance = attendance
        self._configs = permission_configs
        self._audit = audit
        self._default_max_minutes = int(default_max_minutes)
        self._clock = clock

    def _config_for(self, leave_type_id: Optional[int]) -> Optional[PermissionDurationConfig]:
        return self._configs.get_for_leave_type(leave_type_id)

    def max_duration_minutes(self, leave_type_id: Optional[int] = None) -> int:
        config = self._config_for(leave_type_id)
        if config and config.max_consecutive_days:
            return config.max_duration_minutes
        return self._default_max_minutes

    def submit(self, submission: CorrectionSubmission) -> CorrectionRequest:
        duration = int(submission.duration_minutes)
        if duration <= 0:
            raise ValidationError("durationMinutes must be positive")

        limit = self.max_duration_minutes(submission.leave_type_id)
        if duration > limit:
            raise ValidationError(
                f"Correction duration exceeds limit of {_format_hours(limit)} hours ({limit} minutes)"
            )

        record = self._attendance.get_by_id(int(submission.attendance_record_id))
        if not record:
            raise NotFoundError(f"Attendance record {submission.attendance_record_id} not found")
        if record.employee_id != int(submission.employee_id):
            raise ValidationError("Attendance record does not belong to this employee")

        now = self._clock()
        request = CorrectionRequest(
            correction_id=None,
            employee_id=int(submission.employee_id),
            attendance_record_id=int(submission.attendance_record_id),
            duration_minutes=duration,
            correction_type=submission.correction_type or CorrectionType.ADD,
            reason=(submission.reason or "").strip(),
            line_manager_id=submission.line_manager_id,
            status=CorrectionStatus.SUBMITTED,
            approval_flow=(
                ApprovalEntry(
                    role=ApprovalRole.INITIATOR,
                    status=CorrectionStatus.SUBMITTED,
                    decided_by=int(submission.employee_id),
                    decided_at=now,
                ),
            ),
            applied_to_payroll=False,
            applies_from_date=submission.applies_from_date or now.date(),
            leave_type_id=submission.leave_type_id,
            created_at=now,
        )
        created = self._corrections.create(request)
        record_audit(
            self._audit,
            AuditEvent(
                entity_type=AUDIT_ENTITY,
                entity_id=int(created.correction_id),
                action="SUBMITTED",
                actor_id=created.employee_id,
                details={"durationMinutes": duration, "attendanceRecordId": created.attendance_record_id},
                occurred_at=now,
            )
        )
        logger.info(
            "correction submitted id=%s employee=%s minutes=%s",
            created.correction_id,
            created.employee_id,
            duration,
        )
        return created

    def decide(self, decision: CorrectionDecision) -> CorrectionRequest:
        request = self.get(decision.correction_id)
        if request.status != CorrectionStatus.SUBMITTED:
            raise ConflictError(
                f"Correction is in {request.status.value} status. Only SUBMITTED corrections can be reviewed."
            )

        rejection_reason = (decision.rejection_reason or "").strip() or None
        if decision.decision == Decision.REJECTED and not rejection_reason:
            raise ValidationError("rejectionReason is required when rejecting")

        now = self._clock()
        status = CorrectionStatus(decision.decision.value)
        entry = ApprovalEntry(
            role=decision.approver_role or ApprovalRole.LINE_MANAGER,
            status=status,
            decided_by=int(decision.approver_id),
            decided_at=now,
            note=rejection_reason,
        )

        applied = False
        if status == CorrectionStatus.APPROVED:
            config = self._config_for(request.leave_type_id)
            affects_payroll = config.affects_payroll if config else True
            applied = decision.apply_to_payroll is not False and affects_payroll
            rejection_reason = None

        flow = (*request.approval_flow, entry)
        ok = self._corrections.apply_decision(
            int(request.correction_id),
            status=status,
            approval_flow=flow,
            applied_to_payroll=applied,
            rejection_reason=rejection_reason,
            finalise_record_id=request.attendance_record_id if applied else None,
        )
        if not ok:
            raise ConflictError("Correction was reviewed by someone else")

        record_audit(
            self._audit,
            AuditEvent(
                entity_type=AUDIT_ENTITY,
                entity_id=int(request.correction_id),
                action=status.value,
                actor_id=int(decision.approver_id),
                details={"appliedToPayroll": applied, "rejectionReason": rejection_reason},
                occurred_at=now,
            )
        )
        logger.info(
            "correction decided id=%s status=%s applied_to_payroll=%s",
            request.correction_id,
            status.value,
            applied,
        )
        return replace(
            request,
            status=status,
            approval_flow=flow,
            applied_to_payroll=applied,
            rejection_reason=rejection_reason,
        )

    def get(self, correction_id: int) -> CorrectionRequest:
        request = self._corrections.get_by_id(int(correction_id))
        if not request:
            raise NotFoundError(f"Correction {correction_id} not found")
        return request

    def pending_for_manager(self, manager_id: int) -> Sequence[CorrectionRequest]:
        return self._corrections.list_pending_for_manager(int(manager_id))

    def count_pending_for_manager(self, manager_id: int) -> int:
        return len(self.pending_for_manager(manager_id))

    def by_status(self, status: CorrectionStatus) -> Sequence[CorrectionRequest]:
        return self._corrections.list_by_status(status)

    def history(
        self,
        employee_id: int,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Sequence[CorrectionRequest]:
        if start and end and end < start:
            raise ValidationError("end must be on or after start")
        return self._corrections.list_for_employee(int(employee_id), start=start, end=end)

    def approved_for_payroll(self) -> Sequence[CorrectionRequest]:
        return self._corrections.list_approved_for_payroll()

    def mark_processed_by_payroll(self, correction_id: int) -> CorrectionRequest:
        request = self.get(correction_id)
        if request.status != CorrectionStatus.APPROVED or not request.applied_to_payroll:
            raise ConflictError("Only approved corrections applied to payroll can be marked as processed")
        now = self._clock()
        if not self._corrections.mark_processed(int(correction_id), processed_at=now):
            raise ConflictError("Correction was already processed by payroll")
        return replace(request, payroll_processed_at=now)
