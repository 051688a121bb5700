from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import CorrectionStatus
from .model import ApprovalEntry, CorrectionRequest, PermissionDurationConfig


class CorrectionRepository(Protocol):
    def create(self, request: CorrectionRequest) -> CorrectionRequest:
        raise NotImplementedError

    def get_by_id(self, correction_id: int) -> Optional[CorrectionRequest]:
        raise NotImplementedError

    def apply_decision(
        self,
        correction_id: int,
        *,
        status: CorrectionStatus,
        approval_flow: Sequence[ApprovalEntry],
        applied_to_payroll: bool,
        rejection_reason: Optional[str],
        finalise_record_id: Optional[int] = None,
    ) -> bool:
        """Write a decision only if the request is still SUBMITTED.

        When finalise_record_id is given the attendance record is marked
        finalised for payroll in the same transaction.
        """

        raise NotImplementedError

    def list_by_status(self, status: CorrectionStatus) -> Sequence[CorrectionRequest]:
        raise NotImplementedError

    def list_pending_for_manager(self, manager_id: int) -> Sequence[CorrectionRequest]:
        raise NotImplementedError

    def list_for_employee(
        self,
        employee_id: int,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Sequence[CorrectionRequest]:
        raise NotImplementedError

    def list_approved_for_payroll(self) -> Sequence[CorrectionRequest]:
        """APPROVED, applied to payroll, not yet picked up by a payroll run."""

        raise NotImplementedError

    def mark_processed(self, correction_id: int, *, processed_at: datetime) -> bool:
        raise NotImplementedError

    def set_escalation(
        self,
        correction_id: int,
        *,
        escalated_at: datetime,
        reason: str,
        only_if_unescalated: bool = True,
    ) -> bool:
        """Annotate a SUBMITTED request as escalated."""

        raise NotImplementedError

    def set_payroll_cutoff(self, *, created_from: datetime, created_to: datetime, cutoff: datetime) -> Sequence[int]:
        """Stamp SUBMITTED requests created in [created_from, created_to); returns their ids."""

        raise NotImplementedError


class PermissionConfigRepository(Protocol):
    def get_for_leave_type(self, leave_type_id: Optional[int]) -> Optional[PermissionDurationConfig]:
        raise NotImplementedError
