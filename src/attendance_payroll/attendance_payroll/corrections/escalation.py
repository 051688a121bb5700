from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Sequence

from ..audit.model import AuditEvent
from ..audit.repository import AuditRepository
from ..audit.service import record_audit
from ..common.datetime_utils import month_range, now_local
from ..core.constants import DEFAULT_CUTOFF_ADVANCE_HOURS, DEFAULT_ESCALATION_HOURS
from ..core.enums import CorrectionStatus, NotificationSeverity
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..notifications.service import NotificationService
from .model import CorrectionRequest
from .repository import CorrectionRepository
from .service import AUDIT_ENTITY

logger = logging.getLogger(__name__)

ESCALATION_TITLE = "Attendance Correction Escalated"


@dataclass(frozen=True)
class EscalationCandidate:
    correction_id: int
    employee_id: int
    submitted_at: datetime
    hours_pending: float
    reason: str


@dataclass(frozen=True)
class EscalationReport:
    escalated: int
    failed: int = 0


@dataclass(frozen=True)
class CutoffResult:
    stamped: int
    escalated: int


@dataclass(frozen=True)
class EscalationStats:
    total: int
    pending: int
    escalated: int
    needs_escalation: int


def _hours(delta_seconds: float) -> float:
    return delta_seconds / 3600


class EscalationService:
    """Escalates SUBMITTED corrections that are stale or close to a payroll cutoff.

    Passes are safe to re-run: an escalated request is never escalated again
    by a pass, and a failure on one request does not stop the others.
    """

    def __init__(
        self,
        corrections: CorrectionRepository,
        notifications: NotificationService,
        audit: AuditRepository,
        *,
        escalation_hours: int = DEFAULT_ESCALATION_HOURS,
        cutoff_advance_hours: int = DEFAULT_CUTOFF_ADVANCE_HOURS,
        clock: Callable = now_local,
    ):
        self._corrections = corrections
        self._notifications = notifications
        self._audit = audit
        self._escalation_hours = escalation_hours
        self._cutoff_advance_hours = cutoff_advance_hours
        self._clock = clock

    def escalation_reason(self, request: CorrectionRequest, now: datetime) -> Optional[str]:
        if request.status != CorrectionStatus.SUBMITTED or request.is_escalated or not request.created_at:
            return None

        hours_pending = _hours((now - request.created_at).total_seconds())
        if hours_pending >= self._escalation_hours:
            return f"Unreviewed for {math.floor(hours_pending)} hours"

        if request.payroll_cutoff_at:
            hours_until_cutoff = _hours((request.payroll_cutoff_at - now).total_seconds())
            if 0 < hours_until_cutoff <= self._cutoff_advance_hours:
                return f"Payroll cutoff in {math.floor(hours_until_cutoff)} hours"
        return None

    def requests_needing_escalation(self, now: Optional[datetime] = None) -> list[EscalationCandidate]:
        now = now or self._clock()
        candidates = []
        for request in self._corrections.list_by_status(CorrectionStatus.SUBMITTED):
            reason = self.escalation_reason(request, now)
            if not reason:
                continue
            candidates.append(
                EscalationCandidate(
                    correction_id=int(request.correction_id),
                    employee_id=request.employee_id,
                    submitted_at=request.created_at,
                    hours_pending=round(_hours((now - request.created_at).total_seconds()), 2),
                    reason=reason,
                )
            )
        return candidates

    def run_escalation_pass(self, now: Optional[datetime] = None) -> EscalationReport:
        now = now or self._clock()
        escalated = 0
        failed = 0
        for request in self._corrections.list_by_status(CorrectionStatus.SUBMITTED):
            reason = self.escalation_reason(request, now)
            if not reason:
                continue
            try:
                if self._escalate(request, reason, now, only_if_unescalated=True):
                    escalated += 1
            except Exception:
                # Partial passes are acceptable; the next pass picks the request up again.
                failed += 1
                logger.exception("escalation failed for correction id=%s", request.correction_id)
        logger.info("escalation pass done escalated=%s failed=%s", escalated, failed)
        return EscalationReport(escalated=escalated, failed=failed)

    def escalate_manually(self, correction_id: int, reason: str, *, actor_id: Optional[int] = None) -> CorrectionRequest:
        request = self._corrections.get_by_id(int(correction_id))
        if not request:
            raise NotFoundError(f"Correction {correction_id} not found")
        if request.status != CorrectionStatus.SUBMITTED:
            raise ConflictError("Only SUBMITTED corrections can be escalated")
        text = (reason or "").strip()
        if not text:
            raise ValidationError("reason is required")

        now = self._clock()
        full_reason = f"Manual escalation: {text}"
        self._escalate(request, full_reason, now, only_if_unescalated=False, actor_id=actor_id)
        return self._corrections.get_by_id(int(correction_id)) or request

    def _escalate(
        self,
        request: CorrectionRequest,
        reason: str,
        now: datetime,
        *,
        only_if_unescalated: bool,
        actor_id: Optional[int] = None,
    ) -> bool:
        changed = self._corrections.set_escalation(
            int(request.correction_id),
            escalated_at=now,
            reason=reason,
            only_if_unescalated=only_if_unescalated,
        )
        if not changed:
            return False

        record_audit(
            self._audit,
            AuditEvent(
                entity_type=AUDIT_ENTITY,
                entity_id=int(request.correction_id),
                action="ESCALATED",
                actor_id=actor_id,
                details={"reason": reason},
                occurred_at=now,
            )
        )
        recipient = request.line_manager_id or request.employee_id
        self._notifications.notify(
            [recipient],
            title=ESCALATION_TITLE,
            message=(
                f"Attendance correction request has been escalated: {reason}. "
                f"Employee ID: {request.employee_id}"
            ),
            severity=NotificationSeverity.WARNING,
            related_entity_id=int(request.correction_id),
        )
        logger.info("correction escalated id=%s reason=%r", request.correction_id, reason)
        return True

    def set_payroll_cutoff(self, year: int, month: int, cutoff: datetime) -> CutoffResult:
        """Stamp the month's SUBMITTED corrections with a cutoff, then run a pass."""
        if not 1 <= int(month) <= 12:
            raise ValidationError("month must be between 1 and 12")
        start, end = month_range(datetime(int(year), int(month), 1).date())
        stamped_ids: Sequence[int] = self._corrections.set_payroll_cutoff(
            created_from=start,
            created_to=end,
            cutoff=cutoff,
        )
        now = self._clock()
        for correction_id in stamped_ids:
            record_audit(
                self._audit,
                AuditEvent(
                    entity_type=AUDIT_ENTITY,
                    entity_id=int(correction_id),
                    action="PAYROLL_CUTOFF_SET",
                    details={"payrollCutoffAt": cutoff.isoformat()},
                    occurred_at=now,
                )
            )
        logger.info("payroll cutoff %s set on %s corrections for %04d-%02d", cutoff, len(stamped_ids), year, month)
        report = self.run_escalation_pass(now)
        return CutoffResult(stamped=len(stamped_ids), escalated=report.escalated)

    def stats(self, now: Optional[datetime] = None) -> EscalationStats:
        now = now or self._clock()
        submitted = self._corrections.list_by_status(CorrectionStatus.SUBMITTED)
        total = (
            len(submitted)
            + len(self._corrections.list_by_status(CorrectionStatus.APPROVED))
            + len(self._corrections.list_by_status(CorrectionStatus.REJECTED))
        )
        return EscalationStats(
            total=total,
            pending=len(submitted),
            escalated=sum(1 for r in submitted if r.is_escalated),
            needs_escalation=sum(1 for r in submitted if self.escalation_reason(r, now)),
        )
