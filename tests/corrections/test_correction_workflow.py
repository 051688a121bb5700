from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime
from typing import Optional

import pytest

from src.attendance_payroll.attendance_payroll.attendance.model import AttendanceRecord
from src.attendance_payroll.attendance_payroll.core.enums import CorrectionStatus, Decision
from src.attendance_payroll.attendance_payroll.core.exceptions import ConflictError, NotFoundError, ValidationError
from src.attendance_payroll.attendance_payroll.corrections.model import (
    CorrectionDecision,
    CorrectionRequest,
    CorrectionSubmission,
    PermissionDurationConfig,
)
from src.attendance_payroll.attendance_payroll.corrections.service import CorrectionWorkflowService

NOW = datetime(2025, 3, 10, 9, 0)


class InMemoryCorrections:
    def __init__(self, attendance=None):
        self.attendance = attendance
        self.items: dict[int, CorrectionRequest] = {}
        self._id = 0

    def create(self, request: CorrectionRequest) -> CorrectionRequest:
        self._id += 1
        saved = replace(request, correction_id=self._id)
        self.items[self._id] = saved
        return saved

    def get_by_id(self, correction_id: int) -> Optional[CorrectionRequest]:
        return self.items.get(correction_id)

    def apply_decision(
        self, correction_id, *, status, approval_flow, applied_to_payroll, rejection_reason, finalise_record_id=None
    ):
        current = self.items[correction_id]
        if current.status != CorrectionStatus.SUBMITTED:
            return False
        # Finalise before touching the request so a failure stores nothing.
        if finalise_record_id is not None:
            self.attendance.set_finalised(finalise_record_id, finalised=True)
        self.items[correction_id] = replace(
            current,
            status=status,
            approval_flow=tuple(approval_flow),
            applied_to_payroll=applied_to_payroll,
            rejection_reason=rejection_reason,
        )
        return True

    def list_by_status(self, status):
        return [r for r in self.items.values() if r.status == status]

    def list_pending_for_manager(self, manager_id):
        return [
            r for r in self.items.values() if r.status == CorrectionStatus.SUBMITTED and r.line_manager_id == manager_id
        ]

    def list_for_employee(self, employee_id, *, start=None, end=None):
        return [r for r in self.items.values() if r.employee_id == employee_id]

    def list_approved_for_payroll(self):
        return [
            r
            for r in self.items.values()
            if r.status == CorrectionStatus.APPROVED and r.applied_to_payroll and not r.payroll_processed_at
        ]

    def mark_processed(self, correction_id, *, processed_at):
        current = self.items[correction_id]
        if current.payroll_processed_at:
            return False
        self.items[correction_id] = replace(current, payroll_processed_at=processed_at)
        return True

    def set_escalation(self, correction_id, *, escalated_at, reason, only_if_unescalated=True):
        current = self.items[correction_id]
        if current.status != CorrectionStatus.SUBMITTED:
            return False
        if only_if_unescalated and current.escalated_at:
            return False
        self.items[correction_id] = replace(current, escalated_at=escalated_at, escalation_reason=reason)
        return True

    def set_payroll_cutoff(self, *, created_from, created_to, cutoff):
        ids = []
        for cid, r in self.items.items():
            if r.status == CorrectionStatus.SUBMITTED and created_from <= r.created_at < created_to:
                self.items[cid] = replace(r, payroll_cutoff_at=cutoff)
                ids.append(cid)
        return ids


class StubAttendance:
    def __init__(self, *records: AttendanceRecord):
        self.records = {r.record_id: r for r in records}

    def get_by_id(self, record_id: int) -> Optional[AttendanceRecord]:
        return self.records.get(record_id)

    def set_finalised(self, record_id: int, *, finalised: bool) -> bool:
        self.records[record_id] = replace(self.records[record_id], finalised_for_payroll=finalised)
        return True


class UnwritableAttendance(StubAttendance):
    """Fails finalisation until unlocked."""

    locked = True

    def set_finalised(self, record_id: int, *, finalised: bool) -> bool:
        if self.locked:
            raise RuntimeError("attendance table locked")
        return super().set_finalised(record_id, finalised=finalised)


class StaticConfigs:
    def __init__(self, configs: Optional[dict] = None):
        self._configs = configs or {}

    def get_for_leave_type(self, leave_type_id):
        return self._configs.get(leave_type_id)


class ListAudit:
    def __init__(self):
        self.events = []

    def record(self, event) -> None:
        self.events.append(event)

    def list_for(self, entity_type, entity_id):
        return [e for e in self.events if e.entity_type == entity_type and e.entity_id == entity_id]


class BrokenAudit:
    def record(self, event) -> None:
        raise ConnectionError("audit store down")


def _setup(configs=None, *, attendance_cls=StubAttendance, audit=None):
    attendance = attendance_cls(AttendanceRecord(record_id=5, employee_id=1, work_date=date(2025, 3, 7)))
    corrections = InMemoryCorrections(attendance)
    audit = audit or ListAudit()
    service = CorrectionWorkflowService(
        corrections,
        attendance,
        StaticConfigs(configs),
        audit,
        clock=lambda: NOW,
    )
    return service, corrections, attendance, audit


def _submission(**overrides) -> CorrectionSubmission:
    data = dict(
        employee_id=1,
        attendance_record_id=5,
        duration_minutes=120,
        reason="Forgot to clock out",
        line_manager_id=2,
    )
    data.update(overrides)
    return CorrectionSubmission(**data)


def test_submit_creates_submitted_request():
    service, _, _, audit = _setup()

    created = service.submit(_submission())

    assert created.status == CorrectionStatus.SUBMITTED
    assert created.applied_to_payroll is False
    assert created.applies_from_date == NOW.date()
    assert created.approval_flow[0].decided_by == 1
    assert [e.action for e in audit.events] == ["SUBMITTED"]


def test_submit_over_default_limit_fails():
    service, corrections, _, _ = _setup()

    with pytest.raises(ValidationError, match=r"exceeds limit of 8 hours \(480 minutes\)"):
        service.submit(_submission(duration_minutes=481))
    assert corrections.items == {}


def test_submit_uses_configured_limit():
    service, _, _, _ = _setup({3: PermissionDurationConfig(leave_type_id=3, max_consecutive_days=1)})

    created = service.submit(_submission(duration_minutes=600, leave_type_id=3))

    assert created.duration_minutes == 600


def test_submit_rejects_unknown_record():
    service, _, _, _ = _setup()

    with pytest.raises(NotFoundError):
        service.submit(_submission(attendance_record_id=404))


def test_submit_rejects_someone_elses_record():
    service, _, _, _ = _setup()

    with pytest.raises(ValidationError):
        service.submit(_submission(employee_id=2))


def test_approve_finalises_the_record():
    service, _, attendance, audit = _setup()
    created = service.submit(_submission())

    decided = service.decide(CorrectionDecision(correction_id=created.correction_id, approver_id=2, decision=Decision.APPROVED))

    assert decided.status == CorrectionStatus.APPROVED
    assert decided.applied_to_payroll is True
    assert len(decided.approval_flow) == 2
    assert attendance.records[5].finalised_for_payroll is True
    assert audit.events[-1].action == "APPROVED"
    assert [r.correction_id for r in service.approved_for_payroll()] == [created.correction_id]


def test_approve_without_payroll_effect_leaves_record_open():
    service, _, attendance, _ = _setup({4: PermissionDurationConfig(leave_type_id=4, affects_payroll=False)})
    created = service.submit(_submission(leave_type_id=4))

    decided = service.decide(CorrectionDecision(correction_id=created.correction_id, approver_id=2, decision=Decision.APPROVED))

    assert decided.applied_to_payroll is False
    assert attendance.records[5].finalised_for_payroll is False


def test_reject_requires_reason():
    service, _, _, _ = _setup()
    created = service.submit(_submission())

    with pytest.raises(ValidationError):
        service.decide(CorrectionDecision(correction_id=created.correction_id, approver_id=2, decision=Decision.REJECTED))

    rejected = service.decide(
        CorrectionDecision(
            correction_id=created.correction_id,
            approver_id=2,
            decision=Decision.REJECTED,
            rejection_reason="No evidence",
        )
    )
    assert rejected.status == CorrectionStatus.REJECTED
    assert rejected.rejection_reason == "No evidence"


def test_second_decision_fails():
    service, _, _, _ = _setup()
    created = service.submit(_submission())
    decision = CorrectionDecision(correction_id=created.correction_id, approver_id=2, decision=Decision.APPROVED)
    service.decide(decision)

    with pytest.raises(ConflictError, match="Only SUBMITTED corrections can be reviewed"):
        service.decide(decision)


def test_decide_unknown_correction_is_not_found():
    service, _, _, _ = _setup()

    with pytest.raises(NotFoundError):
        service.decide(CorrectionDecision(correction_id=42, approver_id=2, decision=Decision.APPROVED))


def test_mark_processed_by_payroll_once():
    service, _, _, _ = _setup()
    created = service.submit(_submission())
    service.decide(CorrectionDecision(correction_id=created.correction_id, approver_id=2, decision=Decision.APPROVED))

    processed = service.mark_processed_by_payroll(created.correction_id)

    assert processed.payroll_processed_at == NOW
    assert service.approved_for_payroll() == []
    with pytest.raises(ConflictError):
        service.mark_processed_by_payroll(created.correction_id)


def test_pending_for_manager_lists_submitted_only():
    service, _, _, _ = _setup()
    first = service.submit(_submission())
    service.submit(_submission())
    service.decide(CorrectionDecision(correction_id=first.correction_id, approver_id=2, decision=Decision.APPROVED))

    assert service.count_pending_for_manager(2) == 1
    assert service.pending_for_manager(3) == []


def test_failed_finalisation_keeps_request_reviewable():
    service, corrections, attendance, audit = _setup(attendance_cls=UnwritableAttendance)
    created = service.submit(_submission())
    decision = CorrectionDecision(correction_id=created.correction_id, approver_id=2, decision=Decision.APPROVED)

    with pytest.raises(RuntimeError):
        service.decide(decision)

    stored = corrections.items[created.correction_id]
    assert stored.status == CorrectionStatus.SUBMITTED
    assert stored.applied_to_payroll is False
    assert attendance.records[5].finalised_for_payroll is False
    assert [e.action for e in audit.events] == ["SUBMITTED"]

    attendance.locked = False
    decided = service.decide(decision)
    assert decided.status == CorrectionStatus.APPROVED
    assert attendance.records[5].finalised_for_payroll is True


def test_audit_failure_does_not_fail_submit_or_decision():
    service, corrections, attendance, _ = _setup(audit=BrokenAudit())

    created = service.submit(_submission())
    assert corrections.items[created.correction_id].status == CorrectionStatus.SUBMITTED

    decided = service.decide(CorrectionDecision(correction_id=created.correction_id, approver_id=2, decision=Decision.APPROVED))
    assert decided.status == CorrectionStatus.APPROVED
    assert corrections.items[created.correction_id].applied_to_payroll is True
    assert attendance.records[5].finalised_for_payroll is True
