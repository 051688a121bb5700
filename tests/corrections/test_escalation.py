from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from src.attendance_payroll.attendance_payroll.core.enums import CorrectionStatus, CorrectionType, NotificationSeverity
from src.attendance_payroll.attendance_payroll.core.exceptions import ConflictError
from src.attendance_payroll.attendance_payroll.corrections.escalation import ESCALATION_TITLE, EscalationService
from src.attendance_payroll.attendance_payroll.corrections.model import CorrectionRequest
from src.attendance_payroll.attendance_payroll.notifications.service import NotificationService

from test_correction_workflow import InMemoryCorrections, ListAudit

NOW = datetime(2025, 3, 20, 12, 0)


class ListSink:
    def __init__(self):
        self.sent = []

    def send(self, notification) -> None:
        self.sent.append(notification)


class BrokenSink:
    def send(self, notification) -> None:
        raise ConnectionError("smtp down")


def _request(created_at: datetime, **overrides) -> CorrectionRequest:
    data = dict(
        correction_id=None,
        employee_id=1,
        attendance_record_id=5,
        duration_minutes=60,
        correction_type=CorrectionType.ADD,
        reason="Forgot to clock in",
        line_manager_id=2,
        created_at=created_at,
    )
    data.update(overrides)
    return CorrectionRequest(**data)


def _service(sink=None):
    corrections = InMemoryCorrections()
    audit = ListAudit()
    sink = sink or ListSink()
    service = EscalationService(corrections, NotificationService(sink), audit, clock=lambda: NOW)
    return service, corrections, audit, sink


def test_stale_request_needs_escalation_and_fresh_one_does_not():
    service, corrections, _, _ = _service()
    stale = corrections.create(_request(NOW - timedelta(hours=25)))
    corrections.create(_request(NOW - timedelta(hours=1)))

    candidates = service.requests_needing_escalation()

    assert [c.correction_id for c in candidates] == [stale.correction_id]
    assert candidates[0].reason == "Unreviewed for 25 hours"


def test_pass_escalates_once_and_notifies_manager():
    service, corrections, audit, sink = _service()
    stale = corrections.create(_request(NOW - timedelta(hours=30)))

    first = service.run_escalation_pass()
    second = service.run_escalation_pass()

    assert first.escalated == 1
    assert second.escalated == 0
    stored = corrections.get_by_id(stale.correction_id)
    assert stored.escalated_at == NOW
    assert stored.status == CorrectionStatus.SUBMITTED
    assert [e.action for e in audit.events] == ["ESCALATED"]
    assert len(sink.sent) == 1
    assert sink.sent[0].title == ESCALATION_TITLE
    assert sink.sent[0].recipient_ids == (2,)
    assert sink.sent[0].severity == NotificationSeverity.WARNING


def test_near_cutoff_request_is_escalated():
    service, corrections, _, _ = _service()
    corrections.create(_request(NOW - timedelta(hours=2), payroll_cutoff_at=NOW + timedelta(hours=10)))

    candidates = service.requests_needing_escalation()

    assert candidates[0].reason == "Payroll cutoff in 10 hours"


def test_failed_notification_does_not_stop_escalation():
    service, corrections, _, _ = _service(BrokenSink())
    stale = corrections.create(_request(NOW - timedelta(hours=48)))

    report = service.run_escalation_pass()

    assert report.escalated == 1
    assert corrections.get_by_id(stale.correction_id).escalated_at == NOW


def test_manual_escalation_prefixes_reason():
    service, corrections, _, _ = _service()
    fresh = corrections.create(_request(NOW - timedelta(hours=1)))

    updated = service.escalate_manually(fresh.correction_id, "urgent payroll fix")

    assert updated.escalation_reason == "Manual escalation: urgent payroll fix"


def test_manual_escalation_of_decided_request_fails():
    service, corrections, _, _ = _service()
    decided = corrections.create(_request(NOW - timedelta(hours=1), status=CorrectionStatus.APPROVED))

    with pytest.raises(ConflictError):
        service.escalate_manually(decided.correction_id, "late")


def test_payroll_cutoff_stamps_month_and_runs_pass():
    service, corrections, audit, _ = _service()
    in_month = corrections.create(_request(datetime(2025, 3, 19, 10, 0)))
    corrections.create(_request(datetime(2025, 2, 27, 10, 0)))

    result = service.set_payroll_cutoff(2025, 3, NOW + timedelta(hours=24))

    assert result.stamped == 1
    assert corrections.get_by_id(in_month.correction_id).payroll_cutoff_at == NOW + timedelta(hours=24)
    assert "PAYROLL_CUTOFF_SET" in [e.action for e in audit.events]
    # Both requests are past the escalation window, so the follow-up pass escalates them.
    assert result.escalated == 2


def test_stats_counts_pending_and_escalated():
    service, corrections, _, _ = _service()
    corrections.create(_request(NOW - timedelta(hours=30)))
    corrections.create(_request(NOW - timedelta(hours=1)))
    corrections.create(_request(NOW - timedelta(hours=1), status=CorrectionStatus.REJECTED))
    service.run_escalation_pass()

    stats = service.stats()

    assert stats.total == 3
    assert stats.pending == 2
    assert stats.escalated == 1
    assert stats.needs_escalation == 0
