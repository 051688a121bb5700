from datetime import datetime

from src.attendance_payroll.attendance_payroll.attendance.model import Punch
from src.attendance_payroll.attendance_payroll.attendance.policies.factory import PunchPolicyFactory
from src.attendance_payroll.attendance_payroll.attendance.policies.first_last import FirstLastPunchPolicy
from src.attendance_payroll.attendance_payroll.attendance.policies.multiple import MultiplePunchPolicy
from src.attendance_payroll.attendance_payroll.attendance.policies.only_first import OnlyFirstPunchPolicy
from src.attendance_payroll.attendance_payroll.core.enums import PunchPolicy, PunchType


def _punch(kind: str, hh: int, mm: int) -> Punch:
    return Punch(punch_type=PunchType(kind), timestamp=datetime(2025, 3, 3, hh, mm))


def test_multiple_pairs_in_out():
    result = MultiplePunchPolicy().reconcile([_punch("IN", 8, 0), _punch("OUT", 12, 0)])

    assert result.total_minutes == 240
    assert result.has_missed_punch is False


def test_multiple_sums_each_pair():
    punches = [_punch("IN", 8, 0), _punch("OUT", 12, 0), _punch("IN", 13, 0), _punch("OUT", 17, 30)]
    result = MultiplePunchPolicy().reconcile(punches)

    assert result.total_minutes == 240 + 270
    assert result.has_missed_punch is False
    assert len(result.punches) == 4


def test_multiple_two_ins_is_missed_punch():
    result = MultiplePunchPolicy().reconcile([_punch("IN", 8, 0), _punch("IN", 9, 0)])

    assert result.total_minutes == 0
    assert result.has_missed_punch is True


def test_multiple_trailing_in_keeps_earlier_pair():
    punches = [_punch("IN", 8, 0), _punch("OUT", 12, 0), _punch("IN", 13, 0)]
    result = MultiplePunchPolicy().reconcile(punches)

    assert result.total_minutes == 240
    assert result.has_missed_punch is True


def test_first_last_spans_first_in_to_last_out():
    punches = [
        _punch("IN", 8, 1),
        _punch("OUT", 12, 0),
        _punch("IN", 13, 0),
        _punch("OUT", 17, 30),
    ]
    result = FirstLastPunchPolicy().reconcile(punches)

    assert result.total_minutes == 569
    assert result.has_missed_punch is False
    assert [p.timestamp.hour for p in result.punches] == [8, 17]


def test_first_last_without_out_is_missed():
    result = FirstLastPunchPolicy().reconcile([_punch("IN", 8, 0)])

    assert result.total_minutes == 0
    assert result.has_missed_punch is True


def test_only_first_keeps_one_punch_and_no_time():
    punches = [_punch("IN", 8, 0), _punch("OUT", 17, 0)]
    result = OnlyFirstPunchPolicy().reconcile(punches)

    assert result.total_minutes == 0
    assert result.has_missed_punch is True
    assert len(result.punches) == 1
    assert result.punches[0].punch_type == PunchType.IN


def test_factory_maps_policies():
    factory = PunchPolicyFactory()

    assert isinstance(factory.for_policy(PunchPolicy.MULTIPLE), MultiplePunchPolicy)
    assert isinstance(factory.for_policy(PunchPolicy.FIRST_LAST), FirstLastPunchPolicy)
    assert isinstance(factory.for_policy(PunchPolicy.ONLY_FIRST), OnlyFirstPunchPolicy)


def test_multiple_lone_out_is_missed_punch():
    result = MultiplePunchPolicy().reconcile([_punch("OUT", 12, 0)])

    assert result.total_minutes == 0
    assert result.has_missed_punch is True


def test_multiple_out_before_pair_is_missed_but_pair_counts():
    punches = [_punch("OUT", 7, 0), _punch("IN", 8, 0), _punch("OUT", 12, 0)]
    result = MultiplePunchPolicy().reconcile(punches)

    assert result.total_minutes == 240
    assert result.has_missed_punch is True
