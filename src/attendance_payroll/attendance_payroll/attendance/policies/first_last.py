from __future__ import annotations

from typing import Sequence

from ...common.datetime_utils import minutes_between
from ...core.enums import PunchType
from ..model import Punch
from .base import PunchPolicyStrategy, Reconciliation


class FirstLastPunchPolicy(PunchPolicyStrategy):
    """Earliest IN to latest OUT; the record keeps only those two punches."""

    def reconcile(self, punches: Sequence[Punch]) -> Reconciliation:
        ins = [p for p in punches if p.punch_type == PunchType.IN]
        outs = [p for p in punches if p.punch_type == PunchType.OUT]
        if not ins or not outs:
            return Reconciliation(punches=tuple(punches), total_minutes=0, has_missed_punch=True)

        first_in = min(ins, key=lambda p: p.timestamp)
        last_out = max(outs, key=lambda p: p.timestamp)
        total = max(0, minutes_between(first_in.timestamp, last_out.timestamp))
        return Reconciliation(punches=(first_in, last_out), total_minutes=total, has_missed_punch=False)
