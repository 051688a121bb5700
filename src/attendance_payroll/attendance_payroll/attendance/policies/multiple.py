from __future__ import annotations

from typing import Sequence

from ...common.datetime_utils import minutes_between
from ...core.enums import PunchType
from ..model import Punch
from .base import PunchPolicyStrategy, Reconciliation


class MultiplePunchPolicy(PunchPolicyStrategy):
    """Every IN immediately followed by an OUT counts; any unpaired punch is a missed punch."""

    def reconcile(self, punches: Sequence[Punch]) -> Reconciliation:
        total = 0
        missed = False
        i = 0
        while i < len(punches):
            current = punches[i]
            if (
                current.punch_type == PunchType.IN
                and i + 1 < len(punches)
                and punches[i + 1].punch_type == PunchType.OUT
            ):
                total += max(0, minutes_between(current.timestamp, punches[i + 1].timestamp))
                i += 2
            else:
                missed = True
                i += 1
        return Reconciliation(punches=tuple(punches), total_minutes=total, has_missed_punch=missed)
