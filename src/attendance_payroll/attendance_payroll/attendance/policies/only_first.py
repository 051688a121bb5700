from __future__ import annotations

from typing import Sequence

from ..model import Punch
from .base import PunchPolicyStrategy, Reconciliation


class OnlyFirstPunchPolicy(PunchPolicyStrategy):
    """Only the first punch of the day is kept; no time is credited."""

    def reconcile(self, punches: Sequence[Punch]) -> Reconciliation:
        kept = tuple(punches[:1])
        return Reconciliation(punches=kept, total_minutes=0, has_missed_punch=True)
