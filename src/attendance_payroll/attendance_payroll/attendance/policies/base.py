from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Sequence

from ..model import Punch


@dataclass(frozen=True)
class Reconciliation:
    punches: tuple[Punch, ...]
    total_minutes: int
    has_missed_punch: bool


class PunchPolicyStrategy(ABC):
    """Strategy Pattern: how a day's time-ordered punches turn into worked minutes."""

    @abstractmethod
    def reconcile(self, punches: Sequence[Punch]) -> Reconciliation:
        raise NotImplementedError
