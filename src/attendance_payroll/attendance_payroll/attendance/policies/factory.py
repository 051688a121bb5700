from __future__ import annotations

from dataclasses import dataclass

from ...core.enums import PunchPolicy
from .base import PunchPolicyStrategy
from .first_last import FirstLastPunchPolicy
from .multiple import MultiplePunchPolicy
from .only_first import OnlyFirstPunchPolicy


@dataclass
class PunchPolicyFactory:
    """Factory Pattern: choose the reconciliation strategy for a punch policy."""

    def for_policy(self, policy: PunchPolicy) -> PunchPolicyStrategy:
        if policy == PunchPolicy.FIRST_LAST:
            return FirstLastPunchPolicy()
        if policy == PunchPolicy.ONLY_FIRST:
            return OnlyFirstPunchPolicy()
        return MultiplePunchPolicy()
