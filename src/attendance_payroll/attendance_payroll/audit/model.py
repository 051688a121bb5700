from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional


@dataclass(frozen=True)
class AuditEvent:
    """One durable entry of an entity's lifecycle (submitted, escalated, ...)."""

    entity_type: str
    entity_id: int
    action: str
    actor_id: Optional[int] = None
    details: dict[str, Any] = field(default_factory=dict)
    occurred_at: Optional[datetime] = None
