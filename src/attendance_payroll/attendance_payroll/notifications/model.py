from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import NotificationSeverity


@dataclass(frozen=True)
class Notification:
    recipient_ids: tuple[int, ...]
    severity: NotificationSeverity
    title: str
    message: str
    related_module: str = "Time Management"
    related_entity_id: Optional[int] = None
    created_at: Optional[datetime] = None
