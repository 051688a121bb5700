from __future__ import annotations

import logging
from typing import Iterable, Optional

from ..core.enums import NotificationSeverity
from .model import Notification
from .repository import NotificationSink

logger = logging.getLogger(__name__)


class NotificationService:
    """Fire-and-forget dispatch: a failing sink never fails the caller."""

    def __init__(self, sink: NotificationSink):
        self._sink = sink

    def notify(
        self,
        recipients: Iterable[int],
        *,
        title: str,
        message: str,
        severity: NotificationSeverity = NotificationSeverity.INFO,
        related_module: str = "Time Management",
        related_entity_id: Optional[int] = None,
    ) -> bool:
        recipient_ids = tuple(int(r) for r in recipients if r is not None)
        if not recipient_ids:
            return False
        notification = Notification(
            recipient_ids=recipient_ids,
            severity=severity,
            title=title,
            message=message,
            related_module=related_module,
            related_entity_id=related_entity_id,
        )
        try:
            self._sink.send(notification)
        except Exception:
            logger.warning("notification dispatch failed title=%r recipients=%s", title, recipient_ids, exc_info=True)
            return False
        return True
