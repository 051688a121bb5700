from __future__ import annotations

from typing import Protocol, Sequence

from .model import Notification


class NotificationSink(Protocol):
    """Outbound notification channel (in-app store, e-mail gateway, ...)."""

    def send(self, notification: Notification) -> None:
        raise NotImplementedError


class NotificationStore(NotificationSink, Protocol):
    def list_for_recipient(self, recipient_id: int, *, limit: int = 50) -> Sequence[Notification]:
        raise NotImplementedError
