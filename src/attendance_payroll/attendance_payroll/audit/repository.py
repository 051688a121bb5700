from __future__ import annotations

from typing import Protocol, Sequence

from .model import AuditEvent


class AuditRepository(Protocol):
    def record(self, event: AuditEvent) -> None:
        raise NotImplementedError

    def list_for(self, entity_type: str, entity_id: int) -> Sequence[AuditEvent]:
        raise NotImplementedError
