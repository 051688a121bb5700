from __future__ import annotations

import logging

from .model import AuditEvent
from .repository import AuditRepository

logger = logging.getLogger(__name__)


def record_audit(audit: AuditRepository, event: AuditEvent) -> bool:
    """Append an audit event after the audited change has been committed.

    Failures are logged and reported as False; they never undo the change.
    """
    try:
        audit.record(event)
    except Exception:
        logger.warning(
            "audit write failed entity=%s id=%s action=%s",
            event.entity_type,
            event.entity_id,
            event.action,
            exc_info=True,
        )
        return False
    return True
