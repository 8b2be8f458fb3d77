# ============================================================================
# slotbook/services/audit/audit_service.py
# Best-effort audit trail; never allowed to affect the operation it records
# ============================================================================
import logging
from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from slotbook.tasks.audit_tasks import write_audit_log

logger = logging.getLogger(__name__)


def _jsonable(values: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if values is None:
        return None

    cleaned = {}
    for key, value in values.items():
        if isinstance(value, datetime):
            value = value.isoformat()
        elif isinstance(value, UUID):
            value = str(value)
        cleaned[key] = value
    return cleaned


class AuditService:
    """Queues audit entries on the task queue"""

    @staticmethod
    def record(
            entity_type: str,
            entity_id: Any,
            action: str,
            old: Optional[Dict[str, Any]] = None,
            new: Optional[Dict[str, Any]] = None,
            metadata: Optional[Dict[str, Any]] = None
    ) -> bool:
        """Queue an audit entry. Returns False (and logs) if it could not be queued."""
        changes = None
        if old is not None or new is not None:
            changes = {"old": _jsonable(old), "new": _jsonable(new)}

        try:
            write_audit_log.delay(
                entity_type=entity_type,
                entity_id=str(entity_id),
                action=action,
                changes=changes,
                metadata=_jsonable(metadata),
            )
            return True
        except Exception as e:
            logger.error(f"[AUDIT] Failed to queue {action} for {entity_type} {entity_id}: {e}")
            return False

    @staticmethod
    def record_booking(booking_id: Any, action: str, old=None, new=None, metadata=None) -> bool:
        return AuditService.record("booking", booking_id, action, old=old, new=new, metadata=metadata)
