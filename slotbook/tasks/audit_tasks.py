# ===== slotbook/tasks/audit_tasks.py =====
from typing import Any, Dict, Optional
import logging

from sqlalchemy.exc import SQLAlchemyError

from slotbook.config.celery_config import celery_app
from slotbook.config.database import SessionLocal
from slotbook.models.audit_log import AuditLog

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, max_retries=3)
def write_audit_log(
        self,
        entity_type: str,
        entity_id: str,
        action: str,
        changes: Optional[Dict[str, Any]] = None,
        metadata: Optional[Dict[str, Any]] = None
):
    """
    Persist one audit log entry

    Args:
        entity_type: kind of record that changed (booking, availability)
        entity_id: identifier of that record
        action: create, cancel, reschedule ...
        changes: optional {"old": {...}, "new": {...}}
        metadata: optional free-form context
    """
    db = SessionLocal()
    try:
        db.add(AuditLog(
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            changes=changes,
            meta=metadata,
        ))
        db.commit()
        return {"status": "success", "entity_id": entity_id}

    except SQLAlchemyError as exc:
        db.rollback()
        logger.error(f"Failed to write audit log for {entity_type} {entity_id}: {exc}")

        # Retry with exponential backoff: 30s, 60s, 120s
        raise self.retry(
            exc=exc,
            countdown=30 * (2 ** self.request.retries)
        )
    finally:
        db.close()
