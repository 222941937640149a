"""Audit trail for folder and item changes.

The folder service records an entry after its transaction has committed,
so losing an audit write never loses the change it describes.
"""

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models.audit import AuditLog

logger = logging.getLogger(__name__)


def log(
    db: Session,
    user_id: Optional[str],
    action: str,
    resource_type: str,
    resource_id: Any = None,
    details: Optional[dict] = None,
) -> None:
    """Record one change, e.g. ``log(db, "u1", "move", "folder", 12, {"from": 0, "to": 7})``."""
    db.add(AuditLog(
        user_id=user_id,
        action=action,
        resource_type=resource_type,
        resource_id=None if resource_id is None else str(resource_id),
        details=json.dumps(details, default=str) if details else None,
    ))
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning("Audit entry dropped: %s", e, extra={"action": action, "resource_id": resource_id})


def history(db: Session, resource_type: str, resource_id: Any, limit: int = 50) -> List[AuditLog]:
    """Entries for one folder or item, newest first."""
    return (
        db.query(AuditLog)
        .filter(AuditLog.resource_type == resource_type, AuditLog.resource_id == str(resource_id))
        .order_by(AuditLog.id.desc())
        .limit(limit)
        .all()
    )


def purge_old_entries(db: Session, days: int) -> int:
    """Delete entries older than *days*; ``days <= 0`` keeps everything."""
    if days <= 0:
        return 0
    cutoff = datetime.now(timezone.utc) - timedelta(days=days)
    try:
        purged = db.query(AuditLog).filter(AuditLog.created_at < cutoff).delete(synchronize_session=False)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning("Audit purge failed: %s", e)
        return 0
    return purged
