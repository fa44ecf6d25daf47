"""
Audit Service - append-only status history for alerts.

Entries are added to the caller's session so they commit (or roll back)
together with the status change they describe.
"""

from typing import List, Optional
import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from gasy_hub.db.models import AlertStatusChange

logger = logging.getLogger(__name__)


class AuditService:
    """Records and reads status transitions."""

    def __init__(self, db: Session):
        self.db = db

    def record_status_change(
        self,
        alert_id: str,
        actor_id: str,
        from_status: Optional[str],
        to_status: str,
        note: Optional[str] = None,
    ) -> AlertStatusChange:
        entry = AlertStatusChange(
            alert_id=alert_id,
            actor_id=actor_id,
            from_status=from_status,
            to_status=to_status,
            note=note or None,
        )
        self.db.add(entry)
        logger.info(f"Status change on alert {alert_id}: {from_status or '-'} → {to_status} by {actor_id}")
        return entry

    def get_history(self, alert_id: str) -> List[AlertStatusChange]:
        """Chronological history of an alert (caller checks the alert exists)."""
        stmt = (
            select(AlertStatusChange)
            .where(AlertStatusChange.alert_id == alert_id)
            .order_by(AlertStatusChange.id)
        )
        return list(self.db.scalars(stmt))


def get_audit_service(db: Session) -> AuditService:
    return AuditService(db)
