"""
Alert service - Business logic for SOS alerts.
Handles creation, listing, edits, deletion and non-vote status changes.

DESIGN NOTE:
- Every status change goes through StatusWorkflowEngine and is audited
- Status updates are conditional on the status that was read, so two
  concurrent changes cannot both apply
- Vote-driven transitions live in vote_service
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
import logging

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from gasy_hub.core.errors import (
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from gasy_hub.core.settings import settings
from gasy_hub.db.database import commit_or_raise
from gasy_hub.db.models import Alert, AlertView, User
from gasy_hub.models.alert import Urgency
from gasy_hub.models.media import normalize_media
from gasy_hub.services.audit_service import AuditService
from gasy_hub.services.geocoding import resolve_coordinates
from gasy_hub.services.status_workflow import AlertStatus, StatusWorkflowEngine, TransitionActor
from gasy_hub.services.user_service import UserService

logger = logging.getLogger(__name__)

DEFAULT_REASON = "Autre"
MAX_PAGE_SIZE = 100
EDITABLE_FIELDS = ("reason", "description", "location", "urgency", "latitude", "longitude")


def _clean_text(value: Optional[str]) -> str:
    return (value or "").strip()


def _parse_urgency(value: Optional[str]) -> str:
    if value is None or not str(value).strip():
        return Urgency.MEDIUM.value
    try:
        return Urgency(str(value).strip().lower()).value
    except ValueError:
        raise ValidationError(f"Invalid urgency '{value}'. Expected one of: low, medium, high")


def _check_coordinates(latitude: Optional[float], longitude: Optional[float]) -> None:
    if latitude is not None and not -90 <= latitude <= 90:
        raise ValidationError("Latitude must be between -90 and 90")
    if longitude is not None and not -180 <= longitude <= 180:
        raise ValidationError("Longitude must be between -180 and 180")


class AlertService:
    """
    Service for alert lifecycle operations.
    """

    def __init__(self, db: Session, workflow: Optional[StatusWorkflowEngine] = None):
        self.db = db
        self.workflow = workflow or StatusWorkflowEngine(
            allow_pending_resolution=settings.ALLOW_PENDING_RESOLUTION
        )
        self.users = UserService(db)
        self.audit = AuditService(db)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_alert(self, alert_id: str) -> Optional[Alert]:
        if not alert_id:
            return None
        return self.db.get(Alert, alert_id)

    def require_alert(self, alert_id: str) -> Alert:
        """
        Raises:
            NotFoundError: if the alert does not exist
        """
        alert = self.get_alert(alert_id)
        if alert is None:
            raise NotFoundError(f"Alert {alert_id} not found")
        return alert

    def view_alert(self, alert_id: str, viewer_id: Optional[str] = None) -> Alert:
        """
        Fetch one alert and count the first view by a known user.
        """
        alert = self.require_alert(alert_id)
        if viewer_id and self.users.get_user(viewer_id) is not None:
            self._record_view(alert_id, viewer_id)
            alert = self.require_alert(alert_id)
        return alert

    def _record_view(self, alert_id: str, user_id: str) -> bool:
        existing = self.db.scalars(
            select(AlertView).where(AlertView.alert_id == alert_id, AlertView.user_id == user_id).limit(1)
        ).first()
        if existing is not None:
            return False

        try:
            self.db.add(AlertView(alert_id=alert_id, user_id=user_id))
            self.db.execute(
                update(Alert)
                .where(Alert.id == alert_id)
                # Keep updated_at: a view is not a change to the alert
                .values(view_count=Alert.view_count + 1, updated_at=Alert.updated_at)
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
        except IntegrityError:
            # Concurrent first view by the same user already counted
            self.db.rollback()
            return False

        logger.debug(f"View recorded for user {user_id} on alert {alert_id}")
        return True

    def list_alerts(
        self,
        page: int = 1,
        limit: Optional[int] = None,
        status: Optional[str] = None,
        author_id: Optional[str] = None,
    ) -> Tuple[List[Alert], int]:
        """
        Newest-first page of alerts and the total matching count.
        """
        limit = limit or settings.DEFAULT_PAGE_SIZE
        if page < 1:
            raise ValidationError("page must be >= 1")
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}")

        conditions = []
        if status:
            try:
                conditions.append(Alert.status == AlertStatus(status).value)
            except ValueError:
                raise ValidationError(f"Invalid status filter '{status}'")
        if author_id:
            conditions.append(Alert.author_id == author_id)

        total = self.db.scalar(select(func.count(Alert.id)).where(*conditions)) or 0
        stmt = (
            select(Alert)
            .where(*conditions)
            .options(selectinload(Alert.author), selectinload(Alert.validations))
            .order_by(Alert.created_at.desc(), Alert.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        alerts = list(self.db.scalars(stmt))

        logger.info(f"Retrieved {len(alerts)} alerts (page={page}, limit={limit}, status={status}, author={author_id})")
        return alerts, total

    # ------------------------------------------------------------------
    # Submit / edit / delete
    # ------------------------------------------------------------------

    def submit(
        self,
        reason: Optional[str],
        description: Optional[str],
        location: Optional[str],
        urgency: Optional[str],
        author_id: Optional[str],
        media: Any = None,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
    ) -> Alert:
        """
        Create a new alert in "pending".

        Raises:
            ValidationError: empty description/location, bad urgency or
                coordinates, or an author that does not exist
        """
        description = _clean_text(description)
        location = _clean_text(location)
        if not description:
            raise ValidationError("Description is required")
        if not location:
            raise ValidationError("Location is required")
        urgency_value = _parse_urgency(urgency)
        _check_coordinates(latitude, longitude)
        media_paths = normalize_media(media).paths()

        if not author_id:
            raise ValidationError("authorId is required")
        author = self.users.get_user(author_id)
        if author is None:
            raise ValidationError(f"Author {author_id} does not exist")

        latitude, longitude = resolve_coordinates(location, latitude, longitude)

        alert = Alert(
            reason=_clean_text(reason) or DEFAULT_REASON,
            description=description,
            location=location,
            latitude=latitude,
            longitude=longitude,
            urgency=urgency_value,
            status=AlertStatus.PENDING.value,
            author_id=author.id,
            confirmed_count=0,
            rejected_count=0,
            view_count=0,
            media=media_paths,
        )
        try:
            self.db.add(alert)
            self.db.flush()

            self.db.execute(
                update(User)
                .where(User.id == author.id)
                .values(alerts_count=User.alerts_count + 1)
                .execution_options(synchronize_session=False)
            )
            self.audit.record_status_change(
                alert_id=alert.id,
                actor_id=author.id,
                from_status=None,
                to_status=AlertStatus.PENDING.value,
                note="Alert created",
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to save alert: {e}", exc_info=True)
            raise StorageError("Failed to create alert") from e
        commit_or_raise(self.db, "create alert")
        self.db.refresh(alert)

        logger.info(f"Alert created: {alert.id} (urgency={alert.urgency}, author={alert.author_id}, media={len(media_paths)})")
        return alert

    def _require_author_or_admin(self, alert: Alert, user_id: Optional[str]) -> User:
        user = self.users.get_user(user_id) if user_id else None
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        if user.id != alert.author_id and not user.is_admin:
            raise ForbiddenError("Only the author or an admin can do this")
        return user

    def update_alert(self, alert_id: str, updater_id: str, fields: Dict[str, Any]) -> Alert:
        """
        Edit descriptive fields (never status, counters or media).
        """
        alert = self.require_alert(alert_id)
        self._require_author_or_admin(alert, updater_id)

        changes = {k: v for k, v in fields.items() if k in EDITABLE_FIELDS and v is not None}
        if "description" in changes:
            changes["description"] = _clean_text(changes["description"])
            if not changes["description"]:
                raise ValidationError("Description is required")
        if "location" in changes:
            changes["location"] = _clean_text(changes["location"])
            if not changes["location"]:
                raise ValidationError("Location is required")
        if "reason" in changes:
            changes["reason"] = _clean_text(changes["reason"]) or DEFAULT_REASON
        if "urgency" in changes:
            changes["urgency"] = _parse_urgency(getattr(changes["urgency"], "value", changes["urgency"]))
        _check_coordinates(changes.get("latitude"), changes.get("longitude"))

        for field, value in changes.items():
            setattr(alert, field, value)

        commit_or_raise(self.db, "update alert")
        self.db.refresh(alert)
        logger.info(f"Alert {alert_id} updated by {updater_id}: {sorted(changes)}")
        return alert

    def delete_alert(self, alert_id: str, requester_id: str) -> List[str]:
        """
        Delete an alert with its votes, comments, views and history.

        Returns:
            The media paths the alert referenced (for file cleanup)
        """
        alert = self.require_alert(alert_id)
        self._require_author_or_admin(alert, requester_id)

        media_paths = list(alert.media or [])
        author_id = alert.author_id

        self.db.delete(alert)
        self.db.execute(
            update(User)
            .where(User.id == author_id, User.alerts_count > 0)
            .values(alerts_count=User.alerts_count - 1)
            .execution_options(synchronize_session=False)
        )
        commit_or_raise(self.db, "delete alert")

        logger.info(f"Alert {alert_id} deleted by {requester_id}")
        return media_paths

    # ------------------------------------------------------------------
    # Status changes
    # ------------------------------------------------------------------

    def _apply_status(
        self,
        alert: Alert,
        new_status: str,
        actor_id: str,
        note: Optional[str] = None,
    ) -> Alert:
        current_status = alert.status
        values: Dict[str, Any] = {
            "status": new_status,
            "updated_at": datetime.now(timezone.utc),
        }
        if new_status == AlertStatus.RESOLVED.value:
            values["resolved_at"] = datetime.now(timezone.utc)

        result = self.db.execute(
            update(Alert)
            .where(Alert.id == alert.id, Alert.status == current_status)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self.db.rollback()
            raise InvalidTransitionError(
                f"Alert {alert.id} changed status concurrently; expected {current_status}"
            )

        self.audit.record_status_change(
            alert_id=alert.id,
            actor_id=actor_id,
            from_status=current_status,
            to_status=new_status,
            note=note,
        )
        commit_or_raise(self.db, "update alert status")
        self.db.refresh(alert)
        return alert

    def mark_resolved(self, alert_id: str, requesting_user_id: str) -> Alert:
        """
        Close an alert. Author (self-service) or admin only.

        Raises:
            NotFoundError: unknown alert or user
            ForbiddenError: requester is neither author nor admin
            InvalidTransitionError: alert is not in a resolvable status
        """
        alert = self.require_alert(alert_id)
        requester = self._require_author_or_admin(alert, requesting_user_id)

        actor = TransitionActor.AUTHOR if requester.id == alert.author_id else TransitionActor.ADMIN
        self.workflow.validate_transition(alert.status, AlertStatus.RESOLVED.value, actor)

        alert = self._apply_status(alert, AlertStatus.RESOLVED.value, requester.id, note="Marked resolved")
        logger.info(f"Alert {alert_id} resolved by {requester.id} ({actor.value})")
        return alert

    def admin_override(
        self,
        alert_id: str,
        target_status: str,
        actor_id: Optional[str],
        note: Optional[str] = None,
    ) -> Alert:
        """
        Set the status directly, bypassing vote counts. Admin only.
        Same-status requests change nothing and are not audited.
        """
        admin = self.users.require_admin(actor_id)
        alert = self.require_alert(alert_id)

        target_value = getattr(target_status, "value", target_status)
        if alert.status == target_value:
            return alert

        self.workflow.validate_transition(alert.status, target_value, TransitionActor.ADMIN)
        alert = self._apply_status(alert, target_value, admin.id, note=note or "Admin override")
        logger.info(f"Admin {admin.id} set alert {alert_id} to {target_value}")
        return alert

    def change_status(self, alert_id: str, new_status: str, requester_id: str) -> Alert:
        """
        Entry point for the public status endpoint:
        - resolved → author/admin resolution
        - confirmed / fake → admin override
        """
        new_value = getattr(new_status, "value", new_status)
        if new_value == AlertStatus.RESOLVED.value:
            return self.mark_resolved(alert_id, requester_id)
        if new_value in (AlertStatus.CONFIRMED.value, AlertStatus.FAKE.value):
            self.require_alert(alert_id)
            return self.admin_override(alert_id, new_value, requester_id)
        raise InvalidTransitionError(f"Status cannot be set to '{new_value}'")

    def get_history(self, alert_id: str, admin_id: Optional[str] = None):
        self.users.require_admin(admin_id)
        self.require_alert(alert_id)
        return self.audit.get_history(alert_id)


def get_alert_service(db: Session) -> AlertService:
    """Build an AlertService bound to the request's session."""
    return AlertService(db)
