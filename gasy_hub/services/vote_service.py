"""
Vote Service - community validation of alerts.

A vote is recorded in the alert_validations ledger and counted on the
alert inside ONE transaction:
1. insert the ledger row (unique on alert_id + user_id)
2. increment the matching counter with an SQL-side "count + 1"
3. move a pending alert to confirmed/fake when a threshold is reached,
   with an update conditional on status = 'pending'

A duplicate vote violates the unique constraint and the whole transaction
rolls back, so two concurrent votes by the same user can never both count.
"""

from typing import List, Optional
import logging

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from gasy_hub.core.errors import AlreadyVotedError, NotFoundError, StorageError, ValidationError
from gasy_hub.core.settings import settings
from gasy_hub.db.models import Alert, AlertComment, AlertValidation, User, utcnow
from gasy_hub.models.comment import CommentType
from gasy_hub.services.audit_service import AuditService
from gasy_hub.services.status_workflow import SYSTEM_ACTOR_ID, AlertStatus, StatusWorkflowEngine

logger = logging.getLogger(__name__)


class VoteService:
    """Service for managing votes on alerts."""

    def __init__(
        self,
        db: Session,
        confirmation_threshold: Optional[int] = None,
        rejection_threshold: Optional[int] = None,
    ):
        self.db = db
        self.confirmation_threshold = (
            settings.CONFIRMATION_THRESHOLD if confirmation_threshold is None else confirmation_threshold
        )
        self.rejection_threshold = (
            settings.REJECTION_THRESHOLD if rejection_threshold is None else rejection_threshold
        )
        self.workflow = StatusWorkflowEngine()
        self.audit = AuditService(db)

    def _require_alert(self, alert_id: str) -> Alert:
        alert = self.db.get(Alert, alert_id) if alert_id else None
        if alert is None:
            raise NotFoundError(f"Alert {alert_id} not found")
        return alert

    def has_voted(self, alert_id: str, user_id: str) -> bool:
        stmt = select(AlertValidation.id).where(
            AlertValidation.alert_id == alert_id,
            AlertValidation.user_id == user_id,
        ).limit(1)
        return self.db.scalar(stmt) is not None

    def check_voted(self, alert_id: str, user_id: str) -> bool:
        """
        has_voted for callers outside the service.

        Raises:
            NotFoundError: unknown alert or user
        """
        self._require_alert(alert_id)
        if not user_id or self.db.get(User, user_id) is None:
            raise NotFoundError(f"User {user_id} not found")
        return self.has_voted(alert_id, user_id)

    def get_vote(self, alert_id: str, user_id: str) -> Optional[AlertValidation]:
        stmt = select(AlertValidation).where(
            AlertValidation.alert_id == alert_id,
            AlertValidation.user_id == user_id,
        ).limit(1)
        return self.db.scalars(stmt).first()

    def list_voters(self, alert_id: str) -> List[AlertValidation]:
        """Ledger rows of an alert in vote order."""
        self._require_alert(alert_id)
        stmt = (
            select(AlertValidation)
            .where(AlertValidation.alert_id == alert_id)
            .order_by(AlertValidation.id)
        )
        return list(self.db.scalars(stmt))

    def vote(
        self,
        alert_id: str,
        user_id: str,
        is_confirmed: bool,
        comment: Optional[str] = None,
    ) -> Alert:
        """
        Cast a confirm (True) or reject (False) vote.

        Args:
            alert_id: Alert to vote on
            user_id: Voter
            is_confirmed: True to confirm, False to reject
            comment: Optional note, stored as a green/red comment in the same transaction

        Returns:
            The updated alert

        Raises:
            NotFoundError: unknown alert or user
            ValidationError: the alert is already resolved
            AlreadyVotedError: the user already voted on this alert
            StorageError: persistence failure
        """
        alert = self._require_alert(alert_id)
        if not user_id or self.db.get(User, user_id) is None:
            raise NotFoundError(f"User {user_id} not found")
        if alert.status == AlertStatus.RESOLVED.value:
            raise ValidationError("Cannot vote on a resolved alert")
        if self.has_voted(alert_id, user_id):
            raise AlreadyVotedError("User has already voted on this alert")

        note = (comment or "").strip()
        counter = Alert.confirmed_count if is_confirmed else Alert.rejected_count

        try:
            self.db.add(AlertValidation(alert_id=alert_id, user_id=user_id, is_valid=bool(is_confirmed)))
            self.db.flush()

            self.db.execute(
                update(Alert)
                .where(Alert.id == alert_id)
                .values({counter: counter + 1, Alert.updated_at: utcnow()})
                .execution_options(synchronize_session=False)
            )
            self.db.execute(
                update(User)
                .where(User.id == user_id)
                .values(validations_count=User.validations_count + 1)
                .execution_options(synchronize_session=False)
            )

            current = self.db.execute(
                select(Alert.status, Alert.confirmed_count, Alert.rejected_count).where(Alert.id == alert_id)
            ).one()
            new_status = self.workflow.status_after_votes(
                current_status=current.status,
                confirmed_count=current.confirmed_count,
                rejected_count=current.rejected_count,
                confirmation_threshold=self.confirmation_threshold,
                rejection_threshold=self.rejection_threshold,
            )
            if new_status is not None:
                result = self.db.execute(
                    update(Alert)
                    .where(Alert.id == alert_id, Alert.status == AlertStatus.PENDING.value)
                    .values(status=new_status)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 1:
                    self.audit.record_status_change(
                        alert_id=alert_id,
                        actor_id=SYSTEM_ACTOR_ID,
                        from_status=AlertStatus.PENDING.value,
                        to_status=new_status,
                        note=f"{current.confirmed_count} confirm / {current.rejected_count} reject votes",
                    )

            if note:
                self.db.add(AlertComment(
                    alert_id=alert_id,
                    user_id=user_id,
                    type=(CommentType.GREEN if is_confirmed else CommentType.RED).value,
                    content=note,
                ))

            self.db.commit()
        except IntegrityError:
            # Unique (alert_id, user_id) violated by a concurrent vote from the same user
            self.db.rollback()
            raise AlreadyVotedError("User has already voted on this alert")
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to record vote: {str(e)}", exc_info=True)
            raise StorageError("Failed to record vote") from e

        logger.info(f"Vote recorded on alert {alert_id} by {user_id}: {'confirm' if is_confirmed else 'reject'}")
        return self._require_alert(alert_id)


def get_vote_service(db: Session) -> VoteService:
    """Build a VoteService bound to the request's session."""
    return VoteService(db)
