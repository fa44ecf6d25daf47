"""
Comment Service - Handle comments on alerts.
"""

from typing import List
import logging

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from gasy_hub.core.errors import NotFoundError, ValidationError
from gasy_hub.db.database import commit_or_raise
from gasy_hub.db.models import Alert, AlertComment, AlertValidation, User
from gasy_hub.models.comment import CommentType

logger = logging.getLogger(__name__)


class CommentService:
    """Service for managing comments on alerts."""

    def __init__(self, db: Session):
        self.db = db

    def add_comment(self, alert_id: str, user_id: str, content: str, comment_type=CommentType.TEXT) -> AlertComment:
        """
        Add a comment to an alert.

        Args:
            alert_id: Alert to comment on
            user_id: Commenting user
            content: Comment text
            comment_type: text, green (needs a confirm vote) or red (needs a reject vote)

        Returns:
            The stored comment with its user loaded

        Raises:
            NotFoundError: unknown alert or user
            ValidationError: empty content, or a typed comment without the matching vote
        """
        if self.db.get(Alert, alert_id) is None:
            raise NotFoundError(f"Alert {alert_id} not found")
        if not user_id or self.db.get(User, user_id) is None:
            raise NotFoundError(f"User {user_id} not found")

        content = (content or "").strip()
        if not content:
            raise ValidationError("Comment content is required")

        try:
            comment_type = CommentType(getattr(comment_type, "value", comment_type))
        except ValueError:
            raise ValidationError(f"Invalid comment type '{comment_type}'")

        if comment_type != CommentType.TEXT:
            vote = self.db.scalars(
                select(AlertValidation).where(
                    AlertValidation.alert_id == alert_id,
                    AlertValidation.user_id == user_id,
                ).limit(1)
            ).first()
            expected = comment_type == CommentType.GREEN
            if vote is None or vote.is_valid != expected:
                raise ValidationError(
                    f"A {comment_type.value} comment requires a {'confirm' if expected else 'reject'} vote"
                )

        comment = AlertComment(alert_id=alert_id, user_id=user_id, type=comment_type.value, content=content)
        self.db.add(comment)
        commit_or_raise(self.db, "add comment")
        self.db.refresh(comment)

        logger.info(f"Comment {comment.id} ({comment_type.value}) added to alert {alert_id} by {user_id}")
        return comment

    def list_comments(self, alert_id: str) -> List[AlertComment]:
        """All comments of an alert, oldest first."""
        if self.db.get(Alert, alert_id) is None:
            raise NotFoundError(f"Alert {alert_id} not found")

        stmt = (
            select(AlertComment)
            .where(AlertComment.alert_id == alert_id)
            .options(selectinload(AlertComment.user))
            .order_by(AlertComment.id)
        )
        return list(self.db.scalars(stmt))


def get_comment_service(db: Session) -> CommentService:
    return CommentService(db)
